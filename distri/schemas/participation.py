# Draft selection, flyer and participation request/response schemas

import re
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from distri.services.phone import format_french_phone, is_valid_french_phone

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FlyerFormat = Literal["A5", "A6"]
ParticipationStatusLiteral = Literal["pending", "confirmed", "cancelled", "bouclee"]


def check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Adresse email invalide")
    return value


class FlyerAddress(BaseModel):
    """Where the distributor picks up the customer's own flyers."""

    street: str = Field(..., min_length=1, max_length=300)
    postal_code: str = Field(..., min_length=1, max_length=10)
    city: str = Field(..., min_length=1, max_length=150)


class _FlyerBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=30)

    @field_validator("title", "company")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Champ obligatoire")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        if not is_valid_french_phone(v):
            raise ValueError("Numéro de téléphone français invalide")
        return format_french_phone(v)


class FlyerProvided(_FlyerBase):
    """The customer already has printed flyers."""

    kind: Literal["provided"] = "provided"
    address: FlyerAddress


class FlyerToCreate(_FlyerBase):
    """Flyers designed and printed by us, in the chosen format."""

    kind: Literal["to_create"] = "to_create"
    format: FlyerFormat


Flyer = Annotated[Union[FlyerProvided, FlyerToCreate], Field(discriminator="kind")]


class SectorChoice(BaseModel):
    """One IRIS sector picked on the map."""

    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)


class DraftCreate(BaseModel):
    city: str = Field(..., min_length=1, max_length=150)
    tour_index: int = Field(..., ge=0)
    sectors: List[SectorChoice] = Field(..., min_length=1)


class DraftSector(BaseModel):
    code: str
    name: str
    housing_units: int = 0


class Draft(BaseModel):
    """Pending submission, kept server-side between the selection and the confirmation step."""

    id: str
    city: str
    tour_index: int
    tour_start_date: date
    tour_end_date: date
    sectors: List[DraftSector]
    total_housing_units: int
    distribution_cost: float
    flyer: Optional[Flyer] = None
    printing_cost: Optional[float] = None
    created_at: datetime
    # Set once the participation row is written; a retry then only adds the selections
    participation_id: Optional[int] = None


class DraftFlyerUpdate(BaseModel):
    flyer: Flyer


class SectorSelectionCreate(BaseModel):
    iris_code: str
    iris_name: str
    housing_units: Optional[int] = None


class ParticipationCreate(BaseModel):
    """Validated write payload for one participation row."""

    user_id: int
    city_name: str
    tour_start_date: date
    tour_end_date: date
    tour_index: int
    total_housing_units: int
    distribution_cost: float
    flyer: Flyer
    printing_cost: Optional[float] = None
    tour_link: Optional[str] = None


class SelectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    iris_code: str
    iris_name: str
    housing_units: Optional[int] = None


class ParticipationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    city_name: str
    tour_start_date: date
    tour_end_date: date
    tour_index: int
    total_housing_units: int
    distribution_cost: float
    status: ParticipationStatusLiteral = "pending"
    tour_link: Optional[str] = None
    has_flyer: Optional[bool] = None
    needs_flyer_creation: Optional[bool] = None
    flyer_format: Optional[str] = None
    flyer_title: Optional[str] = None
    flyer_company: Optional[str] = None
    printing_cost: Optional[float] = None
    created_at: Optional[datetime] = None


class MyParticipationOut(ParticipationOut):
    """Dashboard row: stored participation + its sectors + the status derived today."""

    tour_status: str
    tour_status_label: str
    selections: List[SelectionOut] = []
