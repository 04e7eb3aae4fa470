# Admin aggregation and batch report schemas

from datetime import date
from typing import List, Optional

from pydantic import BaseModel


class AdminParticipant(BaseModel):
    participation_id: int
    user_email: Optional[str] = None
    company: Optional[str] = None
    title: Optional[str] = None
    housing_units: Optional[int] = None
    status: str


class AdminSector(BaseModel):
    code: str
    name: str
    participation_count: int
    status: str
    status_label: str
    participants: List[AdminParticipant] = []


class AdminTour(BaseModel):
    city: str
    start_date: date
    end_date: date
    deadline: date
    participation_count: int
    total_housing_units: int
    status: str
    status_label: str
    sectors: List[AdminSector] = []


class SectorReport(BaseModel):
    code: str
    count: int
    status: str


class TourReport(BaseModel):
    city: str
    start_date: date
    status: str
    participations: int
    sectors: List[SectorReport] = []


class ValidationReport(BaseModel):
    message: str
    validated: int
    failed: int
    results: List[TourReport] = []
    errors: List[str] = []
