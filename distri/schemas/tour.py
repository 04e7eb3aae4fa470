# Cities, tours and sectors (read views)

from datetime import date
from typing import List

from pydantic import BaseModel


class CityOut(BaseModel):
    name: str
    departement: str
    region: str
    housing_units: int
    available_tours: int


class TourOut(BaseModel):
    city: str
    index: int
    start_date: date
    end_date: date
    deadline: date
    label: str
    capacity: int
    participation_count: int
    status: str
    status_label: str


class SectorOut(BaseModel):
    code: str
    name: str
    participation_count: int
    status: str
    status_label: str
    selectable: bool
    participants: List[str] = []


class TourDetailOut(TourOut):
    deadline_passed: bool
    sectors: List[SectorOut] = []
