# Tour calendar: every Monday of the next TOUR_WINDOW_MONTHS months is a tour start

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from distri.core import config

FRENCH_MONTHS = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

TOUR_LENGTH_DAYS = 7


def format_french_date(value: date) -> str:
    """date(2025, 6, 2) -> '2 juin 2025'"""
    return f"{value.day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


@dataclass(frozen=True)
class Tour:
    city: str
    index: int
    start_date: date
    end_date: date
    deadline: date
    capacity: int

    @property
    def label(self) -> str:
        return f"{format_french_date(self.start_date)} au {format_french_date(self.end_date)}"


def mondays_of_month(year: int, month: int) -> List[date]:
    first = date(year, month, 1)
    day = first + timedelta(days=(7 - first.weekday()) % 7)
    mondays = []
    while day.month == month:
        mondays.append(day)
        day += timedelta(days=7)
    return mondays


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    total = year * 12 + (month - 1) + offset
    return total // 12, total % 12 + 1


def generate_tours(city: str, today: date, months: Optional[int] = None) -> List[Tour]:
    """
    Tours of `city` from the first Monday of the current month on.
    The index is the position in this list, so it is stable within a month only.
    """
    months = config.TOUR_WINDOW_MONTHS if months is None else months
    tours: List[Tour] = []
    for offset in range(months):
        year, month = _shift_month(today.year, today.month, offset)
        for monday in mondays_of_month(year, month):
            tours.append(
                Tour(
                    city=city,
                    index=len(tours),
                    start_date=monday,
                    end_date=monday + timedelta(days=TOUR_LENGTH_DAYS),
                    deadline=monday - timedelta(days=config.DEADLINE_DAYS),
                    capacity=config.TOUR_CAPACITY,
                )
            )
    return tours


def get_tour(city: str, index: int, today: date) -> Optional[Tour]:
    tours = generate_tours(city, today)
    if 0 <= index < len(tours):
        return tours[index]
    return None


def find_tour_by_start(city: str, start: date, today: date) -> Optional[Tour]:
    for tour in generate_tours(city, today):
        if tour.start_date == start:
            return tour
    return None
