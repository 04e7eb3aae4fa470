# Read views over generated tours + stored participations

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from distri.crud.interfaces import ParticipationStore
from distri.models.participation import Participation, ParticipationStatus
from distri.schemas.tour import CityOut, SectorOut, TourDetailOut, TourOut
from distri.services.dataset import City
from distri.services.tour_calendar import Tour, generate_tours
from distri.services.tour_status import (
    SECTOR_STATUS_LABELS,
    TOUR_STATUS_LABELS,
    TourStatus,
    is_deadline_passed,
    is_in_validation_window,
    is_selectable,
    sector_status,
    tour_status,
)

CANCELLED = ParticipationStatus.CANCELLED.value

TourKey = Tuple[str, date]


def group_by_tour(participations: Iterable[Participation]) -> Dict[TourKey, List[Participation]]:
    groups: Dict[TourKey, List[Participation]] = defaultdict(list)
    for p in participations:
        groups[(p.city_name, p.tour_start_date)].append(p)
    return dict(groups)


def tour_sector_counts(store: ParticipationStore, city: str, start: date) -> Tuple[List[Participation], Dict[str, int]]:
    """Active participations of one tour and the distinct participation count of each of its sectors."""
    participations = store.list_participations(city=city, start_date=start, exclude_status=CANCELLED)
    counts = store.count_distinct_participations_per_sector([p.id for p in participations])
    return participations, counts


def _tour_out(tour: Tour, status: TourStatus, participation_count: int) -> TourOut:
    return TourOut(
        city=tour.city,
        index=tour.index,
        start_date=tour.start_date,
        end_date=tour.end_date,
        deadline=tour.deadline,
        label=tour.label,
        capacity=tour.capacity,
        participation_count=participation_count,
        status=status.value,
        status_label=TOUR_STATUS_LABELS[status],
    )


def list_city_tours(
    store: ParticipationStore,
    city: City,
    today: date,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List[TourOut]:
    tours = generate_tours(city.name, today)
    if month is not None:
        tours = [t for t in tours if t.start_date.month == month]
    if year is not None:
        tours = [t for t in tours if t.start_date.year == year]

    by_start = defaultdict(list)
    for p in store.list_participations(city=city.name, exclude_status=CANCELLED):
        by_start[p.tour_start_date].append(p)

    result = []
    for tour in tours:
        participations = by_start.get(tour.start_date, [])
        counts: Dict[str, int] = {}
        if participations and is_in_validation_window(tour.start_date, today):
            counts = store.count_distinct_participations_per_sector([p.id for p in participations])
        status = tour_status(tour.start_date, today, counts, len(participations))
        result.append(_tour_out(tour, status, len(participations)))
    return result


def list_cities(store: ParticipationStore, cities: List[City], today: date) -> List[CityOut]:
    """Every eligible city with its number of tours still open for booking."""
    per_tour: Dict[TourKey, int] = defaultdict(int)
    for p in store.list_participations(exclude_status=CANCELLED):
        per_tour[(p.city_name, p.tour_start_date)] += 1

    result = []
    for city in cities:
        available = 0
        for tour in generate_tours(city.name, today):
            count = per_tour.get((city.name, tour.start_date), 0)
            # Before the deadline the sector counts do not matter
            if tour_status(tour.start_date, today, {}, count) == TourStatus.AVAILABLE:
                available += 1
        result.append(
            CityOut(
                name=city.name,
                departement=city.departement,
                region=city.region,
                housing_units=city.housing_units,
                available_tours=available,
            )
        )
    return result


def participant_label(p: Participation) -> str:
    company = getattr(p, "flyer_company", None)
    title = getattr(p, "flyer_title", None)
    if company and title:
        return f"{company} - {title}"
    return company or title or f"Participation #{p.id}"


def tour_detail(store: ParticipationStore, tour: Tour, today: date) -> TourDetailOut:
    """Tour status plus one entry per sector already selected by someone."""
    participations, counts = tour_sector_counts(store, tour.city, tour.start_date)
    by_id = {p.id: p for p in participations}
    status = tour_status(tour.start_date, today, counts, len(participations))

    names: Dict[str, str] = {}
    labels: Dict[str, List[str]] = defaultdict(list)
    for selection in store.list_sector_selections(list(by_id)):
        names.setdefault(selection.iris_code, selection.iris_name)
        label = participant_label(by_id[selection.participation_id])
        if label not in labels[selection.iris_code]:
            labels[selection.iris_code].append(label)

    sectors = []
    for code in sorted(names):
        count = counts.get(code, 0)
        s_status = sector_status(count, tour.start_date, today)
        sectors.append(
            SectorOut(
                code=code,
                name=names[code],
                participation_count=count,
                status=s_status.value,
                status_label=SECTOR_STATUS_LABELS[s_status],
                selectable=is_selectable(count, tour.start_date, today),
                participants=labels[code],
            )
        )

    base = _tour_out(tour, status, len(participations))
    return TourDetailOut(
        **base.model_dump(),
        deadline_passed=is_deadline_passed(tour.start_date, today),
        sectors=sectors,
    )
