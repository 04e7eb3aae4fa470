# Admin board: participations grouped into tours and sectors, with derived statuses

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from distri.models.participation import IrisSelection, Participation, ParticipationStatus
from distri.schemas.admin import AdminParticipant, AdminSector, AdminTour
from distri.services.name_matcher import simplify
from distri.services.tour_board import group_by_tour
from distri.services.tour_status import (
    SECTOR_STATUS_LABELS,
    TOUR_STATUS_LABELS,
    deadline_for,
    sector_status,
    tour_status,
)

CANCELLED = ParticipationStatus.CANCELLED.value


def _matches_query(group: List[Participation], city: str, emails: Dict[int, str], q: str) -> bool:
    needle = simplify(q)
    haystack = [city] + [p.flyer_company or "" for p in group] + [emails.get(p.user_id, "") for p in group]
    return any(needle in simplify(value) for value in haystack)


def build_admin_tours(
    participations: Iterable[Participation],
    selections: Iterable[IrisSelection],
    emails: Dict[int, str],
    today: date,
    month: Optional[int] = None,
    year: Optional[int] = None,
    status: Optional[str] = None,
    q: Optional[str] = None,
) -> List[AdminTour]:
    """
    One entry per (city, start date). Cancelled participations are listed but never
    counted; sector counts are distinct participations per IRIS code.
    """
    by_participation: Dict[int, List[IrisSelection]] = defaultdict(list)
    for selection in selections:
        by_participation[selection.participation_id].append(selection)

    tours = []
    for (city, start), group in group_by_tour(participations).items():
        if month is not None and start.month != month:
            continue
        if year is not None and start.year != year:
            continue
        if q and not _matches_query(group, city, emails, q):
            continue

        active = [p for p in group if p.status != CANCELLED]
        sector_ids: Dict[str, Set[int]] = defaultdict(set)
        sector_names: Dict[str, str] = {}
        sector_participants: Dict[str, List[AdminParticipant]] = defaultdict(list)
        for p in group:
            for selection in by_participation.get(p.id, []):
                sector_names.setdefault(selection.iris_code, selection.iris_name)
                if p.status != CANCELLED:
                    sector_ids[selection.iris_code].add(p.id)
                sector_participants[selection.iris_code].append(
                    AdminParticipant(
                        participation_id=p.id,
                        user_email=emails.get(p.user_id),
                        company=p.flyer_company,
                        title=p.flyer_title,
                        housing_units=selection.housing_units,
                        status=p.status,
                    )
                )

        counts = {code: len(ids) for code, ids in sector_ids.items()}
        derived = tour_status(start, today, counts, len(active))
        if status and derived.value != status:
            continue

        sectors = []
        for code in sorted(sector_names):
            count = counts.get(code, 0)
            s_status = sector_status(count, start, today)
            sectors.append(
                AdminSector(
                    code=code,
                    name=sector_names[code],
                    participation_count=count,
                    status=s_status.value,
                    status_label=SECTOR_STATUS_LABELS[s_status],
                    participants=sector_participants[code],
                )
            )

        tours.append(
            AdminTour(
                city=city,
                start_date=start,
                end_date=max(p.tour_end_date for p in group),
                deadline=deadline_for(start),
                participation_count=len(active),
                total_housing_units=sum(p.total_housing_units or 0 for p in active),
                status=derived.value,
                status_label=TOUR_STATUS_LABELS[derived],
                sectors=sectors,
            )
        )

    return sorted(tours, key=lambda t: (t.start_date, simplify(t.city)))
