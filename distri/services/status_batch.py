# Nightly tour validation: persist the deadline decision on every participation of each tour

from datetime import date

from distri.core.logging import get_logger
from distri.crud.interfaces import ParticipationStore
from distri.models.participation import ParticipationStatus
from distri.schemas.admin import SectorReport, TourReport, ValidationReport
from distri.services.tour_board import group_by_tour
from distri.services.tour_status import (
    PERSISTED_STATUS,
    deadline_outcome,
    is_in_validation_window,
    sector_batch_label,
)

logger = get_logger(__name__)


def validate_tournees(store: ParticipationStore, today: date) -> ValidationReport:
    """
    Every tour between its deadline and its start date gets BOUCLEE / CONFIRMED /
    CANCELLED written to all of its participations. A failing tour is logged and
    skipped; the others are still processed.
    """
    participations = store.list_participations(exclude_status=ParticipationStatus.CANCELLED.value)
    groups = group_by_tour(participations)

    results = []
    errors = []
    for (city, start), group in sorted(groups.items(), key=lambda item: (item[0][1], item[0][0])):
        if not is_in_validation_window(start, today):
            continue
        ids = [p.id for p in group]
        try:
            counts = store.count_distinct_participations_per_sector(ids)
            outcome = deadline_outcome(counts)
            store.update_status(ids, PERSISTED_STATUS[outcome].value)
        except Exception as exc:
            logger.exception("tour_validation_failed", city=city, start_date=start.isoformat())
            errors.append(f"{city} {start.isoformat()}: {exc}")
            continue

        logger.info(
            "tour_validated",
            city=city,
            start_date=start.isoformat(),
            status=outcome.value,
            participations=len(ids),
        )
        results.append(
            TourReport(
                city=city,
                start_date=start,
                status=PERSISTED_STATUS[outcome].value,
                participations=len(ids),
                sectors=[
                    SectorReport(code=code, count=count, status=sector_batch_label(count))
                    for code, count in sorted(counts.items())
                ],
            )
        )

    report = ValidationReport(
        message=f"{len(results)} tournée(s) traitée(s), {len(errors)} en erreur",
        validated=len(results),
        failed=len(errors),
        results=results,
        errors=errors,
    )
    logger.info("tour_validation_done", validated=report.validated, failed=report.failed)
    return report
