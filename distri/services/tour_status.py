# Tour / sector status derived from dates and participation counts (no I/O).
#
# Tour (before start):
#   deadline not passed -> AVAILABLE, or BOUCLEE once TOUR_CAPACITY participations exist
#   deadline passed     -> BOUCLEE if a sector reached SECTOR_CAP,
#                          CONFIRMED if a sector reached SECTOR_VALIDATION_THRESHOLD,
#                          CANCELLED otherwise
# Tour (after start)    -> EXPIRED
#
# Every check takes `today` so callers decide which clock (and timezone) applies.

from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple

from distri.core import config
from distri.models.participation import ParticipationStatus


class TourStatus(str, Enum):
    AVAILABLE = "available"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    BOUCLEE = "bouclee"
    EXPIRED = "expired"


class SectorStatus(str, Enum):
    OPEN = "open"
    VALIDATED = "validated"
    FULL = "full"
    CANCELLED = "cancelled"


TOUR_STATUS_LABELS: dict[TourStatus, str] = {
    TourStatus.AVAILABLE: "Disponible",
    TourStatus.CONFIRMED: "Validée",
    TourStatus.CANCELLED: "Annulée",
    TourStatus.BOUCLEE: "Bouclée",
    TourStatus.EXPIRED: "Expirée",
}

SECTOR_STATUS_LABELS: dict[SectorStatus, str] = {
    SectorStatus.OPEN: "Ouvert",
    SectorStatus.VALIDATED: "Validé",
    SectorStatus.FULL: "Complet",
    SectorStatus.CANCELLED: "Annulé",
}

# Outcome of the deadline decision -> status persisted on every participation of the tour
PERSISTED_STATUS: dict[TourStatus, ParticipationStatus] = {
    TourStatus.BOUCLEE: ParticipationStatus.BOUCLEE,
    TourStatus.CONFIRMED: ParticipationStatus.CONFIRMED,
    TourStatus.CANCELLED: ParticipationStatus.CANCELLED,
}


class SelectionRejected(Exception):
    """A sector cannot be added to a selection."""

    def __init__(self, code: str, message: str, status_code: int = 409):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


class SubmissionRejected(Exception):
    """A participation cannot be submitted."""

    def __init__(self, code: str, message: str, status_code: int = 409):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def deadline_for(start: date) -> date:
    return start - timedelta(days=config.DEADLINE_DAYS)


def is_past(start: date, today: date) -> bool:
    return today > start


def is_deadline_passed(start: date, today: date) -> bool:
    return today > deadline_for(start)


def is_in_validation_window(start: date, today: date) -> bool:
    """Deadline passed but the tour has not started yet."""
    return is_deadline_passed(start, today) and not is_past(start, today)


def deadline_outcome(sector_counts: Mapping[str, int]) -> TourStatus:
    """Decision taken once the deadline has passed, from per-sector distinct participation counts."""
    counts = list(sector_counts.values())
    if any(c >= config.SECTOR_CAP for c in counts):
        return TourStatus.BOUCLEE
    if any(c >= config.SECTOR_VALIDATION_THRESHOLD for c in counts):
        return TourStatus.CONFIRMED
    return TourStatus.CANCELLED


def tour_status(
    start: date,
    today: date,
    sector_counts: Mapping[str, int],
    participation_count: int,
) -> TourStatus:
    if is_past(start, today):
        return TourStatus.EXPIRED
    if is_deadline_passed(start, today):
        return deadline_outcome(sector_counts)
    if participation_count >= config.TOUR_CAPACITY:
        return TourStatus.BOUCLEE
    return TourStatus.AVAILABLE


def sector_status(count: int, start: date, today: date) -> SectorStatus:
    if count >= config.SECTOR_CAP:
        return SectorStatus.FULL
    past = is_past(start, today)
    if count >= config.SECTOR_VALIDATION_THRESHOLD and (past or is_deadline_passed(start, today)):
        return SectorStatus.VALIDATED
    if past:
        return SectorStatus.CANCELLED
    return SectorStatus.OPEN


def sector_batch_label(count: int) -> str:
    """Per-sector outcome reported by the nightly validation."""
    if count >= config.SECTOR_CAP:
        return "bouclee"
    if count >= config.SECTOR_VALIDATION_THRESHOLD:
        return "confirmed"
    return "insufficient"


def is_selectable(count: int, start: date, today: date) -> bool:
    return not is_deadline_passed(start, today) and count < config.SECTOR_CAP


def check_selection(start: date, today: date, sector_count: int, sector_name: Optional[str] = None) -> None:
    """Raises SelectionRejected when the sector cannot be picked for this tour."""
    if is_deadline_passed(start, today):
        raise SelectionRejected(
            "deadline_passed",
            "La date limite d'inscription à cette tournée est dépassée.",
        )
    if sector_count >= config.SECTOR_CAP:
        label = f"Le secteur {sector_name}" if sector_name else "Ce secteur"
        raise SelectionRejected(
            "sector_full",
            f"{label} est complet ({sector_count}/{config.SECTOR_CAP}).",
        )


def check_submission(
    start: date,
    today: date,
    total_housing_units: int,
    sectors: Iterable[Tuple[str, int]],
) -> None:
    """
    Raises SubmissionRejected unless the deadline is still open, no selected
    sector is full and the selection reaches MIN_HOUSING_UNITS.

    `sectors` is (sector name, current distinct participation count) per selected sector.
    """
    sectors = list(sectors)
    if not sectors:
        raise SubmissionRejected("empty_selection", "Aucun secteur sélectionné.", status_code=400)
    if is_deadline_passed(start, today):
        raise SubmissionRejected(
            "deadline_passed",
            "La date limite d'inscription à cette tournée est dépassée.",
        )
    full = [name for name, count in sectors if count >= config.SECTOR_CAP]
    if full:
        raise SubmissionRejected(
            "sector_full",
            f"Secteur(s) complet(s) : {', '.join(full)}.",
        )
    if total_housing_units < config.MIN_HOUSING_UNITS:
        missing = config.MIN_HOUSING_UNITS - total_housing_units
        raise SubmissionRejected(
            "below_minimum",
            f"Minimum {config.MIN_HOUSING_UNITS} logements requis (il en manque {missing}).",
            status_code=400,
        )
