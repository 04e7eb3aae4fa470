# Booking flow: sector selection -> draft -> flyer -> participation

from datetime import date, datetime, timezone
from typing import List
from uuid import uuid4

from distri.core.logging import get_logger
from distri.crud.interfaces import ParticipationStore
from distri.models.participation import Participation
from distri.schemas.participation import (
    Draft,
    DraftCreate,
    DraftSector,
    Flyer,
    FlyerToCreate,
    ParticipationCreate,
    SectorChoice,
    SectorSelectionCreate,
)
from distri.services.dataset import City
from distri.services.draft_store import DraftNotFound, DraftStore
from distri.services.iris_service import IrisService
from distri.services.pricing import distribution_cost, printing_cost
from distri.services.tour_board import tour_sector_counts
from distri.services.tour_calendar import get_tour
from distri.services.tour_status import SubmissionRejected, check_selection, check_submission

logger = get_logger(__name__)


class TourNotFound(Exception):
    def __init__(self, city: str, index: int):
        super().__init__(f"{city}#{index}")
        self.message = f"Tournée introuvable : {city} #{index}"
        self.status_code = 404


def _unique_sectors(sectors: List[SectorChoice]) -> List[SectorChoice]:
    seen = set()
    unique = []
    for sector in sectors:
        if sector.code in seen:
            continue
        seen.add(sector.code)
        unique.append(sector)
    return unique


async def create_draft(
    store: ParticipationStore,
    drafts: DraftStore,
    iris: IrisService,
    city: City,
    body: DraftCreate,
    today: date,
) -> Draft:
    """
    Check every sector against the current counts, price the selection and keep
    it as a draft. Raises SelectionRejected / SubmissionRejected / TourNotFound.
    """
    tour = get_tour(city.name, body.tour_index, today)
    if tour is None:
        raise TourNotFound(city.name, body.tour_index)

    # Codes, names and counts come from the server-side lookup, never from the request
    sectors = await iris.resolve_sector_units(city, _unique_sectors(body.sectors))
    _, counts = tour_sector_counts(store, city.name, tour.start_date)
    for sector in sectors:
        check_selection(tour.start_date, today, counts.get(sector.code, 0), sector.name)

    draft_sectors = [DraftSector(code=s.code, name=s.name, housing_units=s.housing_units) for s in sectors]
    total = sum(s.housing_units for s in draft_sectors)
    check_submission(
        tour.start_date,
        today,
        total,
        [(s.name, counts.get(s.code, 0)) for s in sectors],
    )

    draft = Draft(
        id=uuid4().hex,
        city=city.name,
        tour_index=tour.index,
        tour_start_date=tour.start_date,
        tour_end_date=tour.end_date,
        sectors=draft_sectors,
        total_housing_units=total,
        distribution_cost=distribution_cost(total),
        created_at=datetime.now(timezone.utc),
    )
    await drafts.save(draft)
    logger.info(
        "draft_created",
        draft_id=draft.id,
        city=city.name,
        tour_start_date=tour.start_date.isoformat(),
        sectors=len(draft_sectors),
        total_housing_units=total,
    )
    return draft


async def attach_flyer(drafts: DraftStore, draft_id: str, flyer: Flyer) -> Draft:
    draft = await drafts.get(draft_id)
    cost = None
    if isinstance(flyer, FlyerToCreate):
        cost = printing_cost(flyer.format, draft.total_housing_units)
    updated = draft.model_copy(update={"flyer": flyer, "printing_cost": cost})
    return await drafts.save(updated)


def _owned_participation(store: ParticipationStore, draft: Draft, user_id: int) -> Participation:
    for p in store.list_participations(user_id=user_id):
        if p.id == draft.participation_id:
            return p
    raise DraftNotFound(draft.id)


async def submit_draft(
    store: ParticipationStore,
    drafts: DraftStore,
    draft_id: str,
    user_id: int,
    today: date,
) -> Participation:
    """
    Re-check the draft against fresh counts, then persist the participation and
    its sector selections. The draft is removed once both writes succeeded.

    The new participation id is kept on the draft as soon as the row exists, so
    a retry after a failed selection insert completes that participation
    instead of creating a second one.
    """
    draft = await drafts.get(draft_id)
    if draft.flyer is None:
        raise SubmissionRejected("missing_flyer", "Informations du flyer manquantes.", status_code=400)

    if draft.participation_id is not None:
        participation = _owned_participation(store, draft, user_id)
        logger.info("participation_resumed", participation_id=participation.id, draft_id=draft_id)
    else:
        _, counts = tour_sector_counts(store, draft.city, draft.tour_start_date)
        check_submission(
            draft.tour_start_date,
            today,
            draft.total_housing_units,
            [(s.name, counts.get(s.code, 0)) for s in draft.sectors],
        )
        participation = store.create_participation(
            ParticipationCreate(
                user_id=user_id,
                city_name=draft.city,
                tour_start_date=draft.tour_start_date,
                tour_end_date=draft.tour_end_date,
                tour_index=draft.tour_index,
                total_housing_units=draft.total_housing_units,
                distribution_cost=draft.distribution_cost,
                flyer=draft.flyer,
                printing_cost=draft.printing_cost,
                tour_link=f"/cities/{draft.city}/tours/{draft.tour_index}",
            )
        )
        await drafts.save(draft.model_copy(update={"participation_id": participation.id}))

    store.create_sector_selections(
        participation.id,
        [
            SectorSelectionCreate(iris_code=s.code, iris_name=s.name, housing_units=s.housing_units or None)
            for s in draft.sectors
        ],
    )
    await drafts.delete(draft_id)
    logger.info(
        "participation_submitted",
        participation_id=participation.id,
        user_id=user_id,
        city=draft.city,
        tour_start_date=draft.tour_start_date.isoformat(),
        total_housing_units=draft.total_housing_units,
    )
    return participation
