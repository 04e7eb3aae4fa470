# Booking flow API: draft selection, flyer details, submission
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status

from distri.crud.interfaces import ParticipationStore
from distri.crud.participation_crud import ParticipationStoreError
from distri.dependencies import (
    get_current_user,
    get_dataset,
    get_draft_store,
    get_iris_service,
    get_store,
    get_today,
)
from distri.models.user import User
from distri.schemas.participation import Draft, DraftCreate, DraftFlyerUpdate, ParticipationOut
from distri.services.dataset import StaticDataset
from distri.services.draft_store import DraftNotFound, DraftStore
from distri.services.iris_service import IrisService
from distri.services.submission import TourNotFound, attach_flyer, create_draft, submit_draft
from distri.services.tour_status import SelectionRejected, SubmissionRejected

router = APIRouter(prefix="/drafts", tags=["Drafts"])


def _rejected(e: Exception) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail={"code": e.code, "message": e.message})


@router.post("", response_model=Draft, status_code=status.HTTP_201_CREATED)
async def post_draft(
    body: DraftCreate,
    store: ParticipationStore = Depends(get_store),
    drafts: DraftStore = Depends(get_draft_store),
    iris: IrisService = Depends(get_iris_service),
    dataset: StaticDataset = Depends(get_dataset),
    today: date = Depends(get_today),
) -> Draft:
    """Validate the selected sectors for a tour and keep the priced selection as a draft."""
    city = dataset.find_city(body.city)
    if city is None:
        raise HTTPException(status_code=404, detail=f"Ville inconnue : {body.city}")
    try:
        return await create_draft(store, drafts, iris, city, body, today)
    except (SelectionRejected, SubmissionRejected) as e:
        raise _rejected(e)
    except TourNotFound as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{draft_id}", response_model=Draft)
async def get_draft(draft_id: str, drafts: DraftStore = Depends(get_draft_store)) -> Draft:
    try:
        return await drafts.get(draft_id)
    except DraftNotFound as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{draft_id}/flyer", response_model=Draft)
async def put_draft_flyer(
    draft_id: str,
    body: DraftFlyerUpdate,
    drafts: DraftStore = Depends(get_draft_store),
) -> Draft:
    """Attach flyer details; a flyer to create is priced from the draft's housing units."""
    try:
        return await attach_flyer(drafts, draft_id, body.flyer)
    except DraftNotFound as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{draft_id}/submit", response_model=ParticipationOut, status_code=status.HTTP_201_CREATED)
async def post_draft_submit(
    draft_id: str,
    store: ParticipationStore = Depends(get_store),
    drafts: DraftStore = Depends(get_draft_store),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
) -> ParticipationOut:
    """Persist the participation of the logged-in user. Counts are re-checked first."""
    try:
        participation = await submit_draft(store, drafts, draft_id, current_user.id, today)
    except DraftNotFound as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except SubmissionRejected as e:
        raise _rejected(e)
    except ParticipationStoreError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ParticipationOut.model_validate(participation)


@router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_draft(draft_id: str, drafts: DraftStore = Depends(get_draft_store)) -> None:
    await drafts.delete(draft_id)
