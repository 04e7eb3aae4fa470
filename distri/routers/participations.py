# Customer dashboard: own participations with their current derived status
from collections import defaultdict
from datetime import date
from typing import List

from fastapi import APIRouter, Depends

from distri.crud.interfaces import ParticipationStore
from distri.dependencies import get_current_user, get_store, get_today
from distri.models.participation import ParticipationStatus
from distri.models.user import User
from distri.schemas.participation import MyParticipationOut, ParticipationOut, SelectionOut
from distri.services.tour_board import tour_sector_counts
from distri.services.tour_status import TOUR_STATUS_LABELS, TourStatus, tour_status

router = APIRouter(prefix="/participations", tags=["Participations"])


@router.get("/me", response_model=List[MyParticipationOut])
def get_my_participations(
    current_user: User = Depends(get_current_user),
    store: ParticipationStore = Depends(get_store),
    today: date = Depends(get_today),
) -> List[MyParticipationOut]:
    mine = store.list_participations(user_id=current_user.id)
    selections = defaultdict(list)
    for s in store.list_sector_selections([p.id for p in mine]):
        selections[s.participation_id].append(SelectionOut.model_validate(s))

    result = []
    for p in mine:
        if p.status == ParticipationStatus.CANCELLED.value:
            derived = TourStatus.CANCELLED
        else:
            participations, counts = tour_sector_counts(store, p.city_name, p.tour_start_date)
            derived = tour_status(p.tour_start_date, today, counts, len(participations))
        result.append(
            MyParticipationOut(
                **ParticipationOut.model_validate(p).model_dump(),
                tour_status=derived.value,
                tour_status_label=TOUR_STATUS_LABELS[derived],
                selections=selections[p.id],
            )
        )
    return result
