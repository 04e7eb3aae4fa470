# Admin board and on-demand tour validation
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from distri.crud.interfaces import ParticipationStore
from distri.crud.user_crud import get_emails
from distri.database import get_db
from distri.dependencies import get_current_admin, get_store, get_today
from distri.models.user import User
from distri.schemas.admin import AdminTour, ValidationReport
from distri.services.admin_view import build_admin_tours
from distri.services.status_batch import validate_tournees

router = APIRouter(tags=["Admin"])


@router.get("/admin/tours", response_model=List[AdminTour])
def get_admin_tours(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    status: Optional[str] = Query(None),
    q: Optional[str] = Query(None, max_length=100),
    _admin: User = Depends(get_current_admin),
    store: ParticipationStore = Depends(get_store),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> List[AdminTour]:
    participations = store.list_participations()
    ids = [p.id for p in participations]
    return build_admin_tours(
        participations,
        store.list_sector_selections(ids),
        get_emails(db, [p.user_id for p in participations]),
        today,
        month=month,
        year=year,
        status=status,
        q=q,
    )


@router.get("/validate-tournees", response_model=ValidationReport)
def get_validate_tournees(
    store: ParticipationStore = Depends(get_store),
    today: date = Depends(get_today),
) -> ValidationReport:
    """Run the daily validation now (also triggered by cron / the CLI)."""
    return validate_tournees(store, today)
