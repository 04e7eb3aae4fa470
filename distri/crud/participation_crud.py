# SQLAlchemy implementation of the participation store

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import distinct, func, insert
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from distri.core.logging import get_logger
from distri.crud.interfaces import ParticipationStore
from distri.models.participation import (
    BASE_COLUMNS,
    STATUS_DEFAULT,
    IrisSelection,
    Participation,
)
from distri.schemas.participation import (
    FlyerProvided,
    FlyerToCreate,
    ParticipationCreate,
    SectorSelectionCreate,
)

logger = get_logger(__name__)

# Fragments of driver messages meaning "this column is not in the deployed schema"
MISSING_COLUMN_MARKERS = ("no column", "column", "does not exist", "schema cache")
UNDEFINED_COLUMN_PGCODE = "42703"


class ParticipationStoreError(Exception):
    """A participation write failed even after the degraded retry."""

    def __init__(self, message: str, status_code: int = 503):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def is_missing_column_error(exc: Exception) -> bool:
    orig = getattr(exc, "orig", exc)
    if getattr(orig, "pgcode", None) == UNDEFINED_COLUMN_PGCODE:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in MISSING_COLUMN_MARKERS)


def participation_values(data: ParticipationCreate) -> Dict[str, Any]:
    """Row values for every column; flyer columns depend on the flyer variant."""
    flyer = data.flyer
    values: Dict[str, Any] = {
        "user_id": data.user_id,
        "city_name": data.city_name,
        "tour_start_date": data.tour_start_date,
        "tour_end_date": data.tour_end_date,
        "tour_index": data.tour_index,
        "total_housing_units": data.total_housing_units,
        "distribution_cost": data.distribution_cost,
        "status": STATUS_DEFAULT,
        "tour_link": data.tour_link,
        "has_flyer": isinstance(flyer, FlyerProvided),
        "needs_flyer_creation": isinstance(flyer, FlyerToCreate),
        "flyer_title": flyer.title,
        "flyer_company": flyer.company,
        "flyer_email": flyer.email,
        "flyer_phone": flyer.phone,
        "flyer_format": None,
        "flyer_address_street": None,
        "flyer_address_postal_code": None,
        "flyer_address_city": None,
        "printing_cost": None,
    }
    if isinstance(flyer, FlyerProvided):
        values["flyer_address_street"] = flyer.address.street
        values["flyer_address_postal_code"] = flyer.address.postal_code
        values["flyer_address_city"] = flyer.address.city
    else:
        values["flyer_format"] = flyer.format
        values["printing_cost"] = data.printing_cost
    return values


class SqlParticipationStore(ParticipationStore):
    """Commits after every write; a failed write is rolled back before re-raising."""

    def __init__(self, db: Session):
        self.db = db

    def list_participations(
        self,
        city: Optional[str] = None,
        start_date: Optional[date] = None,
        exclude_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> List[Participation]:
        q = self.db.query(Participation)
        if city is not None:
            q = q.filter(Participation.city_name == city)
        if start_date is not None:
            q = q.filter(Participation.tour_start_date == start_date)
        if exclude_status is not None:
            q = q.filter(Participation.status != exclude_status)
        if user_id is not None:
            q = q.filter(Participation.user_id == user_id)
        return q.order_by(Participation.tour_start_date.asc(), Participation.id.asc()).all()

    def _insert(self, values: Dict[str, Any]) -> int:
        result = self.db.execute(insert(Participation.__table__).values(**values))
        self.db.commit()
        return result.inserted_primary_key[0]

    def create_participation(self, data: ParticipationCreate) -> Participation:
        """
        Insert with every column. When the deployed table lacks the optional
        flyer columns, retry with BASE_COLUMNS only.
        """
        values = participation_values(data)
        try:
            new_id = self._insert(values)
        except (ProgrammingError, OperationalError) as exc:
            self.db.rollback()
            if not is_missing_column_error(exc):
                raise
            logger.warning(
                "participation_insert_degraded",
                user_id=data.user_id,
                city=data.city_name,
                error=str(getattr(exc, "orig", exc)),
            )
            base_values = {k: values[k] for k in BASE_COLUMNS}
            try:
                new_id = self._insert(base_values)
            except (ProgrammingError, OperationalError) as retry_exc:
                self.db.rollback()
                raise ParticipationStoreError("Enregistrement de la participation impossible") from retry_exc
            # The optional columns cannot be selected back on this schema
            return Participation(id=new_id, **base_values)

        participation = self.db.get(Participation, new_id)
        logger.info(
            "participation_created",
            participation_id=new_id,
            user_id=data.user_id,
            city=data.city_name,
            tour_start_date=data.tour_start_date.isoformat(),
        )
        return participation

    def create_sector_selections(self, participation_id: int, selections: Sequence[SectorSelectionCreate]) -> None:
        rows = [
            IrisSelection(
                participation_id=participation_id,
                iris_code=s.iris_code,
                iris_name=s.iris_name,
                housing_units=s.housing_units or None,
            )
            for s in selections
        ]
        if not rows:
            return
        try:
            self.db.add_all(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def count_distinct_participations_per_sector(self, participation_ids: Sequence[int]) -> Dict[str, int]:
        ids = list(participation_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(IrisSelection.iris_code, func.count(distinct(IrisSelection.participation_id)))
            .filter(IrisSelection.participation_id.in_(ids))
            .group_by(IrisSelection.iris_code)
            .all()
        )
        return {code: int(count) for code, count in rows}

    def list_sector_selections(self, participation_ids: Sequence[int]) -> List[IrisSelection]:
        ids = list(participation_ids)
        if not ids:
            return []
        return (
            self.db.query(IrisSelection)
            .filter(IrisSelection.participation_id.in_(ids))
            .order_by(IrisSelection.participation_id.asc(), IrisSelection.id.asc())
            .all()
        )

    def update_status(self, participation_ids: Sequence[int], status: str) -> None:
        ids = list(participation_ids)
        if not ids:
            return
        try:
            (
                self.db.query(Participation)
                .filter(Participation.id.in_(ids))
                .update({Participation.status: status}, synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
