# Persistence boundary consumed by the tour views, the submission flow and the nightly batch

from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional, Sequence

from distri.models.participation import IrisSelection, Participation
from distri.schemas.participation import ParticipationCreate, SectorSelectionCreate


class ParticipationStore(ABC):
    """
    Row-level operations only. Each write is atomic on its own; callers never
    rely on two writes landing together.
    """

    @abstractmethod
    def list_participations(
        self,
        city: Optional[str] = None,
        start_date: Optional[date] = None,
        exclude_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> List[Participation]:
        ...

    @abstractmethod
    def create_participation(self, data: ParticipationCreate) -> Participation:
        """Single-row insert; returns the row with its generated id."""

    @abstractmethod
    def create_sector_selections(self, participation_id: int, selections: Sequence[SectorSelectionCreate]) -> None:
        ...

    @abstractmethod
    def count_distinct_participations_per_sector(self, participation_ids: Sequence[int]) -> Dict[str, int]:
        """iris_code -> number of distinct participations that selected it."""

    @abstractmethod
    def list_sector_selections(self, participation_ids: Sequence[int]) -> List[IrisSelection]:
        ...

    @abstractmethod
    def update_status(self, participation_ids: Sequence[int], status: str) -> None:
        ...
