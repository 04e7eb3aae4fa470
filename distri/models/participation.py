# Participation model: one user's booking of one tour, plus its IRIS sector selections

from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from distri.models.base import Base


class ParticipationStatus(str, PyEnum):
    """Persisted status. Only the nightly validation moves it away from PENDING."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    BOUCLEE = "bouclee"


# Stored as String(20); compared through ParticipationStatus in the app.
STATUS_DEFAULT = ParticipationStatus.PENDING.value

# Columns every deployed schema has. The flyer_* / has_flyer / needs_flyer_creation /
# tour_link columns came later and may be missing on older databases.
BASE_COLUMNS = (
    "user_id",
    "city_name",
    "tour_start_date",
    "tour_end_date",
    "tour_index",
    "total_housing_units",
    "distribution_cost",
    "status",
)


class Participation(Base):
    """A tour is not a table: it is the group of participations sharing (city_name, tour_start_date)."""

    __tablename__ = "participations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    city_name = Column(String(150), nullable=False, index=True)
    tour_start_date = Column(Date, nullable=False, index=True)
    tour_end_date = Column(Date, nullable=False)
    tour_index = Column(Integer, nullable=False)
    total_housing_units = Column(Integer, nullable=False)
    distribution_cost = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_DEFAULT, server_default=STATUS_DEFAULT)
    tour_link = Column(String(300), nullable=True)
    # Flyer
    has_flyer = Column(Boolean, nullable=False, server_default=text("false"))
    needs_flyer_creation = Column(Boolean, nullable=False, server_default=text("false"))
    flyer_format = Column(String(10), nullable=True)  # A5 / A6, only when the flyer is to be created
    flyer_title = Column(String(200), nullable=True)
    flyer_company = Column(String(200), nullable=True)
    flyer_email = Column(String(255), nullable=True)
    flyer_phone = Column(String(30), nullable=True)
    # Pickup address, only when the customer provides the flyers
    flyer_address_street = Column(String(300), nullable=True)
    flyer_address_postal_code = Column(String(10), nullable=True)
    flyer_address_city = Column(String(150), nullable=True)
    printing_cost = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    selections = relationship(
        "IrisSelection",
        back_populates="participation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class IrisSelection(Base):
    """One row per (participation, IRIS sector). Owned by its participation."""

    __tablename__ = "iris_selections"

    id = Column(Integer, primary_key=True, index=True)
    participation_id = Column(
        Integer,
        ForeignKey("participations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    iris_code = Column(String(20), nullable=False, index=True)
    iris_name = Column(String(200), nullable=False)
    housing_units = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participation = relationship("Participation", back_populates="selections")
