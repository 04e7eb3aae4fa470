# User model: customer account (email + password, confirmed by email token)

from sqlalchemy import Boolean, Column, DateTime, Integer, String, text
from sqlalchemy.sql import func

from distri.models.base import Base


class User(Base):
    """Account table. Login is refused until email_confirmed is set."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    email_confirmed = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    confirmation_token = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
