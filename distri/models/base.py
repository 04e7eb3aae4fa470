from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Constraint and index names, matching the alembic revisions
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """
    Declarative base of the users / participations / iris_selections tables.
    Models use the Column style:

    class User(Base):
        __tablename__ = "users"
        id = Column(Integer, primary_key=True, index=True)
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
