"""Shared fixtures: in-memory SQLite, fake redis, fake geometry API, API client."""

import os
from datetime import date
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", str(Path(__file__).resolve().parent.parent / "data"))
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from distri.cache import get_redis
from distri.crud.participation_crud import SqlParticipationStore
from distri.database import get_db
from distri.dependencies import get_dataset, get_geocoder, get_today
from distri.integrations.opendatasoft import Commune
from distri.models.base import Base
from distri.models import participation, user  # noqa: F401  table metadata registration
from distri.services.dataset import StaticDataset

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Monday 2 March 2026: tours 0-4 are the Mondays of March, tour 5 is 6 April (deadline 22 March)
TODAY = date(2026, 3, 2)
OPEN_TOUR_INDEX = 5
OPEN_TOUR_START = date(2026, 4, 6)


class FakeRedis:
    """The subset of redis.asyncio used by the app."""

    def __init__(self):
        self.data = {}
        self.ttl = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttl[key] = ttl

    async def delete(self, key):
        self.data.pop(key, None)


def make_feature(code, name, x=4.83, y=45.76, **properties):
    square = [[x, y], [x + 0.01, y], [x + 0.01, y + 0.01], [x, y + 0.01], [x, y]]
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [square]},
        "properties": {"code_iris": code, "nom_iris": name, "code": code, "name": name, **properties},
    }


LYON_FEATURES = [
    make_feature("693870701", "chapelle 7"),
    make_feature("693870702", "Chapelle 8"),
    make_feature("693820101", "Bellecour"),
    make_feature("693830301", "Part-Dieu Ouest"),
    make_feature("693890601", "L’Île Barbe"),
]


class FakeGeocoder:
    def __init__(self, features=None, commune=None, error=None):
        self.features = LYON_FEATURES if features is None else features
        self.commune = commune if commune is not None else Commune(code="69123", name="Lyon")
        self.error = error
        self.feature_calls = 0

    async def find_commune(self, name):
        if self.error:
            raise self.error
        return self.commune

    async def fetch_iris_features(self, commune_code):
        self.feature_calls += 1
        if self.error:
            raise self.error
        return list(self.features)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return SqlParticipationStore(db)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def dataset():
    return StaticDataset.from_dir(DATA_DIR)


@pytest.fixture
def client(engine, fake_redis, geocoder, dataset):
    from distri.main import app

    session_factory = sessionmaker(bind=engine, autoflush=False)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_dataset] = lambda: dataset
    app.dependency_overrides[get_today] = lambda: TODAY
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_participation(db):
    """Insert a participation (and its owner) with one selection per sector code."""
    from datetime import timedelta

    from distri.models.participation import IrisSelection, Participation
    from distri.models.user import User

    counter = {"n": 0}

    def _make(city="Lyon", start=OPEN_TOUR_START, codes=("693820101",), status="pending", company=None, email=None):
        counter["n"] += 1
        owner = User(
            email=email or f"client{counter['n']}@example.fr",
            password_hash="x",
            email_confirmed=True,
        )
        db.add(owner)
        db.flush()
        p = Participation(
            user_id=owner.id,
            city_name=city,
            tour_start_date=start,
            tour_end_date=start + timedelta(days=7),
            tour_index=0,
            total_housing_units=5000,
            distribution_cost=500.0,
            status=status,
            has_flyer=False,
            needs_flyer_creation=False,
            flyer_company=company,
        )
        db.add(p)
        db.flush()
        for code in codes:
            db.add(IrisSelection(participation_id=p.id, iris_code=code, iris_name=f"Secteur {code}", housing_units=1000))
        db.commit()
        return p

    return _make
