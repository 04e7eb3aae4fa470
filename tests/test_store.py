"""SQL participation store: inserts, distinct sector counts, status updates, degraded schema."""

from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from distri.crud.participation_crud import SqlParticipationStore, is_missing_column_error
from distri.models.participation import Participation
from distri.models.user import User
from distri.schemas.participation import (
    FlyerAddress,
    FlyerProvided,
    FlyerToCreate,
    ParticipationCreate,
    SectorSelectionCreate,
)

from tests.conftest import OPEN_TOUR_START

CONTACT = dict(title="Ouverture", company="Boulangerie Martin", email="contact@martin.fr", phone="0612345678")

LEGACY_PARTICIPATIONS = """
CREATE TABLE participations (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    city_name VARCHAR(150) NOT NULL,
    tour_start_date DATE NOT NULL,
    tour_end_date DATE NOT NULL,
    tour_index INTEGER NOT NULL,
    total_housing_units INTEGER NOT NULL,
    distribution_cost FLOAT NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'pending',
    created_at DATETIME,
    updated_at DATETIME
)
"""


def payload(user_id, flyer, printing_cost=None):
    return ParticipationCreate(
        user_id=user_id,
        city_name="Lyon",
        tour_start_date=OPEN_TOUR_START,
        tour_end_date=OPEN_TOUR_START + timedelta(days=7),
        tour_index=5,
        total_housing_units=5900,
        distribution_cost=590.0,
        flyer=flyer,
        printing_cost=printing_cost,
        tour_link="/cities/Lyon/tours/5",
    )


@pytest.fixture
def owner(db):
    user = User(email="client@example.fr", password_hash="x", email_confirmed=True)
    db.add(user)
    db.commit()
    return user


class TestCreate:
    def test_flyer_to_create(self, store, owner):
        p = store.create_participation(payload(owner.id, FlyerToCreate(format="A6", **CONTACT), printing_cost=222.0))
        assert p.id is not None
        assert p.status == "pending"
        assert p.needs_flyer_creation is True
        assert p.has_flyer is False
        assert p.flyer_format == "A6"
        assert p.flyer_phone == "06 12 34 56 78"
        assert p.printing_cost == 222.0
        assert p.flyer_address_street is None

    def test_flyer_provided(self, store, owner):
        address = FlyerAddress(street="1 rue de la République", postal_code="69002", city="Lyon")
        p = store.create_participation(payload(owner.id, FlyerProvided(address=address, **CONTACT), printing_cost=99.0))
        assert p.has_flyer is True
        assert p.needs_flyer_creation is False
        assert p.flyer_address_postal_code == "69002"
        assert p.flyer_format is None
        assert p.printing_cost is None

    def test_sector_selections(self, store, owner):
        p = store.create_participation(payload(owner.id, FlyerToCreate(format="A5", **CONTACT)))
        store.create_sector_selections(
            p.id,
            [
                SectorSelectionCreate(iris_code="693820101", iris_name="Bellecour", housing_units=3120),
                SectorSelectionCreate(iris_code="693830301", iris_name="Part-Dieu Ouest", housing_units=0),
            ],
        )
        rows = store.list_sector_selections([p.id])
        assert [(r.iris_code, r.housing_units) for r in rows] == [("693820101", 3120), ("693830301", None)]

    def test_no_selection_is_a_noop(self, store):
        store.create_sector_selections(1, [])
        assert store.list_sector_selections([]) == []


class TestQueries:
    def test_distinct_participations_per_sector(self, store, make_participation):
        first = make_participation(codes=("693820101", "693820101", "693830301"))
        second = make_participation(codes=("693820101",))
        counts = store.count_distinct_participations_per_sector([first.id, second.id])
        assert counts == {"693820101": 2, "693830301": 1}
        assert store.count_distinct_participations_per_sector([]) == {}

    def test_list_filters(self, store, make_participation):
        lyon = make_participation()
        make_participation(city="Villeurbanne")
        make_participation(start=date(2026, 3, 16))
        cancelled = make_participation(status="cancelled")

        assert len(store.list_participations()) == 4
        assert len(store.list_participations(city="Lyon")) == 3
        assert [p.id for p in store.list_participations(city="Lyon", start_date=OPEN_TOUR_START)] == [lyon.id, cancelled.id]
        active = store.list_participations(city="Lyon", start_date=OPEN_TOUR_START, exclude_status="cancelled")
        assert [p.id for p in active] == [lyon.id]
        assert [p.id for p in store.list_participations(user_id=lyon.user_id)] == [lyon.id]

    def test_ordered_by_start_date(self, store, make_participation):
        late = make_participation()
        early = make_participation(start=date(2026, 3, 16))
        assert [p.id for p in store.list_participations()] == [early.id, late.id]

    def test_update_status(self, db, store, make_participation):
        a = make_participation()
        b = make_participation()
        untouched = make_participation(city="Villeurbanne")
        store.update_status([a.id, b.id], "confirmed")
        store.update_status([], "cancelled")
        db.expire_all()
        assert [p.status for p in store.list_participations(city="Lyon")] == ["confirmed", "confirmed"]
        assert db.get(Participation, untouched.id).status == "pending"


class TestLegacySchema:
    @pytest.fixture
    def legacy_store(self):
        engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
        User.__table__.create(engine)
        with engine.begin() as conn:
            conn.execute(text(LEGACY_PARTICIPATIONS))
        session = sessionmaker(bind=engine, autoflush=False)()
        yield SqlParticipationStore(session)
        session.close()
        engine.dispose()

    def test_insert_retried_without_flyer_columns(self, legacy_store):
        p = legacy_store.create_participation(payload(1, FlyerToCreate(format="A6", **CONTACT), printing_cost=222.0))
        assert p.id == 1
        assert p.total_housing_units == 5900
        assert p.status == "pending"
        assert p.flyer_company is None

        row = legacy_store.db.execute(text("SELECT city_name, status FROM participations")).one()
        assert tuple(row) == ("Lyon", "pending")

    def test_other_errors_propagate(self):
        engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
        store = SqlParticipationStore(sessionmaker(bind=engine)())
        with pytest.raises(OperationalError):
            store.create_participation(payload(1, FlyerToCreate(format="A6", **CONTACT)))


class TestMissingColumnError:
    def test_postgres_code(self):
        class Orig(Exception):
            pgcode = "42703"

        class Wrapped(Exception):
            orig = Orig("boom")

        assert is_missing_column_error(Wrapped())

    def test_messages(self):
        assert is_missing_column_error(Exception("table participations has no column named tour_link"))
        assert is_missing_column_error(Exception('column "flyer_title" of relation "participations" does not exist'))
        assert not is_missing_column_error(Exception("no such table: participations"))
