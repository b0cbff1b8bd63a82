# pylint: disable=redefined-outer-name
import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, clear_mappers
from sqlalchemy.pool import StaticPool

from resistance.adapters import orm
from resistance.adapters.repository import InMemoryStore
from resistance.domain import model
from resistance.service_layer.unit_of_work import InMemoryUnitOfWork, SqlAlchemyUnitOfWork

pytest.register_assert_rewrite("tests.e2e.api_client")


@pytest.fixture
def in_memory_store():
    return InMemoryStore()


@pytest.fixture
def in_memory_uow(in_memory_store):
    return InMemoryUnitOfWork(in_memory_store)


@pytest.fixture
def sqlite_session_factory():
    """Create SQLite in-memory database for fast testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    orm.metadata.create_all(engine)
    orm.start_mappers()

    yield sessionmaker(bind=engine)

    clear_mappers()
    engine.dispose()


@pytest.fixture
def sqlite_uow(sqlite_session_factory):
    return SqlAlchemyUnitOfWork(sqlite_session_factory)


@pytest.fixture
def fake_redis(monkeypatch):
    """Replace the module-level Redis client with fakeredis."""
    from resistance.adapters import redis_adapter

    client = fakeredis.FakeRedis()
    monkeypatch.setattr(redis_adapter, "r", client)
    return client


def add_catalogs(uow):
    """
    Add a small reference catalog through a unit of work.

    Ids come out as 1, 2, ... in insertion order for both stores.
    """
    with uow:
        uow.bacteria.add(model.Bacteria("E. coli", "Escherichia coli"))
        uow.bacteria.add(model.Bacteria("S. aureus", "Staphylococcus aureus"))
        uow.antibiotics.add(model.Antibiotic("Amoxicillin", "Penicillin"))
        uow.antibiotics.add(model.Antibiotic("Ciprofloxacin", "Fluoroquinolone"))
        uow.regions.add(model.Region("North America", "NA"))
        uow.regions.add(model.Region("Europe", "EU"))
        uow.facilities.add(model.Facility("Central Hospital", "Hospital", region_id=1))
        uow.facilities.add(model.Facility("Regional Health Center", "Clinic", region_id=2))
        uow.commit()


@pytest.fixture
def seeded_memory_uow(in_memory_uow):
    add_catalogs(in_memory_uow)
    return in_memory_uow


@pytest.fixture
def seeded_sqlite_uow(sqlite_uow):
    add_catalogs(sqlite_uow)
    return sqlite_uow


@pytest.fixture
def api_store():
    return InMemoryStore()


@pytest.fixture
def client(api_store, fake_redis):
    """TestClient over an app serving an in-memory store with the test catalogs."""
    from resistance.entrypoints.resistance_api import create_app

    add_catalogs(InMemoryUnitOfWork(api_store))
    app = create_app(uow_factory=lambda: InMemoryUnitOfWork(api_store))
    return TestClient(app)
