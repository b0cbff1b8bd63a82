"""
Integration tests for the observation and catalog repositories.

Every test runs against both stores (in-memory and SQLAlchemy over SQLite) so
that filtering, ordering and rollback behave the same whichever is configured.
"""
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.schema import CreateTable

from resistance.adapters import orm
from resistance.adapters.repository import (
    DataUnavailable, SqlAlchemyCatalogRepository, SqlAlchemyObservationRepository,
)
from resistance.domain import model
from resistance.domain.filters import DateRange, ResolvedFilter


@pytest.fixture(params=["memory", "sqlite"])
def uow(request):
    return request.getfixturevalue(f"seeded_{request.param}_uow")


def make_observation(sample_date, bacteria_id=1, antibiotic_id=1, region_id=1, facility_id=None,
                     total=100, resistant=10):
    return model.Observation(
        bacteria_id=bacteria_id,
        antibiotic_id=antibiotic_id,
        region_id=region_id,
        facility_id=facility_id,
        sample_date=sample_date,
        total_samples=total,
        resistant_samples=resistant,
    )


def store(uow, *observations):
    with uow:
        stored = uow.observations.add_all(observations)
        uow.commit()
    return stored


def test_add_assigns_ids_and_upload_time(uow):
    [stored] = store(uow, make_observation(date(2024, 1, 15), facility_id=1))

    assert stored.id is not None
    assert stored.uploaded_at is not None

    with uow:
        [fetched] = uow.observations.query()
    assert fetched.id == stored.id
    assert fetched.sample_date == date(2024, 1, 15)
    assert fetched.total_samples == 100
    assert fetched.resistant_samples == 10
    assert fetched.facility_id == 1


def test_uncommitted_observations_are_rolled_back(uow):
    with uow:
        uow.observations.add(make_observation(date(2024, 1, 15)))
        # no commit

    with uow:
        assert uow.observations.query() == []


def test_query_filters_on_ids(uow):
    store(
        uow,
        make_observation(date(2024, 1, 1), bacteria_id=1, antibiotic_id=1, region_id=1),
        make_observation(date(2024, 1, 2), bacteria_id=2, antibiotic_id=1, region_id=1),
        make_observation(date(2024, 1, 3), bacteria_id=1, antibiotic_id=2, region_id=2),
    )

    with uow:
        by_bacteria = uow.observations.query(ResolvedFilter(bacteria_id=1))
        by_region = uow.observations.query(ResolvedFilter(region_id=2))
        combined = uow.observations.query(ResolvedFilter(bacteria_id=1, antibiotic_id=1))

    assert {o.sample_date.day for o in by_bacteria} == {1, 3}
    assert [o.sample_date.day for o in by_region] == [3]
    assert [o.sample_date.day for o in combined] == [1]


def test_query_date_bounds_are_inclusive(uow):
    store(
        uow,
        make_observation(date(2024, 3, 14)),
        make_observation(date(2024, 3, 15)),
        make_observation(date(2024, 6, 15)),
        make_observation(date(2024, 6, 16)),
    )

    with uow:
        matched = uow.observations.query(
            ResolvedFilter(date_range=DateRange(date(2024, 3, 15), date(2024, 6, 15)))
        )

    assert [o.sample_date for o in matched] == [date(2024, 6, 15), date(2024, 3, 15)]


def test_query_orders_newest_first_then_by_id(uow):
    first, second, third = store(
        uow,
        make_observation(date(2024, 1, 1)),
        make_observation(date(2024, 2, 1)),
        make_observation(date(2024, 2, 1)),
    )

    with uow:
        ids = [o.id for o in uow.observations.query()]

    assert ids == [second.id, third.id, first.id]


def test_catalog_add_get_and_list(uow):
    with uow:
        names = [b.name for b in uow.bacteria.list()]
        e_coli = uow.bacteria.get(1)
        assert e_coli.scientific_name == "Escherichia coli"
        assert uow.bacteria.get(999) is None
        antibiotic = uow.antibiotics.get(2)
        assert antibiotic.drug_class == "Fluoroquinolone"

    assert names == ["E. coli", "S. aureus"]


def test_facilities_filter_by_region(uow):
    with uow:
        facilities = uow.facilities.list(region_id=2)
        assert [f.name for f in facilities] == ["Regional Health Center"]


def test_alerts_newest_first_and_filter_active(uow):
    with uow:
        uow.alerts.add(model.Alert(
            "Old", "older alert", model.AlertSeverity.INFO.value,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ))
        uow.alerts.add(model.Alert(
            "New", "newer alert", model.AlertSeverity.CRITICAL.value,
            created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        ))
        uow.alerts.add(model.Alert(
            "Closed", "resolved alert", model.AlertSeverity.WARNING.value, is_active=False,
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        ))
        uow.commit()

    with uow:
        assert [a.title for a in uow.alerts.list()] == ["New", "Closed", "Old"]
        assert [a.title for a in uow.alerts.list(is_active=True)] == ["New", "Old"]


def test_sqlalchemy_query_failure_is_data_unavailable(sqlite_session_factory):
    session = sqlite_session_factory()
    orm.resistance_data.drop(session.get_bind())

    repo = SqlAlchemyObservationRepository(session)
    with pytest.raises(DataUnavailable) as exc_info:
        repo.query()

    assert isinstance(exc_info.value.__cause__, OperationalError)
    session.close()


def test_sqlalchemy_catalog_insert_failure_is_data_unavailable(sqlite_session_factory):
    session = sqlite_session_factory()
    orm.regions.drop(session.get_bind())

    repo = SqlAlchemyCatalogRepository(session, model.Region)
    with pytest.raises(DataUnavailable) as exc_info:
        repo.add(model.Region("Asia", "AS"))

    assert isinstance(exc_info.value.__cause__, OperationalError)
    session.rollback()
    session.close()


def test_sqlalchemy_commit_failure_is_data_unavailable(seeded_sqlite_uow, monkeypatch):
    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("could not serialize access"))

    with seeded_sqlite_uow:
        monkeypatch.setattr(seeded_sqlite_uow.session, "commit", failing_commit)
        seeded_sqlite_uow.observations.add(make_observation(date(2024, 1, 15)))
        with pytest.raises(DataUnavailable):
            seeded_sqlite_uow.commit()

    with seeded_sqlite_uow:
        assert seeded_sqlite_uow.observations.query() == []


def test_catalog_list_sees_rows_added_in_the_same_unit_of_work(uow):
    with uow:
        added = uow.bacteria.add(model.Bacteria("K. pneumoniae", "Klebsiella pneumoniae"))

        assert [b.name for b in uow.bacteria.list()] == ["E. coli", "S. aureus", "K. pneumoniae"]
        assert uow.bacteria.get(added.id).name == "K. pneumoniae"

    with uow:
        assert len(uow.bacteria.list()) == 2


@pytest.mark.parametrize("table, column", [
    (orm.resistance_data, "uploaded_at"),
    (orm.alerts, "created_at"),
    (orm.resources, "published_at"),
])
def test_timestamps_are_stored_with_time_zone(table, column):
    ddl = str(CreateTable(table).compile(dialect=postgresql.dialect()))

    assert f"{column} TIMESTAMP WITH TIME ZONE" in ddl
