# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
import logging
from typing import Callable, Dict, List

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from resistance.adapters import orm, repository
from resistance.domain import model

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(abc.ABC):
    observations: repository.AbstractObservationRepository
    bacteria: repository.AbstractCatalogRepository
    antibiotics: repository.AbstractCatalogRepository
    regions: repository.AbstractCatalogRepository
    facilities: repository.AbstractCatalogRepository
    alerts: repository.AbstractCatalogRepository
    resources: repository.AbstractCatalogRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self):
        # A handler may return before entering the unit of work
        observations = getattr(self, "observations", None)
        if observations is None:
            return
        for batch in observations.seen:
            while batch.events:
                yield batch.events.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.observations = repository.SqlAlchemyObservationRepository(self.session)
        self.bacteria = repository.SqlAlchemyCatalogRepository(self.session, model.Bacteria)
        self.antibiotics = repository.SqlAlchemyCatalogRepository(self.session, model.Antibiotic)
        self.regions = repository.SqlAlchemyCatalogRepository(self.session, model.Region)
        self.facilities = repository.SqlAlchemyCatalogRepository(self.session, model.Facility)
        self.alerts = repository.SqlAlchemyCatalogRepository(
            self.session, model.Alert, order_by="created_at", descending=True
        )
        self.resources = repository.SqlAlchemyCatalogRepository(
            self.session, model.Resource, order_by="published_at", descending=True
        )
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to commit unit of work: {e}")
            raise repository.DataUnavailable("Resistance data store is currently unavailable") from e

    def rollback(self):
        self.session.rollback()


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Unit of work over an InMemoryStore; writes become visible on commit."""

    def __init__(self, store: repository.InMemoryStore = None):
        self.store = store or repository.InMemoryStore()
        self.committed = False

    def __enter__(self):
        self._pending: Dict[str, List] = {}
        self.observations = repository.InMemoryObservationRepository(
            self.store, self._staged("resistance_data")
        )
        self.bacteria = self._catalog("bacteria")
        self.antibiotics = self._catalog("antibiotics")
        self.regions = self._catalog("regions")
        self.facilities = self._catalog("facilities")
        self.alerts = self._catalog("alerts", order_by="created_at", descending=True)
        self.resources = self._catalog("resources", order_by="published_at", descending=True)
        return super().__enter__()

    def _staged(self, table: str) -> List:
        return self._pending.setdefault(table, [])

    def _catalog(self, table: str, **ordering) -> repository.InMemoryCatalogRepository:
        return repository.InMemoryCatalogRepository(self.store, table, self._staged(table), **ordering)

    def _commit(self):
        self.store.apply(self._pending)
        for rows in self._pending.values():
            rows.clear()
        self.committed = True

    def rollback(self):
        for rows in self._pending.values():
            rows.clear()


def unit_of_work_factory(app_config: config.AppConfig) -> Callable[[], AbstractUnitOfWork]:
    """
    Build the unit-of-work factory for the configured storage backend.

    Called once at startup; the returned callable is injected into the API.
    """
    if app_config.storage_backend == "postgres":
        engine_options = {}
        if app_config.postgres_uri.startswith("postgresql"):
            engine_options["isolation_level"] = "REPEATABLE READ"
        engine = create_engine(app_config.postgres_uri, **engine_options)
        orm.metadata.create_all(engine)
        orm.start_mappers()
        session_factory = sessionmaker(bind=engine)
        logger.info("Using PostgreSQL observation store")
        return lambda: SqlAlchemyUnitOfWork(session_factory)

    store = repository.InMemoryStore()
    if app_config.seed_demo_data:
        from resistance.adapters import seed
        seed.seed_demo_data(store)
    logger.info("Using in-memory observation store")
    return lambda: InMemoryUnitOfWork(store)
