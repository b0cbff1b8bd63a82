import abc
import itertools
import logging
import threading
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from resistance.adapters import orm
from resistance.domain import model
from resistance.domain.filters import ResolvedFilter

logger = logging.getLogger(__name__)

OBSERVATION_FIELDS = [f.name for f in fields(model.Observation)]


class DataUnavailable(Exception):
    """Raised when the observation store or a catalog cannot be read."""
    pass


def _observation_order(observation: model.Observation):
    # Newest samples first, then insertion order
    return (-observation.sample_date.toordinal(), observation.id or 0)


class AbstractObservationRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.ObservationBatch]

    def add(self, observation: model.Observation) -> model.Observation:
        return self._add_all([observation])[0]

    def add_all(self, observations: Iterable[model.Observation]) -> List[model.Observation]:
        return self._add_all(list(observations))

    def add_batch(self, batch: model.ObservationBatch) -> List[model.Observation]:
        stored = self._add_all(list(batch.observations))
        batch.record(stored)
        self.seen.add(batch)
        return stored

    def query(self, resolved_filter: Optional[ResolvedFilter] = None) -> List[model.Observation]:
        return self._query(resolved_filter or ResolvedFilter())

    @abc.abstractmethod
    def _add_all(self, observations: List[model.Observation]) -> List[model.Observation]:
        raise NotImplementedError

    @abc.abstractmethod
    def _query(self, resolved_filter: ResolvedFilter) -> List[model.Observation]:
        raise NotImplementedError


class AbstractCatalogRepository(abc.ABC):
    """Reference rows (bacteria, antibiotics, regions, ...) keyed by integer id."""

    def add(self, entity):
        self._add(entity)
        return entity

    def get(self, entity_id):
        return self._get(entity_id)

    def list(self, **criteria) -> List:
        return self._list(**criteria)

    @abc.abstractmethod
    def _add(self, entity):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, entity_id):
        raise NotImplementedError

    @abc.abstractmethod
    def _list(self, **criteria) -> List:
        raise NotImplementedError


class SqlAlchemyObservationRepository(AbstractObservationRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add_all(self, observations):
        table = orm.resistance_data
        stored = []
        for observation in observations:
            uploaded_at = observation.uploaded_at or datetime.now(timezone.utc)
            values = {
                name: getattr(observation, name)
                for name in OBSERVATION_FIELDS
                if name != "id"
            }
            values["uploaded_at"] = uploaded_at
            try:
                result = self.session.execute(insert(table).values(**values))
            except IntegrityError as e:
                raise model.InvalidObservation(
                    f"Observation references an unknown catalog entry: {e.orig}"
                ) from e
            except SQLAlchemyError as e:
                logger.error(f"Failed to store resistance data: {e}")
                raise DataUnavailable("Resistance data store is currently unavailable") from e
            stored.append(
                replace(observation, id=result.inserted_primary_key[0], uploaded_at=uploaded_at)
            )
        return stored

    def _query(self, resolved_filter):
        table = orm.resistance_data
        stmt = select(table)

        if resolved_filter.bacteria_id is not None:
            stmt = stmt.where(table.c.bacteria_id == resolved_filter.bacteria_id)
        if resolved_filter.antibiotic_id is not None:
            stmt = stmt.where(table.c.antibiotic_id == resolved_filter.antibiotic_id)
        if resolved_filter.region_id is not None:
            stmt = stmt.where(table.c.region_id == resolved_filter.region_id)
        if resolved_filter.date_range is not None:
            stmt = stmt.where(
                table.c.sample_date.between(
                    resolved_filter.date_range.start, resolved_filter.date_range.end
                )
            )

        stmt = stmt.order_by(table.c.sample_date.desc(), table.c.id)

        try:
            rows = self.session.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query resistance data: {e}")
            raise DataUnavailable("Resistance data is currently unavailable") from e

        return [model.Observation(**{name: row[name] for name in OBSERVATION_FIELDS}) for row in rows]


class SqlAlchemyCatalogRepository(AbstractCatalogRepository):
    def __init__(self, session, entity_class, order_by: str = "id", descending: bool = False):
        self.session = session
        self.entity_class = entity_class
        self.order_by = order_by
        self.descending = descending

    def _add(self, entity):
        self.session.add(entity)
        # Populate the generated id
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store {self.entity_class.__name__}: {e}")
            raise DataUnavailable(f"{self.entity_class.__name__} catalog is currently unavailable") from e

    def _get(self, entity_id):
        try:
            return self.session.get(self.entity_class, entity_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {self.entity_class.__name__} {entity_id}: {e}")
            raise DataUnavailable(f"{self.entity_class.__name__} catalog is currently unavailable") from e

    def _list(self, **criteria):
        column = getattr(self.entity_class, self.order_by)
        try:
            return self.session.query(self.entity_class)\
                .filter_by(**criteria)\
                .order_by(column.desc() if self.descending else column)\
                .all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list {self.entity_class.__name__}: {e}")
            raise DataUnavailable(f"{self.entity_class.__name__} catalog is currently unavailable") from e


class InMemoryStore:
    """
    Process-local tables for the in-memory backend.

    Units of work stage their writes and apply them here on commit.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[int, Any]] = {}
        self._ids: Dict[str, itertools.count] = {}
        self._lock = threading.Lock()

    def next_id(self, table: str) -> int:
        with self._lock:
            counter = self._ids.setdefault(table, itertools.count(1))
            return next(counter)

    def rows(self, table: str) -> List:
        return list(self._tables.get(table, {}).values())

    def get(self, table: str, row_id: int):
        return self._tables.get(table, {}).get(row_id)

    def apply(self, changes: Dict[str, List]) -> None:
        with self._lock:
            for table, rows in changes.items():
                target = self._tables.setdefault(table, {})
                for row in rows:
                    target[row.id] = row


class InMemoryObservationRepository(AbstractObservationRepository):
    table = "resistance_data"

    def __init__(self, store: InMemoryStore, pending: List):
        super().__init__()
        self.store = store
        self.pending = pending

    def _add_all(self, observations):
        stored = [
            replace(
                observation,
                id=self.store.next_id(self.table),
                uploaded_at=observation.uploaded_at or datetime.now(timezone.utc),
            )
            for observation in observations
        ]
        self.pending.extend(stored)
        return stored

    def _query(self, resolved_filter):
        matching = [o for o in self.store.rows(self.table) if resolved_filter.matches(o)]
        return sorted(matching, key=_observation_order)


class InMemoryCatalogRepository(AbstractCatalogRepository):
    def __init__(self, store: InMemoryStore, table: str, pending: List,
                 order_by: str = "id", descending: bool = False):
        self.store = store
        self.table = table
        self.pending = pending
        self.order_by = order_by
        self.descending = descending

    def _add(self, entity):
        if entity.id is None:
            entity.id = self.store.next_id(self.table)
        self.pending.append(entity)

    def _get(self, entity_id):
        entity = self.store.get(self.table, entity_id)
        if entity is None:
            entity = next((e for e in self.pending if e.id == entity_id), None)
        return entity

    def _list(self, **criteria):
        staged = {e.id: e for e in self.pending}
        committed = [e for e in self.store.rows(self.table) if e.id not in staged]
        entities = [
            e for e in committed + list(staged.values())
            if all(getattr(e, name) == value for name, value in criteria.items())
        ]
        return sorted(entities, key=lambda e: getattr(e, self.order_by), reverse=self.descending)
