"""
Unit tests for the write-side handlers following Cosmic Python pattern.

Commands are dispatched through the message bus against an in-memory unit of
work; Redis publishing goes to fakeredis.
"""
import json
import logging
from datetime import date

import pytest

from resistance.adapters import redis_adapter
from resistance.adapters.repository import DataUnavailable, InMemoryObservationRepository
from resistance.domain import commands, events
from resistance.domain.model import Observation
from resistance.service_layer import handlers, messagebus
from resistance.service_layer.unit_of_work import InMemoryUnitOfWork


def make_observation(**overrides):
    values = dict(
        bacteria_id=1,
        antibiotic_id=1,
        region_id=1,
        facility_id=1,
        sample_date=date(2024, 5, 2),
        total_samples=50,
        resistant_samples=5,
    )
    values.update(overrides)
    return Observation(**values)


class FlakyObservationRepository(InMemoryObservationRepository):
    """Stages observations until the configured one, then fails."""

    def __init__(self, store, pending, fail_at):
        super().__init__(store, pending)
        self.fail_at = fail_at

    def _add_all(self, observations):
        stored = []
        for position, observation in enumerate(observations):
            if position == self.fail_at:
                raise DataUnavailable("disk full")
            stored.extend(super()._add_all([observation]))
        return stored


class FlakyUnitOfWork(InMemoryUnitOfWork):
    def __init__(self, store=None, fail_at=1):
        super().__init__(store)
        self.fail_at = fail_at

    def __enter__(self):
        uow = super().__enter__()
        self.observations = FlakyObservationRepository(
            self.store, self._pending["resistance_data"], self.fail_at
        )
        return uow


def test_record_observation_stores_with_id(seeded_memory_uow, fake_redis):
    [stored] = messagebus.handle(
        commands.RecordObservation(observation=make_observation()), seeded_memory_uow
    )

    assert stored.id == 1
    assert stored.uploaded_at is not None
    assert seeded_memory_uow.committed is True

    with seeded_memory_uow:
        assert seeded_memory_uow.observations.query() == [stored]


def test_bulk_record_stores_every_observation(seeded_memory_uow, fake_redis):
    observations = [make_observation(total_samples=n, resistant_samples=0) for n in (10, 20, 30)]

    [stored] = messagebus.handle(
        commands.BulkRecordObservations(observations=observations), seeded_memory_uow
    )

    assert [o.id for o in stored] == [1, 2, 3]
    assert [o.total_samples for o in stored] == [10, 20, 30]
    with seeded_memory_uow:
        assert len(seeded_memory_uow.observations.query()) == 3


def test_bulk_record_of_nothing_is_a_no_op(in_memory_uow, fake_redis):
    [stored] = messagebus.handle(commands.BulkRecordObservations(observations=[]), in_memory_uow)

    assert stored == []
    assert in_memory_uow.committed is False


def test_bulk_record_is_all_or_nothing(in_memory_store, fake_redis):
    uow = FlakyUnitOfWork(in_memory_store, fail_at=2)
    observations = [make_observation() for _ in range(4)]

    with pytest.raises(DataUnavailable):
        messagebus.handle(commands.BulkRecordObservations(observations=observations), uow)

    assert uow.committed is False
    assert in_memory_store.rows("resistance_data") == []


def test_recording_raises_observations_recorded_event(seeded_memory_uow, fake_redis):
    seen = []
    original = messagebus.EVENT_HANDLERS[events.ObservationsRecorded]
    messagebus.EVENT_HANDLERS[events.ObservationsRecorded] = [lambda event, uow: seen.append(event)]
    try:
        messagebus.handle(
            commands.BulkRecordObservations(
                observations=[make_observation(region_id=2), make_observation(bacteria_id=2)],
                source="csv-import",
            ),
            seeded_memory_uow,
        )
    finally:
        messagebus.EVENT_HANDLERS[events.ObservationsRecorded] = original

    [event] = seen
    assert event.observation_ids == [1, 2]
    assert event.bacteria_ids == [1, 2]
    assert event.region_ids == [1, 2]
    assert event.source == "csv-import"


def test_recorded_event_is_published_to_redis(seeded_memory_uow, fake_redis):
    pubsub = fake_redis.pubsub()
    pubsub.subscribe(handlers.RESISTANCE_DATA_CHANNEL)
    pubsub.get_message(timeout=1)  # subscribe confirmation

    messagebus.handle(commands.RecordObservation(observation=make_observation()), seeded_memory_uow)

    message = pubsub.get_message(ignore_subscribe_messages=True, timeout=1)
    assert message is not None
    payload = json.loads(message["data"])
    assert payload["event_type"] == "ObservationsRecorded"
    assert payload["observation_ids"] == [1]
    assert payload["source"] == "manual"
    assert payload["recorded_at"]


def test_publish_failure_does_not_fail_the_command(seeded_memory_uow, monkeypatch, caplog):
    def broken_publish(channel, event):
        raise ConnectionError("redis is down")

    monkeypatch.setattr(redis_adapter, "publish", broken_publish)

    with caplog.at_level(logging.ERROR):
        [stored] = messagebus.handle(
            commands.RecordObservation(observation=make_observation()), seeded_memory_uow
        )

    assert stored.id == 1
    assert "redis is down" in caplog.text


def test_unknown_catalog_ids_are_reported(seeded_memory_uow, fake_redis, caplog):
    observation = make_observation(bacteria_id=99, antibiotic_id=1, region_id=42)

    with caplog.at_level(logging.WARNING, logger="resistance.service_layer.handlers"):
        messagebus.handle(commands.RecordObservation(observation=observation), seeded_memory_uow)

    messages = [r.getMessage() for r in caplog.records if r.name == "resistance.service_layer.handlers"]
    assert any("unknown bacteria ids [99]" in m for m in messages)
    assert any("unknown region ids [42]" in m for m in messages)
    assert not any("unknown antibiotic" in m for m in messages)


def test_known_catalog_ids_are_not_reported(seeded_memory_uow, fake_redis, caplog):
    with caplog.at_level(logging.WARNING, logger="resistance.service_layer.handlers"):
        messagebus.handle(commands.RecordObservation(observation=make_observation()), seeded_memory_uow)

    assert not [r for r in caplog.records if r.levelno == logging.WARNING]


def test_unknown_message_type_is_rejected(in_memory_uow):
    with pytest.raises(TypeError, match="neither a command nor an event"):
        messagebus.handle("not a message", in_memory_uow)
