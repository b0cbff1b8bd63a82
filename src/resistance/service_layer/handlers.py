import logging
from typing import List

from resistance.domain import commands, events
from resistance.domain.model import Observation, ObservationBatch
from resistance.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

RESISTANCE_DATA_CHANNEL = "surveillance:resistance-data"


def record_observation(
    command: commands.RecordObservation,
    uow: AbstractUnitOfWork
) -> Observation:
    """
    Store one manually entered observation.

    Returns:
        The stored observation with its generated id
    """
    stored = _record_batch(ObservationBatch([command.observation], source="manual"), uow)
    return stored[0]


def bulk_record_observations(
    command: commands.BulkRecordObservations,
    uow: AbstractUnitOfWork
) -> List[Observation]:
    """
    Store an imported set of observations in a single unit of work.

    The batch is all-or-nothing: if any insert fails the unit of work rolls
    back and none of the observations are kept.
    """
    if not command.observations:
        logger.info("Bulk import received no observations, nothing to store")
        return []
    batch = ObservationBatch(list(command.observations), source=command.source)
    return _record_batch(batch, uow)


def _record_batch(batch: ObservationBatch, uow: AbstractUnitOfWork) -> List[Observation]:
    logger.info(f"Recording {len(batch.observations)} observation(s) from {batch.source}")

    with uow:
        stored = uow.observations.add_batch(batch)
        uow.commit()

    logger.info(f"Committed {len(stored)} observation(s) from {batch.source}")
    return stored


def check_reference_integrity(event: events.ObservationsRecorded, uow: AbstractUnitOfWork):
    """
    Log a data-quality warning for recorded observations that reference
    bacteria, antibiotics or regions missing from the catalogs.

    Aggregations still include such rows under a placeholder name.
    """
    with uow:
        known = {
            "bacteria": {b.id for b in uow.bacteria.list()},
            "antibiotic": {a.id for a in uow.antibiotics.list()},
            "region": {r.id for r in uow.regions.list()},
        }

    referenced = {
        "bacteria": event.bacteria_ids,
        "antibiotic": event.antibiotic_ids,
        "region": event.region_ids,
    }
    for kind, ids in referenced.items():
        missing = sorted(set(ids) - known[kind])
        if missing:
            logger.warning(
                f"Recorded observations reference unknown {kind} ids {missing}; "
                f"they will be reported as 'Unknown (ID: ...)'"
            )


def publish_observations_recorded(event: events.ObservationsRecorded, uow: AbstractUnitOfWork):
    """Publish ObservationsRecorded to Redis for downstream consumers (alerting, dashboards)."""
    logger.info(f"Publishing ObservationsRecorded for {len(event.observation_ids)} observation(s)")
    try:
        from resistance.adapters import redis_adapter

        redis_adapter.publish(RESISTANCE_DATA_CHANNEL, event)

    except Exception as e:
        logger.error(f"Failed to publish ObservationsRecorded event: {e}")
        # Don't re-raise - external failures shouldn't break the flow
