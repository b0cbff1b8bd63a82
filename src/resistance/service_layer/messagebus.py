# pylint: disable=broad-except
"""
Dispatches commands and the events they raise.

A command has exactly one handler and its result is returned to the caller;
its errors propagate. Events fan out to every registered handler, and a
failing event handler is logged without undoing the committed command.
"""

from __future__ import annotations
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Union, TYPE_CHECKING

from resistance.domain import commands, events
from resistance.service_layer import handlers

if TYPE_CHECKING:
    from resistance.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


def handle(message: Message, uow: AbstractUnitOfWork) -> List[Any]:
    """Process a message and everything it raises; returns the command results."""
    results = []
    pending: Deque[Message] = deque([message])

    while pending:
        message = pending.popleft()
        if isinstance(message, events.Event):
            _dispatch_event(message, uow)
        elif isinstance(message, commands.Command):
            results.append(_dispatch_command(message, uow))
        else:
            raise TypeError(f"{message!r} is neither a command nor an event")
        pending.extend(uow.collect_new_events())

    return results


def _dispatch_command(command: commands.Command, uow: AbstractUnitOfWork):
    handler = COMMAND_HANDLERS[type(command)]
    logger.debug(f"{type(command).__name__} -> {handler.__name__}")
    try:
        return handler(command, uow=uow)
    except Exception:
        logger.exception(f"{type(command).__name__} failed")
        raise


def _dispatch_event(event: events.Event, uow: AbstractUnitOfWork):
    for handler in EVENT_HANDLERS.get(type(event), []):
        logger.debug(f"{type(event).__name__} -> {handler.__name__}")
        try:
            handler(event, uow=uow)
        except Exception:
            logger.exception(f"{handler.__name__} failed for {type(event).__name__}")


EVENT_HANDLERS: Dict[type, List[Callable]] = {
    events.ObservationsRecorded: [
        handlers.check_reference_integrity,
        handlers.publish_observations_recorded,
    ],
}

COMMAND_HANDLERS: Dict[type, Callable] = {
    commands.RecordObservation: handlers.record_observation,
    commands.BulkRecordObservations: handlers.bulk_record_observations,
}
