"""Commands for the resistance surveillance service."""

from dataclasses import dataclass
from typing import List

from resistance.domain.model import Observation


@dataclass
class Command:
    """Base class for all commands."""
    pass


@dataclass
class RecordObservation(Command):
    """Command to store a single manually entered observation."""
    observation: Observation


@dataclass
class BulkRecordObservations(Command):
    """Command to store an imported set of observations as one batch."""
    observations: List[Observation]
    source: str = "bulk"
