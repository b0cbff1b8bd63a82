"""Domain events for the resistance surveillance service."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass
class Event:
    """Base class for all domain events."""
    pass


@dataclass
class ObservationsRecorded(Event):
    """Event raised when a batch of observations has been stored."""
    observation_ids: List[int]
    bacteria_ids: List[int] = field(default_factory=list)
    antibiotic_ids: List[int] = field(default_factory=list)
    region_ids: List[int] = field(default_factory=list)
    source: str = "manual"      # manual entry or bulk import
    recorded_at: datetime = None
