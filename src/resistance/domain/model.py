"""
Domain model for antimicrobial-resistance surveillance.

Observations are immutable sample-count facts. Reference entities (bacteria,
antibiotics, regions, facilities) are small catalogs the aggregation joins
against for display names.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from resistance.domain.events import ObservationsRecorded


class InvalidObservation(ValueError):
    """Raised when an observation violates the sample-count invariants."""
    pass


@dataclass(frozen=True)
class Observation:
    """One resistance-sampling record: bacterium x antibiotic x region x date."""
    bacteria_id: int
    antibiotic_id: int
    region_id: int
    sample_date: date
    total_samples: int
    resistant_samples: int
    facility_id: Optional[int] = None
    id: Optional[int] = None
    uploaded_by_id: Optional[int] = None
    uploaded_at: Optional[datetime] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.total_samples < 0:
            raise InvalidObservation(
                f"total_samples must be >= 0, got {self.total_samples}"
            )
        if self.resistant_samples < 0:
            raise InvalidObservation(
                f"resistant_samples must be >= 0, got {self.resistant_samples}"
            )
        if self.resistant_samples > self.total_samples:
            raise InvalidObservation(
                f"resistant_samples ({self.resistant_samples}) exceeds "
                f"total_samples ({self.total_samples})"
            )

    @property
    def month(self) -> str:
        """Calendar month of the sample as 'YYYY-MM'."""
        return self.sample_date.strftime("%Y-%m")


@dataclass(eq=False)
class ObservationBatch:
    """
    Observations entered or imported together.

    A batch is recorded as a whole; recording raises the ObservationsRecorded
    event consumed by the data-quality check and the Redis publisher.
    """
    observations: List[Observation]
    source: str = "manual"
    recorded: List[Observation] = field(default_factory=list)
    events: List = field(default_factory=list)

    def record(self, stored: List[Observation]) -> None:
        """Mark the batch as stored and generate the domain event."""
        self.recorded = list(stored)
        self.events.append(
            ObservationsRecorded(
                observation_ids=[o.id for o in self.recorded],
                bacteria_ids=sorted({o.bacteria_id for o in self.recorded}),
                antibiotic_ids=sorted({o.antibiotic_id for o in self.recorded}),
                region_ids=sorted({o.region_id for o in self.recorded}),
                source=self.source,
                recorded_at=datetime.now(timezone.utc),
            )
        )


@dataclass
class Bacteria:
    name: str
    scientific_name: str
    description: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Antibiotic:
    name: str
    drug_class: str
    description: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Region:
    name: str
    code: str
    parent_id: Optional[int] = None
    id: Optional[int] = None


@dataclass
class Facility:
    name: str
    type: str
    region_id: int
    address: Optional[str] = None
    contact_info: Optional[str] = None
    id: Optional[int] = None


class AlertSeverity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Alert:
    title: str
    description: str
    severity: str                       # AlertSeverity value
    bacteria_id: Optional[int] = None
    antibiotic_id: Optional[int] = None
    region_id: Optional[int] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None


@dataclass
class Resource:
    """Published guidance material (reports, webinars, guides)."""
    title: str
    type: str                           # document, webinar, guide, ...
    url: str
    published_at: datetime
    description: Optional[str] = None
    added_by_id: Optional[int] = None
    id: Optional[int] = None
