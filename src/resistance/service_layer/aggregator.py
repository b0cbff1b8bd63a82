"""
Resistance aggregation over an already filtered list of observations.

Every function here is a pure, total function of its inputs: the same
observations and catalogs always give the same result, an empty list gives an
empty (or zeroed) result, and nothing is fetched or cached. Filtering happens
before, in the observation store; name joins go through NameResolver.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from resistance.domain.model import Observation
from resistance.domain.reference import NameResolver


@dataclass(frozen=True)
class ResistanceSummary:
    total_samples: int = 0
    resistant_isolates: int = 0
    resistance_rate: float = 0.0
    participating_facilities: int = 0


@dataclass(frozen=True)
class ResistanceTrend:
    month: str
    bacteria_id: int
    bacteria_name: str
    resistance_rate: float


@dataclass(frozen=True)
class AntibioticEffectiveness:
    id: int
    name: str
    effectiveness: float
    regions: List[str] = field(default_factory=list)


@dataclass
class _Tally:
    total: int = 0
    resistant: int = 0

    def add(self, observation: Observation) -> None:
        self.total += observation.total_samples
        self.resistant += observation.resistant_samples

    @property
    def rate(self) -> float:
        return resistance_rate(self.resistant, self.total)


def resistance_rate(resistant: int, total: int) -> float:
    """Resistant share as a percentage, 0 when there are no samples."""
    if total <= 0:
        return 0.0
    return resistant * 100 / total


def _resolver(catalog, kind: str) -> NameResolver:
    """Accept either a ready NameResolver or a raw catalog listing."""
    if isinstance(catalog, NameResolver):
        return catalog
    return NameResolver(catalog, kind=kind)


def compute_summary(observations: Iterable[Observation]) -> ResistanceSummary:
    tally = _Tally()
    facilities = set()
    for observation in observations:
        tally.add(observation)
        if observation.facility_id is not None:
            facilities.add(observation.facility_id)

    return ResistanceSummary(
        total_samples=tally.total,
        resistant_isolates=tally.resistant,
        resistance_rate=tally.rate,
        participating_facilities=len(facilities),
    )


def compute_trends(
    observations: Iterable[Observation],
    bacteria_catalog,
) -> List[ResistanceTrend]:
    """
    Monthly resistance rate per bacterium.

    Groups by (sample month, bacteria_id) and sorts by month, then bacteria
    display name.
    """
    bacteria = _resolver(bacteria_catalog, "bacteria")
    groups: Dict[Tuple[str, int], _Tally] = {}
    for observation in observations:
        key = (observation.month, observation.bacteria_id)
        groups.setdefault(key, _Tally()).add(observation)

    trends = [
        ResistanceTrend(
            month=month,
            bacteria_id=bacteria_id,
            bacteria_name=bacteria.name_for(bacteria_id),
            resistance_rate=tally.rate,
        )
        for (month, bacteria_id), tally in groups.items()
    ]
    trends.sort(key=lambda trend: (trend.month, trend.bacteria_name))
    return trends


def compute_effectiveness(
    observations: Iterable[Observation],
    antibiotic_catalog,
    region_catalog,
) -> List[AntibioticEffectiveness]:
    """
    Effectiveness ranking (100 - resistance rate) per antibiotic.

    An antibiotic whose observations carry zero samples in total is reported
    as 0% effective. Ties keep first-seen order.
    """
    antibiotics = _resolver(antibiotic_catalog, "antibiotic")
    regions = _resolver(region_catalog, "region")
    tallies: Dict[int, _Tally] = {}
    region_ids: Dict[int, set] = {}
    for observation in observations:
        tallies.setdefault(observation.antibiotic_id, _Tally()).add(observation)
        region_ids.setdefault(observation.antibiotic_id, set()).add(observation.region_id)

    ranking = []
    for antibiotic_id, tally in tallies.items():
        effectiveness = 100 - tally.rate if tally.total > 0 else 0.0
        ranking.append(
            AntibioticEffectiveness(
                id=antibiotic_id,
                name=antibiotics.name_for(antibiotic_id),
                effectiveness=effectiveness,
                regions=sorted({regions.name_for(r) for r in region_ids[antibiotic_id]}),
            )
        )

    ranking.sort(key=lambda entry: entry.effectiveness, reverse=True)
    return ranking
