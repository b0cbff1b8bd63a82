"""
Views for read operations - separate from command/write path.

Each view fetches the filtered observations and the reference catalogs inside
one unit of work and hands them to the aggregator. A store failure surfaces as
DataUnavailable from every view alike.
"""
import logging
from datetime import date
from typing import List, Optional

from resistance.domain.filters import FilterSpecification, resolve
from resistance.domain.model import Observation
from resistance.domain.reference import NameResolver
from resistance.service_layer import aggregator
from resistance.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def get_resistance_data(
    filters: Optional[FilterSpecification],
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> List[Observation]:
    """Raw observations matching the filter, newest first."""
    resolved = resolve(filters, today)
    with uow:
        return uow.observations.query(resolved)


def get_resistance_summary(
    filters: Optional[FilterSpecification],
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> aggregator.ResistanceSummary:
    resolved = resolve(filters, today)
    with uow:
        observations = uow.observations.query(resolved)

    logger.debug(f"Summarising {len(observations)} observations for {resolved}")
    return aggregator.compute_summary(observations)


def get_resistance_trends(
    filters: Optional[FilterSpecification],
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> List[aggregator.ResistanceTrend]:
    resolved = resolve(filters, today)
    with uow:
        observations = uow.observations.query(resolved)
        bacteria = NameResolver(uow.bacteria.list(), kind="bacteria")

    return aggregator.compute_trends(observations, bacteria)


def get_antibiotic_effectiveness(
    filters: Optional[FilterSpecification],
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> List[aggregator.AntibioticEffectiveness]:
    resolved = resolve(filters, today)
    with uow:
        observations = uow.observations.query(resolved)
        antibiotics = NameResolver(uow.antibiotics.list(), kind="antibiotic")
        regions = NameResolver(uow.regions.list(), kind="region")

    return aggregator.compute_effectiveness(observations, antibiotics, regions)
