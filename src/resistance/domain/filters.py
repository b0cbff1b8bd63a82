"""
Filter specification shared by every aggregation view.

A FilterSpecification is what the caller asked for; resolve() turns it into a
ResolvedFilter with absolute inclusive date bounds that both observation stores
apply the same way.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union

from resistance.domain.model import Observation

logger = logging.getLogger(__name__)


class TimePeriod(Enum):
    """Named relative time windows offered by the dashboard."""
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    TWELVE_MONTHS = "12m"
    TWO_YEARS = "2y"
    FIVE_YEARS = "5y"
    CUSTOM = "custom"


DEFAULT_TIME_PERIOD = TimePeriod.TWELVE_MONTHS

# Window length in calendar months
PERIOD_MONTHS = {
    TimePeriod.THREE_MONTHS: 3,
    TimePeriod.SIX_MONTHS: 6,
    TimePeriod.TWELVE_MONTHS: 12,
    TimePeriod.TWO_YEARS: 24,
    TimePeriod.FIVE_YEARS: 60,
}


@dataclass(frozen=True)
class FilterSpecification:
    bacteria_id: Optional[int] = None
    antibiotic_id: Optional[int] = None
    region_id: Optional[int] = None
    time_period: TimePeriod = DEFAULT_TIME_PERIOD
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @classmethod
    def from_params(
        cls,
        bacteria_id: Optional[int] = None,
        antibiotic_id: Optional[int] = None,
        region_id: Optional[int] = None,
        time_period: Union[TimePeriod, str, None] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> "FilterSpecification":
        """Build a specification from optional request values, defaulting the period to 12m."""
        if time_period is None:
            time_period = DEFAULT_TIME_PERIOD
        elif not isinstance(time_period, TimePeriod):
            time_period = TimePeriod(time_period)
        return cls(
            bacteria_id=bacteria_id,
            antibiotic_id=antibiotic_id,
            region_id=region_id,
            time_period=time_period,
            from_date=from_date,
            to_date=to_date,
        )

    @property
    def has_explicit_dates(self) -> bool:
        return self.from_date is not None and self.to_date is not None


@dataclass(frozen=True)
class DateRange:
    """Inclusive sample-date bounds."""
    start: date
    end: date

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class ResolvedFilter:
    """A filter with every relative period expanded to absolute dates."""
    bacteria_id: Optional[int] = None
    antibiotic_id: Optional[int] = None
    region_id: Optional[int] = None
    date_range: Optional[DateRange] = None

    def matches(self, observation: Observation) -> bool:
        if self.bacteria_id is not None and observation.bacteria_id != self.bacteria_id:
            return False
        if self.antibiotic_id is not None and observation.antibiotic_id != self.antibiotic_id:
            return False
        if self.region_id is not None and observation.region_id != self.region_id:
            return False
        if self.date_range is not None and observation.sample_date not in self.date_range:
            return False
        return True


def months_before(day: date, months: int) -> date:
    """
    Go back a number of calendar months from day.

    The day of month is clamped to the length of the target month, so
    31 May minus 3 months is 28/29 February.
    """
    index = day.year * 12 + (day.month - 1) - months
    year, month_index = divmod(index, 12)
    month = month_index + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_date_range(spec: FilterSpecification, today: date) -> Optional[DateRange]:
    """
    Resolve the date bounds of a specification.

    Explicit from/to dates win whenever both are present. Otherwise a named
    period counts back from today. "custom" without both dates is unbounded.
    """
    if spec.has_explicit_dates:
        return DateRange(start=spec.from_date, end=spec.to_date)

    months = PERIOD_MONTHS.get(spec.time_period)
    if months is None:
        logger.debug("Custom time period without explicit dates, no date bound applied")
        return None

    return DateRange(start=months_before(today, months), end=today)


def resolve(spec: Optional[FilterSpecification] = None, today: Optional[date] = None) -> ResolvedFilter:
    """Expand a specification into a ResolvedFilter evaluated at today."""
    spec = spec or FilterSpecification()
    today = today or date.today()
    return ResolvedFilter(
        bacteria_id=spec.bacteria_id,
        antibiotic_id=spec.antibiotic_id,
        region_id=spec.region_id,
        date_range=resolve_date_range(spec, today),
    )
