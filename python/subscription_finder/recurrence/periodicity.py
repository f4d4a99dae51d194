"""
Periodicity classification and next-due projection.
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from ..config import DetectionConfig
from ..models import Periodicity

# Calendar-aware steps; the rest advance by a fixed day count
CALENDAR_STEPS = {
    Periodicity.MONTHLY: relativedelta(months=1),
    Periodicity.QUARTERLY: relativedelta(months=3),
    Periodicity.SEMIANNUAL: relativedelta(months=6),
    Periodicity.ANNUAL: relativedelta(years=1),
}

FIXED_STEPS = {
    Periodicity.WEEKLY: 7,
    Periodicity.BIWEEKLY: 14,
}


def classify_interval(mean_days: float, config: DetectionConfig) -> Periodicity:
    """Match a mean gap against the configured periodicity bands.

    Args:
        mean_days: Mean gap between charges in days
        config: Detection configuration holding the bands

    Returns:
        The first band containing the mean, else Periodicity.IRREGULAR
    """
    for band in config.periodicity_bands:
        if band.contains(mean_days):
            return band.name
    return Periodicity.IRREGULAR


def expected_interval(periodicity: Periodicity, interval_days: int, config: DetectionConfig) -> int:
    """Ideal gap of a named periodicity, else the observed mean gap."""
    band = config.band_for(periodicity)
    if band is not None:
        return band.ideal_days
    return interval_days


def advance(last: date, periodicity: Periodicity, interval_days: int) -> date:
    """Project the date one period after ``last``.

    Monthly and longer periods keep the day of month (clamped to month end);
    weekly and biweekly add a fixed number of days; irregular adds the
    observed mean gap.
    """
    if periodicity in CALENDAR_STEPS:
        return last + CALENDAR_STEPS[periodicity]
    if periodicity in FIXED_STEPS:
        return last + timedelta(days=FIXED_STEPS[periodicity])
    return last + timedelta(days=max(interval_days, 1))
