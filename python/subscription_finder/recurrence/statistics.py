"""
Interval and amount statistics for merchant clusters.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


@dataclass
class IntervalStats:
    """Day gaps between consecutive charges."""

    intervals: list[int] = field(default_factory=list)
    mean: float = 0.0
    std_dev: float = 0.0
    outliers: list[int] = field(default_factory=list)

    @property
    def cv(self) -> float:
        """Coefficient of variation of the gaps."""
        if self.mean <= 0:
            return 1.0 if self.intervals else 0.0
        return self.std_dev / self.mean

    @property
    def outlier_share(self) -> float:
        if not self.intervals:
            return 0.0
        return len(self.outliers) / len(self.intervals)


@dataclass
class AmountStats:
    """Amount mean, robust mean and spread of a cluster."""

    mean: Decimal
    robust_mean: Decimal
    std_dev: float
    cv: float
    kept: list[Decimal] = field(default_factory=list)


def mean_and_std(values: list[float]) -> tuple[float, float]:
    """Mean and population standard deviation."""
    if not values:
        return 0.0, 0.0

    avg = sum(values) / len(values)
    variance = sum((v - avg) ** 2 for v in values) / len(values)
    return avg, variance ** 0.5


def interval_stats(dates: list[date], outlier_std_devs: float = 2.5) -> IntervalStats:
    """Compute gap statistics for ascending dates.

    Args:
        dates: Charge dates sorted ascending
        outlier_std_devs: Gaps further than this many standard deviations
            from the mean are outliers

    Returns:
        IntervalStats
    """
    intervals = [(dates[i] - dates[i - 1]).days for i in range(1, len(dates))]
    if not intervals:
        return IntervalStats()

    avg, std_dev = mean_and_std([float(i) for i in intervals])
    outliers = [
        index for index, gap in enumerate(intervals)
        if abs(gap - avg) > outlier_std_devs * std_dev
    ]

    return IntervalStats(intervals=intervals, mean=avg, std_dev=std_dev, outliers=outliers)


def amount_stats(amounts: list[Decimal], outlier_std_devs: float = 2.5) -> AmountStats:
    """Compute mean, outlier-robust mean and coefficient of variation.

    Amounts further than ``outlier_std_devs`` standard deviations from the
    initial mean are dropped before the robust mean is recomputed.

    Args:
        amounts: Charge amounts
        outlier_std_devs: Outlier cutoff in standard deviations

    Returns:
        AmountStats with means rounded to cents
    """
    if not amounts:
        zero = Decimal("0.00")
        return AmountStats(mean=zero, robust_mean=zero, std_dev=0.0, cv=0.0)

    initial_avg = sum(amounts) / len(amounts)
    variance = sum((a - initial_avg) ** 2 for a in amounts) / len(amounts)
    initial_std = float(variance) ** 0.5

    kept = [
        a for a in amounts
        if float(abs(a - initial_avg)) <= outlier_std_devs * initial_std
    ] or list(amounts)

    robust_avg = sum(kept) / len(kept)
    robust_variance = sum((a - robust_avg) ** 2 for a in kept) / len(kept)
    robust_std = float(robust_variance) ** 0.5
    cv = robust_std / float(robust_avg) if robust_avg > 0 else 0.0

    return AmountStats(
        mean=initial_avg.quantize(CENTS, rounding=ROUND_HALF_UP),
        robust_mean=robust_avg.quantize(CENTS, rounding=ROUND_HALF_UP),
        std_dev=robust_std,
        cv=cv,
        kept=kept,
    )
