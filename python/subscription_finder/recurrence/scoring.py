"""
Confidence scoring for merchant clusters.

Every term is additive so a small change in the input moves the score by a
small amount. The final clamp to [0, 100] is required: the raw sum can
exceed either bound.
"""

from decimal import Decimal

from ..config import DetectionConfig
from ..models import Periodicity
from .statistics import AmountStats, IntervalStats


def known_biller_bonus(merchant: str, amount: Decimal, config: DetectionConfig) -> float:
    """Bonus for a curated subscription, larger at one of its usual prices.

    Args:
        merchant: Normalized merchant
        amount: Representative charge amount
        config: Detection configuration

    Returns:
        Price bonus, name bonus, or 0 when the merchant is not listed
    """
    weights = config.confidence

    for biller in config.known_billers:
        if not biller.matches(merchant):
            continue
        for typical in biller.typical_prices:
            if abs(float(amount) - typical) / typical < weights.known_biller_price_tolerance:
                return weights.known_biller_price_bonus
        return weights.known_biller_name_bonus

    return 0


def periodicity_bonus(periodicity: Periodicity, config: DetectionConfig) -> float:
    band = config.band_for(periodicity)
    if band is None:
        return config.irregular_bonus
    return band.bonus


def score_confidence(
    intervals: IntervalStats,
    amounts: AmountStats,
    periodicity: Periodicity,
    merchant: str,
    transaction_count: int,
    config: DetectionConfig,
    expected_amount_variance: float | None = None
) -> int:
    """Score how strongly a cluster resembles a recurring charge.

    Args:
        intervals: Gap statistics of the cluster
        amounts: Amount statistics of the cluster
        periodicity: Classified periodicity
        merchant: Normalized merchant
        transaction_count: Number of charges in the cluster
        config: Detection configuration
        expected_amount_variance: Amount CV the merchant's category tolerates;
            the configured default when None

    Returns:
        Integer confidence in [0, 100]
    """
    weights = config.confidence
    expected = (
        expected_amount_variance
        if expected_amount_variance is not None
        else weights.expected_amount_variance
    )

    score = 100.0
    score -= intervals.cv * weights.interval_cv_weight
    score -= intervals.outlier_share * weights.outlier_weight
    score -= max(0.0, amounts.cv - expected) * weights.amount_excess_weight
    score += min(weights.transaction_bonus_cap, transaction_count * weights.per_transaction_bonus)
    score += periodicity_bonus(periodicity, config)
    score += known_biller_bonus(merchant, amounts.robust_mean, config)

    return int(round(max(0.0, min(100.0, score))))
