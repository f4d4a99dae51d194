"""Recurring charge detection."""

from datetime import date

from ..models import RecurringCharge, Transaction
from .adaptive import AdaptiveRecurrenceDetector
from .detector import RecurrenceDetector, rank_charges
from .periodicity import advance, classify_interval
from .scoring import known_biller_bonus, score_confidence
from .statistics import amount_stats, interval_stats


def detect_recurring_charges(
    transactions: list[Transaction],
    adaptive: bool = True,
    as_of: date | None = None
) -> list[RecurringCharge]:
    """Detect recurring charges with the packaged configuration.

    Args:
        transactions: Deduplicated transactions
        adaptive: Use the category-aware detector
        as_of: Reference date for activity checks

    Returns:
        Ranked recurring charges
    """
    detector = AdaptiveRecurrenceDetector() if adaptive else RecurrenceDetector()
    return detector.detect(transactions, as_of=as_of)


__all__ = [
    "AdaptiveRecurrenceDetector",
    "RecurrenceDetector",
    "advance",
    "amount_stats",
    "classify_interval",
    "detect_recurring_charges",
    "interval_stats",
    "known_biller_bonus",
    "rank_charges",
    "score_confidence",
]
