"""
Adaptive Recurrence Detector

Category-aware detector: amount tolerance and evidence floor follow the
merchant's category, non-subscription rows are dropped up front, and only
charges reaching the reporting threshold are returned.
"""

import logging
import re

from ..config import CategoryRule
from ..models import RecurringCharge, Transaction
from .detector import MerchantCluster, RecurrenceDetector, merchant_key

logger = logging.getLogger(__name__)


class AdaptiveRecurrenceDetector(RecurrenceDetector):
    """Recurrence detector with category tolerances and exclusions."""

    @property
    def similarity_threshold(self) -> float:
        return self.config.similarity.adaptive

    @property
    def merge_similarity_threshold(self) -> float:
        return self.config.similarity.merge_adaptive

    @property
    def merge_amount_tolerance(self) -> float:
        return self.config.merge_amount_tolerance.adaptive

    def _excluded_re(self) -> re.Pattern | None:
        keywords = self.config.excluded_keywords
        if not keywords:
            return None
        return re.compile(
            r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b",
            re.IGNORECASE
        )

    def _prefilter(self, transactions: list[Transaction]) -> list[Transaction]:
        excluded = self._excluded_re()
        if excluded is None:
            return list(transactions)

        kept = [
            t for t in transactions
            if not excluded.search(f"{t.description} {t.merchant}")
        ]
        if len(kept) < len(transactions):
            logger.debug(f"Excluded {len(transactions) - len(kept)} non-subscription transactions")
        return kept

    def _category_for(self, transaction: Transaction) -> CategoryRule | None:
        return self.config.category_for(merchant_key(transaction))

    def _amount_tolerance(self, cluster: MerchantCluster) -> float:
        if cluster.category is not None:
            return cluster.category.amount_tolerance
        return self.config.amount_tolerance.adaptive

    def _min_transactions(self, cluster: MerchantCluster) -> int:
        if cluster.category is not None:
            return cluster.category.min_transactions
        return self.config.min_transactions

    def _expected_variance(self, cluster: MerchantCluster) -> float | None:
        if cluster.category is not None:
            return cluster.category.amount_tolerance
        return None

    def _finalize(self, charges: list[RecurringCharge]) -> list[RecurringCharge]:
        threshold = self.config.min_reported_confidence
        return [c for c in charges if c.confidence >= threshold]
