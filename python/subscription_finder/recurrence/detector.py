"""
Recurrence Detector Module

Finds merchants that charge on a regular schedule: clusters transactions by
merchant and amount, classifies the gap between charges, scores the result
and projects the next due date.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path

from ..config import CategoryRule, DetectionConfig, load_detection_config
from ..merchant_normalizer import similar
from ..models import Direction, Periodicity, RecurringCharge, Transaction
from .periodicity import advance, classify_interval, expected_interval
from .scoring import score_confidence
from .statistics import AmountStats, amount_stats, interval_stats

logger = logging.getLogger(__name__)

CHARGE_ID_NAMESPACE = uuid.UUID("5b0c9d1e-2f4a-4c47-9a31-6d7e8f9a0b1c")


@dataclass
class MerchantCluster:
    """Transactions judged to come from one biller."""

    direction: Direction
    variations: list[str] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    category: CategoryRule | None = None

    @property
    def average_amount(self) -> Decimal:
        return sum(t.amount for t in self.transactions) / len(self.transactions)

    def add(self, transaction: Transaction) -> None:
        self.transactions.append(transaction)
        key = merchant_key(transaction)
        if key not in self.variations:
            self.variations.append(key)


def merchant_key(transaction: Transaction) -> str:
    return transaction.normalized_merchant or transaction.merchant.strip().upper()


def amounts_compatible(amount: Decimal, reference: Decimal, tolerance: float) -> bool:
    """True when min/max of the two amounts is at least ``1 - tolerance``."""
    high = max(amount, reference)
    if high == 0:
        return True
    return float(min(amount, reference) / high) >= 1 - tolerance


def charge_id(transactions: list[Transaction]) -> str:
    """Stable identifier derived from the member transaction ids."""
    members = "|".join(sorted(t.id for t in transactions))
    return str(uuid.uuid5(CHARGE_ID_NAMESPACE, members))


def rank_charges(charges: list[RecurringCharge]) -> list[RecurringCharge]:
    """Order charges for display.

    Active charges first, then confidence in 10-point bands, then the larger
    average amount, then merchant name so the order is total.
    """
    # Bands are fixed decades: 50 and 49 sort in different bands even though
    # they are one point apart. Only charges in the same decade tie on
    # confidence.
    return sorted(
        charges,
        key=lambda c: (
            not c.is_active,
            -(c.confidence // 10),
            -c.average_amount,
            c.normalized_merchant,
            c.id,
        )
    )


class RecurrenceDetector:
    """Baseline recurrence detector with fixed thresholds."""

    def __init__(
        self,
        config: DetectionConfig | None = None,
        config_dir: Path | str | None = None
    ):
        """Initialize the detector.

        Args:
            config: Preloaded detection configuration
            config_dir: Directory to load ``detection.yaml`` from when no
                configuration is given
        """
        self.config = config or load_detection_config(config_dir)

    @property
    def similarity_threshold(self) -> float:
        return self.config.similarity.baseline

    @property
    def merge_similarity_threshold(self) -> float:
        return self.config.similarity.merge_baseline

    @property
    def merge_amount_tolerance(self) -> float:
        return self.config.merge_amount_tolerance.baseline

    def detect(self, transactions: list[Transaction], as_of: date | None = None) -> list[RecurringCharge]:
        """Detect recurring charges in a transaction history.

        Args:
            transactions: Deduplicated transactions
            as_of: Reference date for activity checks; defaults to the latest
                transaction date in the input

        Returns:
            Ranked recurring charges, empty when nothing qualifies
        """
        if not transactions:
            return []

        as_of = as_of or max(t.date for t in transactions)
        candidates = self._prefilter(transactions)

        charges = []
        for cluster in self._cluster(candidates):
            min_count = self._min_transactions(cluster)
            if len(cluster.transactions) < min_count:
                continue
            charges.append(self._analyze(cluster, as_of))

        charges = self._finalize(self._merge(charges, as_of))
        ranked = rank_charges(charges)

        logger.info(
            f"Detected {len(ranked)} recurring charges in {len(transactions)} transactions"
        )
        return ranked

    # ------------------------------------------------------------------
    # Tier hooks
    # ------------------------------------------------------------------

    def _prefilter(self, transactions: list[Transaction]) -> list[Transaction]:
        return list(transactions)

    def _category_for(self, transaction: Transaction) -> CategoryRule | None:
        return None

    def _amount_tolerance(self, cluster: MerchantCluster) -> float:
        return self.config.amount_tolerance.baseline

    def _min_transactions(self, cluster: MerchantCluster) -> int:
        return self.config.min_transactions

    def _expected_variance(self, cluster: MerchantCluster) -> float | None:
        return None

    def _finalize(self, charges: list[RecurringCharge]) -> list[RecurringCharge]:
        return charges

    # ------------------------------------------------------------------
    # Clustering
    # ------------------------------------------------------------------

    def _cluster(self, transactions: list[Transaction]) -> list[MerchantCluster]:
        clusters: list[MerchantCluster] = []

        for txn in sorted(transactions, key=lambda t: (t.date, t.id)):
            for cluster in clusters:
                if self._belongs(txn, cluster):
                    cluster.add(txn)
                    break
            else:
                cluster = MerchantCluster(direction=txn.direction, category=self._category_for(txn))
                cluster.add(txn)
                clusters.append(cluster)

        return clusters

    def _belongs(self, transaction: Transaction, cluster: MerchantCluster) -> bool:
        if transaction.direction is not cluster.direction:
            return False

        key = merchant_key(transaction)
        if not any(similar(key, v, self.similarity_threshold) for v in cluster.variations):
            return False

        return amounts_compatible(
            transaction.amount, cluster.average_amount, self._amount_tolerance(cluster)
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def _analyze(self, cluster: MerchantCluster, as_of: date) -> RecurringCharge:
        transactions = sorted(cluster.transactions, key=lambda t: (t.date, t.id))
        outlier_cutoff = self.config.outlier_std_devs

        intervals = interval_stats([t.date for t in transactions], outlier_cutoff)
        amounts = amount_stats([t.amount for t in transactions], outlier_cutoff)
        periodicity = classify_interval(intervals.mean, self.config)

        confidence = score_confidence(
            intervals,
            amounts,
            periodicity,
            merchant_key(transactions[0]),
            len(transactions),
            self.config,
            self._expected_variance(cluster),
        )

        logger.debug(
            f"{merchant_key(transactions[0])}: {len(transactions)} charges, "
            f"mean gap {intervals.mean:.1f}d ({periodicity.value}), confidence {confidence}"
        )

        return self._build_charge(
            transactions,
            periodicity,
            int(round(intervals.mean)),
            confidence,
            amounts,
            as_of,
            cluster.category.name if cluster.category else None,
        )

    def _build_charge(
        self,
        transactions: list[Transaction],
        periodicity: Periodicity,
        interval_days: int,
        confidence: int,
        amounts: AmountStats,
        as_of: date,
        category: str | None
    ) -> RecurringCharge:
        last = transactions[-1].date
        expected = expected_interval(periodicity, interval_days, self.config)
        days_since = (as_of - last).days
        is_active = days_since <= expected * self.config.activity.multiplier_for(periodicity)

        next_due = None
        if is_active and confidence >= self.config.projection_min_confidence:
            next_due = advance(last, periodicity, interval_days)

        return RecurringCharge(
            id=charge_id(transactions),
            merchant=transactions[0].merchant,
            normalized_merchant=merchant_key(transactions[0]),
            transactions=transactions,
            periodicity=periodicity,
            average_amount=amounts.robust_mean,
            amount_variance=round(amounts.cv, 4),
            confidence=confidence,
            interval_days=interval_days,
            is_active=is_active,
            next_due_date=next_due,
            category=category,
        )

    # ------------------------------------------------------------------
    # Cross-cluster merge
    # ------------------------------------------------------------------

    def _merge(self, charges: list[RecurringCharge], as_of: date) -> list[RecurringCharge]:
        """Fold together charges that describe the same biller."""
        merged: list[RecurringCharge] = []

        for charge in charges:
            for index, existing in enumerate(merged):
                if self._should_merge(existing, charge):
                    merged[index] = self._combine(existing, charge, as_of)
                    break
            else:
                merged.append(charge)

        return merged

    def _should_merge(self, a: RecurringCharge, b: RecurringCharge) -> bool:
        if a.transactions[0].direction is not b.transactions[0].direction:
            return False

        if not similar(a.normalized_merchant, b.normalized_merchant, self.merge_similarity_threshold):
            return False

        irregular = Periodicity.IRREGULAR
        if a.periodicity is not b.periodicity and irregular not in (a.periodicity, b.periodicity):
            return False

        high = max(a.average_amount, b.average_amount)
        if high == 0:
            return True
        return float(abs(a.average_amount - b.average_amount) / high) <= self.merge_amount_tolerance

    def _combine(self, a: RecurringCharge, b: RecurringCharge, as_of: date) -> RecurringCharge:
        by_id = {t.id: t for t in a.transactions + b.transactions}
        transactions = sorted(by_id.values(), key=lambda t: (t.date, t.id))

        primary, secondary = (a, b) if a.confidence >= b.confidence else (b, a)
        named = primary if primary.periodicity is not Periodicity.IRREGULAR else secondary

        logger.debug(f"Merging {secondary.merchant} into {primary.merchant}")

        return self._build_charge(
            transactions,
            named.periodicity,
            named.interval_days,
            primary.confidence,
            amount_stats([t.amount for t in transactions], self.config.outlier_std_devs),
            as_of,
            primary.category or secondary.category,
        )
