"""
Duplicate Transaction Detector Module

Removes transactions that appear on more than one uploaded statement and
merges statements whose periods overlap.
"""

import hashlib
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

from .models import ParsedStatement, Transaction

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class DeduplicationResult:
    """Result of a deduplication pass."""

    unique_transactions: list[Transaction] = field(default_factory=list)
    duplicates: list[Transaction] = field(default_factory=list)
    stats: dict = field(default_factory=dict)


class DuplicateDetector:
    """Detects duplicate transactions by content hash."""

    # Fields that make a copy of a transaction more useful to keep
    COMPLETENESS_WEIGHTS = {
        "description": 1,
        "merchant": 1,
        "category": 2,
        "balance": 1,
        "raw_line": 1,
    }

    DESCRIPTION_HASH_CHARS = 20

    def generate_transaction_hash(self, transaction: Transaction) -> str:
        """Generate the content hash two copies of a transaction share.

        Args:
            transaction: Transaction to hash

        Returns:
            SHA-256 hex digest
        """
        amount = transaction.amount.quantize(CENTS)
        data = (
            f"{transaction.date.isoformat()}|"
            f"{transaction.normalized_merchant}|"
            f"{amount:.2f}|"
            f"{transaction.direction.value}|"
            f"{transaction.account_name or ''}|"
            f"{transaction.description[:self.DESCRIPTION_HASH_CHARS]}"
        )
        return hashlib.sha256(data.encode()).hexdigest()

    def completeness_score(self, transaction: Transaction) -> int:
        score = 0
        for attr, weight in self.COMPLETENESS_WEIGHTS.items():
            value = getattr(transaction, attr)
            if value is not None and value != "":
                score += weight
        return score

    def dedupe_with_stats(self, transactions: list[Transaction]) -> DeduplicationResult:
        """Collapse transactions sharing a hash into the most complete copy.

        Output keeps the position where each hash was first seen. When two
        copies score the same, the later one in the input wins, so callers
        pass older uploads first. Statement merging orders by ``uploaded_at``
        for this reason.

        Args:
            transactions: Transactions in input order

        Returns:
            DeduplicationResult with unique transactions carrying their hash
        """
        result = DeduplicationResult()
        positions: dict[str, int] = {}

        for txn in transactions:
            txn_hash = self.generate_transaction_hash(txn)
            if txn.dedup_hash != txn_hash:
                txn = replace(txn, dedup_hash=txn_hash)

            if txn_hash not in positions:
                positions[txn_hash] = len(result.unique_transactions)
                result.unique_transactions.append(txn)
                continue

            index = positions[txn_hash]
            kept = result.unique_transactions[index]
            if self.completeness_score(txn) >= self.completeness_score(kept):
                result.unique_transactions[index] = txn
                result.duplicates.append(kept)
            else:
                result.duplicates.append(txn)

        total = len(transactions)
        result.stats = {
            "total_checked": total,
            "unique": len(result.unique_transactions),
            "duplicates_removed": len(result.duplicates),
            "duplicate_rate": len(result.duplicates) / total if total > 0 else 0,
        }

        if result.duplicates:
            logger.info(
                f"Removed {len(result.duplicates)} duplicate transactions "
                f"out of {total}"
            )

        return result

    def dedupe(self, transactions: list[Transaction]) -> list[Transaction]:
        return self.dedupe_with_stats(transactions).unique_transactions

    def merge_overlapping_statements(self, statements: list[ParsedStatement]) -> list[ParsedStatement]:
        """Merge statements of the same account whose periods intersect.

        Statements are grouped by institution and account (number, else
        name), sorted by start date, and each one whose period touches the
        previous entry is absorbed into it.

        Args:
            statements: Parsed statements in upload order

        Returns:
            Merged statements, grouped by account and ordered by start date
        """
        groups: dict[str, list[ParsedStatement]] = {}
        for statement in statements:
            groups.setdefault(statement.account_key, []).append(statement)

        merged_all = []
        for account_key, group in groups.items():
            merged: list[ParsedStatement] = []
            for statement in sorted(group, key=lambda s: s.start_date):
                if merged and dates_overlap(
                    merged[-1].start_date, merged[-1].end_date,
                    statement.start_date, statement.end_date
                ):
                    logger.debug(
                        f"Merging {statement.source_file or statement.id} into "
                        f"{merged[-1].source_file or merged[-1].id} ({account_key})"
                    )
                    merged[-1] = self._absorb(merged[-1], statement)
                else:
                    merged.append(statement)
            merged_all.extend(merged)

        if len(merged_all) < len(statements):
            logger.info(f"Merged {len(statements)} statements into {len(merged_all)}")

        return merged_all

    def _absorb(self, accumulator: ParsedStatement, statement: ParsedStatement) -> ParsedStatement:
        reassigned = [
            replace(t, statement_id=accumulator.id) for t in statement.transactions
        ]
        # Tied copies go to the most recently uploaded statement
        if statement.uploaded_at >= accumulator.uploaded_at:
            combined = accumulator.transactions + reassigned
        else:
            combined = reassigned + accumulator.transactions

        return replace(
            accumulator,
            start_date=min(accumulator.start_date, statement.start_date),
            end_date=max(accumulator.end_date, statement.end_date),
            uploaded_at=max(accumulator.uploaded_at, statement.uploaded_at),
            transactions=self.dedupe(combined),
            parsing_errors=accumulator.parsing_errors + statement.parsing_errors,
        )


def dates_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """Check whether two inclusive date ranges intersect."""
    return start1 <= end2 and start2 <= end1


def group_transactions_by_account_and_period(
    transactions: list[Transaction]
) -> dict[str, dict[str, list[Transaction]]]:
    """Group transactions as account name -> ``YYYY-MM`` -> transactions."""
    grouped: dict[str, dict[str, list[Transaction]]] = {}
    for txn in transactions:
        account = txn.account_name or "Unknown"
        period = txn.date.strftime("%Y-%m")
        grouped.setdefault(account, {}).setdefault(period, []).append(txn)
    return grouped


_default_detector = DuplicateDetector()


def generate_transaction_hash(transaction: Transaction) -> str:
    return _default_detector.generate_transaction_hash(transaction)


def dedupe(transactions: list[Transaction]) -> list[Transaction]:
    """Remove duplicate transactions, keeping the most complete copy."""
    return _default_detector.dedupe(transactions)


def dedupe_with_stats(transactions: list[Transaction]) -> DeduplicationResult:
    return _default_detector.dedupe_with_stats(transactions)


def merge_overlapping_statements(statements: list[ParsedStatement]) -> list[ParsedStatement]:
    """Merge statements of one account whose periods overlap."""
    return _default_detector.merge_overlapping_statements(statements)
