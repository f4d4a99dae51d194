"""
Duplicate Detector Tests

Tests for transaction hashing, deduplication and statement merging.
"""

import pytest
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from subscription_finder.duplicate_detector import (
    DuplicateDetector,
    dates_overlap,
    dedupe,
    dedupe_with_stats,
    generate_transaction_hash,
    group_transactions_by_account_and_period,
    merge_overlapping_statements,
)
from subscription_finder.models import Direction, ParsedStatement


def make_statement(start, end, transactions, account_number="1234", institution="Chase", **kwargs):
    statement = ParsedStatement(
        account_name="Chase Checking",
        account_number=account_number,
        institution=institution,
        start_date=start,
        end_date=end,
        **kwargs
    )
    statement.transactions = [replace(t, statement_id=statement.id) for t in transactions]
    return statement


class TestTransactionHash:
    """Tests for the dedup hash."""

    def test_hash_is_deterministic(self, make_transaction):
        a = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))
        b = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))

        assert a.id != b.id
        assert generate_transaction_hash(a) == generate_transaction_hash(b)
        assert len(generate_transaction_hash(a)) == 64

    def test_hash_rounds_to_cents(self, make_transaction):
        a = make_transaction("HULU", "7.99", date(2024, 1, 15))
        b = make_transaction("HULU", "7.990", date(2024, 1, 15))

        assert generate_transaction_hash(a) == generate_transaction_hash(b)

    def test_hash_depends_on_direction(self, make_transaction):
        debit = make_transaction("AMAZON", "20.00", date(2024, 1, 15))
        credit = make_transaction("AMAZON", "20.00", date(2024, 1, 15), Direction.CREDIT)

        assert generate_transaction_hash(debit) != generate_transaction_hash(credit)

    def test_hash_depends_on_account(self, make_transaction):
        a = make_transaction("AMAZON", "20.00", date(2024, 1, 15), account_name="Checking")
        b = make_transaction("AMAZON", "20.00", date(2024, 1, 15), account_name="Savings")

        assert generate_transaction_hash(a) != generate_transaction_hash(b)

    def test_hash_uses_description_prefix(self, make_transaction):
        a = make_transaction("HULU", "7.99", date(2024, 1, 15), description="Recurring Hulu payment ref 1")
        b = make_transaction("HULU", "7.99", date(2024, 1, 15), description="Recurring Hulu payment ref 2")

        assert generate_transaction_hash(a) == generate_transaction_hash(b)


class TestDedupe:
    """Tests for deduplication."""

    @pytest.fixture
    def detector(self):
        return DuplicateDetector()

    def test_removes_duplicates(self, make_transaction):
        first = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))
        other = make_transaction("SPOTIFY", "10.99", date(2024, 1, 16))
        copy = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))

        unique = dedupe([first, other, copy])

        assert len(unique) == 2
        assert all(t.dedup_hash for t in unique)

    def test_keeps_more_complete_copy(self, make_transaction):
        bare = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))
        richer = make_transaction(
            "NETFLIX.COM", "15.49", date(2024, 1, 15),
            category="streaming", raw_line="01/15 NETFLIX.COM 15.49"
        )

        unique = dedupe([richer, bare])

        assert len(unique) == 1
        assert unique[0].id == richer.id

    def test_ties_favor_later_input(self, make_transaction):
        earlier = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))
        later = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))

        unique = dedupe([earlier, later])

        assert unique[0].id == later.id

    def test_keeps_first_seen_position(self, make_transaction):
        netflix = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))
        spotify = make_transaction("SPOTIFY", "10.99", date(2024, 1, 16))
        netflix_copy = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15), category="streaming")

        unique = dedupe([netflix, spotify, netflix_copy])

        assert [t.normalized_merchant for t in unique] == ["NETFLIX", "SPOTIFY"]
        assert unique[0].id == netflix_copy.id

    def test_idempotent(self, make_transaction):
        transactions = [
            make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15)),
            make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15)),
            make_transaction("SPOTIFY", "10.99", date(2024, 1, 16)),
            make_transaction("SPOTIFY", "10.99", date(2024, 2, 16)),
        ]

        once = dedupe(transactions)

        assert dedupe(once) == once

    def test_does_not_mutate_input(self, make_transaction):
        txn = make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15))

        dedupe([txn])

        assert txn.dedup_hash is None

    def test_stats(self, make_transaction):
        transactions = [
            make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15)),
            make_transaction("NETFLIX.COM", "15.49", date(2024, 1, 15)),
            make_transaction("SPOTIFY", "10.99", date(2024, 1, 16)),
            make_transaction("HULU", "7.99", date(2024, 1, 17)),
        ]

        result = dedupe_with_stats(transactions)

        assert result.stats["total_checked"] == 4
        assert result.stats["unique"] == 3
        assert result.stats["duplicates_removed"] == 1
        assert result.stats["duplicate_rate"] == 0.25
        assert len(result.duplicates) == 1

    def test_empty(self, detector):
        result = detector.dedupe_with_stats([])

        assert result.unique_transactions == []
        assert result.stats["duplicate_rate"] == 0

    def test_completeness_score(self, detector, make_transaction):
        bare = make_transaction("X", "1.00", date(2024, 1, 1), description="")
        full = make_transaction(
            "X", "1.00", date(2024, 1, 1),
            category="misc", balance=Decimal("10.00"), raw_line="raw"
        )

        assert detector.completeness_score(bare) == 1
        assert detector.completeness_score(full) == 6


class TestMergeOverlappingStatements:
    """Tests for statement merging."""

    def test_disjoint_statements_keep_all_transactions(self, make_transaction):
        june = make_statement(
            date(2023, 6, 1), date(2023, 6, 30),
            [make_transaction("NETFLIX.COM", "15.49", date(2023, 6, 3))]
        )
        july = make_statement(
            date(2023, 7, 1), date(2023, 7, 31),
            [
                make_transaction("NETFLIX.COM", "15.49", date(2023, 7, 3)),
                make_transaction("SPOTIFY", "10.99", date(2023, 7, 15)),
            ]
        )

        merged = merge_overlapping_statements([july, june])

        assert len(merged) == 2
        assert sum(len(s.transactions) for s in merged) == 3
        assert merged[0].start_date == date(2023, 6, 1)

    def test_overlapping_statements_merge(self, make_transaction):
        netflix = make_transaction("NETFLIX.COM", "15.49", date(2023, 6, 20))
        first = make_statement(
            date(2023, 6, 1), date(2023, 6, 30),
            [netflix, make_transaction("SPOTIFY", "10.99", date(2023, 6, 5))],
            parsing_errors=["bad line a"]
        )
        second = make_statement(
            date(2023, 6, 15), date(2023, 7, 14),
            [
                make_transaction("NETFLIX.COM", "15.49", date(2023, 6, 20)),
                make_transaction("HULU", "7.99", date(2023, 7, 1)),
            ],
            parsing_errors=["bad line b"]
        )

        merged = merge_overlapping_statements([first, second])

        assert len(merged) == 1
        statement = merged[0]
        assert statement.id == first.id
        assert statement.start_date == date(2023, 6, 1)
        assert statement.end_date == date(2023, 7, 14)
        assert len(statement.transactions) == 3
        assert all(t.statement_id == first.id for t in statement.transactions)
        assert statement.parsing_errors == ["bad line a", "bad line b"]

    def test_tied_copy_from_latest_upload_kept(self, make_transaction):
        """Test the copy from the most recently uploaded statement wins a tie."""
        older_copy = make_transaction("NETFLIX.COM", "15.49", date(2023, 6, 20))
        newer_copy = make_transaction("NETFLIX.COM", "15.49", date(2023, 6, 20))
        # Starts first but was uploaded last
        recent_upload = make_statement(
            date(2023, 6, 1), date(2023, 6, 30), [newer_copy],
            uploaded_at=datetime(2024, 2, 1, 9, 0)
        )
        early_upload = make_statement(
            date(2023, 6, 15), date(2023, 7, 14), [older_copy],
            uploaded_at=datetime(2024, 1, 1, 9, 0)
        )

        merged = merge_overlapping_statements([early_upload, recent_upload])

        assert len(merged) == 1
        assert [t.id for t in merged[0].transactions] == [newer_copy.id]
        assert merged[0].transactions[0].statement_id == recent_upload.id
        assert merged[0].uploaded_at == datetime(2024, 2, 1, 9, 0)

    def test_merge_leaves_inputs_untouched(self, make_transaction):
        first = make_statement(date(2023, 6, 1), date(2023, 6, 30), [])
        second = make_statement(
            date(2023, 6, 15), date(2023, 7, 14),
            [make_transaction("HULU", "7.99", date(2023, 7, 1))]
        )

        merge_overlapping_statements([first, second])

        assert first.end_date == date(2023, 6, 30)
        assert second.transactions[0].statement_id == second.id

    def test_different_accounts_not_merged(self, make_transaction):
        a = make_statement(date(2023, 6, 1), date(2023, 6, 30), [], account_number="1111")
        b = make_statement(date(2023, 6, 1), date(2023, 6, 30), [], account_number="2222")

        assert len(merge_overlapping_statements([a, b])) == 2

    def test_different_institutions_not_merged(self):
        a = make_statement(date(2023, 6, 1), date(2023, 6, 30), [], institution="Chase")
        b = make_statement(date(2023, 6, 1), date(2023, 6, 30), [], institution="Discover")

        assert len(merge_overlapping_statements([a, b])) == 2


class TestHelpers:
    """Tests for date overlap and grouping helpers."""

    def test_dates_overlap(self):
        assert dates_overlap(date(2023, 6, 1), date(2023, 6, 30), date(2023, 6, 30), date(2023, 7, 30))
        assert not dates_overlap(date(2023, 6, 1), date(2023, 6, 30), date(2023, 7, 1), date(2023, 7, 31))

    def test_group_by_account_and_period(self, make_transaction):
        transactions = [
            make_transaction("A", "1.00", date(2023, 6, 1), account_name="Checking"),
            make_transaction("B", "2.00", date(2023, 6, 20), account_name="Checking"),
            make_transaction("C", "3.00", date(2023, 7, 1), account_name="Checking"),
            make_transaction("D", "4.00", date(2023, 7, 1)),
        ]

        grouped = group_transactions_by_account_and_period(transactions)

        assert set(grouped) == {"Checking", "Unknown"}
        assert len(grouped["Checking"]["2023-06"]) == 2
        assert len(grouped["Checking"]["2023-07"]) == 1
        assert len(grouped["Unknown"]["2023-07"]) == 1
