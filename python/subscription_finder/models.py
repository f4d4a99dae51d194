"""
Domain Models

Transactions, parsed statements and detected recurring charges shared by the
parsers, the deduplicator and the recurrence detectors.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class Direction(Enum):
    """Money flow of a transaction relative to the account holder."""
    DEBIT = "debit"
    CREDIT = "credit"


class Institution(Enum):
    """Statement issuers with a dedicated parser."""
    WELLS_FARGO = "Wells Fargo"
    BANK_OF_AMERICA = "Bank of America"
    CHASE = "Chase"
    CAPITAL_ONE = "Capital One"
    DISCOVER = "Discover"
    UNKNOWN = "Unknown"


class Periodicity(Enum):
    """Classified recurrence interval."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    IRREGULAR = "irregular"


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Transaction:
    """A single statement line turned into a transaction."""

    date: date
    description: str
    merchant: str
    normalized_merchant: str
    amount: Decimal
    direction: Direction = Direction.DEBIT
    statement_id: str = ""
    raw_line: str | None = None
    dedup_hash: str | None = None
    account_name: str | None = None
    category: str | None = None
    balance: Decimal | None = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        # Amounts are magnitudes; the sign lives in ``direction``
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))
        self.amount = abs(self.amount)

    @property
    def is_debit(self) -> bool:
        return self.direction is Direction.DEBIT

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.is_debit else self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "description": self.description,
            "merchant": self.merchant,
            "normalized_merchant": self.normalized_merchant,
            "amount": float(self.amount),
            "direction": self.direction.value,
            "statement_id": self.statement_id,
            "account_name": self.account_name,
            "category": self.category,
            "balance": float(self.balance) if self.balance is not None else None,
            "hash": self.dedup_hash,
        }


@dataclass
class ParsedStatement:
    """One statement's metadata and its ordered transactions."""

    account_name: str
    institution: str
    start_date: date
    end_date: date
    transactions: list[Transaction] = field(default_factory=list)
    account_number: str | None = None
    parsing_errors: list[str] = field(default_factory=list)
    source_file: str = ""
    uploaded_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    @property
    def period_key(self) -> str:
        """Year-month the statement starts in, e.g. ``2024-01``."""
        return self.start_date.strftime("%Y-%m")

    @property
    def account_key(self) -> str:
        return f"{self.institution}-{self.account_number or self.account_name}"

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @property
    def total_debits(self) -> Decimal:
        return sum((t.amount for t in self.transactions if t.is_debit), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((t.amount for t in self.transactions if not t.is_debit), Decimal("0"))

    @property
    def summary(self) -> dict:
        return {
            "total_transactions": self.transaction_count,
            "total_debits": float(self.total_debits),
            "total_credits": float(self.total_credits),
            "net_amount": float(self.total_credits - self.total_debits),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_name": self.account_name,
            "account_number": self.account_number,
            "institution": self.institution,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "period": self.period_key,
            "source_file": self.source_file,
            "uploaded_at": self.uploaded_at.isoformat(),
            "transactions": [t.to_dict() for t in self.transactions],
            "parsing_errors": list(self.parsing_errors),
            "summary": self.summary,
        }


@dataclass
class RecurringCharge:
    """A merchant cluster that behaves like a recurring payment."""

    id: str
    merchant: str
    normalized_merchant: str
    transactions: list[Transaction]
    periodicity: Periodicity
    average_amount: Decimal
    amount_variance: float
    confidence: int
    interval_days: int
    is_active: bool
    next_due_date: date | None = None
    category: str | None = None

    @property
    def last_date(self) -> date:
        return self.transactions[-1].date

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "merchant": self.merchant,
            "normalized_merchant": self.normalized_merchant,
            "periodicity": self.periodicity.value,
            "average_amount": float(self.average_amount),
            "amount_variance": self.amount_variance,
            "confidence": self.confidence,
            "interval_days": self.interval_days,
            "is_active": self.is_active,
            "next_due_date": self.next_due_date.isoformat() if self.next_due_date else None,
            "category": self.category,
            "transaction_ids": [t.id for t in self.transactions],
        }
