"""
Subscription Finder

Parses bank and card statement text, merges and dedupes the transactions,
and detects recurring charges such as subscriptions and utility bills.
"""

from .config import DetectionConfig, MerchantTables, load_detection_config, load_merchant_tables
from .duplicate_detector import (
    DeduplicationResult,
    DuplicateDetector,
    dates_overlap,
    dedupe,
    dedupe_with_stats,
    generate_transaction_hash,
    group_transactions_by_account_and_period,
    merge_overlapping_statements,
)
from .errors import (
    ConfigError,
    InstitutionMismatch,
    LineParseFailure,
    MalformedStatement,
    NoTransactionsFound,
    StatementParseError,
)
from .merchant_normalizer import MerchantNormalizer, normalize, similar
from .models import (
    Direction,
    Institution,
    ParsedStatement,
    Periodicity,
    RecurringCharge,
    Transaction,
)
from .pipeline import (
    PipelineResult,
    StatementDocument,
    build_transaction_history,
    find_recurring_charges,
    parse_statements,
)
from .recurrence import AdaptiveRecurrenceDetector, RecurrenceDetector, detect_recurring_charges
from .statement_parsers import ParserResult, detect_institution, parse_statement

__all__ = [
    # Models
    "Direction",
    "Institution",
    "ParsedStatement",
    "Periodicity",
    "RecurringCharge",
    "Transaction",
    # Errors
    "ConfigError",
    "InstitutionMismatch",
    "LineParseFailure",
    "MalformedStatement",
    "NoTransactionsFound",
    "StatementParseError",
    # Configuration
    "DetectionConfig",
    "MerchantTables",
    "load_detection_config",
    "load_merchant_tables",
    # Parsing
    "ParserResult",
    "detect_institution",
    "parse_statement",
    # Merchant Normalization
    "MerchantNormalizer",
    "normalize",
    "similar",
    # Deduplication
    "DeduplicationResult",
    "DuplicateDetector",
    "dates_overlap",
    "dedupe",
    "dedupe_with_stats",
    "generate_transaction_hash",
    "group_transactions_by_account_and_period",
    "merge_overlapping_statements",
    # Recurrence Detection
    "AdaptiveRecurrenceDetector",
    "RecurrenceDetector",
    "detect_recurring_charges",
    # Pipeline
    "PipelineResult",
    "StatementDocument",
    "build_transaction_history",
    "find_recurring_charges",
    "parse_statements",
]
