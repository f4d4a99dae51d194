"""
Subscription Finder Pipeline

Chains the stages: parse each statement text, merge overlapping statements,
dedupe the combined history, then detect recurring charges.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date

from .duplicate_detector import DuplicateDetector
from .models import Institution, ParsedStatement, RecurringCharge, Transaction
from .recurrence import AdaptiveRecurrenceDetector, RecurrenceDetector
from .statement_parsers import ParserResult, ParserToolkit, parse_statement

logger = logging.getLogger(__name__)


@dataclass
class StatementDocument:
    """Extracted text of one statement file."""

    text: str
    source_file: str = ""
    institution: Institution | None = None


@dataclass
class PipelineResult:
    """Everything one run produced."""

    parse_results: list[ParserResult] = field(default_factory=list)
    statements: list[ParsedStatement] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    recurring_charges: list[RecurringCharge] = field(default_factory=list)

    @property
    def failures(self) -> list[ParserResult]:
        return [r for r in self.parse_results if not r.success]

    @property
    def warnings(self) -> list[str]:
        return [w for r in self.parse_results for w in r.warnings]

    @property
    def summary(self) -> dict:
        return {
            "documents": len(self.parse_results),
            "failed_documents": len(self.failures),
            "statements": len(self.statements),
            "transactions": len(self.transactions),
            "recurring_charges": len(self.recurring_charges),
            "active_charges": sum(1 for c in self.recurring_charges if c.is_active),
        }

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "errors": [
                {"institution": r.institution, "error": r.error_message}
                for r in self.failures
            ],
            "warnings": self.warnings,
            "statements": [s.to_dict() for s in self.statements],
            "recurring_charges": [c.to_dict() for c in self.recurring_charges],
        }


def parse_statements(
    documents: list[StatementDocument],
    max_workers: int = 4,
    toolkit: ParserToolkit | None = None
) -> list[ParserResult]:
    """Parse statement texts concurrently.

    Parsers are stateless, so documents are parsed on a thread pool; results
    come back in input order.

    Args:
        documents: Statement texts to parse
        max_workers: Thread pool size
        toolkit: Shared parser toolkit

    Returns:
        One ParserResult per document, in input order
    """
    if max_workers < 1:
        raise ValueError("max_workers must be a positive integer")
    if not documents:
        return []

    toolkit = toolkit or ParserToolkit()

    def _parse(document: StatementDocument) -> ParserResult:
        return parse_statement(document.text, document.source_file, document.institution, toolkit)

    with ThreadPoolExecutor(max_workers=min(max_workers, len(documents))) as pool:
        results = list(pool.map(_parse, documents))

    failed = sum(1 for r in results if not r.success)
    logger.info(f"Parsed {len(results) - failed} of {len(results)} statements")
    for document, result in zip(documents, results):
        if not result.success:
            logger.warning(f"{document.source_file or '<text>'}: {result.error_message}")

    return results


def build_transaction_history(
    statements: list[ParsedStatement],
    detector: DuplicateDetector | None = None
) -> tuple[list[ParsedStatement], list[Transaction]]:
    """Merge overlapping statements and dedupe across all of them.

    Args:
        statements: Parsed statements in upload order
        detector: Duplicate detector to use

    Returns:
        (merged statements, deduplicated transactions)
    """
    detector = detector or DuplicateDetector()
    merged = detector.merge_overlapping_statements(statements)
    transactions = detector.dedupe([t for s in merged for t in s.transactions])
    return merged, transactions


def find_recurring_charges(
    documents: list[StatementDocument],
    adaptive: bool = True,
    as_of: date | None = None,
    max_workers: int = 4
) -> PipelineResult:
    """Run the whole pipeline over statement texts.

    Args:
        documents: Statement texts
        adaptive: Use the category-aware detector
        as_of: Reference date for activity checks
        max_workers: Parser thread pool size

    Returns:
        PipelineResult
    """
    result = PipelineResult()
    result.parse_results = parse_statements(documents, max_workers=max_workers)

    parsed = [r.statement for r in result.parse_results if r.success]
    result.statements, result.transactions = build_transaction_history(parsed)

    detector = AdaptiveRecurrenceDetector() if adaptive else RecurrenceDetector()
    result.recurring_charges = detector.detect(result.transactions, as_of=as_of)

    logger.info(
        f"Found {len(result.recurring_charges)} recurring charges in "
        f"{len(result.transactions)} transactions from {len(result.statements)} statements"
    )
    return result
