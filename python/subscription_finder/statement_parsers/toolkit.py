"""
Statement Parser Toolkit

Shared helpers for the institution parsers. Parsers hold a ``ParserToolkit``
and describe their layout through class-level tables; the toolkit runs the
common algorithm (signature check, metadata, section segmentation, line
decomposition, year correction, fallback scan) against those tables.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Protocol

from dateutil import parser as date_parser

from ..errors import (
    InstitutionMismatch,
    LineParseFailure,
    MalformedStatement,
    NoTransactionsFound,
    StatementParseError,
)
from ..merchant_normalizer import MerchantNormalizer, default_normalizer
from ..models import Direction, Institution, ParsedStatement, Transaction, new_id

logger = logging.getLogger(__name__)

MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

# Leading date tokens
NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})(?:/(\d{2}|\d{4}))?(?=\s|$)")
MONTH_NAME_DATE_RE = re.compile(r"^([A-Z][a-z]{2})\.?\s+(\d{1,2})(?=\s|$)")

# Decimal amount tokens such as 1,234.56  -45.00  $ 22.37  -$9.99
AMOUNT_RE = re.compile(
    r"(?<![\w.,/])(-\s?)?\$?\s?((?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2})(-)?(?![\d.])"
)

YEAR_RE = re.compile(r"\b(20\d{2})\b")

_RANGE_SEP = r"\s*(?:-|–|—|â€“|to|through|thru)\s*"
_MONTH_DAY_YEAR = r"([A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4})"
_MONTH_DAY = r"([A-Za-z]{3,9}\.?\s+\d{1,2})"
_NUMERIC_FULL = r"(\d{1,2}/\d{1,2}/(?:\d{4}|\d{2}))"

FULL_RANGE_RE = re.compile(_MONTH_DAY_YEAR + _RANGE_SEP + _MONTH_DAY_YEAR, re.IGNORECASE)
SHORT_RANGE_RE = re.compile(
    _MONTH_DAY + _RANGE_SEP + _MONTH_DAY + r",?\s+(\d{4})", re.IGNORECASE
)
NUMERIC_RANGE_RE = re.compile(_NUMERIC_FULL + _RANGE_SEP + _NUMERIC_FULL, re.IGNORECASE)

# Debit boilerplate that contains credit-looking words
DEBIT_MARKERS_RE = re.compile(
    r"authorized on|\bpurchase\b|\bwithdrawal\b|\bbill ?pay\b|\bcheckcard\b|"
    r"\bpayment\b.*\bto\b|\bpayment sent\b|\bdebit\b",
    re.IGNORECASE,
)
CREDIT_KEYWORDS_RE = re.compile(
    r"\b(payments?|deposits?|credits?|refunds?|direct dep|payroll)\b", re.IGNORECASE
)

TRAILING_STATE_RE = re.compile(r"\s+[A-Z]{2}$")


@dataclass(frozen=True)
class Section:
    """A statement section and the direction its rows carry.

    ``direction`` of None means the rows are ambiguous and the direction is
    resolved from the amount sign or the description. ``signed`` marks a
    single amount column where a minus sign is the only direction marker.
    """

    name: str
    direction: Direction | None = None
    balance_column: bool = False
    signed: bool = False


@dataclass
class LineParts:
    """A candidate line split into date token, amounts and description."""

    date_token: str
    date_groups: tuple
    amounts: list[Decimal]
    description: str
    raw_line: str


@dataclass
class LineContext:
    """Statement-level facts every line needs."""

    statement_id: str
    account_name: str
    base_year: int
    start_date: date | None = None
    end_date: date | None = None


@dataclass
class ParserResult:
    """Outcome of parsing one statement text."""

    institution: str
    statement: ParsedStatement | None = None
    error: StatementParseError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.statement is not None

    @property
    def likely_wrong_format(self) -> bool:
        """True when the text parsed but yielded no transactions."""
        return self.success and not self.statement.transactions

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error else None


class StatementParser(Protocol):
    """Capability every institution parser provides."""

    INSTITUTION: Institution

    def can_parse(self, text: str) -> bool:
        ...

    def parse(self, text: str, source_file: str = "") -> ParserResult:
        ...


class ParserToolkit:
    """Helpers composed into each institution parser."""

    YEAR_BOUNDARY_WINDOW_DAYS = 30

    def __init__(
        self,
        normalizer: MerchantNormalizer | None = None,
        year_boundary_window_days: int | None = None
    ):
        """Initialize the toolkit.

        Args:
            normalizer: Merchant normalizer; the packaged tables by default
            year_boundary_window_days: Days a year-less date may fall outside
                the statement window before its year is shifted
        """
        self.normalizer = normalizer or default_normalizer()
        self.year_window = timedelta(
            days=year_boundary_window_days
            if year_boundary_window_days is not None
            else self.YEAR_BOUNDARY_WINDOW_DAYS
        )

    # ------------------------------------------------------------------
    # Full algorithm
    # ------------------------------------------------------------------

    def run(self, parser, text: str, source_file: str = "") -> ParserResult:
        """Run the shared parsing algorithm with a parser's layout tables.

        The parser supplies ``INSTITUTION``, ``DATE_RE``, ``SECTIONS``,
        ``TERMINATORS``, ``can_parse``, ``parse_account_info``,
        ``parse_date_range`` and ``parse_line``.

        Args:
            parser: Institution parser
            text: Raw statement text
            source_file: Name of the file the text came from

        Returns:
            ParserResult holding a statement or a typed error
        """
        institution = parser.INSTITUTION.value
        result = ParserResult(institution=institution)

        try:
            self.require_text(text)
            if not parser.can_parse(text):
                result.error = InstitutionMismatch(institution)
                return result

            lines = self.split_lines(text)
            account_name, account_number = parser.parse_account_info(text)
            start_date, end_date = parser.parse_date_range(text)

            ctx = LineContext(
                statement_id=new_id(),
                account_name=account_name,
                base_year=start_date.year if start_date else self.find_base_year(text),
                start_date=start_date,
                end_date=end_date,
            )

            candidates = self.segment(lines, parser.SECTIONS, parser.TERMINATORS, parser.DATE_RE)
            transactions, errors = self.decompose_all(parser, candidates, ctx)

            if not transactions:
                fallback = self.fallback_candidates(lines, parser.DATE_RE)
                if fallback:
                    logger.warning(
                        f"{institution}: no transactions in known sections, "
                        f"scanning {len(fallback)} dated lines"
                    )
                    result.warnings.append(
                        f"Section extraction found no transactions; "
                        f"fallback scan used on {len(fallback)} lines"
                    )
                    transactions, errors = self.decompose_all(parser, fallback, ctx)

            if start_date is None or end_date is None:
                if not transactions:
                    raise MalformedStatement(
                        f"No statement period or transactions found in {institution} text"
                    )
                start_date = start_date or min(t.date for t in transactions)
                end_date = end_date or max(t.date for t in transactions)

            if not transactions:
                result.warnings.append(str(NoTransactionsFound(
                    f"No transactions found in {institution} statement; "
                    f"the layout may not be supported"
                )))

            result.statement = ParsedStatement(
                id=ctx.statement_id,
                account_name=account_name,
                account_number=account_number,
                institution=institution,
                start_date=start_date,
                end_date=end_date,
                transactions=transactions,
                parsing_errors=errors,
                source_file=source_file,
            )

            logger.info(
                f"Parsed {institution} statement {source_file or '<text>'}: "
                f"{len(transactions)} transactions, {len(errors)} line errors"
            )

        except StatementParseError as e:
            result.error = e
        except Exception as e:
            logger.exception(f"Unexpected error parsing {institution} statement")
            result.error = MalformedStatement(f"Parse error: {e}")

        return result

    def decompose_all(
        self,
        parser,
        candidates: list[tuple[Section | None, str]],
        ctx: LineContext
    ) -> tuple[list[Transaction], list[str]]:
        """Turn candidate lines into transactions, collecting line errors."""
        transactions = []
        errors = []

        for section, line in candidates:
            try:
                transaction = parser.parse_line(line, section, ctx)
                if transaction:
                    transactions.append(transaction)
            except LineParseFailure as e:
                logger.debug(str(e))
                errors.append(str(e))

        return transactions, errors

    # ------------------------------------------------------------------
    # Text structure
    # ------------------------------------------------------------------

    def require_text(self, text: str) -> None:
        if not text or not text.strip():
            raise MalformedStatement("Statement text is empty")

    def split_lines(self, text: str) -> list[str]:
        """Normalize line endings and return stripped lines."""
        if text.startswith("﻿"):
            text = text[1:]
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        return [line.strip() for line in text.split("\n")]

    def find_base_year(self, text: str) -> int:
        year_match = YEAR_RE.search(text)
        return int(year_match.group(1)) if year_match else date.today().year

    def segment(
        self,
        lines: list[str],
        sections: dict[str, Section],
        terminators: tuple[str, ...],
        date_re: re.Pattern
    ) -> list[tuple[Section, str]]:
        """Collect dated lines that sit inside a known section.

        Args:
            lines: Stripped statement lines
            sections: Header string -> Section entered when it is seen
            terminators: Strings that close the current section
            date_re: Leading date token of the institution

        Returns:
            (section, line) pairs in statement order
        """
        current: Section | None = None
        candidates = []

        for line in lines:
            if not line:
                continue

            if date_re.match(line):
                if current is not None:
                    candidates.append((current, line))
                continue

            # Headers and terminators only count on non-transaction lines
            if any(term in line for term in terminators):
                current = None
                continue

            for header, section in sections.items():
                if header in line:
                    current = section
                    break

        return candidates

    def fallback_candidates(self, lines: list[str], date_re: re.Pattern) -> list[tuple[None, str]]:
        """Every dated line holding a decimal amount, ignoring sections."""
        return [
            (None, line) for line in lines
            if line and date_re.match(line) and AMOUNT_RE.search(line[date_re.match(line).end():])
        ]

    # ------------------------------------------------------------------
    # Line decomposition
    # ------------------------------------------------------------------

    def split_line(self, line: str, date_re: re.Pattern, section: Section | None = None) -> LineParts:
        """Split a line into its date token, amount tokens and description.

        Raises:
            LineParseFailure: If the date token or amounts are missing
        """
        section_name = section.name if section else None
        date_match = date_re.match(line)
        if not date_match:
            raise LineParseFailure(line, "no leading date", section_name)

        remaining = line[date_match.end():].strip()
        amount_matches = list(AMOUNT_RE.finditer(remaining))
        if not amount_matches:
            raise LineParseFailure(line, "no amount", section_name)

        amounts = [self.parse_amount(m.group(0)) for m in amount_matches]

        description = AMOUNT_RE.sub(" ", remaining)
        description = re.sub(r"\s+\$\s+", " ", description)
        description = " ".join(description.split()).strip(" $")

        return LineParts(
            date_token=date_match.group(0),
            date_groups=date_match.groups(),
            amounts=amounts,
            description=description,
            raw_line=line,
        )

    def parse_amount(self, amount_str: str) -> Decimal:
        """Parse an amount token to a signed Decimal.

        Args:
            amount_str: Amount string (may include $, commas, sign, CR)

        Returns:
            Parsed Decimal, negative when the token carries a minus sign
        """
        cleaned = amount_str.strip().replace("$", "").replace(" ", "")

        is_negative = False
        if cleaned.startswith("(") and cleaned.endswith(")"):
            cleaned = cleaned[1:-1]
            is_negative = True
        if cleaned.upper().endswith("CR"):
            cleaned = cleaned[:-2]
            is_negative = True
        if cleaned.startswith("-"):
            cleaned = cleaned[1:]
            is_negative = True
        elif cleaned.endswith("-"):
            cleaned = cleaned[:-1]
            is_negative = True

        cleaned = cleaned.replace(",", "")

        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            raise LineParseFailure(amount_str, "unreadable amount")

        return -amount if is_negative else amount

    def pick_amount(self, parts: LineParts, section: Section | None) -> tuple[Decimal, Decimal | None]:
        """Choose the transaction amount and optional running balance.

        The rightmost token is the amount unless the layout has a balance
        column and two or more tokens are present.
        """
        if len(parts.amounts) >= 2 and (section is None or section.balance_column):
            return parts.amounts[-2], parts.amounts[-1]
        return parts.amounts[-1], None

    def infer_direction(self, description: str, default: Direction = Direction.DEBIT) -> Direction:
        """Resolve debit/credit from description keywords."""
        if DEBIT_MARKERS_RE.search(description):
            return Direction.DEBIT
        if CREDIT_KEYWORDS_RE.search(description):
            return Direction.CREDIT
        return default

    def resolve_direction(
        self,
        section: Section | None,
        amount: Decimal,
        description: str,
        negative_means: Direction | None = None
    ) -> Direction:
        """Section first, then the amount sign, then description keywords."""
        if section is not None and section.direction is not None:
            return section.direction
        if negative_means is not None:
            if amount < 0:
                return negative_means
            if section is not None and section.signed:
                return opposite(negative_means)
        return self.infer_direction(description)

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def month_day_date(self, month: int, day: int, ctx: LineContext, line: str) -> date:
        """Build a year-less date from the statement's base year and correct it."""
        try:
            parsed = date(ctx.base_year, month, day)
        except ValueError:
            # Feb 29 of the following year in a statement crossing New Year
            try:
                parsed = date(ctx.base_year + 1, month, day)
            except ValueError:
                raise LineParseFailure(line, f"invalid date {month}/{day}")

        return self.correct_year(parsed, ctx.start_date, ctx.end_date)

    def line_date(self, parts: LineParts, ctx: LineContext) -> date:
        """Date of a decomposed line, numeric or month-name token."""
        groups = parts.date_groups
        first = groups[0]

        if first.isdigit():
            month, day = int(first), int(groups[1])
            year_token = groups[2] if len(groups) > 2 else None
            if year_token:
                year = int(year_token)
                if year < 100:
                    year += 2000 if year < 50 else 1900
                try:
                    return date(year, month, day)
                except ValueError:
                    raise LineParseFailure(parts.raw_line, f"invalid date {parts.date_token}")
            return self.month_day_date(month, day, ctx, parts.raw_line)

        month = MONTHS.get(first[:3].upper())
        if month is None:
            raise LineParseFailure(parts.raw_line, f"unknown month {first}")
        return self.month_day_date(month, int(groups[1]), ctx, parts.raw_line)

    def correct_year(self, value: date, start: date | None, end: date | None) -> date:
        """Shift a year-less date by a year when it lands outside the window."""
        if start is None or end is None:
            return value

        if value > end + self.year_window:
            return shift_year(value, -1)
        if value < start - self.year_window:
            return shift_year(value, 1)
        return value

    def parse_date_range(self, text: str) -> tuple[date | None, date | None]:
        """Find the statement period in the header.

        Handles "Month D, YYYY to/through Month D, YYYY",
        "Month D - Month D, YYYY" and "MM/DD/YYYY - MM/DD/YYYY".
        """
        for match in FULL_RANGE_RE.finditer(text):
            start = _parse_header_date(match.group(1))
            end = _parse_header_date(match.group(2))
            if start and end:
                return start, end

        for match in SHORT_RANGE_RE.finditer(text):
            year = match.group(3)
            start = _parse_header_date(f"{match.group(1)}, {year}")
            end = _parse_header_date(f"{match.group(2)}, {year}")
            if start and end:
                if start > end:
                    start = shift_year(start, -1)
                return start, end

        for match in NUMERIC_RANGE_RE.finditer(text):
            start = _parse_header_date(match.group(1))
            end = _parse_header_date(match.group(2))
            if start and end:
                return start, end

        return None, None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def finish_merchant(self, merchant: str, description: str) -> tuple[str, str]:
        """Drop a trailing location code and normalize.

        Returns:
            (display merchant, normalized merchant)
        """
        merchant = " ".join(merchant.split()).strip(" -*#")
        merchant = TRAILING_STATE_RE.sub("", merchant).strip()
        if not merchant:
            merchant = description
        return merchant, self.normalizer.normalize(merchant)

    def make_transaction(
        self,
        ctx: LineContext,
        txn_date: date,
        description: str,
        merchant: str,
        amount: Decimal,
        direction: Direction,
        raw_line: str,
        balance: Decimal | None = None
    ) -> Transaction:
        display, normalized = self.finish_merchant(merchant, description)
        return Transaction(
            date=txn_date,
            description=description,
            merchant=display,
            normalized_merchant=normalized,
            amount=abs(amount),
            direction=direction,
            statement_id=ctx.statement_id,
            raw_line=raw_line,
            account_name=ctx.account_name,
            balance=balance,
        )

    def default_line(
        self,
        parser,
        line: str,
        section: Section | None,
        ctx: LineContext,
        negative_means: Direction | None = None,
        post_date_re: re.Pattern | None = None
    ) -> Transaction:
        """Decompose a "date description amount [balance]" line.

        Args:
            parser: Parser providing ``DATE_RE`` and ``extract_merchant``
            line: Candidate line
            section: Section the line was found in (None for fallback)
            ctx: Statement context
            negative_means: Direction a minus sign encodes in this layout
            post_date_re: Second (posting) date token to drop from the
                description on card statements

        Returns:
            Transaction
        """
        parts = self.split_line(line, parser.DATE_RE, section)
        if post_date_re is not None:
            parts.description = post_date_re.sub("", parts.description, count=1).strip()
        txn_date = self.line_date(parts, ctx)
        amount, balance = self.pick_amount(parts, section)
        direction = self.resolve_direction(section, amount, parts.description, negative_means)
        merchant = parser.extract_merchant(parts.description)

        return self.make_transaction(
            ctx, txn_date, parts.description, merchant, amount, direction, line, balance
        )


def opposite(direction: Direction) -> Direction:
    return Direction.CREDIT if direction is Direction.DEBIT else Direction.DEBIT


def strip_patterns(text: str, patterns: tuple[re.Pattern, ...]) -> str:
    """Apply removal patterns in order."""
    for pattern in patterns:
        text = pattern.sub("", text).strip()
    return text


def shift_year(value: date, delta: int) -> date:
    try:
        return value.replace(year=value.year + delta)
    except ValueError:
        # Feb 29 moved into a non-leap year
        return value.replace(year=value.year + delta, day=28)


def _parse_header_date(text: str) -> date | None:
    try:
        return date_parser.parse(text.replace("â€“", "").strip()).date()
    except (ValueError, OverflowError):
        return None
