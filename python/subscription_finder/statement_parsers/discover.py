"""
Discover Statement Parser

Parses text extracted from Discover card statements.
"""

import re
from datetime import date

from dateutil import parser as date_parser

from ..models import Direction, Institution, Transaction
from .toolkit import (
    MONTH_NAME_DATE_RE,
    LineContext,
    ParserResult,
    ParserToolkit,
    Section,
    shift_year,
    strip_patterns,
)

POST_DATE_RE = re.compile(r"^[A-Z][a-z]{2}\.?\s+\d{1,2}(?=\s)")

OPEN_CLOSE_RE = re.compile(
    r"Open Date:\s*([A-Za-z]{3,9}\.?\s+\d{1,2}(?:,?\s+\d{4})?)\s*[-–]\s*"
    r"Close Date:\s*([A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4})",
    re.IGNORECASE,
)


class DiscoverParser:
    """Parser for Discover card statement text."""

    INSTITUTION = Institution.DISCOVER

    # "Sep 15 Sep 16 NETFLIX.COM ... $ 22.37"
    DATE_RE = MONTH_NAME_DATE_RE

    SECTIONS = {
        "Payments and Credits": Section("payments and credits", Direction.CREDIT),
        "Merchandise": Section("merchandise", Direction.DEBIT),
        "Restaurants": Section("restaurants", Direction.DEBIT),
        "Gasoline": Section("gasoline", Direction.DEBIT),
        "Supermarkets": Section("supermarkets", Direction.DEBIT),
        "Purchases": Section("purchases", Direction.DEBIT),
        "Transactions": Section("transactions", Direction.DEBIT),
    }

    TERMINATORS = (
        "Fees",
        "Interest Charged",
    )

    MERCHANT_PATTERNS = (
        re.compile(r"^(?:INTERNET PAYMENT|PAYMENT RECEIVED)\s*-?\s*", re.IGNORECASE),
        re.compile(r"\s*-?\s*THANK YOU.*$", re.IGNORECASE),
        re.compile(r"\s+#\d+\b"),
    )

    def __init__(self, toolkit: ParserToolkit | None = None):
        self.toolkit = toolkit or ParserToolkit()

    def can_parse(self, text: str) -> bool:
        return "discover" in text.lower()

    def parse(self, text: str, source_file: str = "") -> ParserResult:
        return self.toolkit.run(self, text, source_file)

    def parse_account_info(self, text: str) -> tuple[str, str | None]:
        number_match = re.search(r"Account number ending in (\d{4})", text, re.IGNORECASE)
        account_number = f"****{number_match.group(1)}" if number_match else None

        if "Discover it" in text:
            return "Discover it Card", account_number
        return "Discover Card", account_number

    def parse_date_range(self, text: str) -> tuple[date | None, date | None]:
        """Billing period from "Open Date: ... - Close Date: ..." or the header."""
        match = OPEN_CLOSE_RE.search(text)
        if match:
            try:
                end = date_parser.parse(match.group(2)).date()
                open_text = match.group(1)
                if not re.search(r"\d{4}$", open_text):
                    open_text = f"{open_text}, {end.year}"
                start = date_parser.parse(open_text).date()
                if start > end:
                    start = shift_year(start, -1)
                return start, end
            except (ValueError, OverflowError):
                pass

        return self.toolkit.parse_date_range(text)

    def parse_line(self, line: str, section: Section | None, ctx: LineContext) -> Transaction:
        # Credits print as "-$25.00"
        return self.toolkit.default_line(
            self, line, section, ctx,
            negative_means=Direction.CREDIT,
            post_date_re=POST_DATE_RE,
        )

    def extract_merchant(self, description: str) -> str:
        return strip_patterns(description, self.MERCHANT_PATTERNS)
