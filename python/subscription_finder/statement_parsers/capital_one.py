"""
Capital One Statement Parser

Parses text extracted from Capital One credit card statements.
"""

import re
from datetime import date

from ..models import Direction, Institution, Transaction
from .toolkit import MONTH_NAME_DATE_RE, LineContext, ParserResult, ParserToolkit, Section, strip_patterns

POST_DATE_RE = re.compile(r"^[A-Z][a-z]{2}\.?\s+\d{1,2}(?=\s)")


class CapitalOneParser:
    """Parser for Capital One card statement text."""

    INSTITUTION = Institution.CAPITAL_ONE

    # "Jan 15" transaction date, optionally followed by a posting date
    DATE_RE = MONTH_NAME_DATE_RE

    SECTIONS = {
        "Payments": Section("payments", Direction.CREDIT),
        "Credits": Section("credits", Direction.CREDIT),
        "Transactions": Section("transactions", Direction.DEBIT),
        "Purchases": Section("purchases", Direction.DEBIT),
    }

    TERMINATORS = (
        "Interest Charges",
        "Interest Charged",
        "Summary of Account Activity",
        "Total Transactions",
        "Total Payments",
    )

    MERCHANT_PATTERNS = (
        re.compile(r"^(?:ONLINE\s+)?PAYMENT\s+", re.IGNORECASE),
        re.compile(r"\s*-?\s*THANK YOU.*$", re.IGNORECASE),
        re.compile(r"\s+[A-Z]{2}\s*\d{5}(?:-\d{4})?$"),
        re.compile(r"\s+#\d+\b"),
        re.compile(r"\s+REF\S*\s*\S*$", re.IGNORECASE),
    )

    CARD_NAMES = ("Venture", "Savor", "Quicksilver")

    def __init__(self, toolkit: ParserToolkit | None = None):
        self.toolkit = toolkit or ParserToolkit()

    def can_parse(self, text: str) -> bool:
        lower = text.lower()
        return "capital one" in lower or "capitalone" in lower

    def parse(self, text: str, source_file: str = "") -> ParserResult:
        return self.toolkit.run(self, text, source_file)

    def parse_account_info(self, text: str) -> tuple[str, str | None]:
        number_match = re.search(r"Account ending in (\d{4})", text, re.IGNORECASE)
        account_number = f"****{number_match.group(1)}" if number_match else None

        for card in self.CARD_NAMES:
            if card in text:
                return f"Capital One {card}", account_number
        return "Capital One Card", account_number

    def parse_date_range(self, text: str) -> tuple[date | None, date | None]:
        return self.toolkit.parse_date_range(text)

    def parse_line(self, line: str, section: Section | None, ctx: LineContext) -> Transaction:
        # Payments print as "- $25.00"
        return self.toolkit.default_line(
            self, line, section, ctx,
            negative_means=Direction.CREDIT,
            post_date_re=POST_DATE_RE,
        )

    def extract_merchant(self, description: str) -> str:
        return strip_patterns(description, self.MERCHANT_PATTERNS)
