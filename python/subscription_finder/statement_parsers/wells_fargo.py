"""
Wells Fargo Statement Parser

Parses text extracted from Wells Fargo checking and savings statements.
"""

import re
from datetime import date

from ..models import Institution, Transaction
from .toolkit import NUMERIC_DATE_RE, LineContext, ParserResult, ParserToolkit, Section, strip_patterns

_HISTORY = Section("transaction history", balance_column=True)


class WellsFargoParser:
    """Parser for Wells Fargo statement text."""

    INSTITUTION = Institution.WELLS_FARGO

    DATE_RE = NUMERIC_DATE_RE

    # Rows list deposits and withdrawals in separate columns followed by the
    # ending daily balance, so direction comes from the description
    SECTIONS = {
        "Transaction history": _HISTORY,
        "Date Check Number Description": _HISTORY,
        "Date Number Description": _HISTORY,
    }

    TERMINATORS = (
        "Totals",
        "Monthly service fee",
        "Ending Daily Balance",
    )

    MERCHANT_PATTERNS = (
        re.compile(r"^Recurring Payment authorized on \d{1,2}/\d{1,2}\s*", re.IGNORECASE),
        re.compile(r"^Purchase authorized on \d{1,2}/\d{1,2}\s*", re.IGNORECASE),
        re.compile(r"^Recurring Payment\s+", re.IGNORECASE),
        re.compile(r"\s+Card \d{4}.*$", re.IGNORECASE),
        re.compile(r"\s+[SP]\d{12,}.*$"),
    )

    def __init__(self, toolkit: ParserToolkit | None = None):
        self.toolkit = toolkit or ParserToolkit()

    def can_parse(self, text: str) -> bool:
        lower = text.lower()
        if "wells fargo" in lower or "wellsfargo" in lower:
            return True
        return "statement period" in lower and "account number" in lower

    def parse(self, text: str, source_file: str = "") -> ParserResult:
        return self.toolkit.run(self, text, source_file)

    def parse_account_info(self, text: str) -> tuple[str, str | None]:
        number_match = re.search(r"Account number:\s*(\d+)", text)
        account_number = number_match.group(1) if number_match else None

        if re.search(r"\bSavings\b", text) and not re.search(r"\bChecking\b", text):
            return "Wells Fargo Savings", account_number
        return "Wells Fargo Checking", account_number

    def parse_date_range(self, text: str) -> tuple[date | None, date | None]:
        return self.toolkit.parse_date_range(text)

    def parse_line(self, line: str, section: Section | None, ctx: LineContext) -> Transaction:
        return self.toolkit.default_line(self, line, section, ctx)

    def extract_merchant(self, description: str) -> str:
        return strip_patterns(description, self.MERCHANT_PATTERNS)
