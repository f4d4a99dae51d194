"""
Chase Statement Parser

Parses text extracted from Chase checking statements.
"""

import re
from datetime import date

from ..models import Direction, Institution, Transaction
from .toolkit import NUMERIC_DATE_RE, LineContext, ParserResult, ParserToolkit, Section, strip_patterns


class ChaseParser:
    """Parser for Chase statement text."""

    INSTITUTION = Institution.CHASE

    DATE_RE = NUMERIC_DATE_RE

    SECTIONS = {
        "DEPOSITS AND ADDITIONS": Section("deposits and additions", Direction.CREDIT),
        "CHECKS PAID": Section("checks paid", Direction.DEBIT),
        "ATM & DEBIT CARD WITHDRAWALS": Section("atm and debit card withdrawals", Direction.DEBIT),
        "ELECTRONIC WITHDRAWALS": Section("electronic withdrawals", Direction.DEBIT),
        "OTHER WITHDRAWALS": Section("other withdrawals", Direction.DEBIT),
        # Newer layout: one signed amount column plus the running balance
        "TRANSACTION DETAIL": Section("transaction detail", balance_column=True, signed=True),
    }

    TERMINATORS = (
        "DAILY ENDING BALANCE",
        "SERVICE CHARGE",
        "Total Deposits and Additions",
        "Total Checks Paid",
        "Total ATM & Debit Card Withdrawals",
        "Total Electronic Withdrawals",
        "Total Other Withdrawals",
    )

    # Patterns whose first group is the merchant
    MERCHANT_CAPTURES = (
        re.compile(r"Online Payment\s+\d+\s+To\s+(.+?)(?:\s+\d{2}/\d{2})?$", re.IGNORECASE),
        re.compile(r"Orig CO Name:\s*(.+?)\s+(?:Orig ID|Desc Date|CO Entry|Descr|Sec):", re.IGNORECASE),
    )

    MERCHANT_PATTERNS = (
        re.compile(r"^Recurring Card Purchase\s+\d{2}/\d{2}\s+", re.IGNORECASE),
        re.compile(r"^Card Purchase(?: With Pin)?\s+\d{2}/\d{2}\s+", re.IGNORECASE),
        re.compile(r"\s+Card\s+\d{4}$", re.IGNORECASE),
    )

    ACCOUNT_NAMES = re.compile(
        r"(Chase (?:Total|Premier Plus|Secure|Business Complete|Sapphire) Checking)"
    )

    def __init__(self, toolkit: ParserToolkit | None = None):
        self.toolkit = toolkit or ParserToolkit()

    def can_parse(self, text: str) -> bool:
        lower = text.lower()
        return "chase" in lower or "jpmorgan" in lower

    def parse(self, text: str, source_file: str = "") -> ParserResult:
        return self.toolkit.run(self, text, source_file)

    def parse_account_info(self, text: str) -> tuple[str, str | None]:
        number_match = re.search(r"Account(?: Number)?:\s*(\d[\d ]*\d)", text)
        account_number = number_match.group(1).replace(" ", "") if number_match else None

        name_match = self.ACCOUNT_NAMES.search(text)
        return (name_match.group(1) if name_match else "Chase Checking"), account_number

    def parse_date_range(self, text: str) -> tuple[date | None, date | None]:
        return self.toolkit.parse_date_range(text)

    def parse_line(self, line: str, section: Section | None, ctx: LineContext) -> Transaction:
        return self.toolkit.default_line(self, line, section, ctx, negative_means=Direction.DEBIT)

    def extract_merchant(self, description: str) -> str:
        for pattern in self.MERCHANT_CAPTURES:
            match = pattern.search(description)
            if match:
                return match.group(1).strip()
        return strip_patterns(description, self.MERCHANT_PATTERNS)
