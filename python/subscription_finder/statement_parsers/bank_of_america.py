"""
Bank of America Statement Parser

Parses text extracted from Bank of America checking statements.
"""

import re
from datetime import date

from ..models import Direction, Institution, Transaction
from .toolkit import NUMERIC_DATE_RE, LineContext, ParserResult, ParserToolkit, Section, strip_patterns


class BankOfAmericaParser:
    """Parser for Bank of America statement text."""

    INSTITUTION = Institution.BANK_OF_AMERICA

    # MM/DD or MM/DD/YY
    DATE_RE = NUMERIC_DATE_RE

    SECTIONS = {
        "Deposits and other credits": Section("deposits", Direction.CREDIT),
        "Withdrawals and other debits": Section("withdrawals", Direction.DEBIT),
        "ATM and debit card subtractions": Section("card withdrawals", Direction.DEBIT),
        "Other subtractions": Section("other subtractions", Direction.DEBIT),
    }

    TERMINATORS = (
        "Service fees",
        "Daily Ending Balance",
        "Daily ledger balances",
        "Total deposits and other credits",
        "Total withdrawals and other debits",
    )

    MERCHANT_PATTERNS = (
        re.compile(r"^BKOFAMERICA ATM\s+(?:\d{2}/\d{2}\s+)?(?:#\S+\s+)?", re.IGNORECASE),
        re.compile(r"^Online (?:Banking )?Payment (?:to|from)\s+", re.IGNORECASE),
        re.compile(r"^Zelle (?:Transfer|Payment) (?:to|from)\s+", re.IGNORECASE),
        re.compile(r"^CHECKCARD\s+(?:\d{4}\s+)?", re.IGNORECASE),
        re.compile(r"^PURCHASE\s+\d{4}\s+", re.IGNORECASE),
        re.compile(r"\s+Conf#\s*\S+.*$", re.IGNORECASE),
        re.compile(r"\s+(?:DES|INDN|CO ID|ID):.*$"),
        re.compile(r"\s+\d{3}-\d{3}-\d{4}.*$"),
        re.compile(r"\s+\d{2}/\d{2}(?:/\d{2,4})?\b.*$"),
        re.compile(r"\s+\d{10,}.*$"),
    )

    def __init__(self, toolkit: ParserToolkit | None = None):
        self.toolkit = toolkit or ParserToolkit()

    def can_parse(self, text: str) -> bool:
        lower = text.lower()
        return "bank of america" in lower or "bankofamerica" in lower

    def parse(self, text: str, source_file: str = "") -> ParserResult:
        return self.toolkit.run(self, text, source_file)

    def parse_account_info(self, text: str) -> tuple[str, str | None]:
        number_match = re.search(r"Account number:\s*([\d ]+\d)", text)
        account_number = number_match.group(1).replace(" ", "") if number_match else None

        if re.search(r"Business\s+(?:\w+\s+)*?Checking", text):
            return "Bank of America Business Checking", account_number
        return "Bank of America Checking", account_number

    def parse_date_range(self, text: str) -> tuple[date | None, date | None]:
        return self.toolkit.parse_date_range(text)

    def parse_line(self, line: str, section: Section | None, ctx: LineContext) -> Transaction:
        # Withdrawals print as negative amounts
        return self.toolkit.default_line(self, line, section, ctx, negative_means=Direction.DEBIT)

    def extract_merchant(self, description: str) -> str:
        return strip_patterns(description, self.MERCHANT_PATTERNS)
