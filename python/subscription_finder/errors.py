"""
Failure taxonomy for statement parsing and configuration loading.

Parsers never raise these to their callers: line failures are recorded on the
statement and terminal failures are returned inside a ``ParserResult``.
"""


class StatementParseError(Exception):
    """Base class for statement parsing failures."""


class InstitutionMismatch(StatementParseError):
    """Text does not carry the layout signature a parser expects."""

    def __init__(self, institution: str, message: str | None = None):
        self.institution = institution
        super().__init__(message or f"This does not appear to be a {institution} statement")


class MalformedStatement(StatementParseError):
    """Text is empty or lacks the structure any statement must have."""


class LineParseFailure(StatementParseError):
    """A candidate transaction line could not be decomposed."""

    def __init__(self, line: str, reason: str, section: str | None = None):
        self.line = line
        self.reason = reason
        self.section = section
        label = f"{section} line" if section else "line"
        super().__init__(f"Failed to parse {label} ({reason}): {line}")


class NoTransactionsFound(StatementParseError):
    """Primary and fallback extraction both found nothing."""


class ConfigError(Exception):
    """A static configuration table is missing or invalid."""
