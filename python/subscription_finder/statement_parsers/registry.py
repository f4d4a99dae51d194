"""
Statement Parser Registry

Detects the institution of a statement text and dispatches to its parser.
"""

import logging

from ..errors import InstitutionMismatch
from ..models import Institution
from .bank_of_america import BankOfAmericaParser
from .capital_one import CapitalOneParser
from .chase import ChaseParser
from .discover import DiscoverParser
from .toolkit import ParserResult, ParserToolkit
from .wells_fargo import WellsFargoParser

logger = logging.getLogger(__name__)

PARSERS = {
    Institution.WELLS_FARGO: WellsFargoParser,
    Institution.BANK_OF_AMERICA: BankOfAmericaParser,
    Institution.CHASE: ChaseParser,
    Institution.CAPITAL_ONE: CapitalOneParser,
    Institution.DISCOVER: DiscoverParser,
}

# Checked in order; card statements mention "chase" or "bank of america" in
# payee names, so the more specific markers come first
DETECTION_MARKERS = [
    (Institution.WELLS_FARGO, ("wells fargo", "wellsfargo")),
    (Institution.CAPITAL_ONE, ("capital one", "capitalone", "venture")),
    (Institution.DISCOVER, ("discover card", "discover it", "discover.com")),
    (Institution.CHASE, ("chase",)),
    (Institution.BANK_OF_AMERICA, ("bank of america", "bankofamerica")),
    (Institution.DISCOVER, ("discover",)),
]


def detect_institution(text: str) -> Institution:
    """Identify the issuing institution from marker keywords.

    Args:
        text: Raw statement text

    Returns:
        Detected Institution, or Institution.UNKNOWN
    """
    lower = (text or "").lower()
    for institution, markers in DETECTION_MARKERS:
        if any(marker in lower for marker in markers):
            return institution
    return Institution.UNKNOWN


def get_parser(institution: Institution, toolkit: ParserToolkit | None = None):
    """Instantiate the parser registered for an institution.

    Raises:
        ValueError: If no parser handles the institution
    """
    parser_class = PARSERS.get(institution)
    if parser_class is None:
        raise ValueError(f"No parser registered for {institution.value}")
    return parser_class(toolkit)


def parse_statement(
    text: str,
    source_file: str = "",
    institution: Institution | None = None,
    toolkit: ParserToolkit | None = None
) -> ParserResult:
    """Parse statement text with the right institution parser.

    The requested (or detected) parser runs first. If it reports an
    institution mismatch, the remaining parsers are tried in registry order
    and the first one that accepts the text wins.

    Args:
        text: Raw statement text
        source_file: Name of the file the text came from
        institution: Institution chosen by the caller, detected when None
        toolkit: Shared toolkit; a default one is created when None

    Returns:
        ParserResult
    """
    toolkit = toolkit or ParserToolkit()
    requested = institution or detect_institution(text)

    first_result = None
    if requested in PARSERS:
        first_result = get_parser(requested, toolkit).parse(text, source_file)
        if not isinstance(first_result.error, InstitutionMismatch):
            return first_result
        logger.warning(f"{source_file or '<text>'} is not a {requested.value} statement, trying others")

    for candidate in PARSERS:
        if candidate is requested:
            continue
        result = get_parser(candidate, toolkit).parse(text, source_file)
        if not isinstance(result.error, InstitutionMismatch):
            logger.info(f"{source_file or '<text>'} parsed as {candidate.value}")
            return result

    if first_result is not None:
        return first_result

    return ParserResult(
        institution=Institution.UNKNOWN.value,
        error=InstitutionMismatch(
            Institution.UNKNOWN.value,
            "Could not identify the institution of this statement"
        ),
    )
