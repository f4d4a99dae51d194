"""Institution statement parsers."""

from .bank_of_america import BankOfAmericaParser
from .capital_one import CapitalOneParser
from .chase import ChaseParser
from .discover import DiscoverParser
from .registry import PARSERS, detect_institution, get_parser, parse_statement
from .toolkit import ParserResult, ParserToolkit, Section, StatementParser
from .wells_fargo import WellsFargoParser

__all__ = [
    "BankOfAmericaParser",
    "CapitalOneParser",
    "ChaseParser",
    "DiscoverParser",
    "WellsFargoParser",
    "PARSERS",
    "ParserResult",
    "ParserToolkit",
    "Section",
    "StatementParser",
    "detect_institution",
    "get_parser",
    "parse_statement",
]
