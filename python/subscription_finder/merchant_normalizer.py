"""
Merchant Normalizer Module

Canonicalizes free-text merchant descriptions so that the many spellings a
biller shows up under on statements compare equal.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

from .config import MerchantTables, load_merchant_tables

logger = logging.getLogger(__name__)

# Characters kept besides letters, digits and spaces
_PUNCTUATION_RE = re.compile(r"[^A-Z0-9\s&\-'.]")
_WHITESPACE_RE = re.compile(r"\s+")


class MerchantNormalizer:
    """Applies the merchant tables to raw descriptions."""

    def __init__(self, tables: MerchantTables | None = None, config_dir: Path | str | None = None):
        """Initialize the normalizer.

        Args:
            tables: Preloaded merchant tables
            config_dir: Directory to load ``merchants.yaml`` from when no
                tables are given
        """
        self.tables = tables or load_merchant_tables(config_dir)

        # Longest prefix first so "POS PURCHASE" wins over "POS"
        self._prefixes = sorted(
            (p.upper() for p in self.tables.prefixes),
            key=len,
            reverse=True
        )
        self._date_patterns = [re.compile(p) for p in self.tables.date_patterns]
        self._suffix_patterns = [re.compile(p, re.IGNORECASE) for p in self.tables.suffix_patterns]
        self._location_patterns = [re.compile(p) for p in self.tables.location_patterns]
        self._remap = sorted(
            ((k.upper(), v) for k, v in self.tables.remap.items()),
            key=lambda item: len(item[0]),
            reverse=True
        )

    def normalize(self, merchant: str) -> str:
        """Return the canonical form of a merchant description.

        Args:
            merchant: Raw merchant or description text

        Returns:
            Uppercased canonical merchant, or "" for empty input
        """
        if not merchant:
            return ""

        normalized = merchant.strip().upper()

        for pattern in self._date_patterns:
            normalized = pattern.sub("", normalized)
        normalized = _WHITESPACE_RE.sub(" ", normalized).strip()

        normalized = self._strip_prefixes(normalized)

        for pattern in self._suffix_patterns:
            normalized = pattern.sub("", normalized).strip()

        for pattern in self._location_patterns:
            normalized = pattern.sub("", normalized).strip()

        normalized = _PUNCTUATION_RE.sub(" ", normalized)
        normalized = _WHITESPACE_RE.sub(" ", normalized).strip(" -")

        for key, label in self._remap:
            if key in normalized:
                return label

        return normalized

    def _strip_prefixes(self, text: str) -> str:
        """Remove boilerplate prefixes until none applies."""
        changed = True
        while changed and text:
            changed = False
            for prefix in self._prefixes:
                if not text.startswith(prefix):
                    continue
                # "POS" must not eat the start of "POSTMATES"
                rest = text[len(prefix):]
                if prefix[-1].isalnum() and rest[:1].isalnum():
                    continue
                text = rest.strip(" -:*")
                changed = True
                break
        return text

    def similar(self, merchant1: str, merchant2: str, threshold: float = 0.8) -> bool:
        """Check whether two normalized merchants name the same biller.

        Args:
            merchant1: First normalized merchant
            merchant2: Second normalized merchant
            threshold: Minimum word-overlap ratio

        Returns:
            True on exact match, containment, or sufficient word overlap
        """
        return similar(merchant1, merchant2, threshold)


def word_overlap(merchant1: str, merchant2: str) -> float:
    """Dice coefficient over the words of two merchants."""
    words1 = merchant1.split()
    words2 = merchant2.split()
    if not words1 or not words2:
        return 0.0

    common = [w for w in words1 if w in words2]
    return (len(common) * 2) / (len(words1) + len(words2))


def similar(merchant1: str, merchant2: str, threshold: float = 0.8) -> bool:
    """Exact match, containment, or word overlap at or above ``threshold``."""
    a = (merchant1 or "").strip().upper()
    b = (merchant2 or "").strip().upper()

    if not a or not b:
        return False
    if a == b:
        return True
    if a in b or b in a:
        return True

    return word_overlap(a, b) >= threshold


@lru_cache(maxsize=1)
def default_normalizer() -> MerchantNormalizer:
    return MerchantNormalizer()


def normalize(merchant: str) -> str:
    """Normalize with the tables shipped in the package."""
    return default_normalizer().normalize(merchant)
