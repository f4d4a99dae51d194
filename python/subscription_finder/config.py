"""
Configuration Module

Loads the static lookup tables (merchant normalization and detection
heuristics) from YAML and validates them into immutable models.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .models import Periodicity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent / "config"


@lru_cache(maxsize=None)
def _word_re(keyword: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(keyword) + r"\b", re.IGNORECASE)


def contains_word(text: str, keyword: str) -> bool:
    """Case-insensitive match of a keyword on word boundaries."""
    return _word_re(keyword).search(text) is not None


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class MerchantTables(_Frozen):
    """Prefix, suffix, location and remap tables for the normalizer."""

    prefixes: tuple[str, ...] = ()
    date_patterns: tuple[str, ...] = ()
    suffix_patterns: tuple[str, ...] = ()
    location_patterns: tuple[str, ...] = ()
    remap: dict[str, str] = Field(default_factory=dict)


class PeriodBand(_Frozen):
    """Inclusive day range for one periodicity."""

    name: Periodicity
    min_days: float
    max_days: float
    ideal_days: int
    bonus: float = 10

    def contains(self, days: float) -> bool:
        return self.min_days <= days <= self.max_days


class CategoryRule(_Frozen):
    """Keyword-matched merchant category with its own amount tolerance."""

    name: str
    keywords: tuple[str, ...]
    amount_tolerance: float
    min_transactions: int = 2

    def matches(self, merchant: str) -> bool:
        return any(contains_word(merchant, keyword) for keyword in self.keywords)


class KnownBiller(_Frozen):
    """A well-known subscription and its usual price points."""

    keyword: str
    periodicity: Periodicity = Periodicity.MONTHLY
    typical_prices: tuple[float, ...] = ()

    def matches(self, merchant: str) -> bool:
        return contains_word(merchant, self.keyword)


class SimilarityThresholds(_Frozen):
    baseline: float = 0.8
    adaptive: float = 0.75
    merge_baseline: float = 0.9
    merge_adaptive: float = 0.85


class TierValues(_Frozen):
    baseline: float
    adaptive: float


class ActivityRules(_Frozen):
    tolerance_multiplier: float = 1.5
    long_period_multiplier: float = 2.0
    long_periods: tuple[Periodicity, ...] = (Periodicity.SEMIANNUAL, Periodicity.ANNUAL)

    def multiplier_for(self, periodicity: Periodicity) -> float:
        if periodicity in self.long_periods:
            return self.long_period_multiplier
        return self.tolerance_multiplier


class ConfidenceWeights(_Frozen):
    """Additive penalties and bonuses of the confidence score."""

    interval_cv_weight: float = 100
    outlier_weight: float = 30
    amount_excess_weight: float = 50
    expected_amount_variance: float = 0.20
    per_transaction_bonus: float = 2
    transaction_bonus_cap: float = 10
    known_biller_price_bonus: float = 20
    known_biller_name_bonus: float = 10
    known_biller_price_tolerance: float = 0.10


class DetectionConfig(_Frozen):
    """All recurrence detection heuristics."""

    similarity: SimilarityThresholds = SimilarityThresholds()
    amount_tolerance: TierValues = TierValues(baseline=0.20, adaptive=0.25)
    merge_amount_tolerance: TierValues = TierValues(baseline=0.10, adaptive=0.15)
    min_transactions: int = 2
    outlier_std_devs: float = 2.5
    projection_min_confidence: int = 40
    min_reported_confidence: int = 40
    periodicity_bands: tuple[PeriodBand, ...]
    irregular_bonus: float = -25
    activity: ActivityRules = ActivityRules()
    confidence: ConfidenceWeights = ConfidenceWeights()
    categories: tuple[CategoryRule, ...] = ()
    excluded_keywords: tuple[str, ...] = ()
    known_billers: tuple[KnownBiller, ...] = ()

    def band_for(self, periodicity: Periodicity) -> PeriodBand | None:
        for band in self.periodicity_bands:
            if band.name is periodicity:
                return band
        return None

    def category_for(self, merchant: str) -> CategoryRule | None:
        for rule in self.categories:
            if rule.matches(merchant):
                return rule
        return None


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}")
    return data


@lru_cache(maxsize=None)
def _load_merchant_tables(config_dir: Path) -> MerchantTables:
    path = config_dir / "merchants.yaml"
    try:
        tables = MerchantTables(**_read_yaml(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid merchant tables in {path}: {e}") from e

    logger.debug(
        f"Loaded {len(tables.prefixes)} prefixes and "
        f"{len(tables.remap)} merchant remaps from {path}"
    )
    return tables


@lru_cache(maxsize=None)
def _load_detection_config(config_dir: Path) -> DetectionConfig:
    path = config_dir / "detection.yaml"
    try:
        config = DetectionConfig(**_read_yaml(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid detection config in {path}: {e}") from e

    logger.debug(
        f"Loaded {len(config.periodicity_bands)} periodicity bands, "
        f"{len(config.categories)} categories, "
        f"{len(config.known_billers)} known billers from {path}"
    )
    return config


def load_merchant_tables(config_dir: Path | str | None = None) -> MerchantTables:
    """Load the normalizer tables once per configuration directory.

    Args:
        config_dir: Directory holding ``merchants.yaml``; defaults to the
            tables shipped with the package

    Returns:
        Frozen MerchantTables
    """
    return _load_merchant_tables(Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR)


def load_detection_config(config_dir: Path | str | None = None) -> DetectionConfig:
    """Load the detection heuristics once per configuration directory.

    Args:
        config_dir: Directory holding ``detection.yaml``; defaults to the
            tables shipped with the package

    Returns:
        Frozen DetectionConfig
    """
    return _load_detection_config(Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR)
