"""
Configuration Tests

Tests for loading and validating the YAML lookup tables.
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from pydantic import ValidationError

from subscription_finder.config import (
    DetectionConfig,
    load_detection_config,
    load_merchant_tables,
)
from subscription_finder.errors import ConfigError
from subscription_finder.models import Periodicity


class TestDetectionConfig:
    """Tests for the packaged detection heuristics."""

    @pytest.fixture
    def config(self, config_dir):
        return load_detection_config(config_dir)

    def test_defaults_loaded(self, config):
        assert config.min_transactions == 2
        assert config.similarity.baseline == 0.8
        assert config.amount_tolerance.adaptive == 0.25
        assert len(config.periodicity_bands) == 6

    def test_loaded_once(self, config_dir):
        assert load_detection_config(config_dir) is load_detection_config(str(config_dir))

    def test_band_for(self, config):
        assert config.band_for(Periodicity.MONTHLY).ideal_days == 30
        assert config.band_for(Periodicity.IRREGULAR) is None

    def test_category_for(self, config):
        assert config.category_for("CITY ELECTRIC").name == "utilities"
        assert config.category_for("NETFLIX").name == "streaming"
        assert config.category_for("ACME STORAGE") is None

    def test_category_keywords_match_whole_words(self, config):
        assert config.category_for("VEGAS BUFFET") is None
        assert config.category_for("LAWSON STORE") is None
        assert config.category_for("AT&T WIRELESS").name == "telecom"

    def test_activity_multiplier(self, config):
        assert config.activity.multiplier_for(Periodicity.MONTHLY) == 1.5
        assert config.activity.multiplier_for(Periodicity.ANNUAL) == 2.0

    def test_frozen(self, config):
        with pytest.raises(ValidationError):
            config.min_transactions = 5


class TestMerchantTables:
    """Tests for the packaged merchant tables."""

    def test_tables_loaded(self, config_dir):
        tables = load_merchant_tables(config_dir)

        assert "POS" in tables.prefixes
        assert tables.remap["NETFLIX"] == "NETFLIX"


class TestConfigErrors:
    """Tests for invalid configuration files."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_detection_config(tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "detection.yaml").write_text("similarity: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_detection_config(tmp_path)

    def test_top_level_must_be_mapping(self, tmp_path):
        (tmp_path / "merchants.yaml").write_text("- POS\n- ACH\n")

        with pytest.raises(ConfigError):
            load_merchant_tables(tmp_path)

    def test_unknown_key_rejected(self, tmp_path):
        (tmp_path / "detection.yaml").write_text("periodicity_bands: []\nbogus: 1\n")

        with pytest.raises(ConfigError, match="Invalid detection config"):
            load_detection_config(tmp_path)

    def test_minimal_file_uses_defaults(self, tmp_path):
        (tmp_path / "detection.yaml").write_text(
            "periodicity_bands:\n"
            "  - {name: monthly, min_days: 25, max_days: 35, ideal_days: 30}\n"
        )

        config = load_detection_config(tmp_path)

        assert isinstance(config, DetectionConfig)
        assert config.min_reported_confidence == 40
        assert config.band_for(Periodicity.MONTHLY).bonus == 10
        assert config.categories == ()
