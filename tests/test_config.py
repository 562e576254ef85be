"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from bookingengine.config import EngineConfig, PolicyConfig, ProviderConfig

CONFIG_YAML = """
timezone: Europe/Berlin
policy:
  days_ahead: 7
bookings_file: bookings.json
providers:
  - id: sunny-days
    name: Sunny Days Daycare
    opening_time: "07:00"
    closing_time: "18:00"
    operating_days: [monday, Tue, WED, Tue]
  - id: harbor-clinic
"""


def _write(tmp_path: Path, content: str) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(content, encoding="utf-8")
    return config_path


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_load_from_yaml(self, tmp_path):
        """Test a full configuration file."""
        config = EngineConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        assert config.timezone == "Europe/Berlin"
        assert config.policy.days_ahead == 7
        assert config.policy.min_lead_hours == 24
        assert [p.id for p in config.providers] == ["sunny-days", "harbor-clinic"]
        assert config.providers[0].operating_days == ["Mon", "Tue", "Wed"]
        assert config.bookings_file == tmp_path / "bookings.json"

    def test_schedule_for_provider(self, tmp_path):
        """Test building a domain schedule from config."""
        config = EngineConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        schedule = config.schedule_for("SUNNY-DAYS")

        assert schedule.opening_time == "07:00"
        assert schedule.operating_days == frozenset({"Mon", "Tue", "Wed"})
        assert schedule.timezone == "Europe/Berlin"

    def test_unknown_provider(self, tmp_path):
        """Test that unknown provider ids raise ValueError."""
        config = EngineConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        with pytest.raises(ValueError, match="Unknown provider"):
            config.schedule_for("nope")

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            EngineConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test that broken YAML raises ValueError."""
        with pytest.raises(ValueError, match="Invalid YAML"):
            EngineConfig.load_from_yaml(_write(tmp_path, "providers: [unclosed"))

    def test_non_mapping_root(self, tmp_path):
        """Test that a list at the root is rejected."""
        with pytest.raises(ValueError, match="mapping"):
            EngineConfig.load_from_yaml(_write(tmp_path, "- a\n- b\n"))

    def test_empty_file_uses_defaults(self, tmp_path):
        """Test that an empty file yields the default configuration."""
        config = EngineConfig.load_from_yaml(_write(tmp_path, ""))

        assert config.timezone == "UTC"
        assert config.providers == []
        assert config.policy == PolicyConfig()

    def test_unknown_timezone(self):
        """Test timezone validation."""
        with pytest.raises(PydanticValidationError):
            EngineConfig(timezone="Mars/Olympus_Mons")

    def test_duplicate_provider_ids(self):
        """Test that provider ids must be unique."""
        with pytest.raises(PydanticValidationError, match="Duplicate provider id"):
            EngineConfig(providers=[{"id": "a"}, {"id": "a"}])


class TestProviderConfig:
    """Tests for ProviderConfig."""

    def test_defaults(self):
        """Test the default weekday schedule."""
        provider = ProviderConfig(id="p1")

        assert provider.display_name() == "p1"
        assert provider.operating_days == ["Mon", "Tue", "Wed", "Thu", "Fri"]

    def test_malformed_time(self):
        """Test that malformed times are rejected."""
        with pytest.raises(PydanticValidationError):
            ProviderConfig(id="p1", opening_time="7am")

    def test_closing_before_opening(self):
        """Test that a provider must open before it closes."""
        with pytest.raises(PydanticValidationError, match="closing_time"):
            ProviderConfig(id="p1", opening_time="18:00", closing_time="07:00")

    def test_unknown_weekday(self):
        """Test weekday validation."""
        with pytest.raises(PydanticValidationError, match="Unknown weekday"):
            ProviderConfig(id="p1", operating_days=["Funday"])


class TestPolicyConfig:
    """Tests for PolicyConfig."""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("slot_duration_minutes", 0),
            ("days_ahead", 0),
            ("days_ahead", 61),
            ("min_lead_hours", -1),
            ("max_recurrence_occurrences", 0),
            ("max_recurrence_occurrences", 13),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test range validation of policy values."""
        with pytest.raises(PydanticValidationError):
            PolicyConfig(**{field: value})
