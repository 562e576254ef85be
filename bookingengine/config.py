"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import FormatError
from .domain.models import WEEKDAY_NAMES, ProviderSchedule
from .domain.recurrence import MAX_OCCURRENCES
from .domain.time_utils import parse_time


class PolicyConfig(BaseModel):
    """Booking policy knobs."""
    min_lead_hours: int = 24
    cancellation_hours: int = 24
    slot_duration_minutes: int = 30
    days_ahead: int = 14
    tour_duration_minutes: int = 30
    max_recurrence_occurrences: int = 12
    default_recurrence_months: int = 3

    @field_validator("slot_duration_minutes", "tour_duration_minutes", "default_recurrence_months")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure durations are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("min_lead_hours", "cancellation_hours")
    @classmethod
    def validate_hours(cls, value: int) -> int:
        """Lead and cancellation windows cannot be negative."""
        if value < 0:
            raise ValueError(f"Hours must not be negative, got {value}")
        return value

    @field_validator("days_ahead")
    @classmethod
    def validate_days_ahead(cls, value: int) -> int:
        """Validate the horizon is between 1 and 60 days."""
        if not 1 <= value <= 60:
            raise ValueError(f"days_ahead must be between 1 and 60, got {value}")
        return value

    @field_validator("max_recurrence_occurrences")
    @classmethod
    def validate_max_occurrences(cls, value: int) -> int:
        if not 1 <= value <= MAX_OCCURRENCES:
            raise ValueError(
                f"max_recurrence_occurrences must be between 1 and {MAX_OCCURRENCES}, got {value}"
            )
        return value


class ProviderConfig(BaseModel):
    """A provider's operating hours."""
    id: str
    name: str = ""
    opening_time: str = "07:00"
    closing_time: str = "18:00"
    operating_days: List[str] = Field(
        default_factory=lambda: ["Mon", "Tue", "Wed", "Thu", "Fri"]
    )

    @field_validator("opening_time", "closing_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Validate HH:MM format."""
        try:
            parse_time(value)
        except FormatError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @field_validator("operating_days")
    @classmethod
    def validate_operating_days(cls, value: List[str]) -> List[str]:
        """Normalise weekday names ("monday" -> "Mon") and drop duplicates."""
        normalized: List[str] = []
        for day in value:
            key = day.strip()[:3].capitalize()
            if key not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday: {day!r}")
            if key not in normalized:
                normalized.append(key)
        return normalized

    @model_validator(mode="after")
    def validate_hours_order(self) -> "ProviderConfig":
        """Ensure the provider opens before it closes."""
        if parse_time(self.closing_time) <= parse_time(self.opening_time):
            raise ValueError("closing_time must be later than opening_time")
        return self

    def display_name(self) -> str:
        return self.name or self.id

    def to_schedule(self, timezone: str) -> ProviderSchedule:
        """Build the domain schedule for this provider."""
        return ProviderSchedule(
            opening_time=self.opening_time,
            closing_time=self.closing_time,
            operating_days=frozenset(self.operating_days),
            timezone=timezone
        )


class EngineConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    providers: List[ProviderConfig] = Field(default_factory=list)
    bookings_file: Optional[Path] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, value: List[ProviderConfig]) -> List[ProviderConfig]:
        """Ensure provider ids are unique."""
        seen: set[str] = set()
        for provider in value:
            if provider.id in seen:
                raise ValueError(f"Duplicate provider id detected: {provider.id}")
            seen.add(provider.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            EngineConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative snapshot paths are resolved against the config file
        if config.bookings_file is not None and not config.bookings_file.is_absolute():
            config.bookings_file = config_path.parent / config.bookings_file

        return config

    def find_provider(self, provider_id: str) -> ProviderConfig | None:
        """Find a provider by id (case-insensitive)."""
        for provider in self.providers:
            if provider.id.lower() == provider_id.lower():
                return provider
        return None

    def schedule_for(self, provider_id: str) -> ProviderSchedule:
        """
        Resolve a provider id to its schedule.

        Raises:
            ValueError: If the provider is not configured
        """
        provider = self.find_provider(provider_id)
        if provider is None:
            raise ValueError(
                f"Unknown provider: '{provider_id}'. "
                f"Configured providers: {', '.join(p.id for p in self.providers) or 'none'}"
            )
        return provider.to_schedule(self.timezone)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
