"""Centralized configuration management for plaid-mirror.

This module provides a Pydantic Settings-based configuration system that
consolidates Plaid, Airtable, link-server and sync settings with environment
variable integration, an optional YAML config file, and type validation.
"""

import os
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

# See https://plaid.com/docs/link/customization/#language-and-country
PLAID_SUPPORTED_COUNTRIES = ("US", "CA", "GB", "IE", "ES", "FR", "NL")
PLAID_SUPPORTED_LANGUAGES = ("en", "fr", "es", "nl")


def default_data_dir() -> Path:
    """Directory holding tokens, aliases and the optional config.yaml."""
    return Path(os.getenv("PLAID_MIRROR_DATA_DIR", Path.home() / ".plaid-mirror"))


class PlaidConfig(BaseModel):
    """Plaid API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Plaid client ID")
    secret: str = Field(..., description="Plaid secret key")
    environment: Literal["sandbox", "development", "production"] = Field(
        default="sandbox", description="Plaid environment"
    )
    country_codes: tuple[str, ...] = Field(
        default=("US",), description="Country codes offered in Plaid Link"
    )
    language: str = Field(default="en", description="Plaid Link display language")
    days_requested: int = Field(
        default=365,
        ge=1,
        le=730,
        description="Days of history requested when linking an institution",
    )
    page_size: int = Field(
        default=100, ge=1, le=500, description="Transactions requested per page"
    )
    max_retries: int = Field(
        default=3, ge=0, le=10, description="Retries while a product is not ready"
    )
    retry_delay: float = Field(
        default=1.0, ge=0.1, le=10.0, description="Delay between retries in seconds"
    )

    @field_validator("country_codes")
    @classmethod
    def validate_country_codes(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Only allow countries Plaid Link supports."""
        upper = tuple(c.upper() for c in v)
        unsupported = [c for c in upper if c not in PLAID_SUPPORTED_COUNTRIES]
        if unsupported or not upper:
            raise ValueError(
                f"Unsupported country codes {unsupported}; "
                f"choose from {', '.join(PLAID_SUPPORTED_COUNTRIES)}"
            )
        return upper

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        """Only allow languages Plaid Link supports."""
        if v not in PLAID_SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language {v!r}; "
                f"choose from {', '.join(PLAID_SUPPORTED_LANGUAGES)}"
            )
        return v


class LinkConfig(BaseModel):
    """Local Plaid Link callback server settings."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=9090, ge=1, le=65535, description="Port to serve on")
    timeout_seconds: float = Field(
        default=600.0, gt=0, description="How long to wait for the user"
    )
    open_browser: bool = Field(
        default=True, description="Open the default browser automatically"
    )


class AirtableConfig(BaseModel):
    """Airtable mirror settings."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", description="Airtable personal access token")
    base_id: str = Field(default="", description="Airtable base ID")
    transactions_table: str = Field(default="Transactions")
    accounts_table: str = Field(default="Accounts")


class SyncConfig(BaseModel):
    """Transaction sync window settings."""

    model_config = ConfigDict(frozen=True)

    start_date: date | None = Field(
        default=None,
        description="First day fetched for every item (defaults to days_lookback)",
    )
    start_date_overrides: dict[str, date] = Field(
        default_factory=dict, description="Per-alias start dates"
    )
    days_lookback: int = Field(default=365, ge=1, le=730)
    sandbox_item_id: str | None = Field(
        default=None, description="Item skipped by multi-item commands"
    )


class MirrorSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the PLAID_MIRROR_ prefix.
    For nested configs, use double underscores: PLAID_MIRROR_LINK__PORT

    Settings are also read from ``<data_dir>/config.yaml`` when it exists;
    environment variables take precedence over the file.
    """

    plaid: PlaidConfig = Field(
        default_factory=lambda: PlaidConfig(client_id="", secret="")
    )
    link: LinkConfig = Field(default_factory=LinkConfig)
    airtable: AirtableConfig = Field(default_factory=AirtableConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    data_dir: Path = Field(default_factory=default_data_dir)

    def __init__(self, **kwargs: Any):
        """Initialize settings with legacy environment variable overrides.

        Args:
            **kwargs: Additional configuration overrides
        """
        if "plaid" not in kwargs:
            client_id = os.getenv("PLAID_CLIENT_ID")
            secret = os.getenv("PLAID_SECRET")
            env = os.getenv("PLAID_ENV", "sandbox")

            if client_id and secret:
                plaid_config: dict[str, Any] = {
                    "client_id": client_id,
                    "secret": secret,
                }
                if env in ("sandbox", "development", "production"):
                    plaid_config["environment"] = env
                kwargs["plaid"] = PlaidConfig(**plaid_config)

        if "airtable" not in kwargs:
            api_key = os.getenv("AIRTABLE_KEY")
            base_id = os.getenv("AIRTABLE_BASE_ID")
            if api_key and base_id:
                kwargs["airtable"] = AirtableConfig(api_key=api_key, base_id=base_id)

        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Add the data directory's config.yaml as the lowest priority source."""
        from pydantic_settings import YamlConfigSettingsSource

        init_dict = init_settings.init_kwargs if init_settings else {}
        data_dir = Path(init_dict.get("data_dir") or default_data_dir())  # type: ignore[reportUnknownMemberType]

        yaml_settings = YamlConfigSettingsSource(
            settings_cls, yaml_file=data_dir / "config.yaml"
        )

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLAID_MIRROR_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def sync_start_date(self, alias: str | None = None) -> date:
        """First day to fetch for an item, honouring per-alias overrides."""
        if alias and alias in self.sync.start_date_overrides:
            return self.sync.start_date_overrides[alias]
        if self.sync.start_date is not None:
            return self.sync.start_date
        return date.today() - timedelta(days=self.sync.days_lookback)

    def validate_required_credentials(self, airtable: bool = False) -> None:
        """Validate that required credentials are present.

        Args:
            airtable: Also require Airtable credentials

        Raises:
            ConfigurationError: If any required credential is missing
        """
        errors: list[str] = []

        if not self.plaid.client_id:
            errors.append("PLAID_CLIENT_ID is required")
        if not self.plaid.secret:
            errors.append("PLAID_SECRET is required")
        if airtable:
            if not self.airtable.api_key:
                errors.append("AIRTABLE_KEY is required")
            if not self.airtable.base_id:
                errors.append("AIRTABLE_BASE_ID is required")

        if errors:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(errors)}"
            )


_settings: MirrorSettings | None = None


def get_settings() -> MirrorSettings:
    """Get the cached settings instance, loading it on first use.

    Returns:
        MirrorSettings: The configuration instance

    Raises:
        ConfigurationError: If the configuration cannot be parsed
    """
    global _settings

    if _settings is None:
        try:
            _settings = MirrorSettings()
        except ValueError as e:
            raise ConfigurationError(f"Configuration error: {e}") from e

    return _settings


def reload_settings() -> MirrorSettings:
    """Reload settings from environment variables and config files."""
    clear_settings_cache()
    return get_settings()


def clear_settings_cache() -> None:
    """Forget the cached settings instance."""
    global _settings
    _settings = None
