"""Configuration management for the Library Loans service.

Settings are loaded from the environment (``LIBRARY_LOANS_`` prefix) and an
optional ``.env`` file, validated with Pydantic v2.
"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibraryConfig(BaseSettings):
    """Library Loans service configuration.

    Covers three concerns:
    1. Persistence - where the record store lives
    2. Loan rules - how many days before a loan counts as late
    3. Ambient stack - logging level and Logfire export switches
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_LOANS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Service Metadata ===

    service_name: str = Field(
        default="library-loans",
        description="Service name used in log records and spans",
        pattern=r"^[a-z0-9-]+$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Explicit SQLAlchemy URL; takes precedence over database_path",
    )

    # === Loan Rules ===

    late_loan_days: int = Field(
        default=4,
        description="Loans started more than this many days ago are late",
        ge=0,
    )

    late_loan_message: str = Field(
        default="Attention! You have a late loan. Please return the book as soon as possible.",
        description="Message body sent to customers holding late loans",
        min_length=1,
    )

    # === Pagination ===

    default_page_size: int = Field(
        default=20,
        description="Page size used when a search does not ask for one",
        ge=1,
    )

    max_page_size: int = Field(
        default=100,
        description="Largest page size a search may request",
        ge=1,
        le=1000,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Observability ===

    logfire_send: bool = Field(
        default=False,
        description="Export spans to Logfire (requires LOGFIRE_TOKEN)",
    )

    logfire_console: bool = Field(
        default=False,
        description="Print spans to the console",
    )

    # === Validation Methods ===

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the database path to an absolute path."""
        return v.absolute()

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "LibraryConfig":
        """Ensure the default page size fits under the maximum."""
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


# === Global Configuration Instance ===


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LibraryConfig | None = None


def get_config() -> LibraryConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LibraryConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
