"""Configuration management service with Pydantic Settings.

This module provides centralized configuration for the analytics core,
loading and validating environment variables (and an optional ``.env``
file) at startup. Every threshold used by the detectors has a default
matching the documented heuristics, so an empty environment is valid.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class GraphSettings(BaseSettings):
    """Transaction-flow graph settings."""

    model_config = SettingsConfigDict(env_prefix="GRAPH_", extra="ignore")

    critical_path_max_depth: int = Field(
        default=20,
        alias="GRAPH_CRITICAL_PATH_MAX_DEPTH",
        ge=1,
        le=1000,
        description="Hard hop cap for the critical path search",
    )
    top_active_limit: int = Field(
        default=10,
        alias="GRAPH_TOP_ACTIVE_LIMIT",
        ge=1,
        le=1000,
        description="How many most-active wallets/programs to report",
    )


class FundingSettings(BaseSettings):
    """Funding-origin tracking settings."""

    model_config = SettingsConfigDict(env_prefix="FUNDING_", extra="ignore")

    exchange_sources: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("COINBASE", "MAGIC_EDEN", "OPENSEA", "HYPERSPACE", "TENSOR"),
        alias="FUNDING_EXCHANGE_SOURCES",
        description="Transaction origin tags treated as exchanges/marketplaces (comma-separated)",
    )

    @field_validator("exchange_sources", mode="before")
    @classmethod
    def _parse_exchange_sources(cls, v: object) -> tuple[str, ...]:
        if v is None:
            raise ValueError("FUNDING_EXCHANGE_SOURCES must be set")
        if isinstance(v, str):
            return tuple(p.strip().upper() for p in v.split(",") if p.strip())
        if isinstance(v, (list, tuple)):
            return tuple(str(x).upper() for x in v)
        raise TypeError("Invalid FUNDING_EXCHANGE_SOURCES type")


class AnomalySettings(BaseSettings):
    """Thresholds for the clustering-pass anomaly detector."""

    model_config = SettingsConfigDict(env_prefix="ANOMALY_", extra="ignore")

    high_value: Decimal = Field(
        default=Decimal("1000"),
        alias="ANOMALY_HIGH_VALUE",
        description="Summed transfer value at or above which a transaction is high-value",
    )
    rapid_succession_ms: int = Field(
        default=60_000,
        alias="ANOMALY_RAPID_SUCCESSION_MS",
        ge=0,
        le=24 * 3600 * 1000,
        description="Gap (milliseconds) below which adjacent transactions are rapid",
    )
    mixer_transfer_count: int = Field(
        default=10,
        alias="ANOMALY_MIXER_TRANSFER_COUNT",
        ge=1,
        le=10_000,
        description="Native transfer count above which a transaction looks like a mixer",
    )
    mixer_max_fee: Decimal = Field(
        default=Decimal("1000"),
        alias="ANOMALY_MIXER_MAX_FEE",
        description="Fee below which a many-transfer transaction looks like a mixer",
    )
    new_counterparty_window_days: int = Field(
        default=30,
        alias="ANOMALY_NEW_COUNTERPARTY_WINDOW_DAYS",
        ge=0,
        le=3650,
        description="Connections older than this are treated as new again",
    )

    @field_validator("high_value", "mixer_max_fee")
    @classmethod
    def validate_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Anomaly value thresholds must be >= 0")
        return v


class PatternSettings(BaseSettings):
    """Wallet risk-pattern detector configuration."""

    model_config = SettingsConfigDict(env_prefix="PATTERN_", extra="ignore")

    small_input_threshold: Decimal = Field(
        default=Decimal("0.1"),
        alias="PATTERN_SMALL_INPUT_THRESHOLD",
        description="Native transfer amount at or below which an input counts as small",
    )
    small_input_count_threshold: int = Field(
        default=10,
        alias="PATTERN_SMALL_INPUT_COUNT_THRESHOLD",
        ge=1,
        le=1_000_000,
        description="Number of small inputs needed to flag the wallet",
    )
    small_input_time_window_hours: float = Field(
        default=24.0,
        alias="PATTERN_SMALL_INPUT_TIME_WINDOW_HOURS",
        gt=0.0,
        le=3650 * 24,
        description="Recency window (hours before evaluation time) for small inputs",
    )
    token_dump_percentage: float = Field(
        default=90.0,
        alias="PATTERN_TOKEN_DUMP_PERCENTAGE",
        gt=0.0,
        description="Sent/received percentage at or above which a mint counts as dumped",
    )
    token_dump_time_window_hours: float = Field(
        default=1.0,
        alias="PATTERN_TOKEN_DUMP_TIME_WINDOW_HOURS",
        ge=0.0,
        le=3650 * 24,
        description="Maximum first-to-last dump duration (hours) to flag a sudden dump",
    )
    exchange_label_category_code: int = Field(
        default=3011,
        alias="PATTERN_EXCHANGE_LABEL_CATEGORY_CODE",
        description="Entity-label category code identifying a known exchange",
    )
    exchange_recent_limit: int = Field(
        default=100,
        alias="PATTERN_EXCHANGE_RECENT_LIMIT",
        ge=1,
        le=100_000,
        description="How many most recent transactions the exchange-like check inspects",
    )
    exchange_small_amount: Decimal = Field(
        default=Decimal("0.1"),
        alias="PATTERN_EXCHANGE_SMALL_AMOUNT",
        description="Native transfer amount at or below which a transfer counts as small",
    )
    exchange_large_amount: Decimal = Field(
        default=Decimal("10"),
        alias="PATTERN_EXCHANGE_LARGE_AMOUNT",
        description="Native transfer amount at or above which a transfer counts as large",
    )
    exchange_small_count: int = Field(
        default=10,
        alias="PATTERN_EXCHANGE_SMALL_COUNT",
        ge=1,
        le=100_000,
        description="Small transfers needed on the many-transfers side of the flow",
    )
    exchange_large_count: int = Field(
        default=2,
        alias="PATTERN_EXCHANGE_LARGE_COUNT",
        ge=1,
        le=100_000,
        description="Large transfers needed on the few-transfers side of the flow",
    )

    @field_validator("small_input_threshold", "exchange_small_amount", "exchange_large_amount")
    @classmethod
    def validate_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Pattern amount thresholds must be >= 0")
        return v


class WorkerSettings(BaseSettings):
    """Background analysis worker settings."""

    model_config = SettingsConfigDict(env_prefix="WORKER_", extra="ignore")

    result_timeout_seconds: float | None = Field(
        default=60.0,
        alias="WORKER_RESULT_TIMEOUT_SECONDS",
        gt=0.0,
        description="How long the pipeline waits for an offloaded analysis (unset = forever)",
    )


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from solana_wallet_forensics.config import get_settings

        settings = get_settings()
        print(settings.anomaly.high_value)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    graph: GraphSettings = Field(
        default_factory=lambda: GraphSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    funding: FundingSettings = Field(
        default_factory=lambda: FundingSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    anomaly: AnomalySettings = Field(
        default_factory=lambda: AnomalySettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    pattern: PatternSettings = Field(
        default_factory=lambda: PatternSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    worker: WorkerSettings = Field(
        default_factory=lambda: WorkerSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a printable summary of the effective settings."""
        return {
            "graph": {
                "critical_path_max_depth": str(self.graph.critical_path_max_depth),
                "top_active_limit": str(self.graph.top_active_limit),
            },
            "funding": {
                "exchange_sources": ",".join(self.funding.exchange_sources),
            },
            "anomaly": {
                "high_value": str(self.anomaly.high_value),
                "rapid_succession_ms": str(self.anomaly.rapid_succession_ms),
                "mixer_transfer_count": str(self.anomaly.mixer_transfer_count),
                "mixer_max_fee": str(self.anomaly.mixer_max_fee),
                "new_counterparty_window_days": str(self.anomaly.new_counterparty_window_days),
            },
            "pattern": {
                "small_input_threshold": str(self.pattern.small_input_threshold),
                "small_input_count_threshold": str(self.pattern.small_input_count_threshold),
                "small_input_time_window_hours": str(self.pattern.small_input_time_window_hours),
                "token_dump_percentage": str(self.pattern.token_dump_percentage),
                "token_dump_time_window_hours": str(self.pattern.token_dump_time_window_hours),
                "exchange_recent_limit": str(self.pattern.exchange_recent_limit),
                "exchange_small_amount": str(self.pattern.exchange_small_amount),
                "exchange_large_amount": str(self.pattern.exchange_large_amount),
                "exchange_small_count": str(self.pattern.exchange_small_count),
                "exchange_large_count": str(self.pattern.exchange_large_count),
            },
            "worker": {
                "result_timeout_seconds": str(self.worker.result_timeout_seconds or "(none)"),
            },
            "log_level": self.log_level,
        }


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings (idempotent)."""
    effective = settings or get_settings()
    logging.basicConfig(level=effective.get_logging_level(), format=_LOG_FORMAT)
    logging.getLogger().setLevel(effective.get_logging_level())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
