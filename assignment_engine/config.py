"""
Centralized configuration with environment variable overrides.

Slot thresholds, dispatch channels, timeouts and reconciliation tolerances
are configurable here. Nothing is hardcoded in scheduling or engine logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from assignment_engine.logging_context import install_job_filter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(job_id)s] %(levelname)s: %(message)s"

KNOWN_CHANNELS = ("in_app", "email", "chat")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _csv_tuple(env_var: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(env_var, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class SlotConfig:
    """Hour thresholds used to classify a job into half-day / full-day slots."""

    half_day_max_hours: float = _safe_float("HALF_DAY_MAX_HOURS", "3.0")
    full_day_max_hours: float = _safe_float("FULL_DAY_MAX_HOURS", "8.0")
    default_crew_size: int = _safe_int("DEFAULT_CREW_SIZE", "2")


@dataclass(frozen=True)
class DispatchConfig:
    """Confirmation dispatch settings."""

    channels: tuple[str, ...] = _csv_tuple("CONFIRMATION_CHANNELS", "in_app,email,chat")
    confirmation_timeout_hours: float = _safe_float("CONFIRMATION_TIMEOUT_HOURS", "48")
    default_priority_rank: int = _safe_int("DEFAULT_PRIORITY_RANK", "99")
    chat_webhook_api_key: str = os.getenv("CHAT_WEBHOOK_API_KEY", "")


@dataclass(frozen=True)
class ReconciliationConfig:
    """Post-completion hour reconciliation settings."""

    overbooking_tolerance_hours: float = _safe_float("OVERBOOKING_TOLERANCE_HOURS", "0.5")
    vat_rate: float = _safe_float("VAT_RATE", "0.25")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    slots: SlotConfig = field(default_factory=SlotConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    engine_name: str = os.getenv("ENGINE_NAME", "installer-assignment")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.slots.half_day_max_hours <= 0:
        raise ValueError(
            f"HALF_DAY_MAX_HOURS must be > 0, got {config.slots.half_day_max_hours}"
        )
    if config.slots.full_day_max_hours <= config.slots.half_day_max_hours:
        raise ValueError(
            "FULL_DAY_MAX_HOURS must be greater than HALF_DAY_MAX_HOURS, "
            f"got {config.slots.full_day_max_hours}"
        )
    if config.slots.default_crew_size < 1:
        raise ValueError(
            f"DEFAULT_CREW_SIZE must be >= 1, got {config.slots.default_crew_size}"
        )
    if not config.dispatch.channels:
        raise ValueError("CONFIRMATION_CHANNELS must name at least one channel")
    unknown = [c for c in config.dispatch.channels if c not in KNOWN_CHANNELS]
    if unknown:
        raise ValueError(
            f"CONFIRMATION_CHANNELS contains unknown channels {unknown}; "
            f"valid: {list(KNOWN_CHANNELS)}"
        )
    if config.dispatch.confirmation_timeout_hours <= 0:
        raise ValueError(
            "CONFIRMATION_TIMEOUT_HOURS must be > 0, "
            f"got {config.dispatch.confirmation_timeout_hours}"
        )
    if config.reconciliation.overbooking_tolerance_hours < 0:
        raise ValueError(
            "OVERBOOKING_TOLERANCE_HOURS must be >= 0, "
            f"got {config.reconciliation.overbooking_tolerance_hours}"
        )
    if not 0.0 <= config.reconciliation.vat_rate <= 1.0:
        raise ValueError(
            f"VAT_RATE must be between 0.0 and 1.0, got {config.reconciliation.vat_rate}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_job_filter()
    logger.info("Configuration loaded for '%s'", config.engine_name)
    return config


# Singleton instance
settings = load_config()
