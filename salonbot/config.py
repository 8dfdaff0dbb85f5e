"""
Centralized configuration with environment variable overrides.

Business hours, slot grid, session expiry and storage settings are
configurable here. Nothing is hardcoded in the booking flow or tools.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime

from dotenv import load_dotenv

from salonbot.logging_context import install_session_key_filter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(session_key)s]: %(message)s"


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


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


def _is_clock_time(value: str) -> bool:
    try:
        datetime.strptime(value, "%H:%M")
        return True
    except ValueError:
        return False


@dataclass(frozen=True)
class BusinessConfig:
    """Salon-facing settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "Bella Salon")
    currency: str = os.getenv("BUSINESS_CURRENCY", "INR")
    currency_symbol: str = os.getenv("BUSINESS_CURRENCY_SYMBOL", "₹")
    opening_time: str = os.getenv("OPENING_TIME", "09:00")
    closing_time: str = os.getenv("CLOSING_TIME", "19:00")
    slot_interval_minutes: int = _safe_int("SLOT_INTERVAL_MINUTES", "30")
    booking_window_days: int = _safe_int("BOOKING_WINDOW_DAYS", "7")
    booking_note: str = os.getenv("BOOKING_NOTE", "Booked via WhatsApp Bot")
    default_customer_name: str = os.getenv("DEFAULT_CUSTOMER_NAME", "WhatsApp Customer")


@dataclass(frozen=True)
class SessionConfig:
    """Conversation session lifecycle settings."""

    inactivity_timeout_hours: float = _safe_float("SESSION_TIMEOUT_HOURS", "24")
    max_input_length: int = _safe_int("MAX_INPUT_LENGTH", "500")


@dataclass(frozen=True)
class StorageConfig:
    """Relational storage settings."""

    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./data/salonbot.db")
    echo_sql: bool = _safe_bool("DB_ECHO", "false")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    default_tenant_id: str = os.getenv("DEFAULT_TENANT_ID", "bella-salon")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    biz = config.business
    for name, value in [("OPENING_TIME", biz.opening_time), ("CLOSING_TIME", biz.closing_time)]:
        if not _is_clock_time(value):
            raise ValueError(f"{name} must be HH:MM, got {value!r}")
    if biz.opening_time >= biz.closing_time:
        raise ValueError(
            f"OPENING_TIME must be before CLOSING_TIME, got {biz.opening_time}-{biz.closing_time}"
        )
    if not 5 <= biz.slot_interval_minutes <= 240:
        raise ValueError(
            f"SLOT_INTERVAL_MINUTES must be between 5 and 240, got {biz.slot_interval_minutes}"
        )
    if biz.booking_window_days < 1:
        raise ValueError(
            f"BOOKING_WINDOW_DAYS must be >= 1, got {biz.booking_window_days}"
        )
    if config.session.inactivity_timeout_hours <= 0:
        raise ValueError(
            "SESSION_TIMEOUT_HOURS must be > 0, "
            f"got {config.session.inactivity_timeout_hours}"
        )
    if config.session.max_input_length < 1:
        raise ValueError(
            f"MAX_INPUT_LENGTH must be >= 1, got {config.session.max_input_length}"
        )
    if not config.storage.database_url:
        raise ValueError("DATABASE_URL must not be empty")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_session_key_filter()
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
