"""
Centralized configuration with environment variable overrides.

Session lifetimes, scheduler defaults, storage locations, voice models and
integration endpoints are all configurable here. Nothing is hardcoded in
orchestrator or scheduler logic.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from src.logging_context import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)


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
    return os.getenv(env_var, default).strip().lower() not in ("false", "0", "no", "off")


def _is_timezone_valid(zone_name: str) -> bool:
    try:
        ZoneInfo(zone_name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


@dataclass(frozen=True)
class SessionConfig:
    """Dialog session lifetime, sweep interval and the local calendar zone."""

    ttl_minutes: int = _safe_int("SESSION_TTL_MINUTES", "10")
    sweep_interval_sec: float = _safe_float("SESSION_SWEEP_INTERVAL", "60")
    default_session_id: str = os.getenv("DEFAULT_SESSION_ID", "default")
    timezone: str = os.getenv("LOCAL_TIMEZONE", "Europe/Amsterdam")


@dataclass(frozen=True)
class SchedulerConfig:
    """Recurring workflow defaults."""

    default_interval: str = os.getenv("DEFAULT_WORKFLOW_INTERVAL", "P3M")
    fallback_period_days: int = _safe_int("SCHEDULE_FALLBACK_DAYS", "90")
    max_executions: int = _safe_int("MAX_EXECUTION_HISTORY", "100")


@dataclass(frozen=True)
class StorageConfig:
    """Location of the JSON record files."""

    data_dir: str = os.getenv("DATA_DIR", "data")


@dataclass(frozen=True)
class VoiceConfig:
    """Speech and intent model settings."""

    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    elevenlabs_api_key: str = os.getenv("ELEVENLABS_API_KEY", "")
    stt_model: str = os.getenv("STT_MODEL", "whisper-1")
    stt_language: str = os.getenv("STT_LANGUAGE", "nl")
    intent_model: str = os.getenv("INTENT_MODEL", "gpt-4o-mini")
    intent_temperature: float = _safe_float("INTENT_TEMPERATURE", "0.1")
    tts_model: str = os.getenv("TTS_MODEL", "eleven_multilingual_v2")
    tts_voice_id: str = os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM")


@dataclass(frozen=True)
class IntegrationConfig:
    """External automation and calendar endpoints."""

    calendar_webhook_url: str = os.getenv("CALENDAR_WEBHOOK_URL", "")
    automation_base_url: str = os.getenv("AUTOMATION_BASE_URL", "http://localhost:3001")
    headless: bool = _safe_bool("HEADLESS", "true")
    appointment_minutes: int = _safe_int("APPOINTMENT_MINUTES", "30")
    webhook_timeout_sec: float = _safe_float("WEBHOOK_TIMEOUT", "10.0")


@dataclass(frozen=True)
class ProfileDefaults:
    """Profile written on first read when none has been saved yet."""

    name: str = os.getenv("DEFAULT_PROFILE_NAME", "Jan de Vries")
    email: str = os.getenv("DEFAULT_PROFILE_EMAIL", "jan.devries@email.nl")
    phone: str = os.getenv("DEFAULT_PROFILE_PHONE", "06-12345678")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    session: SessionConfig = field(default_factory=SessionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    integrations: IntegrationConfig = field(default_factory=IntegrationConfig)
    profile: ProfileDefaults = field(default_factory=ProfileDefaults)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "LifeAdmin")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.session.ttl_minutes < 1:
        raise ValueError(
            f"SESSION_TTL_MINUTES must be >= 1, got {config.session.ttl_minutes}"
        )
    if config.session.sweep_interval_sec <= 0:
        raise ValueError(
            f"SESSION_SWEEP_INTERVAL must be > 0, got {config.session.sweep_interval_sec}"
        )
    if not _is_timezone_valid(config.session.timezone):
        raise ValueError(f"LOCAL_TIMEZONE is not a known zone: {config.session.timezone!r}")
    if config.scheduler.fallback_period_days < 1:
        raise ValueError(
            "SCHEDULE_FALLBACK_DAYS must be >= 1, "
            f"got {config.scheduler.fallback_period_days}"
        )
    if config.scheduler.max_executions < 1:
        raise ValueError(
            f"MAX_EXECUTION_HISTORY must be >= 1, got {config.scheduler.max_executions}"
        )
    if not 0.0 <= config.voice.intent_temperature <= 2.0:
        raise ValueError(
            f"INTENT_TEMPERATURE must be between 0.0 and 2.0, got {config.voice.intent_temperature}"
        )
    if config.integrations.appointment_minutes < 1:
        raise ValueError(
            f"APPOINTMENT_MINUTES must be >= 1, got {config.integrations.appointment_minutes}"
        )
    if config.integrations.webhook_timeout_sec <= 0:
        raise ValueError(
            f"WEBHOOK_TIMEOUT must be > 0, got {config.integrations.webhook_timeout_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    configure_logging(getattr(logging, config.log_level.upper(), logging.INFO))
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
