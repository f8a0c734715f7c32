"""Configuration management for the exam notice board.

This module provides centralized configuration for all pipeline components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Judgment Model (optional):
        GEMINI_API_KEY: Google Gemini API key (GOOGLE_API_KEY accepted as alias).
            When unset, the pipeline runs on heuristics alone.
        VALIDATOR_MODEL: Primary model for open-window validation
        VALIDATOR_FALLBACK_MODEL: Cheaper model tried once if the primary fails
        CONFIDENCE_THRESHOLD: Minimum validator confidence to keep a section

    Retrieval:
        REVALIDATE_SECONDS: Response cache window (also sent as s-maxage)
        FEED_MAX_ITEMS: Secondary feed candidates considered per program
        USER_AGENT: Client identifier sent with every outbound request
        VERIFY_SSL: Verify TLS certificates of official pages and feeds

    Server:
        HOST: Bind address for `main.py serve`
        PORT: Bind port for `main.py serve`

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_DIR: Directory for log files
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _env(key: str, default: str = "") -> str:
    """String environment variable, or default when unset."""
    return os.environ.get(key, default)


def _env_number(key: str, default, cast):
    """Numeric environment variable parsed with cast.

    Raises:
        ValueError: If the variable is set but not a valid number
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return cast(val)
    except ValueError:
        raise ValueError(f"Invalid {cast.__name__} value for {key}: '{val}'")


def _env_int(key: str, default: int) -> int:
    return _env_number(key, default, int)


def _env_float(key: str, default: float) -> float:
    return _env_number(key, default, float)


def _env_bool(key: str, default: bool = False) -> bool:
    """Boolean environment variable; unrecognized values fall back to default."""
    val = os.environ.get(key, "").strip().lower()
    if val in _TRUTHY:
        return True
    if val in _FALSY:
        return False
    return default


DEFAULT_USER_AGENT = "DCAM-NoticeBoard/1.1"


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables. Use Config.load()
    to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Judgment Model ===
    gemini_api_key: str = ""  # GEMINI_API_KEY / GOOGLE_API_KEY - empty disables validation
    # PydanticAI format: provider:model
    validator_model: str = "google-gla:gemini-2.5-pro"  # Primary validator
    validator_fallback_model: str = "google-gla:gemini-2.5-flash"  # Tried once on failure
    confidence_threshold: float = 0.7  # CONFIDENCE_THRESHOLD - Minimum decision confidence

    # === Retrieval ===
    revalidate_seconds: int = 1800  # REVALIDATE_SECONDS - Cache window (30 minutes)
    feed_max_items: int = 6  # FEED_MAX_ITEMS - Feed candidates per program
    user_agent: str = DEFAULT_USER_AGENT  # USER_AGENT
    verify_ssl: bool = True  # VERIFY_SSL

    # === Server ===
    host: str = "0.0.0.0"  # HOST
    port: int = 8080  # PORT

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @property
    def validator_enabled(self) -> bool:
        """Whether the judgment-model validator should run at all."""
        return bool(self.gemini_api_key)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            gemini_api_key=_env("GEMINI_API_KEY") or _env("GOOGLE_API_KEY"),
            validator_model=_env("VALIDATOR_MODEL", "google-gla:gemini-2.5-pro"),
            validator_fallback_model=_env("VALIDATOR_FALLBACK_MODEL", "google-gla:gemini-2.5-flash"),
            confidence_threshold=_env_float("CONFIDENCE_THRESHOLD", 0.7),
            revalidate_seconds=_env_int("REVALIDATE_SECONDS", 1800),
            feed_max_items=_env_int("FEED_MAX_ITEMS", 6),
            user_agent=_env("USER_AGENT", DEFAULT_USER_AGENT),
            verify_ssl=_env_bool("VERIFY_SSL", True),
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8080),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> str | None:
        """Validate configuration values.

        The API key is optional: without it the validator is skipped and
        the heuristic verdict stands on its own.

        Returns:
            Error message string if invalid, None if valid.
        """
        if not 0.0 <= self.confidence_threshold <= 1.0:
            return "CONFIDENCE_THRESHOLD must be between 0 and 1"
        if self.revalidate_seconds <= 0:
            return "REVALIDATE_SECONDS must be positive"
        if self.feed_max_items < 0:
            return "FEED_MAX_ITEMS must be non-negative"
        if not 0 < self.port < 65536:
            return f"Invalid PORT {self.port}"
        if self.validator_enabled and not self.validator_model:
            return "VALIDATOR_MODEL must be set when an API key is configured"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
