# config.py
# Runtime settings, read from environment variables.

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError

STORAGE_BACKENDS = ("memory", "file")


class Settings(BaseModel):
    """Settings for one running instance of the game service."""
    environment: str = Field(default="development", description="development, staging or production.")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, gt=0, lt=65536)
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="simple", description="simple or detailed.")
    storage_backend: str = Field(default="memory", description="Where game sessions are kept: memory or file.")
    data_dir: str = Field(default="./data", description="Directory for the file storage backend.")
    session_ttl_seconds: Optional[int] = Field(
        default=3600,
        gt=0,
        description="How long an in-memory game session lives after its last save. None keeps it forever."
    )
    leaderboard_path: Optional[str] = Field(
        default=None,
        description="JSON file the leaderboard is saved to. None keeps it in memory only."
    )
    leaderboard_max_entries: int = Field(default=1000, gt=0)
    rate_limit: str = Field(default="100/minute", description="slowapi limit applied to every endpoint.")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from environment variables, falling back to defaults for unset ones.
        Args:
            environ (Mapping[str, str]): Variables to read. Defaults to os.environ.
        Returns:
            Settings: The parsed settings.
        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        environ = os.environ if environ is None else environ
        mapping = {
            "ENVIRONMENT": "environment",
            "HOST": "host",
            "PORT": "port",
            "LOG_LEVEL": "log_level",
            "LOG_FORMAT": "log_format",
            "STORAGE_BACKEND": "storage_backend",
            "DATA_DIR": "data_dir",
            "SESSION_TTL_SECONDS": "session_ttl_seconds",
            "LEADERBOARD_PATH": "leaderboard_path",
            "LEADERBOARD_MAX_ENTRIES": "leaderboard_max_entries",
            "RATE_LIMIT": "rate_limit",
        }
        values = {field: environ[var] for var, field in mapping.items() if environ.get(var)}
        if environ.get("CORS_ORIGINS"):
            values["cors_origins"] = [o.strip() for o in environ["CORS_ORIGINS"].split(",") if o.strip()]

        try:
            settings = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

        if settings.storage_backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"Unknown STORAGE_BACKEND '{settings.storage_backend}', expected one of {STORAGE_BACKENDS}"
            )
        return settings
