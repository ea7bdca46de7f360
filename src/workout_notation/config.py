"""Configuration settings for the workout notation service."""
import os
from typing import List, Literal


EnvironmentType = Literal["development", "staging", "production"]
HostMode = Literal["thread", "process"]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"

    # Parser host
    PARSER_HOST_MODE: HostMode = "thread"
    PARSER_HOST_TIMEOUT_SECONDS: float = 5.0
    PARSER_HOST_RESTART_BACKOFF_SECONDS: float = 1.0

    # Exercise catalog
    EXERCISE_CATALOG_URL: str | None = None
    EXERCISE_CATALOG_TIMEOUT_SECONDS: float = 10.0

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"

        # Parser host
        mode = os.getenv("PARSER_HOST_MODE", "thread").lower()
        self.PARSER_HOST_MODE = mode if mode in ("thread", "process") else "thread"  # type: ignore
        self.PARSER_HOST_TIMEOUT_SECONDS = _float_env("PARSER_HOST_TIMEOUT_SECONDS", 5.0)
        self.PARSER_HOST_RESTART_BACKOFF_SECONDS = _float_env("PARSER_HOST_RESTART_BACKOFF_SECONDS", 1.0)

        # Exercise catalog
        self.EXERCISE_CATALOG_URL = os.getenv("EXERCISE_CATALOG_URL") or None
        self.EXERCISE_CATALOG_TIMEOUT_SECONDS = _float_env("EXERCISE_CATALOG_TIMEOUT_SECONDS", 10.0)

        # CORS
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.CORS_ALLOW_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]
        else:
            self.CORS_ALLOW_ORIGINS = list(Settings.CORS_ALLOW_ORIGINS)


settings = Settings()
