"""
Process configuration for StreamScout.

Values come from the environment, after an optional `.env` file is loaded from
the repo root or the current working directory.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or malformed."""

    pass


@dataclass(frozen=True)
class RateLimiterConfig:
    """Token bucket parameters: burst capacity, tokens per interval, interval length."""

    max_tokens: int
    refill_rate: int
    refill_interval_ms: int

    def __post_init__(self) -> None:
        if self.max_tokens <= 0 or self.refill_rate <= 0 or self.refill_interval_ms <= 0:
            raise ConfigurationError(f"Rate limiter values must be positive: {self!r}")

    @property
    def refill_interval_seconds(self) -> float:
        return self.refill_interval_ms / 1000.0


# TMDb: 40 requests per 10 seconds. OMDb and RapidAPI free tier: 10 per second.
DEFAULT_TMDB_LIMIT = RateLimiterConfig(max_tokens=40, refill_rate=4, refill_interval_ms=1000)
DEFAULT_OMDB_LIMIT = RateLimiterConfig(max_tokens=10, refill_rate=10, refill_interval_ms=1000)
DEFAULT_STREAMING_LIMIT = RateLimiterConfig(max_tokens=10, refill_rate=10, refill_interval_ms=1000)


def load_env(*, override: bool = False) -> Path | None:
    repo_root = Path(__file__).resolve().parents[1]
    candidates = [
        repo_root / ".env",
        Path.cwd() / ".env",
    ]
    for path in candidates:
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            return path
    return None


def _env_str(name: str, *fallbacks: str) -> str | None:
    for key in (name, *fallbacks):
        value = (os.getenv(key) or "").strip()
        if value:
            return value
    return None


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def parse_rate_limit(value: str | None, default: RateLimiterConfig) -> RateLimiterConfig:
    """
    Parse a `max_tokens,refill_rate,refill_interval_ms` triple.

    Example: TMDB_RATE_LIMIT=40,4,1000
    """

    raw = (value or "").strip()
    if not raw:
        return default
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ConfigurationError(f"Rate limit must look like 'max,rate,interval_ms', got {raw!r}")
    max_tokens, refill_rate, interval_ms = (int(p) for p in parts)
    return RateLimiterConfig(max_tokens=max_tokens, refill_rate=refill_rate, refill_interval_ms=interval_ms)


def get_cors_origins() -> list[str]:
    """
    Get CORS allowed origins from environment.
    Set CORS_ALLOW_ORIGINS as comma-separated list of origins.
    """
    origins_str = os.getenv("CORS_ALLOW_ORIGINS", "")
    if not origins_str:
        return []
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    tmdb_api_token: str | None = None
    omdb_api_key: str | None = None
    streaming_api_key: str | None = None
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 1024
    upstream_timeout_seconds: float = 10.0
    enrich_deadline_seconds: float = 20.0
    health_cache_ttl_seconds: float = 60.0
    health_timeout_seconds: float = 5.0
    tmdb_rate_limit: RateLimiterConfig = DEFAULT_TMDB_LIMIT
    omdb_rate_limit: RateLimiterConfig = DEFAULT_OMDB_LIMIT
    streaming_rate_limit: RateLimiterConfig = DEFAULT_STREAMING_LIMIT
    log_level: str = "INFO"
    log_format: str = "text"
    cors_origins: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> Settings:
        log_format = (os.getenv("LOG_FORMAT") or "text").strip().lower()
        if log_format not in {"json", "text"}:
            raise ConfigurationError(f"LOG_FORMAT must be 'json' or 'text', got {log_format!r}")
        return cls(
            tmdb_api_token=_env_str("TMDB_API_TOKEN", "TMDB_API_KEY"),
            omdb_api_key=_env_str("OMDB_API_KEY"),
            streaming_api_key=_env_str("STREAMING_API_KEY"),
            cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", 300.0),
            cache_max_entries=_env_int("CACHE_MAX_ENTRIES", 1024),
            upstream_timeout_seconds=_env_float("UPSTREAM_TIMEOUT_SECONDS", 10.0),
            enrich_deadline_seconds=_env_float("ENRICH_DEADLINE_SECONDS", 20.0),
            health_cache_ttl_seconds=_env_float("HEALTH_CACHE_TTL_SECONDS", 60.0),
            health_timeout_seconds=_env_float("HEALTH_TIMEOUT_SECONDS", 5.0),
            tmdb_rate_limit=parse_rate_limit(os.getenv("TMDB_RATE_LIMIT"), DEFAULT_TMDB_LIMIT),
            omdb_rate_limit=parse_rate_limit(os.getenv("OMDB_RATE_LIMIT"), DEFAULT_OMDB_LIMIT),
            streaming_rate_limit=parse_rate_limit(os.getenv("STREAMING_RATE_LIMIT"), DEFAULT_STREAMING_LIMIT),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
            log_format=log_format,
            cors_origins=get_cors_origins(),
        )

    def require_catalog_credentials(self) -> str:
        """
        TMDb is the critical upstream: without its token the service cannot start.

        Missing OMDb / streaming keys only disable those features.
        """

        if not self.tmdb_api_token:
            raise ConfigurationError("TMDB_API_TOKEN is not set.")
        if not self.omdb_api_key:
            logger.warning("OMDB_API_KEY is not set - ratings will be limited")
        if not self.streaming_api_key:
            logger.warning("STREAMING_API_KEY is not set - streaming info will be unavailable")
        return self.tmdb_api_token


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_env()
    return Settings.from_env()
