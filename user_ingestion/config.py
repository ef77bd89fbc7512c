from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigError
from .models import FetchParams

DEFAULT_USER_AGENT = "user-ingestion/0.1"


def env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None and v.strip() else default


def _env_int(name: str, default: int) -> int:
    v = env(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {v!r}.") from None


def _env_float(name: str, default: float) -> float:
    v = env(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {v!r}.") from None


@dataclass(frozen=True)
class Settings:
    api_url: str

    total_users: int = 100000
    batch_size: int = 1000
    rate_limit_delay_ms: int = 500
    error_backoff_ms: int = 2000
    api_limit_param: str | None = None

    checkpoint_dir: str = "done"
    output_file: str = "user_data.json"

    http_user_agent: str = DEFAULT_USER_AGENT
    http_connect_timeout: float = 10.0
    http_read_timeout: float = 30.0

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.api_url or not self.api_url.strip():
            raise ConfigError("Missing API_URL.")
        if self.batch_size <= 0:
            raise ConfigError(f"BATCH_SIZE must be > 0, got {self.batch_size}.")
        if self.total_users < 0:
            raise ConfigError(f"TOTAL_USERS must be >= 0, got {self.total_users}.")
        if self.rate_limit_delay_ms < 0:
            raise ConfigError(f"RATE_LIMIT_DELAY_MS must be >= 0, got {self.rate_limit_delay_ms}.")
        if self.error_backoff_ms < 0:
            raise ConfigError(f"ERROR_BACKOFF_MS must be >= 0, got {self.error_backoff_ms}.")
        # recovery pause must outlast the success pause; both 0 disables pacing
        if (self.error_backoff_ms or self.rate_limit_delay_ms) and self.error_backoff_ms <= self.rate_limit_delay_ms:
            raise ConfigError(
                f"ERROR_BACKOFF_MS ({self.error_backoff_ms}) must be greater than "
                f"RATE_LIMIT_DELAY_MS ({self.rate_limit_delay_ms})."
            )

    def fetch_params(self) -> FetchParams:
        return FetchParams(
            endpoint=self.api_url,
            batch_size=self.batch_size,
            total_target=self.total_users,
            delay_ms=self.rate_limit_delay_ms,
            error_backoff_ms=self.error_backoff_ms,
            limit_param=self.api_limit_param,
        )


def load_settings() -> Settings:
    api_url = env("API_URL") or ""
    if not api_url:
        raise ConfigError("Missing API_URL.")

    return Settings(
        api_url=api_url,
        total_users=_env_int("TOTAL_USERS", 100000),
        batch_size=_env_int("BATCH_SIZE", 1000),
        rate_limit_delay_ms=_env_int("RATE_LIMIT_DELAY_MS", 500),
        error_backoff_ms=_env_int("ERROR_BACKOFF_MS", 2000),
        api_limit_param=env("API_LIMIT_PARAM", None),
        checkpoint_dir=env("CHECKPOINT_DIR", "done") or "done",
        output_file=env("OUTPUT_FILE", "user_data.json") or "user_data.json",
        http_user_agent=env("HTTP_USER_AGENT", DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT,
        http_connect_timeout=_env_float("HTTP_CONNECT_TIMEOUT", 10.0),
        http_read_timeout=_env_float("HTTP_READ_TIMEOUT", 30.0),
        log_level=env("LOG_LEVEL", "INFO") or "INFO",
    )
