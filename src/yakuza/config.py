"""Runtime configuration for jobs and the task HTTP client."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; YakuzaBot/0.1)"


@dataclass(slots=True)
class HttpSettings:
    """HTTP client settings shared by agent tasks."""

    timeout_seconds: float = 30.0
    max_retries: int = 3
    user_agent: str = DEFAULT_USER_AGENT
    follow_redirects: bool = True


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    log_level: str = "WARNING"
    http: HttpSettings = field(default_factory=HttpSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``YAKUZA_*`` environment variables."""

        return cls(
            log_level=os.getenv("YAKUZA_LOG_LEVEL", "WARNING").strip().upper(),
            http=HttpSettings(
                timeout_seconds=float(os.getenv("YAKUZA_HTTP_TIMEOUT_SECONDS", "30.0")),
                max_retries=int(os.getenv("YAKUZA_HTTP_MAX_RETRIES", "3")),
                user_agent=os.getenv("YAKUZA_HTTP_USER_AGENT", DEFAULT_USER_AGENT),
                follow_redirects=_env_bool("YAKUZA_HTTP_FOLLOW_REDIRECTS", default=True),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Invalid YAKUZA_LOG_LEVEL: {self.log_level!r}")
        if self.http.timeout_seconds <= 0:
            raise ValueError("YAKUZA_HTTP_TIMEOUT_SECONDS must be > 0.")
        if self.http.max_retries < 0:
            raise ValueError("YAKUZA_HTTP_MAX_RETRIES must be >= 0.")
        if not self.http.user_agent.strip():
            raise ValueError("YAKUZA_HTTP_USER_AGENT must not be empty.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
