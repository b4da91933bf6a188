"""Configuration objects for the One API client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict

DEFAULT_BASE_URL = "https://the-one-api.dev/v2"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    delay_seconds: float


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    # 429 responses get their own, more patient budget
    rate_limit_retry: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_retries=10, delay_seconds=10.0))
    error_retry: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_retries=3, delay_seconds=5.0))
    timeout: float = 10.0
    user_agent: str = "lotr-sdk-python/0.1.0"
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        api_key = os.environ.get("LOTR_API_KEY")
        if not api_key:
            raise ValueError("LOTR_API_KEY must be set to build a ClientConfig from the environment")

        rate_limit_retry = RetryPolicy(
            max_retries=int(os.environ.get("LOTR_RATE_LIMIT_MAX_RETRIES", "10")),
            delay_seconds=float(os.environ.get("LOTR_RATE_LIMIT_RETRY_DELAY", "10")),
        )
        error_retry = RetryPolicy(
            max_retries=int(os.environ.get("LOTR_MAX_RETRIES", "3")),
            delay_seconds=float(os.environ.get("LOTR_RETRY_DELAY", "5")),
        )
        return cls(
            api_key=api_key,
            base_url=os.environ.get("LOTR_BASE_URL", DEFAULT_BASE_URL),
            rate_limit_retry=rate_limit_retry,
            error_retry=error_retry,
            timeout=float(os.environ.get("LOTR_TIMEOUT", "10")),
        )


__all__ = ["ClientConfig", "RetryPolicy", "DEFAULT_BASE_URL"]
