"""Exceptions raised by the One API client."""

from __future__ import annotations

from typing import Optional


class LotrError(Exception):
    """Base class for every error raised by this package."""


class InvalidIdentifier(LotrError, ValueError):
    def __init__(self, identifier: object) -> None:
        super().__init__(f"Invalid id: {identifier!r}")
        self.identifier = identifier


class ApiError(LotrError):
    """The API answered with a status code the client will not accept."""

    def __init__(self, status_code: int, body: str, url: Optional[str] = None) -> None:
        super().__init__(f"API error: {status_code} {body}")
        self.status_code = status_code
        self.body = body
        self.url = url


class ServerError(ApiError):
    """5xx response. Never retried."""


class ClientError(ApiError):
    """4xx response left over once the retry budgets ran out."""


__all__ = ["LotrError", "InvalidIdentifier", "ApiError", "ServerError", "ClientError"]
