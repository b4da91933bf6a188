"""The One API Python SDK."""

from .client import OneApiClient
from .config import ClientConfig, RetryPolicy
from .errors import ApiError, ClientError, InvalidIdentifier, LotrError, ServerError
from .query import Filter, FilterOperator, QueryState, build_query

__all__ = [
    "OneApiClient",
    "ClientConfig",
    "RetryPolicy",
    "ApiError",
    "ClientError",
    "InvalidIdentifier",
    "LotrError",
    "ServerError",
    "Filter",
    "FilterOperator",
    "QueryState",
    "build_query",
]
