"""Query-string construction: pagination, sorting and the filter mini-language."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger("lotr_sdk.query")

SORT_DIRECTIONS = ("asc", "desc")

# Same shape PHP's is_numeric() accepts: optional sign, decimal or exponent form,
# surrounding whitespace allowed.
NUMERIC_RE = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")


class FilterOperator(str, Enum):
    MATCH = "match"
    NOT_MATCH = "not_match"
    INCLUDE = "include"
    EXCLUDE = "exclude"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    REGEX_MATCH = "regex_match"
    REGEX_NOT_MATCH = "regex_not_match"
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_OR_EQUAL = ">="
    LESS_OR_EQUAL = "<="

    @classmethod
    def coerce(cls, value: Any) -> Optional["FilterOperator"]:
        """Resolve an operator from its wire spelling (``">="``) or its name (``"greater_or_equal"``)."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.__members__.get(value.upper())


COMPARISON_OPERATORS = frozenset(
    {
        FilterOperator.GREATER_THAN,
        FilterOperator.LESS_THAN,
        FilterOperator.GREATER_OR_EQUAL,
        FilterOperator.LESS_OR_EQUAL,
    }
)

TERM_TEMPLATES = {
    FilterOperator.MATCH: "{key}={value}",
    FilterOperator.INCLUDE: "{key}={value}",
    FilterOperator.NOT_MATCH: "{key}!={value}",
    FilterOperator.EXCLUDE: "{key}!={value}",
    FilterOperator.REGEX_MATCH: "{key}=/{value}/i",
    FilterOperator.REGEX_NOT_MATCH: "{key}!=/{value}/i",
}

Scalar = Union[bool, int, float, str]


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    operator: FilterOperator = Field(validation_alias=AliasChoices("operator", "filter_type"))
    value: Optional[Scalar] = None

    @field_validator("operator", mode="before")
    @classmethod
    def _coerce_operator(cls, value: Any) -> Any:
        return FilterOperator.coerce(value) or value


FilterLike = Union[Filter, Mapping[str, Any]]


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return bool(NUMERIC_RE.match(value))
    return False


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _format_value(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_filter(item: Any) -> Optional[Filter]:
    if isinstance(item, Filter):
        return item
    if isinstance(item, Mapping):
        try:
            return Filter.model_validate(dict(item))
        except ValidationError:
            return None
    return None


def compile_filter(item: Any) -> Optional[str]:
    """Compile one descriptor into its query term, or ``None`` when it is not usable."""
    descriptor = _as_filter(item)
    if descriptor is None or not descriptor.key:
        return None

    key = descriptor.key
    operator = descriptor.operator
    if operator is FilterOperator.EXISTS:
        return key
    if operator is FilterOperator.NOT_EXISTS:
        return f"!{key}"

    if descriptor.value is None:
        return None
    value = _format_value(descriptor.value)
    if operator in COMPARISON_OPERATORS:
        if not is_numeric(descriptor.value):
            return None
        return f"{key}{operator.value}{value}"
    return TERM_TEMPLATES[operator].format(key=key, value=value)


def compile_filters(filters: Iterable[Any]) -> str:
    """Join the terms of every usable descriptor with ``&``. Unusable ones are skipped."""
    terms: List[str] = []
    for item in filters:
        term = compile_filter(item)
        if term is None:
            logger.debug("Dropping filter %r", item)
            continue
        terms.append(term)
    return "&".join(terms)


class QueryState:
    """Pagination, sort and filter options shared by every request a client makes.

    Values stick until they are overwritten or :meth:`reset` is called. Setters
    ignore invalid input instead of raising. Not safe for concurrent mutation;
    use one client per thread.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.limit: Optional[int] = None
        self.page: Optional[int] = None
        self.offset: Optional[int] = None
        self.sort_key: Optional[str] = None
        self.sort_direction: Optional[str] = None
        self.filters: List[FilterLike] = []

    def set_limit(self, limit: Any) -> None:
        if _is_int(limit) and limit >= 1:
            self.limit = limit

    def set_page(self, page: Any) -> None:
        if _is_int(page) and page >= 1:
            self.page = page

    def set_offset(self, offset: Any) -> None:
        if _is_int(offset) and offset >= 0:
            self.offset = offset

    def set_sort(self, key: Any, direction: Any) -> None:
        if isinstance(key, str) and key and direction in SORT_DIRECTIONS:
            self.sort_key = key
            self.sort_direction = str(direction)

    def set_filters(self, filters: Optional[Iterable[FilterLike]]) -> None:
        if filters is None:
            return
        self.filters = list(filters)

    def params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.limit is not None:
            params["limit"] = self.limit
        if self.page is not None:
            params["page"] = self.page
        if self.offset is not None:
            params["offset"] = self.offset
        if self.sort_key and self.sort_direction:
            params["sort"] = f"{self.sort_key}:{self.sort_direction}"
        return params


def build_query(state: QueryState) -> str:
    """Serialize ``state`` into a query string, ``"?..."`` or ``""`` when nothing is set.

    Pagination and sort are form-encoded; filter terms are appended verbatim
    because the API expects its operators (``!=``, ``/.../i``) literally.
    """
    params = state.params()
    filter_terms = compile_filters(state.filters)
    if params:
        query = "?" + str(httpx.QueryParams(params))
        if filter_terms:
            query += "&" + filter_terms
        return query
    if filter_terms:
        return "?" + filter_terms
    return ""


__all__ = [
    "COMPARISON_OPERATORS",
    "Filter",
    "FilterOperator",
    "QueryState",
    "build_query",
    "compile_filter",
    "compile_filters",
    "is_numeric",
]
