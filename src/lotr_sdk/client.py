"""Python client for The One API (https://the-one-api.dev)."""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Iterable, Optional, Union

import httpx

from .config import ClientConfig
from .errors import ClientError, InvalidIdentifier, ServerError
from .query import FilterLike, QueryState, build_query

logger = logging.getLogger("lotr_sdk.client")

HEX_ID_RE = re.compile(r"[0-9a-fA-F]+")


def is_valid_id(identifier: Any) -> bool:
    return isinstance(identifier, str) and HEX_ID_RE.fullmatch(identifier) is not None


class OneApiClient:
    """Synchronous client for the read-only One API.

    Pagination, sort and filter options are session state: once set they
    apply to every following request until changed or cleared with
    :meth:`clear_query`. An instance must not be shared between threads.
    """

    def __init__(
        self,
        config: Union[ClientConfig, str],
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if isinstance(config, str):
            config = ClientConfig(api_key=config)
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
            follow_redirects=True,
        )
        self._query = QueryState()

    def __enter__(self) -> "OneApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def query(self) -> QueryState:
        return self._query

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "User-Agent": self._config.user_agent,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        headers.update(self._config.headers)
        return headers

    def _get(self, path: str) -> Dict[str, Any]:
        """GET ``path`` with the current query options, retrying 4xx responses.

        429 responses draw on the rate-limit budget until it is spent and then
        on the generic budget; other 4xx responses draw on the generic budget
        only. Both budgets start fresh for every call. 5xx responses are
        raised straight away.
        """
        url = path + build_query(self._query)
        headers = self._headers()
        rate_limit = self._config.rate_limit_retry
        error = self._config.error_retry
        rate_limited = 0
        retried = 0
        while True:
            logger.debug("GET %s", url)
            response = self._client.get(url, headers=headers)
            status = response.status_code
            if status < 400:
                return response.json()
            if status >= 500:
                logger.error("One API request failed status=%s body=%s", status, response.text)
                raise ServerError(status, response.text, str(response.url))

            if status == 429 and rate_limited < rate_limit.max_retries:
                rate_limited += 1
                attempt, delay = rate_limited, rate_limit.delay_seconds
            elif retried < error.max_retries:
                retried += 1
                attempt, delay = retried, error.delay_seconds
            else:
                logger.error("One API request failed status=%s body=%s", status, response.text)
                raise ClientError(status, response.text, str(response.url))

            logger.warning("One API returned %s for %s, retry %s in %ss", status, path, attempt, delay)
            time.sleep(delay)

    def _get_resource(self, template: str, identifier: Any) -> Dict[str, Any]:
        if not is_valid_id(identifier):
            raise InvalidIdentifier(identifier)
        return self._get(template.format(id=identifier))

    # Query options

    def set_limit(self, limit: int) -> None:
        self._query.set_limit(limit)

    def set_page(self, page: int) -> None:
        self._query.set_page(page)

    def set_offset(self, offset: int) -> None:
        self._query.set_offset(offset)

    def set_sort(self, key: str, direction: str) -> None:
        self._query.set_sort(key, direction)

    def set_filters(self, filters: Iterable[FilterLike]) -> None:
        self._query.set_filters(filters)

    def clear_query(self) -> None:
        self._query.reset()

    def query_string(self) -> str:
        return build_query(self._query)

    # Resources

    def get_books(self) -> Dict[str, Any]:
        return self._get("/book")

    def get_book(self, book_id: str) -> Dict[str, Any]:
        return self._get_resource("/book/{id}", book_id)

    def get_book_chapters(self, book_id: str) -> Dict[str, Any]:
        # No separator before "chapter"; kept as the path has always been sent.
        return self._get_resource("/book/{id}chapter", book_id)

    def get_movies(self) -> Dict[str, Any]:
        return self._get("/movie")

    def get_movie(self, movie_id: str) -> Dict[str, Any]:
        return self._get_resource("/movie/{id}", movie_id)

    def get_movie_quotes(self, movie_id: str) -> Dict[str, Any]:
        return self._get_resource("/movie/{id}/quote", movie_id)

    def get_characters(self) -> Dict[str, Any]:
        return self._get("/character")

    def get_character(self, character_id: str) -> Dict[str, Any]:
        return self._get_resource("/character/{id}", character_id)

    def get_character_quotes(self, character_id: str) -> Dict[str, Any]:
        return self._get_resource("/character/{id}/quote", character_id)

    def get_quotes(self) -> Dict[str, Any]:
        return self._get("/quote")

    def get_quote(self, quote_id: str) -> Dict[str, Any]:
        return self._get_resource("/quote/{id}", quote_id)

    def get_chapters(self) -> Dict[str, Any]:
        return self._get("/chapter")

    def get_chapter(self, chapter_id: str) -> Dict[str, Any]:
        return self._get_resource("/chapter/{id}", chapter_id)

    def close(self) -> None:
        self._client.close()


__all__ = ["OneApiClient", "is_valid_id"]
