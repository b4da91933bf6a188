from __future__ import annotations

import math
import re
import time
from typing import Any, Dict, List
from urllib.parse import unquote

import httpx
import pytest

from lotr_sdk.client import OneApiClient
from lotr_sdk.config import ClientConfig, RetryPolicy

MOVIES: List[Dict[str, Any]] = [
    {"_id": "5cd95395de30eff6ebccde56", "name": "The Lord of the Rings Series", "boxOfficeRevenueInMillions": 2917},
    {"_id": "5cd95395de30eff6ebccde57", "name": "The Hobbit Series", "boxOfficeRevenueInMillions": 2932},
    {"_id": "5cd95395de30eff6ebccde58", "name": "The Unexpected Journey", "boxOfficeRevenueInMillions": 1021},
    {"_id": "5cd95395de30eff6ebccde59", "name": "The Desolation of Smaug", "boxOfficeRevenueInMillions": 958.4},
    {"_id": "5cd95395de30eff6ebccde5a", "name": "The Battle of the Five Armies", "boxOfficeRevenueInMillions": 956},
    {"_id": "5cd95395de30eff6ebccde5b", "name": "The Two Towers", "boxOfficeRevenueInMillions": 926},
    {"_id": "5cd95395de30eff6ebccde5c", "name": "The Fellowship of the Ring", "boxOfficeRevenueInMillions": 871.5},
    {"_id": "5cd95395de30eff6ebccde5d", "name": "The Return of the King", "boxOfficeRevenueInMillions": 1120},
]

CHARACTERS: List[Dict[str, Any]] = [
    {"_id": "5cd99d4bde30eff6ebccfc0f", "name": "Witch-king of Angmar", "race": "Human", "hair": "None"},
    {"_id": "5cd99d4bde30eff6ebccfc2a", "name": "Brand, King of Dale", "race": "Human", "hair": "Dark"},
    {"_id": "5cd99d4bde30eff6ebccfc3b", "name": "Bain, King of Dale", "race": "Human", "hair": "Dark"},
    {"_id": "5cd99d4bde30eff6ebccfc4c", "name": "Elessar, King of Gondor", "race": "Human", "hair": "Dark"},
    {"_id": "5cd99d4bde30eff6ebccfd0d", "name": "Théoden, King of Rohan", "race": "Human", "hair": "Blonde"},
    {"_id": "5cd99d4bde30eff6ebccfd1e", "name": "Thranduil the Elvenking", "race": "Elf", "hair": "Blonde"},
    {"_id": "5cd99d4bde30eff6ebccfc15", "name": "Frodo Baggins", "race": "Hobbit", "hair": "Brown"},
    {"_id": "5cd99d4bde30eff6ebccfd0e", "name": "Samwise Gamgee", "race": "Hobbit", "hair": "Brown"},
]

TERM_RE = re.compile(r"^(!?)([^=!<>]+)(!=|<=|>=|=|<|>)?(.*)$")


def _matches(doc: Dict[str, Any], term: str) -> bool:
    negated, key, op, raw = TERM_RE.match(term).groups()
    field = doc.get(key)
    if op is None:
        return (field is None) if negated else (field is not None)
    if op in ("<", ">", "<=", ">="):
        if not isinstance(field, (int, float)):
            return False
        target = float(raw)
        return {
            "<": field < target,
            ">": field > target,
            "<=": field <= target,
            ">=": field >= target,
        }[op]
    if raw.startswith("/") and raw.endswith("/i"):
        found = re.search(raw[1:-2], str(field or ""), re.IGNORECASE) is not None
    else:
        found = str(field) in raw.split(",")
    return found if op == "=" else not found


class FakeOneApi:
    """In-memory stand-in for the One API honouring paging and the filter syntax."""

    PAGING_KEYS = ("limit", "page", "offset", "sort")

    def __init__(self) -> None:
        self.collections = {"movie": MOVIES, "character": CHARACTERS}
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        segments = request.url.path.rstrip("/").split("/")
        collection = self.collections.get(segments[2])
        if collection is None:
            return httpx.Response(404, json={"success": False, "message": "Not found."})

        docs = list(collection)
        if len(segments) > 3:
            docs = [doc for doc in docs if doc["_id"] == segments[3]]

        options: Dict[str, str] = {}
        query = request.url.query.decode()
        for term in filter(None, query.split("&")):
            term = unquote(term)
            name, _, value = term.partition("=")
            if name in self.PAGING_KEYS:
                options[name] = value
                continue
            docs = [doc for doc in docs if _matches(doc, term)]

        if "sort" in options:
            sort_key, _, direction = options["sort"].partition(":")
            docs.sort(key=lambda doc: doc.get(sort_key), reverse=direction == "desc")

        total = len(docs)
        limit = int(options.get("limit", 1000))
        page = int(options.get("page", 1))
        if "offset" in options:
            offset = int(options["offset"])
        else:
            offset = (page - 1) * limit
        return httpx.Response(
            200,
            json={
                "docs": docs[offset:offset + limit],
                "total": total,
                "limit": limit,
                "offset": offset,
                "page": page,
                "pages": math.ceil(total / limit) if total else 1,
            },
        )


def make_config(**overrides: Any) -> ClientConfig:
    defaults: Dict[str, Any] = dict(
        api_key="test-key",
        base_url="https://the-one-api.dev/v2",
        rate_limit_retry=RetryPolicy(max_retries=2, delay_seconds=10),
        error_retry=RetryPolicy(max_retries=1, delay_seconds=5),
    )
    defaults.update(overrides)
    return ClientConfig(**defaults)


@pytest.fixture()
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    recorded: List[float] = []
    monkeypatch.setattr(time, "sleep", recorded.append)
    return recorded


@pytest.fixture()
def fake_api() -> FakeOneApi:
    return FakeOneApi()


@pytest.fixture()
def client(fake_api: FakeOneApi, sleeps: List[float]) -> OneApiClient:
    with OneApiClient(make_config(), transport=httpx.MockTransport(fake_api)) as api:
        yield api
