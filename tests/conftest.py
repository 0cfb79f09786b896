"""
Shared pytest fixtures for the sheets-snapshot test suite.

Provides:
  - ``sample_sources``: three configured tabs used across modules.
  - ``app_config``: an ``AppConfig`` writing into ``tmp_path`` with retries
    and backoff disabled.
  - ``make_client``: builds a ``SheetsClient`` whose HTTP traffic is served
    by an ``httpx.MockTransport`` keyed on the ``gid`` query parameter.
  - ``fixed_now`` / ``companies_csv``: deterministic timestamp and a CSV
    export exercising quoting, sparse cells and embedded newlines.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Generator, Union

import httpx
import pytest

from sheets_snapshot.config import (
    AppConfig,
    FetchConfig,
    OutputConfig,
    SheetsConfig,
    SourceConfig,
)
from sheets_snapshot.ingestion.sheets_client import SheetsClient

FIXED_NOW = datetime(2026, 10, 17, 8, 30, 15, 250000, tzinfo=timezone.utc)
SHEET_ID = "test-sheet-id"

COMPANIES_CSV = (
    "Company,Stage,Notes\r\n"
    "Acme,Seed,\"Raised $2M, led by Foo\"\r\n"
    "Globex,,\r\n"
    ",,\r\n"
    "Initech,Series A,\"Line one\nLine two\"\r\n"
)

# gid → (status, body) or an exception instance raised by the transport.
Route = Union[tuple[int, str], Exception]


_ENV_VARS = (
    "SHEETS_SNAPSHOT_SHEET_ID",
    "SHEETS_SNAPSHOT_OUTPUT_PATH",
    "SHEETS_SNAPSHOT_TIMEOUT",
    "SHEETS_SNAPSHOT_LOG_LEVEL",
    "SHEETS_SNAPSHOT_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's SHEETS_SNAPSHOT_* variables out of every test."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


# ── Config fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def sample_sources() -> list[SourceConfig]:
    """Three tabs: companies, founders, rounds."""
    return [
        SourceConfig(key="companies", name="Companies", gid="0"),
        SourceConfig(key="founders", name="Founders", gid="111"),
        SourceConfig(key="rounds", name="All VC Rounds", gid="222"),
    ]


@pytest.fixture
def app_config(tmp_path, sample_sources) -> AppConfig:
    """AppConfig pointed at ``tmp_path`` with no retries or backoff."""
    return AppConfig(
        sheets=SheetsConfig(sheet_id=SHEET_ID, sources=sample_sources),
        fetch=FetchConfig(max_retries=0, backoff_seconds=0.0),
        output=OutputConfig(path=str(tmp_path / "public" / "report-data.json")),
    )


# ── HTTP fixtures ─────────────────────────────────────────────────────────────

def routed_transport(routes: dict[str, Route], calls: list[httpx.Request] | None = None):
    """Return an ``httpx.MockTransport`` answering by ``gid`` query param.

    Unknown gids get a 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        route = routes.get(request.url.params.get("gid", ""))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        status, body = route
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def make_client() -> Generator[Callable[..., SheetsClient], None, None]:
    """Factory: ``make_client(routes, calls=None, **fetch_overrides)``."""
    created: list[SheetsClient] = []

    def _make(
        routes: dict[str, Route],
        calls: list[httpx.Request] | None = None,
        **fetch_overrides,
    ) -> SheetsClient:
        fetch_cfg = FetchConfig(**{"max_retries": 0, "backoff_seconds": 0.0, **fetch_overrides})
        http = httpx.Client(transport=routed_transport(routes, calls))
        client = SheetsClient(SHEET_ID, fetch_cfg, http_client=http, sleep=lambda s: None)
        created.append(client)
        return client

    yield _make
    for client in created:
        client._http.close()


# ── Data fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def fixed_now() -> datetime:
    """Completion timestamp for deterministic snapshot metadata (Q4 2026)."""
    return FIXED_NOW


@pytest.fixture
def companies_csv() -> str:
    """CRLF export with a quoted comma, a sparse row, an empty row and a
    multi-line cell."""
    return COMPANIES_CSV
