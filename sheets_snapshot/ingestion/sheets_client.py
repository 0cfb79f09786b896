"""
Published-sheet CSV export client.

Endpoint (one request per tab)::

    GET https://docs.google.com/spreadsheets/d/{sheet_id}/export
        ?format=csv&gid={gid}&_cb={epoch_ms}

The ``/export`` endpoint returns every row regardless of any filter view
saved on the tab. It answers with a redirect to a googleusercontent host, so
redirects are followed. ``_cb`` is a cache-buster and can be switched off
with ``fetch.cache_bust = false``.

Failure contract:
  Any non-2xx final response or transport-level error raises
  :class:`~sheets_snapshot.errors.FetchError`. Transport errors, 429 and 5xx
  are retried up to ``fetch.max_retries`` times with exponential backoff
  (``backoff_seconds``, ``2×backoff_seconds``, …); other 4xx fail at once.
  The caller decides whether a failure is fatal — the snapshot builder
  treats it as "empty table for this source".
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from sheets_snapshot.config import FetchConfig, SourceConfig
from sheets_snapshot.errors import FetchError
from sheets_snapshot.utils.time_utils import epoch_millis, utcnow

logger = logging.getLogger(__name__)


class SheetsClient:
    """Fetch one sheet tab at a time as raw CSV text.

    Usage::

        with SheetsClient(sheet_id, config.fetch) as client:
            text = client.fetch_csv(source)

    Attributes:
        sheet_id: Spreadsheet identifier substituted into the URL template.
        config: HTTP settings (timeout, retries, URL template).
    """

    def __init__(
        self,
        sheet_id: str,
        config: Optional[FetchConfig] = None,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialise the client.

        Args:
            sheet_id: Spreadsheet identifier.
            config: Fetch settings; defaults to ``FetchConfig()``.
            http_client: Pre-built ``httpx.Client`` (tests inject one backed by
                ``httpx.MockTransport``). When omitted, one is created and
                owned by this instance.
            sleep: Backoff sleep function.
        """
        self.sheet_id = sheet_id
        self.config = config or FetchConfig()
        self._sleep = sleep
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            timeout=self.config.timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": self.config.user_agent},
        )

    # ── Context management ─────────────────────────────────────────────────────

    def __enter__(self) -> "SheetsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    # ── Public API ─────────────────────────────────────────────────────────────

    def build_url(self, source: SourceConfig) -> str:
        """Return the CSV export URL for ``source``."""
        url = httpx.URL(
            self.config.url_template.format(sheet_id=self.sheet_id, gid=source.gid)
        )
        if self.config.cache_bust:
            url = url.copy_add_param("_cb", str(epoch_millis(utcnow())))
        return str(url)

    def fetch_csv(self, source: SourceConfig) -> str:
        """Fetch the raw CSV text of one tab.

        Args:
            source: The tab to export.

        Returns:
            Response body decoded as text.

        Raises:
            FetchError: After the final failed attempt.
        """
        url = self.build_url(source)
        attempts = self.config.max_retries + 1
        attempt = 1

        while True:
            try:
                return self._get_once(source, url)
            except FetchError as exc:
                if attempt >= attempts or not _is_retryable(exc):
                    raise
                delay = self.config.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "Fetch %s attempt %d/%d failed (%s); retrying in %.1fs",
                    source.key, attempt, attempts, exc, delay,
                )
                self._sleep(delay)
                attempt += 1

    # ── Internals ──────────────────────────────────────────────────────────────

    def _get_once(self, source: SourceConfig, url: str) -> str:
        """Issue one GET and return the body, or raise :class:`FetchError`."""
        try:
            resp = self._http.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(
                f'Failed to fetch "{source.name}": {exc.__class__.__name__}: {exc}',
                source_key=source.key,
                url=url,
            ) from exc

        if not resp.is_success:
            raise FetchError(
                f'Failed to fetch "{source.name}": '
                f"HTTP {resp.status_code} {resp.reason_phrase}",
                source_key=source.key,
                url=url,
                status_code=resp.status_code,
            )
        return resp.text


def _is_retryable(exc: FetchError) -> bool:
    """Transport failures, 429 and 5xx are worth another attempt.

    Redirect loops and undecodable bodies will not change on retry.
    """
    if exc.status_code is None:
        return isinstance(exc.__cause__, httpx.TransportError)
    return exc.status_code == 429 or exc.status_code >= 500
