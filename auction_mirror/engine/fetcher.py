"""Paged feed fetching with bounded concurrency and whole-cycle retry."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

import httpx
import structlog
from pydantic import ValidationError

from ..config import FeedConfig
from ..errors import RateLimited, UpstreamError
from ..models import FeedPage


class PagedFetcher:
    """Retrieve every page of the listing feed for one ingestion cycle."""

    def __init__(
        self,
        config: FeedConfig,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.Client(follow_redirects=True, timeout=config.request_timeout)
        self._owns_client = client is None
        self._sleep = sleep
        self.logger = logger or structlog.get_logger("auction_mirror.fetcher")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def fetch_all(self) -> list[dict[str, Any]]:
        """Return the flattened raw listings of all pages, retrying the whole cycle."""

        for attempt in range(1, self.config.max_attempts + 1):
            self.logger.info(
                "fetch_attempt_started", attempt=attempt, max_attempts=self.config.max_attempts
            )
            try:
                listings = self._fetch_once()
            except UpstreamError as exc:
                if attempt == self.config.max_attempts:
                    self.logger.error(
                        "fetch_attempts_exhausted", attempts=attempt, error=str(exc)
                    )
                    raise
                delay = self.retry_delay(exc, attempt)
                self.logger.warning(
                    "fetch_attempt_failed",
                    attempt=attempt,
                    error=str(exc),
                    status_code=exc.status_code,
                    timed_out=exc.timed_out,
                    retry_in=delay,
                )
                self._sleep(delay)
            else:
                self.logger.info("fetch_completed", attempt=attempt, listings=len(listings))
                return listings
        raise UpstreamError("Feed fetch was not attempted")

    def retry_delay(self, error: UpstreamError, attempt: int) -> float:
        """Seconds to wait after ``attempt`` failed with ``error``."""

        if isinstance(error, RateLimited):
            return min(self.config.rate_limit_delay * attempt, self.config.rate_limit_cap)
        if error.timed_out:
            return self.config.timeout_delay
        return self.config.retry_delay * attempt

    # ------------------------------------------------------------------
    def _fetch_once(self) -> list[dict[str, Any]]:
        first = self._get_page(None)
        total_pages = first.total_pages
        self.logger.info("fetch_pages_discovered", total_pages=total_pages)
        listings: list[dict[str, Any]] = []
        window = self.config.page_concurrency
        with ThreadPoolExecutor(max_workers=window, thread_name_prefix="feed-page") as executor:
            for start in range(0, total_pages, window):
                group = range(start, min(start + window, total_pages))
                # map yields in page order and re-raises the first page failure
                for page in executor.map(self._get_page, group):
                    listings.extend(page.auctions)
        return listings

    def _get_page(self, page: int | None) -> FeedPage:
        params: dict[str, Any] = {}
        if self.config.api_key:
            params["key"] = self.config.api_key
        if page is not None:
            params["page"] = page
        label = "initial" if page is None else page
        try:
            response = self._client.get(
                self.config.endpoint, params=params, timeout=self.config.request_timeout
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Feed request timed out (page {label})", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Feed request failed (page {label}): {exc}") from exc

        if response.status_code == 429:
            raise RateLimited(f"Feed rate limited (page {label})")
        if response.status_code >= 400:
            raise UpstreamError(
                f"Unexpected status {response.status_code} (page {label})",
                status_code=response.status_code,
            )
        try:
            body = FeedPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamError(
                f"Malformed feed body (page {label})", status_code=response.status_code
            ) from exc
        if not body.success:
            raise UpstreamError(
                f"Feed reported failure (page {label}): {body.cause or 'unknown cause'}",
                status_code=response.status_code,
            )
        return body


__all__ = ["PagedFetcher"]
