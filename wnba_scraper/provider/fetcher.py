"""Provider fetcher: downloads the raw files for one data category.

Each category is published as one file per season. Season files of a single
category are downloaded in parallel on a bounded thread pool and merged back
in configured season order before the payload is handed to the parser.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import ProviderConfig
from ..errors import FetchError
from ..logging import logger
from ..models import Category

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RawPage:
    """One downloaded file."""

    url: str
    content_type: str | None
    body: bytes


@dataclass(frozen=True)
class RawPayload:
    """Everything the provider returned for one category."""

    category: Category
    pages: list[RawPage] = field(default_factory=list)

    @property
    def size_bytes(self) -> int:
        return sum(len(page.body) for page in self.pages)


class _TransientFetchError(Exception):
    """Internal marker for failures worth another attempt."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, _TransientFetchError)


class ProviderFetcher:
    """Client for the per-category provider files.

    Pure I/O: never touches the store. Every failure surfaces as
    ``FetchError``; partial payloads are never returned.
    """

    def __init__(self, config: ProviderConfig, client: httpx.Client | None = None) -> None:
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=config.request_timeout_seconds,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "text/csv, application/json;q=0.9, */*;q=0.5",
            },
            follow_redirects=True,
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> ProviderFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def urls_for(self, category: Category) -> list[str]:
        return [self.config.url_for(category, season) for season in self.config.seasons]

    def fetch(self, category: Category) -> RawPayload:
        """Download every season file for ``category``.

        All downloads finish (or the first failure is raised) before this
        returns; pages keep the configured season order.
        """
        urls = self.urls_for(category)
        if not urls:
            raise FetchError(category, self.config.base_url, "no seasons configured")

        logger.info("category_fetch_start", category=category.value, pages=len(urls))
        workers = min(self.config.max_concurrency, len(urls))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"fetch-{category.value}") as pool:
            futures = [pool.submit(self._fetch_page, category, url) for url in urls]
            # Collect in submission order; result() re-raises the worker's FetchError
            pages = [future.result() for future in futures]

        payload = RawPayload(category=category, pages=pages)
        logger.info(
            "category_fetch_complete",
            category=category.value,
            pages=len(pages),
            size_kb=payload.size_bytes // 1024,
        )
        return payload

    def _fetch_page(self, category: Category, url: str) -> RawPage:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.fetch_retry_attempts),
            wait=wait_exponential(multiplier=self.config.retry_wait_seconds, max=60),
            retry=retry_if_exception(_is_transient),
            reraise=False,
        )
        try:
            return retrying(self._request, category, url)
        except RetryError as exc:
            last = exc.last_attempt.exception()
            reason = getattr(last, "reason", str(last))
            status_code = getattr(last, "status_code", None)
            logger.warning(
                "provider_fetch_failed",
                category=category.value,
                url=url,
                status=status_code,
                attempts=self.config.fetch_retry_attempts,
                error=reason,
            )
            raise FetchError(category, url, reason, status_code=status_code) from last

    def _request(self, category: Category, url: str) -> RawPage:
        logger.debug("fetching_url", category=category.value, url=url)
        try:
            response = self.client.get(url)
        except httpx.TimeoutException as exc:
            raise _TransientFetchError(f"timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise _TransientFetchError(f"transport error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(category, url, f"malformed response: {exc}") from exc

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise _TransientFetchError(
                f"provider returned {response.status_code}", status_code=response.status_code
            )
        if response.status_code != 200:
            raise FetchError(
                category,
                url,
                "unexpected status",
                status_code=response.status_code,
            )

        body = response.content
        if not body or not body.strip():
            raise FetchError(category, url, "empty response body", status_code=response.status_code)

        return RawPage(url=url, content_type=response.headers.get("content-type"), body=body)
