"""Async feed fetcher with timeouts, politeness delay and retries."""

import asyncio
import time
from typing import Optional
from urllib.parse import urlparse

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential
import structlog

from .interfaces import Source
from ..config.settings import settings
from ..exceptions import FetchError

logger = structlog.get_logger()


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.retryable


class FeedFetcher:
    """Fetches raw feed bytes for one source at a time."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = None,
        max_attempts: int = None,
        rate_limit_per_second: float = None,
        backoff_seconds: float = 1.0,
        user_agent: str = None,
    ):
        self.session = session
        self._owns_session = session is None
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds
        self.max_attempts = max_attempts or settings.fetch_max_retries
        self.rate_limit_per_second = (
            settings.fetch_rate_limit_per_second if rate_limit_per_second is None else rate_limit_per_second
        )
        self.backoff_seconds = backoff_seconds
        self.user_agent = user_agent or settings.user_agent
        self.last_fetch_time = {}

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"User-Agent": self.user_agent},
            )
        return self

    async def __aexit__(self, *args):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def fetch(self, source: Source) -> bytes:
        """Fetch the raw feed for a source.

        Retries network errors, timeouts, 429 and 5xx responses with
        exponential backoff. Other non-2xx statuses fail immediately.

        Raises:
            FetchError: after the last attempt fails.
        """
        if self.session is None:
            raise RuntimeError("FeedFetcher must be used as an async context manager")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        return await retrying(self._fetch_once, source)

    async def _fetch_once(self, source: Source) -> bytes:
        await self._rate_limit(source.url)
        start_time = time.time()

        try:
            async with self.session.get(source.url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(source.url, status=response.status)
                content = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("feed_fetch_error", feed=source.name, error=str(e) or type(e).__name__)
            raise FetchError(source.url, cause=e) from e
        except FetchError as e:
            logger.warning("feed_fetch_error", feed=source.name, status=e.status)
            raise

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info("feed_fetched", feed=source.name, bytes=len(content), time_ms=elapsed_ms)
        return content

    async def _rate_limit(self, url: str):
        """Enforce a minimum interval between requests to the same host."""
        if not self.rate_limit_per_second or self.rate_limit_per_second <= 0:
            return

        host = urlparse(url).netloc
        min_interval = 1.0 / self.rate_limit_per_second
        loop = asyncio.get_running_loop()
        last_time = self.last_fetch_time.get(host)

        if last_time is not None:
            elapsed = loop.time() - last_time
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)

        self.last_fetch_time[host] = loop.time()
