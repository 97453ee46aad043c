"""
Shared pieces for collectors (Playwright and API).

- Collector: the contract every source family implements.
- ApiScraper: aiohttp session, _get_json / _get_text / _post_json with retry and 429 handling.
- BrowserScraper: Playwright lifecycle, safe_goto, retry.
- ingest_items: per-item loop that feeds the ingest pipeline and keeps counts.

Collectors are async context managers; the orchestrator enters one at a
time so only one session/browser is open per run:

    async with collector:
        result = await collector.scrape()
"""
import asyncio
import logging
import random
from typing import Any, Dict, Iterable, Optional, Protocol, runtime_checkable

import aiohttp
from playwright.async_api import async_playwright, Page, Browser, BrowserContext

from scout.core.config import settings
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor
from scout.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

__all__ = ["Collector", "ApiScraper", "BrowserScraper", "ingest_items"]


@runtime_checkable
class Collector(Protocol):
    descriptor: SourceDescriptor

    @property
    def name(self) -> str: ...

    async def __aenter__(self) -> "Collector": ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> Any: ...

    async def scrape(self) -> ScrapeResult: ...


async def ingest_items(
    pipeline,
    descriptor: SourceDescriptor,
    items: Iterable[RawItem],
    result: ScrapeResult,
    **process_kwargs,
) -> ScrapeResult:
    """
    Send items through the pipeline one at a time. A failing item only
    bumps error_count; losing the store aborts the run.
    """
    for item in items:
        result.items.append(item)
        try:
            outcome = await pipeline.process_item(item, descriptor, **process_kwargs)
            result.record(outcome)
        except StoreUnavailableError:
            raise
        except Exception as e:
            result.error_count += 1
            logger.error(f"[{descriptor.name}] failed to process {item.source_url}: {e}")
    return result


class ApiScraper:
    """
    Base for collectors that call REST/JSON/feed endpoints with aiohttp.

    Use as async context manager:

        async with MyApiScraper(...) as scraper:
            data = await scraper._get_json("/path")
    """

    BASE_URL: str = ""

    def __init__(
        self,
        rate_limit_delay: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        rate_limit_wait: float = 60.0,
        max_attempts: int = 3,
    ):
        self.rate_limit_delay = rate_limit_delay
        self.rate_limit_wait = rate_limit_wait
        self.max_attempts = max_attempts
        self.timeout = timeout or settings.http_timeout_seconds
        self._headers = headers or {
            "Accept": "application/json",
            "User-Agent": random.choice(USER_AGENTS),
        }
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            headers=self._headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
        return False

    async def _rate_limit(self) -> None:
        await asyncio.sleep(self.rate_limit_delay)

    def _full_url(self, path_or_url: str) -> str:
        if path_or_url.startswith("http"):
            return path_or_url
        base = (self.BASE_URL or "").rstrip("/")
        path = path_or_url if path_or_url.startswith("/") else f"/{path_or_url}"
        return f"{base}{path}"

    async def _request(
        self,
        method: str,
        path_or_url: str,
        as_json: bool,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        One request with retry. Returns parsed JSON or text, None on 404 or
        after exhausting retries. Waits rate_limit_wait on 429.
        """
        if not self.session:
            raise RuntimeError("Scraper context not entered.")
        url = self._full_url(path_or_url)

        for attempt in range(self.max_attempts):
            try:
                await self._rate_limit()
                async with self.session.request(
                    method, url, params=params, json=json, headers=headers
                ) as response:
                    if response.status == 200:
                        if as_json:
                            return await response.json(content_type=None)
                        return await response.text()
                    if response.status == 404:
                        logger.debug(f"404 for {path_or_url}")
                        return None
                    if response.status == 429:
                        logger.warning(
                            f"Rate limited. Waiting {self.rate_limit_wait:.0f}s. "
                            f"Attempt {attempt + 1}/{self.max_attempts}"
                        )
                        await asyncio.sleep(self.rate_limit_wait)
                        continue
                    text = await response.text()
                    logger.error(f"{method} {url} -> {response.status}: {text[:300]}")
                    return None
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.error(f"{method} {url} failed: {e}")
                await asyncio.sleep(1)
        return None

    async def _get_json(self, path_or_url: str, params: Optional[Dict[str, Any]] = None):
        return await self._request("GET", path_or_url, as_json=True, params=params)

    async def _get_text(self, path_or_url: str, params: Optional[Dict[str, Any]] = None) -> Optional[str]:
        return await self._request("GET", path_or_url, as_json=False, params=params)

    async def _post_json(
        self,
        path_or_url: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        return await self._request("POST", path_or_url, as_json=True, json=json or {}, headers=headers)


class BrowserScraper:
    """
    Base for Playwright-based collectors.

    Provides browser lifecycle management (async context manager),
    randomized user agent selection and safe navigation with retry.
    """

    def __init__(self, headless: bool = True):
        self.headless = headless
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    def _get_user_agent(self) -> str:
        return random.choice(USER_AGENTS)

    async def __aenter__(self):
        """Start Playwright, launch browser, create context."""
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=["--disable-blink-features=AutomationControlled"]
        )
        self.context = await self.browser.new_context(
            user_agent=self._get_user_agent(),
            viewport={"width": 1280, "height": 800},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Cleanup browser resources."""
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.context = self.browser = self.playwright = None
        return False

    async def safe_goto(self, page: Page, url: str, timeout: int = 30000, wait_until: str = "domcontentloaded") -> bool:
        """
        Navigate to a URL with error handling and human-like delay.
        Returns True on success, False on failure.
        """
        try:
            await page.goto(url, timeout=timeout, wait_until=wait_until)
            await asyncio.sleep(random.uniform(1.0, 2.5))
            return True
        except Exception as e:
            logger.warning(f"Failed to load {url}: {e}")
            return False

    async def safe_goto_with_retry(self, page: Page, url: str, retries: int = 2, timeout: int = 30000) -> bool:
        """Navigate to a URL with retry logic and exponential backoff."""
        for attempt in range(retries + 1):
            if await self.safe_goto(page, url, timeout=timeout):
                return True
            if attempt < retries:
                wait = 2 ** attempt + random.uniform(0, 1)
                logger.info(f"Retrying {url} in {wait:.1f}s (attempt {attempt + 2}/{retries + 1})")
                await asyncio.sleep(wait)
        return False
