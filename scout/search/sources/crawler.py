"""Fetch full page text for URLs the snippets could not resolve."""
import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

from scout.core.config import settings
from scout.core.utils import strip_html

logger = logging.getLogger(__name__)

MAX_PAGE_CHARS = 20000


class PageCrawler:
    def __init__(self, concurrency: Optional[int] = None, timeout: Optional[float] = None):
        self.concurrency = concurrency or settings.crawler_concurrency
        self.timeout = timeout or settings.crawler_timeout_seconds
        self._headers = {"User-Agent": "Mozilla/5.0 (compatible; ScoutBot/1.0)"}

    async def fetch_text(self, session: aiohttp.ClientSession, url: str) -> Optional[str]:
        async with session.get(url, allow_redirects=True) as response:
            if response.status != 200:
                logger.debug(f"Crawl {url} -> {response.status}")
                return None
            if "html" not in response.headers.get("Content-Type", "html"):
                return None
            html = await response.text(errors="replace")
        text = strip_html(html)
        return text[:MAX_PAGE_CHARS] if text else None

    async def crawl(self, urls: List[str]) -> Dict[str, str]:
        """Text per URL for every page that loaded; failures are dropped."""
        if not urls:
            return {}
        semaphore = asyncio.Semaphore(self.concurrency)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(timeout=timeout, headers=self._headers) as session:
            async def bounded(url: str) -> Optional[str]:
                async with semaphore:
                    return await self.fetch_text(session, url)

            outcomes = await asyncio.gather(*(bounded(u) for u in urls), return_exceptions=True)

        pages = {}
        for url, outcome in zip(urls, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug(f"Crawl failed for {url}: {outcome}")
                continue
            if outcome:
                pages[url] = outcome
        logger.info(f"Crawled {len(pages)}/{len(urls)} pages")
        return pages
