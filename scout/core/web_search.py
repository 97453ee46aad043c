"""
DuckDuckGo HTML search.

Shared by the search-discovery collector, website finder and founder
discovery. Uses the no-JS endpoint so aiohttp + BeautifulSoup is enough.
"""
import logging
import random
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse, parse_qs, unquote

import aiohttp
from bs4 import BeautifulSoup

from scout.core.config import settings

logger = logging.getLogger(__name__)

DDG_HTML_URL = "https://html.duckduckgo.com/html/"

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]


@dataclass
class SearchHit:
    title: str
    url: str
    snippet: str = ""


def _resolve_link(href: str) -> str:
    """DuckDuckGo wraps result links in a /l/?uddg= redirect."""
    if not href:
        return ""
    if href.startswith("//"):
        href = f"https:{href}"
    parsed = urlparse(href)
    if "duckduckgo.com" in parsed.netloc and parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return unquote(target[0])
    return href


def parse_results(html: str, max_results: int = 5) -> List[SearchHit]:
    """Parse result blocks from the DuckDuckGo HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    hits: List[SearchHit] = []
    for block in soup.select(".result"):
        anchor = block.select_one(".result__a")
        if not anchor:
            continue
        url = _resolve_link(anchor.get("href", ""))
        if not url.startswith("http"):
            continue
        snippet_el = block.select_one(".result__snippet")
        hits.append(SearchHit(
            title=anchor.get_text(" ", strip=True),
            url=url,
            snippet=snippet_el.get_text(" ", strip=True) if snippet_el else "",
        ))
        if len(hits) >= max_results:
            break
    return hits


class DuckDuckGoSearch:
    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.http_timeout_seconds

    async def search(
        self,
        query: str,
        max_results: int = 5,
        time_window: Optional[str] = None,
    ) -> List[SearchHit]:
        """
        Run one query. time_window is DuckDuckGo's df parameter
        ("d", "w", "m"). Raises aiohttp errors to the caller.
        """
        params = {"q": query}
        if time_window:
            params["df"] = time_window
        headers = {"User-Agent": random.choice(USER_AGENTS)}
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.get(DDG_HTML_URL, params=params) as response:
                if response.status != 200:
                    logger.warning(f"DuckDuckGo returned {response.status} for '{query}'")
                    return []
                html = await response.text()

        hits = parse_results(html, max_results=max_results)
        logger.debug(f"DuckDuckGo '{query}': {len(hits)} hits")
        return hits
