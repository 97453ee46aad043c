"""Free web search sources: self-hosted SearXNG and the Brave Search API."""
import logging
from typing import List, Optional

from scout.core.config import settings
from scout.core.data_types import SearchResult
from scout.search.sources.base import SearchSource, parse_datetime

logger = logging.getLogger(__name__)


class SearxngSource(SearchSource):
    name = "searxng"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(timeout or settings.searxng_timeout_seconds)
        self.base_url = (base_url or settings.searxng_url).rstrip("/")

    async def _search(self, query: str, max_results: int) -> List[SearchResult]:
        data = await self._request_json(
            "GET",
            f"{self.base_url}/search",
            params={"q": query, "format": "json", "categories": "news,general", "language": "en"},
        )
        results = []
        for item in (data or {}).get("results", [])[:max_results]:
            if not item.get("url"):
                continue
            results.append(SearchResult(
                title=item.get("title", ""),
                url=item["url"],
                snippet=item.get("content", ""),
                published_date=parse_datetime(item.get("publishedDate")),
                relevance_score=min(float(item.get("score") or 0.5), 1.0),
            ))
        return results


class BraveSource(SearchSource):
    name = "brave"
    API_URL = "https://api.search.brave.com/res/v1/web/search"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(timeout or settings.brave_timeout_seconds)
        self.api_key = api_key or settings.brave_api_key

    def missing_configuration(self) -> Optional[str]:
        return None if self.api_key else "BRAVE_API_KEY not set"

    async def _search(self, query: str, max_results: int) -> List[SearchResult]:
        data = await self._request_json(
            "GET",
            self.API_URL,
            params={"q": query, "count": min(max_results, 20), "freshness": "pm"},
            headers={"Accept": "application/json", "X-Subscription-Token": self.api_key},
        )
        results = []
        for item in ((data or {}).get("web") or {}).get("results", []):
            if not item.get("url"):
                continue
            results.append(SearchResult(
                title=item.get("title", ""),
                url=item["url"],
                snippet=item.get("description", ""),
                published_date=parse_datetime(item.get("page_age")),
            ))
        return results
