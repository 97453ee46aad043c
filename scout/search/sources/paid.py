"""Paid-tier search APIs: Exa and Tavily."""
from typing import List, Optional

from scout.core.config import settings
from scout.core.data_types import SearchResult
from scout.search.sources.base import SearchSource, parse_datetime


class ExaSource(SearchSource):
    name = "exa"
    API_URL = "https://api.exa.ai/search"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(timeout or settings.paid_search_timeout_seconds)
        self.api_key = api_key or settings.exa_api_key

    def missing_configuration(self) -> Optional[str]:
        return None if self.api_key else "EXA_API_KEY not set"

    async def _search(self, query: str, max_results: int) -> List[SearchResult]:
        data = await self._request_json(
            "POST",
            self.API_URL,
            json={
                "query": query,
                "numResults": max_results,
                "type": "auto",
                "contents": {"text": {"maxCharacters": 2000}},
            },
            headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
        )
        results = []
        for item in (data or {}).get("results", []):
            if not item.get("url"):
                continue
            text = item.get("text") or ""
            results.append(SearchResult(
                title=item.get("title") or "",
                url=item["url"],
                snippet=text[:300],
                content=text or None,
                published_date=parse_datetime(item.get("publishedDate")),
                relevance_score=min(float(item.get("score") or 0.5), 1.0),
            ))
        return results


class TavilySource(SearchSource):
    name = "tavily"
    API_URL = "https://api.tavily.com/search"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(timeout or settings.paid_search_timeout_seconds)
        self.api_key = api_key or settings.tavily_api_key

    def missing_configuration(self) -> Optional[str]:
        return None if self.api_key else "TAVILY_API_KEY not set"

    async def _search(self, query: str, max_results: int) -> List[SearchResult]:
        data = await self._request_json(
            "POST",
            self.API_URL,
            json={
                "api_key": self.api_key,
                "query": query,
                "max_results": max_results,
                "search_depth": "basic",
                "topic": "news",
            },
        )
        results = []
        for item in (data or {}).get("results", []):
            if not item.get("url"):
                continue
            results.append(SearchResult(
                title=item.get("title", ""),
                url=item["url"],
                snippet=item.get("content", ""),
                published_date=parse_datetime(item.get("published_date")),
                relevance_score=min(float(item.get("score") or 0.5), 1.0),
            ))
        return results
