"""
Base for search sources.

Every source call is isolated: search() never raises. Failures and
timeouts come back as a SearchSourceResult with `error` set, so one bad
source cannot sink a fan-out.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
from dateutil import parser as date_parser

from scout.core.config import settings
from scout.core.data_types import SearchResult, SearchSourceResult
from scout.core.errors import CollectionError

logger = logging.getLogger(__name__)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Naive UTC datetime from an API timestamp, or None."""
    if not value:
        return None
    try:
        parsed = date_parser.parse(str(value))
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class SearchSource:
    name: str = "base"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.http_timeout_seconds

    def missing_configuration(self) -> Optional[str]:
        """Reason the source cannot run (e.g. no API key), else None."""
        return None

    async def _search(self, query: str, max_results: int) -> List[SearchResult]:
        raise NotImplementedError

    async def search(self, query: str, max_results: int = 10) -> SearchSourceResult:
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        problem = self.missing_configuration()
        if problem:
            return SearchSourceResult(self.name, query, error=problem)

        try:
            results = await asyncio.wait_for(self._search(query, max_results), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Search source {self.name} timed out after {self.timeout}s for '{query}'")
            return SearchSourceResult(self.name, query, error=f"timeout after {self.timeout}s", elapsed_ms=elapsed())
        except Exception as e:
            logger.warning(f"Search source {self.name} failed for '{query}': {e}")
            return SearchSourceResult(self.name, query, error=str(e) or e.__class__.__name__, elapsed_ms=elapsed())

        for r in results:
            r.source = r.source or self.name
        return SearchSourceResult(self.name, query, results[:max_results], elapsed_ms=elapsed())

    async def _request_json(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """One HTTP call; non-200 raises CollectionError."""
        async with aiohttp.ClientSession() as session:
            async with session.request(method, url, params=params, json=json, headers=headers) as response:
                if response.status != 200:
                    text = await response.text()
                    raise CollectionError(f"{self.name} HTTP {response.status}: {text[:200]}")
                return await response.json(content_type=None)
