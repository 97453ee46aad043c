"""
Search-engine discovery collector.

Expands intent templates ("announcing ... seed round") against DuckDuckGo,
restricted to the past week, and turns each result snippet into a
candidate text. Low trust: accepted candidates land in the pending pool.
"""
import asyncio
import logging
from datetime import date
from typing import List, Optional

import aiohttp

from scout.collectors.base import ingest_items
from scout.core.config import settings
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor
from scout.core.web_search import DuckDuckGoSearch, SearchHit

logger = logging.getLogger(__name__)

INTENT_QUERIES = [
    'site:twitter.com "announcing" "seed round"',
    'site:x.com "we raised" "pre-seed"',
    'site:linkedin.com/posts "excited to announce" "seed round"',
    'site:linkedin.com/posts "we just raised" "series a"',
    'site:twitter.com "thrilled to announce" "funding"',
    'site:x.com "announcing our" "series a"',
    'site:linkedin.com/posts "closed our" "pre-seed round"',
    '"announces" "seed funding" startup',
]

MAX_ANNOUNCEMENT_AGE_DAYS = 5
# Snippet blobs are short; the usual 100-char floor would drop most of them
MIN_SNIPPET_TEXT_LENGTH = 40


def hit_to_item(hit: SearchHit, source_name: str, today: Optional[date] = None) -> RawItem:
    return RawItem(
        text=f"Source: {hit.url}\nTitle: {hit.title}\nSnippet: {hit.snippet}",
        source_url=hit.url,
        source_name=source_name,
        published_at=(today or date.today()).isoformat(),
    )


class SerpCollector:
    def __init__(
        self,
        descriptor: SourceDescriptor,
        pipeline,
        search: Optional[DuckDuckGoSearch] = None,
        query_delay: Optional[float] = None,
    ):
        self.descriptor = descriptor
        self.pipeline = pipeline
        self.search = search or DuckDuckGoSearch()
        self.query_delay = settings.serp_query_delay_seconds if query_delay is None else query_delay
        self.queries: List[str] = descriptor.options.get("queries") or INTENT_QUERIES
        self.results_per_query = int(descriptor.options.get("results_per_query", 5))
        self.time_window = descriptor.options.get("time_window", "w")

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def scrape(self) -> ScrapeResult:
        result = ScrapeResult(source=self.name)
        seen_urls = set()

        for i, query in enumerate(self.queries):
            if i:
                await asyncio.sleep(self.query_delay)
            try:
                hits = await self.search.search(
                    query, max_results=self.results_per_query, time_window=self.time_window
                )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"[{self.name}] query failed '{query}': {e}")
                result.error_count += 1
                continue

            items = []
            for hit in hits:
                if hit.url in seen_urls:
                    continue
                seen_urls.add(hit.url)
                items.append(hit_to_item(hit, self.name))

            await ingest_items(
                self.pipeline, self.descriptor, items, result,
                min_text_length=MIN_SNIPPET_TEXT_LENGTH,
                max_age_days=MAX_ANNOUNCEMENT_AGE_DAYS,
            )

        logger.info(
            f"[{self.name}] {len(self.queries)} queries, {len(seen_urls)} results, "
            f"{result.processed_count} candidates"
        )
        return result
