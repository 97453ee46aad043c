"""
Founder discovery via search-engine dorks.

Runs a few targeted queries, feeds the combined snippets to the extraction
gateway and stops once enough distinct founders are known.
"""
import asyncio
import logging
from typing import List, Optional

import aiohttp

from scout.core.config import settings
from scout.core.utils import website_host
from scout.core.web_search import DuckDuckGoSearch
from scout.extraction.gateway import ExtractionGateway

logger = logging.getLogger(__name__)

FOUNDER_QUERIES = [
    '"{name}" founder OR co-founder',
    'site:linkedin.com/in "{name}" founder',
    '"{name}" "founded by"',
    '"{name}" CEO co-founder startup',
    'site:crunchbase.com "{name}" founders',
    '"{domain}" founder',
    'site:twitter.com "{name}" founder',
]


class FounderDiscoveryService:
    def __init__(
        self,
        gateway: ExtractionGateway,
        search: Optional[DuckDuckGoSearch] = None,
        max_queries: int = 3,
        results_per_query: int = 5,
        max_founders: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ):
        self.gateway = gateway
        self.search = search or DuckDuckGoSearch()
        self.max_queries = max_queries
        self.results_per_query = results_per_query
        self.max_founders = max_founders or settings.max_founders
        self.delay_seconds = settings.founder_search_delay_seconds if delay_seconds is None else delay_seconds

    def build_queries(self, name: str, website: Optional[str] = None) -> List[str]:
        domain = website_host(website)
        queries = []
        for template in FOUNDER_QUERIES:
            if "{domain}" in template and not domain:
                continue
            queries.append(template.format(name=name, domain=domain))
        return queries[:self.max_queries]

    async def discover(self, name: str, website: Optional[str] = None) -> List[str]:
        """Distinct founder names, at most max_founders. Search failures are skipped."""
        founders: List[str] = []
        seen = set()

        for i, query in enumerate(self.build_queries(name, website)):
            if i:
                await asyncio.sleep(self.delay_seconds)
            try:
                hits = await self.search.search(query, max_results=self.results_per_query)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"Founder search failed for '{query}': {e}")
                continue
            if not hits:
                continue

            text = "\n\n".join(f"Title: {h.title}\nSnippet: {h.snippet}\nURL: {h.url}" for h in hits)
            for founder in await self.gateway.extract_founders(name, text):
                key = founder.lower()
                if key not in seen:
                    seen.add(key)
                    founders.append(founder)
            if len(founders) >= self.max_founders:
                break

        if founders:
            logger.info(f"Found {len(founders)} founders for {name}")
        return founders[:self.max_founders]
