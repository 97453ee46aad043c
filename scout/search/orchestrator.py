"""
Search Orchestrator.

search(query, tier, page):
1. Expand the query into template variants (tier-bounded).
2. Fan out every enabled source x variant concurrently; each call settles
   on its own and failures are recorded per source.
3. Merge, URL-dedup, rank, keep funding-related results.
4. Extract companies from title+snippet up to the tier cap; if short,
   crawl further result pages and extract from their text.
5. Company-dedup, then paginate.
"""
import asyncio
import logging
import math
import time
from typing import Dict, List, Optional, Set

from scout.core.data_types import AggregatedSearchResult, CompanyData, SearchResult, SearchSourceResult
from scout.core.utils import utcnow
from scout.search.aggregator import ResultAggregator
from scout.search.config import CRAWLED_COMPANY_CONFIDENCE, DEFAULT_TIER, expand_query, get_tier
from scout.search.sources.base import SearchSource
from scout.search.sources.crawler import PageCrawler

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    def __init__(
        self,
        sources: List[SearchSource],
        extractor,
        crawler: Optional[PageCrawler] = None,
        results_per_call: int = 10,
    ):
        self.sources: Dict[str, SearchSource] = {s.name: s for s in sources}
        self.extractor = extractor
        self.crawler = crawler
        self.results_per_call = results_per_call
        self.aggregator = ResultAggregator()

    async def _fan_out(self, active: List[SearchSource], variants: List[str]) -> List[SearchSourceResult]:
        calls = [(source, variant) for source in active for variant in variants]
        outcomes = await asyncio.gather(
            *(source.search(variant, self.results_per_call) for source, variant in calls),
            return_exceptions=True,
        )
        settled = []
        for (source, variant), outcome in zip(calls, outcomes):
            if isinstance(outcome, BaseException):
                outcome = SearchSourceResult(source.name, variant, error=str(outcome) or outcome.__class__.__name__)
            settled.append(outcome)
        return settled

    async def _extract_from_snippets(
        self, results: List[SearchResult], max_companies: int
    ) -> List[CompanyData]:
        companies = []
        for result in results[:max_companies * 2]:
            if len(companies) >= max_companies:
                break
            text = f"{result.title}\n\n{result.content or result.snippet}"
            company = await self.extractor.extract_company(text, result.url)
            if company:
                company.confidence = result.relevance_score
                companies.append(company)
        return companies

    async def _extract_from_pages(self, results: List[SearchResult], need: int, found_urls: Set[str]) -> List[CompanyData]:
        if not self.crawler or need <= 0:
            return []
        urls = [
            r.url for r in results
            if r.url.startswith("http") and r.url not in found_urls
        ][:need * 2]
        pages = await self.crawler.crawl(urls)

        companies = []
        for url in urls:
            if len(companies) >= need:
                break
            text = pages.get(url)
            if not text:
                continue
            company = await self.extractor.extract_company(text, url)
            if company:
                company.confidence = CRAWLED_COMPANY_CONFIDENCE
                companies.append(company)
        return companies

    async def search(self, query: str, tier: str = DEFAULT_TIER, page: int = 1) -> AggregatedSearchResult:
        started = time.monotonic()
        tier_cfg = get_tier(tier)
        page = max(1, page)

        variants = expand_query(query, tier_cfg.max_query_variants)
        active = [self.sources[name] for name in tier_cfg.sources if name in self.sources]
        logger.info(f"Search '{query}' ({tier_cfg.name}): {len(active)} sources x {len(variants)} variants")

        source_results = await self._fan_out(active, variants)
        succeeded = {r.source for r in source_results if r.ok}
        source_errors: Dict[str, str] = {}
        for r in source_results:
            if not r.ok:
                source_errors.setdefault(r.source, r.error)
        failed = sorted(set(source_errors) - succeeded)

        merged = self.aggregator.merge_results(source_results)
        unique = self.aggregator.deduplicate_by_url(merged)
        ranked = self.aggregator.rank_results(unique, now=utcnow())
        funding = self.aggregator.filter_funding_related(ranked)
        logger.info(
            f"Search '{query}': {len(merged)} results, {len(unique)} unique, {len(funding)} funding-related"
        )

        companies = await self._extract_from_snippets(funding, tier_cfg.max_companies)
        if len(companies) < tier_cfg.max_companies:
            found_urls = {c.source_url for c in companies if c.source_url}
            remaining = [r for r in funding if r.url not in found_urls]
            companies += await self._extract_from_pages(
                remaining, tier_cfg.max_companies - len(companies), found_urls
            )

        deduped = self.aggregator.deduplicate_companies(companies)[:tier_cfg.max_companies]
        total_pages = min(math.ceil(len(deduped) / tier_cfg.page_size), tier_cfg.max_pages)
        start = (page - 1) * tier_cfg.page_size
        page_items = deduped[start:start + tier_cfg.page_size] if page <= max(total_pages, 1) else []

        return AggregatedSearchResult(
            query=query,
            tier=tier_cfg.name,
            page=page,
            page_size=tier_cfg.page_size,
            total_companies=len(deduped),
            total_pages=total_pages,
            companies=page_items,
            sources_used=sorted(succeeded),
            failed_sources=failed,
            source_errors=source_errors,
            total_results=len(unique),
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
