"""
Scraper Orchestrator.

Runs the enabled collectors one after another, one session/browser at a
time. A collector that throws is logged and reported with one error; the
next collector still runs. Losing the database aborts the run.
"""
import logging
from typing import Dict, Iterable, List

from scout.collectors.base import Collector
from scout.core.data_types import RevalidationRequest, ScrapeResult
from scout.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class ScraperOrchestrator:
    def __init__(self, collectors: List[Collector]):
        self.collectors = collectors

    async def run_collector(self, collector: Collector) -> ScrapeResult:
        logger.info(f"Running collector: {collector.name}")
        try:
            async with collector:
                result = await collector.scrape()
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Collector {collector.name} failed: {e}")
            return ScrapeResult(source=collector.name, processed_count=0, error_count=1)

        logger.info(
            f"Collector {collector.name}: processed={result.processed_count} "
            f"errors={result.error_count} duplicates={result.duplicate_count} "
            f"rejected={result.rejected_count}"
        )
        return result

    async def run_all(self) -> List[ScrapeResult]:
        results = []
        for collector in self.collectors:
            results.append(await self.run_collector(collector))

        processed = sum(r.processed_count for r in results)
        errors = sum(r.error_count for r in results)
        logger.info(f"Scrape run complete: {len(results)} collectors, {processed} new records, {errors} errors")
        return results

    async def reacquire(self, requests: Iterable[RevalidationRequest]) -> List[ScrapeResult]:
        """Re-run the originating collector of each flagged record, once per collector."""
        by_name: Dict[str, Collector] = {c.name: c for c in self.collectors}
        wanted = []
        for request in requests:
            collector = by_name.get(request.source_name or "")
            if collector is None:
                logger.info(f"No enabled collector '{request.source_name}' to re-acquire {request.name}")
                continue
            if collector not in wanted:
                wanted.append(collector)

        results = []
        for collector in wanted:
            results.append(await self.run_collector(collector))
        return results
