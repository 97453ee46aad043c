"""
Scout Workflow.
Wires the collectors, extraction gateway, intake filter, confidence engine,
enrichment queue and search orchestrator together, and exposes them as a CLI.

Usage:
    python -m scout init-db
    python -m scout scrape --source techcrunch hackernews
    python -m scout validate
    python -m scout search "ai infrastructure" --tier paid --page 2
"""
import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from scout.collectors.orchestrator import ScraperOrchestrator
from scout.collectors.registry import build_collectors, load_source_descriptors
from scout.core.config import settings
from scout.core.data_types import AggregatedSearchResult, ScrapeResult, SweepReport
from scout.core.database import async_session_factory, init_db
from scout.core.web_search import DuckDuckGoSearch
from scout.extraction.gateway import ExtractionGateway
from scout.ingestion.database import StartupModel
from scout.ingestion.enrichment import EnrichmentService, WebsiteFinder
from scout.ingestion.enrichment_queue import EnrichmentQueue
from scout.ingestion.founder_discovery import FounderDiscoveryService
from scout.ingestion.intake import CandidateIntakeFilter
from scout.ingestion.pipeline import IngestPipeline
from scout.ingestion.validation import ValidationEngine
from scout.search.config import DEFAULT_TIER, PRICING_TIERS
from scout.search.orchestrator import SearchOrchestrator
from scout.search.sources.crawler import PageCrawler
from scout.search.sources.local import LocalStoreSource
from scout.search.sources.paid import ExaSource, TavilySource
from scout.search.sources.web import BraveSource, SearxngSource

logger = logging.getLogger(__name__)
console = Console()


@dataclass
class ScoutPipeline:
    """Every long-lived component, built once per process."""
    gateway: ExtractionGateway
    enrichment_queue: EnrichmentQueue
    intake: CandidateIntakeFilter
    ingest: IngestPipeline
    engine: ValidationEngine
    scraper: ScraperOrchestrator
    search: SearchOrchestrator
    session_factory: async_sessionmaker


def build_pipeline(
    session_factory: Optional[async_sessionmaker] = None,
    sources: Optional[List[str]] = None,
) -> ScoutPipeline:
    """
    Construct the component graph. `sources` limits the collectors to the
    named descriptors; by default every enabled one runs.
    """
    session_factory = session_factory or async_session_factory
    gateway = ExtractionGateway()

    web_search = DuckDuckGoSearch()
    enrichment = EnrichmentService(
        WebsiteFinder(web_search),
        FounderDiscoveryService(gateway, web_search),
        session_factory=session_factory,
    )
    queue = EnrichmentQueue(enrichment.enrich_startup)

    intake = CandidateIntakeFilter(session_factory=session_factory, enrichment_queue=queue)
    ingest = IngestPipeline(gateway, intake)
    engine = ValidationEngine(session_factory=session_factory, enrichment_queue=queue)

    descriptors = load_source_descriptors()
    if sources:
        descriptors = [d for d in descriptors if d.name in sources]
    scraper = ScraperOrchestrator(build_collectors(descriptors, ingest))

    search = SearchOrchestrator(
        [
            SearxngSource(),
            BraveSource(),
            LocalStoreSource(session_factory),
            ExaSource(),
            TavilySource(),
        ],
        gateway,
        crawler=PageCrawler(),
    )

    return ScoutPipeline(
        gateway=gateway,
        enrichment_queue=queue,
        intake=intake,
        ingest=ingest,
        engine=engine,
        scraper=scraper,
        search=search,
        session_factory=session_factory,
    )


# =============================================================================
# OUTPUT
# =============================================================================

def print_scrape_results(results: List[ScrapeResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta", title="Scrape Results")
    table.add_column("Source", width=24)
    table.add_column("Items", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Dupes", justify="right")
    table.add_column("Rejected", justify="right")
    table.add_column("Errors", justify="right")
    for r in results:
        table.add_row(
            r.source,
            str(len(r.items)),
            str(r.processed_count),
            str(r.duplicate_count),
            str(r.rejected_count),
            f"[red]{r.error_count}[/red]" if r.error_count else "0",
        )
    console.print(table)


def print_sweep_report(report: SweepReport) -> None:
    table = Table(show_header=True, header_style="bold cyan", title="Validation Sweep")
    table.add_column("Metric", width=20)
    table.add_column("Count", justify="right")
    for key, value in report.to_dict().items():
        if key == "promoted_ids":
            continue
        table.add_row(key, str(value))
    console.print(table)


def print_search_result(result: AggregatedSearchResult) -> None:
    console.print(
        f"\n[bold]'{result.query}'[/bold] ({result.tier}) page {result.page}/{max(result.total_pages, 1)} - "
        f"{result.total_companies} companies from {result.total_results} results in {result.elapsed_ms}ms"
    )
    if result.failed_sources:
        console.print(f"[yellow]Failed sources: {', '.join(result.failed_sources)}[/yellow]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Company", width=28)
    table.add_column("Funding", width=14)
    table.add_column("Round", width=12)
    table.add_column("Industry", width=16)
    table.add_column("Conf", justify="right", width=5)
    table.add_column("Source", width=40)
    for c in result.companies:
        table.add_row(
            c.name[:28],
            c.funding_amount or "N/A",
            c.round_type or "N/A",
            (c.industry or "N/A")[:16],
            f"{c.confidence:.2f}",
            (c.source_url or "")[:40],
        )
    console.print(table)


def print_statistics(stats: dict) -> None:
    table = Table(show_header=True, header_style="bold cyan", title="Scout Statistics")
    table.add_column("Metric", width=28)
    table.add_column("Value")
    for key, value in stats.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
        table.add_row(key, str(value))
    console.print(table)


# =============================================================================
# COMMANDS
# =============================================================================

async def cmd_scrape(pipeline: ScoutPipeline) -> List[ScrapeResult]:
    results = await pipeline.scraper.run_all()
    print_scrape_results(results)
    await pipeline.enrichment_queue.wait_for_idle()
    return results


async def cmd_validate(pipeline: ScoutPipeline) -> SweepReport:
    report = await pipeline.engine.run_sweep()
    print_sweep_report(report)
    await pipeline.enrichment_queue.wait_for_idle()
    return report


async def cmd_revalidate(pipeline: ScoutPipeline, reacquire: bool = True) -> None:
    requests = await pipeline.engine.revalidate_stale()
    console.print(f"[bold]{len(requests)}[/bold] startups flagged for revalidation")
    if reacquire and requests:
        print_scrape_results(await pipeline.scraper.reacquire(requests))
        await pipeline.enrichment_queue.wait_for_idle()


async def cmd_enrich(pipeline: ScoutPipeline, limit: int = 50) -> int:
    """Queue canonical records whose enrichment never completed."""
    async with pipeline.session_factory() as session:
        stmt = (
            select(StartupModel.id)
            .where(StartupModel.enrichment_complete.is_(False))
            .order_by(StartupModel.created_at.desc())
            .limit(limit)
        )
        ids = list((await session.execute(stmt)).scalars().all())

    for startup_id in ids:
        pipeline.enrichment_queue.enqueue(startup_id)
    console.print(f"Enriching {len(ids)} startups...")
    await pipeline.enrichment_queue.wait_for_idle()
    console.print(
        f"[green]Done:[/green] {pipeline.enrichment_queue.processed} enriched, "
        f"{pipeline.enrichment_queue.failed} failed"
    )
    return len(ids)


async def cmd_search(pipeline: ScoutPipeline, query: str, tier: str, page: int) -> AggregatedSearchResult:
    result = await pipeline.search.search(query, tier=tier, page=page)
    print_search_result(result)
    return result


async def cmd_stats(pipeline: ScoutPipeline) -> dict:
    stats = await pipeline.engine.get_statistics()
    print_statistics(stats)
    return stats


async def cmd_schedule(pipeline: ScoutPipeline) -> None:
    from scout.scheduler import start_scheduler, stop_scheduler

    start_scheduler(pipeline)
    try:
        await asyncio.Event().wait()
    finally:
        await stop_scheduler()


async def run_command(args: argparse.Namespace) -> None:
    if args.command == "init-db":
        await init_db()
        console.print("[green]Database tables created[/green]")
        return

    pipeline = build_pipeline(sources=getattr(args, "source", None))

    if args.command == "scrape":
        await cmd_scrape(pipeline)
    elif args.command == "validate":
        await cmd_validate(pipeline)
    elif args.command == "revalidate":
        await cmd_revalidate(pipeline, reacquire=not args.no_reacquire)
    elif args.command == "enrich":
        await cmd_enrich(pipeline, limit=args.limit)
    elif args.command == "search":
        await cmd_search(pipeline, " ".join(args.query), args.tier, args.page)
    elif args.command == "stats":
        await cmd_stats(pipeline)
    elif args.command == "schedule":
        await cmd_schedule(pipeline)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scout",
        description="Startup funding discovery: collect, validate, enrich and search",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    scrape = sub.add_parser("scrape", help="Run the enabled collectors once")
    scrape.add_argument("--source", nargs="+", help="Only run these source names (see config/sources.yaml)")

    sub.add_parser("validate", help="Run one confidence sweep over the pending pool")

    revalidate = sub.add_parser("revalidate", help="Flag stale low-confidence startups and re-acquire them")
    revalidate.add_argument("--no-reacquire", action="store_true", help="Only flag, do not re-run collectors")

    enrich = sub.add_parser("enrich", help="Enrich startups missing a website or founders")
    enrich.add_argument("--limit", type=int, default=50, help="Maximum startups to queue (default: 50)")

    search = sub.add_parser("search", help="Federated funding search")
    search.add_argument("query", nargs="+", help="Search query")
    search.add_argument("--tier", choices=sorted(PRICING_TIERS), default=DEFAULT_TIER)
    search.add_argument("--page", type=int, default=1)

    sub.add_parser("stats", help="Pending pool and canonical store statistics")
    sub.add_parser("schedule", help="Run collectors, sweeps and revalidation on a schedule")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    try:
        asyncio.run(run_command(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
