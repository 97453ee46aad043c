"""
Unit tests for collectors: item builders, the RSS path end to end
(against a stubbed feed and gateway), SERP discovery, the registry and
the scraper orchestrator.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import feedparser
import pytest
from sqlalchemy import select

from scout.collectors.base import Collector, ingest_items
from scout.collectors.hackernews import story_to_item
from scout.collectors.orchestrator import ScraperOrchestrator
from scout.collectors.producthunt import ProductHuntCollector, node_to_item
from scout.collectors.reddit import post_to_item
from scout.collectors.registry import build_collectors, load_source_descriptors
from scout.collectors.rss import RssCollector, entries_to_items
from scout.collectors.serp import SerpCollector
from scout.core.data_types import IntakeResult, RawItem, RevalidationRequest, ScrapeResult, SourceDescriptor
from scout.core.errors import CollectionError, StoreUnavailableError
from scout.core.models import IntakeOutcome, SourceType, TrustLevel, ValidationStatus
from scout.core.web_search import SearchHit
from scout.ingestion.database import StartupModel
from scout.ingestion.intake import CandidateIntakeFilter
from scout.ingestion.pipeline import IngestPipeline

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
  <title>Venture</title>
  <item>
    <title>Acme raises $5M Series A</title>
    <link>https://techcrunch.com/2026/10/01/acme-raises-5m</link>
    <pubDate>Wed, 01 Oct 2026 10:00:00 +0000</pubDate>
    <description><![CDATA[<p>Acme, which builds AI tooling for accountants, has raised a
    <b>$5 million</b> Series A led by Sequoia. Founder Jane Doe says the money goes to hiring.</p>]]></description>
  </item>
  <item>
    <title>No link here</title>
    <description>Missing link entries are ignored.</description>
  </item>
</channel>
</rss>
"""


class TestItemBuilders:

    def test_entries_to_items(self):
        items = entries_to_items(feedparser.parse(RSS_FEED), "techcrunch", limit=15)

        assert len(items) == 1
        assert items[0].source_url == "https://techcrunch.com/2026/10/01/acme-raises-5m"
        assert items[0].published_at == "2026-10-01"
        assert items[0].text.startswith("Acme raises $5M Series A")
        assert "<b>" not in items[0].text

    def test_story_to_item(self):
        story = {"title": "Show HN: Acme", "url": "https://acme.ai", "text": "<p>We raised</p>", "time": 1790000000}
        item = story_to_item(story, "hackernews")
        assert item.source_url == "https://acme.ai"
        assert "We raised" in item.text
        assert item.published_at is not None

    def test_story_without_url_skipped(self):
        assert story_to_item({"title": "Ask HN: anything"}, "hackernews") is None
        assert story_to_item({"url": "https://x.example", "dead": True}, "hackernews") is None

    def test_short_self_post_skipped(self):
        assert post_to_item({"is_self": True, "selftext": "too short", "permalink": "/r/startups/1"}, "reddit") is None

    def test_link_post_uses_external_url(self):
        item = post_to_item({"is_self": False, "title": "We raised", "url": "https://acme.ai/blog", "permalink": "/r/x/1"}, "reddit")
        assert item.source_url == "https://acme.ai/blog"

    def test_long_self_post_uses_permalink(self):
        post = {"is_self": True, "selftext": "x" * 150, "permalink": "/r/startups/comments/abc", "created_utc": 1790000000}
        item = post_to_item(post, "reddit")
        assert item.source_url == "https://www.reddit.com/r/startups/comments/abc"

    def test_producthunt_node(self):
        node = {
            "name": "Acme", "tagline": "AI for accountants", "url": "https://www.producthunt.com/posts/acme",
            "createdAt": "2026-10-01T08:00:00Z",
            "topics": {"edges": [{"node": {"name": "Fintech"}}, {"node": {}}]},
        }
        item = node_to_item(node, "producthunt")
        assert "Topics: Fintech" in item.text
        assert item.published_at == "2026-10-01"


class TestRssCollectorEndToEnd:

    async def test_funding_article_becomes_canonical_and_is_enqueued(self, session_factory, stub_gateway):
        queue = MagicMock()
        intake = CandidateIntakeFilter(session_factory=session_factory, enrichment_queue=queue)
        pipeline = IngestPipeline(stub_gateway, intake)
        descriptor = SourceDescriptor(name="techcrunch", type=SourceType.RSS, endpoint="https://techcrunch.com/feed/")
        collector = RssCollector(descriptor, pipeline)

        with patch.object(RssCollector, "_get_text", AsyncMock(return_value=RSS_FEED)):
            result = await collector.scrape()

        assert result.processed_count == 1
        assert result.error_count == 0
        async with session_factory() as session:
            records = list((await session.execute(select(StartupModel))).scalars())
        assert len(records) == 1
        assert records[0].name == "Acme"
        assert records[0].confidence_score == 0.95
        assert records[0].validation_status == ValidationStatus.VALIDATED
        queue.enqueue.assert_called_once_with(records[0].id)

    async def test_unreachable_feed_raises(self):
        descriptor = SourceDescriptor(name="dead", type=SourceType.RSS, endpoint="https://dead.example/feed")
        collector = RssCollector(descriptor, MagicMock())
        with patch.object(RssCollector, "_get_text", AsyncMock(return_value=None)):
            with pytest.raises(CollectionError):
                await collector.scrape()


class TestIngestItems:

    def descriptor(self):
        return SourceDescriptor(name="feed", type=SourceType.RSS)

    async def test_item_failure_counted_and_loop_continues(self):
        pipeline = MagicMock()
        pipeline.process_item = AsyncMock(side_effect=[
            RuntimeError("bad item"),
            IntakeResult(IntakeOutcome.CREATED_CANONICAL, 1),
            IntakeResult(IntakeOutcome.DUPLICATE, 1),
        ])
        items = [RawItem(f"text {i}", f"https://x.example/{i}", "feed") for i in range(3)]

        result = await ingest_items(pipeline, self.descriptor(), items, ScrapeResult(source="feed"))

        assert result.error_count == 1
        assert result.processed_count == 1
        assert result.duplicate_count == 1
        assert len(result.items) == 3

    async def test_store_unavailable_aborts(self):
        pipeline = MagicMock()
        pipeline.process_item = AsyncMock(side_effect=StoreUnavailableError("db down"))
        items = [RawItem("text", "https://x.example/1", "feed")]

        with pytest.raises(StoreUnavailableError):
            await ingest_items(pipeline, self.descriptor(), items, ScrapeResult(source="feed"))


class TestSerpCollector:

    async def test_dedupes_urls_and_contains_query_failures(self):
        search = MagicMock()
        search.search = AsyncMock(side_effect=[
            [SearchHit("We raised a seed round", "https://x.com/acme/1", "Acme announces $2M seed")],
            aiohttp.ClientError("blocked"),
            [
                SearchHit("We raised a seed round", "https://x.com/acme/1", "Acme announces $2M seed"),
                SearchHit("Globex pre-seed", "https://linkedin.com/posts/globex", "Globex closed $1M pre-seed"),
            ],
        ])
        pipeline = MagicMock()
        pipeline.process_item = AsyncMock(return_value=IntakeResult(IntakeOutcome.CREATED_PENDING, 1))
        descriptor = SourceDescriptor(
            name="serp", type=SourceType.SERP, trust=TrustLevel.LOW, reliability=0.85,
            options={"queries": ["q1", "q2", "q3"]},
        )
        collector = SerpCollector(descriptor, pipeline, search=search, query_delay=0)

        async with collector:
            result = await collector.scrape()

        assert result.error_count == 1
        assert result.processed_count == 2
        assert pipeline.process_item.await_count == 2
        kwargs = pipeline.process_item.await_args.kwargs
        assert kwargs["max_age_days"] == 5
        assert kwargs["min_text_length"] == 40
        assert search.search.await_args.kwargs["time_window"] == "w"


class TestProductHunt:

    async def test_missing_key_is_collection_error(self):
        descriptor = SourceDescriptor(name="producthunt", type=SourceType.PRODUCTHUNT)
        collector = ProductHuntCollector(descriptor, MagicMock(), api_key=None)
        collector.api_key = None
        with pytest.raises(CollectionError):
            await collector.scrape()


class TestRegistry:

    def test_load_and_build(self, tmp_path):
        config = tmp_path / "sources.yaml"
        config.write_text(
            "sources:\n"
            "  - name: techcrunch\n"
            "    type: rss\n"
            "    endpoint: https://techcrunch.com/feed/\n"
            "  - name: serp\n"
            "    type: serp\n"
            "    trust: low\n"
            "    reliability: 0.85\n"
            "  - name: producthunt\n"
            "    type: producthunt\n"
            "    enabled: false\n"
        )
        descriptors = load_source_descriptors(config)
        assert [d.name for d in descriptors] == ["techcrunch", "serp", "producthunt"]
        assert descriptors[1].trust == TrustLevel.LOW

        collectors = build_collectors(descriptors, MagicMock())
        assert [c.name for c in collectors] == ["techcrunch", "serp"]
        assert isinstance(collectors[0], RssCollector)
        assert all(isinstance(c, Collector) for c in collectors)

    def test_bundled_config_is_valid(self):
        descriptors = load_source_descriptors()
        types = {d.type for d in descriptors}
        assert SourceType.RSS in types
        assert SourceType.SERP in types

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_source_descriptors(tmp_path / "nope.yaml")


class FakeCollector:
    def __init__(self, name, result=None, error=None):
        self.descriptor = SourceDescriptor(name=name, type=SourceType.RSS)
        self._result = result
        self._error = error
        self.entered = 0
        self.exited = 0
        self.scraped = 0

    @property
    def name(self):
        return self.descriptor.name

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1
        return False

    async def scrape(self):
        self.scraped += 1
        if self._error:
            raise self._error
        return self._result or ScrapeResult(source=self.name, processed_count=1)


class TestScraperOrchestrator:

    async def test_failing_collector_does_not_stop_run(self):
        broken = FakeCollector("broken", error=CollectionError("feed down"))
        healthy = FakeCollector("healthy")
        results = await ScraperOrchestrator([broken, healthy]).run_all()

        assert [(r.source, r.error_count, r.processed_count) for r in results] == [
            ("broken", 1, 0),
            ("healthy", 0, 1),
        ]
        assert broken.exited == 1
        assert healthy.scraped == 1

    async def test_store_unavailable_aborts_run(self):
        dead = FakeCollector("dead", error=StoreUnavailableError("db down"))
        after = FakeCollector("after")
        with pytest.raises(StoreUnavailableError):
            await ScraperOrchestrator([dead, after]).run_all()
        assert after.scraped == 0

    async def test_reacquire_runs_each_origin_once(self):
        tc = FakeCollector("techcrunch")
        serp = FakeCollector("serp")
        orchestrator = ScraperOrchestrator([tc, serp])
        requests = [
            RevalidationRequest(1, "Acme", "techcrunch", 0.6),
            RevalidationRequest(2, "Globex", "techcrunch", 0.5),
            RevalidationRequest(3, "Initech", "gone-source", 0.5),
        ]

        results = await orchestrator.reacquire(requests)

        assert [r.source for r in results] == ["techcrunch"]
        assert tc.scraped == 1
        assert serp.scraped == 0
