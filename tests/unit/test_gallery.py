"""
Unit tests for the curated-listing parser and collector.
"""
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from scout.collectors.gallery import (
    GalleryCollector,
    ListingEntry,
    entry_to_item,
    parse_detail,
    parse_listing,
    pick_industry,
    slugify,
)
from scout.core.data_types import IntakeResult, SourceDescriptor
from scout.core.models import IntakeOutcome, SourceType

LISTING_LINES = [
    "Get Updates",
    "Acme",
    "$5M · Series A",
    "Oct 14, 2026",
    "Sequoia",
    "Globex Labs",
    "$2.5M · Seed",
    "Oct 10, 2026",
    "Accel",
    "Old Co",
    "$1M · Pre-Seed",
    "Jan 3, 2025",
    "Someone",
]

LISTING_LINKS = [
    {"text": "Acme", "href": "https://startups.gallery/companies/acme-inc"},
    {"text": "About", "href": "https://startups.gallery/about"},
]


class TestParseListing:

    def test_reads_headline_facts(self):
        entries = parse_listing(LISTING_LINES, LISTING_LINKS, cutoff=date(2026, 6, 1))

        assert [e.name for e in entries] == ["Acme", "Globex Labs"]
        acme = entries[0]
        assert acme.funding_amount == "$5M"
        assert acme.round_type == "Series A"
        assert acme.announced == date(2026, 10, 14)
        assert acme.lead_investor == "Sequoia"

    def test_detail_url_from_anchor_text_then_slug(self):
        entries = parse_listing(LISTING_LINES, LISTING_LINKS, cutoff=date(2026, 6, 1))

        assert entries[0].detail_url == "https://startups.gallery/companies/acme-inc"
        assert entries[1].detail_url == "https://startups.gallery/companies/globex-labs"

    def test_entries_before_cutoff_dropped(self):
        entries = parse_listing(LISTING_LINES, LISTING_LINKS, cutoff=date(2026, 10, 12))
        assert [e.name for e in entries] == ["Acme"]

    def test_repeated_names_kept_once(self):
        lines = LISTING_LINES[1:5] + LISTING_LINES[1:5]
        assert len(parse_listing(lines, [], cutoff=date(2026, 1, 1))) == 1

    def test_slugify(self):
        assert slugify("  Globex  Labs! ") == "globex-labs"


class TestParseDetail:

    def make_entry(self):
        return ListingEntry(
            name="Acme",
            funding_amount="$5M",
            round_type="Series A",
            announced=date(2026, 10, 14),
            lead_investor="Sequoia",
            detail_url="https://startups.gallery/companies/acme",
        )

    def test_backfills_website_team_size_and_description(self):
        text = (
            "Acme\n"
            "11-50\n"
            "We use cookies to improve your experience on this website, see our policy for details.\n"
            "Acme builds AI bookkeeping agents that close the books for small accounting firms.\n"
        )
        links = [
            {"text": "Visit Website", "href": "https://acme.ai"},
            {"text": "Fintech", "href": "https://startups.gallery/categories/industries/fintech"},
            {"text": "AI", "href": "https://startups.gallery/categories/industries/ai"},
        ]

        entry = parse_detail(self.make_entry(), text, links)

        assert entry.website == "https://acme.ai"
        assert entry.team_size == "11-50"
        assert entry.description.startswith("Acme builds AI bookkeeping agents")
        assert entry.tags == ["Fintech", "AI"]
        assert entry.industry == "Fintech"

    def test_no_detail_facts_leaves_entry_bare(self):
        entry = parse_detail(self.make_entry(), "Acme\n", [])
        assert entry.website is None
        assert entry.industry is None

    def test_pick_industry_skips_ui_labels(self):
        assert pick_industry(["Acme", "San Francisco", "Agtech"], "Acme") == "Agtech"
        assert pick_industry(["Acme"], "Acme") is None


class TestEntryToItem:

    def test_item_text_carries_funding_facts(self):
        entry = ListingEntry(
            name="Acme",
            funding_amount="$5M",
            round_type="Series A",
            announced=date(2026, 10, 14),
            lead_investor="Sequoia",
            detail_url="https://startups.gallery/companies/acme",
            website="https://acme.ai",
            industry="Fintech",
        )

        item = entry_to_item(entry, "startups.gallery")

        assert item.text.startswith("Acme raised $5M in a Series A round, announced 2026-10-14.")
        assert "Lead investor: Sequoia." in item.text
        assert "Website: https://acme.ai" in item.text
        assert item.source_url == entry.detail_url
        assert item.published_at == "2026-10-14"


class TestGalleryScrape:

    def make_collector(self, pipeline):
        descriptor = SourceDescriptor(
            name="startups.gallery",
            type=SourceType.GALLERY,
            options={"max_scrolls": 0, "detail_delay": 0},
        )
        return GalleryCollector(descriptor, pipeline)

    async def test_detail_failure_keeps_listing_entry(self):
        today = date.today().isoformat()
        listing = f"Acme\n$5M · Series A\n{today}\nSequoia\nGlobex\n$2M · Seed\n{today}\nAccel"
        page = MagicMock()
        page.close = AsyncMock()
        page.evaluate = AsyncMock(side_effect=[
            listing,
            [],
            RuntimeError("Execution context was destroyed"),
            "Globex\n11-50\n",
            [{"text": "Fintech", "href": "https://startups.gallery/categories/industries/fintech"}],
        ])
        pipeline = MagicMock()
        pipeline.process_item = AsyncMock(return_value=IntakeResult(IntakeOutcome.CREATED_CANONICAL, 1))
        pipeline.gateway.classify_industry = AsyncMock(return_value=None)
        collector = self.make_collector(pipeline)
        collector.context = MagicMock(new_page=AsyncMock(return_value=page))

        with patch.object(GalleryCollector, "safe_goto_with_retry", AsyncMock(return_value=True)), \
                patch.object(GalleryCollector, "safe_goto", AsyncMock(return_value=True)):
            result = await collector.scrape()

        assert result.error_count == 1
        assert result.processed_count == 2
        texts = [item.text for item in result.items]
        assert texts[0].startswith("Acme raised $5M in a Series A round")
        assert "Industry: Fintech." in texts[1]
        page.close.assert_awaited_once()
