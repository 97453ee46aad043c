"""
Curated-listing collector (startups.gallery news feed).

Phase 1: scroll the lazily-loaded list and read headline facts
         (name, "$25M · Series A", date, lead investor).
Phase 2: visit each detail page to backfill website, industry,
         team size and description.

Each entry is then written up as a short text and sent through the
usual extraction + intake path.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

from scout.collectors.base import BrowserScraper, ingest_items
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor
from scout.core.errors import CollectionError
from scout.core.utils import parse_date

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://startups.gallery/news"
COMPANY_PATH = "/companies/"
INDUSTRY_PATH = "/categories/industries/"

KNOWN_INDUSTRIES = [
    "Biotech", "Fintech", "Software", "Hardware", "AI", "Crypto", "Healthcare", "Consumer",
    "B2B", "Enterprise", "Security", "Energy", "Robotics", "Space", "Education",
]
UI_LABELS = {"Get Updates", "Startups", "San Francisco", "New York", "London", "Visit Website"}

TEAM_SIZE_RE = re.compile(r"^\d+\s*[-–]\s*\d+$|^\d+\+$")


@dataclass
class ListingEntry:
    name: str
    funding_amount: str
    round_type: str
    announced: date
    lead_investor: Optional[str]
    detail_url: str
    website: Optional[str] = None
    industry: Optional[str] = None
    team_size: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)


def slugify(text: str) -> str:
    slug = re.sub(r"\s+", "-", text.strip().lower())
    slug = re.sub(r"[^\w\-]+", "", slug)
    return re.sub(r"-{2,}", "-", slug).strip("-")


def parse_listing(
    lines: List[str],
    links: List[Dict[str, str]],
    cutoff: date,
    base_url: str = "https://startups.gallery",
) -> List[ListingEntry]:
    """
    Parse the list page's visible text. A funding line contains both "$" and
    "·"; the line before is the name, then the date and the lead investor.
    """
    lines = [l.strip() for l in lines if l and l.strip()]
    entries: List[ListingEntry] = []
    seen = set()

    for i, line in enumerate(lines):
        if "$" not in line or "·" not in line or i == 0 or i + 1 >= len(lines):
            continue
        name = lines[i - 1]
        announced = parse_date(lines[i + 1])
        if not announced or announced < cutoff or name in seen:
            continue

        amount, _, round_type = (part.strip() for part in line.partition("·"))
        slug = slugify(name)
        detail_url = next(
            (l["href"] for l in links if COMPANY_PATH in l.get("href", "") and l.get("text", "").strip() == name),
            None,
        ) or next(
            (l["href"] for l in links if l.get("href", "").rstrip("/").endswith(f"{COMPANY_PATH}{slug}")),
            f"{base_url.rstrip('/')}{COMPANY_PATH}{slug}",
        )

        seen.add(name)
        entries.append(ListingEntry(
            name=name,
            funding_amount=amount,
            round_type=round_type,
            announced=announced,
            lead_investor=lines[i + 2] if i + 2 < len(lines) else None,
            detail_url=detail_url,
        ))
    return entries


def pick_industry(tags: List[str], name: str) -> Optional[str]:
    for tag in tags:
        if tag in KNOWN_INDUSTRIES:
            return tag
    for tag in tags:
        if tag != name and tag not in UI_LABELS:
            return tag
    return None


def parse_detail(entry: ListingEntry, text: str, links: List[Dict[str, str]]) -> ListingEntry:
    """Backfill an entry from a detail page's text and anchors."""
    lines = [l.strip() for l in text.split("\n") if l.strip()]

    website = next(
        (l["href"] for l in links if "website" in l.get("text", "").lower() and l.get("href", "").startswith("http")),
        None,
    )
    tags = [l["text"].strip() for l in links if INDUSTRY_PATH in l.get("href", "") and l.get("text", "").strip()]

    entry.website = website or entry.website
    entry.team_size = next((l for l in lines if len(l) < 15 and TEAM_SIZE_RE.match(l)), entry.team_size)
    entry.description = next(
        (l for l in lines if len(l) > 60 and "cookie" not in l.lower()),
        entry.description,
    )
    entry.tags = tags
    entry.industry = pick_industry(tags, entry.name)
    return entry


def entry_to_item(entry: ListingEntry, source_name: str) -> RawItem:
    parts = [
        f"{entry.name} raised {entry.funding_amount} in a {entry.round_type} round, "
        f"announced {entry.announced.isoformat()}.",
    ]
    if entry.lead_investor:
        parts.append(f"Lead investor: {entry.lead_investor}.")
    if entry.description:
        parts.append(f"About: {entry.description}")
    if entry.industry:
        parts.append(f"Industry: {entry.industry}.")
    if entry.website:
        parts.append(f"Website: {entry.website}")
    if entry.team_size:
        parts.append(f"Team size: {entry.team_size}.")
    return RawItem(
        text="\n".join(parts),
        source_url=entry.detail_url,
        source_name=source_name,
        published_at=entry.announced.isoformat(),
    )


_LINKS_JS = "() => Array.from(document.querySelectorAll('a')).map(a => ({text: a.innerText || '', href: a.href || ''}))"


class GalleryCollector(BrowserScraper):
    def __init__(self, descriptor: SourceDescriptor, pipeline, headless: bool = True):
        super().__init__(headless=headless)
        self.descriptor = descriptor
        self.pipeline = pipeline
        self.url = descriptor.endpoint or DEFAULT_URL
        self.cutoff_days = int(descriptor.options.get("cutoff_days", 120))
        self.max_scrolls = int(descriptor.options.get("max_scrolls", 10))
        self.detail_delay = float(descriptor.options.get("detail_delay", 2.0))

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def _scroll_to_end(self, page) -> None:
        old_height = 0
        for _ in range(self.max_scrolls):
            await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            await asyncio.sleep(2)
            height = await page.evaluate("document.body.scrollHeight")
            if height == old_height:
                break
            old_height = height

    async def _backfill(self, page, entry: ListingEntry) -> None:
        if not await self.safe_goto(page, entry.detail_url):
            raise CollectionError(f"Detail page unreachable: {entry.detail_url}")
        detail_text = await page.evaluate("document.body.innerText")
        detail_links = await page.evaluate(_LINKS_JS)
        parse_detail(entry, detail_text, detail_links)
        if not entry.industry:
            entry.industry = await self.pipeline.gateway.classify_industry(entry.name, entry.description)

    async def scrape(self) -> ScrapeResult:
        result = ScrapeResult(source=self.name)
        cutoff = date.today() - timedelta(days=self.cutoff_days)
        page = await self.context.new_page()
        try:
            if not await self.safe_goto_with_retry(page, self.url, timeout=60000):
                raise CollectionError(f"Listing page unreachable: {self.url}")

            await self._scroll_to_end(page)
            body = await page.evaluate("document.body.innerText")
            links = await page.evaluate(_LINKS_JS)
            entries = parse_listing(body.split("\n"), links, cutoff)
            logger.info(f"[{self.name}] Phase 1: {len(entries)} listings since {cutoff}")

            for entry in entries:
                try:
                    await self._backfill(page, entry)
                except Exception as e:
                    # Keep the listing facts; only the detail phase failed
                    logger.warning(f"[{self.name}] detail page failed for {entry.name}: {e}")
                    result.error_count += 1
                await asyncio.sleep(self.detail_delay)
        finally:
            await page.close()

        items = [entry_to_item(e, self.name) for e in entries]
        return await ingest_items(self.pipeline, self.descriptor, items, result, min_text_length=0)
