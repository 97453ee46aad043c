"""Feed collector: poll an RSS/Atom feed and take the newest entries."""
import logging
from datetime import datetime
from typing import List

import feedparser

from scout.collectors.base import ApiScraper, ingest_items
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor
from scout.core.errors import CollectionError
from scout.core.utils import strip_html

logger = logging.getLogger(__name__)


def entries_to_items(feed, source_name: str, limit: int) -> List[RawItem]:
    items = []
    for entry in feed.entries[:limit]:
        link = entry.get("link")
        if not link:
            continue
        body = entry.get("summary", "") or entry.get("description", "")
        if "content" in entry and entry.content:
            body = entry.content[0].value

        published = entry.get("published_parsed") or entry.get("updated_parsed")
        published_at = datetime(*published[:6]).date().isoformat() if published else None

        items.append(RawItem(
            text=f"{entry.get('title', '')}\n\n{strip_html(body)}".strip(),
            source_url=link,
            source_name=source_name,
            published_at=published_at,
        ))
    return items


class RssCollector(ApiScraper):
    def __init__(self, descriptor: SourceDescriptor, pipeline, **kwargs):
        super().__init__(rate_limit_delay=0, headers={"User-Agent": "Mozilla/5.0 (compatible; ScoutBot/1.0)"}, **kwargs)
        self.descriptor = descriptor
        self.pipeline = pipeline
        self.limit = int(descriptor.options.get("limit", 15))

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def scrape(self) -> ScrapeResult:
        result = ScrapeResult(source=self.name)
        content = await self._get_text(self.descriptor.endpoint)
        if content is None:
            raise CollectionError(f"Feed unreachable: {self.descriptor.endpoint}")

        feed = feedparser.parse(content)
        if feed.bozo and not feed.entries:
            raise CollectionError(f"Malformed feed at {self.descriptor.endpoint}: {feed.bozo_exception}")

        items = entries_to_items(feed, self.name, self.limit)
        logger.info(f"[{self.name}] {len(items)} feed entries")
        return await ingest_items(self.pipeline, self.descriptor, items, result)
