"""Hacker News collector (Firebase API, "Show HN" stories)."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from scout.collectors.base import ApiScraper, ingest_items
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor
from scout.core.errors import CollectionError
from scout.core.utils import strip_html

logger = logging.getLogger(__name__)


def story_to_item(story: Dict[str, Any], source_name: str) -> Optional[RawItem]:
    url = story.get("url")
    if not url or story.get("dead") or story.get("deleted"):
        return None
    body = strip_html(story.get("text")) or "No description provided."
    published_at = None
    if story.get("time"):
        published_at = datetime.fromtimestamp(story["time"], tz=timezone.utc).date().isoformat()
    return RawItem(
        text=f"Title: {story.get('title', '')}\nURL: {url}\n\n{body}",
        source_url=url,
        source_name=source_name,
        published_at=published_at,
    )


class HackerNewsCollector(ApiScraper):
    BASE_URL = "https://hacker-news.firebaseio.com/v0"

    def __init__(self, descriptor: SourceDescriptor, pipeline, **kwargs):
        super().__init__(rate_limit_delay=0.2, **kwargs)
        if descriptor.endpoint:
            self.BASE_URL = descriptor.endpoint
        self.descriptor = descriptor
        self.pipeline = pipeline
        self.limit = int(descriptor.options.get("limit", 20))
        self.listing = descriptor.options.get("listing", "showstories")

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def scrape(self) -> ScrapeResult:
        result = ScrapeResult(source=self.name)
        story_ids = await self._get_json(f"/{self.listing}.json")
        if not isinstance(story_ids, list):
            raise CollectionError(f"Unexpected {self.listing} payload from Hacker News")

        items = []
        for story_id in story_ids[:self.limit]:
            story = await self._get_json(f"/item/{story_id}.json")
            if not isinstance(story, dict):
                result.error_count += 1
                continue
            item = story_to_item(story, self.name)
            if item:
                items.append(item)

        logger.info(f"[{self.name}] {len(items)} stories with links")
        return await ingest_items(self.pipeline, self.descriptor, items, result)
