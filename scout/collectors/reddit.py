"""Reddit collector: newest posts from a few startup subreddits."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from scout.collectors.base import ApiScraper, ingest_items
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor

logger = logging.getLogger(__name__)

DEFAULT_SUBREDDITS = ["startups", "SaaS", "Entrepreneur"]
MIN_SELF_POST_LENGTH = 100


def post_to_item(post: Dict[str, Any], source_name: str) -> Optional[RawItem]:
    selftext = post.get("selftext") or ""
    if post.get("is_self") and len(selftext) < MIN_SELF_POST_LENGTH:
        return None
    permalink = f"https://www.reddit.com{post.get('permalink', '')}"
    url = permalink if post.get("is_self") else (post.get("url") or permalink)
    published_at = None
    if post.get("created_utc"):
        published_at = datetime.fromtimestamp(post["created_utc"], tz=timezone.utc).date().isoformat()
    return RawItem(
        text=f"Title: {post.get('title', '')}\n\n{selftext}".strip(),
        source_url=url,
        source_name=source_name,
        published_at=published_at,
    )


class RedditCollector(ApiScraper):
    BASE_URL = "https://www.reddit.com"

    def __init__(self, descriptor: SourceDescriptor, pipeline, **kwargs):
        super().__init__(
            rate_limit_delay=1.0,
            headers={"User-Agent": "scout-radar/0.1 (startup funding tracker)"},
            **kwargs,
        )
        self.descriptor = descriptor
        self.pipeline = pipeline
        self.subreddits: List[str] = descriptor.options.get("subreddits") or DEFAULT_SUBREDDITS
        self.limit = int(descriptor.options.get("limit", 20))

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def scrape(self) -> ScrapeResult:
        result = ScrapeResult(source=self.name)
        items: List[RawItem] = []

        for sub in self.subreddits:
            listing = await self._get_json(f"/r/{sub}/new.json", params={"limit": self.limit})
            children = (listing or {}).get("data", {}).get("children") if isinstance(listing, dict) else None
            if children is None:
                logger.warning(f"[{self.name}] r/{sub} unavailable")
                result.error_count += 1
                continue
            for child in children:
                item = post_to_item(child.get("data", {}), self.name)
                if item:
                    items.append(item)

        logger.info(f"[{self.name}] {len(items)} posts from {len(self.subreddits)} subreddits")
        return await ingest_items(self.pipeline, self.descriptor, items, result)
