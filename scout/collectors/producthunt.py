"""Product Hunt collector (GraphQL API v2)."""
import logging
from typing import Any, Dict, Optional

from scout.collectors.base import ApiScraper, ingest_items
from scout.core.config import settings
from scout.core.data_types import RawItem, ScrapeResult, SourceDescriptor
from scout.core.errors import CollectionError

logger = logging.getLogger(__name__)

POSTS_QUERY = """
query RecentPosts($first: Int!) {
  posts(first: $first, order: NEWEST) {
    edges {
      node {
        name
        tagline
        description
        url
        website
        createdAt
        topics(first: 5) { edges { node { name } } }
      }
    }
  }
}
"""


def node_to_item(node: Dict[str, Any], source_name: str) -> Optional[RawItem]:
    url = node.get("url") or node.get("website")
    if not url:
        return None
    topics = [
        t["node"]["name"] for t in (node.get("topics") or {}).get("edges", [])
        if t.get("node", {}).get("name")
    ]
    text = (
        f"Product: {node.get('name', '')}\n"
        f"Tagline: {node.get('tagline', '')}\n"
        f"Website: {node.get('website') or 'unknown'}\n"
        f"Topics: {', '.join(topics)}\n\n"
        f"{node.get('description') or ''}"
    )
    return RawItem(
        text=text,
        source_url=url,
        source_name=source_name,
        published_at=(node.get("createdAt") or "")[:10] or None,
    )


class ProductHuntCollector(ApiScraper):
    BASE_URL = "https://api.producthunt.com/v2/api/graphql"

    def __init__(self, descriptor: SourceDescriptor, pipeline, api_key: Optional[str] = None, **kwargs):
        self.api_key = api_key or settings.producthunt_api_key
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        super().__init__(rate_limit_delay=0, headers=headers, **kwargs)
        self.descriptor = descriptor
        self.pipeline = pipeline
        self.limit = int(descriptor.options.get("limit", 10))

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def scrape(self) -> ScrapeResult:
        if not self.api_key:
            raise CollectionError("PRODUCTHUNT_API_KEY is not set")

        result = ScrapeResult(source=self.name)
        payload = await self._post_json(
            self.descriptor.endpoint or self.BASE_URL,
            json={"query": POSTS_QUERY, "variables": {"first": self.limit}},
        )
        if not isinstance(payload, dict) or "data" not in payload:
            raise CollectionError(f"Product Hunt returned no data: {str(payload)[:200]}")

        edges = ((payload.get("data") or {}).get("posts") or {}).get("edges", [])
        items = [i for i in (node_to_item(e.get("node", {}), self.name) for e in edges) if i]
        logger.info(f"[{self.name}] {len(items)} launches")
        return await ingest_items(self.pipeline, self.descriptor, items, result)
