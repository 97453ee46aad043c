"""
Enrichment of stored startups: official website, founders, description.

Executed one record at a time by the EnrichmentQueue.
"""
import asyncio
import logging
from typing import Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from scout.core.config import settings
from scout.core.database import async_session_factory
from scout.core.errors import EnrichmentError
from scout.core.utils import is_company_website, normalize_name, utcnow, website_host
from scout.core.web_search import DuckDuckGoSearch
from scout.ingestion.database import StartupModel
from scout.ingestion.founder_discovery import FounderDiscoveryService

logger = logging.getLogger(__name__)


def clean_url(url: str) -> str:
    """Scheme + host only."""
    if not url.startswith('http'):
        url = 'https://' + url
    host = website_host(url)
    return f"https://{host}" if host else url


def needs_website(record: StartupModel) -> bool:
    return not record.website or not is_company_website(record.website)


def needs_founders(record: StartupModel) -> bool:
    return not record.founders


class WebsiteFinder:
    def __init__(self, search: Optional[DuckDuckGoSearch] = None):
        self.search = search or DuckDuckGoSearch()

    async def find(self, name: str) -> Optional[str]:
        """Single lookup; first result that looks like the company's own site."""
        try:
            hits = await self.search.search(f"{name} official website", max_results=5)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Website search failed for {name}: {e}")
            return None

        key = normalize_name(name).replace(" ", "")
        candidates = [h for h in hits if is_company_website(h.url)]
        # Prefer a host that contains the company name
        for hit in candidates:
            if key and key in (website_host(hit.url) or "").replace("-", ""):
                return clean_url(hit.url)
        return clean_url(candidates[0].url) if candidates else None

    async def fetch_meta_description(self, url: str) -> Optional[str]:
        timeout = aiohttp.ClientTimeout(total=settings.http_timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        return None
                    html = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError, LookupError) as e:
            logger.debug(f"Could not fetch {url}: {e}")
            return None

        soup = BeautifulSoup(html, "html.parser")
        for attrs in ({"name": "description"}, {"property": "og:description"}):
            tag = soup.find("meta", attrs=attrs)
            if tag and tag.get("content"):
                return tag["content"].strip()[:1000]
        return None


class EnrichmentService:
    def __init__(
        self,
        website_finder: WebsiteFinder,
        founder_discovery: FounderDiscoveryService,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self.website_finder = website_finder
        self.founder_discovery = founder_discovery
        self.session_factory = session_factory or async_session_factory

    async def enrich_startup(self, startup_id: int) -> Tuple[bool, bool]:
        """
        Fill website and founders if still missing. Returns
        (website_found, founders_found). Raises EnrichmentError on failure.
        """
        try:
            async with self.session_factory() as session:
                record = await session.get(StartupModel, startup_id)
                if record is None:
                    logger.warning(f"Startup {startup_id} no longer exists, skipping enrichment")
                    return False, False

                want_website = needs_website(record)
                want_founders = needs_founders(record)
                if not want_website and not want_founders:
                    if not record.enrichment_complete:
                        record.enrichment_complete = True
                        await session.commit()
                    logger.debug(f"Startup {record.name} already enriched")
                    return False, False

                logger.info(
                    f"Enriching {record.name} (website={'needed' if want_website else 'ok'}, "
                    f"founders={'needed' if want_founders else 'ok'})"
                )

                website_found = False
                if want_website:
                    website = await self.website_finder.find(record.name)
                    if website:
                        record.website = website
                        website_found = True
                        if not record.description:
                            record.description = await self.website_finder.fetch_meta_description(website)

                founders_found = False
                if want_founders:
                    founders = await self.founder_discovery.discover(record.name, record.website)
                    if founders:
                        record.set_founders(founders)
                        founders_found = True

                record.enrichment_complete = not needs_website(record) and not needs_founders(record)
                record.last_updated = utcnow()
                await session.commit()
        except SQLAlchemyError as e:
            raise EnrichmentError(f"Could not save enrichment for startup {startup_id}: {e}") from e

        return website_found, founders_found
