"""Search source over our own canonical startup records."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from scout.core.data_types import SearchResult
from scout.core.database import async_session_factory
from scout.ingestion.database import StartupModel
from scout.search.config import FUNDING_INDICATORS
from scout.search.sources.base import SearchSource

LOCAL_RELEVANCE = 0.8

# Words the query templates add; they would match nearly every record
TEMPLATE_WORDS = set(FUNDING_INDICATORS) | {"announcement", "round", "2025", "2026"}


def record_to_result(record: StartupModel) -> SearchResult:
    headline = " ".join(p for p in (record.funding_amount, record.round_type) if p)
    title = f"{record.name} raised {headline}" if headline else record.name
    published = None
    if record.date_announced_at:
        published = datetime.combine(record.date_announced_at, datetime.min.time())
    return SearchResult(
        title=title,
        url=record.source_url or record.website or f"scout://startups/{record.id}",
        snippet=record.description or "",
        source=LocalStoreSource.name,
        published_date=published,
        relevance_score=LOCAL_RELEVANCE,
    )


class LocalStoreSource(SearchSource):
    name = "local"

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, timeout: Optional[float] = None):
        super().__init__(timeout or 5.0)
        self.session_factory = session_factory or async_session_factory

    async def _search(self, query: str, max_results: int) -> List[SearchResult]:
        # Fan-out variants add template words; match on the bare query terms only
        terms = [
            t for t in query.replace('"', " ").split()
            if len(t) > 2 and ":" not in t and t.lower() not in TEMPLATE_WORDS
        ][:3]
        if not terms:
            return []

        async with self.session_factory() as session:
            clauses = []
            for term in terms:
                like = f"%{term}%"
                clauses.extend([
                    StartupModel.name.ilike(like),
                    StartupModel.description.ilike(like),
                    StartupModel.industry.ilike(like),
                ])
            stmt = (
                select(StartupModel)
                .where(or_(*clauses))
                .order_by(StartupModel.date_announced_at.desc())
                .limit(max_results)
            )
            records = (await session.execute(stmt)).scalars().all()
        return [record_to_result(r) for r in records]
