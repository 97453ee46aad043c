"""
Result Aggregator: merge, URL-dedup, rank, funding filter, company dedup.

All functions are pure; the orchestrator calls them in one pass after
the fan-out has settled.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from scout.core.data_types import CompanyData, SearchResult, SearchSourceResult
from scout.core.utils import normalize_name, normalize_url, registered_domain, utcnow
from scout.search.config import (
    BASE_RELEVANCE,
    FUNDING_INDICATORS,
    KEYWORD_BOOST,
    QUALITY_DOMAINS,
    QUALITY_DOMAIN_BOOST,
    RECENT_BOOST_7D,
    RECENT_BOOST_30D,
    TITLE_FUNDING_KEYWORDS,
)

logger = logging.getLogger(__name__)


class ResultAggregator:
    @staticmethod
    def merge_results(source_results: Iterable[SearchSourceResult]) -> List[SearchResult]:
        merged = []
        for sr in source_results:
            merged.extend(sr.results)
        return merged

    @staticmethod
    def deduplicate_by_url(results: List[SearchResult]) -> List[SearchResult]:
        """Keep one result per normalized URL; the higher relevance wins, first seen on ties."""
        best: Dict[str, SearchResult] = {}
        order: List[str] = []
        for result in results:
            key = normalize_url(result.url)
            if not key:
                continue
            if key not in best:
                best[key] = result
                order.append(key)
            elif result.relevance_score > best[key].relevance_score:
                best[key] = result
        return [best[k] for k in order]

    @staticmethod
    def score_result(result: SearchResult, now: Optional[datetime] = None) -> float:
        score = result.relevance_score if result.relevance_score is not None else BASE_RELEVANCE

        if result.published_date:
            age_days = ((now or utcnow()) - result.published_date).days
            if age_days < 7:
                score += RECENT_BOOST_7D
            elif age_days < 30:
                score += RECENT_BOOST_30D

        if registered_domain(result.url) in QUALITY_DOMAINS:
            score += QUALITY_DOMAIN_BOOST

        title = (result.title or "").lower()
        score += KEYWORD_BOOST * sum(1 for k in TITLE_FUNDING_KEYWORDS if k in title)

        return min(score, 1.0)

    @classmethod
    def rank_results(cls, results: List[SearchResult], now: Optional[datetime] = None) -> List[SearchResult]:
        """Re-score and sort descending. Returns copies; inputs are untouched."""
        now = now or utcnow()
        scored = [replace(r, relevance_score=round(cls.score_result(r, now), 4)) for r in results]
        return sorted(scored, key=lambda r: r.relevance_score, reverse=True)

    @staticmethod
    def is_funding_related(result: SearchResult) -> bool:
        text = f"{result.title} {result.snippet}".lower()
        return any(indicator in text for indicator in FUNDING_INDICATORS)

    @classmethod
    def filter_funding_related(cls, results: List[SearchResult]) -> List[SearchResult]:
        return [r for r in results if cls.is_funding_related(r)]

    @staticmethod
    def deduplicate_companies(companies: List[CompanyData]) -> List[CompanyData]:
        """
        Group by normalized name. The higher-confidence instance wins and any
        field it lacks is backfilled from the other.
        """
        kept: Dict[str, CompanyData] = {}
        order: List[str] = []
        for company in companies:
            key = normalize_name(company.name)
            if not key:
                continue
            if key not in kept:
                kept[key] = company
                order.append(key)
                continue
            current = kept[key]
            winner, loser = (company, current) if company.confidence > current.confidence else (current, company)
            merged = replace(winner)
            for attr in ("description", "website", "funding_amount", "round_type", "date_announced",
                         "location", "industry", "source_url"):
                if not getattr(merged, attr) and getattr(loser, attr):
                    setattr(merged, attr, getattr(loser, attr))
            if not merged.founders and loser.founders:
                merged.founders = list(loser.founders)
            if not merged.investors and loser.investors:
                merged.investors = list(loser.investors)
            kept[key] = merged
        return [kept[k] for k in order]
