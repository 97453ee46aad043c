"""Search tiers, query templates and ranking vocabularies."""
from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class TierConfig:
    name: str
    sources: Tuple[str, ...]
    max_query_variants: int
    max_companies: int
    page_size: int
    max_pages: int


PRICING_TIERS: Dict[str, TierConfig] = {
    "free": TierConfig(
        name="free",
        sources=("searxng", "brave", "local"),
        max_query_variants=2,
        max_companies=20,
        page_size=10,
        max_pages=2,
    ),
    "paid": TierConfig(
        name="paid",
        sources=("searxng", "brave", "local", "exa", "tavily"),
        max_query_variants=3,
        max_companies=50,
        page_size=10,
        max_pages=5,
    ),
}

DEFAULT_TIER = "free"

QUERY_TEMPLATES: List[str] = [
    "{query}",
    "{query} startup funding 2025 2026",
    "{query} raised seed series funding",
    "site:techcrunch.com {query} funding",
    "site:venturebeat.com {query} raised",
    "{query} pre-seed seed series a funding announcement",
]

QUALITY_DOMAINS = {
    "techcrunch.com", "venturebeat.com", "crunchbase.com", "ycombinator.com",
    "finsmes.com", "sifted.eu", "axios.com",
}

# Title keywords that nudge ranking up, +0.05 each
TITLE_FUNDING_KEYWORDS = ["funding", "raises", "raised", "million", "seed", "series", "investment"]

# A result must mention at least one of these to be considered
FUNDING_INDICATORS = [
    "funding", "raises", "raised", "million", "seed", "series", "investment", "investor",
    "startup", "venture", "capital", "pre-seed", "series a", "series b", "backed", "announces",
]

BASE_RELEVANCE = 0.5
RECENT_BOOST_7D = 0.2
RECENT_BOOST_30D = 0.1
QUALITY_DOMAIN_BOOST = 0.15
KEYWORD_BOOST = 0.05

# Confidence given to companies extracted from a snippet vs a crawled page
CRAWLED_COMPANY_CONFIDENCE = 0.7


def get_tier(name: str) -> TierConfig:
    try:
        return PRICING_TIERS[name]
    except KeyError:
        raise ValueError(f"Unknown search tier '{name}'. Choose from {sorted(PRICING_TIERS)}")


def expand_query(query: str, max_variants: int) -> List[str]:
    """First max_variants templates filled with the query, duplicates removed."""
    variants = []
    for template in QUERY_TEMPLATES:
        variant = template.format(query=query.strip())
        if variant not in variants:
            variants.append(variant)
        if len(variants) >= max_variants:
            break
    return variants
