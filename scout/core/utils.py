"""
Shared utilities: name/URL normalization, funding parsing, dates.
"""
import re
import string
import unicodedata
from datetime import date, datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from rapidfuzz import fuzz
import tldextract

LEADING_ARTICLES = ("the", "a", "an")

CORPORATE_SUFFIXES = {
    "limited", "ltd", "plc", "llc", "llp", "inc", "incorporated", "corporation", "corp",
    "co", "company", "gmbh", "ag", "sa", "sas", "sarl", "srl", "bv", "nv", "spa", "ab",
    "oy", "pty", "pte", "labs", "technologies", "hq",
}

# Hosts that are never a startup's own website
NON_COMPANY_HOSTS = [
    'techcrunch.com', 'finsmes.com', 'venturebeat.com', 'crunchbase.com', 'linkedin.com',
    'twitter.com', 'x.com', 'facebook.com', 'instagram.com', 'youtube.com', 'wikipedia.org',
    'bloomberg.com', 'reuters.com', 'producthunt.com', 'news.ycombinator.com', 'reddit.com',
    'medium.com', 'startups.gallery', 'pitchbook.com', 'tracxn.com', 'dealroom.co',
    'businesswire.com', 'prnewswire.com', 'globenewswire.com', 'github.com', 'duckduckgo.com',
]

# Bundled public suffix snapshot, private suffixes included (acme.vercel.app is its own domain)
_SUFFIX_EXTRACT = tldextract.TLDExtract(suffix_list_urls=(), include_psl_private_domains=True)

_FUNDING_RE = re.compile(
    r'(\d+(?:\.\d+)?)\s*(billion|bn|b|million|mm|mn|m|thousand|k)?(?![a-z])',
    re.IGNORECASE,
)
_UNIT_MULTIPLIERS = {
    "k": 1_000, "thousand": 1_000,
    "m": 1_000_000, "mm": 1_000_000, "mn": 1_000_000, "million": 1_000_000,
    "b": 1_000_000_000, "bn": 1_000_000_000, "billion": 1_000_000_000,
}


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_name(name: str) -> str:
    """
    Normalize company name for deduplication.
    - Lowercase, remove accents
    - Strip leading articles ("The Acme")
    - Remove punctuation
    - Strip trailing corporate suffix tokens ("Acme, Inc.")

    "Acme Inc.", "Acme, LLC" and "The Acme" all become "acme".
    """
    if not name:
        return ""

    s = name.lower().strip()
    s = unicodedata.normalize('NFKD', s).encode('ASCII', 'ignore').decode('utf-8')
    s = s.translate(str.maketrans(string.punctuation, ' ' * len(string.punctuation)))

    words = s.split()
    while len(words) > 1 and words[0] in LEADING_ARTICLES:
        words.pop(0)
    while len(words) > 1 and words[-1] in CORPORATE_SUFFIXES:
        words.pop()

    return " ".join(w for w in words if w.isalnum())


def canonical_key(name: str) -> str:
    """Dedup key: normalized name with whitespace removed."""
    return normalize_name(name).replace(" ", "")


def name_similarity(a: str, b: str) -> float:
    """
    Symmetric similarity (0-100) between two company names.
    Uses token_sort_ratio on the normalized forms so word order and legal
    suffixes do not matter.
    """
    na, nb = normalize_name(a), normalize_name(b)
    if not na or not nb:
        return 0.0
    if na.replace(" ", "") == nb.replace(" ", ""):
        return 100.0
    return fuzz.token_sort_ratio(na, nb)


def normalize_url(url: str) -> str:
    """
    Normalize a URL for dedup: drop protocol, leading "www." and any trailing
    slash on the path. Query string is kept, fragment is dropped.
    """
    if not url:
        return ""
    raw = url.strip()
    if "://" not in raw:
        raw = f"http://{raw}"
    parsed = urlparse(raw)
    host = (parsed.netloc or "").lower()
    if host.startswith("www."):
        host = host[4:]
    path = parsed.path.rstrip("/")
    normalized = f"{host}{path}"
    if parsed.query:
        normalized = f"{normalized}?{parsed.query}"
    return normalized.lower()


def website_host(url: Optional[str]) -> Optional[str]:
    """Hostname without protocol, port or leading "www."."""
    if not url or not url.strip():
        return None
    raw = url.strip()
    if "://" not in raw:
        raw = f"http://{raw}"
    host = (urlparse(raw).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


def registered_domain(url: Optional[str]) -> Optional[str]:
    """
    Bare registrable domain, subdomain-insensitive.
    app.acme.io -> acme.io, shop.acme.co.uk -> acme.co.uk,
    acme.vercel.app stays acme.vercel.app
    """
    host = website_host(url)
    if not host:
        return None
    parts = _SUFFIX_EXTRACT(host)
    if not parts.domain or not parts.suffix:
        return host
    return f"{parts.domain}.{parts.suffix}"


def is_company_website(url: Optional[str]) -> bool:
    """False for news, social and directory hosts."""
    host = website_host(url)
    if not host:
        return False
    return not any(host == h or host.endswith(f".{h}") for h in NON_COMPANY_HOSTS)


def parse_funding_amount(amount: Optional[str]) -> Optional[int]:
    """
    Parse a funding string to whole dollars.
    "$5M" -> 5_000_000, "$1.2 billion" -> 1_200_000_000, "5,000,000" -> 5_000_000.
    A bare small number is read as millions ("5" -> 5_000_000).
    """
    if not amount:
        return None
    text = amount.replace(",", "")
    match = _FUNDING_RE.search(text)
    if not match:
        return None
    value = float(match.group(1))
    unit = (match.group(2) or "").lower()
    if unit:
        value *= _UNIT_MULTIPLIERS[unit]
    elif value < 1000:
        value *= 1_000_000
    return int(round(value))


def parse_date(value) -> Optional[date]:
    """Best-effort date parse. Returns None for missing or unparseable input."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "unknown", "n/a"):
        return None
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def strip_html(html: Optional[str]) -> str:
    """Visible text of an HTML fragment, whitespace collapsed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return re.sub(r'\s+', ' ', soup.get_text(" ")).strip()
