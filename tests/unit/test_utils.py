"""
Unit tests for name/URL normalization and field parsing.
"""
from datetime import date, datetime

import pytest

from scout.core.utils import (
    canonical_key,
    name_similarity,
    normalize_name,
    normalize_url,
    parse_date,
    parse_funding_amount,
    registered_domain,
    strip_html,
    website_host,
)


class TestNormalizeName:

    @pytest.mark.parametrize("raw", ["Acme Inc.", "Acme, LLC", "The Acme", "ACME Corp", "acme"])
    def test_variants_collapse_to_same_key(self, raw):
        assert normalize_name(raw) == "acme"

    def test_accents_removed(self):
        assert normalize_name("Café Labs GmbH") == "cafe"

    def test_single_word_suffix_kept(self):
        """A name that is only a suffix word is not stripped to nothing."""
        assert normalize_name("Labs") == "labs"

    def test_empty(self):
        assert normalize_name("") == ""
        assert normalize_name(None) == ""

    def test_canonical_key_drops_spaces(self):
        assert canonical_key("Open AI, Inc.") == "openai"


class TestNameSimilarity:

    def test_identical_after_normalization(self):
        assert name_similarity("Acme Corp", "ACME, Inc.") == 100.0

    def test_word_order_insensitive(self):
        assert name_similarity("Robotics Blue", "Blue Robotics") >= 90

    def test_different_names_score_low(self):
        assert name_similarity("Acme", "Globex") < 60

    def test_empty_is_zero(self):
        assert name_similarity("", "Acme") == 0.0


class TestNormalizeUrl:

    @pytest.mark.parametrize("url", [
        "https://www.Acme.com/blog/",
        "http://acme.com/blog",
        "acme.com/blog/",
        "https://acme.com/blog#top",
    ])
    def test_equivalent_forms(self, url):
        assert normalize_url(url) == "acme.com/blog"

    def test_query_kept(self):
        assert normalize_url("https://acme.com/p?id=7") == "acme.com/p?id=7"

    def test_idempotent(self):
        once = normalize_url("https://www.Example.com/A/b/?x=1")
        assert normalize_url(once) == once

    def test_empty(self):
        assert normalize_url("") == ""


class TestDomains:

    def test_website_host(self):
        assert website_host("https://www.acme.io/about") == "acme.io"
        assert website_host("acme.io") == "acme.io"
        assert website_host("  ") is None

    def test_registered_domain_ignores_subdomain(self):
        assert registered_domain("https://app.acme.io") == "acme.io"
        assert registered_domain("https://shop.acme.co.uk/x") == "acme.co.uk"
        assert registered_domain("acme.com") == "acme.com"
        assert registered_domain(None) is None

    @pytest.mark.parametrize("a,b", [
        ("https://acme.vercel.app", "https://globex.vercel.app"),
        ("https://acme.github.io", "https://globex.github.io"),
        ("https://acme.netlify.app", "https://globex.netlify.app"),
        ("https://acme.herokuapp.com", "https://globex.herokuapp.com"),
    ])
    def test_hosting_platform_tenants_are_separate_domains(self, a, b):
        assert registered_domain(a) != registered_domain(b)

    def test_registered_domain_of_platform_subdomain(self):
        assert registered_domain("https://app.acme.vercel.app") == "acme.vercel.app"


class TestParseFundingAmount:

    @pytest.mark.parametrize("raw,expected", [
        ("$5M", 5_000_000),
        ("$1.2 billion", 1_200_000_000),
        ("5,000,000", 5_000_000),
        ("€750K", 750_000),
        ("$12 million", 12_000_000),
        ("5", 5_000_000),
    ])
    def test_parses(self, raw, expected):
        assert parse_funding_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "undisclosed"])
    def test_unparseable(self, raw):
        assert parse_funding_amount(raw) is None


class TestParseDate:

    def test_iso(self):
        assert parse_date("2026-10-01") == date(2026, 10, 1)

    def test_rfc822(self):
        assert parse_date("Wed, 01 Oct 2026 10:00:00 +0000") == date(2026, 10, 1)

    def test_datetime_passthrough(self):
        assert parse_date(datetime(2026, 1, 2, 3, 4)) == date(2026, 1, 2)

    @pytest.mark.parametrize("raw", [None, "", "null", "unknown", "not a date at all"])
    def test_missing(self, raw):
        assert parse_date(raw) is None


def test_strip_html_drops_scripts_and_collapses_whitespace():
    html = "<p>Acme   <b>raises</b></p><script>var x = 1;</script>\n<p>$5M</p>"
    assert strip_html(html) == "Acme raises $5M"
