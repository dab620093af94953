"""
Tests for domain normalization and own-domain filtering.
"""

import pytest
from src.utils.domain_filter import (
    build_domain_set,
    domain_from_url,
    brand_token,
    is_own_domain,
    normalize_domain,
)


class TestNormalizeDomain:
    """Test domain normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("Example.com", "example.com"),
        ("https://www.example.com/", "example.com"),
        ("http://blog.example.com/path?q=1", "blog.example.com"),
        ("example.com:8080", "example.com"),
        ("  WWW.Example.COM.  ", "example.com"),
        (None, ""),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_domain(raw) == expected

    def test_domain_from_url(self):
        """Host is extracted with or without a scheme."""
        assert domain_from_url("https://www.news.site/a/b") == "news.site"
        assert domain_from_url("news.site/a") == "news.site"
        assert domain_from_url(None) == ""

    def test_domain_set_drops_empty(self):
        assert build_domain_set(["a.com", "www.A.com", "", None]) == {"a.com"}


class TestOwnDomain:
    """Test self-exclusion."""

    def test_exact_and_subdomain(self):
        assert is_own_domain("acme.com", "acme.com")
        assert is_own_domain("shop.acme.com", "https://www.acme.com")

    def test_brand_token(self):
        """Brand token matches other TLDs."""
        assert is_own_domain("acmecorp.co.uk", "acmecorp.com")

    def test_short_brand_token_ignored(self):
        """Short brand tokens only match by full domain."""
        assert not is_own_domain("usability.com", "us.com")

    def test_no_own_domain(self):
        assert not is_own_domain("acme.com", None)

    def test_subdomain_own_domain_uses_registrable_label(self):
        """A blog subdomain does not make "blog" the brand."""
        assert not is_own_domain("myblog.com", "blog.acme.com")
        assert is_own_domain("acme.io", "blog.acme.com")


class TestBrandToken:
    """Test brand token extraction."""

    @pytest.mark.parametrize("domain,expected", [
        ("acme.com", "acme"),
        ("blog.acme.com", "acme"),
        ("acme.co.uk", "acme"),
        ("shop.acme.com.au", "acme"),
        ("tekrevol", "tekrevol"),
        ("", ""),
    ])
    def test_brand_token(self, domain, expected):
        assert brand_token(domain) == expected
