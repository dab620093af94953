"""
Domain Normalization and Filtering

Shared domain handling used by every aggregation that keys on a domain:
- Backlink source domains (ours and competitors')
- Competitor domains in ranking rows
- Self-exclusion of the project's own brand from competitor lists

Domains are compared in normalized form: lower-case, no scheme, no
leading "www.", no path or trailing slash.
"""

import logging
import re
from typing import Iterable, Optional, Set
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")


def normalize_domain(domain: Optional[str]) -> str:
    """
    Normalize a domain or URL-ish string for comparison.

    Args:
        domain: e.g. "https://www.Example.com/", "Example.com"

    Returns:
        Normalized domain ("example.com"), or "" when empty
    """
    if not domain:
        return ""

    value = str(domain).strip().lower()
    value = _SCHEME_RE.sub("", value)

    # Drop path, query and port
    value = value.split("/", 1)[0].split("?", 1)[0].split(":", 1)[0]

    if value.startswith("www."):
        value = value[4:]

    return value.rstrip(".")


def domain_from_url(url: Optional[str]) -> str:
    """
    Extract the normalized host of a URL.

    Args:
        url: Full URL ("https://blog.example.com/post")

    Returns:
        Normalized domain ("blog.example.com"), or "" when it has no host
    """
    if not url:
        return ""

    value = str(url).strip()
    if not _SCHEME_RE.match(value.lower()):
        value = f"http://{value}"

    try:
        host = urlsplit(value).hostname or ""
    except ValueError:
        logger.debug(f"Could not parse URL: {url}")
        return ""

    return normalize_domain(host)


def build_domain_set(domains: Iterable[Optional[str]]) -> Set[str]:
    """Normalized, non-empty set of domains."""
    return {d for d in (normalize_domain(x) for x in domains) if d}


def brand_token(domain: Optional[str]) -> str:
    """
    Registrable label of a domain, used as the brand name.

    "blog.acme.com" -> "acme", "acme.co.uk" -> "acme", "acme.com.au" -> "acme".
    A short second-level label ahead of a two-letter country code is
    taken as a public suffix part ("co", "com", "org").
    """
    labels = [label for label in normalize_domain(domain).split(".") if label]
    if not labels:
        return ""
    if len(labels) == 1:
        return labels[0]
    if len(labels) >= 3 and len(labels[-1]) == 2 and len(labels[-2]) <= 3:
        return labels[-3]
    return labels[-2]


def is_own_domain(domain: Optional[str], own_domain: Optional[str]) -> bool:
    """
    Check whether a competitor domain is actually the project itself.

    Matching is by containment of the own brand ("acme.com" also drops
    "shop.acme.com" and "acme.com.au").

    Args:
        domain: Competitor domain to check
        own_domain: The project's domain or brand token

    Returns:
        True if the domain belongs to the project
    """
    own = normalize_domain(own_domain)
    if not own:
        return False

    candidate = normalize_domain(domain)
    if not candidate:
        return False

    brand = brand_token(own)
    return own in candidate or (len(brand) >= 4 and brand in candidate)

