"""Utility modules for the Rank Signal Engine."""

from .config import Settings, get_settings
from .domain_filter import (
    normalize_domain,
    domain_from_url,
    build_domain_set,
    is_own_domain,
    brand_token,
)

__all__ = [
    "Settings",
    "get_settings",
    # Domains
    "normalize_domain",
    "domain_from_url",
    "build_domain_set",
    "is_own_domain",
    "brand_token",
]
