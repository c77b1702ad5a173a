from .credentials import IndeedCredentials, LinkedInCredentials, parse_credentials
from .normalize import (
    DEFAULT_COMPANY,
    DEFAULT_TITLE,
    NormalizedListing,
    canonical_location,
    html_to_text,
    normalize_company,
    normalize_title,
)
from .query import ApplyPayload, ApplyResult, SearchQuery, SearchResult

__all__ = [
    "LinkedInCredentials",
    "IndeedCredentials",
    "parse_credentials",
    "DEFAULT_TITLE",
    "DEFAULT_COMPANY",
    "NormalizedListing",
    "normalize_title",
    "normalize_company",
    "canonical_location",
    "html_to_text",
    "SearchQuery",
    "SearchResult",
    "ApplyPayload",
    "ApplyResult",
]
