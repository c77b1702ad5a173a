from __future__ import annotations

import hashlib
import json
from datetime import datetime
from typing import Any, Optional

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

DEFAULT_TITLE = "Untitled Position"
DEFAULT_COMPANY = "Unknown Company"


class NormalizedListing(BaseModel):
    """Platform-agnostic job posting, as produced by an adapter's normalizer.

    Not yet persisted: the search orchestrator turns it into a `JobListing` row
    (or finds the existing row for the same dedup key).
    """

    user_id: int
    source: str
    external_id: str
    title: str = DEFAULT_TITLE
    company: str = DEFAULT_COMPANY
    url: str
    location: Optional[str] = None
    description: Optional[str] = None
    salary: Optional[str] = None
    is_remote: Optional[bool] = None
    posted_at: Optional[datetime] = None
    details: dict[str, Any] = Field(default_factory=dict)

    def dedup_key(self) -> tuple[int, str, str]:
        return (self.user_id, self.source, self.external_id)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    text = " ".join(value.split()).strip()
    return text or None


def normalize_title(title: Any) -> str:
    return _clean(title) or DEFAULT_TITLE


def normalize_company(name: Any) -> str:
    return _clean(name) or DEFAULT_COMPANY


def canonical_location(loc: Any) -> str | None:
    """Whitespace-collapsed location as the platform reported it."""
    return _clean(loc)


def html_to_text(html: Any) -> str | None:
    """Strip markup from platform snippets/descriptions; None when empty."""
    if html is None:
        return None
    if not isinstance(html, str):
        html = str(html)
    if "<" not in html:
        return _clean(html)
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    return _clean(text)


def salary_text(value: Any) -> str | None:
    """Salary stays free text; structured payloads contribute their display string."""
    if isinstance(value, dict):
        value = value.get("text") or value.get("formatted") or value.get("description")
    return _clean(value)


def synthesize_external_id(platform: str, payload: dict[str, Any]) -> str:
    """Deterministic identifier for items the platform returned without one."""
    canonical = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    digest = hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:16]
    return f"{platform}-{digest}"


def native_id(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "DEFAULT_TITLE",
    "DEFAULT_COMPANY",
    "NormalizedListing",
    "normalize_title",
    "normalize_company",
    "canonical_location",
    "html_to_text",
    "synthesize_external_id",
    "native_id",
]
