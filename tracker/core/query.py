from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from tracker import config

T = TypeVar("T")


def split_csv(value: Any) -> list[str]:
    """Split a comma-delimited inbound field; blanks are dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        parts: Iterable[Any] = value.split(",")
    else:
        parts = value
    return [str(p).strip() for p in parts if p is not None and str(p).strip()]


class SearchQuery(BaseModel):
    """Canonical search parameters; never persisted."""

    user_id: int
    keywords: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    remote: bool = False
    exclude_keywords: list[str] = Field(default_factory=list)
    experience: Optional[str] = None
    page: int = Field(default=0, ge=0)
    limit: int = Field(default_factory=lambda: config.DEFAULT_PAGE_SIZE, ge=1)

    @field_validator("keywords", "locations", "exclude_keywords", mode="before")
    @classmethod
    def _split(cls, v: Any) -> list[str]:
        return split_csv(v)

    @field_validator("experience", mode="before")
    @classmethod
    def _blank_experience(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("limit")
    @classmethod
    def _cap_limit(cls, v: int) -> int:
        return min(v, config.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return self.page * self.limit

    @classmethod
    def from_flat(
        cls,
        *,
        user_id: int,
        keywords: str | None = None,
        locations: str | None = None,
        remote: bool | str | None = None,
        exclude_keywords: str | None = None,
        experience: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> "SearchQuery":
        """Build a query from the flattened form the HTTP layer receives."""
        if isinstance(remote, str):
            remote = remote.strip().lower() in ("1", "true", "yes", "on")
        data: dict[str, Any] = {
            "user_id": user_id,
            "keywords": keywords,
            "locations": locations,
            "remote": bool(remote),
            "exclude_keywords": exclude_keywords,
            "experience": experience,
            "page": page or 0,
        }
        if limit:
            data["limit"] = limit
        return cls(**data)


@dataclass
class SearchResult(Generic[T]):
    """One page of results; produced fresh per call, never cached."""

    jobs: list[T] = field(default_factory=list)
    has_more: bool = False
    total: Optional[int] = None

    @classmethod
    def empty(cls) -> "SearchResult[T]":
        return cls(jobs=[], has_more=False, total=0)


class ApplyPayload(BaseModel):
    resume_id: Optional[int] = None
    cover_id: Optional[int] = None
    custom_message: Optional[str] = None


class ApplyResult(BaseModel):
    """What a platform reports back for one application attempt."""

    success: bool
    message: Optional[str] = None
    application_id: Optional[str] = None


__all__ = [
    "split_csv",
    "SearchQuery",
    "SearchResult",
    "ApplyPayload",
    "ApplyResult",
]
