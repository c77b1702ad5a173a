"""Search orchestration: resolve the platform once, search, then ingest.

Ingestion is idempotent per (user, source, external_id): a listing already
stored for the user is returned as stored, so repeated searches never undo
user-side state such as `applied` or `hidden`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.core.query import SearchQuery, SearchResult
from tracker.db import crud
from tracker.db.models import JobListing
from tracker.errors import (
    InvalidCredentials,
    InvalidRequest,
    ListingNotFound,
    MissingCredentials,
    PersistenceFailed,
    UnknownUser,
    UnsupportedPlatform,
)
from tracker.platforms import REGISTRY, AdapterRegistry, PlatformAdapter

LOGGER = logging.getLogger(__name__)


@dataclass
class PlatformContext:
    """Everything resolved once per request and threaded through the rest."""

    platform: str
    adapter: PlatformAdapter
    user_id: int
    credentials: Optional[dict[str, Any]]


def resolve_adapter(platform: Optional[str], registry: AdapterRegistry | None = None) -> PlatformAdapter:
    adapter = (registry or REGISTRY).get(platform)
    if adapter is None:
        raise UnsupportedPlatform(platform)
    return adapter


def resolve_context(
    session: Session,
    user_id: int,
    platform: Optional[str],
    *,
    registry: AdapterRegistry | None = None,
    validate: bool = True,
) -> PlatformContext:
    """Adapter -> user -> stored credentials -> (optionally) validity."""
    adapter = resolve_adapter(platform, registry)
    if crud.get_user(session, user_id) is None:
        raise UnknownUser()

    credentials = crud.get_credentials(session, user_id, adapter.name)
    if credentials is None:
        raise MissingCredentials(adapter.display_name)
    if validate and not adapter.has_valid_credentials(credentials):
        raise InvalidCredentials(adapter.display_name)
    return PlatformContext(platform=adapter.name, adapter=adapter, user_id=user_id, credentials=credentials)


def search_platform_jobs(
    session: Session,
    platform: Optional[str],
    query: SearchQuery,
    *,
    registry: AdapterRegistry | None = None,
) -> SearchResult[JobListing]:
    ctx = resolve_context(session, query.user_id, platform, registry=registry)
    result = ctx.adapter.search_jobs(ctx.credentials, query)

    saved: list[JobListing] = []
    created = 0
    failed = 0
    # Sequential on purpose: one failing row must not take the batch down
    for job in result.jobs:
        try:
            row, was_created = crud.get_or_create_listing(session, job)
        except SQLAlchemyError:
            session.rollback()
            failed += 1
            LOGGER.exception(
                "listing save failed platform=%s user=%s external_id=%s",
                ctx.platform,
                ctx.user_id,
                job.external_id,
            )
            continue
        created += int(was_created)
        saved.append(row)

    LOGGER.info(
        "ingest platform=%s user=%s fetched=%s created=%s existing=%s failed=%s",
        ctx.platform,
        ctx.user_id,
        len(result.jobs),
        created,
        len(saved) - created,
        failed,
    )
    return SearchResult(jobs=saved, has_more=result.has_more, total=result.total)


def fetch_platform_job(
    session: Session,
    user_id: int,
    platform: Optional[str],
    external_id: Optional[str],
    *,
    registry: AdapterRegistry | None = None,
) -> JobListing:
    """Stored listing for the external id, fetching and saving it on first sight."""
    external_id = (external_id or "").strip()
    if not external_id:
        raise InvalidRequest("Missing required parameters")
    ctx = resolve_context(session, user_id, platform, registry=registry)

    existing = crud.get_listing_by_external_id(session, user_id, ctx.platform, external_id)
    if existing is not None:
        return existing

    job = ctx.adapter.get_job_details(ctx.credentials, external_id, user_id=user_id)
    if job is None:
        raise ListingNotFound("Job not found on platform")
    try:
        row, _ = crud.get_or_create_listing(session, job)
    except SQLAlchemyError as exc:
        session.rollback()
        LOGGER.exception(
            "listing save failed platform=%s user=%s external_id=%s",
            ctx.platform,
            user_id,
            external_id,
        )
        raise PersistenceFailed() from exc
    return row


def save_platform_credentials(
    session: Session,
    user_id: int,
    platform: Optional[str],
    payload: Any,
    *,
    registry: AdapterRegistry | None = None,
) -> str:
    """Store (or replace) a user's credentials for one platform."""
    if not isinstance(payload, dict) or not payload:
        raise InvalidRequest("Missing required fields")
    adapter = resolve_adapter(platform, registry)
    if crud.get_user(session, user_id) is None:
        raise UnknownUser()
    crud.set_credentials(session, user_id, adapter.name, payload)
    LOGGER.info("credentials saved platform=%s user=%s", adapter.name, user_id)
    return f"{adapter.display_name} credentials saved successfully"


__all__ = [
    "PlatformContext",
    "resolve_adapter",
    "resolve_context",
    "search_platform_jobs",
    "fetch_platform_job",
    "save_platform_credentials",
]
