from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tracker.core.normalize import NormalizedListing
from tracker.db.models import (
    APPLICATION_STATUSES,
    Application,
    JobListing,
    PlatformCredential,
    Stat,
    User,
)

LOGGER = logging.getLogger(__name__)


# --- users & credentials -----------------------------------------------------

def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def create_user(session: Session, *, username: str, name: str = "", email: str | None = None) -> User:
    user = User(username=username, name=name, email=email)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_credentials(session: Session, user_id: int, platform: str) -> Optional[dict[str, Any]]:
    """Stored payload for (user, platform), or None when nothing usable is stored."""
    row = session.execute(
        select(PlatformCredential).where(
            PlatformCredential.user_id == user_id,
            PlatformCredential.platform == platform.lower(),
        )
    ).scalar_one_or_none()
    if row is None or not row.payload:
        return None
    return dict(row.payload)


def set_credentials(session: Session, user_id: int, platform: str, payload: dict[str, Any]) -> PlatformCredential:
    """Insert or replace the credential payload for (user, platform)."""
    platform = platform.lower()
    row = session.execute(
        select(PlatformCredential).where(
            PlatformCredential.user_id == user_id,
            PlatformCredential.platform == platform,
        )
    ).scalar_one_or_none()
    if row is None:
        row = PlatformCredential(user_id=user_id, platform=platform, payload=dict(payload))
        session.add(row)
    else:
        row.payload = dict(payload)
    session.commit()
    session.refresh(row)
    return row


# --- job listings ------------------------------------------------------------

def get_listing(session: Session, listing_id: int) -> Optional[JobListing]:
    return session.get(JobListing, listing_id)


def get_listing_by_external_id(
    session: Session, user_id: int, source: str, external_id: str
) -> Optional[JobListing]:
    return session.execute(
        select(JobListing).where(
            JobListing.user_id == user_id,
            JobListing.source == source,
            JobListing.external_id == external_id,
        )
    ).scalar_one_or_none()


def list_listings(
    session: Session,
    user_id: int,
    *,
    source: str | None = None,
    include_hidden: bool = False,
) -> Sequence[JobListing]:
    stmt = select(JobListing).where(JobListing.user_id == user_id)
    if source:
        stmt = stmt.where(JobListing.source == source.lower())
    if not include_hidden:
        stmt = stmt.where(JobListing.hidden.is_(False))
    stmt = stmt.order_by(JobListing.saved_at.desc(), JobListing.id.desc())
    return session.execute(stmt).scalars().all()


def get_or_create_listing(session: Session, listing: NormalizedListing) -> Tuple[JobListing, bool]:
    """Insert-or-fetch by (user, source, external_id).

    The unique constraint is the arbiter: if a concurrent request inserted the
    same key first, the insert fails, we roll back and return the winner's row.
    Existing rows are returned untouched; fetched content is not merged.
    Returns (row, created).
    """
    user_id, source, external_id = listing.dedup_key()
    existing = get_listing_by_external_id(session, user_id, source, external_id)
    if existing is not None:
        return existing, False

    row = JobListing(**listing.to_row(), saved_at=datetime.utcnow())
    session.add(row)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = get_listing_by_external_id(session, user_id, source, external_id)
        if existing is None:
            raise
        LOGGER.info(
            "listing insert lost race user=%s source=%s external_id=%s id=%s",
            user_id,
            source,
            external_id,
            existing.id,
        )
        return existing, False
    session.refresh(row)
    return row, True


def mark_listing_applied(session: Session, listing_id: int) -> Optional[JobListing]:
    listing = get_listing(session, listing_id)
    if listing is None:
        return None
    listing.applied = True
    session.commit()
    session.refresh(listing)
    return listing


def hide_listing(session: Session, listing_id: int) -> Optional[JobListing]:
    listing = get_listing(session, listing_id)
    if listing is None:
        return None
    listing.hidden = True
    session.commit()
    session.refresh(listing)
    return listing


# --- applications & stats ----------------------------------------------------

def create_application(session: Session, application_data: dict[str, Any]) -> Application:
    status = application_data.get("status") or "applied"
    if status not in APPLICATION_STATUSES:
        raise ValueError(f"unknown application status: {status!r}")
    application_data["status"] = status
    application = Application(**application_data)
    session.add(application)
    session.commit()
    session.refresh(application)
    return application


def get_user_stats(session: Session, user_id: int) -> Optional[Stat]:
    return session.execute(select(Stat).where(Stat.user_id == user_id)).scalar_one_or_none()


def increment_total_applications(session: Session, user_id: int, by: int = 1) -> Stat:
    """Bump the user's aggregate application counter, creating the row on first use."""
    stat = get_user_stats(session, user_id)
    if stat is None:
        stat = Stat(user_id=user_id, total_applications=by)
        session.add(stat)
    else:
        # Increment in SQL so concurrent applies do not overwrite each other
        session.execute(
            update(Stat)
            .where(Stat.id == stat.id)
            .values(total_applications=Stat.total_applications + by)
        )
    session.commit()
    session.refresh(stat)
    return stat
