"""Apply workflow: validating -> invoking -> recording -> done | failed.

The platform accepting the application is the event of record. Once it has,
the local writes (flag listing, create application, bump stats) are each
attempted independently; a failed write is logged and the others still run.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.core.query import ApplyPayload, ApplyResult
from tracker.db import crud
from tracker.db.models import Application, JobListing
from tracker.errors import TrackerError
from tracker.platforms import AdapterRegistry, supports_apply
from tracker.services.search import resolve_context

LOGGER = logging.getLogger(__name__)

DEFAULT_SUCCESS_MESSAGE = "Application submitted successfully"
DEFAULT_FAILURE_MESSAGE = "Failed to submit application"


class ApplyState(str, enum.Enum):
    VALIDATING = "validating"
    INVOKING = "invoking"
    RECORDING = "recording"
    DONE = "done"
    FAILED = "failed"


class FailureReason(str, enum.Enum):
    UNKNOWN_USER = "unknown_user"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    MISSING_CREDENTIALS = "missing_credentials"
    LISTING_NOT_FOUND = "listing_not_found"
    APPLY_UNSUPPORTED = "apply_unsupported"
    INVALID_CREDENTIALS = "invalid_credentials"
    PLATFORM_REJECTED = "platform_rejected"


@dataclass
class ApplyRequest:
    user_id: int
    platform: str
    job_id: int
    resume_id: Optional[int] = None
    cover_id: Optional[int] = None
    custom_message: Optional[str] = None

    def payload(self) -> ApplyPayload:
        return ApplyPayload(
            resume_id=self.resume_id,
            cover_id=self.cover_id,
            custom_message=self.custom_message,
        )


@dataclass
class ApplyOutcome:
    state: ApplyState
    success: bool
    message: str
    reason: Optional[FailureReason] = None
    application: Optional[Application] = None
    listing: Optional[JobListing] = None
    external_application_id: Optional[str] = None
    # names of recording steps that failed (degraded but successful apply)
    recording_errors: list[str] = field(default_factory=list)


def _failed(reason: FailureReason, message: str) -> ApplyOutcome:
    LOGGER.info("apply failed reason=%s message=%s", reason.value, message)
    return ApplyOutcome(state=ApplyState.FAILED, success=False, message=message, reason=reason)


def _application_notes(listing: JobListing, request: ApplyRequest) -> str:
    notes = [f"Applied via job listing from {listing.source}"]
    if request.resume_id is not None:
        notes.append(f"resume #{request.resume_id}")
    if request.cover_id is not None:
        notes.append(f"cover letter #{request.cover_id}")
    return "; ".join(notes)


def apply_to_listing(
    session: Session,
    request: ApplyRequest,
    *,
    registry: AdapterRegistry | None = None,
    now: datetime | None = None,
) -> ApplyOutcome:
    # --- validating ---
    try:
        ctx = resolve_context(session, request.user_id, request.platform, registry=registry, validate=False)
    except TrackerError as exc:
        return _failed(FailureReason(exc.reason), exc.message)

    listing = crud.get_listing(session, request.job_id)
    if listing is None or listing.user_id != request.user_id:
        return _failed(FailureReason.LISTING_NOT_FOUND, "Job listing not found")

    # --- invoking ---
    adapter = ctx.adapter
    if not supports_apply(adapter):
        return _failed(
            FailureReason.APPLY_UNSUPPORTED,
            f"Job application is not supported for {adapter.display_name}",
        )
    if not adapter.has_valid_credentials(ctx.credentials):
        return _failed(
            FailureReason.INVALID_CREDENTIALS,
            f"Invalid or expired {adapter.display_name} credentials. Please update your credentials in Settings.",
        )

    try:
        result: ApplyResult = adapter.apply_to_job(ctx.credentials, listing.external_id, request.payload())
    except Exception:  # a raising adapter counts as a failed apply
        LOGGER.exception("apply adapter raised platform=%s listing=%s", ctx.platform, listing.id)
        result = ApplyResult(success=False)
    if not result.success:
        return _failed(FailureReason.PLATFORM_REJECTED, result.message or DEFAULT_FAILURE_MESSAGE)

    # --- recording ---
    outcome = ApplyOutcome(
        state=ApplyState.RECORDING,
        success=True,
        message=result.message or DEFAULT_SUCCESS_MESSAGE,
        listing=listing,
        external_application_id=result.application_id,
    )
    applied_at = now or datetime.utcnow()
    # snapshot before any rollback expires the instance
    listing_id = listing.id
    application_data = {
        "user_id": request.user_id,
        "role": listing.title,
        "company": listing.company,
        "description": listing.description,
        "location": listing.location,
        "salary_range": listing.salary,
        "status": "applied",
        "link": listing.url,
        "notes": _application_notes(listing, request),
        "external_application_id": result.application_id,
        "applied_at": applied_at,
    }

    try:
        outcome.listing = crud.mark_listing_applied(session, listing_id) or listing
    except SQLAlchemyError:
        session.rollback()
        outcome.recording_errors.append("mark_applied")
        LOGGER.exception("apply recording failed step=mark_applied listing=%s", listing_id)

    try:
        outcome.application = crud.create_application(session, application_data)
    except SQLAlchemyError:
        session.rollback()
        outcome.recording_errors.append("create_application")
        LOGGER.exception("apply recording failed step=create_application listing=%s", listing_id)

    try:
        crud.increment_total_applications(session, request.user_id)
    except SQLAlchemyError:
        session.rollback()
        outcome.recording_errors.append("increment_stats")
        LOGGER.exception("apply recording failed step=increment_stats user=%s", request.user_id)

    outcome.state = ApplyState.DONE
    LOGGER.info(
        "apply done platform=%s user=%s listing=%s application=%s degraded=%s",
        ctx.platform,
        request.user_id,
        listing_id,
        outcome.application.id if outcome.application is not None else None,
        ",".join(outcome.recording_errors) or "no",
    )
    return outcome


__all__ = [
    "ApplyState",
    "FailureReason",
    "ApplyRequest",
    "ApplyOutcome",
    "apply_to_listing",
]
