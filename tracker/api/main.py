from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from tracker import __version__
from tracker.api.deps import adapter_registry, db_session
from tracker.core.query import SearchQuery
from tracker.db import crud
from tracker.db.session import check_connection
from tracker.errors import TrackerError
from tracker.platforms import AdapterRegistry, supports_apply
from tracker.services.apply import ApplyRequest, FailureReason, apply_to_listing
from tracker.services.search import (
    fetch_platform_job,
    save_platform_credentials,
    search_platform_jobs,
)

# -------------------------
# FastAPI setup
# -------------------------
app = FastAPI(title="Job Tracker API", version=__version__)

# CORS (open for now; tighten before public deploy)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# apply failures that are not plain client errors
_APPLY_FAILURE_STATUS = {
    FailureReason.UNKNOWN_USER: 404,
    FailureReason.LISTING_NOT_FOUND: 404,
    FailureReason.INVALID_CREDENTIALS: 401,
}


def _raise_http(exc: TrackerError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


# -------------------------
# Pydantic request/response models (camelCase on the wire)
# -------------------------
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class JobListingOut(_CamelModel):
    id: int
    user_id: int
    source: str
    external_id: str
    title: str
    company: str
    location: Optional[str] = None
    description: Optional[str] = None
    salary: Optional[str] = None
    url: str
    is_remote: Optional[bool] = None
    posted_at: Optional[datetime] = None
    saved_at: datetime
    applied: bool
    hidden: bool
    details: Optional[dict[str, Any]] = None


class SearchResponse(_CamelModel):
    jobs: List[JobListingOut]
    has_more: bool
    total: Optional[int] = None


class ApplicationOut(_CamelModel):
    id: int
    user_id: int
    role: str
    company: str
    description: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    status: str
    link: Optional[str] = None
    notes: Optional[str] = None
    external_application_id: Optional[str] = None
    applied_at: Optional[datetime] = None


class CredentialsIn(_CamelModel):
    user_id: int
    platform: str = Field(min_length=1)
    credentials: dict[str, Any]


class ApplyIn(_CamelModel):
    user_id: int
    platform: str = Field(min_length=1)
    job_id: int
    resume_id: Optional[int] = None
    cover_id: Optional[int] = None
    custom_message: Optional[str] = None


class ApplyOut(_CamelModel):
    success: bool
    message: str
    application: Optional[ApplicationOut] = None


class PlatformOut(_CamelModel):
    platform: str
    name: str
    supports_apply: bool


class MessageOut(BaseModel):
    message: str


# -------------------------
# Routes
# -------------------------
@app.get("/", tags=["meta"])
async def root():
    return {"message": "Job Tracker API is running"}


@app.get("/healthz", tags=["meta"])  # k8s/Render probes
async def healthz():
    return {"status": "ok"}


@app.get("/debug/db", tags=["meta"])  # remove or protect in prod
def debug_db():
    return {"ok": check_connection()}


@app.get("/platforms", response_model=List[PlatformOut], tags=["platforms"])
def list_platforms(registry: AdapterRegistry = Depends(adapter_registry)):
    return [
        PlatformOut(platform=adapter.name, name=adapter.display_name, supports_apply=supports_apply(adapter))
        for adapter in registry.all()
    ]


@app.post("/job-platform/credentials", response_model=MessageOut, tags=["platforms"])
def update_credentials(
    body: CredentialsIn,
    session: Session = Depends(db_session),
    registry: AdapterRegistry = Depends(adapter_registry),
):
    try:
        message = save_platform_credentials(
            session, body.user_id, body.platform, body.credentials, registry=registry
        )
    except TrackerError as exc:
        _raise_http(exc)
    return MessageOut(message=message)


@app.get("/job-platform/search", response_model=SearchResponse, tags=["platforms"])
def search_jobs(
    user_id: int = Query(..., alias="userId"),
    platform: str = Query(..., min_length=1),
    keywords: Optional[str] = Query(None, description="Comma-separated keywords"),
    locations: Optional[str] = Query(None, description="Comma-separated locations"),
    remote: bool = Query(False),
    exclude_keywords: Optional[str] = Query(None, alias="excludeKeywords"),
    experience: Optional[str] = Query(None),
    page: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    session: Session = Depends(db_session),
    registry: AdapterRegistry = Depends(adapter_registry),
):
    query = SearchQuery.from_flat(
        user_id=user_id,
        keywords=keywords,
        locations=locations,
        remote=remote,
        exclude_keywords=exclude_keywords,
        experience=experience,
        page=page,
        limit=limit,
    )
    try:
        result = search_platform_jobs(session, platform, query, registry=registry)
    except TrackerError as exc:
        _raise_http(exc)
    return SearchResponse(
        jobs=[JobListingOut.model_validate(row) for row in result.jobs],
        has_more=result.has_more,
        total=result.total,
    )


@app.get("/job-platform/job-details", response_model=JobListingOut, tags=["platforms"])
def job_details(
    user_id: int = Query(..., alias="userId"),
    platform: str = Query(..., min_length=1),
    external_id: str = Query(..., alias="externalId", min_length=1),
    session: Session = Depends(db_session),
    registry: AdapterRegistry = Depends(adapter_registry),
):
    try:
        row = fetch_platform_job(session, user_id, platform, external_id, registry=registry)
    except TrackerError as exc:
        _raise_http(exc)
    return JobListingOut.model_validate(row)


@app.post("/job-platform/apply", response_model=ApplyOut, tags=["platforms"])
def apply(
    body: ApplyIn,
    session: Session = Depends(db_session),
    registry: AdapterRegistry = Depends(adapter_registry),
):
    outcome = apply_to_listing(
        session,
        ApplyRequest(
            user_id=body.user_id,
            platform=body.platform,
            job_id=body.job_id,
            resume_id=body.resume_id,
            cover_id=body.cover_id,
            custom_message=body.custom_message,
        ),
        registry=registry,
    )
    if not outcome.success:
        status = _APPLY_FAILURE_STATUS.get(outcome.reason, 400)
        return JSONResponse(
            status_code=status,
            content={"success": False, "message": outcome.message, "reason": outcome.reason.value},
        )
    application = (
        ApplicationOut.model_validate(outcome.application) if outcome.application is not None else None
    )
    return ApplyOut(success=True, message=outcome.message, application=application)


@app.post("/job-listings/{listing_id}/hide", response_model=JobListingOut, tags=["data"])
def hide_listing(listing_id: int, session: Session = Depends(db_session)):
    listing = crud.hide_listing(session, listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Job listing not found")
    return JobListingOut.model_validate(listing)


@app.get("/job-listings", response_model=List[JobListingOut], tags=["data"])
def get_job_listings(
    user_id: int = Query(..., alias="userId"),
    source: Optional[str] = Query(None),
    include_hidden: bool = Query(False, alias="includeHidden"),
    session: Session = Depends(db_session),
):
    rows = crud.list_listings(session, user_id, source=source, include_hidden=include_hidden)
    return [JobListingOut.model_validate(row) for row in rows]
