from __future__ import annotations

import logging
from typing import Any, Optional

from tracker import config
from tracker.core.credentials import LinkedInCredentials, parse_credentials
from tracker.core.date_parse import parse_posted_at
from tracker.core.normalize import (
    NormalizedListing,
    canonical_location,
    html_to_text,
    native_id,
    salary_text,
    normalize_company,
    normalize_title,
    synthesize_external_id,
)
from tracker.core.query import ApplyPayload, ApplyResult, SearchQuery, SearchResult
from tracker.filters.rules import drop_excluded
from tracker.platforms.base import UPSTREAM_ERRORS, _get, _post, error_message, is_not_found

JOB_URL_TEMPLATE = "https://www.linkedin.com/jobs/view/{external_id}"

_WORKPLACE_REMOTE = {"REMOTE": True, "ON_SITE": False, "ONSITE": False, "HYBRID": False}


class LinkedInAdapter:
    """Professional-network platform: OAuth bearer token, start/count paging."""

    name = "linkedin"
    display_name = "LinkedIn"
    _logger = logging.getLogger(__name__)

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = (base_url or config.LINKEDIN_API_BASE).rstrip("/")

    # -- credentials -----------------------------------------------------

    def _credentials(self, credentials: Any) -> LinkedInCredentials | None:
        parsed = parse_credentials(self.name, credentials)
        return parsed if isinstance(parsed, LinkedInCredentials) else None

    def has_valid_credentials(self, credentials: Any) -> bool:
        creds = self._credentials(credentials)
        return creds is not None and creds.is_valid()

    def _headers(self, creds: LinkedInCredentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {creds.access_token}",
            "Content-Type": "application/json",
        }

    # -- search ----------------------------------------------------------

    def build_search_params(self, query: SearchQuery) -> dict[str, str]:
        params: dict[str, str] = {}
        if query.keywords:
            params["keywords"] = " ".join(query.keywords)
        if query.locations:
            # multi-location search is supported natively
            params["location"] = " ".join(query.locations)
        if query.remote:
            params["remoteFilter"] = "true"
        if query.experience:
            params["experience"] = query.experience
        params["start"] = str(query.offset)
        params["count"] = str(query.limit)
        return params

    def search_jobs(self, credentials: Any, query: SearchQuery) -> SearchResult[NormalizedListing]:
        creds = self._credentials(credentials)
        if creds is None or not creds.is_valid():
            self._logger.warning("linkedin search skipped: invalid or expired credentials user=%s", query.user_id)
            return SearchResult.empty()

        try:
            data = _get(
                f"{self.base_url}/jobSearch",
                params=self.build_search_params(query),
                headers=self._headers(creds),
            ).json()
            elements = data.get("elements") or []
            jobs = [self.normalize(item, query.user_id) for item in elements]
            paging = data.get("paging") or {}
            total = int(paging.get("total") or len(jobs))
            links = paging.get("links") or []
            has_more = any(isinstance(link, dict) and link.get("rel") == "next" for link in links)
        except UPSTREAM_ERRORS:
            self._logger.exception("linkedin job search failed user=%s page=%s", query.user_id, query.page)
            return SearchResult.empty()

        self._logger.info(
            "search platform=%s user=%s page=%s returned=%s total=%s has_more=%s",
            self.name,
            query.user_id,
            query.page,
            len(jobs),
            total,
            has_more,
        )
        jobs = drop_excluded(self.name, jobs, query.exclude_keywords)
        return SearchResult(jobs=jobs, has_more=has_more, total=total)

    # -- details ---------------------------------------------------------

    def get_job_details(
        self, credentials: Any, external_id: str, *, user_id: int
    ) -> Optional[NormalizedListing]:
        creds = self._credentials(credentials)
        if creds is None or not creds.is_valid():
            self._logger.warning("linkedin details skipped: invalid or expired credentials user=%s", user_id)
            return None
        try:
            data = _get(f"{self.base_url}/jobs/{external_id}", headers=self._headers(creds)).json()
            if not isinstance(data, dict) or not data:
                return None
            return self.normalize(data, user_id, fallback_id=external_id)
        except UPSTREAM_ERRORS as exc:
            if is_not_found(exc):
                self._logger.info("linkedin job not found external_id=%s", external_id)
                return None
            self._logger.exception("linkedin job details failed external_id=%s", external_id)
            return None

    # -- apply -----------------------------------------------------------

    def apply_to_job(self, credentials: Any, external_id: str, payload: ApplyPayload) -> ApplyResult:
        creds = self._credentials(credentials)
        if creds is None or not creds.is_valid():
            return ApplyResult(success=False, message="Invalid or expired LinkedIn credentials")

        body: dict[str, Any] = {"customMessage": payload.custom_message}
        if payload.resume_id is not None:
            body["resumeId"] = payload.resume_id
        if payload.cover_id is not None:
            body["coverLetterId"] = payload.cover_id
        try:
            resp = _post(
                f"{self.base_url}/jobs/{external_id}/applications",
                json=body,
                headers=self._headers(creds),
            )
        except UPSTREAM_ERRORS as exc:
            self._logger.exception("linkedin job application failed external_id=%s", external_id)
            return ApplyResult(success=False, message=error_message(exc, "Failed to apply for job"))

        application_id = None
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            application_id = native_id(data.get("id"))
        return ApplyResult(success=True, message="Application submitted", application_id=application_id)

    # -- normalization ---------------------------------------------------

    def normalize(self, job: dict[str, Any], user_id: int, fallback_id: str | None = None) -> NormalizedListing:
        external_id = native_id(job.get("id")) or fallback_id or synthesize_external_id(self.name, job)

        company = job.get("company")
        company_name = company.get("name") if isinstance(company, dict) else company

        location = job.get("locationName") or job.get("location")
        if isinstance(location, dict):
            location = location.get("name")

        description = job.get("description")
        if isinstance(description, dict):
            description = description.get("text")

        workplace = job.get("workplaceType")
        is_remote = _WORKPLACE_REMOTE.get(str(workplace).upper()) if workplace else None

        url = job.get("applyUrl") or job.get("url") or JOB_URL_TEMPLATE.format(external_id=external_id)

        return NormalizedListing(
            user_id=user_id,
            source=self.name,
            external_id=external_id,
            title=normalize_title(job.get("title")),
            company=normalize_company(company_name),
            location=canonical_location(location),
            description=html_to_text(description),
            salary=salary_text(job.get("salary")),
            url=str(url),
            is_remote=is_remote,
            posted_at=parse_posted_at(job.get("postedAt") or job.get("listedAt")),
            details=job,
        )

