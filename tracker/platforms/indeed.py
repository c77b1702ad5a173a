from __future__ import annotations

import logging
from typing import Any, Optional

from requests.auth import HTTPBasicAuth

from tracker import config
from tracker.core.credentials import IndeedCredentials, parse_credentials
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
from tracker.core.query import SearchQuery, SearchResult
from tracker.filters.rules import drop_excluded
from tracker.platforms.base import UPSTREAM_ERRORS, _get, is_not_found

JOB_URL_TEMPLATE = "https://www.indeed.com/viewjob?jk={external_id}"


class IndeedAdapter:
    """Job-search-engine platform: publisher id + API key, start/limit paging.

    Indeed has no programmatic apply endpoint, so this adapter deliberately
    does not implement `apply_to_job`.
    """

    name = "indeed"
    display_name = "Indeed"
    _logger = logging.getLogger(__name__)

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = (base_url or config.INDEED_API_BASE).rstrip("/")

    def _credentials(self, credentials: Any) -> IndeedCredentials | None:
        parsed = parse_credentials(self.name, credentials)
        return parsed if isinstance(parsed, IndeedCredentials) else None

    def has_valid_credentials(self, credentials: Any) -> bool:
        creds = self._credentials(credentials)
        return creds is not None and creds.is_valid()

    def _base_params(self, creds: IndeedCredentials) -> dict[str, str]:
        return {"publisher": creds.publisher_id, "v": "2", "format": "json"}

    def _auth(self, creds: IndeedCredentials) -> HTTPBasicAuth:
        return HTTPBasicAuth(creds.publisher_id, creds.api_key)

    def build_search_params(self, creds: IndeedCredentials, query: SearchQuery) -> dict[str, str]:
        params = self._base_params(creds)
        if query.keywords:
            params["q"] = " ".join(query.keywords)
        if query.locations:
            # Indeed only supports one location per search
            params["l"] = query.locations[0]
        if query.remote:
            params["remotejob"] = "1"
        params["start"] = str(query.offset)
        params["limit"] = str(query.limit)
        return params

    def search_jobs(self, credentials: Any, query: SearchQuery) -> SearchResult[NormalizedListing]:
        creds = self._credentials(credentials)
        if creds is None or not creds.is_valid():
            self._logger.warning("indeed search skipped: invalid credentials user=%s", query.user_id)
            return SearchResult.empty()

        if len(query.locations) > 1:
            self._logger.debug(
                "indeed search uses first location only location=%s dropped=%s",
                query.locations[0],
                len(query.locations) - 1,
            )
        try:
            data = _get(
                f"{self.base_url}/jobs/search",
                params=self.build_search_params(creds, query),
                auth=self._auth(creds),
            ).json()
            results = data.get("results") or []
            jobs = [self.normalize(item, query.user_id) for item in results]
            total = int(data.get("totalResults") or len(jobs))
            has_more = query.offset + len(jobs) < total
        except UPSTREAM_ERRORS:
            self._logger.exception("indeed job search failed user=%s page=%s", query.user_id, query.page)
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

    def get_job_details(
        self, credentials: Any, external_id: str, *, user_id: int
    ) -> Optional[NormalizedListing]:
        creds = self._credentials(credentials)
        if creds is None or not creds.is_valid():
            self._logger.warning("indeed details skipped: invalid credentials user=%s", user_id)
            return None

        # No single-job endpoint; look the job up by key through search
        params = self._base_params(creds)
        params["jobkeys"] = external_id
        try:
            data = _get(f"{self.base_url}/jobs/search", params=params, auth=self._auth(creds)).json()
            results = data.get("results") or []
            if not results:
                self._logger.info("indeed job not found external_id=%s", external_id)
                return None
            return self.normalize(results[0], user_id, fallback_id=external_id)
        except UPSTREAM_ERRORS as exc:
            if is_not_found(exc):
                self._logger.info("indeed job not found external_id=%s", external_id)
                return None
            self._logger.exception("indeed job details failed external_id=%s", external_id)
            return None

    def normalize(self, job: dict[str, Any], user_id: int, fallback_id: str | None = None) -> NormalizedListing:
        external_id = native_id(job.get("jobkey")) or fallback_id or synthesize_external_id(self.name, job)

        remote = job.get("remote")
        is_remote = remote if isinstance(remote, bool) else None

        posted_at = parse_posted_at(job.get("date"))
        if posted_at is None:
            posted_at = parse_posted_at(job.get("formattedRelativeTime"))

        return NormalizedListing(
            user_id=user_id,
            source=self.name,
            external_id=external_id,
            title=normalize_title(job.get("jobtitle")),
            company=normalize_company(job.get("company")),
            location=canonical_location(job.get("formattedLocation") or job.get("city")),
            description=html_to_text(job.get("snippet")),
            salary=salary_text(job.get("salary") or job.get("formattedSalary")),
            url=str(job.get("url") or JOB_URL_TEMPLATE.format(external_id=external_id)),
            is_remote=is_remote,
            posted_at=posted_at,
            details=job,
        )
