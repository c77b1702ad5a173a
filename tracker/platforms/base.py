from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

import requests

from tracker import config
from tracker.core.normalize import NormalizedListing
from tracker.core.query import ApplyPayload, ApplyResult, SearchQuery, SearchResult

LOGGER = logging.getLogger(__name__)

UA = {
    "User-Agent": "Mozilla/5.0 JobTracker/0.3 (+https://github.com/job-tracker)",
    "Accept": "application/json",
}

# Failures caught at the adapter boundary: transport errors, non-JSON bodies,
# and payloads whose shape does not match what the normalizer expects.
UPSTREAM_ERRORS = (requests.RequestException, ValueError, KeyError, TypeError, AttributeError)


class PlatformAdapter(Protocol):
    """Uniform contract every job platform integration implements."""

    name: str
    display_name: str

    def has_valid_credentials(self, credentials: Any) -> bool: ...

    def search_jobs(self, credentials: Any, query: SearchQuery) -> SearchResult[NormalizedListing]: ...

    def get_job_details(
        self, credentials: Any, external_id: str, *, user_id: int
    ) -> Optional[NormalizedListing]: ...


@runtime_checkable
class ApplyCapable(Protocol):
    """Optional capability: programmatic application through the platform."""

    def apply_to_job(self, credentials: Any, external_id: str, payload: ApplyPayload) -> ApplyResult: ...


def supports_apply(adapter: object) -> bool:
    return isinstance(adapter, ApplyCapable) and callable(getattr(adapter, "apply_to_job", None))


def _get(url: str, *, params: Mapping[str, Any] | None = None, timeout: float | None = None, **kwargs) -> requests.Response:
    headers = dict(UA)
    headers.update(kwargs.pop("headers", None) or {})
    resp = requests.get(
        url,
        params=params,
        headers=headers,
        timeout=timeout or config.HTTP_TIMEOUT,
        **kwargs,
    )
    resp.raise_for_status()
    return resp


def _post(url: str, *, json: Any = None, timeout: float | None = None, **kwargs) -> requests.Response:
    headers = dict(UA)
    headers.update(kwargs.pop("headers", None) or {})
    resp = requests.post(
        url,
        json=json,
        headers=headers,
        timeout=timeout or config.HTTP_TIMEOUT,
        **kwargs,
    )
    resp.raise_for_status()
    return resp


def is_not_found(exc: BaseException) -> bool:
    if not isinstance(exc, requests.HTTPError):
        return False
    response = getattr(exc, "response", None)
    return response is not None and response.status_code == 404


def error_message(exc: BaseException, fallback: str) -> str:
    """Prefer the platform's own error text when the response carries one."""
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            msg = body.get("message") or body.get("error_description") or body.get("error")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
    text = str(exc).strip()
    return text or fallback


__all__ = [
    "PlatformAdapter",
    "ApplyCapable",
    "supports_apply",
    "UPSTREAM_ERRORS",
    "is_not_found",
    "error_message",
]
