"""Per-platform credential shapes.

Credentials are stored as opaque JSON per (user, platform). Each platform has
its own variant with its own validity predicate; `parse_credentials` picks the
variant from the platform tag.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

LOGGER = logging.getLogger(__name__)


class _CredentialsBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def is_valid(self, now: datetime | None = None) -> bool:  # pragma: no cover - overridden
        raise NotImplementedError


class LinkedInCredentials(_CredentialsBase):
    platform: Literal["linkedin"] = "linkedin"
    access_token: str = Field(alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    # epoch milliseconds (or an ISO-8601 string); None means the token does not expire
    expires_at: Optional[Union[float, str]] = Field(default=None, alias="expiresAt")

    def expires_at_ms(self) -> float | None:
        # 0 (or an empty string) means no expiry, same as None
        if not self.expires_at:
            return None
        if isinstance(self.expires_at, (int, float)):
            return float(self.expires_at)
        raw = self.expires_at.strip()
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            pass
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp() * 1000.0

    def is_valid(self, now: datetime | None = None) -> bool:
        if not self.access_token.strip():
            return False
        try:
            expires_ms = self.expires_at_ms()
        except ValueError:
            return False
        if expires_ms is None:
            return True
        now_ms = now.timestamp() * 1000.0 if now is not None else time.time() * 1000.0
        return now_ms <= expires_ms


class IndeedCredentials(_CredentialsBase):
    platform: Literal["indeed"] = "indeed"
    publisher_id: str = Field(alias="publisherId")
    api_key: str = Field(alias="apiKey")
    jobseeker_id: Optional[str] = Field(default=None, alias="jobseekerId")

    @field_validator("publisher_id", "api_key", "jobseeker_id", mode="before")
    @classmethod
    def _numeric_id_as_text(cls, v: Any) -> Any:
        # numeric ids arrive unquoted from JSON bodies and YAML seed files
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def is_valid(self, now: datetime | None = None) -> bool:
        return bool(self.publisher_id.strip() and self.api_key.strip())


PlatformCredentials = Annotated[
    Union[LinkedInCredentials, IndeedCredentials],
    Field(discriminator="platform"),
]

_CREDENTIALS_ADAPTER: TypeAdapter[PlatformCredentials] = TypeAdapter(PlatformCredentials)

CREDENTIAL_PLATFORMS = ("linkedin", "indeed")


def parse_credentials(platform: str, payload: Any) -> LinkedInCredentials | IndeedCredentials | None:
    """Parse a stored payload into the variant for `platform`.

    Returns None for missing or malformed payloads and for platforms without a
    known credential shape.
    """
    if isinstance(payload, (LinkedInCredentials, IndeedCredentials)):
        return payload if payload.platform == (platform or "").lower() else None
    if not isinstance(payload, Mapping) or not payload:
        return None
    tag = (platform or "").strip().lower()
    if tag not in CREDENTIAL_PLATFORMS:
        return None
    data = dict(payload)
    data["platform"] = tag
    try:
        return _CREDENTIALS_ADAPTER.validate_python(data)
    except ValidationError as exc:
        LOGGER.debug("credentials malformed platform=%s errors=%s", tag, exc.error_count())
        return None


__all__ = [
    "LinkedInCredentials",
    "IndeedCredentials",
    "PlatformCredentials",
    "CREDENTIAL_PLATFORMS",
    "parse_credentials",
]
