from __future__ import annotations


class TrackerError(Exception):
    """Base class for conditions the API reports back to the caller."""

    reason = "error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())
        self.message = str(self)

    def default_message(self) -> str:
        return "Request failed"


class InvalidRequest(TrackerError):
    reason = "invalid_request"
    status_code = 400

    def default_message(self) -> str:
        return "Missing required fields"


class UnknownUser(TrackerError):
    reason = "unknown_user"
    status_code = 404

    def default_message(self) -> str:
        return "User not found"


class UnsupportedPlatform(TrackerError):
    reason = "unsupported_platform"
    status_code = 400

    def __init__(self, platform: str | None = None) -> None:
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}" if platform else "Unsupported platform")


class MissingCredentials(TrackerError):
    reason = "missing_credentials"
    status_code = 400

    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"No {platform} credentials found. Please add your credentials in Settings.")


class InvalidCredentials(TrackerError):
    reason = "invalid_credentials"
    status_code = 401

    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(
            f"Invalid or expired {platform} credentials. Please update your credentials in Settings."
        )


class ListingNotFound(TrackerError):
    reason = "listing_not_found"
    status_code = 404

    def default_message(self) -> str:
        return "Job listing not found"


class PersistenceFailed(TrackerError):
    reason = "persistence_failed"
    status_code = 500

    def default_message(self) -> str:
        return "Failed to save job listing"


__all__ = [
    "TrackerError",
    "InvalidRequest",
    "UnknownUser",
    "UnsupportedPlatform",
    "MissingCredentials",
    "InvalidCredentials",
    "ListingNotFound",
    "PersistenceFailed",
]
