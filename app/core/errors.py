"""Exception hierarchy shared by the relay components."""
from __future__ import annotations

from typing import Any

import httpx


class RelayError(Exception):
    """Base error for the relay service."""


class ConfigurationError(RelayError):
    """Raised when required configuration is missing at startup."""


class CredentialStoreError(RelayError):
    """Raised when the credential store cannot be read or written."""


class CredentialNotFoundError(CredentialStoreError):
    """Raised when a user has never linked a Drive account."""

    def __init__(self, user_id: int):
        super().__init__(f"No stored credential for user {user_id}")
        self.user_id = user_id


class InvalidStateError(RelayError):
    """Raised when an OAuth state token is unknown, reused or expired."""


class TelegramAPIError(RelayError):
    """Raised when the Telegram Bot API rejects a request or is unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None, description: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.description = description


class DownloadError(RelayError):
    """Raised when the direct file URL cannot be fetched."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DriveAPIError(RelayError):
    """Raised when Google Drive returns an error response.

    The optional fields mirror Google's JSON error envelope::

        {"error": {"code": 403, "message": "...",
                   "errors": [{"domain": "usageLimits", "reason": "rateLimitExceeded"}]}}

    They stay ``None`` when the response carries no envelope.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: int | None = None,
        domain: str | None = None,
        reason: str | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.domain = domain
        self.reason = reason
        self.body = body

    @classmethod
    def from_response(cls, response: httpx.Response, message: str) -> "DriveAPIError":
        """Decode the Google error envelope of ``response`` when present."""

        code: int | None = None
        domain: str | None = None
        reason: str | None = None
        try:
            payload: Any = response.json()
        except ValueError:
            payload = None

        envelope = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(envelope, dict):
            raw_code = envelope.get("code")
            code = raw_code if isinstance(raw_code, int) else None
            if envelope.get("message"):
                message = f"{message}: {envelope['message']}"
            details = envelope.get("errors")
            if isinstance(details, list) and details and isinstance(details[0], dict):
                domain = details[0].get("domain")
                reason = details[0].get("reason")

        return cls(
            message,
            status_code=response.status_code,
            code=code,
            domain=domain,
            reason=reason,
            body=response.text,
        )

    def log_fields(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "error_code": self.code,
            "error_domain": self.domain,
            "error_reason": self.reason,
        }
