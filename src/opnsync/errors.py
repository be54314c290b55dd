"""Error taxonomy shared by the stores, the client and the orchestrator."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    API_FAILURE = "api_failure"
    NO_VALID_IPS = "no_valid_ips"


class SyncError(Exception):
    """Base class for every error raised by opnsync.

    Callers switch on ``kind`` instead of matching message text.
    """

    kind: ErrorKind = ErrorKind.API_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SyncError):
    """Malformed reservation or alias data. Raised before any request is sent."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(SyncError):
    kind = ErrorKind.NOT_FOUND


class NoValidIPsError(SyncError):
    kind = ErrorKind.NO_VALID_IPS

    def __init__(
        self, message: str = "no valid IP addresses found in device list"
    ) -> None:
        super().__init__(message)


class APIError(SyncError):
    """Non-success answer from the router API, or a failed transport call."""

    kind = ErrorKind.API_FAILURE

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        validations: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.http_status = http_status
        self.validations = dict(validations or {})

    def __str__(self) -> str:
        status = f"HTTP {self.http_status}" if self.http_status else "no response"
        text = f"OPNsense API error ({status}): {self.message}"
        if self.validations:
            details = ", ".join(
                f"{key}: {value}" for key, value in sorted(self.validations.items())
            )
            text = f"{text}, details: {details}"
        return text
