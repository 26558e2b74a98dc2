"""
Defines custom exceptions for the application to allow for more specific error handling.

Every error carries a fixed ``kind`` tag and a ``message`` so callers can render
failures without caring which collaborator produced them.
"""

from typing import Any

# Machine code the store uses for "the request matched no rows".
NO_ROWS_CODE = "PGRST116"


class PortfolioError(Exception):
    """Base exception for all application-specific errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortfolioError):
    """Raised when a record fails client-side validation, before any network call."""

    kind = "validation"

    def __init__(self, field_errors: dict[str, str], message: str | None = None):
        self.field_errors = dict(field_errors)
        if message is None:
            fields = ", ".join(sorted(self.field_errors)) or "input"
            message = f"Invalid value for: {fields}"
        super().__init__(message)


class StoreError(PortfolioError):
    """Raised when the remote store rejects a request."""

    kind = "store"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details
        self.hint = hint
        self.status = status

    @property
    def is_no_rows(self) -> bool:
        return self.code == NO_ROWS_CODE

    @classmethod
    def from_payload(cls, payload: Any, status: int | None = None) -> "StoreError":
        """
        Builds an error from whatever shape the store sent back.

        The message falls back to the details, then to a generic text.
        """
        if not isinstance(payload, dict):
            text = str(payload).strip() if payload else ""
            return cls(text or f"Store request failed (HTTP {status})", status=status)

        code = payload.get("code")
        details = payload.get("details")
        message = (
            payload.get("message")
            or payload.get("error_description")
            or payload.get("error")
            or details
            or f"Store request failed (HTTP {status})"
        )
        return cls(
            str(message),
            code=str(code) if code is not None else None,
            details=details,
            hint=payload.get("hint"),
            status=status,
        )


class NetworkError(PortfolioError):
    """Raised when a remote call did not complete."""

    kind = "network"


class ConfigurationError(PortfolioError):
    """Raised for issues related to configuration loading or validation."""

    kind = "config"


class MailRelayError(PortfolioError):
    """Raised when the mail relay rejects a message or is not configured."""

    kind = "mail"


class CooldownError(PortfolioError):
    """Raised when a contact message is submitted again too soon."""

    kind = "cooldown"

    def __init__(self, remaining_seconds: int):
        super().__init__(
            f"Please wait {remaining_seconds}s before sending another message."
        )
        self.remaining_seconds = remaining_seconds


class UnsupportedOperationError(PortfolioError):
    """Raised when a collection operation is used on the singleton settings record."""

    kind = "unsupported"
