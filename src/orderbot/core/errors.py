"""
Error types shared by the wizard core and the backend client.

Validation problems are never raised; the validator returns a
ValidationResult instead. Exceptions here cover wizard misuse and
failures reported by the hosted backend.
"""

from typing import Any

DEFAULT_COMMIT_ERROR = "Failed to create order"


class WizardError(Exception):
    """Invalid use of the wizard API (bad step index, unknown field path)."""


class BackendError(Exception):
    """A call to the hosted backend failed or returned an error body."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    @property
    def user_message(self) -> str:
        """Single user-facing message; the backend's own text when it sent one."""
        if isinstance(self.details, str) and self.details.strip():
            return f"{self.message}: {self.details}" if self.message else self.details
        return self.message or DEFAULT_COMMIT_ERROR


class BackendAuthError(BackendError):
    """The access token was rejected by the backend."""
