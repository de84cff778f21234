r"""backend\app\core\errors.py

Exception hierarchy shared by services and API routes.

Services raise these; the FastAPI application maps each class to an HTTP
status code in ``main.py``.
"""

from __future__ import annotations


class BackOfficeError(Exception):
    """Base class for all domain errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(BackOfficeError):
    """The caller supplied input that cannot be processed."""

    code = "invalid_input"


class NotFoundError(BackOfficeError):
    """A requested document does not exist in the store."""

    code = "not_found"


class AuthenticationError(BackOfficeError):
    """The request carries no valid identity."""

    code = "unauthenticated"


class PermissionDeniedError(BackOfficeError):
    """The authenticated user is not allowed to perform the action."""

    code = "forbidden"


class GenerationError(BackOfficeError):
    """The structured-generation service failed or returned unusable output."""

    code = "generation_failed"
