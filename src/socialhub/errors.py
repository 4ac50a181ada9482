"""
Error kinds and the error-to-HTTP-status classifier.

Request handlers raise the typed errors defined here; ``classify_error`` is
the single place that turns any raised error into a status code and a JSON
body of the shape::

    {"success": False, "error": {"message": "...", "stack": "..."}}

``stack`` is only present when the process runs in development mode.
"""

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEVELOPMENT_MODE = "development"


class ErrorKind(str, Enum):
    """Closed set of error kinds understood by the classifier."""
    VALIDATION = "ValidationError"
    UNAUTHORIZED = "UnauthorizedError"
    FORBIDDEN = "ForbiddenError"
    NOT_FOUND = "NotFoundError"
    CONFLICT = "ConflictError"
    UNCLASSIFIED = "Unclassified"


@dataclass(frozen=True)
class ErrorClassification:
    """HTTP status and public message for one error kind.

    A ``public_message`` of None means the error's own message is public.
    """
    status_code: int
    public_message: Optional[str]


CLASSIFICATION_TABLE: Dict[ErrorKind, ErrorClassification] = {
    ErrorKind.VALIDATION: ErrorClassification(400, None),
    ErrorKind.UNAUTHORIZED: ErrorClassification(401, "Unauthorized"),
    ErrorKind.FORBIDDEN: ErrorClassification(403, "Forbidden"),
    ErrorKind.NOT_FOUND: ErrorClassification(404, "Not Found"),
    ErrorKind.CONFLICT: ErrorClassification(409, "Conflict"),
    ErrorKind.UNCLASSIFIED: ErrorClassification(500, "Internal Server Error"),
}


class AppError(Exception):
    """Base class for errors raised by request handlers."""
    kind: ErrorKind = ErrorKind.UNCLASSIFIED


class ValidationError(AppError):
    """Raised when request input is invalid."""
    kind = ErrorKind.VALIDATION


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(AppError):
    """Raised when the caller may not perform the operation."""
    kind = ErrorKind.FORBIDDEN


class NotFoundError(AppError):
    """Raised when a requested entity does not exist."""
    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    """Raised when an entity already exists."""
    kind = ErrorKind.CONFLICT


STATUS_KINDS: Dict[int, ErrorKind] = {
    classification.status_code: kind
    for kind, classification in CLASSIFICATION_TABLE.items()
    if kind is not ErrorKind.UNCLASSIFIED
}


class HTTPStatusError(AppError):
    """
    Framework-level HTTP error such as an unknown route or a wrong method.

    Statuses present in the table take that kind; any other status is kept
    as is, with the framework's detail as the public message.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.kind = STATUS_KINDS.get(status_code, ErrorKind.UNCLASSIFIED)


def resolve_kind(error: BaseException) -> ErrorKind:
    """
    Determine the kind of an error.

    Errors outside the ``AppError`` hierarchy may still carry a ``kind``
    attribute, either an ``ErrorKind`` or its string value.
    """
    kind = getattr(error, "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    if isinstance(kind, str):
        try:
            return ErrorKind(kind)
        except ValueError:
            return ErrorKind.UNCLASSIFIED
    return ErrorKind.UNCLASSIFIED


def format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def classify_error(error: BaseException, environment: str) -> Tuple[int, Dict[str, Any]]:
    """
    Map a raised error to an HTTP status code and response body.

    The full error is always logged, whatever its classification.

    Args:
        error: The raised error.
        environment: Process execution mode; the traceback is attached to the
            body only when it equals "development".

    Returns:
        Tuple of (status_code, body).
    """
    kind = resolve_kind(error)
    classification = CLASSIFICATION_TABLE[kind]

    status_code = classification.status_code
    message = classification.public_message
    if isinstance(error, HTTPStatusError) and kind is ErrorKind.UNCLASSIFIED:
        status_code, message = error.status_code, str(error)

    logger.error(
        f"{type(error).__name__} classified as {kind.value} ({status_code}): {error}",
        exc_info=(type(error), error, error.__traceback__),
    )

    if message is None:
        message = str(error)

    body_error: Dict[str, Any] = {"message": message}
    if environment == DEVELOPMENT_MODE:
        body_error["stack"] = format_stack(error)

    return status_code, {"success": False, "error": body_error}
