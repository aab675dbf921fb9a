"""
Error taxonomy for the lending core.

Every failure of a checkout, return or lending query is reported as one of
the ``LendingError`` subclasses below. Write operations raise them only after
their transaction has been rolled back.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LendingError(Exception):
    """Base class for all lending failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LendingError):
    """The referenced book (or borrower) does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(LendingError):
    """
    Business-rule violation: the book is already checked out, or a return
    does not match the book's current active checkout (including when the
    book has no active checkout at all).
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class WriteAnomalyError(LendingError):
    """A write that must affect exactly one row affected none."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class TransactionFailureError(LendingError):
    """The store refused to commit, e.g. a serialization failure. Safe to retry."""

    status_code = status.HTTP_409_CONFLICT
    retryable = True


class StoreUnavailableError(LendingError):
    """The store could not be reached or failed for infrastructure reasons."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidIdentifierError(LendingError):
    """An identifier supplied by the caller is not a valid UUID."""

    status_code = status.HTTP_400_BAD_REQUEST


async def lending_error_handler(request: Request, exc: LendingError) -> JSONResponse:
    if isinstance(exc, (WriteAnomalyError, StoreUnavailableError)):
        logger.error(
            f"Unexpected error on {request.method} {request.url.path}: {exc.message}",
            exc_info=exc,
        )
    elif isinstance(exc, TransactionFailureError):
        logger.warning(f"Transaction aborted on {request.method} {request.url.path}: {exc.message}")

    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LendingError, lending_error_handler)
