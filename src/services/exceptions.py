"""Service-layer errors and store failure handling."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class DebtTrackerError(Exception):
    """Base error; carries a user-safe message and an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, errors: list[str] | None = None):
        self.message = message or self.default_message
        self.errors = errors or [self.message]
        super().__init__(self.message)


class ValidationError(DebtTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(DebtTrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class CounterpartyNotFoundError(NotFoundError):
    default_message = "Counterparty not found"


class ConflictError(DebtTrackerError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current state"


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and replace store failures with a generic error.

    The underlying exception is logged here and never reaches the client.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception(f"Store failure while trying to {action}: {e}")
        db.rollback()
        raise DebtTrackerError() from e
