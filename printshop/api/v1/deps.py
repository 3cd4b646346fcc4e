"""Shared API dependencies and domain-error translation."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from printshop.db.session import get_db
from printshop.services.errors import (
    Conflict,
    InvalidStatus,
    NotFound,
    NotificationFailed,
    PersistenceFailed,
    TransitionError,
)
from printshop.services.order_transitions import TransitionCoordinator
from printshop.services.webhook_dispatcher import WebhookDispatcher, get_dispatcher


def get_coordinator(
    db: Session = Depends(get_db),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> TransitionCoordinator:
    return TransitionCoordinator(db, dispatcher)


def http_error(exc: TransitionError) -> HTTPException:
    """Map a workflow error onto an HTTP error with a machine-readable kind."""
    detail: dict = {"error": exc.kind, "message": exc.message}
    if isinstance(exc, NotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, Conflict):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, InvalidStatus):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotificationFailed):
        status_code = status.HTTP_502_BAD_GATEWAY
        detail["attempts"] = [attempt.as_dict() for attempt in exc.report.attempts]
    elif isinstance(exc, PersistenceFailed):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=detail)
