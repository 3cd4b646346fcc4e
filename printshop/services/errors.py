"""Domain errors raised by the order workflow services."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from printshop.services.webhook_dispatcher import DispatchReport


class TransitionError(Exception):
    """Base class for failures the API reports with a machine-readable kind."""

    kind: str = "transition_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(TransitionError):
    kind = "not_found"


class OrderNotFound(NotFound):
    def __init__(self, order_id: int | str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class StatusNotFound(NotFound):
    def __init__(self, status_id: int | str) -> None:
        super().__init__(f"Status {status_id} not found")
        self.status_id = status_id


class Conflict(TransitionError):
    """The change would break a uniqueness rule."""

    kind = "conflict"


class OrderNumberTaken(Conflict):
    def __init__(self, order_number: int) -> None:
        super().__init__(f"Order number {order_number} is already in use")
        self.order_number = order_number


class InvalidStatus(TransitionError):
    """Target status is unknown or inactive."""

    kind = "invalid_status"


class TransitionNotAllowed(InvalidStatus):
    """Target status is not reachable from the current one under the status graph."""

    kind = "transition_not_allowed"


class NotificationFailed(TransitionError):
    """At least one active webhook did not confirm the status change."""

    kind = "notification_failed"

    def __init__(self, message: str, report: DispatchReport) -> None:
        super().__init__(message)
        self.report = report


class PersistenceFailed(TransitionError):
    """The database unit of work failed and was rolled back."""

    kind = "persistence_failed"
