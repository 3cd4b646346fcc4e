"""Apply one target status to many orders with per-order failure isolation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from printshop.models import User
from printshop.services.errors import InvalidStatus, NotificationFailed, StatusNotFound, TransitionError
from printshop.services.order_transitions import Sequencing, TransitionCoordinator
from printshop.services.status_catalog import get_status

logger = logging.getLogger(__name__)

BULK_NOTE: str = "Status updated in bulk after webhook confirmation"
UPDATED_MESSAGE: str = "Status updated after webhook confirmation"
UNCHANGED_MESSAGE: str = "Order already in status; nothing sent"


class BatchOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


OUTCOME_HTTP_STATUS: dict[BatchOutcome, int] = {
    BatchOutcome.SUCCESS: 200,
    BatchOutcome.PARTIAL: 207,
    BatchOutcome.FAILED: 500,
}


@dataclass
class BatchReport:
    total_processed: int
    results: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def successes(self) -> int:
        return len(self.results)

    @property
    def failures(self) -> int:
        return len(self.errors)

    @property
    def outcome(self) -> BatchOutcome:
        if self.failures and self.failures == self.total_processed:
            return BatchOutcome.FAILED
        if self.failures:
            return BatchOutcome.PARTIAL
        return BatchOutcome.SUCCESS

    @property
    def http_status(self) -> int:
        return OUTCOME_HTTP_STATUS[self.outcome]

    def as_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "results": self.results,
            "total_processed": self.total_processed,
            "successes": self.successes,
            "failures": self.failures,
        }
        if self.errors:
            body["errors"] = self.errors
        return body


class BulkTransitionRunner:
    """Runs the notify-then-persist transition once per order, sequentially."""

    def __init__(self, coordinator: TransitionCoordinator) -> None:
        self.coordinator = coordinator

    def transition_many(
        self,
        order_ids: Sequence[int],
        new_status_id: int,
        *,
        actor: User | None = None,
    ) -> BatchReport:
        try:
            target = get_status(self.coordinator.db, new_status_id)
        except StatusNotFound as exc:
            raise InvalidStatus(f"Status {new_status_id} does not exist") from exc
        if not target.is_active:
            raise InvalidStatus(f"Status {new_status_id} is inactive")

        logger.info("[BULK] Updating %s order(s) to status %s (%s)", len(order_ids), target.id, target.name)
        report = BatchReport(total_processed=len(order_ids))
        for order_id in order_ids:
            try:
                outcome = self.coordinator.transition(
                    order_id,
                    new_status_id,
                    note=BULK_NOTE,
                    actor=actor,
                    sequencing=Sequencing.NOTIFY_THEN_PERSIST,
                )
            except TransitionError as exc:
                logger.warning("[BULK] Order %s failed: %s", order_id, exc.message)
                entry: dict[str, Any] = {"order_id": order_id, "error": exc.kind, "message": exc.message}
                if isinstance(exc, NotificationFailed):
                    entry["attempts"] = [attempt.as_dict() for attempt in exc.report.attempts]
                report.errors.append(entry)
                continue

            report.results.append(
                {
                    "order_id": order_id,
                    "success": True,
                    "status_id": outcome.order.status_id,
                    "message": UPDATED_MESSAGE if outcome.changed else UNCHANGED_MESSAGE,
                }
            )

        logger.info("[BULK] Finished: %s succeeded, %s failed", report.successes, report.failures)
        return report
