"""Order lifecycle: creation, field edits and webhook-confirmed status changes.

An order's persisted status changes, and a history record for that change
exists, if and only if every active webhook confirmed the change. Two
sequencings reach that guarantee:

* ``PERSIST_THEN_NOTIFY`` writes the history record and the new status
  inside the session's transaction, notifies, then commits or rolls back.
* ``NOTIFY_THEN_PERSIST`` notifies first and only writes (and commits) once
  every subscriber has confirmed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from printshop.core.config import settings
from printshop.models import ActionType, Order, OrderStatus, User
from printshop.services.audit_trail import append_record
from printshop.services.errors import (
    InvalidStatus,
    NotificationFailed,
    OrderNotFound,
    OrderNumberTaken,
    PersistenceFailed,
    StatusNotFound,
    TransitionNotAllowed,
)
from printshop.services.order_locks import KeyedLock, order_locks
from printshop.services.status_catalog import get_status
from printshop.services.transition_policy import TransitionPolicy
from printshop.services.webhook_dispatcher import WebhookDispatcher, list_active_webhooks

logger = logging.getLogger(__name__)

PROTECTED_FIELDS: frozenset[str] = frozenset({"id", "status_id", "user_id", "created_at", "updated_at"})


class Sequencing(str, Enum):
    PERSIST_THEN_NOTIFY = "persist_then_notify"
    NOTIFY_THEN_PERSIST = "notify_then_persist"


@dataclass(frozen=True)
class TransitionOutcome:
    order: Order
    changed: bool


def editable_order_fields() -> frozenset[str]:
    """Column names that ``update_fields`` accepts."""
    return frozenset(column.key for column in inspect(Order).column_attrs) - PROTECTED_FIELDS


def validate_changes(data: dict[str, Any]) -> None:
    if "status_id" in data:
        raise ValueError("Status changes must go through transition_status")
    unknown = set(data) - editable_order_fields()
    if unknown:
        raise ValueError(f"Unknown or read-only order fields: {', '.join(sorted(unknown))}")


class TransitionCoordinator:
    """Drives a single order through its status lifecycle."""

    def __init__(
        self,
        db: Session,
        dispatcher: WebhookDispatcher,
        *,
        locks: KeyedLock = order_locks,
        policy: TransitionPolicy | None = None,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.locks = locks
        if policy is None and settings.enforce_status_graph:
            policy = TransitionPolicy()
        self.policy = policy

    def get_order(self, order_id: int) -> Order:
        order: Order | None = self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def create_order(self, data: dict[str, Any], *, actor: User | None = None) -> Order:
        """Insert an order in the initial status together with its creation record."""
        try:
            initial_status: OrderStatus = get_status(self.db, settings.initial_status_id)
        except StatusNotFound as exc:
            raise InvalidStatus(f"Initial status {settings.initial_status_id} is missing from the catalog") from exc

        fields = {key: value for key, value in data.items() if key not in PROTECTED_FIELDS}
        self._ensure_order_number_free(fields.get("order_number"))
        order = Order(**fields, status_id=initial_status.id, user_id=actor.id if actor is not None else None)
        try:
            self.db.add(order)
            self.db.flush()
            append_record(
                self.db,
                order_id=order.id,
                previous_status_id=None,
                new_status_id=initial_status.id,
                action_type=ActionType.CREATION,
                notes="Order created",
                actor=actor,
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("[TRANSITION] Failed to create order")
            raise PersistenceFailed("Could not create order") from exc

        self.db.refresh(order)
        logger.info("[TRANSITION] Order %s created in status %s", order.id, initial_status.id)
        return order

    def update_fields(self, order_id: int, data: dict[str, Any]) -> Order:
        """Apply non-status field edits directly; no history record, no webhooks."""
        validate_changes(data)
        order = self.get_order(order_id)
        self._ensure_order_number_free(data.get("order_number"), exclude_id=order_id)
        self._apply_changes(order, data)
        self._commit(order, action="save fields")
        return order

    def delete_order(self, order_id: int) -> None:
        order = self.get_order(order_id)
        try:
            self.db.delete(order)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("[TRANSITION] Order %s: delete failed", order_id)
            raise PersistenceFailed(f"Could not delete order {order_id}") from exc
        logger.info("[TRANSITION] Order %s deleted", order_id)

    def transition_status(
        self,
        order_id: int,
        new_status_id: int,
        *,
        note: str | None = None,
        actor: User | None = None,
        sequencing: Sequencing = Sequencing.PERSIST_THEN_NOTIFY,
        extra_data: dict[str, Any] | None = None,
        changes: dict[str, Any] | None = None,
    ) -> Order:
        """Move an order to ``new_status_id`` once every active webhook confirms.

        ``changes`` are field edits saved in the same commit as the status, so
        they are kept or discarded together with it. Moving an order to the
        status it already has writes no history and dispatches nothing; any
        ``changes`` are then saved on their own.
        """
        return self.transition(
            order_id,
            new_status_id,
            note=note,
            actor=actor,
            sequencing=sequencing,
            extra_data=extra_data,
            changes=changes,
        ).order

    def transition(
        self,
        order_id: int,
        new_status_id: int,
        *,
        note: str | None = None,
        actor: User | None = None,
        sequencing: Sequencing = Sequencing.PERSIST_THEN_NOTIFY,
        extra_data: dict[str, Any] | None = None,
        changes: dict[str, Any] | None = None,
    ) -> TransitionOutcome:
        """Same as ``transition_status`` but also says whether the status moved."""
        changes = changes or {}
        validate_changes(changes)
        with self.locks.hold(order_id):
            try:
                order = self._load_for_update(order_id)
                self._ensure_order_number_free(changes.get("order_number"), exclude_id=order_id)
                if order.status_id == new_status_id:
                    logger.info("[TRANSITION] Order %s already in status %s; nothing to do", order_id, new_status_id)
                    if changes:
                        self._apply_changes(order, changes)
                        self._commit(order, action="save fields")
                    return TransitionOutcome(order=order, changed=False)

                new_status = self._resolve_target(order, new_status_id)
                endpoints = list_active_webhooks(self.db)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("[TRANSITION] Order %s: reading state for status %s failed", order_id, new_status_id)
                raise PersistenceFailed(f"Could not load order {order_id}") from exc

            record_data = {"sequencing": sequencing.value, **(extra_data or {})}
            notes = note or "Status updated"
            if sequencing is Sequencing.PERSIST_THEN_NOTIFY:
                self._persist_then_notify(order, new_status, endpoints, notes, actor, record_data, changes)
            else:
                self._notify_then_persist(order, new_status, endpoints, notes, actor, record_data, changes)
            return TransitionOutcome(order=order, changed=True)

    def _ensure_order_number_free(self, order_number: int | None, *, exclude_id: int | None = None) -> None:
        if order_number is None:
            return
        query = select(Order.id).where(Order.order_number == order_number)
        if exclude_id is not None:
            query = query.where(Order.id != exclude_id)
        if self.db.scalar(query.limit(1)) is not None:
            raise OrderNumberTaken(order_number)

    @staticmethod
    def _apply_changes(order: Order, changes: dict[str, Any]) -> None:
        for key, value in changes.items():
            setattr(order, key, value)

    def _load_for_update(self, order_id: int) -> Order:
        order: Order | None = self.db.scalar(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def _resolve_target(self, order: Order, new_status_id: int) -> OrderStatus:
        try:
            new_status = get_status(self.db, new_status_id)
        except StatusNotFound as exc:
            raise InvalidStatus(f"Status {new_status_id} does not exist") from exc
        if not new_status.is_active:
            raise InvalidStatus(f"Status {new_status_id} is inactive")
        if self.policy is not None and not self.policy.can_transition(order.status, new_status):
            raise TransitionNotAllowed(
                f"Order {order.id} cannot move from '{order.status.name}' to '{new_status.name}'"
            )
        return new_status

    def _write_transition(
        self,
        order: Order,
        new_status: OrderStatus,
        notes: str,
        actor: User | None,
        record_data: dict[str, Any],
        changes: dict[str, Any],
    ) -> int:
        previous_status_id = order.status_id
        append_record(
            self.db,
            order_id=order.id,
            previous_status_id=previous_status_id,
            new_status_id=new_status.id,
            action_type=ActionType.STATUS_CHANGE,
            notes=notes,
            extra_data=record_data,
            actor=actor,
        )
        self._apply_changes(order, changes)
        order.status_id = new_status.id
        self.db.flush()
        return previous_status_id

    def _persist_then_notify(self, order, new_status, endpoints, notes, actor, record_data, changes) -> None:
        order_id = order.id
        try:
            previous_status_id = self._write_transition(order, new_status, notes, actor, record_data, changes)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("[TRANSITION] Order %s: writing status %s failed", order_id, new_status.id)
            raise PersistenceFailed(f"Could not save status {new_status.id} for order {order_id}") from exc

        report = self.dispatcher.dispatch(endpoints, order_id, new_status)
        if not report.succeeded:
            self.db.rollback()
            logger.warning(
                "[TRANSITION] Order %s: rolled back %s -> %s after webhook failure",
                order_id,
                previous_status_id,
                new_status.id,
            )
            raise NotificationFailed(
                f"Order {order_id}: failed to notify external systems. {report.describe_failures()}",
                report,
            )

        self._commit(order, action=f"save status {new_status.id}")
        logger.info("[TRANSITION] Order %s moved %s -> %s", order_id, previous_status_id, new_status.id)

    def _notify_then_persist(self, order, new_status, endpoints, notes, actor, record_data, changes) -> None:
        order_id = order.id
        report = self.dispatcher.dispatch(endpoints, order_id, new_status)
        if not report.succeeded:
            # Nothing was written; this only releases the row lock.
            self.db.rollback()
            raise NotificationFailed(
                f"Order {order_id}: failed to notify external systems. {report.describe_failures()}",
                report,
            )

        try:
            previous_status_id = self._write_transition(order, new_status, notes, actor, record_data, changes)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("[TRANSITION] Order %s: writing status %s failed after webhook confirmation", order_id, new_status.id)
            raise PersistenceFailed(f"Could not save status {new_status.id} for order {order_id}") from exc

        self._commit(order, action=f"save status {new_status.id}")
        logger.info(
            "[TRANSITION] Order %s moved %s -> %s after webhook confirmation", order_id, previous_status_id, new_status.id
        )

    def _commit(self, order: Order, *, action: str) -> None:
        order_id = order.id
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("[TRANSITION] Order %s: %s failed", order_id, action)
            raise PersistenceFailed(f"Could not {action} for order {order_id}") from exc
        self.db.refresh(order)
