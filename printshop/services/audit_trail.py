"""Order history helpers.

Records are only ever added. ``append_record`` flushes into the caller's
session and leaves commit or rollback to the unit of work that owns it, so a
history row becomes visible exactly when the status change it describes does.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from printshop.models import ActionType, OrderHistory, User


def append_record(
    db: Session,
    *,
    order_id: int,
    previous_status_id: int | None,
    new_status_id: int,
    action_type: ActionType = ActionType.STATUS_CHANGE,
    notes: str | None = None,
    extra_data: dict[str, Any] | None = None,
    actor: User | None = None,
) -> OrderHistory:
    record = OrderHistory(
        order_id=order_id,
        previous_status_id=previous_status_id,
        new_status_id=new_status_id,
        action_type=action_type,
        notes=notes,
        extra_data=extra_data,
        actor_id=actor.id if actor is not None else None,
    )
    db.add(record)
    db.flush()
    return record


def list_by_order(db: Session, order_id: int) -> list[OrderHistory]:
    """Return the order's history, newest first."""
    return list(
        db.scalars(
            select(OrderHistory)
            .options(
                joinedload(OrderHistory.previous_status),
                joinedload(OrderHistory.new_status),
                joinedload(OrderHistory.actor),
            )
            .where(OrderHistory.order_id == order_id)
            .order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc())
        ).all()
    )
