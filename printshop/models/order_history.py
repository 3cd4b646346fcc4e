"""Append-only order status history model."""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printshop.db.base import Base


class ActionType(str, PyEnum):
    """Kind of event recorded in the order history."""

    CREATION = "creation"
    STATUS_CHANGE = "status_change"
    NOTE = "note"
    SYSTEM = "system"


class AuditTrailImmutable(Exception):
    """Raised when something tries to rewrite a persisted history record."""


class OrderHistory(Base):
    """Stores one row per committed order status transition."""

    __tablename__ = "order_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_status_id: Mapped[int | None] = mapped_column(ForeignKey("order_statuses.id"), nullable=True)
    new_status_id: Mapped[int] = mapped_column(ForeignKey("order_statuses.id"), nullable=False)
    action_type: Mapped[ActionType] = mapped_column(
        Enum(ActionType, name="order_history_action", values_callable=lambda kinds: [kind.value for kind in kinds]),
        nullable=False,
        default=ActionType.STATUS_CHANGE,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    extra_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    actor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    previous_status: Mapped[Optional["OrderStatus"]] = relationship(foreign_keys=[previous_status_id])
    new_status: Mapped["OrderStatus"] = relationship(foreign_keys=[new_status_id])
    actor: Mapped[Optional["User"]] = relationship()


@event.listens_for(OrderHistory, "before_update")
def _refuse_update(mapper, connection, target: OrderHistory) -> None:
    raise AuditTrailImmutable(f"Order history record {target.id} is append-only")


@event.listens_for(OrderHistory, "before_delete")
def _refuse_delete(mapper, connection, target: OrderHistory) -> None:
    raise AuditTrailImmutable(f"Order history record {target.id} is append-only")
