"""Order lookup and listing queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from printshop.models import Order
from printshop.services.errors import OrderNotFound


@dataclass(frozen=True)
class OrderFilters:
    owner_id: int | None = None
    status_id: int | None = None
    sku: str | None = None
    order_number: int | None = None
    customer_name: str | None = None
    created_on: date | None = None


def day_window_utc(day: date) -> tuple[datetime, datetime]:
    """Return the UTC boundaries of a calendar day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def get_order_by_number(db: Session, order_number: int) -> Order:
    order = db.scalar(
        select(Order).options(joinedload(Order.status)).where(Order.order_number == order_number).limit(1)
    )
    if order is None:
        raise OrderNotFound(order_number)
    return order


def list_orders(
    db: Session,
    filters: OrderFilters | None = None,
    *,
    page: int = 1,
    limit: int = 15,
) -> tuple[list[Order], int]:
    """Return one page of orders, newest first, and the total match count."""
    filters = filters or OrderFilters()
    conditions = []
    if filters.owner_id is not None:
        conditions.append(Order.user_id == filters.owner_id)
    if filters.status_id is not None:
        conditions.append(Order.status_id == filters.status_id)
    if filters.sku:
        conditions.append(Order.sku.like(f"%{filters.sku}%"))
    if filters.order_number is not None:
        conditions.append(Order.order_number == filters.order_number)
    if filters.customer_name:
        conditions.append(Order.customer_name.like(f"%{filters.customer_name}%"))
    if filters.created_on is not None:
        start, end = day_window_utc(filters.created_on)
        conditions.append(Order.created_at >= start)
        conditions.append(Order.created_at < end)

    total: int = db.scalar(select(func.count()).select_from(Order).where(*conditions)) or 0
    orders = db.scalars(
        select(Order)
        .options(joinedload(Order.status))
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    ).all()
    return list(orders), total
