"""Read access to the order status catalog."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.models.status import OrderStatus
from printshop.services.errors import StatusNotFound


def get_status(db: Session, status_id: int) -> OrderStatus:
    """Return the status with the given id or raise StatusNotFound."""
    order_status: OrderStatus | None = db.get(OrderStatus, status_id)
    if order_status is None:
        raise StatusNotFound(status_id)
    return order_status


def get_status_by_name(db: Session, name: str) -> OrderStatus:
    order_status = db.scalar(select(OrderStatus).where(OrderStatus.name == name).limit(1))
    if order_status is None:
        raise StatusNotFound(name)
    return order_status


def list_statuses(db: Session, *, active_only: bool = False) -> list[OrderStatus]:
    """Return catalog entries in display order."""
    query = select(OrderStatus).order_by(OrderStatus.sort_order.asc(), OrderStatus.id.asc())
    if active_only:
        query = query.where(OrderStatus.is_active.is_(True))
    return list(db.scalars(query).all())
