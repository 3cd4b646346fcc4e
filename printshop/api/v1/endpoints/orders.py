"""Order endpoints."""

import logging
from datetime import date
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from printshop.api.v1.deps import get_coordinator, http_error
from printshop.core.permissions import Capability, has_capability
from printshop.core.security import get_current_user, require_capability
from printshop.db.session import get_db
from printshop.models import Order, OrderHistory, User
from printshop.schemas.order import (
    BulkStatusRequest,
    BulkStatusResponse,
    HistoryRead,
    OrderCreate,
    OrderPage,
    OrderRead,
    OrderUpdate,
    Pagination,
    StatusChangeRequest,
)
from printshop.services.audit_trail import list_by_order
from printshop.services.bulk_transitions import BulkTransitionRunner
from printshop.services.errors import TransitionError
from printshop.services.order_service import OrderFilters, list_orders
from printshop.services.order_transitions import Sequencing, TransitionCoordinator

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


def _ensure_can_access(user: User, order: Order) -> None:
    """Non-staff users only see their own orders; 404 avoids leaking ids."""
    if has_capability(user.role, Capability.VIEW_ALL_ORDERS):
        return
    if order.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")


def _load_visible_order(coordinator: TransitionCoordinator, order_id: int, user: User) -> Order:
    try:
        order = coordinator.get_order(order_id)
    except TransitionError as exc:
        raise http_error(exc) from exc
    _ensure_can_access(user, order)
    return order


@router.get("", response_model=OrderPage)
def list_all_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=15, ge=1, le=200),
    status_id: int | None = Query(default=None, alias="status"),
    sku: str | None = None,
    order_number: int | None = None,
    customer_name: str | None = None,
    created_on: date | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> OrderPage:
    """Return a page of orders, newest first."""
    owner_id = None if has_capability(current_user.role, Capability.VIEW_ALL_ORDERS) else current_user.id
    filters = OrderFilters(
        owner_id=owner_id,
        status_id=status_id,
        sku=sku,
        order_number=order_number,
        customer_name=customer_name,
        created_on=created_on,
    )
    orders, total = list_orders(db, filters, page=page, limit=limit)
    return OrderPage(
        orders=[OrderRead.model_validate(order) for order in orders],
        pagination=Pagination(page=page, total_pages=ceil(total / limit), total=total, per_page=limit),
    )


@router.post("/bulk-status", response_model=BulkStatusResponse)
def bulk_update_status(
    payload: BulkStatusRequest,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    current_user: User = Depends(require_capability(Capability.CHANGE_STATUS)),
) -> JSONResponse:
    """Move many orders to one status; 200 all ok, 207 partial, 500 all failed."""
    if not has_capability(current_user.role, Capability.VIEW_ALL_ORDERS):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    try:
        report = BulkTransitionRunner(coordinator).transition_many(
            payload.order_ids, payload.status_id, actor=current_user
        )
    except TransitionError as exc:
        raise http_error(exc) from exc
    return JSONResponse(status_code=report.http_status, content=jsonable_encoder(report.as_dict()))


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: int,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
) -> Order:
    return _load_visible_order(coordinator, order_id, current_user)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    current_user: User = Depends(require_capability(Capability.EDIT_ORDERS)),
) -> Order:
    try:
        return coordinator.create_order(payload.model_dump(exclude_none=True), actor=current_user)
    except TransitionError as exc:
        raise http_error(exc) from exc


@router.put("/{order_id}", response_model=OrderRead)
def update_order(
    order_id: int,
    payload: OrderUpdate,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    current_user: User = Depends(require_capability(Capability.EDIT_ORDERS)),
) -> Order:
    """Edit order fields; a changed ``status_id`` is confirmed by webhooks in the same commit."""
    order = _load_visible_order(coordinator, order_id, current_user)
    fields = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"status_id", "note"})
    status_changes = payload.status_id is not None and payload.status_id != order.status_id
    if status_changes and not has_capability(current_user.role, Capability.CHANGE_STATUS):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    try:
        if status_changes:
            return coordinator.transition_status(
                order_id,
                payload.status_id,
                note=payload.note,
                actor=current_user,
                sequencing=Sequencing.PERSIST_THEN_NOTIFY,
                changes=fields,
            )
        if fields:
            return coordinator.update_fields(order_id, fields)
    except TransitionError as exc:
        raise http_error(exc) from exc
    return order


@router.patch("/{order_id}/status", response_model=OrderRead)
def change_order_status(
    order_id: int,
    payload: StatusChangeRequest,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    current_user: User = Depends(require_capability(Capability.CHANGE_STATUS)),
) -> Order:
    _load_visible_order(coordinator, order_id, current_user)
    try:
        return coordinator.transition_status(
            order_id,
            payload.status_id,
            note=payload.note,
            actor=current_user,
            sequencing=Sequencing.PERSIST_THEN_NOTIFY,
        )
    except TransitionError as exc:
        raise http_error(exc) from exc


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    _: User = Depends(require_capability(Capability.DELETE_ORDERS)),
) -> dict[str, str]:
    try:
        coordinator.delete_order(order_id)
    except TransitionError as exc:
        raise http_error(exc) from exc
    return {"message": "Order deleted"}


@router.get("/{order_id}/history", response_model=list[HistoryRead])
def get_order_history(
    order_id: int,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
) -> list[OrderHistory]:
    _load_visible_order(coordinator, order_id, current_user)
    return list_by_order(coordinator.db, order_id)
