"""API-key protected endpoints used by external storefronts."""

import logging
from math import ceil
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.api.v1.deps import get_coordinator, http_error
from printshop.core.config import settings
from printshop.core.security import require_api_key
from printshop.db.session import get_db
from printshop.models import Order
from printshop.schemas.integration import (
    IntegrationCancelRequest,
    IntegrationOrderCreate,
    IntegrationOrderCreated,
    IntegrationOrderStatus,
    IntegrationOrderSummary,
    IntegrationOrderUpdate,
)
from printshop.services.api_metrics import api_metrics, track_call
from printshop.services.errors import TransitionError
from printshop.services.order_service import get_order_by_number, list_orders
from printshop.services.order_transitions import Sequencing, TransitionCoordinator
from printshop.services.status_catalog import get_status_by_name

router: APIRouter = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def _flatten_order(payload: IntegrationOrderCreate) -> dict[str, Any]:
    """Map the storefront payload onto order columns; only the first product is kept."""
    product = payload.products[0]
    address = payload.shipping_address
    contact = payload.additional_info
    designs = product.designs
    mockups = product.mockups
    return {
        "order_number": payload.order_number,
        "title": product.name,
        "order_value": payload.order_value,
        "shipping_cost": payload.shipping_cost,
        "shipping_label": payload.shipping_label,
        "shipping_method": payload.shipping_method,
        "customer_name": payload.customer_name,
        "customer_document": payload.customer_document,
        "customer_email": payload.customer_email,
        "product_name": product.name,
        "sku": product.sku,
        "sku_id": product.sku_id,
        "quantity": product.quantity,
        "product_pdf_url": product.pdf_file,
        "cover_front_design": designs.cover_front if designs else None,
        "cover_back_design": designs.cover_back if designs else None,
        "cover_front_mockup": mockups.cover_front if mockups else None,
        "cover_back_mockup": mockups.cover_back if mockups else None,
        "recipient_name": address.recipient_name,
        "address": address.street,
        "address_number": address.number,
        "address_complement": address.complement,
        "neighborhood": address.neighborhood,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "recipient_phone": address.phone,
        "country": address.country,
        "contact_name": contact.name if contact else None,
        "contact_phone": contact.phone if contact else None,
        "contact_email": contact.email if contact else None,
    }


def _status_name(order: Order) -> str:
    return order.status.name if order.status is not None else "Unknown"


@router.post("/orders", response_model=IntegrationOrderCreated, status_code=status.HTTP_201_CREATED)
def receive_order(
    payload: IntegrationOrderCreate,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
) -> IntegrationOrderCreated:
    with track_call("receive_order"):
        existing = coordinator.db.scalar(select(Order.id).where(Order.order_number == payload.order_number))
        if existing is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order number already received")
        try:
            order = coordinator.create_order(_flatten_order(payload))
        except TransitionError as exc:
            raise http_error(exc) from exc
        logger.info("[INTEGRATION] Received order_number=%s as order %s", payload.order_number, order.id)
        return IntegrationOrderCreated(
            message="Order received",
            order_id=order.id,
            order_number=payload.order_number,
        )


@router.get("/orders")
def list_integration_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    with track_call("list_orders"):
        orders, total = list_orders(db, page=page, limit=limit)
        return {
            "success": True,
            "orders": [
                IntegrationOrderSummary(
                    id=order.id,
                    order_number=order.order_number,
                    status=_status_name(order),
                    customer_name=order.customer_name,
                    order_value=order.order_value,
                    created_at=order.created_at,
                    updated_at=order.updated_at,
                )
                for order in orders
            ],
            "pagination": {"total": total, "page": page, "total_pages": ceil(total / limit), "per_page": limit},
        }


@router.get("/orders/{order_number}/status", response_model=IntegrationOrderStatus)
def get_integration_order_status(order_number: int, db: Session = Depends(get_db)) -> IntegrationOrderStatus:
    with track_call("order_status"):
        try:
            order = get_order_by_number(db, order_number)
        except TransitionError as exc:
            raise http_error(exc) from exc
        return IntegrationOrderStatus(
            order_number=order_number,
            status=_status_name(order),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


@router.post("/orders/{order_number}/cancel")
def cancel_integration_order(
    order_number: int,
    payload: IntegrationCancelRequest,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Cancel through the regular webhook-confirmed transition."""
    with track_call("cancel_order"):
        try:
            order = get_order_by_number(coordinator.db, order_number)
            cancelled = get_status_by_name(coordinator.db, settings.cancelled_status_name)
            order = coordinator.transition_status(
                order.id,
                cancelled.id,
                note=payload.cancellation_reason,
                sequencing=Sequencing.PERSIST_THEN_NOTIFY,
                extra_data={"source": "integration"},
                changes={"cancellation_note": payload.cancellation_reason},
            )
        except TransitionError as exc:
            raise http_error(exc) from exc
        return {
            "success": True,
            "message": "Order cancelled",
            "order_number": order_number,
            "status": _status_name(order),
        }


@router.put("/orders/{order_number}")
def update_integration_order(
    order_number: int,
    payload: IntegrationOrderUpdate,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    with track_call("update_order"):
        fields = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not fields:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updatable fields provided")
        try:
            order = get_order_by_number(coordinator.db, order_number)
            coordinator.update_fields(order.id, fields)
        except TransitionError as exc:
            raise http_error(exc) from exc
        return {
            "success": True,
            "message": "Order updated",
            "order_number": order_number,
            "updated_fields": sorted(fields),
        }


@router.get("/metrics")
def get_metrics() -> dict[str, Any]:
    return {"success": True, "metrics": api_metrics.snapshot()}
