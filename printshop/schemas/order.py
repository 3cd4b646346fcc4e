"""Order API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from printshop.models.order_history import ActionType
from printshop.schemas.status import StatusSummary


class OrderFields(BaseModel):
    """Editable order attributes shared by create and update payloads."""

    title: str | None = None
    description: str | None = None
    order_number: int | None = None
    order_value: Decimal | None = None
    shipping_cost: Decimal | None = None
    shipping_label: str | None = None
    shipping_method: int | None = None
    customer_name: str | None = None
    customer_document: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    recipient_name: str | None = None
    address: str | None = None
    address_number: str | None = None
    address_complement: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = Field(default=None, max_length=2)
    postal_code: str | None = None
    recipient_phone: str | None = None
    country: str | None = None
    product_name: str | None = None
    sku: str | None = None
    sku_id: int | None = None
    quantity: int | None = Field(default=None, ge=1)


class OrderCreate(OrderFields):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)


class OrderUpdate(OrderFields):
    """Field edits plus an optional status change."""

    status_id: int | None = None
    note: str | None = None


class StatusChangeRequest(BaseModel):
    status_id: int
    note: str | None = None


class OrderRead(BaseModel):
    id: int
    order_number: int | None = None
    title: str | None = None
    description: str | None = None
    order_value: Decimal
    shipping_cost: Decimal
    customer_name: str | None = None
    customer_email: str | None = None
    product_name: str | None = None
    sku: str | None = None
    quantity: int | None = None
    city: str | None = None
    state: str | None = None
    user_id: int | None = None
    status_id: int
    status: StatusSummary | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    total_pages: int
    total: int
    per_page: int


class OrderPage(BaseModel):
    orders: list[OrderRead]
    pagination: Pagination


class HistoryRead(BaseModel):
    id: int
    order_id: int
    action_type: ActionType
    previous_status: StatusSummary | None = None
    new_status: StatusSummary
    notes: str | None = None
    extra_data: dict[str, Any] | None = None
    actor_id: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BulkStatusRequest(BaseModel):
    order_ids: list[int] = Field(min_length=1)
    status_id: int


class BulkStatusResponse(BaseModel):
    results: list[dict[str, Any]]
    total_processed: int
    successes: int
    failures: int
    errors: list[dict[str, Any]] | None = None
