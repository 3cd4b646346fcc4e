"""Schemas for the external storefront integration API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class IntegrationDesigns(BaseModel):
    cover_front: str | None = None
    cover_back: str | None = None


class IntegrationProduct(BaseModel):
    name: str
    sku: str | None = None
    sku_id: int | None = None
    quantity: int = Field(default=1, ge=1)
    pdf_file: str | None = None
    designs: IntegrationDesigns | None = None
    mockups: IntegrationDesigns | None = None


class IntegrationAddress(BaseModel):
    recipient_name: str = Field(min_length=1)
    street: str = Field(min_length=1)
    number: str = Field(min_length=1)
    complement: str | None = None
    neighborhood: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=2)
    postal_code: str = Field(min_length=1, max_length=9)
    phone: str | None = None
    country: str = "Brasil"


class IntegrationContact(BaseModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None


class IntegrationOrderCreate(BaseModel):
    order_number: int
    customer_name: str = Field(min_length=1)
    customer_email: str = Field(min_length=1)
    customer_document: str | None = None
    order_value: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    shipping_label: str | None = None
    shipping_method: int | None = None
    products: list[IntegrationProduct] = Field(min_length=1)
    shipping_address: IntegrationAddress
    additional_info: IntegrationContact | None = None


class IntegrationOrderCreated(BaseModel):
    success: bool = True
    message: str
    order_id: int
    order_number: int


class IntegrationOrderSummary(BaseModel):
    id: int
    order_number: int | None
    status: str
    customer_name: str | None
    order_value: Decimal
    created_at: datetime
    updated_at: datetime


class IntegrationOrderStatus(BaseModel):
    success: bool = True
    order_number: int
    status: str
    created_at: datetime
    updated_at: datetime


class IntegrationCancelRequest(BaseModel):
    cancellation_reason: str = Field(min_length=1)


class IntegrationOrderUpdate(BaseModel):
    """Shipping and contact fields an external system may still change."""

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
    shipping_label: str | None = None
    shipping_method: int | None = None
