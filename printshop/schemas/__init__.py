"""Schema exports."""

from printshop.schemas.auth import AuthUserResponse, LoginRequest, TokenResponse
from printshop.schemas.order import (
    BulkStatusRequest,
    BulkStatusResponse,
    HistoryRead,
    OrderCreate,
    OrderPage,
    OrderRead,
    OrderUpdate,
    StatusChangeRequest,
)
from printshop.schemas.status import StatusRead, StatusSummary
from printshop.schemas.user import UserCreate, UserRead, UserUpdate
from printshop.schemas.webhook import WebhookCreate, WebhookRead, WebhookUpdate

__all__ = [
    "AuthUserResponse",
    "LoginRequest",
    "TokenResponse",
    "BulkStatusRequest",
    "BulkStatusResponse",
    "HistoryRead",
    "OrderCreate",
    "OrderPage",
    "OrderRead",
    "OrderUpdate",
    "StatusChangeRequest",
    "StatusRead",
    "StatusSummary",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "WebhookCreate",
    "WebhookRead",
    "WebhookUpdate",
]
