"""Application models package."""

from printshop.models.order import Order
from printshop.models.order_history import ActionType, AuditTrailImmutable, OrderHistory
from printshop.models.status import OrderStatus
from printshop.models.user import User
from printshop.models.webhook import Webhook

__all__ = ["ActionType", "AuditTrailImmutable", "Order", "OrderHistory", "OrderStatus", "User", "Webhook"]
