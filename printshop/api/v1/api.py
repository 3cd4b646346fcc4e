"""API v1 router composition."""

from fastapi import APIRouter

from printshop.api.v1.endpoints import auth, integration, orders, statuses, users, webhooks

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(statuses.router, prefix="/statuses", tags=["statuses"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(integration.router, prefix="/integration", tags=["integration"])
