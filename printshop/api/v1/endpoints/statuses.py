"""Order status catalog endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from printshop.core.security import get_current_user
from printshop.db.session import get_db
from printshop.models import OrderStatus, User
from printshop.schemas.status import StatusRead
from printshop.services.status_catalog import list_statuses

router: APIRouter = APIRouter()


@router.get("", response_model=list[StatusRead])
def list_order_statuses(
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[OrderStatus]:
    return list_statuses(db, active_only=active_only)
