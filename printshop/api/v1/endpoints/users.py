"""User administration endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from printshop.core.permissions import Capability, Role, has_capability
from printshop.core.security import get_current_user, get_password_hash, require_capability
from printshop.db.session import get_db
from printshop.models import User
from printshop.schemas.user import UserCreate, UserRead, UserUpdate
from printshop.services.user_service import (
    create_user,
    get_user_by_id,
    get_user_by_username,
    list_users,
    update_user,
)

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)

require_user_admin = require_capability(Capability.MANAGE_USERS)
SELF_EDITABLE_FIELDS: frozenset[str] = frozenset({"name", "email", "password"})


def _get_user(db: Session, user_id: int) -> User:
    user = get_user_by_id(db=db, user_id=user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("", response_model=list[UserRead])
def list_all_users(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    _: User = Depends(require_user_admin),
) -> list[User]:
    return list_users(db, include_inactive=include_inactive)


@router.get("/roles")
def list_roles(_: User = Depends(require_user_admin)) -> dict[str, list[str]]:
    return {"roles": [role.value for role in Role]}


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    """Admins read any account; everyone else only their own."""
    if current_user.id != user_id and not has_capability(current_user.role, Capability.MANAGE_USERS):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return _get_user(db, user_id)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_admin),
) -> User:
    username = payload.username.strip()
    if get_user_by_username(db=db, username=username) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")
    user = create_user(
        db=db,
        username=username,
        hashed_password=get_password_hash(payload.password),
        role=payload.role.value,
        email=payload.email,
        name=payload.name,
    )
    logger.info("[USERS] Account %s (%s) created by user_id=%s", user.username, user.role, current_user.id)
    return user


@router.put("/{user_id}", response_model=UserRead)
def update_account(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    is_admin = has_capability(current_user.role, Capability.MANAGE_USERS)
    if current_user.id != user_id and not is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not is_admin and set(changes) - SELF_EDITABLE_FIELDS:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change role or status")
    if current_user.id == user_id and changes.get("is_active") is False:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")

    if "password" in changes:
        changes["password_hash"] = get_password_hash(changes.pop("password"))
    if "role" in changes:
        changes["role"] = changes["role"].value
    return update_user(db, _get_user(db, user_id), changes)


@router.delete("/{user_id}")
def deactivate_account(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_admin),
) -> dict[str, str]:
    """Accounts are deactivated, never removed, so history actors stay resolvable."""
    if current_user.id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")
    update_user(db, _get_user(db, user_id), {"is_active": False})
    logger.info("[USERS] Account %s deactivated by user_id=%s", user_id, current_user.id)
    return {"message": "User deactivated"}
