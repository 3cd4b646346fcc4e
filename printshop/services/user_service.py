"""User service operations."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.models.user import User, normalize_user_role


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.scalar(select(User).where(User.username == username).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def create_user(
    db: Session,
    username: str,
    hashed_password: str,
    role: str,
    email: str | None = None,
    name: str | None = None,
) -> User:
    user = User(
        username=username,
        password_hash=hashed_password,
        role=normalize_user_role(role),
        email=email,
        name=name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def list_users(db: Session, *, include_inactive: bool = True) -> list[User]:
    query = select(User).order_by(User.id.asc())
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    return list(db.scalars(query).all())


def update_user(db: Session, user: User, changes: dict[str, object]) -> User:
    """Apply profile, role or activation changes; ``role`` is normalized first."""
    if "role" in changes:
        changes = {**changes, "role": normalize_user_role(str(changes["role"]))}
    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user
