"""User administration schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from printshop.core.permissions import Role


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=128)
    password: str = Field(min_length=6)
    role: Role = Role.CUSTOMER
    name: str | None = None
    email: str | None = None


class UserUpdate(BaseModel):
    """Fields an admin may change; users editing themselves only get name, email and password."""

    name: str | None = None
    email: str | None = None
    password: str | None = Field(default=None, min_length=6)
    role: Role | None = None
    is_active: bool | None = None


class UserRead(BaseModel):
    id: int
    username: str
    name: str | None = None
    email: str | None = None
    role: str
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
