"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from printshop.models import order as _order  # noqa: E402,F401
from printshop.models import order_history as _order_history  # noqa: E402,F401
from printshop.models import status as _status  # noqa: E402,F401
from printshop.models import user as _user  # noqa: E402,F401
from printshop.models import webhook as _webhook  # noqa: E402,F401
