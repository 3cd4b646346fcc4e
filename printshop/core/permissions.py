"""Role and capability definitions for the API layer."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"
    CUSTOMER = "CUSTOMER"


class Capability(str, Enum):
    VIEW_ALL_ORDERS = "orders.view_all"
    EDIT_ORDERS = "orders.edit"
    DELETE_ORDERS = "orders.delete"
    CHANGE_STATUS = "orders.change_status"
    MANAGE_WEBHOOKS = "webhooks.manage"
    MANAGE_USERS = "users.manage"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.OPERATOR: frozenset(
        {Capability.VIEW_ALL_ORDERS, Capability.EDIT_ORDERS, Capability.CHANGE_STATUS}
    ),
    Role.CUSTOMER: frozenset({Capability.EDIT_ORDERS, Capability.CHANGE_STATUS}),
}


def capabilities_for(role: str | Role | None) -> frozenset[Capability]:
    """Resolve the capability set granted to a role; unknown roles get nothing."""
    value = role.value if isinstance(role, Role) else str(role or "").strip().upper()
    try:
        return ROLE_CAPABILITIES[Role(value)]
    except ValueError:
        return frozenset()


def has_capability(role: str | Role | None, capability: Capability) -> bool:
    return capability in capabilities_for(role)
