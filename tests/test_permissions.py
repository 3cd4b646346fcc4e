"""Role capability and user role normalization tests."""

import pytest

from printshop.core.permissions import Capability, Role, capabilities_for, has_capability
from printshop.models.user import normalize_user_role


def test_admin_has_every_capability() -> None:
    assert capabilities_for(Role.ADMIN) == frozenset(Capability)


def test_operator_cannot_delete_or_manage_webhooks_or_users() -> None:
    assert has_capability("OPERATOR", Capability.CHANGE_STATUS)
    assert has_capability("operator", Capability.VIEW_ALL_ORDERS)
    assert not has_capability("OPERATOR", Capability.DELETE_ORDERS)
    assert not has_capability("OPERATOR", Capability.MANAGE_WEBHOOKS)
    assert not has_capability("OPERATOR", Capability.MANAGE_USERS)


def test_customer_is_limited_to_own_orders() -> None:
    assert has_capability(Role.CUSTOMER, Capability.EDIT_ORDERS)
    assert not has_capability(Role.CUSTOMER, Capability.VIEW_ALL_ORDERS)
    assert not has_capability(Role.CUSTOMER, Capability.MANAGE_USERS)


def test_unknown_role_gets_nothing() -> None:
    assert capabilities_for("KITCHEN") == frozenset()
    assert capabilities_for(None) == frozenset()


@pytest.mark.parametrize(("raw", "expected"), [("admin", "ADMIN"), (" Operator ", "OPERATOR"), ("CUSTOMER", "CUSTOMER")])
def test_normalize_user_role(raw: str, expected: str) -> None:
    assert normalize_user_role(raw) == expected


def test_normalize_user_role_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        normalize_user_role("superuser")
