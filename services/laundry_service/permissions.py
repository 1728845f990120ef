"""Role → capability table for staff endpoints."""

from typing import Iterable

from services.laundry_service.models import StaffRoleName

Capability = tuple[str, str]

_ORDER_DESK: set[Capability] = {
    ("orders", "create"),
    ("orders", "read"),
    ("orders", "approve"),
    ("orders", "modify"),
    ("orders", "reject"),
    ("orders", "cancel"),
}
_FLOOR: set[Capability] = {
    ("orders", "read"),
    ("services", "advance"),
    ("handling", "advance"),
}

CAPABILITIES: dict[StaffRoleName, frozenset[Capability]] = {
    StaffRoleName.ADMIN: frozenset(
        _ORDER_DESK
        | _FLOOR
        | {
            ("inventory", "read"),
            ("inventory", "write"),
            ("products", "read"),
            ("products", "write"),
            ("catalog", "read"),
            ("catalog", "write"),
            ("customers", "read"),
            ("customers", "write"),
            ("analytics", "read"),
            ("staff", "read"),
            ("staff", "write"),
            ("deliveries", "read"),
        }
    ),
    StaffRoleName.CASHIER: frozenset(
        _ORDER_DESK
        | _FLOOR
        | {
            ("inventory", "read"),
            ("inventory", "write"),
            ("products", "read"),
            ("catalog", "read"),
            ("customers", "read"),
            ("customers", "write"),
            ("deliveries", "read"),
        }
    ),
    StaffRoleName.ATTENDANT: frozenset(
        _FLOOR | {("products", "read"), ("catalog", "read"), ("customers", "read")}
    ),
    StaffRoleName.RIDER: frozenset(
        {("orders", "read"), ("handling", "advance"), ("deliveries", "read")}
    ),
}


def has_capability(roles: Iterable[StaffRoleName], resource: str, action: str) -> bool:
    return any((resource, action) in CAPABILITIES.get(role, frozenset()) for role in roles)
