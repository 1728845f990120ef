"""Unit tests for the staff capability table and token decoding."""

import time

import pytest
from jose import jwt
from libs.auth.dependencies import decode_token
from libs.common.config import get_settings
from libs.common.errors import Unauthorized
from services.laundry_service.models import StaffRoleName
from services.laundry_service.permissions import has_capability


@pytest.mark.unit
@pytest.mark.parametrize(
    "role, resource, action, allowed",
    [
        (StaffRoleName.CASHIER, "orders", "create", True),
        (StaffRoleName.CASHIER, "analytics", "read", False),
        (StaffRoleName.CASHIER, "products", "write", False),
        (StaffRoleName.ADMIN, "analytics", "read", True),
        (StaffRoleName.ADMIN, "catalog", "write", True),
        (StaffRoleName.ATTENDANT, "services", "advance", True),
        (StaffRoleName.ATTENDANT, "orders", "approve", False),
        (StaffRoleName.RIDER, "handling", "advance", True),
        (StaffRoleName.RIDER, "services", "advance", False),
        (StaffRoleName.RIDER, "inventory", "write", False),
        (StaffRoleName.RIDER, "deliveries", "read", True),
        (StaffRoleName.ATTENDANT, "deliveries", "read", False),
        (StaffRoleName.ADMIN, "staff", "write", True),
        (StaffRoleName.CASHIER, "staff", "write", False),
    ],
)
def test_role_capabilities(role, resource, action, allowed):
    assert has_capability({role}, resource, action) is allowed


@pytest.mark.unit
def test_capabilities_union_across_roles():
    roles = {StaffRoleName.RIDER, StaffRoleName.ATTENDANT}
    assert has_capability(roles, "handling", "advance")
    assert has_capability(roles, "services", "advance")
    assert not has_capability(set(), "orders", "read")


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def _token(secret=None, **claims):
    payload = {"sub": "user-123", "role": "authenticated", "exp": int(time.time()) + 60}
    payload.update(claims)
    return jwt.encode(payload, secret or get_settings().SUPABASE_JWT_SECRET, algorithm="HS256")


@pytest.mark.unit
def test_decode_token_maps_subject():
    user = decode_token(_token(email="ana@example.com", aud="authenticated"))
    assert user.user_id == "user-123"
    assert user.email == "ana@example.com"


@pytest.mark.unit
@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        _token(secret="someone-elses-secret"),
        _token(exp=int(time.time()) - 60),
    ],
)
def test_decode_token_rejects_bad_tokens(token):
    with pytest.raises(Unauthorized):
        decode_token(token)


@pytest.mark.unit
def test_decode_token_requires_subject():
    token = jwt.encode(
        {"role": "authenticated", "exp": int(time.time()) + 60},
        get_settings().SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )
    with pytest.raises(Unauthorized):
        decode_token(token)
