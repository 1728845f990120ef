from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.errors import Unauthorized

security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> AuthUser:
    """Decode a Supabase HS256 access token into an ``AuthUser``."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            # Supabase audiences vary between anon and authenticated sessions
            options={"verify_aud": False},
        )
        return AuthUser(**payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Could not validate credentials")


async def get_current_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthUser:
    """
    Validate the bearer token and return the authenticated user.
    """
    if token is None:
        raise Unauthorized("Missing bearer token")

    user = decode_token(token.credentials)
    request.state.auth_user = user
    return user
