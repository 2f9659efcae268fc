"""FastAPI dependencies for database sessions and identity-provider authentication."""

from typing import Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError

from .config import settings
from .exceptions import AuthenticationError, AuthorizationError


def _extract_roles(payload: dict) -> list[str]:
    """Collect role names from the token's ``roles``, ``role`` and ``app_metadata`` claims."""
    roles = list(payload.get("roles") or [])
    if payload.get("role"):
        roles.append(payload["role"])
    app_metadata = payload.get("app_metadata") or {}
    roles.extend(app_metadata.get("roles") or [])
    return roles


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> dict:
    """
    Authentication dependency that validates identity-provider Bearer tokens.

    The token is trusted as issued by the external identity provider; only its
    signature, expiry and (optionally) audience are verified here.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        dict: User information from validated token

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    decode_options = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options=decode_options,
        )
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError(detail="Invalid token payload")

    return {
        "user_id": str(user_id),
        "email": payload.get("email"),
        "roles": _extract_roles(payload),
    }


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """Authorization dependency for administrative train operations."""
    if settings.admin_role not in user["roles"]:
        raise AuthorizationError(required_permissions=[settings.admin_role])
    return user


RequiredAuth = Depends(get_current_user)
AdminAuth = Depends(require_admin)
