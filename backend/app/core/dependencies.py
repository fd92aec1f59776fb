from typing import Optional

from fastapi import Header

from app.core.auth_service import CurrentUser, auth_service
from app.core.exceptions import AuthenticationError


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the token from an 'Authorization: Bearer <token>' header."""
    if not authorization:
        raise AuthenticationError("Authentication required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authentication required")

    return token.strip()


async def get_current_user(authorization: Optional[str] = Header(None)) -> CurrentUser:
    """Resolve the caller's identity through the auth provider."""
    token = get_bearer_token(authorization)
    return await auth_service.get_current_user(token)
