"""FastAPI dependencies for authentication."""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vidtube.config import Settings, get_settings
from vidtube.errors import AuthError
from vidtube.models.user import User
from vidtube.services.auth_service import AuthService
from vidtube.services.session_service import ACCESS_TOKEN_COOKIE
from vidtube.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> User:
    """Resolve the access token on the request to a user.

    The `accessToken` cookie wins over an `Authorization: Bearer` header.
    The stored refresh token is not consulted: an access token stays usable
    until it expires, even after logout.

    Args:
        request: Incoming request (cookie source)
        credentials: Bearer token from Authorization header, if any
        settings: Application settings holding the access secret

    Returns:
        Authenticated User model

    Raises:
        AuthError: If no token is present, it fails verification, or its user is gone
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token and credentials is not None:
        token = credentials.credentials

    if not token:
        raise AuthError("Unauthorized request")

    auth_service = AuthService(settings)
    payload = auth_service.decode_access_token(token)
    user_id = auth_service.subject_id(payload)

    user_service = UserService()
    user = await user_service.get_by_id(user_id)

    if user is None:
        raise AuthError("Invalid access token")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user
