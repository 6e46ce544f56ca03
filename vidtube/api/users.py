"""User, session and channel API endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from vidtube.api.dependencies import get_current_user
from vidtube.api.responses import api_response
from vidtube.config import Settings, get_settings
from vidtube.errors import NotFoundError
from vidtube.models.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UpdateAccountRequest,
    UpdateAvatarRequest,
    UpdateCoverImageRequest,
)
from vidtube.models.user import User
from vidtube.services.channel_service import ChannelService
from vidtube.services.session_service import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    SessionService,
)
from vidtube.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _set_token_cookies(
    response: JSONResponse,
    session_service: SessionService,
    tokens: TokenPair,
) -> None:
    """Attach both token cookies using the session manager's cookie flags."""
    options = session_service.cookie_options()
    settings = session_service.settings
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **options,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        **options,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Register a new account.

    The avatar (and optional cover image) must already be uploaded to the
    asset store; only their references are sent here.

    Raises:
        ValidationError 400: If a field or the avatar is missing
        ConflictError 409: If the username or email is taken
    """
    session_service = SessionService(settings)
    user = await session_service.register(request)
    return api_response(status.HTTP_201_CREATED, user, "User registered successfully")


@router.post("/login")
async def login(
    request: LoginRequest,
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Login with username or email and password.

    Sets `accessToken` and `refreshToken` cookies and also returns both
    tokens in the body for clients that cannot use cookies.

    Raises:
        ValidationError 400: If no identifier is given
        NotFoundError 404: If no user matches
        AuthError 401: If the password is wrong
    """
    session_service = SessionService(settings)
    result = await session_service.login(
        password=request.password,
        username=request.username,
        email=request.email,
    )

    response = api_response(status.HTTP_200_OK, result, "User logged in successfully")
    _set_token_cookies(
        response,
        session_service,
        TokenPair(access_token=result.access_token, refresh_token=result.refresh_token),
    )
    return response


@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Logout: revoke the stored refresh token and clear both cookies."""
    session_service = SessionService(settings)
    await session_service.logout(current_user.id)

    response = api_response(status.HTTP_200_OK, {}, "User logged out")
    options = session_service.cookie_options()
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)
    return response


@router.post("/refresh-token")
async def refresh_token(
    http_request: Request,
    request: Optional[RefreshRequest] = None,
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Exchange a refresh token for a new token pair.

    The token is read from the `refreshToken` cookie, falling back to the
    request body. The presented token stops working after this call.

    Raises:
        AuthError 401: If the token is missing, invalid, expired or already used
    """
    presented = http_request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not presented and request is not None:
        presented = request.refresh_token

    session_service = SessionService(settings)
    tokens = await session_service.refresh(presented)

    response = api_response(status.HTTP_200_OK, tokens, "Access token refreshed")
    _set_token_cookies(response, session_service, tokens)
    return response


@router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Change the current user's password.

    Raises:
        ValidationError 400: If a password is missing or both are equal
        AuthError 401: If the old password is wrong
    """
    session_service = SessionService(settings)
    await session_service.change_password(
        current_user.id, request.old_password, request.new_password
    )
    return api_response(status.HTTP_200_OK, {}, "Password changed successfully")


@router.get("/current-user")
async def current_user(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Return the authenticated user."""
    return api_response(status.HTTP_200_OK, current_user, "Current user fetched successfully")


@router.patch("/update-account")
async def update_account(
    request: UpdateAccountRequest,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Update full name and email of the current user."""
    user_service = UserService()
    updated = await user_service.update_account(
        current_user.id, request.fullname, request.email
    )
    if updated is None:
        raise NotFoundError("User does not exist")
    return api_response(status.HTTP_200_OK, updated, "Account details updated successfully")


@router.patch("/avatar")
async def update_avatar(
    request: UpdateAvatarRequest,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Point the current user's avatar at a newly uploaded asset."""
    user_service = UserService()
    updated = await user_service.update_avatar(current_user.id, request.avatar)
    if updated is None:
        raise NotFoundError("User does not exist")
    return api_response(status.HTTP_200_OK, updated, "Avatar updated successfully")


@router.patch("/cover-image")
async def update_cover_image(
    request: UpdateCoverImageRequest,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Point the current user's cover image at a newly uploaded asset."""
    user_service = UserService()
    updated = await user_service.update_cover_image(current_user.id, request.cover_image)
    if updated is None:
        raise NotFoundError("User does not exist")
    return api_response(status.HTTP_200_OK, updated, "Cover image updated successfully")


@router.get("/c/{username}")
async def channel_profile(
    username: str,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Channel profile with subscriber counts, as seen by the current user."""
    channel_service = ChannelService()
    profile = await channel_service.channel_profile(username, viewer_id=current_user.id)
    return api_response(status.HTTP_200_OK, profile, "User channel fetched successfully")


@router.get("/history")
async def watch_history(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """The current user's watch history, oldest entry first."""
    channel_service = ChannelService()
    history = await channel_service.watch_history(current_user.id)
    return api_response(status.HTTP_200_OK, history, "Watch history fetched successfully")
