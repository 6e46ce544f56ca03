"""Auth and account request/response models.

Blank-field rules live in the services so that they hold for every caller;
these models only shape the payloads.
"""

from typing import Optional

from vidtube.models.user import CamelModel, User


class RegisterRequest(CamelModel):
    """Registration payload.

    Attributes:
        username: Desired username (stored lowercase)
        email: Contact email (stored lowercase)
        fullname: Display name
        password: Plain-text password (hashed before storage)
        avatar: Asset reference returned by the asset store (required)
        cover_image: Optional asset reference for the channel banner
    """

    username: Optional[str] = None
    email: Optional[str] = None
    fullname: Optional[str] = None
    password: Optional[str] = None
    avatar: Optional[str] = None
    cover_image: Optional[str] = None


class LoginRequest(CamelModel):
    """Login credentials: username or email, plus password."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    """Refresh token sent in the body when the cookie is unavailable."""

    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class UpdateAccountRequest(CamelModel):
    fullname: Optional[str] = None
    email: Optional[str] = None


class UpdateAvatarRequest(CamelModel):
    avatar: Optional[str] = None


class UpdateCoverImageRequest(CamelModel):
    cover_image: Optional[str] = None


class TokenPair(CamelModel):
    """Access/refresh token pair minted together for one user."""

    access_token: str
    refresh_token: str


class LoginResult(CamelModel):
    """Successful login: the public identity and its fresh token pair."""

    user: User
    access_token: str
    refresh_token: str
