"""Session lifecycle: register, login, logout, refresh and password change.

The users table holds at most one refresh token per user. Login overwrites it,
logout clears it and every successful refresh swaps it, so a refresh token
stops working as soon as a newer one has been issued.
"""

import secrets
from typing import Optional
from uuid import UUID

import structlog

from vidtube.config import Settings
from vidtube.errors import AuthError, ConflictError, NotFoundError, ValidationError
from vidtube.models.auth import LoginResult, RegisterRequest, TokenPair
from vidtube.models.user import User
from vidtube.services.auth_service import MAX_PASSWORD_BYTES, AuthService
from vidtube.services.user_service import UserService

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class SessionService:
    """Orchestrates the credential store and the token issuer."""

    def __init__(self, settings: Settings, user_service: Optional[UserService] = None):
        self.settings = settings
        self.auth_service = AuthService(settings)
        self.user_service = user_service or UserService()

    async def register(self, candidate: RegisterRequest) -> User:
        """Create a new account.

        Args:
            candidate: Registration payload with an avatar reference already uploaded

        Returns:
            The public identity of the new user

        Raises:
            ValidationError: If a required field or the avatar is missing, or the
                password is longer than bcrypt accepts
            ConflictError: If the username or email is already taken
        """
        required = [candidate.username, candidate.email, candidate.fullname, candidate.password]
        if any(_blank(field) for field in required):
            raise ValidationError("All fields are required")

        if not self.auth_service.password_fits(candidate.password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        if _blank(candidate.avatar):
            raise ValidationError("Avatar is required")

        if await self.user_service.exists_by_username_or_email(
            candidate.username, candidate.email
        ):
            raise ConflictError("User with email or username already exists")

        # A concurrent registration can still win the race; create_user turns
        # the unique-constraint violation into ConflictError.
        user = await self.user_service.create_user(
            username=candidate.username,
            email=candidate.email,
            fullname=candidate.fullname,
            password_hash=self.auth_service.hash_password(candidate.password),
            avatar=candidate.avatar.strip(),
            cover_image=(candidate.cover_image or "").strip(),
        )

        logger.info("user_registered", user_id=str(user.id), username=user.username)
        return user

    async def login(
        self,
        password: Optional[str],
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> LoginResult:
        """Check credentials and start a new session.

        Raises:
            ValidationError: If no identifier or no password is given
            NotFoundError: If no user matches the identifier
            AuthError: If the password is wrong
        """
        if _blank(username) and _blank(email):
            raise ValidationError("Username or email is required")
        if _blank(password):
            raise ValidationError("Password is required")

        result = await self.user_service.get_credentials(
            None if _blank(username) else username,
            None if _blank(email) else email,
        )
        if result is None:
            raise NotFoundError("User does not exist")

        user, password_hash = result

        accepted = self.auth_service.password_fits(password) and (
            self.auth_service.verify_password(password, password_hash)
        )
        if not accepted:
            logger.info("login_rejected", user_id=str(user.id))
            raise AuthError("Invalid user credentials")

        pair = self.auth_service.issue_token_pair(user)
        await self.user_service.set_refresh_token(user.id, pair.refresh_token)

        logger.info("user_logged_in", user_id=str(user.id), username=user.username)
        return LoginResult(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    async def logout(self, user_id: UUID) -> None:
        """End the session by dropping the stored refresh token."""
        await self.user_service.clear_refresh_token(user_id)
        logger.info("user_logged_out", user_id=str(user_id))

    async def refresh(self, presented_token: Optional[str]) -> TokenPair:
        """Exchange a refresh token for a new pair, rotating the stored token.

        Raises:
            AuthError: If the token is missing, invalid, expired, belongs to no
                user, or is not the user's current refresh token
        """
        if _blank(presented_token):
            raise AuthError("Unauthorized request")

        payload = self.auth_service.decode_refresh_token(presented_token)
        user_id = self.auth_service.subject_id(payload)

        result = await self.user_service.get_with_refresh_token(user_id)
        if result is None:
            raise AuthError("Invalid refresh token")

        user, stored_token = result

        if stored_token is None or not secrets.compare_digest(
            presented_token.encode("utf-8"), stored_token.encode("utf-8")
        ):
            logger.warning("refresh_token_reuse_detected", user_id=str(user_id))
            raise AuthError("Refresh token is expired or used")

        pair = self.auth_service.issue_token_pair(user)

        swapped = await self.user_service.rotate_refresh_token(
            user_id, presented_token, pair.refresh_token
        )
        if not swapped:
            logger.warning("refresh_token_rotation_lost", user_id=str(user_id))
            raise AuthError("Refresh token is expired or used")

        logger.info("refresh_token_rotated", user_id=str(user_id))
        return pair

    async def change_password(
        self,
        user_id: UUID,
        old_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """Replace the user's password after checking the current one.

        Raises:
            ValidationError: If either password is missing, they are equal, or the
                new one is longer than bcrypt accepts
            NotFoundError: If the user no longer exists
            AuthError: If the old password is wrong
        """
        if _blank(old_password) or _blank(new_password):
            raise ValidationError("Old and new password are required")
        if old_password == new_password:
            raise ValidationError("New password must differ from the old password")

        if not self.auth_service.password_fits(new_password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        password_hash = await self.user_service.get_password_hash(user_id)
        if password_hash is None:
            raise NotFoundError("User does not exist")

        old_matches = self.auth_service.password_fits(old_password) and (
            self.auth_service.verify_password(old_password, password_hash)
        )
        if not old_matches:
            raise AuthError("Invalid old password")

        await self.user_service.update_password(
            user_id, self.auth_service.hash_password(new_password)
        )
        logger.info("password_changed", user_id=str(user_id))

    def cookie_options(self) -> dict:
        """Flags for both token cookies; the HTTP layer applies them."""
        return {
            "httponly": True,
            "secure": self.settings.cookie_secure,
            "samesite": self.settings.cookie_samesite,
            "path": "/",
        }
