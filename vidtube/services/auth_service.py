"""Token issuing and password hashing.

Access and refresh tokens are both HS256 JWTs carrying the user id in `sub`,
signed with separate secrets and given separate lifetimes. Nothing here
touches the database: persisting the refresh token is the session layer's job.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import bcrypt
import jwt
import structlog

from vidtube.config import Settings
from vidtube.errors import AuthError
from vidtube.models.auth import TokenPair
from vidtube.models.user import User

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt input limit; longer passwords are truncated or rejected depending on version
MAX_PASSWORD_BYTES = 72


class AuthService:
    """Stateless token issuer and password hasher bound to one Settings."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @staticmethod
    def password_fits(password: str) -> bool:
        """True if bcrypt can hash the password without truncating it."""
        return len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against

        Returns:
            True if the password matches, False otherwise
        """
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    def create_access_token(self, user: User) -> str:
        """Create a signed, short-lived access token for a user.

        Args:
            user: Identity the token is issued to

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "fullname": user.fullname,
            "type": ACCESS_TOKEN_TYPE,
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.access_token_expire_minutes),
        }
        return jwt.encode(
            payload, self.settings.access_token_secret, algorithm=JWT_ALGORITHM
        )

    def create_refresh_token(self, user_id: UUID) -> str:
        """Create a signed, long-lived refresh token for a user id.

        The random `jti` keeps two tokens minted within the same second
        distinct, which rotation depends on.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + timedelta(days=self.settings.refresh_token_expire_days),
        }
        return jwt.encode(
            payload, self.settings.refresh_token_secret, algorithm=JWT_ALGORITHM
        )

    def issue_token_pair(self, user: User) -> TokenPair:
        """Mint a fresh access/refresh pair for a user."""
        pair = TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user.id),
        )
        logger.debug(
            "token_pair_issued",
            user_id=str(user.id),
            access_expires_minutes=self.settings.access_token_expire_minutes,
            refresh_expires_days=self.settings.refresh_token_expire_days,
        )
        return pair

    def decode_access_token(self, token: str) -> dict:
        """Decode and validate an access token.

        Raises:
            AuthError: If the token is expired, tampered, malformed or lacks a subject
        """
        return self._decode(token, self.settings.access_token_secret, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> dict:
        """Decode and validate a refresh token.

        Raises:
            AuthError: If the token is expired, tampered, malformed or lacks a subject
        """
        return self._decode(token, self.settings.refresh_token_secret, REFRESH_TOKEN_TYPE)

    def _decode(self, token: str, secret: str, token_type: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthError(f"{token_type.capitalize()} token has expired")
        except jwt.InvalidTokenError as e:
            logger.info("token_rejected", kind=token_type, reason=str(e))
            raise AuthError(f"Invalid {token_type} token")

        if payload.get("type") != token_type:
            raise AuthError(f"Invalid {token_type} token")

        return payload

    @staticmethod
    def subject_id(payload: dict) -> UUID:
        """Extract the user id from a decoded payload.

        Raises:
            AuthError: If `sub` is not a UUID
        """
        try:
            return UUID(str(payload.get("sub")))
        except ValueError:
            raise AuthError("Invalid token payload")
