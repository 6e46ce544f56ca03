"""Credential store: users table access."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from vidtube.database import get_pool
from vidtube.errors import ConflictError, ValidationError
from vidtube.models.user import User

logger = structlog.get_logger(__name__)

USER_COLUMNS = (
    "id, username, email, fullname, avatar, cover_image, watch_history, created_at, updated_at"
)


def _row_to_user(row) -> User:
    """Build a public User from a users row (secret columns are ignored)."""
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        fullname=row["fullname"],
        avatar=row["avatar"],
        cover_image=row["cover_image"] or "",
        watch_history=list(row["watch_history"] or []),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserService:
    """Service for user persistence.

    Password hashing and token minting happen in AuthService; this class only
    stores what it is given. Usernames and emails are lowercased here so every
    write path agrees with the lowercase unique constraints.
    """

    async def create_user(
        self,
        username: str,
        email: str,
        fullname: str,
        password_hash: str,
        avatar: str,
        cover_image: str = "",
    ) -> User:
        """Insert a new user.

        Args:
            username: Unique username (lowercased before insert)
            email: Unique email (lowercased before insert)
            fullname: Display name
            password_hash: Bcrypt hash of the password
            avatar: Avatar asset reference
            cover_image: Cover image asset reference, empty when absent

        Returns:
            Created User model

        Raises:
            ConflictError: If the username or email is already taken
        """
        user_id = uuid4()
        now = datetime.now(timezone.utc)

        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO users (id, username, email, fullname, avatar, cover_image,
                                       password_hash, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    RETURNING {USER_COLUMNS}
                    """,
                    user_id,
                    username.strip().lower(),
                    email.strip().lower(),
                    fullname.strip(),
                    avatar,
                    cover_image or "",
                    password_hash,
                    now,
                    now,
                )
        except asyncpg.exceptions.UniqueViolationError:
            logger.warning("user_create_conflict", username=username.lower())
            raise ConflictError("User with email or username already exists")

        user = _row_to_user(row)
        logger.info("user_created", user_id=str(user.id), username=user.username)
        return user

    async def exists_by_username_or_email(self, username: str, email: str) -> bool:
        """Check whether a username or email is already registered."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM users WHERE username = $1 OR email = $2
                )
                """,
                username.strip().lower(),
                email.strip().lower(),
            )

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by UUID.

        Args:
            user_id: User UUID

        Returns:
            User model or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            return None

        return _row_to_user(row)

    async def get_credentials(
        self, username: Optional[str], email: Optional[str]
    ) -> Optional[tuple[User, str]]:
        """Find a user by username or email, returning its password hash too.

        Either identifier may be None; a NULL parameter never matches.

        Returns:
            Tuple of (User, password_hash) or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS}, password_hash
                FROM users
                WHERE username = $1 OR email = $2
                LIMIT 1
                """,
                username.strip().lower() if username else None,
                email.strip().lower() if email else None,
            )

        if row is None:
            return None

        return _row_to_user(row), row["password_hash"]

    async def get_with_refresh_token(
        self, user_id: UUID
    ) -> Optional[tuple[User, Optional[str]]]:
        """Get a user together with its currently stored refresh token."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS}, refresh_token FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            return None

        return _row_to_user(row), row["refresh_token"]

    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT password_hash FROM users WHERE id = $1",
                user_id,
            )

    async def set_refresh_token(self, user_id: UUID, refresh_token: str) -> None:
        """Overwrite the stored refresh token, invalidating any previous one."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE users
                SET refresh_token = $2, updated_at = $3
                WHERE id = $1
                """,
                user_id,
                refresh_token,
                datetime.now(timezone.utc),
            )

    async def clear_refresh_token(self, user_id: UUID) -> None:
        """Remove the stored refresh token. Safe to call when already cleared."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE users
                SET refresh_token = NULL, updated_at = $2
                WHERE id = $1
                """,
                user_id,
                datetime.now(timezone.utc),
            )

    async def rotate_refresh_token(
        self, user_id: UUID, presented_token: str, new_token: str
    ) -> bool:
        """Replace the stored refresh token only if it still equals the presented one.

        Returns:
            True if the swap happened, False if the stored token had already changed
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE users
                SET refresh_token = $3, updated_at = $4
                WHERE id = $1 AND refresh_token = $2
                RETURNING id
                """,
                user_id,
                presented_token,
                new_token,
                datetime.now(timezone.utc),
            )

        return row is not None

    async def update_password(self, user_id: UUID, password_hash: str) -> bool:
        """Write a new password hash without touching any other column."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE users
                SET password_hash = $2, updated_at = $3
                WHERE id = $1
                """,
                user_id,
                password_hash,
                datetime.now(timezone.utc),
            )

        return result == "UPDATE 1"

    async def update_account(
        self, user_id: UUID, fullname: Optional[str], email: Optional[str]
    ) -> Optional[User]:
        """Update full name and email.

        Returns:
            Updated User model, or None if user not found

        Raises:
            ValidationError: If either field is blank
            ConflictError: If the email belongs to another user
        """
        if not fullname or not fullname.strip() or not email or not email.strip():
            raise ValidationError("All fields are required")

        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE users
                    SET fullname = $2, email = $3, updated_at = $4
                    WHERE id = $1
                    RETURNING {USER_COLUMNS}
                    """,
                    user_id,
                    fullname.strip(),
                    email.strip().lower(),
                    datetime.now(timezone.utc),
                )
        except asyncpg.exceptions.UniqueViolationError:
            raise ConflictError("Email is already in use")

        if row is None:
            return None

        logger.info("user_account_updated", user_id=str(user_id))
        return _row_to_user(row)

    async def update_avatar(self, user_id: UUID, avatar: Optional[str]) -> Optional[User]:
        """Store a new avatar reference.

        Raises:
            ValidationError: If the reference is blank
        """
        if not avatar or not avatar.strip():
            raise ValidationError("Avatar is required")
        return await self._update_asset(user_id, "avatar", avatar.strip())

    async def update_cover_image(
        self, user_id: UUID, cover_image: Optional[str]
    ) -> Optional[User]:
        """Store a new cover image reference.

        Raises:
            ValidationError: If the reference is blank
        """
        if not cover_image or not cover_image.strip():
            raise ValidationError("Cover image is required")
        return await self._update_asset(user_id, "cover_image", cover_image.strip())

    async def _update_asset(self, user_id: UUID, column: str, reference: str) -> Optional[User]:
        # column comes from the two callers above, never from input
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users
                SET {column} = $2, updated_at = $3
                WHERE id = $1
                RETURNING {USER_COLUMNS}
                """,
                user_id,
                reference,
                datetime.now(timezone.utc),
            )

        if row is None:
            return None

        logger.info("user_asset_updated", user_id=str(user_id), field=column)
        return _row_to_user(row)
