"""Read-only views joining users with subscriptions and videos."""

from typing import Optional
from uuid import UUID

import structlog

from vidtube.database import get_pool
from vidtube.errors import NotFoundError, ValidationError
from vidtube.models.user import ChannelProfile, VideoOwner, WatchHistoryEntry

logger = structlog.get_logger(__name__)


class ChannelService:
    """Channel profile and watch history aggregation."""

    async def channel_profile(
        self, username: Optional[str], viewer_id: Optional[UUID] = None
    ) -> ChannelProfile:
        """Load a channel's public profile with subscription counters.

        Args:
            username: Channel owner's username (matched case-insensitively)
            viewer_id: User asking for the profile; None for anonymous viewers

        Returns:
            ChannelProfile with subscribers_count, channels_subscribed_to_count
            and is_subscribed filled in

        Raises:
            ValidationError: If username is blank
            NotFoundError: If no user has that username
        """
        if username is None or not username.strip():
            raise ValidationError("Username is missing")

        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    u.id, u.username, u.fullname, u.email, u.avatar, u.cover_image, u.created_at,
                    (SELECT COUNT(*) FROM subscriptions s
                        WHERE s.channel_id = u.id) AS subscribers_count,
                    (SELECT COUNT(*) FROM subscriptions s
                        WHERE s.subscriber_id = u.id) AS channels_subscribed_to_count,
                    EXISTS (
                        SELECT 1 FROM subscriptions s
                        WHERE s.channel_id = u.id AND s.subscriber_id = $2
                    ) AS is_subscribed
                FROM users u
                WHERE u.username = $1
                """,
                username.strip().lower(),
                viewer_id,
            )

        if row is None:
            raise NotFoundError("Channel does not exist")

        return ChannelProfile(
            id=row["id"],
            username=row["username"],
            fullname=row["fullname"],
            email=row["email"],
            avatar=row["avatar"],
            cover_image=row["cover_image"] or "",
            created_at=row["created_at"],
            subscribers_count=row["subscribers_count"],
            channels_subscribed_to_count=row["channels_subscribed_to_count"],
            is_subscribed=bool(row["is_subscribed"]),
        )

    async def watch_history(self, user_id: UUID) -> list[WatchHistoryEntry]:
        """List the user's watched videos in stored order with owners joined in.

        Ids whose video no longer exists are skipped.

        Raises:
            NotFoundError: If the user does not exist
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            exists = await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM users WHERE id = $1)",
                user_id,
            )
            if not exists:
                raise NotFoundError("User does not exist")

            rows = await conn.fetch(
                """
                SELECT
                    v.id, v.title, v.description, v.video_file, v.thumbnail,
                    v.duration, v.views, v.created_at,
                    o.id AS owner_id,
                    o.username AS owner_username,
                    o.fullname AS owner_fullname,
                    o.avatar AS owner_avatar
                FROM users u
                CROSS JOIN LATERAL unnest(u.watch_history)
                    WITH ORDINALITY AS h(video_id, position)
                JOIN videos v ON v.id = h.video_id
                LEFT JOIN users o ON o.id = v.owner_id
                WHERE u.id = $1
                ORDER BY h.position
                """,
                user_id,
            )

        logger.debug("watch_history_loaded", user_id=str(user_id), count=len(rows))

        return [
            WatchHistoryEntry(
                id=row["id"],
                title=row["title"],
                description=row["description"],
                video_file=row["video_file"],
                thumbnail=row["thumbnail"],
                duration=row["duration"],
                views=row["views"],
                created_at=row["created_at"],
                owner=(
                    VideoOwner(
                        id=row["owner_id"],
                        username=row["owner_username"],
                        fullname=row["owner_fullname"],
                        avatar=row["owner_avatar"],
                    )
                    if row["owner_id"] is not None
                    else None
                ),
            )
            for row in rows
        ]
