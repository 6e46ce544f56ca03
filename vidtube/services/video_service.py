"""Video view recording."""

from datetime import datetime, timezone
from uuid import UUID

import structlog

from vidtube.database import get_pool
from vidtube.errors import NotFoundError

logger = structlog.get_logger(__name__)


class VideoService:
    """Records views; the watch history it feeds is read by ChannelService."""

    async def record_view(self, user_id: UUID, video_id: UUID) -> int:
        """Count a view and append the video to the viewer's watch history.

        Both writes share one transaction: either the view is counted and
        the history entry added, or neither.

        Args:
            user_id: Viewer
            video_id: Watched video

        Returns:
            The video's view count after this view

        Raises:
            NotFoundError: If the video or the viewer does not exist
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            async with conn.transaction():
                views = await conn.fetchval(
                    """
                    UPDATE videos
                    SET views = views + 1
                    WHERE id = $1
                    RETURNING views
                    """,
                    video_id,
                )
                if views is None:
                    raise NotFoundError("Video does not exist")

                result = await conn.execute(
                    """
                    UPDATE users
                    SET watch_history = array_append(watch_history, $2), updated_at = $3
                    WHERE id = $1
                    """,
                    user_id,
                    video_id,
                    datetime.now(timezone.utc),
                )
                if result != "UPDATE 1":
                    raise NotFoundError("User does not exist")

        logger.info("video_view_recorded", user_id=str(user_id), video_id=str(video_id))
        return views
