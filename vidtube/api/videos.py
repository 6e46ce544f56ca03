"""Video API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from vidtube.api.dependencies import get_current_user
from vidtube.api.responses import api_response
from vidtube.models.user import User
from vidtube.services.video_service import VideoService

router = APIRouter(prefix="/api/v1/videos", tags=["Videos"])


@router.post("/{video_id}/watch")
async def watch_video(
    video_id: UUID,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Record that the current user watched a video.

    Raises:
        NotFoundError 404: If the video does not exist
    """
    video_service = VideoService()
    views = await video_service.record_view(current_user.id, video_id)
    return api_response(
        status.HTTP_200_OK,
        {"videoId": str(video_id), "views": views},
        "View recorded",
    )
