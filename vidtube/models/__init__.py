"""Models package exports."""

from vidtube.models.auth import LoginResult, RegisterRequest, TokenPair
from vidtube.models.response import ApiResponse, ErrorResponse
from vidtube.models.user import ChannelProfile, User, VideoOwner, WatchHistoryEntry

__all__ = [
    "ApiResponse",
    "ChannelProfile",
    "ErrorResponse",
    "LoginResult",
    "RegisterRequest",
    "TokenPair",
    "User",
    "VideoOwner",
    "WatchHistoryEntry",
]
