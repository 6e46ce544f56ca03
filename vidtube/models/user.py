"""User identity and derived channel/history models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(CamelModel):
    """A registered user as exposed outside the credential store.

    Never carries the password hash or the stored refresh token.
    """

    id: UUID
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = ""
    watch_history: list[UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class VideoOwner(CamelModel):
    """Public profile fields of a video's owner."""

    id: UUID
    username: str
    fullname: str
    avatar: str


class WatchHistoryEntry(CamelModel):
    """A watched video with its owner joined in as a single object."""

    id: UUID
    title: str
    description: str
    video_file: str
    thumbnail: str
    duration: float
    views: int
    created_at: datetime
    owner: Optional[VideoOwner] = None


class ChannelProfile(CamelModel):
    """Public channel fields plus subscription-derived counters."""

    id: UUID
    username: str
    fullname: str
    email: str
    avatar: str
    cover_image: str = ""
    created_at: datetime
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False
