"""
Content schemas (Pydantic models for request/response).

Request bodies carry type-specific attributes as a free-form ``content``
object: which keys are allowed depends on the content type and is decided
by the content service, which rejects unknown keys instead of dropping
them.

Example create request:
    POST /api/v1/contents
    {
        "type": "Ticker",
        "content": {"name": "Welcome", "duration": 10, "data": "Hello lobby!"},
        "feed_ids": [3, 7]
    }

Media uploads go inside ``content``:
    "media": [{"file_name": "logo.png", "file_type": "image/png", "file_data": "<base64>"}]
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from feedboard.models.content import ModerationState


# ================================
# Request Schemas
# ================================

class ContentCreate(BaseModel):
    type: Optional[str] = Field(
        None,
        description="Content type name; the default upload type when omitted or unknown",
        examples=["Ticker", "rss-feed"]
    )
    content: dict[str, Any] = Field(
        default_factory=dict,
        description="Attributes accepted by the content type"
    )
    feed_ids: list[int] = Field(
        default_factory=list,
        description="Feeds to submit the content to"
    )


class ContentUpdate(BaseModel):
    content: dict[str, Any] = Field(
        default_factory=dict,
        description="name, duration, start_time and end_time (plus type-specific update fields)"
    )
    feed_ids: list[int] = Field(
        default_factory=list,
        description="Exact set of feeds the content should be on; omitted feeds are dropped"
    )


# ================================
# Response Schemas
# ================================

class MediaResponse(BaseModel):
    id: Optional[int] = None
    key: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionResponse(BaseModel):
    """
    A content item's entry in one feed.

    Example:
        {"id": 5, "feed_id": 7, "duration": 8, "moderation_state": "approved", "moderator_id": 2}
    """
    id: Optional[int] = None
    feed_id: int
    duration: int
    moderation_state: ModerationState
    moderator_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class FeedSummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_submittable: bool

    model_config = ConfigDict(from_attributes=True)


class ContentResponse(BaseModel):
    """Full attribute set of a content item."""
    id: Optional[int] = Field(None, description="Content ID (null before it is saved)")
    type_name: str
    name: Optional[str] = None
    user_id: Optional[int] = None
    duration: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    data: Optional[str] = None
    config: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    media: list[MediaResponse] = Field(default_factory=list)
    submissions: list[SubmissionResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ContentListResponse(BaseModel):
    items: list[ContentResponse]
    total: int = Field(..., description="Visible content matching the filters")
    offset: int
    limit: int


class ContentFormResponse(BaseModel):
    """What a "new" or "edit" form needs: the content and where it may go."""
    content: ContentResponse
    type_name: str
    display_name: str
    accepted_fields: list[str]
    feeds: list[FeedSummary]


class ContentCreatedResponse(BaseModel):
    content: ContentResponse
    notice: str


class ContentUpdatedResponse(BaseModel):
    content: ContentResponse
    notice: str


class ValidationErrorResponse(BaseModel):
    """
    422 body: field errors plus what the user submitted, so the form can be
    shown again with their input.
    """
    errors: dict[str, list[str]]
    content: Optional[ContentResponse] = None
    feeds: list[FeedSummary] = Field(default_factory=list)


class NoticeResponse(BaseModel):
    notice: str
