"""
Pydantic models for tag endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.tag import DEFAULT_TAG_COLOR

COLOR_PATTERN = r"^#[0-9A-Fa-f]{3}([0-9A-Fa-f]{3})?$"


class TagSummary(BaseModel):
    """Tag as embedded in credential responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str


class TagCreate(BaseModel):
    """Request model for creating a tag."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    color: str = Field(DEFAULT_TAG_COLOR, pattern=COLOR_PATTERN)


class TagUpdate(BaseModel):
    """Request model for a partial tag update."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    color: str | None = Field(None, pattern=COLOR_PATTERN)


class TagResponse(BaseModel):
    """Tag with the number of credentials it is attached to."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    color: str
    email_count: int = 0
    created_at: datetime
    updated_at: datetime


class BatchTagRequest(BaseModel):
    email_ids: list[int] = Field(..., min_length=1)
    tag_id: int


class BatchTagData(BaseModel):
    tag_id: int
    affected_count: int
