"""
Pydantic models for credential endpoints.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from app.api.payloads.tags import TagSummary


class CredentialCreate(BaseModel):
    """Request model for adding a mailbox credential. ``email`` is accepted as a legacy name for the address."""

    email_address: EmailStr = Field(..., validation_alias=AliasChoices("email_address", "email"))
    password: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    remark: str = ""


class CredentialUpdate(CredentialCreate):
    """Request model for replacing a stored mailbox credential."""


class BatchCredentialCreate(BaseModel):
    """Request model for adding several mailbox credentials at once."""

    emails: list[CredentialCreate]


class CredentialResponse(BaseModel):
    """Stored credential without its secrets."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email_address: str
    remark: str
    tags: list[TagSummary] = Field(default_factory=list)
    last_operation_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CredentialDetail(CredentialResponse):
    """Stored credential including its secrets, only returned to its owner."""

    password: str
    client_id: str
    refresh_token: str


class CredentialListData(BaseModel):
    """Paginated list of credentials."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[CredentialResponse] = Field(..., alias="list")
    total: int
    page: int
    size: int


class BatchCreateData(BaseModel):
    """Outcome of a batch add or file import."""

    success_emails: list[CredentialResponse]
    errors: list[str]
    success_count: int
    error_count: int
    total_count: int | None = None


class BatchDeleteData(BaseModel):
    deleted_count: int


class BatchClearData(BaseModel):
    """Outcome of clearing the inbox of several credentials."""

    success_count: int
    error_count: int
    errors: list[str]


class TagAssignRequest(BaseModel):
    tag_id: int
