"""
Pydantic models for messages retrieved through the mail gateway.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CanonicalMessage(BaseModel):
    """Normalized representation of one retrieved mail."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    subject: str
    from_: str = Field(..., alias="from")
    to: str
    body: str
    is_read: bool
    received_at: datetime
    verification_code: str | None = None


class MessageListData(BaseModel):
    """Response data for fetching every message of a mailbox."""

    email_id: int
    mailbox: str
    messages: list[CanonicalMessage]
    total: int


class MailboxClearedData(BaseModel):
    """Response data for clearing a mailbox."""

    email_id: int
    mailbox: str
    message: str = ""
