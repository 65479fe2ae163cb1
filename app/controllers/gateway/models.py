from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.api.payloads.messages import CanonicalMessage

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class Mailbox(Enum):
    INBOX = "INBOX"
    JUNK = "Junk"

    @classmethod
    def parse(cls, value: str | None) -> "Mailbox":
        """Map a caller supplied mailbox name, falling back to the inbox for anything unknown."""
        for mailbox in cls:
            if value == mailbox.value:
                return mailbox
        return cls.INBOX


class MailboxAccess(BaseModel):
    """The subset of a stored credential the gateway needs to open a mailbox."""

    model_config = ConfigDict(frozen=True)

    email: str
    client_id: str
    refresh_token: str

    def to_payload(self, mailbox: Mailbox | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
            "email": self.email,
        }
        if mailbox is not None:
            payload["mailbox"] = mailbox.value
        return payload


def parse_timestamp(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class RemoteMessage(BaseModel):
    """One message as the gateway reports it. Every field is optional and loosely typed."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = ""
    subject: str = ""
    sender: str = Field("", alias="send")
    to: str = ""
    html: str = ""
    text: str = ""
    is_read: bool = Field(False, alias="isRead")
    date: str = ""
    received_date_time: str = Field("", alias="receivedDateTime")
    verify_code: str = Field("", alias="verifyCode")

    @field_validator(
        "id", "subject", "sender", "to", "html", "text", "date", "received_date_time", "verify_code", mode="before"
    )
    def coerce_string(cls, value: Any, info: ValidationInfo) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("is_read", mode="before")
    def coerce_bool(cls, value: Any, info: ValidationInfo) -> bool:
        return value if isinstance(value, bool) else False

    def to_canonical(self) -> CanonicalMessage:
        received_at = parse_timestamp(self.received_date_time) or parse_timestamp(self.date) or EPOCH
        return CanonicalMessage(
            id=self.id,
            subject=self.subject,
            from_=self.sender,
            to=self.to,
            body=self.html or self.text,
            is_read=self.is_read,
            received_at=received_at,
            verification_code=self.verify_code or None,
        )
