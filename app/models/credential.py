from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import UniqueConstraint

from .base import Base, TimestampMixin
from .decorators.types import EncryptedStringType
from .tag import credential_tags

if TYPE_CHECKING:
    from .tag import Tag


class Credential(Base, TimestampMixin):
    """Mailbox credentials used to talk to the remote mail gateway."""

    __tablename__ = "credentials"

    account_id: Mapped[int] = mapped_column(
        sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email_address: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    password: Mapped[str] = mapped_column(EncryptedStringType(), nullable=False, comment="Encrypted password")
    client_id: Mapped[str] = mapped_column(EncryptedStringType(), nullable=False, comment="Encrypted client id")
    refresh_token: Mapped[str] = mapped_column(
        EncryptedStringType(), nullable=False, comment="Encrypted refresh token"
    )
    remark: Mapped[str] = mapped_column(sa.Text, nullable=False, default="", server_default="")
    last_operation_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    tags: Mapped[list["Tag"]] = relationship(
        "Tag", secondary=credential_tags, lazy="selectin", order_by="Tag.id", passive_deletes=True
    )

    __table_args__ = (UniqueConstraint("account_id", "email_address", name="uq_credential_account_id_email"),)

    def __repr__(self) -> str:
        return f"<Credential(id={self.id}, email_address='{self.email_address}')>"
