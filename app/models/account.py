from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Account(Base, TimestampMixin):
    """Operator account owning stored credentials and audit entries."""

    __tablename__ = "accounts"

    username: Mapped[str] = mapped_column(sa.String(100), nullable=False, unique=True)
    last_login_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username='{self.username}')>"
