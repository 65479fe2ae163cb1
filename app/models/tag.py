import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

DEFAULT_TAG_COLOR = "#007bff"

credential_tags = sa.Table(
    "credential_tags",
    Base.metadata,
    sa.Column("credential_id", sa.ForeignKey("credentials.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("tag_id", sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
)


class Tag(Base, TimestampMixin):
    """Free-form label that can be attached to stored credentials."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, default="", server_default="")
    color: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default=DEFAULT_TAG_COLOR, server_default=DEFAULT_TAG_COLOR
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
