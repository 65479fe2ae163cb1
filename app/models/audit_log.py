from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin
from .decorators.types import EnumStringType


class OperationType(Enum):
    login_success = "login_success"
    login_failed = "login_failed"
    logout = "logout"
    clear_all_logs = "clear_all_logs"
    email_added = "email_added"
    email_deleted = "email_deleted"
    email_updated = "email_updated"
    email_validation_failed = "email_validation_failed"
    email_validation_skipped = "email_validation_skipped"
    batch_add_emails = "batch_add_emails"
    batch_delete_emails = "batch_delete_emails"
    get_latest_mail = "get_latest_mail"
    get_latest_mail_failed = "get_latest_mail_failed"
    get_all_mails = "get_all_mails"
    get_all_mails_failed = "get_all_mails_failed"
    clear_inbox = "clear_inbox"
    clear_inbox_failed = "clear_inbox_failed"
    clear_junk = "clear_junk"
    clear_junk_failed = "clear_junk_failed"
    batch_clear_inbox = "batch_clear_inbox"
    tag_created = "tag_created"
    tag_updated = "tag_updated"
    tag_deleted = "tag_deleted"
    email_tagged = "email_tagged"
    email_untagged = "email_untagged"
    batch_tag_emails = "batch_tag_emails"
    batch_untag_emails = "batch_untag_emails"


OPERATION_LABELS: dict[OperationType, str] = {
    OperationType.login_success: "Login succeeded",
    OperationType.login_failed: "Login failed",
    OperationType.logout: "Logout",
    OperationType.clear_all_logs: "Clear all logs",
    OperationType.email_added: "Add mailbox",
    OperationType.email_deleted: "Delete mailbox",
    OperationType.email_updated: "Update mailbox",
    OperationType.email_validation_failed: "Mailbox validation failed",
    OperationType.email_validation_skipped: "Mailbox validation skipped",
    OperationType.batch_add_emails: "Batch add mailboxes",
    OperationType.batch_delete_emails: "Batch delete mailboxes",
    OperationType.get_latest_mail: "Fetch latest mail",
    OperationType.get_latest_mail_failed: "Fetch latest mail failed",
    OperationType.get_all_mails: "Fetch all mails",
    OperationType.get_all_mails_failed: "Fetch all mails failed",
    OperationType.clear_inbox: "Clear inbox",
    OperationType.clear_inbox_failed: "Clear inbox failed",
    OperationType.clear_junk: "Clear junk",
    OperationType.clear_junk_failed: "Clear junk failed",
    OperationType.batch_clear_inbox: "Batch clear inbox",
    OperationType.tag_created: "Create tag",
    OperationType.tag_updated: "Update tag",
    OperationType.tag_deleted: "Delete tag",
    OperationType.email_tagged: "Tag mailbox",
    OperationType.email_untagged: "Untag mailbox",
    OperationType.batch_tag_emails: "Batch tag mailboxes",
    OperationType.batch_untag_emails: "Batch untag mailboxes",
}


def operation_label(operation: OperationType | str) -> str:
    """Display label of an operation, or the raw identifier for kinds without one."""
    if isinstance(operation, OperationType):
        return OPERATION_LABELS.get(operation, operation.value)
    return operation


class TargetType(Enum):
    email = "email"
    tag = "tag"
    auth = "auth"


class AuditLog(Base, CreatedAtMixin):
    """Append-only record of a state-changing action."""

    __tablename__ = "audit_logs"

    account_id: Mapped[int] = mapped_column(
        sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Unknown kinds written by other versions load as plain strings
    operation: Mapped[OperationType] = mapped_column(
        EnumStringType(OperationType, missing_fails_on_load=False), nullable=False, index=True
    )
    target_type: Mapped[TargetType] = mapped_column(
        EnumStringType(TargetType, missing_fails_on_load=False), nullable=False
    )
    target_id: Mapped[int | None] = mapped_column(sa.BigInteger, nullable=True)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    ip_address: Mapped[str] = mapped_column(sa.String(64), nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, operation='{self.operation}', target={self.target_type}:{self.target_id})>"
