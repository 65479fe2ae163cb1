import logging
import math
from dataclasses import dataclass

from app.api.payloads.logs import AuditLogEntry, AuditLogPage
from app.models.audit_log import AuditLog, OperationType, TargetType, operation_label
from app.repos.audit_log import AuditLogRepo


@dataclass(frozen=True)
class Actor:
    """Who performed an action, and from where."""

    account_id: int
    ip_address: str = ""
    user_agent: str = ""


def to_entry(log: AuditLog) -> AuditLogEntry:
    operation = log.operation.value if isinstance(log.operation, OperationType) else str(log.operation)
    target_type = log.target_type.value if isinstance(log.target_type, TargetType) else str(log.target_type)
    return AuditLogEntry(
        id=log.id,
        operation_type=operation,
        operation_name=operation_label(log.operation),
        target_type=target_type,
        target_id=log.target_id,
        description=log.description,
        ip_address=log.ip_address,
        user_agent=log.user_agent,
        created_at=log.created_at,
    )


class AuditLogWriter:
    """Append-only audit trail. Writing is best effort and never fails the surrounding operation."""

    def __init__(self, audit_log_repo: AuditLogRepo) -> None:
        self._logger = logging.getLogger(__name__)
        self._audit_log_repo = audit_log_repo

    async def record(
        self,
        actor: Actor,
        operation: OperationType,
        target_type: TargetType,
        target_id: int | None = None,
        description: str = "",
    ) -> None:
        entry = AuditLog(
            account_id=actor.account_id,
            operation=operation,
            target_type=target_type,
            target_id=target_id,
            description=description,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
        try:
            await self._audit_log_repo.append(entry)
        except Exception as e:
            self._logger.warning(f"Failed to write audit entry {operation.value} for account {actor.account_id}: {e}")

    async def list_page(self, account_id: int, page: int, page_size: int) -> AuditLogPage:
        total = await self._audit_log_repo.count(account_id)
        logs = await self._audit_log_repo.list_page(account_id, limit=page_size, offset=(page - 1) * page_size)
        return AuditLogPage(
            logs=[to_entry(log) for log in logs],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    async def clear(self, actor: Actor) -> int:
        """Delete every entry of the account, then record that the log was cleared."""
        deleted = await self._audit_log_repo.clear(actor.account_id)
        self._logger.info(f"Cleared {deleted} audit entries for account {actor.account_id}")
        await self.record(
            actor, OperationType.clear_all_logs, TargetType.auth, description=f"Cleared {deleted} audit entries"
        )
        return deleted
