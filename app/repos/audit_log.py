from typing import Sequence

import sqlalchemy as sa

from app.models.audit_log import AuditLog, OperationType
from app.repos.base import BaseRepo


class AuditLogRepo(BaseRepo[AuditLog]):
    """Repository for the append-only audit log."""

    def __init__(self) -> None:
        super().__init__(AuditLog)

    async def list_page(self, account_id: int, limit: int, offset: int = 0) -> Sequence[AuditLog]:
        """Entries for the account, newest first."""
        query = (
            self.base_stmt.where(AuditLog.account_id == account_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.execute(query)
        return result.all()

    async def count(self, account_id: int) -> int:
        query = sa.select(sa.func.count(AuditLog.id)).where(AuditLog.account_id == account_id)
        return int(await self._db.session.scalar(query) or 0)

    async def count_by_operation(self, account_id: int) -> dict[OperationType | str, int]:
        query = (
            sa.select(AuditLog.operation, sa.func.count(AuditLog.id))
            .where(AuditLog.account_id == account_id)
            .group_by(AuditLog.operation)
        )
        result = await self._db.session.execute(query)
        return {operation: int(count) for operation, count in result.all()}

    async def clear(self, account_id: int) -> int:
        result = await self._db.session.execute(
            sa.delete(AuditLog)
            .where(AuditLog.account_id == account_id)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    async def append(self, entry: AuditLog) -> None:
        """Insert one entry inside its own savepoint so a failure leaves the caller's transaction intact."""
        async with self._db.session.begin_nested():
            self._db.session.add(entry)
