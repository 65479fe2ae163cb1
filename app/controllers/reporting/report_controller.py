import logging
from enum import Enum

from app.api.payloads.dashboard import DashboardData, EmailStats, OperationStats, TagStats, TagUsage
from app.controllers.audit.audit_log_writer import to_entry
from app.models.audit_log import OperationType, operation_label
from app.repos.audit_log import AuditLogRepo
from app.repos.credential import CredentialRepo
from app.repos.tag import TagRepo

RECENT_OPERATIONS_LIMIT = 5
DASHBOARD_TAG_LIMIT = 5


class StatsType(Enum):
    emails = "emails"
    tags = "tags"
    operations = "operations"
    all = "all"

    @classmethod
    def parse(cls, value: str | None) -> "StatsType":
        try:
            return cls(value)
        except ValueError:
            return cls.all


class ReportController:
    """Dashboard aggregates, computed on every call."""

    def __init__(self, credential_repo: CredentialRepo, tag_repo: TagRepo, audit_log_repo: AuditLogRepo) -> None:
        self._logger = logging.getLogger(__name__)
        self._credential_repo = credential_repo
        self._tag_repo = tag_repo
        self._audit_log_repo = audit_log_repo

    async def dashboard(self, account_id: int) -> DashboardData:
        recent = await self._audit_log_repo.list_page(account_id, limit=RECENT_OPERATIONS_LIMIT)
        return DashboardData(
            total_emails=await self._credential_repo.count_for_account(account_id),
            total_tags=await self._tag_repo.count(),
            recent_operations=[to_entry(log) for log in recent],
            emails_by_tag=await self._emails_by_tag(account_id),
            operations_by_type=await self._operations_by_type(account_id),
        )

    async def stats(
        self, account_id: int, stats_type: StatsType
    ) -> EmailStats | TagStats | OperationStats | DashboardData:
        if stats_type is StatsType.emails:
            return EmailStats(total_emails=await self._credential_repo.count_for_account(account_id))
        if stats_type is StatsType.tags:
            return TagStats(
                total_tags=await self._tag_repo.count(), emails_by_tag=await self._emails_by_tag(account_id)
            )
        if stats_type is StatsType.operations:
            return OperationStats(
                total_operations=await self._audit_log_repo.count(account_id),
                operations_by_type=await self._operations_by_type(account_id),
            )
        return await self.dashboard(account_id)

    async def _emails_by_tag(self, account_id: int) -> list[TagUsage]:
        tags = await self._tag_repo.list_newest(DASHBOARD_TAG_LIMIT)
        counts = await self._tag_repo.credential_counts([tag.id for tag in tags], account_id=account_id)
        return [TagUsage(tag_id=tag.id, tag_name=tag.name, color=tag.color, count=counts[tag.id]) for tag in tags]

    async def _operations_by_type(self, account_id: int) -> dict[str, int]:
        counts: dict[str, int] = {}
        for operation, count in (await self._audit_log_repo.count_by_operation(account_id)).items():
            label = operation_label(operation) if isinstance(operation, OperationType) else str(operation)
            counts[label] = counts.get(label, 0) + count
        return counts
