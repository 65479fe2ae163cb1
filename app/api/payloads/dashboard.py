"""
Pydantic models for dashboard endpoints.
"""

from pydantic import BaseModel

from app.api.payloads.logs import AuditLogEntry


class TagUsage(BaseModel):
    tag_id: int
    tag_name: str
    color: str
    count: int


class DashboardData(BaseModel):
    total_emails: int
    total_tags: int
    recent_operations: list[AuditLogEntry]
    emails_by_tag: list[TagUsage]
    operations_by_type: dict[str, int]


class EmailStats(BaseModel):
    total_emails: int


class TagStats(BaseModel):
    total_tags: int
    emails_by_tag: list[TagUsage]


class OperationStats(BaseModel):
    total_operations: int
    operations_by_type: dict[str, int]
