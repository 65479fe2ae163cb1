"""
Pydantic models for audit log endpoints.
"""

from datetime import datetime

from pydantic import BaseModel


class AuditLogEntry(BaseModel):
    id: int
    operation_type: str
    operation_name: str
    target_type: str
    target_id: int | None
    description: str
    ip_address: str
    user_agent: str
    created_at: datetime


class AuditLogPage(BaseModel):
    """Paginated audit log."""

    logs: list[AuditLogEntry]
    total: int
    page: int
    page_size: int
    total_pages: int


class ClearLogsData(BaseModel):
    deleted_count: int
