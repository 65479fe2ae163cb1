"""
Audit log API router.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from app.api.middlewares.authentication import CurrentActor
from app.api.payloads.common import APIResponse
from app.api.payloads.logs import AuditLogPage, ClearLogsData
from app.container import ApplicationContainer
from app.controllers.audit.audit_log_writer import AuditLogWriter

DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 50

router = APIRouter()


@router.get("", response_model=APIResponse[AuditLogPage], summary="List audit log entries, newest first")
@inject
async def list_logs(
    actor: CurrentActor,
    page: int = Query(1, description="1-based page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, description="Entries per page, 1 to 50"),
    audit_log_writer: AuditLogWriter = Depends(Provide[ApplicationContainer.controllers.audit_log_writer]),
) -> APIResponse[AuditLogPage]:
    page = max(page, 1)
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return APIResponse(data=await audit_log_writer.list_page(actor.account_id, page, page_size))


@router.delete("", response_model=APIResponse[ClearLogsData], summary="Clear the audit log")
@inject
async def clear_logs(
    actor: CurrentActor,
    audit_log_writer: AuditLogWriter = Depends(Provide[ApplicationContainer.controllers.audit_log_writer]),
) -> APIResponse[ClearLogsData]:
    deleted = await audit_log_writer.clear(actor)
    return APIResponse(message="Logs cleared", data=ClearLogsData(deleted_count=deleted))
