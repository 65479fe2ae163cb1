"""
Dashboard API router.
"""

from typing import Any

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from app.api.middlewares.authentication import CurrentActor
from app.api.payloads.common import APIResponse
from app.api.payloads.dashboard import DashboardData
from app.container import ApplicationContainer
from app.controllers.reporting.report_controller import ReportController, StatsType

router = APIRouter()


@router.get("", response_model=APIResponse[DashboardData], summary="Dashboard overview")
@inject
async def get_dashboard(
    actor: CurrentActor,
    report_controller: ReportController = Depends(Provide[ApplicationContainer.controllers.report_controller]),
) -> APIResponse[DashboardData]:
    return APIResponse(data=await report_controller.dashboard(actor.account_id))


@router.get(
    "/stats",
    response_model=APIResponse[dict[str, Any]],
    summary="Statistics by type",
    description="type is one of emails, tags or operations; anything else returns the full overview",
)
@inject
async def get_stats(
    actor: CurrentActor,
    type: str | None = Query(None, example="emails"),
    report_controller: ReportController = Depends(Provide[ApplicationContainer.controllers.report_controller]),
) -> APIResponse[dict[str, Any]]:
    stats = await report_controller.stats(actor.account_id, StatsType.parse(type))
    return APIResponse(data=stats.model_dump(mode="json"))
