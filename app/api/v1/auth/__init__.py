"""
Auth API router - exchanges the operator secret for a session token.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Request

from app.api.middlewares.authentication import CurrentActor
from app.api.payloads.auth import LoginData, LoginRequest
from app.api.payloads.common import APIResponse
from app.api.utils.errors import error_responses
from app.api.utils.request_context import client_ip, user_agent
from app.container import ApplicationContainer
from app.controllers.auth.auth_controller import AuthController

router = APIRouter()


@router.post(
    "/login",
    response_model=APIResponse[LoginData],
    responses=error_responses(401),
    summary="Log in",
    description="Exchanges the shared AUTH_TOKEN for a signed session token",
)
@inject
async def login(
    payload: LoginRequest,
    request: Request,
    auth_controller: AuthController = Depends(Provide[ApplicationContainer.controllers.auth_controller]),
) -> APIResponse[LoginData]:
    data = await auth_controller.login(payload.auth_token, client_ip(request), user_agent(request))
    return APIResponse(message="Login successful", data=data)


@router.post("/logout", response_model=APIResponse[None], responses=error_responses(401), summary="Log out")
@inject
async def logout(
    actor: CurrentActor,
    auth_controller: AuthController = Depends(Provide[ApplicationContainer.controllers.auth_controller]),
) -> APIResponse[None]:
    await auth_controller.logout(actor)
    return APIResponse(message="Logout successful")
