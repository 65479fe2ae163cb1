from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.utils.request_context import client_ip, user_agent
from app.container import ApplicationContainer
from app.controllers.audit.audit_log_writer import Actor
from app.controllers.auth.auth_controller import AuthController
from app.exceptions import AuthError
from app.models.account import Account

# Missing headers are reported through AuthError so every 401 uses the same envelope
security = HTTPBearer(auto_error=False)


@inject
async def get_current_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_controller: AuthController = Depends(Provide[ApplicationContainer.controllers.auth_controller]),
) -> Account:
    """
    FastAPI dependency resolving the session token in the Authorization header to its account.

    Raises:
        AuthError: If the header is missing or the token is invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Missing bearer token")

    return await auth_controller.authenticate(credentials.credentials)


async def get_actor(request: Request, account: Annotated[Account, Depends(get_current_account)]) -> Actor:
    """The authenticated account together with the caller's address and user agent, for auditing."""
    return Actor(account_id=account.id, ip_address=client_ip(request), user_agent=user_agent(request))


CurrentActor = Annotated[Actor, Depends(get_actor)]
