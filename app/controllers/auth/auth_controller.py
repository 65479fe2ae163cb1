import logging
import secrets
from datetime import UTC, datetime, timedelta

import jwt

from app.api.payloads.auth import LoginData, OperatorInfo
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.exceptions import AuthError
from app.models.account import Account
from app.models.audit_log import OperationType, TargetType
from app.repos.account import AccountRepo
from settings import settings

JWT_ALGORITHM = "HS256"


class AuthController:
    """
    Exchanges the shared operator secret for a signed session token.

    The deployment is single tenant: every successful login acts as the one operator account.
    """

    def __init__(self, account_repo: AccountRepo, audit_log_writer: AuditLogWriter) -> None:
        self._logger = logging.getLogger(__name__)
        self._account_repo = account_repo
        self._audit_log_writer = audit_log_writer

    async def ensure_operator(self) -> Account:
        return await self._account_repo.get_or_create(settings.auth.operator_username)

    async def login(self, auth_token: str, ip_address: str = "", user_agent: str = "") -> LoginData:
        operator = await self.ensure_operator()
        actor = Actor(account_id=operator.id, ip_address=ip_address, user_agent=user_agent)

        if not secrets.compare_digest(auth_token.encode(), settings.auth.token.encode()):
            self._logger.warning(f"Rejected login attempt from {ip_address or 'unknown address'}")
            await self._audit_log_writer.record(
                actor, OperationType.login_failed, TargetType.auth, description="Invalid auth token"
            )
            raise AuthError("Invalid auth token")

        now = datetime.now(UTC)
        expires_at = now + timedelta(hours=settings.auth.jwt_expire_hours)
        token = jwt.encode(
            {
                "sub": str(operator.id),
                "username": operator.username,
                "iss": settings.auth.jwt_issuer,
                "iat": now,
                "exp": expires_at,
            },
            settings.auth.jwt_secret,
            algorithm=JWT_ALGORITHM,
        )

        await self._account_repo.update(operator, {"last_login_at": now})
        await self._audit_log_writer.record(
            actor, OperationType.login_success, TargetType.auth, operator.id, f"{operator.username} logged in"
        )
        return LoginData(token=token, expires_at=expires_at, user=OperatorInfo.model_validate(operator))

    async def logout(self, actor: Actor) -> None:
        await self._audit_log_writer.record(
            actor, OperationType.logout, TargetType.auth, actor.account_id, "Logged out"
        )

    async def authenticate(self, token: str) -> Account:
        """Resolve a session token to its account, raising AuthError when it is invalid or expired."""
        try:
            claims = jwt.decode(
                token,
                settings.auth.jwt_secret,
                algorithms=[JWT_ALGORITHM],
                issuer=settings.auth.jwt_issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Session token has expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthError("Invalid session token") from e

        try:
            account_id = int(claims["sub"])
        except ValueError as e:
            raise AuthError("Invalid session token") from e

        account = await self._account_repo.get(account_id)
        if account is None:
            raise AuthError("Unknown account")
        return account
