import asyncio
import json
import logging
from typing import Any

import aiohttp

from app.api.payloads.messages import CanonicalMessage
from app.controllers.gateway.models import Mailbox, MailboxAccess, RemoteMessage
from app.exceptions import ActionError, EmptyResultError, GatewayError, TransportError
from settings import settings

LATEST_MAIL_PATH = "/api/mail-new"
ALL_MAIL_PATH = "/api/mail-all"
CLEAR_PATHS = {
    Mailbox.INBOX: "/api/process-inbox",
    Mailbox.JUNK: "/api/process-junk",
}


class MailGatewayClient:
    """HTTP client for the remote mail-retrieval API. Each operation is a single POST, never retried."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._base_url = (base_url or settings.gateway.base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.gateway.timeout
        self._http_session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def init_session(self) -> None:
        """Initialize HTTP session for gateway calls."""
        async with self._session_lock:
            if self._http_session is None:
                timeout = aiohttp.ClientTimeout(total=self._timeout)
                self._http_session = aiohttp.ClientSession(
                    timeout=timeout, headers={"Content-Type": "application/json", "Accept": "*/*"}
                )

    async def close_session(self) -> None:
        """Close HTTP session."""
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    async def fetch_latest(self, access: MailboxAccess, mailbox: Mailbox = Mailbox.INBOX) -> CanonicalMessage:
        payload = access.to_payload(mailbox)
        payload["response_type"] = "json"
        body = await self._post(LATEST_MAIL_PATH, payload)
        data = self._decode(body)

        if isinstance(data, dict):
            return RemoteMessage.model_validate(data).to_canonical()
        if isinstance(data, list):
            if not data:
                raise EmptyResultError(f"no messages found in {mailbox.value}")
            if isinstance(data[0], dict):
                return RemoteMessage.model_validate(data[0]).to_canonical()
        raise GatewayError(f"unexpected latest mail response: {body}", remote_status=200, body=body)

    async def fetch_all(self, access: MailboxAccess, mailbox: Mailbox = Mailbox.INBOX) -> list[CanonicalMessage]:
        body = await self._post(ALL_MAIL_PATH, access.to_payload(mailbox))
        data = self._decode(body)
        if not isinstance(data, list):
            raise GatewayError(f"unexpected mail list response: {body}", remote_status=200, body=body)

        messages = []
        for item in data:
            if not isinstance(item, dict):
                self._logger.warning(f"Skipping malformed message entry for {access.email}: {item!r}")
                continue
            messages.append(RemoteMessage.model_validate(item).to_canonical())
        return messages

    async def clear_mailbox(self, access: MailboxAccess, mailbox: Mailbox = Mailbox.INBOX) -> dict[str, Any]:
        """Ask the gateway to empty a mailbox and return its acknowledgement."""
        body = await self._post(CLEAR_PATHS[mailbox], access.to_payload())
        data = self._decode(body)
        if not isinstance(data, dict):
            raise GatewayError(f"unexpected clear response: {body}", remote_status=200, body=body)

        error = data.get("error")
        if error:
            raise GatewayError(f"gateway reported an error: {error}", remote_status=200, body=body)
        return data

    async def validate_credentials(self, access: MailboxAccess) -> CanonicalMessage:
        """Prove the credentials work by fetching the latest inbox message."""
        try:
            return await self.fetch_latest(access, Mailbox.INBOX)
        except ActionError as exc:
            raise exc.annotate(f"validation failed for {access.email}")

    async def _post(self, path: str, payload: dict[str, Any]) -> str:
        await self.init_session()
        assert self._http_session is not None

        url = f"{self._base_url}{path}"
        try:
            async with self._http_session.post(url, json=payload) as response:
                body = await response.text()
                status = response.status
        except asyncio.TimeoutError as exc:
            raise TransportError(f"gateway request to {path} timed out after {self._timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"gateway request to {path} failed: {exc}") from exc

        if status != 200:
            self._logger.warning(f"Gateway {path} returned {status} for {payload.get('email')}")
            raise GatewayError(f"gateway returned status {status}: {body}", remote_status=status, body=body)
        return body

    @staticmethod
    def _decode(body: str) -> Any:
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise GatewayError(f"failed to parse gateway response: {body}", remote_status=200, body=body) from exc
