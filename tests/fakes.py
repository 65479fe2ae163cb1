import asyncio
from datetime import UTC, datetime

from app.api.payloads.messages import CanonicalMessage
from app.controllers.gateway.models import Mailbox, MailboxAccess
from app.exceptions import ActionError, EmptyResultError, GatewayError
from app.models.account import Account
from app.repos.account import AccountRepo


def make_message(subject: str = "Welcome", message_id: str = "msg-1") -> CanonicalMessage:
    return CanonicalMessage(
        id=message_id,
        subject=subject,
        from_="no-reply@outlook.com",
        to="alice@outlook.com",
        body="<p>Your code is 123456</p>",
        is_read=False,
        received_at=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        verification_code="123456",
    )


class FakeGateway:
    """In-memory stand-in for MailGatewayClient that records calls and concurrency."""

    def __init__(self) -> None:
        self.failures: dict[str, str] = {}
        self.empty: set[str] = set()
        self.delays: dict[str, float] = {}
        self.messages: list[CanonicalMessage] = [make_message()]
        self.calls: list[tuple[str, str, Mailbox | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _call(self, operation: str, access: MailboxAccess, mailbox: Mailbox | None) -> None:
        self.calls.append((operation, access.email, mailbox))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(access.email, 0))
            if access.email in self.failures:
                raise GatewayError(self.failures[access.email], remote_status=500, body="{}")
            if access.email in self.empty:
                raise EmptyResultError()
        finally:
            self.in_flight -= 1

    async def fetch_latest(self, access: MailboxAccess, mailbox: Mailbox = Mailbox.INBOX) -> CanonicalMessage:
        await self._call("latest", access, mailbox)
        return self.messages[0]

    async def fetch_all(self, access: MailboxAccess, mailbox: Mailbox = Mailbox.INBOX) -> list[CanonicalMessage]:
        await self._call("all", access, mailbox)
        return list(self.messages)

    async def clear_mailbox(self, access: MailboxAccess, mailbox: Mailbox = Mailbox.INBOX) -> dict:
        await self._call("clear", access, mailbox)
        return {"message": f"{mailbox.value} cleared"}

    async def validate_credentials(self, access: MailboxAccess) -> CanonicalMessage:
        try:
            return await self.fetch_latest(access, Mailbox.INBOX)
        except ActionError as e:
            raise e.annotate(f"validation failed for {access.email}")

    async def close_session(self) -> None:
        pass

    def emails_called(self, operation: str) -> list[str]:
        return [email for name, email, _ in self.calls if name == operation]


async def create_account(username: str = "admin") -> Account:
    """Create an account; must be called inside ``async with db():``."""
    return await AccountRepo().get_or_create(username)
