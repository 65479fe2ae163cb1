import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from app.api.payloads.credentials import CredentialCreate
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.controllers.gateway.client import MailGatewayClient
from app.controllers.gateway.models import Mailbox, MailboxAccess
from app.exceptions import ActionError, InvalidDataError
from app.models.audit_log import OperationType, TargetType
from app.models.credential import Credential
from app.repos.credential import CredentialRepo
from settings import settings

MAX_BATCH_SIZE = 30


@dataclass
class BatchOutcome:
    """Validated or stored items and per-item failures, both in input order."""

    succeeded: list = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def duplicate_error(address: str) -> str:
    return f"{address}: email already exists"


class BatchCredentialValidator:
    """
    Validates a batch of candidate credentials against the store and the mail gateway.

    Liveness checks run on at most ``min(n, workers)`` tasks pulling from one queue. Each
    worker writes its verdict into the slot of the item's input index, so the outcome keeps
    input order whatever order the gateway answers in. Workers never touch the database:
    existing addresses are fetched in one query before fan-out.
    """

    def __init__(
        self,
        credential_repo: CredentialRepo,
        gateway_client: MailGatewayClient,
        audit_log_writer: AuditLogWriter,
        workers: int | None = None,
        skip_validation: bool | None = None,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._credential_repo = credential_repo
        self._gateway_client = gateway_client
        self._audit_log_writer = audit_log_writer
        self._workers = max(1, workers if workers is not None else settings.gateway.validation_workers)
        self._skip_validation = skip_validation

    async def validate(self, account_id: int, candidates: Sequence[CredentialCreate]) -> BatchOutcome:
        """Return the candidates that passed, and one error string per candidate that did not."""
        if len(candidates) > MAX_BATCH_SIZE:
            raise InvalidDataError(f"A batch may contain at most {MAX_BATCH_SIZE} emails, got {len(candidates)}")
        if not candidates:
            return BatchOutcome()

        existing = await self._credential_repo.get_existing_addresses(account_id, [c.email_address for c in candidates])

        verdicts: list[str | None] = [None] * len(candidates)
        queue: asyncio.Queue[tuple[int, CredentialCreate]] = asyncio.Queue(maxsize=len(candidates))
        seen: set[str] = set()
        for index, candidate in enumerate(candidates):
            # Second occurrence of an address within one batch counts as a duplicate too
            if candidate.email_address in existing or candidate.email_address in seen:
                verdicts[index] = duplicate_error(candidate.email_address)
                continue
            seen.add(candidate.email_address)
            queue.put_nowait((index, candidate))

        worker_count = min(queue.qsize(), self._workers)
        if worker_count:
            await asyncio.gather(*(self._work(queue, verdicts) for _ in range(worker_count)))

        outcome = BatchOutcome()
        for candidate, verdict in zip(candidates, verdicts):
            if verdict is None:
                outcome.succeeded.append(candidate)
            else:
                outcome.errors.append(verdict)
        return outcome

    async def add_batch(self, actor: Actor, candidates: Sequence[CredentialCreate]) -> BatchOutcome:
        """Validate, store every passing candidate in one transaction, then audit each stored item."""
        validation = await self.validate(actor.account_id, candidates)
        if not candidates:
            return validation

        credentials = [
            Credential(
                account_id=actor.account_id,
                email_address=candidate.email_address,
                password=candidate.password,
                client_id=candidate.client_id,
                refresh_token=candidate.refresh_token,
                remark=candidate.remark,
                last_operation_at=None,
                tags=[],
            )
            for candidate in validation.succeeded
        ]
        await self._credential_repo.add_many(credentials)

        for credential in credentials:
            await self._audit_log_writer.record(
                actor,
                OperationType.email_added,
                TargetType.email,
                credential.id,
                f"Added mailbox {credential.email_address} in batch",
            )
        await self._audit_log_writer.record(
            actor,
            OperationType.batch_add_emails,
            TargetType.email,
            description=(
                f"Batch add of {len(candidates)} emails: {len(credentials)} succeeded, "
                f"{len(validation.errors)} failed"
            ),
        )
        self._logger.info(
            f"Batch add for account {actor.account_id}: {len(credentials)} stored, {len(validation.errors)} rejected"
        )
        return BatchOutcome(succeeded=credentials, errors=validation.errors)

    async def _work(self, queue: "asyncio.Queue[tuple[int, CredentialCreate]]", verdicts: list[str | None]) -> None:
        while True:
            try:
                index, candidate = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            verdicts[index] = await self._check(candidate)
            queue.task_done()

    async def _check(self, candidate: CredentialCreate) -> str | None:
        skip = self._skip_validation if self._skip_validation is not None else settings.gateway.skip_validation
        if skip:
            return None

        access = MailboxAccess(
            email=candidate.email_address, client_id=candidate.client_id, refresh_token=candidate.refresh_token
        )
        try:
            await self._gateway_client.fetch_latest(access, Mailbox.INBOX)
        except ActionError as e:
            self._logger.info(f"Credential validation failed for {candidate.email_address}: {e.message}")
            return f"{candidate.email_address}: {e.message}"
        except Exception as e:
            self._logger.exception(f"Unexpected error validating {candidate.email_address}")
            return f"{candidate.email_address}: unexpected error: {e}"
        return None
