import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from app.api.payloads.credentials import (
    BatchClearData,
    BatchCreateData,
    CredentialCreate,
    CredentialListData,
    CredentialResponse,
    CredentialUpdate,
)
from app.api.payloads.messages import CanonicalMessage
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.controllers.credential.batch_validator import BatchCredentialValidator, duplicate_error
from app.controllers.credential.importer import ALLOWED_CONTENT_TYPES, CredentialFileParser
from app.controllers.gateway.client import MailGatewayClient
from app.controllers.gateway.models import Mailbox, MailboxAccess
from app.exceptions import (
    ActionError,
    ActionForbiddenError,
    EntityAlreadyExistError,
    EntityNotFoundError,
    InvalidDataError,
)
from app.models.audit_log import OperationType, TargetType
from app.models.credential import Credential
from app.repos.credential import CredentialRepo
from settings import settings

T = TypeVar("T")

FETCH_LATEST_OPERATIONS = (OperationType.get_latest_mail, OperationType.get_latest_mail_failed)
FETCH_ALL_OPERATIONS = (OperationType.get_all_mails, OperationType.get_all_mails_failed)
CLEAR_OPERATIONS = {
    Mailbox.INBOX: (OperationType.clear_inbox, OperationType.clear_inbox_failed),
    Mailbox.JUNK: (OperationType.clear_junk, OperationType.clear_junk_failed),
}


def access_for(credential: Credential) -> MailboxAccess:
    return MailboxAccess(
        email=credential.email_address, client_id=credential.client_id, refresh_token=credential.refresh_token
    )


def ensure_owned(credential: Credential | None, credential_id: int, account_id: int) -> Credential:
    """Return the credential if the account owns it; raise not-found or forbidden otherwise."""
    if credential is None:
        raise EntityNotFoundError(f"Email {credential_id} not found")
    if credential.account_id != account_id:
        raise ActionForbiddenError(f"Email {credential_id} belongs to another account", account_id=account_id)
    return credential


class CredentialController:
    """Credential CRUD scoped to the owning account, plus mail operations proxied to the gateway."""

    def __init__(
        self,
        credential_repo: CredentialRepo,
        gateway_client: MailGatewayClient,
        batch_validator: BatchCredentialValidator,
        audit_log_writer: AuditLogWriter,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._credential_repo = credential_repo
        self._gateway_client = gateway_client
        self._batch_validator = batch_validator
        self._audit_log_writer = audit_log_writer

    async def search(
        self, account_id: int, limit: int, offset: int, keyword: str | None = None
    ) -> CredentialListData:
        keyword = keyword.strip() if keyword else None
        credentials = await self._credential_repo.list_for_account(account_id, limit, offset, keyword)
        total = await self._credential_repo.count_for_account(account_id, keyword)
        return CredentialListData(
            items=[CredentialResponse.model_validate(credential) for credential in credentials],
            total=total,
            page=offset // limit + 1,
            size=limit,
        )

    async def get(self, account_id: int, credential_id: int) -> Credential:
        credential = await self._credential_repo.get(credential_id)
        return ensure_owned(credential, credential_id, account_id)

    async def get_many(self, account_id: int, credential_ids: Sequence[int]) -> list[Credential]:
        """Load every requested credential, failing if any is missing or owned by someone else."""
        credentials = {credential.id: credential for credential in await self._credential_repo.get_many(credential_ids)}
        return [
            ensure_owned(credentials.get(credential_id), credential_id, account_id)
            for credential_id in dict.fromkeys(credential_ids)
        ]

    async def add(self, actor: Actor, payload: CredentialCreate) -> Credential:
        if await self._credential_repo.get_by_address(actor.account_id, payload.email_address):
            raise EntityAlreadyExistError(duplicate_error(payload.email_address))

        await self._validate(actor, payload)

        credential = Credential(
            account_id=actor.account_id,
            email_address=payload.email_address,
            password=payload.password,
            client_id=payload.client_id,
            refresh_token=payload.refresh_token,
            remark=payload.remark,
            last_operation_at=None,
            tags=[],
        )
        await self._credential_repo.add_many([credential])
        await self._audit_log_writer.record(
            actor, OperationType.email_added, TargetType.email, credential.id, f"Added mailbox {payload.email_address}"
        )
        self._logger.info(f"Added credential {credential.id} for account {actor.account_id}")
        return credential

    async def update(self, actor: Actor, credential_id: int, payload: CredentialUpdate) -> Credential:
        credential = await self.get(actor.account_id, credential_id)
        if payload.email_address != credential.email_address and await self._credential_repo.get_by_address(
            actor.account_id, payload.email_address
        ):
            raise EntityAlreadyExistError(duplicate_error(payload.email_address))

        await self._validate(actor, payload, credential_id)

        await self._credential_repo.update(
            credential,
            {
                "email_address": payload.email_address,
                "password": payload.password,
                "client_id": payload.client_id,
                "refresh_token": payload.refresh_token,
                "remark": payload.remark,
            },
        )
        await self._audit_log_writer.record(
            actor,
            OperationType.email_updated,
            TargetType.email,
            credential.id,
            f"Updated mailbox {payload.email_address}",
        )
        return credential

    async def delete(self, actor: Actor, credential_id: int) -> None:
        credential = await self.get(actor.account_id, credential_id)
        address = credential.email_address
        await self._credential_repo.delete_many(actor.account_id, [credential_id])
        await self._audit_log_writer.record(
            actor, OperationType.email_deleted, TargetType.email, credential_id, f"Deleted mailbox {address}"
        )

    async def batch_add(self, actor: Actor, payloads: Sequence[CredentialCreate]) -> BatchCreateData:
        outcome = await self._batch_validator.add_batch(actor, payloads)
        return BatchCreateData(
            success_emails=[CredentialResponse.model_validate(credential) for credential in outcome.succeeded],
            errors=outcome.errors,
            success_count=len(outcome.succeeded),
            error_count=len(outcome.errors),
        )

    async def import_file(
        self, actor: Actor, filename: str | None, content_type: str | None, content: bytes
    ) -> BatchCreateData:
        """Parse an uploaded credential file and add its entries as one batch."""
        name = (filename or "").lower()
        media_type = (content_type or "").split(";")[0].strip().lower()
        if not name.endswith((".txt", ".csv")) and media_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidDataError("Only .txt and .csv files can be imported")

        parsed = CredentialFileParser.parse(CredentialFileParser.decode(content))
        if not parsed.candidates:
            details = "; ".join(parsed.errors[:5])
            raise InvalidDataError(f"No valid emails found in file{': ' + details if details else ''}")

        result = await self.batch_add(actor, parsed.candidates)
        result.errors.extend(parsed.errors)
        result.error_count = len(result.errors)
        result.total_count = len(parsed.candidates) + len(parsed.errors)
        return result

    async def batch_delete(self, actor: Actor, credential_ids: Sequence[int]) -> int:
        credentials = await self.get_many(actor.account_id, credential_ids)
        deleted = await self._credential_repo.delete_many(actor.account_id, [c.id for c in credentials])
        await self._audit_log_writer.record(
            actor,
            OperationType.batch_delete_emails,
            TargetType.email,
            description=f"Deleted {deleted} mailboxes: {', '.join(c.email_address for c in credentials)}",
        )
        return deleted

    async def fetch_latest(self, actor: Actor, credential_id: int, mailbox: Mailbox) -> CanonicalMessage:
        credential = await self.get(actor.account_id, credential_id)
        return await self._run_mail_operation(
            actor,
            credential,
            FETCH_LATEST_OPERATIONS,
            f"Fetch latest mail from {mailbox.value}",
            lambda: self._gateway_client.fetch_latest(access_for(credential), mailbox),
        )

    async def fetch_all(self, actor: Actor, credential_id: int, mailbox: Mailbox) -> list[CanonicalMessage]:
        credential = await self.get(actor.account_id, credential_id)
        return await self._run_mail_operation(
            actor,
            credential,
            FETCH_ALL_OPERATIONS,
            f"Fetch all mails from {mailbox.value}",
            lambda: self._gateway_client.fetch_all(access_for(credential), mailbox),
        )

    async def clear_mailbox(self, actor: Actor, credential_id: int, mailbox: Mailbox) -> str:
        credential = await self.get(actor.account_id, credential_id)
        acknowledgement = await self._clear(actor, credential, mailbox)
        return str(acknowledgement.get("message") or "")

    async def batch_clear_inbox(self, actor: Actor, credential_ids: Sequence[int]) -> BatchClearData:
        """Clear inboxes one after another; a failing item is reported and the rest carry on."""
        errors: list[str] = []
        success_count = 0
        for credential_id in dict.fromkeys(credential_ids):
            try:
                credential = await self.get(actor.account_id, credential_id)
            except (EntityNotFoundError, ActionForbiddenError) as e:
                errors.append(f"{credential_id}: {e.message}")
                continue
            try:
                await self._clear(actor, credential, Mailbox.INBOX)
            except ActionError as e:
                errors.append(f"{credential.email_address}: {e.message}")
                continue
            success_count += 1

        await self._audit_log_writer.record(
            actor,
            OperationType.batch_clear_inbox,
            TargetType.email,
            description=f"Batch clear inbox: {success_count} succeeded, {len(errors)} failed",
        )
        return BatchClearData(success_count=success_count, error_count=len(errors), errors=errors)

    async def _clear(self, actor: Actor, credential: Credential, mailbox: Mailbox) -> dict:
        return await self._run_mail_operation(
            actor,
            credential,
            CLEAR_OPERATIONS[mailbox],
            f"Clear {mailbox.value}",
            lambda: self._gateway_client.clear_mailbox(access_for(credential), mailbox),
        )

    async def _run_mail_operation(
        self,
        actor: Actor,
        credential: Credential,
        operations: tuple[OperationType, OperationType],
        description: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        succeeded, failed = operations
        try:
            result = await call()
        except ActionError as e:
            await self._audit_log_writer.record(
                actor,
                failed,
                TargetType.email,
                credential.id,
                f"{description} failed for {credential.email_address}: {e.message}",
            )
            raise

        await self._credential_repo.touch_last_operation(credential)
        await self._audit_log_writer.record(
            actor, succeeded, TargetType.email, credential.id, f"{description} for {credential.email_address}"
        )
        return result

    async def _validate(self, actor: Actor, payload: CredentialCreate, credential_id: int | None = None) -> None:
        if settings.gateway.skip_validation:
            await self._audit_log_writer.record(
                actor,
                OperationType.email_validation_skipped,
                TargetType.email,
                credential_id,
                f"Validation skipped for {payload.email_address}",
            )
            return

        access = MailboxAccess(
            email=payload.email_address, client_id=payload.client_id, refresh_token=payload.refresh_token
        )
        try:
            await self._gateway_client.validate_credentials(access)
        except ActionError as e:
            await self._audit_log_writer.record(
                actor, OperationType.email_validation_failed, TargetType.email, credential_id, e.message
            )
            raise
