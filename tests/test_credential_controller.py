"""Tests for credential CRUD, mail operations and their audit trail."""

import pytest
import sqlalchemy as sa
from fastapi_async_sqlalchemy import db

from app.api.payloads.credentials import CredentialCreate, CredentialUpdate
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.controllers.credential.batch_validator import BatchCredentialValidator
from app.controllers.credential.credential_controller import CredentialController
from app.controllers.gateway.models import Mailbox
from app.exceptions import (
    ActionForbiddenError,
    EmptyResultError,
    EntityAlreadyExistError,
    EntityNotFoundError,
    GatewayError,
)
from app.models.audit_log import OperationType
from app.repos.audit_log import AuditLogRepo
from app.repos.credential import CredentialRepo
from settings import settings
from tests.fakes import create_account

ALICE = CredentialCreate(
    email_address="alice@outlook.com",
    password="p@ss word",
    client_id="9e5f94bc-e8a4-4e73-b8be-63364c29d753",
    refresh_token="M.C512_BAY.0.U.-refresh",
    remark="primary",
)


@pytest.fixture
def controller(fake_gateway):
    audit_log_writer = AuditLogWriter(AuditLogRepo())
    return CredentialController(
        credential_repo=CredentialRepo(),
        gateway_client=fake_gateway,
        batch_validator=BatchCredentialValidator(CredentialRepo(), fake_gateway, audit_log_writer, workers=2),
        audit_log_writer=audit_log_writer,
    )


async def operations(account_id: int) -> list[OperationType]:
    logs = await AuditLogRepo().list_page(account_id, limit=100)
    return [log.operation for log in reversed(logs)]


async def test_single_add_round_trip_preserves_every_field(database, controller):
    async with db():
        account = await create_account()
        created = await controller.add(Actor(account_id=account.id), ALICE)
        await db.session.commit()

    async with db():
        stored = await controller.get(account.id, created.id)
        raw_password = await db.session.scalar(
            sa.text("SELECT password FROM credentials WHERE id = :id"), {"id": created.id}
        )

    assert stored.email_address == ALICE.email_address
    assert stored.password == ALICE.password
    assert stored.client_id == ALICE.client_id
    assert stored.refresh_token == ALICE.refresh_token
    assert stored.remark == ALICE.remark
    assert stored.tags == []
    # Secrets are encrypted at rest
    assert raw_password != ALICE.password


async def test_add_validates_against_inbox_and_audits(database, controller, fake_gateway):
    async with db():
        account = await create_account()
        await controller.add(Actor(account_id=account.id, ip_address="10.0.0.1", user_agent="pytest"), ALICE)
        logs = await AuditLogRepo().list_page(account.id, limit=10)

    assert fake_gateway.calls == [("latest", "alice@outlook.com", Mailbox.INBOX)]
    assert [log.operation for log in logs] == [OperationType.email_added]
    assert logs[0].ip_address == "10.0.0.1"
    assert logs[0].user_agent == "pytest"


async def test_add_duplicate_is_rejected_without_gateway_call(database, controller, fake_gateway):
    async with db():
        account = await create_account()
        await controller.add(Actor(account_id=account.id), ALICE)
        with pytest.raises(EntityAlreadyExistError):
            await controller.add(Actor(account_id=account.id), ALICE)

    assert len(fake_gateway.calls) == 1


async def test_failed_validation_is_audited_and_nothing_is_stored(database, controller, fake_gateway):
    fake_gateway.failures["alice@outlook.com"] = "AADSTS70000: invalid grant"

    async with db():
        account = await create_account()
        with pytest.raises(GatewayError) as exc_info:
            await controller.add(Actor(account_id=account.id), ALICE)
        assert await CredentialRepo().count_for_account(account.id) == 0
        assert await operations(account.id) == [OperationType.email_validation_failed]

    assert "alice@outlook.com" in exc_info.value.message


async def test_skipped_validation_is_audited(database, controller, fake_gateway, monkeypatch):
    monkeypatch.setattr(settings.gateway, "skip_validation", True)

    async with db():
        account = await create_account()
        await controller.add(Actor(account_id=account.id), ALICE)
        assert await operations(account.id) == [OperationType.email_validation_skipped, OperationType.email_added]

    assert fake_gateway.calls == []


async def test_ownership_is_enforced(database, controller):
    async with db():
        owner = await create_account("admin")
        intruder = await create_account("intruder")
        credential = await controller.add(Actor(account_id=owner.id), ALICE)

        with pytest.raises(ActionForbiddenError):
            await controller.get(intruder.id, credential.id)
        with pytest.raises(EntityNotFoundError):
            await controller.get(owner.id, credential.id + 1000)
        with pytest.raises(ActionForbiddenError):
            await controller.batch_delete(Actor(account_id=intruder.id), [credential.id])


async def test_search_pages_newest_first_and_filters_by_keyword(database, controller):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        for name in ("alice", "bob", "carol"):
            await controller.add(
                actor,
                CredentialCreate(
                    email_address=f"{name}@outlook.com",
                    password="x",
                    client_id="c",
                    refresh_token="r",
                    remark=f"{name} box",
                ),
            )

        first_page = await controller.search(account.id, limit=2, offset=0)
        second_page = await controller.search(account.id, limit=2, offset=2)
        filtered = await controller.search(account.id, limit=20, offset=0, keyword="bob")

    assert first_page.total == 3
    assert [item.email_address for item in first_page.items] == ["carol@outlook.com", "bob@outlook.com"]
    assert second_page.page == 2
    assert [item.email_address for item in second_page.items] == ["alice@outlook.com"]
    assert [item.email_address for item in filtered.items] == ["bob@outlook.com"]
    assert filtered.total == 1


async def test_update_replaces_fields_and_checks_duplicates(database, controller):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        alice = await controller.add(actor, ALICE)
        await controller.add(
            actor, CredentialCreate(email_address="bob@outlook.com", password="x", client_id="c", refresh_token="r")
        )

        with pytest.raises(EntityAlreadyExistError):
            await controller.update(
                actor,
                alice.id,
                CredentialUpdate(email_address="bob@outlook.com", password="x", client_id="c", refresh_token="r"),
            )

        updated = await controller.update(
            actor,
            alice.id,
            CredentialUpdate(email_address="alice@outlook.com", password="new", client_id="c2", refresh_token="r2"),
        )

    assert updated.password == "new"
    assert updated.client_id == "c2"
    assert updated.remark == ""


async def test_fetch_latest_touches_last_operation_and_audits(database, controller):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        credential = await controller.add(actor, ALICE)
        assert credential.last_operation_at is None

        message = await controller.fetch_latest(actor, credential.id, Mailbox.JUNK)

        assert message.verification_code == "123456"
        assert credential.last_operation_at is not None
        assert (await operations(account.id))[-1] == OperationType.get_latest_mail


async def test_failed_mail_operation_is_audited_and_raised(database, controller, fake_gateway):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        credential = await controller.add(actor, ALICE)
        fake_gateway.empty.add("alice@outlook.com")

        with pytest.raises(EmptyResultError):
            await controller.fetch_latest(actor, credential.id, Mailbox.INBOX)
        fake_gateway.empty.clear()
        fake_gateway.failures["alice@outlook.com"] = "throttled"
        with pytest.raises(GatewayError):
            await controller.clear_mailbox(actor, credential.id, Mailbox.JUNK)

        assert (await operations(account.id))[-2:] == [
            OperationType.get_latest_mail_failed,
            OperationType.clear_junk_failed,
        ]
        assert credential.last_operation_at is None


async def test_batch_clear_inbox_continues_after_failures(database, controller, fake_gateway):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        batch = await controller.batch_add(
            actor,
            [
                CredentialCreate(email_address=f"{name}@outlook.com", password="x", client_id="c", refresh_token="r")
                for name in ("alice", "bob", "carol")
            ],
        )
        ids = [item.id for item in batch.success_emails]
        fake_gateway.failures["bob@outlook.com"] = "mailbox locked"

        result = await controller.batch_clear_inbox(actor, ids + [9999])
        recorded = await operations(account.id)

    assert result.success_count == 2
    assert result.error_count == 2
    assert result.errors == ["bob@outlook.com: mailbox locked", "9999: Email 9999 not found"]
    assert recorded[-1] == OperationType.batch_clear_inbox
    assert recorded.count(OperationType.clear_inbox) == 2
    assert recorded.count(OperationType.clear_inbox_failed) == 1


async def test_batch_delete_removes_credentials(database, controller):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        batch = await controller.batch_add(
            actor,
            [
                CredentialCreate(email_address=f"{name}@outlook.com", password="x", client_id="c", refresh_token="r")
                for name in ("alice", "bob")
            ],
        )

        deleted = await controller.batch_delete(actor, [item.id for item in batch.success_emails])

        assert deleted == 2
        assert await CredentialRepo().count_for_account(account.id) == 0
        assert (await operations(account.id))[-1] == OperationType.batch_delete_emails


async def test_import_file_merges_parse_errors(database, controller):
    content = (
        "alice@outlook.com----pw----client----refresh----from file\n"
        "not-a-line\n"
        "bob@outlook.com,pw,client,refresh\n"
    ).encode()

    async with db():
        account = await create_account()
        result = await controller.import_file(Actor(account_id=account.id), "emails.txt", "text/plain", content)

    assert result.success_count == 2
    assert result.errors == ["line 2: expected fields separated by '----' or ','"]
    assert result.error_count == 1
    assert result.total_count == 3
