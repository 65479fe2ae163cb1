"""Tests for the bounded-concurrency batch credential validator."""

import pytest
from fastapi_async_sqlalchemy import db

from app.api.payloads.credentials import CredentialCreate
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.controllers.credential.batch_validator import MAX_BATCH_SIZE, BatchCredentialValidator
from app.exceptions import InvalidDataError, PersistenceError
from app.models.audit_log import OperationType
from app.models.credential import Credential
from app.repos.audit_log import AuditLogRepo
from app.repos.credential import CredentialRepo
from tests.fakes import create_account


def candidate(name: str) -> CredentialCreate:
    return CredentialCreate(
        email_address=f"{name}@outlook.com",
        password=f"{name}-password",
        client_id=f"{name}-client",
        refresh_token=f"{name}-refresh",
        remark=f"remark for {name}",
    )


def make_validator(gateway, workers: int = 3, skip_validation: bool = False) -> BatchCredentialValidator:
    return BatchCredentialValidator(
        credential_repo=CredentialRepo(),
        gateway_client=gateway,
        audit_log_writer=AuditLogWriter(AuditLogRepo()),
        workers=workers,
        skip_validation=skip_validation,
    )


async def test_results_keep_input_order_whatever_the_completion_order(database, fake_gateway):
    names = [f"user{i}" for i in range(8)]
    for position, name in enumerate(names):
        # Earlier items answer last
        fake_gateway.delays[f"{name}@outlook.com"] = (len(names) - position) * 0.01
    fake_gateway.failures["user2@outlook.com"] = "invalid grant"
    fake_gateway.failures["user5@outlook.com"] = "mailbox disabled"
    validator = make_validator(fake_gateway, workers=4)

    async with db():
        account = await create_account()
        outcome = await validator.validate(account.id, [candidate(name) for name in names])

    assert [c.email_address for c in outcome.succeeded] == [
        f"{name}@outlook.com" for name in names if name not in ("user2", "user5")
    ]
    assert outcome.errors == [
        "user2@outlook.com: invalid grant",
        "user5@outlook.com: mailbox disabled",
    ]


@pytest.mark.parametrize("size, workers, expected", [(10, 3, 3), (2, 5, 2), (5, 1, 1)])
async def test_in_flight_calls_never_exceed_min_of_batch_and_workers(database, fake_gateway, size, workers, expected):
    for i in range(size):
        fake_gateway.delays[f"user{i}@outlook.com"] = 0.02
    validator = make_validator(fake_gateway, workers=workers)

    async with db():
        account = await create_account()
        outcome = await validator.validate(account.id, [candidate(f"user{i}") for i in range(size)])

    assert len(outcome.succeeded) == size
    assert fake_gateway.max_in_flight == expected


async def test_every_item_is_accounted_for(database, fake_gateway):
    fake_gateway.empty.add("user1@outlook.com")
    fake_gateway.failures["user3@outlook.com"] = "boom"
    validator = make_validator(fake_gateway)
    candidates = [candidate(f"user{i}") for i in range(MAX_BATCH_SIZE)]

    async with db():
        account = await create_account()
        outcome = await validator.add_batch(Actor(account_id=account.id), candidates)

    assert len(outcome.succeeded) + len(outcome.errors) == MAX_BATCH_SIZE
    assert len(outcome.errors) == 2


async def test_more_than_thirty_items_is_rejected_before_any_work(database, fake_gateway):
    validator = make_validator(fake_gateway)

    async with db():
        account = await create_account()
        with pytest.raises(InvalidDataError):
            await validator.add_batch(
                Actor(account_id=account.id), [candidate(f"user{i}") for i in range(MAX_BATCH_SIZE + 1)]
            )
        assert await CredentialRepo().count_for_account(account.id) == 0

    assert fake_gateway.calls == []


async def test_empty_batch_does_nothing(database, fake_gateway):
    validator = make_validator(fake_gateway)

    async with db():
        account = await create_account()
        outcome = await validator.add_batch(Actor(account_id=account.id), [])
        audit_count = await AuditLogRepo().count(account.id)

    assert outcome.succeeded == []
    assert outcome.errors == []
    assert fake_gateway.calls == []
    assert audit_count == 0


async def test_resubmitting_a_batch_only_reports_duplicates(database, fake_gateway):
    validator = make_validator(fake_gateway)
    candidates = [candidate("alice"), candidate("bob"), candidate("carol")]

    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        first = await validator.add_batch(actor, candidates)
        calls_after_first = len(fake_gateway.calls)
        second = await validator.add_batch(actor, candidates)
        total = await CredentialRepo().count_for_account(account.id)

    assert len(first.succeeded) == 3
    assert second.succeeded == []
    assert second.errors == [
        "alice@outlook.com: email already exists",
        "bob@outlook.com: email already exists",
        "carol@outlook.com: email already exists",
    ]
    # Duplicates never reach the gateway
    assert len(fake_gateway.calls) == calls_after_first
    assert total == 3


async def test_second_occurrence_within_a_batch_is_a_duplicate(database, fake_gateway):
    validator = make_validator(fake_gateway)

    async with db():
        account = await create_account()
        outcome = await validator.add_batch(
            Actor(account_id=account.id), [candidate("alice"), candidate("bob"), candidate("alice")]
        )

    assert [c.email_address for c in outcome.succeeded] == ["alice@outlook.com", "bob@outlook.com"]
    assert outcome.errors == ["alice@outlook.com: email already exists"]
    assert fake_gateway.emails_called("latest").count("alice@outlook.com") == 1


async def test_three_items_with_existing_second_item(database, fake_gateway):
    validator = make_validator(fake_gateway)

    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        await validator.add_batch(actor, [candidate("bob")])
        await AuditLogRepo().clear(account.id)

        outcome = await validator.add_batch(actor, [candidate("alice"), candidate("bob"), candidate("carol")])
        counts = await AuditLogRepo().count_by_operation(account.id)

    assert [c.email_address for c in outcome.succeeded] == ["alice@outlook.com", "carol@outlook.com"]
    assert outcome.errors == ["bob@outlook.com: email already exists"]
    assert counts == {OperationType.email_added: 2, OperationType.batch_add_emails: 1}


async def test_skip_validation_stores_without_calling_gateway(database, fake_gateway):
    fake_gateway.failures["alice@outlook.com"] = "would fail"
    validator = make_validator(fake_gateway, skip_validation=True)

    async with db():
        account = await create_account()
        outcome = await validator.add_batch(Actor(account_id=account.id), [candidate("alice"), candidate("bob")])

    assert len(outcome.succeeded) == 2
    assert fake_gateway.calls == []


async def test_stored_items_are_persisted_with_all_fields(database, fake_gateway):
    validator = make_validator(fake_gateway)

    async with db():
        account = await create_account()
        await validator.add_batch(Actor(account_id=account.id), [candidate("alice")])
        stored = await CredentialRepo().get_by_address(account.id, "alice@outlook.com")

    assert stored is not None
    assert stored.password == "alice-password"
    assert stored.client_id == "alice-client"
    assert stored.refresh_token == "alice-refresh"
    assert stored.remark == "remark for alice"


async def test_persistence_failure_stores_nothing_and_skips_audit(database, fake_gateway, monkeypatch):
    validator = make_validator(fake_gateway)

    async def failing_add_many(credentials):
        raise PersistenceError("disk full")

    async with db():
        account = await create_account()
        monkeypatch.setattr(validator._credential_repo, "add_many", failing_add_many)
        with pytest.raises(PersistenceError):
            await validator.add_batch(Actor(account_id=account.id), [candidate("alice"), candidate("bob")])
        stored = await CredentialRepo().count_for_account(account.id)
        audit_count = await AuditLogRepo().count(account.id)

    assert stored == 0
    assert audit_count == 0


def stored_credential(account_id: int, name: str) -> Credential:
    return Credential(
        account_id=account_id,
        email_address=f"{name}@outlook.com",
        password="pw",
        client_id="client",
        refresh_token="refresh",
        remark="",
        last_operation_at=None,
        tags=[],
    )


async def test_add_many_rolls_back_the_whole_call_on_a_unique_violation(database):
    repo = CredentialRepo()

    async with db():
        account = await create_account()
        await repo.add_many([stored_credential(account.id, "alice")])

        with pytest.raises(PersistenceError):
            await repo.add_many([stored_credential(account.id, "bob"), stored_credential(account.id, "alice")])

        assert await repo.count_for_account(account.id) == 1
        assert await repo.get_by_address(account.id, "bob@outlook.com") is None
        await db.session.commit()

    async with db():
        assert await repo.count_for_account(account.id) == 1


async def test_address_stored_after_duplicate_check_aborts_the_batch(database, fake_gateway, monkeypatch):
    validator = make_validator(fake_gateway)

    async def nothing_stored_yet(account_id, addresses):
        return set()

    async with db():
        account = await create_account()
        await validator.add_batch(Actor(account_id=account.id), [candidate("alice")])
        monkeypatch.setattr(validator._credential_repo, "get_existing_addresses", nothing_stored_yet)

        with pytest.raises(PersistenceError):
            await validator.add_batch(Actor(account_id=account.id), [candidate("bob"), candidate("alice")])

        assert await CredentialRepo().count_for_account(account.id) == 1
        recorded = await AuditLogRepo().count_by_operation(account.id)

    assert recorded == {OperationType.email_added: 1, OperationType.batch_add_emails: 1}
