"""Tests for tags, the audit trail and dashboard aggregates."""

import pytest
import sqlalchemy as sa
from fastapi_async_sqlalchemy import db

from app.api.payloads.credentials import CredentialCreate
from app.api.payloads.dashboard import DashboardData
from app.api.payloads.tags import TagCreate, TagUpdate
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.controllers.credential.batch_validator import BatchCredentialValidator
from app.controllers.credential.credential_controller import CredentialController
from app.controllers.gateway.models import Mailbox
from app.controllers.reporting.report_controller import ReportController, StatsType
from app.controllers.tag.tag_controller import TagController
from app.exceptions import ActionForbiddenError, EntityAlreadyExistError, EntityInUseError, EntityNotFoundError
from app.models.audit_log import OperationType
from app.models.base import utcnow
from app.repos.audit_log import AuditLogRepo
from app.repos.credential import CredentialRepo
from app.repos.tag import TagRepo
from tests.fakes import create_account


class Controllers:
    def __init__(self, gateway) -> None:
        self.audit = AuditLogWriter(AuditLogRepo())
        self.credentials = CredentialController(
            credential_repo=CredentialRepo(),
            gateway_client=gateway,
            batch_validator=BatchCredentialValidator(CredentialRepo(), gateway, self.audit, workers=2),
            audit_log_writer=self.audit,
        )
        self.tags = TagController(TagRepo(), CredentialRepo(), self.credentials, self.audit)
        self.reports = ReportController(CredentialRepo(), TagRepo(), AuditLogRepo())


@pytest.fixture
def controllers(fake_gateway):
    return Controllers(fake_gateway)


def mailbox(name: str) -> CredentialCreate:
    return CredentialCreate(email_address=f"{name}@outlook.com", password="x", client_id="c", refresh_token="r")


async def test_tag_cannot_be_deleted_while_in_use(database, controllers):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        credential = await controllers.credentials.add(actor, mailbox("alice"))
        tag = await controllers.tags.create(actor, TagCreate(name="vip", color="#ff0000"))

        tagged = await controllers.tags.tag_credential(actor, credential.id, tag.id)
        assert [t.name for t in tagged.tags] == ["vip"]

        with pytest.raises(EntityInUseError) as exc_info:
            await controllers.tags.delete(actor, tag.id)
        assert "used by 1 emails" in exc_info.value.message

        untagged = await controllers.tags.untag_credential(actor, credential.id, tag.id)
        assert untagged.tags == []

        await controllers.tags.delete(actor, tag.id)
        with pytest.raises(EntityNotFoundError):
            await controllers.tags.get(tag.id)


async def test_tag_names_are_unique(database, controllers):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        await controllers.tags.create(actor, TagCreate(name="vip"))
        other = await controllers.tags.create(actor, TagCreate(name="work"))

        with pytest.raises(EntityAlreadyExistError):
            await controllers.tags.create(actor, TagCreate(name=" vip "))
        with pytest.raises(EntityAlreadyExistError):
            await controllers.tags.update(actor, other.id, TagUpdate(name="vip"))

        renamed = await controllers.tags.update(actor, other.id, TagUpdate(description="office"))

    assert renamed.name == "work"
    assert renamed.description == "office"
    assert renamed.color == "#007bff"


async def test_attaching_twice_keeps_one_association(database, controllers):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        batch = await controllers.credentials.batch_add(actor, [mailbox("alice"), mailbox("bob")])
        ids = [item.id for item in batch.success_emails]
        tag = await controllers.tags.create(actor, TagCreate(name="vip"))

        assert await controllers.tags.batch_tag(actor, ids, tag.id) == 2
        assert await controllers.tags.batch_tag(actor, ids, tag.id) == 0
        listed = await controllers.tags.list_tags()
        assert [(t.name, t.email_count) for t in listed] == [("vip", 2)]

        assert await controllers.tags.batch_untag(actor, ids, tag.id) == 2
        listed = await controllers.tags.list_tags()
        assert listed[0].email_count == 0


async def test_batch_tag_rejects_foreign_credentials(database, controllers):
    async with db():
        owner = await create_account("admin")
        intruder = await create_account("intruder")
        credential = await controllers.credentials.add(Actor(account_id=owner.id), mailbox("alice"))
        tag = await controllers.tags.create(Actor(account_id=owner.id), TagCreate(name="vip"))

        with pytest.raises(ActionForbiddenError):
            await controllers.tags.batch_tag(Actor(account_id=intruder.id), [credential.id], tag.id)
        assert await TagRepo().usage_count(tag.id) == 0


async def test_deleting_a_credential_drops_its_tag_associations(database, controllers):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id)
        credential = await controllers.credentials.add(actor, mailbox("alice"))
        tag = await controllers.tags.create(actor, TagCreate(name="vip"))
        await controllers.tags.tag_credential(actor, credential.id, tag.id)

        await controllers.credentials.delete(actor, credential.id)

        assert await TagRepo().usage_count(tag.id) == 0
        await controllers.tags.delete(actor, tag.id)


async def test_audit_log_pages_and_clear(database, controllers):
    async with db():
        account = await create_account()
        actor = Actor(account_id=account.id, ip_address="10.0.0.2", user_agent="pytest")
        for name in ("a", "b", "c"):
            await controllers.tags.create(actor, TagCreate(name=name))

        page = await controllers.audit.list_page(account.id, page=1, page_size=2)
        assert page.total == 3
        assert page.total_pages == 2
        assert [entry.description for entry in page.logs] == ["Created tag c", "Created tag b"]
        assert page.logs[0].operation_name == "Create tag"
        assert page.logs[0].ip_address == "10.0.0.2"

        deleted = await controllers.audit.clear(actor)
        remaining = await controllers.audit.list_page(account.id, page=1, page_size=20)

    assert deleted == 3
    assert [entry.operation_type for entry in remaining.logs] == [OperationType.clear_all_logs.value]


async def test_audit_failures_never_fail_the_operation(database, controllers, monkeypatch):
    async def broken_append(entry):
        raise RuntimeError("disk full")

    monkeypatch.setattr(controllers.audit._audit_log_repo, "append", broken_append)

    async with db():
        account = await create_account()
        tag = await controllers.tags.create(Actor(account_id=account.id), TagCreate(name="vip"))

    assert tag.name == "vip"


async def test_dashboard_aggregates(database, controllers):
    async with db():
        account = await create_account()
        other = await create_account("other")
        actor = Actor(account_id=account.id)
        batch = await controllers.credentials.batch_add(actor, [mailbox("alice"), mailbox("bob")])
        await controllers.credentials.add(Actor(account_id=other.id), mailbox("carol"))
        tag = await controllers.tags.create(actor, TagCreate(name="vip"))
        await controllers.tags.batch_tag(actor, [item.id for item in batch.success_emails], tag.id)
        await controllers.credentials.fetch_latest(actor, batch.success_emails[0].id, Mailbox.INBOX)

        dashboard = await controllers.reports.dashboard(account.id)
        email_stats = await controllers.reports.stats(account.id, StatsType.parse("emails"))
        fallback = await controllers.reports.stats(account.id, StatsType.parse("bogus"))

    assert dashboard.total_emails == 2
    assert dashboard.total_tags == 1
    assert [(usage.tag_name, usage.count) for usage in dashboard.emails_by_tag] == [("vip", 2)]
    assert dashboard.operations_by_type == {
        "Add mailbox": 2,
        "Batch add mailboxes": 1,
        "Create tag": 1,
        "Batch tag mailboxes": 1,
        "Fetch latest mail": 1,
    }
    assert len(dashboard.recent_operations) == 5
    assert dashboard.recent_operations[0].operation_type == "get_latest_mail"
    assert email_stats.total_emails == 2
    assert isinstance(fallback, DashboardData)
    assert fallback.total_emails == 2


async def test_unknown_operation_kinds_keep_their_raw_identifier(database, controllers):
    legacy_logs = sa.table(
        "audit_logs",
        sa.column("account_id", sa.Integer),
        sa.column("operation", sa.String),
        sa.column("target_type", sa.String),
        sa.column("description", sa.Text),
        sa.column("ip_address", sa.String),
        sa.column("user_agent", sa.Text),
        sa.column("created_at", sa.DateTime(timezone=True)),
    )

    async with db():
        account = await create_account()
        await controllers.tags.create(Actor(account_id=account.id), TagCreate(name="vip"))
        await db.session.execute(
            sa.insert(legacy_logs).values(
                account_id=account.id,
                operation="export_emails",
                target_type="archive",
                description="Exported 3 mailboxes",
                ip_address="",
                user_agent="",
                created_at=utcnow(),
            )
        )

        dashboard = await controllers.reports.dashboard(account.id)
        page = await controllers.audit.list_page(account.id, page=1, page_size=20)

    assert dashboard.operations_by_type == {"Create tag": 1, "export_emails": 1}
    assert page.total == 2
    legacy = page.logs[0]
    assert legacy.operation_type == "export_emails"
    assert legacy.operation_name == "export_emails"
    assert legacy.target_type == "archive"
    assert legacy.description == "Exported 3 mailboxes"
