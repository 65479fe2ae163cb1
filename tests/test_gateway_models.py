"""Tests for normalizing gateway messages."""

from datetime import UTC, datetime

from app.controllers.gateway.models import EPOCH, Mailbox, MailboxAccess, RemoteMessage


class TestRemoteMessage:
    def test_html_body_is_preferred_over_text(self):
        message = RemoteMessage.model_validate({"html": "<b>hi</b>", "text": "hi"}).to_canonical()

        assert message.body == "<b>hi</b>"

    def test_text_body_is_used_when_html_is_missing(self):
        message = RemoteMessage.model_validate({"html": "", "text": "plain"}).to_canonical()

        assert message.body == "plain"

    def test_field_mapping(self):
        message = RemoteMessage.model_validate(
            {
                "id": "AAMk1",
                "subject": "Your code",
                "send": "security@microsoft.com",
                "to": "alice@outlook.com",
                "isRead": True,
                "verifyCode": "482913",
                "date": "2024-03-01T08:30:00Z",
            }
        ).to_canonical()

        assert message.id == "AAMk1"
        assert message.subject == "Your code"
        assert message.from_ == "security@microsoft.com"
        assert message.to == "alice@outlook.com"
        assert message.is_read is True
        assert message.verification_code == "482913"
        assert message.received_at == datetime(2024, 3, 1, 8, 30, tzinfo=UTC)

    def test_received_date_time_overrides_date(self):
        message = RemoteMessage.model_validate(
            {"date": "2024-03-01T08:30:00Z", "receivedDateTime": "2024-03-02T10:00:00+00:00"}
        ).to_canonical()

        assert message.received_at == datetime(2024, 3, 2, 10, 0, tzinfo=UTC)

    def test_unparsable_received_date_time_keeps_date(self):
        message = RemoteMessage.model_validate(
            {"date": "2024-03-01T08:30:00Z", "receivedDateTime": "yesterday"}
        ).to_canonical()

        assert message.received_at == datetime(2024, 3, 1, 8, 30, tzinfo=UTC)

    def test_missing_or_invalid_timestamps_fall_back_to_epoch(self):
        assert RemoteMessage.model_validate({}).to_canonical().received_at == EPOCH
        assert RemoteMessage.model_validate({"date": "not a date"}).to_canonical().received_at == EPOCH

    def test_wrongly_typed_fields_are_coerced_to_defaults(self):
        message = RemoteMessage.model_validate(
            {"id": 42, "subject": None, "send": ["x"], "isRead": "yes", "verifyCode": 123456}
        ).to_canonical()

        assert message.id == ""
        assert message.subject == ""
        assert message.from_ == ""
        assert message.is_read is False
        assert message.verification_code is None

    def test_serializes_sender_as_from(self):
        payload = RemoteMessage.model_validate({"send": "bob@outlook.com"}).to_canonical().model_dump(by_alias=True)

        assert payload["from"] == "bob@outlook.com"


class TestMailbox:
    def test_known_values(self):
        assert Mailbox.parse("INBOX") is Mailbox.INBOX
        assert Mailbox.parse("Junk") is Mailbox.JUNK

    def test_unknown_values_fall_back_to_inbox(self):
        assert Mailbox.parse(None) is Mailbox.INBOX
        assert Mailbox.parse("Archive") is Mailbox.INBOX
        assert Mailbox.parse("junk") is Mailbox.INBOX


def test_access_payload_only_includes_mailbox_when_given():
    access = MailboxAccess(email="alice@outlook.com", client_id="client", refresh_token="token")

    assert access.to_payload() == {"refresh_token": "token", "client_id": "client", "email": "alice@outlook.com"}
    assert access.to_payload(Mailbox.JUNK)["mailbox"] == "Junk"
