# =============================================================================
# MailBuilder Tests
# =============================================================================

import pytest
from keyring.errors import NoKeyringError

from tagmailer.config import Config, DefaultsConfig, MessageConfig, SessionConfig
from tagmailer.core import (
    AttachmentPart,
    LookupFailedError,
    MailSession,
    MessageBinding,
    UsageError,
)
from tagmailer.message import MailBuilder
from tagmailer.naming import MappingLookup


class TestConstructionScope:
    def test_base_recipients_seed_accumulators(self):
        mail = MailBuilder(to="a@example.com", cc="c@example.com")
        with mail:
            mail.add_to("b@example.com")
        assert mail.to == "a@example.com,b@example.com"
        assert mail.cc == "c@example.com"
        assert mail.bcc == ""

    def test_begin_clears_dynamic_state(self):
        mail = MailBuilder(subject="Base")
        mail.begin()
        mail.reset_subject("Override")
        mail.add_header("X-Tag", "1")
        mail.add_attachment(AttachmentPart.from_inline("x", "text/plain"))
        mail.add_to("a@example.com")

        mail.begin()

        assert mail.subject == "Base"
        assert len(mail.headers) == 0
        assert mail.attachments == []
        assert not mail.has_attachments
        assert mail.to == ""

    def test_override_survives_base_change(self):
        mail = MailBuilder(from_address="base@example.com")
        mail.begin()
        mail.reset_from("override@example.com")
        mail.set_from("changed@example.com")
        assert mail.from_address == "override@example.com"

    def test_setters_last_write_wins(self):
        mail = MailBuilder()
        mail.set_subject("One")
        mail.set_subject("Two")
        assert mail.subject == "Two"


class TestContentType:
    def test_plain_without_charset(self):
        assert MailBuilder().content_type == "text/plain"

    def test_html_with_charset(self):
        mail = MailBuilder(type="html", charset="UTF-8")
        assert mail.content_type == "text/html;charset=UTF-8"

    @pytest.mark.parametrize("value, expected", [
        ("html", "text/html"),
        ("HTML", "text/html"),
        ("text/html", "text/html"),
        ("text", "text/plain"),
        ("anything", "text/plain"),
    ])
    def test_set_type(self, value, expected):
        mail = MailBuilder()
        mail.set_type(value)
        assert mail.type == expected


class TestProduceMessage:
    def test_adhoc_defaults(self):
        message = MailBuilder().produce_message()
        session = message.session
        assert (session.host, session.port) == ("localhost", 25)
        assert session.send_partial
        assert session.dsn_notify == "FAILURE"
        assert session.dsn_ret == "FULL"
        assert not session.auth

    def test_adhoc_uses_effective_server_and_port(self):
        mail = MailBuilder(server="smtp.example.com", port="587")
        mail.begin()
        mail.reset_port("2525")
        session = mail.produce_message().session
        assert session.destination == "smtp.example.com:2525"

    def test_non_numeric_port(self):
        with pytest.raises(UsageError, match="not a number"):
            MailBuilder(port="smtp").produce_message()

    def test_authentication_with_password(self):
        mail = MailBuilder(authenticate="true", user="mailer", password="secret")
        session = mail.produce_message().session
        assert session.auth
        assert (session.username, session.password) == ("mailer", "secret")

    def test_authentication_password_from_keyring(self, monkeypatch):
        calls = []

        def get_password(service, user):
            calls.append((service, user))
            return "from-keyring"

        monkeypatch.setattr("tagmailer.message.builder.keyring.get_password", get_password)
        mail = MailBuilder(server="smtp.example.com", authenticate=True, user="mailer")
        session = mail.produce_message().session
        assert session.password == "from-keyring"
        assert calls == [("tagmailer:smtp.example.com", "mailer")]

    def test_authentication_without_password(self, monkeypatch):
        monkeypatch.setattr(
            "tagmailer.message.builder.keyring.get_password", lambda service, user: None
        )
        with pytest.raises(UsageError, match="No password"):
            MailBuilder(authenticate=True, user="mailer").produce_message()

    def test_keyring_backend_missing(self, monkeypatch):
        def get_password(service, user):
            raise NoKeyringError("No recommended backend was available")

        monkeypatch.setattr("tagmailer.message.builder.keyring.get_password", get_password)
        mail = MailBuilder(server="smtp.example.com", authenticate=True, user="mailer")
        with pytest.raises(UsageError, match="keyring set tagmailer:smtp.example.com mailer"):
            mail.produce_message()

    def test_authentication_without_user(self):
        with pytest.raises(UsageError, match="user must be supplied"):
            MailBuilder(authenticate=True).produce_message()

    def test_named_session(self, lookup, sample_session):
        mail = MailBuilder(session="mail/relay", lookup=lookup)
        assert mail.produce_message().session is sample_session
        assert mail.session is sample_session

    def test_named_message_wins_over_session(self, sample_session):
        other = MailSession(host="other.example.com")
        lookup = MappingLookup({
            "mail/relay": sample_session,
            "mail/newsletter": MessageBinding("mail/newsletter", other),
        })
        mail = MailBuilder(session="mail/relay", mime_message="mail/newsletter", lookup=lookup)
        assert mail.produce_message().session is other

    def test_unknown_binding(self, lookup):
        with pytest.raises(LookupFailedError, match="mail/missing"):
            MailBuilder(session="mail/missing", lookup=lookup).produce_message()

    def test_binding_of_wrong_kind(self, sample_session):
        lookup = MappingLookup({"mail/relay": sample_session})
        with pytest.raises(LookupFailedError, match="not a mail message"):
            MailBuilder(mime_message="mail/relay", lookup=lookup).produce_message()

    def test_named_binding_without_lookup(self):
        with pytest.raises(LookupFailedError, match="no lookup configured"):
            MailBuilder(session="mail/relay").produce_message()


class TestFromConfig:
    def test_defaults_and_named_bindings(self, temp_dir):
        config = Config(
            document_root=str(temp_dir),
            defaults=DefaultsConfig(
                server="smtp.example.com",
                port="587",
                type="text/html",
                from_address="noreply@example.com",
                to="ops@example.com",
            ),
            sessions={"relay": SessionConfig(host="relay.example.com", port=465, security="ssl")},
            messages={"newsletter": MessageConfig(session="relay")},
        )
        mail = MailBuilder.from_config(config)
        mail.begin()
        assert mail.to == "ops@example.com"
        assert mail.from_address == "noreply@example.com"
        assert mail.content_type == "text/html"
        assert mail.path_resolver("a.txt") == str((temp_dir / "a.txt").resolve())

        mail.set_mime_message("newsletter")
        session = mail.produce_message().session
        assert (session.host, session.port, session.name) == ("relay.example.com", 465, "relay")
