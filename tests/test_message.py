# =============================================================================
# MailMessage Tests
# =============================================================================

import pytest

from tagmailer.core import AssemblyError, AttachmentPart, MailSession
from tagmailer.message import MailMessage, build_content_type
from tagmailer.smtp import parse_address, parse_addresses


@pytest.fixture
def message():
    message = MailMessage(MailSession())
    message.set_recipients("to", parse_addresses("Alice <a@example.com>, b@example.com"))
    message.set_from(parse_address("sender@example.com"))
    message.set_subject("Quarterly numbers")
    return message


@pytest.mark.parametrize("content_type, charset, expected", [
    ("text/plain", None, "text/plain"),
    ("text/html", "UTF-8", "text/html;charset=UTF-8"),
])
def test_build_content_type(content_type, charset, expected):
    assert build_content_type(content_type, charset) == expected


class TestContent:
    def test_single_part_is_the_body(self, message):
        message.set_content("Hello there", "text/plain")
        mime = message.to_mime()
        assert not message.is_multipart
        assert not mime.is_multipart()
        assert mime.get_content_type() == "text/plain"
        assert mime.get_payload(decode=True) == b"Hello there"

    def test_charset_is_applied(self, message):
        message.set_content("<p>Grüße</p>", "text/html;charset=UTF-8")
        mime = message.to_mime()
        assert mime.get_content_type() == "text/html"
        assert mime.get_content_charset() == "utf-8"

    def test_multipart_body_first_then_attachments_in_order(self, message):
        first = AttachmentPart.from_inline("a,b\n", "text/csv")
        second = AttachmentPart.from_inline("{}", "application/json")
        message.set_multipart("See attached.", "text/plain", [first, second])

        mime = message.to_mime()
        parts = mime.get_payload()
        assert mime.get_content_type() == "multipart/mixed"
        assert [p.get_content_type() for p in parts] == [
            "text/plain", "text/csv", "application/json",
        ]
        assert parts[0].get_payload(decode=True) == b"See attached."
        assert message.attachment_parts == [first, second]

    def test_url_parts_are_pending(self, message):
        part = AttachmentPart.from_url("https://example.com/logo.png")
        message.set_multipart("Logo attached", "text/plain", [part])
        assert len(message.pending_urls) == 1
        assert message.pending_urls[0][1] == "https://example.com/logo.png"

    def test_missing_body(self, message):
        with pytest.raises(ValueError):
            message.set_content(None, "text/plain")

    def test_non_text_body(self, message):
        with pytest.raises(ValueError):
            message.set_content("hi", "application/json")

    def test_unknown_charset(self, message):
        with pytest.raises(LookupError):
            message.set_content("hi", "text/plain;charset=no-such-charset")

    def test_no_content(self, message):
        with pytest.raises(AssemblyError):
            message.to_mime()


class TestHeaders:
    def test_envelope_headers(self, message):
        message.set_reply_to(parse_addresses("replies@example.com"))
        message.set_recipients("bcc", parse_addresses("hidden@example.com"))
        message.set_sent_date()
        message.set_content("Hi", "text/plain")
        mime = message.to_mime()

        assert mime["To"] == "Alice <a@example.com>, b@example.com"
        assert mime["From"] == "sender@example.com"
        assert mime["Reply-To"] == "replies@example.com"
        assert mime["Subject"] == "Quarterly numbers"
        assert mime["Date"]
        assert mime["Message-ID"].endswith("@example.com>")
        assert mime["X-Mailer"] == "tagmailer"

    def test_custom_headers_duplicates_in_order(self, message):
        message.add_header("X-Tag", "one")
        message.add_header("X-Tag", "two")
        message.set_content("Hi", "text/plain")
        assert message.to_mime().get_all("X-Tag") == ["one", "two"]

    @pytest.mark.parametrize("name, value", [
        ("X-Bad Name", "v"),
        ("", "v"),
        ("X-Injected", "v\r\nBcc: victim@example.com"),
    ])
    def test_invalid_header(self, message, name, value):
        with pytest.raises(AssemblyError, match="was not able to be set"):
            message.add_header(name, value)

    def test_subject_with_line_break(self, message):
        with pytest.raises(ValueError):
            message.set_subject("Hi\nBcc: victim@example.com")

    def test_all_recipients_order(self, message):
        message.set_recipients("cc", parse_addresses("c@example.com"))
        message.set_recipients("bcc", parse_addresses("d@example.com"))
        assert [a.addr_spec for a in message.all_recipients] == [
            "a@example.com", "b@example.com", "c@example.com", "d@example.com",
        ]

    def test_to_mime_twice_does_not_duplicate(self, message):
        message.set_content("Hi", "text/plain")
        message.to_mime()
        mime = message.to_mime()
        assert mime.get_all("Subject") == ["Quarterly numbers"]
