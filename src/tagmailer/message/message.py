# =============================================================================
# Mail Message
# =============================================================================
# The message object a send produces: envelope fields, extra headers and the
# content, bound to the MailSession it will be sent through.
#
# Content is assembled into email.mime parts as soon as it is set, so a
# broken body or attachment fails during the send call, never in the
# delivery worker. Headers are applied when the final MIME tree is built
# by to_mime().
#
# Structure:
#   - no attachments:   the body part itself (text/plain or text/html)
#   - with attachments: multipart/mixed, body first, then each attachment
#                       in the order it was added
# =============================================================================

import copy
import logging
from datetime import datetime, timezone
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import format_datetime, make_msgid
from typing import Sequence

from tagmailer.core import AssemblyError, AttachmentPart, MailSession
from tagmailer.core.attachment import split_content_type
from tagmailer.smtp.addresses import Address

logger = logging.getLogger(__name__)

# Recipient kinds accepted by set_recipients()
RECIPIENT_HEADERS = {"to": "To", "cc": "Cc", "bcc": "Bcc"}

X_MAILER = "tagmailer"


def build_content_type(content_type: str, charset: str | None) -> str:
    """
    Combine a body type and optional charset into a Content-Type value.

    >>> build_content_type("text/plain", None)
    'text/plain'
    >>> build_content_type("text/html", "UTF-8")
    'text/html;charset=UTF-8'
    """
    if charset is None:
        return content_type
    return f"{content_type};charset={charset}"


class MailMessage:
    """
    A message under assembly.

    Usage:
        >>> message = MailMessage(session)
        >>> message.set_recipients("to", parse_addresses("a@example.com"))
        >>> message.set_subject("Hello")
        >>> message.set_content("Hi!", "text/plain")
        >>> mime = message.to_mime()

    Attributes:
        session: The session this message will be sent through.
        content_type: Content-Type of the body, once content is set.
        attachment_parts: Attachments included in the content.
    """

    def __init__(self, session: MailSession) -> None:
        self.session = session

        self.recipients: dict[str, list[Address]] = {}
        self.from_address: Address | None = None
        self.reply_to: list[Address] = []
        self.subject: str = ""
        self.sent_date: datetime | None = None
        self.headers: list[tuple[str, str]] = []
        # Fixed the first time the MIME tree is built
        self.message_id: str | None = None

        self.content_type: str | None = None
        self.attachment_parts: list[AttachmentPart] = []
        self._body_part: MIMEBase | None = None
        self._container: MIMEMultipart | None = None
        # (MIME part, URL) pairs whose payload the worker must fetch
        self.pending_urls: list[tuple[MIMEBase, str]] = []

    # -------------------------------------------------------------------------
    # Envelope
    # -------------------------------------------------------------------------

    def set_recipients(self, kind: str, addresses: Sequence[Address]) -> None:
        if kind not in RECIPIENT_HEADERS:
            raise ValueError(f"Unknown recipient kind: {kind!r}")
        self.recipients[kind] = list(addresses)

    def set_from(self, address: Address) -> None:
        self.from_address = address

    def set_reply_to(self, addresses: Sequence[Address]) -> None:
        self.reply_to = list(addresses)

    def set_subject(self, subject: str) -> None:
        """
        Raises:
            ValueError: If the subject contains a line break.
        """
        _check_header_value("Subject", subject)
        self.subject = subject

    def set_sent_date(self, when: datetime | None = None) -> None:
        self.sent_date = when or datetime.now(timezone.utc)

    def add_header(self, name: str, value: str) -> None:
        """
        Add an extra header. Duplicates are kept, in order.

        Raises:
            AssemblyError: If the name or value can't be used in a header.
        """
        try:
            if not name or any(c in name for c in ": \t\r\n"):
                raise ValueError(f"Invalid header name: {name!r}")
            _check_header_value(name, value)
        except ValueError as e:
            raise AssemblyError(f"Header {name} was not able to be set") from e
        self.headers.append((name, value))

    @property
    def all_recipients(self) -> list[Address]:
        """To, Cc and Bcc recipients, in that order."""
        result = []
        for kind in RECIPIENT_HEADERS:
            result.extend(self.recipients.get(kind, []))
        return result

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def set_content(self, body: str | None, content_type: str) -> None:
        """
        Use a single body part as the whole message content.

        Raises:
            ValueError: If body is None or content_type isn't a text type.
        """
        self._body_part = self._make_body_part(body, content_type)
        self._container = None
        self.content_type = content_type
        self.attachment_parts = []
        self.pending_urls = []

    def set_multipart(
        self,
        body: str | None,
        content_type: str,
        parts: Sequence[AttachmentPart],
    ) -> None:
        """
        Use a multipart/mixed container: the body, then each attachment.

        Raises:
            ValueError: If the body or an attachment can't be turned into
                        a MIME part.
        """
        container = MIMEMultipart("mixed")
        container.attach(self._make_body_part(body, content_type))

        pending = []
        for part in parts:
            mime_part = part.to_mime()
            if part.is_deferred:
                pending.append((mime_part, part.location))
            container.attach(mime_part)

        self._body_part = None
        self._container = container
        self.content_type = content_type
        self.attachment_parts = list(parts)
        self.pending_urls = pending

    @property
    def is_multipart(self) -> bool:
        return self._container is not None

    @staticmethod
    def _make_body_part(body: str | None, content_type: str) -> MIMEText:
        if body is None:
            raise ValueError("Message body is not set")

        essence, _, params = content_type.partition(";")
        maintype, subtype = split_content_type(essence)
        if maintype != "text":
            raise ValueError(f"Body must be a text type, not {essence!r}")

        charset = None
        for param in params.split(";"):
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                charset = value.strip().strip('"')

        if charset:
            return MIMEText(body, subtype, charset)
        return MIMEText(body, subtype)

    # -------------------------------------------------------------------------
    # MIME output
    # -------------------------------------------------------------------------

    def to_mime(self) -> MIMEBase:
        """
        Build the final MIME message with all headers applied.

        Raises:
            AssemblyError: If no content has been set.
        """
        root = self._container or self._body_part
        if root is None:
            raise AssemblyError("The message has no content")

        for header in ("From", "To", "Cc", "Bcc", "Reply-To", "Subject",
                       "Date", "Message-ID", "X-Mailer",
                       *(name for name, _ in self.headers)):
            del root[header]

        if self.from_address:
            root["From"] = str(self.from_address)
        for kind, header in RECIPIENT_HEADERS.items():
            if self.recipients.get(kind):
                root[header] = ", ".join(str(a) for a in self.recipients[kind])
        if self.reply_to:
            root["Reply-To"] = ", ".join(str(a) for a in self.reply_to)
        root["Subject"] = self.subject
        if self.sent_date:
            root["Date"] = format_datetime(self.sent_date)

        if self.message_id is None:
            domain = None
            if self.from_address and "@" in self.from_address.addr_spec:
                domain = self.from_address.addr_spec.rsplit("@", 1)[1]
            self.message_id = make_msgid(domain=domain)
        root["Message-ID"] = self.message_id

        for name, value in self.headers:
            root[name] = value
        root["X-Mailer"] = X_MAILER

        return root

    def snapshot(self) -> "MailMessage":
        """
        An independent copy for the delivery worker.

        The MIME tree is built first so both copies carry the same
        Message-ID. The worker may fill in URL parts and rebuild headers on
        its copy without the original changing.

        Raises:
            AssemblyError: If no content has been set.
        """
        self.to_mime()
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        to = ", ".join(a.addr_spec for a in self.recipients.get("to", []))
        return (
            f"MailMessage(to={to!r}, subject={self.subject!r}, "
            f"attachments={len(self.attachment_parts)})"
        )


def _check_header_value(name: str, value: str) -> None:
    if "\r" in value or "\n" in value:
        raise ValueError(f"{name} header value contains a line break")
