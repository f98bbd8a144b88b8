# =============================================================================
# Mail Elements
# =============================================================================
# Declarative building blocks that fill in a MailBuilder. Each element is
# given its owning mail explicitly and applies its effect when closed.
#
# Most elements take their value either from an argument or from body text
# written into them, mirroring markup like:
#
#   <addrecipient type="cc">bob@example.com</addrecipient>
#   <attach file="">reports/q3.pdf</attach>
#
# which reads in Python as:
#
#   with AddRecipient(mail, "cc") as rcpt:
#       rcpt.write("bob@example.com")
#   Attach(mail, file="").close("reports/q3.pdf")
# =============================================================================

from typing import TYPE_CHECKING

from tagmailer.core import AttachmentError, AttachmentPart, UsageError

if TYPE_CHECKING:
    from tagmailer.message.builder import MailBuilder


class MailElement:
    """
    Base class for elements nested in a mail.

    Body text is collected with write() and handed to close(). Used as a
    context manager, the element closes itself when the block ends without
    an error.
    """

    NAME = "element"

    def __init__(self, mail: "MailBuilder | None") -> None:
        if mail is None:
            raise UsageError(f"{self.NAME} element not nested within a mail")
        self.mail = mail
        self._body: list[str] = []

    def write(self, text: str) -> None:
        self._body.append(text)

    @property
    def body(self) -> str:
        return "".join(self._body)

    def close(self, body: str | None = None) -> None:
        """Apply this element to its mail."""
        raise NotImplementedError

    def __enter__(self) -> "MailElement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()

    def _text(self, body: str | None) -> str:
        return self.body if body is None else body


# =============================================================================
# Recipients
# =============================================================================

class AddRecipient(MailElement):
    """
    Appends an address to the to, cc or bcc field.

    Attributes:
        type: "to", "cc" or "bcc" (case-insensitive).
        address: Address to add; if empty, the body text is used.
    """

    NAME = "addrecipient"
    TYPES = ("to", "cc", "bcc")

    def __init__(
        self,
        mail: "MailBuilder | None",
        type: str,
        address: str | None = None,
    ) -> None:
        super().__init__(mail)
        kind = (type or "").strip().lower()
        if kind not in self.TYPES:
            raise UsageError('addrecipient type must be "to", "cc", or "bcc"')
        self.type = kind
        self.address = address.strip() if address else ""

    def close(self, body: str | None = None) -> None:
        address = self.address or self._text(body).strip()
        if not address:
            raise UsageError(
                "addrecipient could not find an email address. Set the "
                "address attribute, or place the address in the body."
            )
        getattr(self.mail, f"add_{self.type}")(address)


# =============================================================================
# Attachments
# =============================================================================

class Attach(MailElement):
    """
    Adds an attachment from exactly one source.

    Attributes:
        type: MIME type of inline content; the body is the content.
        file: Application-relative file path. "" means the path is in the
              body.
        url: Resource URL. "" means the URL is in the body.
    """

    NAME = "attach"

    def __init__(
        self,
        mail: "MailBuilder | None",
        type: str | None = None,
        file: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(mail)
        given = [v for v in (type, file, url) if v is not None]
        if len(given) != 1:
            raise UsageError("attach needs exactly one of type, file or url")
        self.type = type
        self.file = file
        self.url = url

    def close(self, body: str | None = None) -> None:
        text = self._text(body)

        if self.type is not None:
            part = AttachmentPart.from_inline(text, self.type)
        elif self.file is not None:
            path = self.file or text.strip()
            if not path:
                raise AttachmentError(
                    "The file name must be given in the body of the attach element."
                )
            part = AttachmentPart.from_file(path, self.mail.path_resolver)
        else:
            url = self.url or text.strip()
            if not url:
                raise AttachmentError(
                    "The url must be given in the body of the attach element."
                )
            part = AttachmentPart.from_url(url)

        self.mail.add_attachment(part)


# =============================================================================
# Headers and body
# =============================================================================

class Header(MailElement):
    """Adds an extra header; the value comes from `value` or the body."""

    NAME = "header"

    def __init__(
        self,
        mail: "MailBuilder | None",
        name: str,
        value: str | None = None,
    ) -> None:
        super().__init__(mail)
        if not name:
            raise UsageError("The header element needs a name")
        self.name = name
        self.value = value

    def close(self, body: str | None = None) -> None:
        value = self.value if self.value is not None else self._text(body)
        self.mail.add_header(self.name, value)


class Body(MailElement):
    """
    Sets the message body from the body text.

    Attributes:
        type: "text" or "html".
        charset: Character set for the Content-Type, or None.
    """

    NAME = "message"

    def __init__(
        self,
        mail: "MailBuilder | None",
        type: str = "text",
        charset: str | None = None,
    ) -> None:
        super().__init__(mail)
        self.type = type
        self.charset = charset

    def close(self, body: str | None = None) -> None:
        self.mail.set_body(self._text(body), type=self.type, charset=self.charset)


# =============================================================================
# Single-valued fields
# =============================================================================

class _ValueElement(MailElement):
    """An element whose trimmed body sets one field of the mail."""

    def close(self, body: str | None = None) -> None:
        value = self._text(body).strip()
        if not value:
            raise UsageError(f"The {self.NAME} element is empty")
        self.apply(value)

    def apply(self, value: str) -> None:
        raise NotImplementedError


class From(_ValueElement):
    NAME = "from"

    def apply(self, value: str) -> None:
        self.mail.reset_from(value)


class ReplyTo(_ValueElement):
    NAME = "replyto"

    def apply(self, value: str) -> None:
        self.mail.reset_reply_to(value)


class Subject(_ValueElement):
    NAME = "subject"

    def apply(self, value: str) -> None:
        self.mail.reset_subject(value)


class Server(_ValueElement):
    NAME = "server"

    def apply(self, value: str) -> None:
        self.mail.reset_server(value)


class Port(_ValueElement):
    NAME = "port"

    def apply(self, value: str) -> None:
        self.mail.reset_port(value)


class User(_ValueElement):
    NAME = "user"

    def apply(self, value: str) -> None:
        self.mail.set_user(value)


class Password(_ValueElement):
    NAME = "password"

    def apply(self, value: str) -> None:
        self.mail.set_password(value)
