# =============================================================================
# Mail Builder
# =============================================================================
# MailBuilder is the root of a message under construction. It holds every
# field of the message and is filled in by the child constructs in
# elements.py (or directly through its setters), then consumed once by a
# Sender.
#
# Field layering:
#   - to/cc/bcc:        base value + accumulated addresses
#   - from/reply-to/
#     subject/server/
#     port:             base value + at most one override
#
# A construction scope starts with begin() (or entering the builder as a
# context manager). It clears overrides, headers and attachments, and
# seeds the address accumulators from their base values.
#
# Transport binding, in order of precedence:
#   1. a named message  (set_mime_message)
#   2. a named session  (set_session)
#   3. an ad-hoc session from server/port/credentials (the default)
# =============================================================================

import logging
from typing import TYPE_CHECKING

import keyring
from keyring.errors import KeyringError

from tagmailer.config import BODY_TYPES
from tagmailer.core import (
    AddressAccumulator,
    AttachmentPart,
    DocumentRoot,
    HeaderTable,
    LookupFailedError,
    MailSession,
    MessageBinding,
    Overridable,
    PathResolver,
    UsageError,
)
from tagmailer.message.message import MailMessage, build_content_type

if TYPE_CHECKING:
    from tagmailer.config import Config
    from tagmailer.naming import Lookup

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "localhost"
DEFAULT_PORT = "25"


class MailBuilder:
    """
    Accumulates the state of one message.

    Usage:
        >>> with MailBuilder(to="a@example.com", subject="Hi") as mail:
        ...     mail.add_to("b@example.com")
        ...     mail.set_body("Hello there")
        >>> mail.to
        'a@example.com,b@example.com'

    Attributes:
        lookup: Resolves named sessions/messages. Required only when a
                named binding is used.
        path_resolver: Maps attachment file paths to real paths.
    """

    def __init__(
        self,
        *,
        to: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
        from_address: str | None = None,
        reply_to: str | None = None,
        subject: str = "",
        body: str | None = None,
        type: str = "text/plain",
        charset: str | None = None,
        server: str = DEFAULT_SERVER,
        port: str = DEFAULT_PORT,
        authenticate: bool | str = False,
        user: str | None = None,
        password: str | None = None,
        session: str | None = None,
        mime_message: str | None = None,
        lookup: "Lookup | None" = None,
        path_resolver: PathResolver | None = None,
    ) -> None:
        self._to = AddressAccumulator(base=to)
        self._cc = AddressAccumulator(base=cc)
        self._bcc = AddressAccumulator(base=bcc)

        self._from: Overridable[str] = Overridable(base=from_address)
        self._reply_to: Overridable[str] = Overridable(base=reply_to)
        self._subject: Overridable[str] = Overridable(base=subject)
        self._server: Overridable[str] = Overridable(base=server)
        self._port: Overridable[str] = Overridable(base=port)

        self.body = body
        self.type = "text/plain"
        self.set_type(type)
        self.charset = charset

        self.headers = HeaderTable()
        self.attachments: list[AttachmentPart] = []
        self.has_attachments = False

        self.authentication = False
        self.set_authenticate(authenticate)
        self.user = user
        self.password = password

        self.session_name = session
        self.mime_message_name = mime_message
        self.lookup = lookup
        self.path_resolver: PathResolver = path_resolver or DocumentRoot()

        # Session the last produced message was bound to
        self.session: MailSession | None = None

    @classmethod
    def from_config(cls, config: "Config", lookup: "Lookup | None" = None) -> "MailBuilder":
        """
        Create a builder seeded with the [defaults] of a configuration.

        Named bindings resolve through a ConfigLookup unless another
        lookup is given.
        """
        from tagmailer.naming import ConfigLookup

        d = config.defaults
        return cls(
            to=d.to,
            cc=d.cc,
            bcc=d.bcc,
            from_address=d.from_address,
            reply_to=d.reply_to,
            subject=d.subject,
            type=d.type,
            charset=d.charset,
            server=d.server,
            port=d.port,
            authenticate=d.authenticate,
            user=d.user,
            password=d.password,
            lookup=lookup or ConfigLookup(config),
            path_resolver=DocumentRoot(config.document_root or None),
        )

    # -------------------------------------------------------------------------
    # Construction scope
    # -------------------------------------------------------------------------

    def begin(self) -> None:
        """Start a construction scope."""
        self._to.begin()
        self._cc.begin()
        self._bcc.begin()
        for item in (self._from, self._reply_to, self._subject,
                     self._server, self._port):
            item.clear()
        self.headers.clear()
        self.attachments.clear()
        self.has_attachments = False
        self.session = None

    def __enter__(self) -> "MailBuilder":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    # -------------------------------------------------------------------------
    # Base values
    # -------------------------------------------------------------------------

    def set_to(self, value: str | None) -> None:
        self._to.base = value

    def set_cc(self, value: str | None) -> None:
        self._cc.base = value

    def set_bcc(self, value: str | None) -> None:
        self._bcc.base = value

    def set_from(self, value: str | None) -> None:
        self._from.base = value

    def set_reply_to(self, value: str | None) -> None:
        self._reply_to.base = value

    def set_subject(self, value: str) -> None:
        self._subject.base = value

    def set_server(self, value: str) -> None:
        self._server.base = value

    def set_port(self, value: str) -> None:
        self._port.base = value

    def set_body(
        self,
        body: str,
        type: str | None = None,
        charset: str | None = None,
    ) -> None:
        """Set the body text, and optionally its type and charset."""
        self.body = body
        if type is not None:
            self.set_type(type)
        self.charset = charset

    def set_type(self, value: str) -> None:
        """"html" (or "text/html") selects HTML; anything else plain text."""
        if BODY_TYPES.get(value.strip().lower()) == "text/html":
            self.type = "text/html"
        else:
            self.type = "text/plain"

    def set_charset(self, value: str | None) -> None:
        self.charset = value

    def set_user(self, value: str) -> None:
        self.user = value

    def set_password(self, value: str) -> None:
        self.password = value

    def set_authenticate(self, value: bool | str) -> None:
        if isinstance(value, str):
            value = value.strip().lower() == "true"
        self.authentication = bool(value)

    def set_session(self, name: str | None) -> None:
        self.session_name = name

    def set_mime_message(self, name: str | None) -> None:
        self.mime_message_name = name

    # -------------------------------------------------------------------------
    # Accumulation and overrides
    # -------------------------------------------------------------------------

    def add_to(self, address: str) -> None:
        self._to.append(address)

    def add_cc(self, address: str) -> None:
        self._cc.append(address)

    def add_bcc(self, address: str) -> None:
        self._bcc.append(address)

    def reset_to(self, address: str) -> None:
        self._to.reset(address)

    def reset_cc(self, address: str) -> None:
        self._cc.reset(address)

    def reset_bcc(self, address: str) -> None:
        self._bcc.reset(address)

    def reset_from(self, value: str) -> None:
        self._from.reset(value)

    def reset_reply_to(self, value: str) -> None:
        self._reply_to.reset(value)

    def reset_subject(self, value: str) -> None:
        self._subject.reset(value)

    def reset_server(self, value: str) -> None:
        self._server.reset(value)

    def reset_port(self, value: str) -> None:
        self._port.reset(value)

    def add_header(self, name: str, value: str) -> None:
        self.headers.add(name, value)

    def add_attachment(self, part: AttachmentPart) -> None:
        self.attachments.append(part)
        self.has_attachments = True

    # -------------------------------------------------------------------------
    # Effective values
    # -------------------------------------------------------------------------

    @property
    def to(self) -> str:
        return self._to.current_value()

    @property
    def cc(self) -> str:
        return self._cc.current_value()

    @property
    def bcc(self) -> str:
        return self._bcc.current_value()

    @property
    def from_address(self) -> str | None:
        return self._from.value

    @property
    def reply_to(self) -> str | None:
        return self._reply_to.value

    @property
    def subject(self) -> str:
        return self._subject.value or ""

    @property
    def server(self) -> str:
        return self._server.value or DEFAULT_SERVER

    @property
    def port(self) -> str:
        return self._port.value or DEFAULT_PORT

    @property
    def content_type(self) -> str:
        """The body type, with ";charset=..." when a charset is set."""
        return build_content_type(self.type, self.charset)

    # -------------------------------------------------------------------------
    # Message production
    # -------------------------------------------------------------------------

    def produce_message(self) -> MailMessage:
        """
        Create an empty message bound to the right session.

        Returns:
            A MailMessage whose session is resolved from the named message,
            the named session, or the ad-hoc server settings.

        Raises:
            LookupFailedError: If a named binding can't be resolved.
            UsageError: If the ad-hoc settings are unusable.
        """
        if self.mime_message_name:
            binding = self._resolve(self.mime_message_name)
            if not isinstance(binding, MessageBinding):
                raise LookupFailedError(self.mime_message_name, "not a mail message")
            session = binding.session
        elif self.session_name:
            session = self._resolve(self.session_name)
            if not isinstance(session, MailSession):
                raise LookupFailedError(self.session_name, "not a mail session")
        else:
            session = self._adhoc_session()

        self.session = session
        logger.debug(f"Producing message for session {session!r}")
        return MailMessage(session)

    def _resolve(self, name: str) -> object:
        if self.lookup is None:
            raise LookupFailedError(name, "no lookup configured")
        return self.lookup.lookup(name)

    def _adhoc_session(self) -> MailSession:
        try:
            port = int(self.port)
        except ValueError:
            raise UsageError(f"The port {self.port!r} is not a number") from None

        session = MailSession(
            host=self.server,
            port=port,
            send_partial=True,
            dsn_notify="FAILURE",
            dsn_ret="FULL",
        )

        if self.authentication:
            if not self.user:
                raise UsageError("A user must be supplied when authenticate is true")
            password = self.password
            if password is None:
                try:
                    password = keyring.get_password(session.keyring_service, self.user)
                except KeyringError as e:
                    raise UsageError(
                        f"Could not read the password for {self.user} from the keyring: {e}. "
                        f"Set it with: keyring set {session.keyring_service} {self.user}"
                    ) from e
            if password is None:
                raise UsageError(
                    f"No password supplied for {self.user}. "
                    f"Set it with: keyring set {session.keyring_service} {self.user}"
                )
            session.auth = True
            session.username = self.user
            session.password = password

        return session

    def __repr__(self) -> str:
        return (
            f"MailBuilder(to={self.to!r}, subject={self.subject!r}, "
            f"attachments={len(self.attachments)})"
        )
