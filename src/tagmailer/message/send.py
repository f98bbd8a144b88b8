# =============================================================================
# Sender
# =============================================================================
# Turns a finished MailBuilder into a MailMessage and dispatches it.
#
# States:
#
#   BUILDING -> VALIDATING -> READY   (message dispatched in the background)
#                          -> FAILED  (errors returned, nothing sent)
#
# Error policy:
#   - address problems are collected, one message per field, and returned
#     as data; validation carries on through every field
#   - subject problems are recorded as warnings
#   - header and content assembly problems raise AssemblyError: a
#     half-built message must never be sent
#   - delivery problems happen in the worker and only reach the log sink
# =============================================================================

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Iterator

from tagmailer.core import AssemblyError, UsageError
from tagmailer.smtp.addresses import (
    AddressParseError,
    offending_fragment,
    parse_address,
    parse_addresses,
)

if TYPE_CHECKING:
    from tagmailer.message.builder import MailBuilder
    from tagmailer.message.message import MailMessage
    from tagmailer.smtp.dispatch import MailDispatcher

logger = logging.getLogger(__name__)


class SendState(Enum):
    """Where a send attempt is."""
    BUILDING = auto()
    VALIDATING = auto()
    READY = auto()
    FAILED = auto()


class ErrorCursor:
    """
    Forward-only cursor over a list of error messages.

    Usage:
        >>> cursor = result.cursor()
        >>> while cursor.advance():
        ...     print(cursor.current)

    restart() puts the cursor back before the first error.
    """

    def __init__(self, errors: list[str]) -> None:
        self._errors = list(errors)
        self._index = -1

    def advance(self) -> bool:
        """Move to the next error. Returns False once exhausted."""
        if self._index + 1 >= len(self._errors):
            self._index = len(self._errors)
            return False
        self._index += 1
        return True

    @property
    def current(self) -> str:
        """
        The error the cursor is positioned on.

        Raises:
            UsageError: If the cursor is before the first or past the last error.
        """
        if not 0 <= self._index < len(self._errors):
            raise UsageError("error cursor is not positioned on an error")
        return self._errors[self._index]

    def restart(self) -> None:
        self._index = -1

    def __iter__(self) -> Iterator[str]:
        self.restart()
        while self.advance():
            yield self.current

    def __len__(self) -> int:
        return len(self._errors)


@dataclass
class SendResult:
    """
    Outcome of a send attempt.

    Attributes:
        state: READY if the message was accepted for delivery, else FAILED.
        errors: Validation errors, in the order fields were checked.
        warnings: Non-fatal problems (subject).
        message: The assembled message. The worker sends a copy of it, so
                 it never changes after the send.
    """
    state: SendState
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    message: "MailMessage | None" = None

    @property
    def accepted(self) -> bool:
        """True if the message was handed off for delivery (not delivered)."""
        return self.state is SendState.READY

    def cursor(self) -> ErrorCursor:
        return ErrorCursor(self.errors)


class Sender:
    """
    Validates a mail and, if it is clean, dispatches it.

    Usage:
        >>> result = Sender(mail, dispatcher).send()
        >>> if not result.accepted:
        ...     for error in result.cursor():
        ...         print(error)

    A Sender consumes its mail once; build a new mail for the next message.
    """

    def __init__(
        self,
        mail: "MailBuilder | None",
        dispatcher: "MailDispatcher",
    ) -> None:
        if mail is None:
            raise UsageError("send element not nested within a mail")
        self.mail = mail
        self.dispatcher = dispatcher
        self.state = SendState.BUILDING
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def send(self) -> SendResult:
        """
        Validate, assemble and dispatch.

        Returns:
            SendResult. On FAILED, errors holds the messages to show.

        Raises:
            UsageError: If the send was already attempted, or the session
                        settings are unusable.
            LookupFailedError: If a named binding can't be resolved.
            AssemblyError: If a header or the content can't be assembled.
        """
        if self.state is not SendState.BUILDING:
            raise UsageError("A mail can only be sent once")

        self.state = SendState.VALIDATING
        mail = self.mail
        message = mail.produce_message()

        for name, value in mail.headers:
            message.add_header(name, value)

        to = mail.to
        if to:
            self._set_recipients(message, "to", to)
        else:
            self.errors.append("A to address must be supplied.")

        self._set_reply_to(message)
        self._set_from(message)

        if mail.cc:
            self._set_recipients(message, "cc", mail.cc)
        if mail.bcc:
            self._set_recipients(message, "bcc", mail.bcc)

        message.set_sent_date()
        try:
            message.set_subject(mail.subject)
        except ValueError as e:
            warning = f"The subject could not be set in the message: {e}"
            logger.warning(warning)
            self.warnings.append(warning)

        self._set_content(message)

        if self.errors:
            self.state = SendState.FAILED
            logger.info(f"Mail not sent, {len(self.errors)} validation error(s)")
        else:
            self.state = SendState.READY
            # The worker gets its own copy; result.message stays as sent
            self.dispatcher.dispatch(message.snapshot(), mailto=to)
            logger.info(f"Mail to {to} accepted for delivery")

        return SendResult(
            state=self.state,
            errors=list(self.errors),
            warnings=list(self.warnings),
            message=message,
        )

    # -------------------------------------------------------------------------
    # Field validation
    # -------------------------------------------------------------------------

    def _set_recipients(self, message: "MailMessage", kind: str, value: str) -> None:
        try:
            message.set_recipients(kind, parse_addresses(value))
        except AddressParseError as e:
            ref = offending_fragment(e.ref, e.pos)
            self.errors.append(f"The {kind} address {ref} is not in the proper format.")

    def _set_reply_to(self, message: "MailMessage") -> None:
        reply_to = self.mail.reply_to
        if reply_to is None:
            return
        try:
            message.set_reply_to(parse_addresses(reply_to))
        except AddressParseError:
            self.errors.append("The Reply-To address was incorrectly set")

    def _set_from(self, message: "MailMessage") -> None:
        from_address = self.mail.from_address
        try:
            if not from_address or len(from_address) < 2:
                default = message.session.default_from
                if default:
                    message.set_from(parse_address(default))
            else:
                message.set_from(parse_address(from_address))
        except AddressParseError:
            self.errors.append(
                "The from address was not set or is not in the proper format "
                "for an email address."
            )

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def _set_content(self, message: "MailMessage") -> None:
        mail = self.mail
        if mail.has_attachments:
            try:
                message.set_multipart(mail.body, mail.content_type, mail.attachments)
            except (ValueError, LookupError) as e:
                raise AssemblyError(
                    "An error occurred while trying to add the attachments to "
                    "the e-mail, please try to send the e-mail again."
                ) from e
        else:
            try:
                message.set_content(mail.body, mail.content_type)
            except (ValueError, LookupError) as e:
                raise AssemblyError(
                    "The message could not be set in the e-mail, please back "
                    "up and try again."
                ) from e
