# =============================================================================
# SMTP Transport
# =============================================================================
# Sends an assembled MailMessage through its MailSession.
#
# Key responsibilities:
#   - Connection management with SSL/STARTTLS
#   - Authentication (password from the session or the system keyring)
#   - Delivery status notification options when the server supports DSN
#   - Partial delivery: refused recipients don't stop the others
#   - Fetching URL attachments before the message is flattened
#
# Uses aiosmtplib for async operations. Runs inside the delivery worker,
# never on the caller's path.
# =============================================================================

import logging
from typing import TYPE_CHECKING

import aiosmtplib
import keyring
from keyring.errors import KeyringError

from tagmailer.smtp.fetch import AttachmentFetcher, FetchError

if TYPE_CHECKING:
    from tagmailer.core import MailSession
    from tagmailer.message.message import MailMessage

logger = logging.getLogger(__name__)


class SMTPTransport:
    """
    Async SMTP transport.

    Usage:
        >>> transport = SMTPTransport()
        >>> refused = await transport.send(message)

    Attributes:
        fetcher: Downloads URL attachments before sending.
    """

    def __init__(self, fetcher: AttachmentFetcher | None = None) -> None:
        self.fetcher = fetcher or AttachmentFetcher()

    async def send(self, message: "MailMessage") -> dict[str, str]:
        """
        Send a message.

        Args:
            message: Fully assembled message, bound to a session.

        Returns:
            Recipients the server refused (address -> server reply). Empty
            when everyone was accepted.

        Raises:
            SMTPConnectionError: If unable to connect.
            SMTPAuthenticationError: If authentication fails.
            SendError: If sending fails.
        """
        session = message.session

        if message.pending_urls:
            try:
                await self.fetcher.fill(message.pending_urls)
            except FetchError as e:
                raise SendError(str(e)) from e

        recipients = [a.addr_spec for a in message.all_recipients]
        if not recipients:
            raise SendError("No recipients specified")

        sender = None
        if message.from_address:
            sender = message.from_address.addr_spec
        elif session.default_from:
            sender = session.default_from
        if not sender:
            raise SendError("No from address set and the session has no default")

        mime = message.to_mime()
        client = await self._connect(session)

        try:
            if session.auth:
                await self._authenticate(client, session)

            mail_options, rcpt_options = await self._dsn_options(client, session)

            logger.info(f"Sending email to {', '.join(recipients)} via {session.destination}")
            errors, response = await client.send_message(
                mime,
                sender=sender,
                recipients=recipients,
                mail_options=mail_options,
                rcpt_options=rcpt_options,
            )
        except aiosmtplib.SMTPRecipientsRefused as e:
            refused = ", ".join(r.recipient for r in e.recipients)
            raise SendError(f"All recipients were refused: {refused}") from e
        except aiosmtplib.SMTPException as e:
            raise SendError(f"Failed to send email: {e}") from e
        finally:
            await self._disconnect(client)

        refused = {addr: str(reply) for addr, reply in errors.items()}
        if refused:
            if not session.send_partial:
                raise SendError(f"Some recipients were refused: {', '.join(refused)}")
            logger.warning(f"Recipients refused by {session.destination}: {', '.join(refused)}")

        logger.info(f"Email sent successfully: {response}")
        return refused

    async def _connect(self, session: "MailSession") -> aiosmtplib.SMTP:
        """
        Connect to the session's SMTP server.

        Raises:
            SMTPConnectionError: If unable to connect.
        """
        logger.info(f"Connecting to SMTP {session.destination}")

        client = aiosmtplib.SMTP(
            hostname=session.host,
            port=session.port,
            use_tls=session.security == "ssl",
            start_tls=session.security == "starttls",
            timeout=session.timeout,
        )

        try:
            await client.connect()
        except (aiosmtplib.SMTPException, OSError) as e:
            raise SMTPConnectionError(
                f"Failed to connect to SMTP {session.destination}: {e}"
            ) from e

        logger.debug("SMTP connection established")
        return client

    async def _authenticate(self, client: aiosmtplib.SMTP, session: "MailSession") -> None:
        """
        Log in, taking the password from the session or the keyring.

        Raises:
            SMTPAuthenticationError: If login fails or no password is found.
        """
        password = session.password
        if password is None:
            try:
                password = keyring.get_password(session.keyring_service, session.username)
            except KeyringError as e:
                raise SMTPAuthenticationError(
                    f"Could not read the password for {session.username} from the keyring: {e}"
                ) from e

        if not password:
            raise SMTPAuthenticationError(
                f"No password found in keyring for {session.username}. "
                f"Set it with: keyring set {session.keyring_service} {session.username}"
            )

        logger.debug(f"Authenticating as {session.username}")

        try:
            await client.login(session.username, password)
        except aiosmtplib.SMTPAuthenticationError as e:
            raise SMTPAuthenticationError(
                f"SMTP authentication failed for {session.username}: {e}"
            ) from e

    async def _dsn_options(
        self,
        client: aiosmtplib.SMTP,
        session: "MailSession",
    ) -> tuple[list[str], list[str]]:
        """MAIL FROM / RCPT TO options for delivery status notifications."""
        if not (session.dsn_notify or session.dsn_ret):
            return [], []

        if client.is_ehlo_or_helo_needed:
            await client.ehlo()

        if not client.supports_extension("dsn"):
            logger.debug(f"{session.destination} does not support DSN")
            return [], []

        mail_options = [f"RET={session.dsn_ret}"] if session.dsn_ret else []
        rcpt_options = [f"NOTIFY={session.dsn_notify}"] if session.dsn_notify else []
        return mail_options, rcpt_options

    async def _disconnect(self, client: aiosmtplib.SMTP) -> None:
        """Disconnect from the SMTP server."""
        if client.is_connected:
            try:
                logger.debug("Disconnecting from SMTP")
                await client.quit()
            except aiosmtplib.SMTPException as e:
                logger.warning(f"Error during SMTP disconnect: {e}")
                client.close()


class SMTPError(Exception):
    """Base exception for SMTP operations."""
    pass


class SMTPConnectionError(SMTPError):
    """Raised when unable to connect to SMTP server."""
    pass


class SMTPAuthenticationError(SMTPError):
    """Raised when SMTP authentication fails."""
    pass


class SendError(SMTPError):
    """Raised when email sending fails."""
    pass
