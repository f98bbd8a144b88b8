# =============================================================================
# Mail Session Model
# =============================================================================
# A MailSession is the transport configuration a message is sent through:
# server, port, security, credentials and delivery options.
#
# Sessions are either built ad hoc from the mail's server/port/credentials,
# or looked up by name (see naming.py). A MessageBinding is a named,
# pre-configured message; the only thing we take from it is its session.
#
# Credentials may be left out of config files and kept in the system
# keyring, like account passwords in an email client.
# =============================================================================

from dataclasses import dataclass

# Service name prefix used for keyring lookups
KEYRING_PREFIX = "tagmailer"


@dataclass
class MailSession:
    """
    Transport configuration for sending a message.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        security: "none", "starttls" or "ssl".
        auth: Whether to log in before sending.
        username: Login name (required when auth is True).
        password: Login password (may be fetched from the keyring).
        default_from: From address used when the message doesn't set one.
        send_partial: Deliver to the accepted recipients even when some
                      are refused by the server.
        dsn_notify: Delivery status notification NOTIFY value.
        dsn_ret: Delivery status notification RET value.
        timeout: Timeout for SMTP operations (seconds).
        name: Binding name, or "" for ad-hoc sessions.
    """
    host: str = "localhost"
    port: int = 25
    security: str = "none"              # "none", "starttls" or "ssl"

    auth: bool = False
    username: str | None = None
    password: str | None = None

    default_from: str | None = None

    send_partial: bool = True
    dsn_notify: str | None = "FAILURE"
    dsn_ret: str | None = "FULL"

    timeout: float = 30
    name: str = ""

    @property
    def keyring_service(self) -> str:
        """
        Returns the service name used for keyring password storage:
            keyring set tagmailer:smtp.example.com user@example.com
        """
        return f"{KEYRING_PREFIX}:{self.host}"

    @property
    def destination(self) -> str:
        """host:port, for log messages."""
        return f"{self.host}:{self.port}"

    def __repr__(self) -> str:
        return (
            f"MailSession(name={self.name!r}, host={self.host!r}, "
            f"port={self.port}, auth={self.auth})"
        )


@dataclass
class MessageBinding:
    """A named, pre-configured message and the session it belongs to."""
    name: str
    session: MailSession
