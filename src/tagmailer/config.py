# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating tagmailer configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/tagmailer/  (default: ~/.config/tagmailer/)
#
# Files:
#   - config.toml: defaults for every message, plus named sessions and
#                  named messages that can be bound by name
#
# Example config.toml:
#
#   [general]
#   document_root = "/srv/site"
#
#   [defaults]
#   server = "smtp.example.com"
#   port = "587"
#   from = "noreply@example.com"
#
#   [sessions.relay]
#   host = "relay.example.com"
#   port = 465
#   security = "ssl"
#   auth = true
#   username = "mailer"          # password lives in the keyring
#
#   [messages.newsletter]
#   session = "relay"
# =============================================================================

import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w  # For writing TOML (tomllib is read-only)

from tagmailer.core import MailSession


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "tagmailer"

# Accepted spellings of the body type option
BODY_TYPES = {
    "text": "text/plain",
    "plain": "text/plain",
    "text/plain": "text/plain",
    "html": "text/html",
    "text/html": "text/html",
}


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for tagmailer.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/tagmailer/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def ensure_directories() -> dict[str, Path]:
    """Creates the config directory if it doesn't exist."""
    dirs = {"config": get_xdg_config_home()}
    for dir_path in dirs.values():
        dir_path.mkdir(parents=True, exist_ok=True)
    return dirs


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class DefaultsConfig:
    """
    Defaults applied to every message built from this configuration.

    Attributes:
        server: SMTP server used for ad-hoc sessions.
        port: SMTP port used for ad-hoc sessions (kept as text, as written
              by page authors).
        authenticate: Log in to the server before sending.
        user: Login name, required when authenticate is True.
        password: Login password. Leave unset to use the system keyring.
        type: Body content type ("text/plain" or "text/html").
        charset: Body character set, or None to leave it unspecified.
        from_address: Default From address.
        reply_to: Default Reply-To address.
        to, cc, bcc: Base recipient lists (comma-separated).
        subject: Default subject.
    """
    server: str = "localhost"
    port: str = "25"
    authenticate: bool = False
    user: str | None = None
    password: str | None = None
    type: str = "text/plain"
    charset: str | None = None
    from_address: str | None = None
    reply_to: str | None = None
    to: str | None = None
    cc: str | None = None
    bcc: str | None = None
    subject: str = ""


@dataclass
class SessionConfig:
    """
    A named transport session.

    Mirrors MailSession; see tagmailer.core.session for field meanings.
    """
    host: str = "localhost"
    port: int = 25
    security: str = "none"
    auth: bool = False
    username: str | None = None
    password: str | None = None
    default_from: str | None = None
    send_partial: bool = True
    dsn_notify: str | None = "FAILURE"
    dsn_ret: str | None = "FULL"
    timeout: float = 30

    def to_session(self, name: str) -> MailSession:
        """Build the MailSession this entry describes."""
        return MailSession(
            host=self.host,
            port=self.port,
            security=self.security,
            auth=self.auth,
            username=self.username,
            password=self.password,
            default_from=self.default_from,
            send_partial=self.send_partial,
            dsn_notify=self.dsn_notify,
            dsn_ret=self.dsn_ret,
            timeout=self.timeout,
            name=name,
        )


@dataclass
class MessageConfig:
    """A named, pre-configured message. Only its session is used."""
    session: str


@dataclass
class Config:
    """
    Main configuration container for tagmailer.

    Attributes:
        document_root: Directory attachment file paths are resolved
                       against. Empty means the current directory.
        defaults: Defaults for every message.
        sessions: Named sessions (name -> SessionConfig).
        messages: Named messages (name -> MessageConfig).

    Usage:
        >>> config = Config.load()
        >>> config.defaults.server
        'localhost'
    """
    document_root: str = ""
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    sessions: dict[str, SessionConfig] = field(default_factory=dict)
    messages: dict[str, MessageConfig] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from a config file.

        If the config file doesn't exist, returns default configuration.

        Args:
            path: Config file to read. Defaults to the XDG location.

        Returns:
            Loaded Config object.

        Raises:
            ConfigError: If the config file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        if not config_path.exists():
            # No config file yet - return defaults
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file: {e}") from e

        config = cls._from_dict(data)
        config.validate()
        return config

    def save(self, path: Path | None = None) -> None:
        """
        Save configuration to a config file.

        Creates the config directory if it doesn't exist.
        """
        if path is None:
            ensure_directories()
            path = self.config_file_path()

        with open(path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    def validate(self) -> None:
        """
        Check option combinations that can't work.

        Raises:
            ConfigError: On the first problem found.
        """
        if self.defaults.type not in BODY_TYPES.values():
            raise ConfigError(f"Unknown body type: {self.defaults.type!r}")
        if self.defaults.authenticate and not self.defaults.user:
            raise ConfigError("defaults: 'user' is required when authenticate = true")

        for name, session in self.sessions.items():
            if session.security not in ("none", "starttls", "ssl"):
                raise ConfigError(
                    f"sessions.{name}: security must be none, starttls or ssl"
                )
            if session.auth and not session.username:
                raise ConfigError(
                    f"sessions.{name}: 'username' is required when auth = true"
                )

        for name, message in self.messages.items():
            if message.session not in self.sessions:
                raise ConfigError(
                    f"messages.{name}: unknown session {message.session!r}"
                )

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).
        """
        config = cls()

        # General settings
        general = data.get("general", {})
        config.document_root = general.get("document_root", "")

        # Per-message defaults
        defaults = data.get("defaults", {})
        body_type = defaults.get("type", "text/plain")
        config.defaults = DefaultsConfig(
            server=defaults.get("server", "localhost"),
            port=str(defaults.get("port", "25")),
            authenticate=defaults.get("authenticate", False),
            user=defaults.get("user"),
            password=defaults.get("password"),
            type=BODY_TYPES.get(body_type.lower(), body_type),
            charset=defaults.get("charset"),
            from_address=defaults.get("from"),
            reply_to=defaults.get("reply_to"),
            to=defaults.get("to"),
            cc=defaults.get("cc"),
            bcc=defaults.get("bcc"),
            subject=defaults.get("subject", ""),
        )

        # Sessions - each key under [sessions] is a session name
        for name, sess in data.get("sessions", {}).items():
            config.sessions[name] = SessionConfig(
                host=sess.get("host", "localhost"),
                port=sess.get("port", 25),
                security=sess.get("security", "none"),
                auth=sess.get("auth", False),
                username=sess.get("username"),
                password=sess.get("password"),
                default_from=sess.get("from"),
                send_partial=sess.get("send_partial", True),
                dsn_notify=sess.get("dsn_notify", "FAILURE"),
                dsn_ret=sess.get("dsn_ret", "FULL"),
                timeout=sess.get("timeout", 30),
            )

        # Messages - each key under [messages] is a message name
        for name, msg in data.get("messages", {}).items():
            if "session" not in msg:
                raise ConfigError(f"messages.{name}: 'session' is required")
            config.messages[name] = MessageConfig(session=msg["session"])

        return config

    def _to_dict(self) -> dict[str, Any]:
        """
        Convert Config to a dictionary for TOML serialization.

        TOML has no null, so unset options are left out.
        """
        data: dict[str, Any] = {}

        data["general"] = {
            "document_root": self.document_root,
        }

        d = self.defaults
        data["defaults"] = _drop_none({
            "server": d.server,
            "port": d.port,
            "authenticate": d.authenticate,
            "user": d.user,
            "password": d.password,
            "type": d.type,
            "charset": d.charset,
            "from": d.from_address,
            "reply_to": d.reply_to,
            "to": d.to,
            "cc": d.cc,
            "bcc": d.bcc,
            "subject": d.subject,
        })

        data["sessions"] = {}
        for name, s in self.sessions.items():
            data["sessions"][name] = _drop_none({
                "host": s.host,
                "port": s.port,
                "security": s.security,
                "auth": s.auth,
                "username": s.username,
                "password": s.password,
                "from": s.default_from,
                "send_partial": s.send_partial,
                "dsn_notify": s.dsn_notify,
                "dsn_ret": s.dsn_ret,
                "timeout": s.timeout,
            })

        data["messages"] = {
            name: {"session": m.session} for name, m in self.messages.items()
        }

        return data


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading or parsing configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """
    Print config paths for debugging.
    Useful for users wondering where their config is stored.
    """
    print(f"Config:       {get_xdg_config_home()}")
    print(f"Config file:  {Config.config_file_path()}")
