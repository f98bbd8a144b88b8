# =============================================================================
# Named Bindings
# =============================================================================
# A mail can be bound to a pre-configured session or message by name instead
# of giving server/port/credentials inline. The hosting application decides
# where names come from by supplying a Lookup:
#
#   - MappingLookup: names registered in code
#   - ConfigLookup:  [sessions.*] and [messages.*] tables in config.toml
#
# A lookup either returns the bound object or raises LookupFailedError.
# =============================================================================

import logging
from typing import Any, Mapping, Protocol

from tagmailer.config import Config
from tagmailer.core import LookupFailedError, MessageBinding

logger = logging.getLogger(__name__)


class Lookup(Protocol):
    """Resolves a binding name to a MailSession or MessageBinding."""

    def lookup(self, name: str) -> Any:
        ...


class MappingLookup:
    """
    Lookup backed by a plain mapping.

    Usage:
        >>> lookup = MappingLookup({"mail/relay": MailSession(host="relay")})
        >>> lookup.lookup("mail/relay").host
        'relay'
    """

    def __init__(self, bindings: Mapping[str, Any] | None = None) -> None:
        self._bindings: dict[str, Any] = dict(bindings or {})

    def bind(self, name: str, value: Any) -> None:
        self._bindings[name] = value

    def lookup(self, name: str) -> Any:
        try:
            return self._bindings[name]
        except KeyError:
            raise LookupFailedError(name) from None


class ConfigLookup:
    """Lookup over the named sessions and messages of a Config."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def lookup(self, name: str) -> Any:
        if name in self.config.messages:
            session_name = self.config.messages[name].session
            session_config = self.config.sessions.get(session_name)
            if session_config is None:
                raise LookupFailedError(name, f"unknown session {session_name!r}")
            logger.debug(f"Resolved message {name!r} to session {session_name!r}")
            return MessageBinding(name=name, session=session_config.to_session(session_name))

        if name in self.config.sessions:
            return self.config.sessions[name].to_session(name)

        raise LookupFailedError(name)
