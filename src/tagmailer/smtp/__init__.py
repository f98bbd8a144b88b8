# =============================================================================
# SMTP Module
# =============================================================================
# Handles getting a built message to an SMTP server.
#
# Features:
#   - Address list parsing with error locations
#   - Async SMTP transport with SSL/STARTTLS, login and DSN options
#   - URL attachment fetching at delivery time
#   - Fire-and-forget background dispatch
# =============================================================================

from tagmailer.smtp.addresses import (
    Address,
    AddressParseError,
    offending_fragment,
    parse_address,
    parse_addresses,
)
from tagmailer.smtp.client import (
    SMTPTransport,
    SMTPError,
    SMTPConnectionError,
    SMTPAuthenticationError,
    SendError,
)
from tagmailer.smtp.dispatch import LogSink, MailDispatcher, Transport
from tagmailer.smtp.fetch import AttachmentFetcher, FetchError

__all__ = [
    "Address",
    "AddressParseError",
    "parse_address",
    "parse_addresses",
    "offending_fragment",
    "SMTPTransport",
    "SMTPError",
    "SMTPConnectionError",
    "SMTPAuthenticationError",
    "SendError",
    "MailDispatcher",
    "Transport",
    "LogSink",
    "AttachmentFetcher",
    "FetchError",
]
