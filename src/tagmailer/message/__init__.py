# =============================================================================
# Message Module
# =============================================================================
# Building and sending one message:
#
#   - MailBuilder:  holds every field while the message is built
#   - elements:     child constructs that fill in a MailBuilder
#   - MailMessage:  the assembled message, bound to its session
#   - Sender:       validates, assembles and dispatches
# =============================================================================

from tagmailer.message.builder import MailBuilder
from tagmailer.message.elements import (
    AddRecipient,
    Attach,
    Body,
    From,
    Header,
    MailElement,
    Password,
    Port,
    ReplyTo,
    Server,
    Subject,
    User,
)
from tagmailer.message.message import MailMessage, build_content_type
from tagmailer.message.send import ErrorCursor, SendResult, SendState, Sender

__all__ = [
    "MailBuilder",
    "MailMessage",
    "build_content_type",
    "MailElement",
    "AddRecipient",
    "Attach",
    "Body",
    "Header",
    "From",
    "ReplyTo",
    "Subject",
    "Server",
    "Port",
    "User",
    "Password",
    "Sender",
    "SendResult",
    "SendState",
    "ErrorCursor",
]
