# =============================================================================
# tagmailer: Declarative E-mail Building and Sending
# =============================================================================
#
# tagmailer lets an application describe an e-mail piece by piece
# (recipients, subject, body, headers, attachments, SMTP server and
# credentials) and send it without touching MIME or SMTP directly.
#
#   with MailBuilder(to="ops@example.com", subject="Nightly report") as mail:
#       AddRecipient(mail, "cc").close("lead@example.com")
#       Attach(mail, file="reports/nightly.pdf").close()
#       mail.set_body("See attached.")
#
#   result = Sender(mail, MailDispatcher()).send()
#
# Features:
#   - Base values plus per-message overrides for every field
#   - Address validation that reports every bad field, not just the first
#   - Inline, file and URL attachments
#   - Ad-hoc or named (config.toml) SMTP sessions, keyring passwords
#   - Fire-and-forget delivery in a background worker
#   - XDG Base Directory compliant
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "tagmailer"

from tagmailer.message import (
    AddRecipient,
    Attach,
    Body,
    MailBuilder,
    Sender,
    SendResult,
)
from tagmailer.smtp import MailDispatcher

__all__ = [
    "MailBuilder",
    "AddRecipient",
    "Attach",
    "Body",
    "Sender",
    "SendResult",
    "MailDispatcher",
    "__version__",
    "__app_name__",
]
