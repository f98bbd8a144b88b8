# =============================================================================
# Exceptions
# =============================================================================
# Error kinds raised while building and assembling a message.
#
#   - UsageError:        A construct was used wrongly (missing parent mail,
#                        empty required value). Programmer error, not
#                        recoverable.
#   - AttachmentError:   An attachment source could not be resolved.
#   - LookupFailedError: A named session or message binding was not found.
#   - AssemblyError:     The message content could not be assembled. The
#                        send is aborted so partial messages never go out.
#
# Address validation problems are NOT exceptions: they are collected into a
# list by the Sender and reported as data.
# =============================================================================


class MailerError(Exception):
    """Base exception for tagmailer."""
    pass


class UsageError(MailerError):
    """Raised when a mail construct is used outside its rules."""
    pass


class AttachmentError(UsageError):
    """Raised when an attachment cannot be resolved."""
    pass


class LookupFailedError(MailerError):
    """Raised when a named binding cannot be resolved."""

    def __init__(self, name: str, reason: str = "not found") -> None:
        super().__init__(f"Lookup of {name!r} failed: {reason}")
        self.name = name
        self.reason = reason


class AssemblyError(MailerError):
    """Raised when the message content or headers cannot be assembled."""
    pass
