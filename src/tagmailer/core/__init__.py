# =============================================================================
# tagmailer Core Module
# =============================================================================
# Plain data structures used while a message is built. Only the standard
# library is imported here, so these can be used from anywhere without
# circular imports.
#
#   - Field containers: AddressAccumulator, Overridable, HeaderTable
#   - AttachmentPart: a resolved attachment
#   - MailSession / MessageBinding: transport configuration
#   - Exceptions shared by the builder and the sender
# =============================================================================

from tagmailer.core.attachment import (
    AttachmentPart,
    AttachmentSource,
    DocumentRoot,
    PathResolver,
)
from tagmailer.core.errors import (
    AssemblyError,
    AttachmentError,
    LookupFailedError,
    MailerError,
    UsageError,
)
from tagmailer.core.fields import AddressAccumulator, HeaderTable, Overridable
from tagmailer.core.session import MailSession, MessageBinding

__all__ = [
    "AddressAccumulator",
    "Overridable",
    "HeaderTable",
    "AttachmentPart",
    "AttachmentSource",
    "DocumentRoot",
    "PathResolver",
    "MailSession",
    "MessageBinding",
    "MailerError",
    "UsageError",
    "AttachmentError",
    "LookupFailedError",
    "AssemblyError",
]
