# =============================================================================
# Attachment Model
# =============================================================================
# An attachment comes from exactly one source:
#
#   - INLINE: content given directly, together with its MIME type
#   - FILE:   an application-relative path, mapped to a real file path
#   - URL:    a remote resource, fetched by the delivery worker
#
# Inline and file sources are resolved eagerly, when the attachment is
# closed. URL sources are only checked for shape here; their payload is
# downloaded right before the message goes out (see smtp/fetch.py).
# =============================================================================

import logging
import mimetypes
from dataclasses import dataclass
from email.encoders import encode_base64
from email.mime.base import MIMEBase
from email.mime.text import MIMEText
from enum import Enum, auto
from pathlib import Path, PurePosixPath
from typing import Callable
from urllib.parse import unquote, urlsplit

from tagmailer.core.errors import AttachmentError

logger = logging.getLogger(__name__)

# Maps an application-relative path to an absolute filesystem path
PathResolver = Callable[[str], str]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class AttachmentSource(Enum):
    """Where the attachment payload comes from."""
    INLINE = auto()
    FILE = auto()
    URL = auto()


class DocumentRoot:
    """
    Default real-path resolver.

    Resolves attachment paths against a root directory, the way a web
    application maps "/files/report.pdf" to a file under its document root.
    Absolute paths are treated as relative to the root. Paths that resolve
    outside the root are rejected.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root else Path.cwd()

    def __call__(self, path: str) -> str:
        """
        Raises:
            AttachmentError: If the path escapes the document root.
        """
        root = self.root.resolve()
        resolved = (root / path.lstrip("/")).resolve()
        try:
            resolved.relative_to(root)
        except ValueError:
            raise AttachmentError(
                f"The file named by {path} is outside the document root."
            ) from None
        return str(resolved)

    def __repr__(self) -> str:
        return f"DocumentRoot({str(self.root)!r})"


def split_content_type(content_type: str) -> tuple[str, str]:
    """
    Split "type/subtype; params" into (type, subtype).

    Raises:
        ValueError: If the string is not a MIME type.
    """
    essence = content_type.split(";", 1)[0].strip()
    maintype, sep, subtype = essence.partition("/")
    if not sep or not maintype or not subtype:
        raise ValueError(f"Not a MIME type: {content_type!r}")
    return maintype.lower(), subtype.lower()


@dataclass
class AttachmentPart:
    """
    An attachment ready to be added to a message.

    Attributes:
        source: Which kind of source produced this part.
        content_type: MIME type of the payload.
        filename: Name shown to the recipient. None for inline content.
        data: The payload. None for URL parts until the worker fetches it.
        location: Original file path or URL (None for inline content).
    """
    source: AttachmentSource
    content_type: str
    filename: str | None = None
    data: bytes | None = None
    location: str | None = None

    @property
    def is_deferred(self) -> bool:
        """True if the payload still has to be fetched."""
        return self.data is None

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    @classmethod
    def from_inline(cls, content: str, content_type: str) -> "AttachmentPart":
        """
        Wrap content given directly.

        Raises:
            AttachmentError: If the content or the content type is empty,
                             or the content type is malformed.
        """
        if not content:
            raise AttachmentError(
                f"The attachment named with the mimetype {content_type} "
                "has no content and could not be attached."
            )

        try:
            split_content_type(content_type or "")
        except ValueError as e:
            raise AttachmentError(
                f"The attachment named with the mimetype {content_type} "
                "could not be attached."
            ) from e

        return cls(
            source=AttachmentSource.INLINE,
            content_type=content_type,
            data=content.encode("utf-8"),
        )

    @classmethod
    def from_file(cls, path: str, resolver: PathResolver) -> "AttachmentPart":
        """
        Read an attachment from a file.

        Args:
            path: Application-relative path as written by the page author.
            resolver: Maps the path to a real filesystem path.

        Raises:
            AttachmentError: If the file does not exist or can't be read.
        """
        real_path = Path(resolver(path))
        if not real_path.is_file():
            raise AttachmentError(
                f"File {real_path} does not exist or the path to the file "
                "is incorrect."
            )

        try:
            data = real_path.read_bytes()
        except OSError as e:
            raise AttachmentError(
                f"The file named by {path} could not be attached."
            ) from e

        content_type, _ = mimetypes.guess_type(real_path.name)
        logger.debug(f"Attached file {real_path} ({len(data)} bytes)")

        return cls(
            source=AttachmentSource.FILE,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            filename=real_path.name,
            data=data,
            location=str(real_path),
        )

    @classmethod
    def from_url(cls, url: str) -> "AttachmentPart":
        """
        Reference a remote resource. The payload is fetched at delivery.

        Raises:
            AttachmentError: If the URL is malformed.
        """
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise AttachmentError(_MALFORMED_URL) from e

        if not parts.scheme or not (parts.netloc or parts.scheme == "file"):
            raise AttachmentError(_MALFORMED_URL)
        if parts.scheme == "file" and not parts.path:
            raise AttachmentError(_MALFORMED_URL)

        filename = unquote(PurePosixPath(parts.path).name) or url
        content_type, _ = mimetypes.guess_type(filename)

        return cls(
            source=AttachmentSource.URL,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            filename=filename,
            location=url,
        )

    # -------------------------------------------------------------------------
    # MIME conversion
    # -------------------------------------------------------------------------

    def to_mime(self) -> MIMEBase:
        """
        Build the MIME part for this attachment.

        Deferred (URL) parts get an empty part of the right type; the
        delivery worker fills in the payload later with fill_payload().
        """
        maintype, subtype = split_content_type(self.content_type)

        if self.data is None:
            part = MIMEBase(maintype, subtype)
        elif maintype == "text":
            try:
                part = MIMEText(self.data.decode("utf-8"), subtype, "utf-8")
            except UnicodeDecodeError:
                part = _binary_part(maintype, subtype, self.data)
        else:
            part = _binary_part(maintype, subtype, self.data)

        if self.filename:
            part.add_header(
                "Content-Disposition",
                "attachment",
                filename=self.filename,
            )
        return part


def fill_payload(part: MIMEBase, data: bytes) -> None:
    """Set the payload of a deferred part once it has been fetched."""
    part.set_payload(data)
    encode_base64(part)


def _binary_part(maintype: str, subtype: str, data: bytes) -> MIMEBase:
    part = MIMEBase(maintype, subtype)
    part.set_payload(data)
    encode_base64(part)
    return part


_MALFORMED_URL = (
    "The URL entered as an attachment was incorrectly formatted please "
    "check it and try again."
)
