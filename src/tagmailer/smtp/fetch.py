# =============================================================================
# URL Attachment Fetcher
# =============================================================================
# Downloads the payload of URL attachments right before delivery.
#
# Supports:
#   - http:// and https:// URLs (GET via aiohttp)
#   - file:// URLs (read from the local filesystem)
# =============================================================================

import asyncio
import logging
from email.mime.base import MIMEBase
from pathlib import Path
from typing import Sequence
from urllib.parse import urlsplit
from urllib.request import url2pathname

import aiohttp

from tagmailer.core.attachment import fill_payload

logger = logging.getLogger(__name__)


class AttachmentFetcher:
    """
    Fetches URL attachment payloads.

    Usage:
        >>> fetcher = AttachmentFetcher()
        >>> data = await fetcher.fetch("https://example.com/report.pdf")

    Attributes:
        timeout: Total timeout for one download (seconds).
    """

    def __init__(self, timeout: float = 30) -> None:
        self.timeout = timeout

    async def fetch(self, url: str) -> bytes:
        """
        Download one resource.

        Raises:
            FetchError: If the resource can't be retrieved.
        """
        parts = urlsplit(url)

        try:
            if parts.scheme == "file":
                path = Path(url2pathname(parts.path))
                return await asyncio.to_thread(path.read_bytes)

            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    return await response.read()

        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise FetchError(
                f"The resource named by {url} could not be attached: {e}"
            ) from e

    async def fill(self, pending: Sequence[tuple[MIMEBase, str]]) -> None:
        """Fetch each pending URL and put the payload into its MIME part."""
        for part, url in pending:
            logger.debug(f"Fetching attachment {url}")
            data = await self.fetch(url)
            fill_payload(part, data)


class FetchError(Exception):
    """Raised when a URL attachment can't be downloaded."""
    pass
