# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the tagmailer test suite.
#
# Nothing here touches the network: transports record what they were asked
# to send, and dispatchers are waited on so assertions see the outcome.
# =============================================================================

import pytest
import tempfile
from pathlib import Path

from tagmailer.core import DocumentRoot, MailSession
from tagmailer.message import MailBuilder
from tagmailer.naming import MappingLookup
from tagmailer.smtp import MailDispatcher


class RecordingTransport:
    """Transport that keeps every message it is asked to send."""

    def __init__(self) -> None:
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        return {}


class FailingTransport:
    """Transport whose every send fails like an unreachable server."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or ConnectionRefusedError("Connection refused")
        self.attempts = 0

    async def send(self, message):
        self.attempts += 1
        raise self.error


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_session():
    """Create a named MailSession for testing."""
    return MailSession(
        host="smtp.example.com",
        port=587,
        security="starttls",
        default_from="noreply@example.com",
        name="relay",
    )


@pytest.fixture
def lookup(sample_session):
    """A lookup with one named session registered."""
    return MappingLookup({"mail/relay": sample_session})


@pytest.fixture
def mail(temp_dir, lookup):
    """A MailBuilder in an open construction scope."""
    builder = MailBuilder(
        from_address="sender@example.com",
        subject="Test Subject",
        body="This is a test email body.",
        lookup=lookup,
        path_resolver=DocumentRoot(temp_dir),
    )
    builder.begin()
    return builder


@pytest.fixture
def sink():
    """Log sink that collects delivery notices in a list."""
    notices: list[str] = []

    def log_sink(notice: str) -> None:
        notices.append(notice)

    log_sink.notices = notices
    return log_sink


@pytest.fixture
def recording_transport():
    return RecordingTransport()


@pytest.fixture
def dispatcher(recording_transport, sink):
    """Dispatcher that records messages instead of sending them."""
    return MailDispatcher(transport=recording_transport, log_sink=sink)


@pytest.fixture
def failing_transport():
    return FailingTransport()


@pytest.fixture
def failing_dispatcher(failing_transport, sink):
    """Dispatcher whose transport always fails."""
    return MailDispatcher(transport=failing_transport, log_sink=sink)


@pytest.fixture
def sample_attachment(temp_dir):
    """A small PDF-named file under the document root."""
    path = temp_dir / "reports" / "q3.pdf"
    path.parent.mkdir()
    path.write_bytes(b"%PDF-1.4 fake report")
    return path
