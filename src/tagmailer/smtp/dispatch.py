# =============================================================================
# Fire-and-forget Dispatch
# =============================================================================
# Hands an assembled message to a background worker and returns at once.
#
# Delivery model:
#   - best effort, at most once, no retries
#   - the caller is never told the outcome; it has already been told the
#     message was accepted for delivery
#   - failures (unreachable server, refused recipients, ...) are reported
#     to the operational log sink only
#
# Each dispatch gets its own daemon thread running its own event loop, so
# callers don't need to be async and a slow server never blocks them.
# =============================================================================

import asyncio
import itertools
import logging
import threading
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol

from tagmailer.smtp.client import SMTPTransport

if TYPE_CHECKING:
    from tagmailer.message.message import MailMessage

logger = logging.getLogger(__name__)

# Receives delivery failure notices. Must not be relied on to return anything.
LogSink = Callable[[str], None]

delivery_logger = logging.getLogger("tagmailer.delivery")

_worker_ids = itertools.count(1)


class Transport(Protocol):
    """Anything that can send a MailMessage."""

    def send(self, message: "MailMessage") -> Awaitable[object]:
        ...


def default_log_sink(notice: str) -> None:
    """Write delivery notices to the tagmailer.delivery logger."""
    delivery_logger.error(notice)


class MailDispatcher:
    """
    Sends messages in the background.

    Usage:
        >>> dispatcher = MailDispatcher()
        >>> dispatcher.dispatch(message, mailto="a@example.com")  # returns now
        >>> dispatcher.wait(timeout=30)  # only at shutdown

    Attributes:
        transport: Performs the actual send.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        log_sink: LogSink | None = None,
    ) -> None:
        self.transport = transport or SMTPTransport()
        self._log_sink = log_sink or default_log_sink
        self._workers: set[threading.Thread] = set()
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Number of deliveries still running."""
        with self._lock:
            return len(self._workers)

    def dispatch(self, message: "MailMessage", mailto: str) -> None:
        """
        Start delivering a message and return immediately.

        Args:
            message: Fully assembled message. The worker owns it from now on.
            mailto: Destination description used in failure notices.
        """
        worker = threading.Thread(
            target=self._deliver,
            args=(message, mailto),
            name=f"mail-{next(_worker_ids)}",
            daemon=True,
        )
        with self._lock:
            self._workers.add(worker)
        logger.debug(f"Dispatching mail to {mailto} on {worker.name}")
        worker.start()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for running deliveries to finish.

        Args:
            timeout: Total seconds to wait for all of them, or None to wait
                     as long as it takes.

        Returns:
            True if nothing is left running.
        """
        with self._lock:
            workers = list(self._workers)
        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in workers:
            if deadline is None:
                worker.join()
            else:
                worker.join(max(0.0, deadline - time.monotonic()))
        return self.pending == 0

    def _deliver(self, message: "MailMessage", mailto: str) -> None:
        """Worker body: send, and report any failure to the log sink."""
        try:
            asyncio.run(self._send(message))
            logger.info(f"Mail to {mailto} delivered to {message.session.destination}")
        except Exception as e:
            self._notify(f"Could not send the e-mail sent to {mailto}:  {e}")
        finally:
            with self._lock:
                self._workers.discard(threading.current_thread())

    async def _send(self, message: "MailMessage") -> None:
        await self.transport.send(message)

    def _notify(self, notice: str) -> None:
        try:
            self._log_sink(notice)
        except Exception as e:
            logger.error(f"Delivery log sink failed: {e}")
