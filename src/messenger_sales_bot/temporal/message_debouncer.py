"""
Message Debouncer - waits for the user to finish typing before responding.

Users on Messenger tend to split one thought into several quick messages
("Precio" ... "Y medidas"). This module coalesces such bursts per user:

1. When a message arrives it is appended to the user's queue
2. The user's quiet-window timer is started (or restarted)
3. When the timer expires without new messages, the queue is joined with
   newlines and handed to the on_ready continuation exactly once
4. An optional max-wait cap settles users who never stop typing
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

# Continuation invoked with the combined text; may be sync or async
ReadyCallback = Callable[[str], Union[Awaitable[Any], Any]]

MESSAGE_SEPARATOR = "\n"


@dataclass
class DebounceEntry:
    """
    Pending state for one user.

    Attributes:
        texts: Queued fragments in arrival order
        on_ready: Continuation supplied with the most recent fragment
        first_at: Event loop time of the first fragment
        generation: Bumped on every submit so superseded timers can detect they are stale
        timer: Task sleeping out the quiet window
    """
    texts: list[str]
    on_ready: ReadyCallback
    first_at: float
    generation: int = 0
    timer: Optional[asyncio.Task] = field(default=None, repr=False)


class MessageDebouncer:
    """
    Per-user debounce of inbound messages.

    At most one timer is alive per user. The entry map is only touched
    between awaits on the event loop, so no locking is needed.

    Attributes:
        window_seconds: Quiet period required before a burst is considered complete
        max_wait_seconds: Optional cap on total wait since the first fragment

    Example:
        async def handle(combined: str) -> None:
            print(f"User said: {combined}")

        debouncer = MessageDebouncer(window_seconds=3.0)
        debouncer.submit("psid_123", "Precio", handle)
        debouncer.submit("psid_123", "Y medidas", handle)
        # ~3 seconds later handle("Precio\\nY medidas") runs once
    """

    def __init__(
        self,
        window_seconds: float = 3.0,
        max_wait_seconds: Optional[float] = None,
    ):
        """
        Initialize the MessageDebouncer.

        Args:
            window_seconds: Quiet window W. Each submit restarts it.
            max_wait_seconds: When set, a user is settled no later than this many
                              seconds after their first queued fragment, even if
                              they keep typing. None keeps the pure quiet-window rule.
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_wait_seconds is not None and max_wait_seconds <= 0:
            raise ValueError("max_wait_seconds must be positive")

        self._entries: dict[str, DebounceEntry] = {}
        self._window_seconds = window_seconds
        self._max_wait_seconds = max_wait_seconds

        logger.debug(
            f"MessageDebouncer initialized: window_seconds={window_seconds}, "
            f"max_wait_seconds={max_wait_seconds}"
        )

    def submit(self, user_id: str, text: str, on_ready: ReadyCallback) -> None:
        """
        Queue a fragment and (re)arm the user's quiet-window timer.

        Must be called from within a running event loop. on_ready is never
        invoked synchronously from here.

        Args:
            user_id: Sender identifier (PSID, phone number, ...)
            text: Message fragment
            on_ready: Called with the combined text once the user settles.
                      The continuation from the latest submit wins.
        """
        loop = asyncio.get_running_loop()

        entry = self._entries.get(user_id)
        if entry is None:
            entry = DebounceEntry(texts=[], on_ready=on_ready, first_at=loop.time())
            self._entries[user_id] = entry
            logger.debug(f"Created debounce entry for {user_id}")
        elif entry.timer is not None:
            entry.timer.cancel()
            logger.debug(f"Resetting debounce timer for {user_id} (user still typing)")

        entry.texts.append(text)
        entry.on_ready = on_ready
        entry.generation += 1

        delay = self._window_seconds
        if self._max_wait_seconds is not None:
            remaining = self._max_wait_seconds - (loop.time() - entry.first_at)
            if remaining <= 0:
                logger.info(f"Max wait reached for {user_id}, settling immediately")
            delay = max(0.0, min(delay, remaining))

        logger.debug(
            f"Queued fragment {len(entry.texts)} for {user_id}, settling in {delay:.2f}s"
        )
        entry.timer = asyncio.create_task(
            self._settle_later(user_id, entry.generation, delay),
            name=f"debounce:{user_id}",
        )
        entry.timer.add_done_callback(self._log_timer_failure)

    async def _settle_later(self, user_id: str, generation: int, delay: float) -> None:
        """Timer body: sleep out the window, then settle if still current."""
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.debug(f"Timer cancelled for {user_id}")
            raise

        entry = self._entries.get(user_id)
        if entry is None or entry.generation != generation:
            logger.debug(f"Timer for {user_id} is stale (gen {generation}), skipping settle")
            return

        await self._settle(user_id, entry)

    @staticmethod
    def _log_timer_failure(task: asyncio.Task) -> None:
        """Retrieve a failed timer's exception so it is logged instead of lost with the task."""
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Debounce timer {task.get_name()} failed: {error!r}", exc_info=error)

    async def _settle(self, user_id: str, entry: DebounceEntry) -> None:
        """
        Remove the entry, then hand the combined text to its continuation.

        Bookkeeping finishes before the callback runs so a failing callback
        cannot leave a stuck entry behind. Callback errors are logged and
        re-raised, not retried. On a timer the re-raised error ends the task,
        where _log_timer_failure picks it up.
        """
        if self._entries.get(user_id) is entry:
            del self._entries[user_id]
        entry.timer = None

        combined = MESSAGE_SEPARATOR.join(entry.texts)
        logger.info(f"Debounce settled for {user_id}: {len(entry.texts)} message(s)")

        try:
            result = entry.on_ready(combined)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                f"Error in on_ready callback for {user_id}: {e}. "
                f"Messages were: {[t[:50] for t in entry.texts]}"
            )
            raise

    def cancel(self, user_id: str) -> None:
        """
        Drop a user's pending fragments without invoking the callback.

        Idempotent. A timer that has already started settling is not stopped.

        Args:
            user_id: Sender identifier
        """
        entry = self._entries.pop(user_id, None)
        if entry is None:
            return
        if entry.timer is not None:
            entry.timer.cancel()
        logger.debug(f"Cancelled debounce for {user_id}: {len(entry.texts)} fragment(s) dropped")

    def has_pending(self, user_id: str) -> bool:
        """True while the user has fragments waiting for their quiet window."""
        return user_id in self._entries

    def get_queued_texts(self, user_id: str) -> list[str]:
        """Copy of the user's queued fragments (empty if nothing is pending)."""
        entry = self._entries.get(user_id)
        return list(entry.texts) if entry else []

    def pending_user_ids(self) -> list[str]:
        """All user ids with a pending entry."""
        return list(self._entries.keys())

    async def flush_all(self) -> None:
        """
        Settle every pending entry now.

        Used on graceful shutdown so queued messages are still processed.
        A failing callback is logged and does not stop the remaining flushes.
        """
        user_ids = self.pending_user_ids()
        logger.info(f"Flushing all debounce entries: {len(user_ids)} user(s)")

        for user_id in user_ids:
            entry = self._entries.get(user_id)
            if entry is None:
                continue
            if entry.timer is not None:
                entry.timer.cancel()
            try:
                await self._settle(user_id, entry)
            except Exception as e:
                logger.error(f"Error flushing {user_id} during flush_all: {e}")

    def cancel_all(self) -> None:
        """Drop every pending entry without invoking callbacks."""
        user_ids = self.pending_user_ids()
        logger.info(f"Cancelling all debounce entries: {len(user_ids)} user(s)")
        for user_id in user_ids:
            self.cancel(user_id)

    @property
    def window_seconds(self) -> float:
        """Quiet window in seconds."""
        return self._window_seconds

    @property
    def max_wait_seconds(self) -> Optional[float]:
        """Maximum total wait in seconds, or None when uncapped."""
        return self._max_wait_seconds

    def __repr__(self) -> str:
        return (
            f"MessageDebouncer(window_seconds={self._window_seconds}, "
            f"max_wait_seconds={self._max_wait_seconds}, "
            f"pending={len(self._entries)})"
        )
