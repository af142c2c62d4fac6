"""Debounced draft autosave and one-shot draft restore."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from kdoc_console.core.models.organization import Draft
from kdoc_console.core.storage.records import LocalStateRepository

logger = logging.getLogger(__name__)


class DraftAutosaver:
    """Persist the editor buffer after a quiet period.

    Each ``schedule`` call cancels the pending write and starts a new timer,
    so a burst of edits results in a single write once edits stop.
    """

    def __init__(
        self,
        repository: LocalStateRepository,
        delay_ms: int = 250,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize autosaver.

        Args:
            repository: Destination of the draft record
            delay_ms: Quiet period before writing
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
            clock: Timestamp source for ``saved_at`` (default: UTC now)
        """
        self._repository = repository
        self._delay_s = delay_ms / 1000
        self._sleep = sleep_fn or asyncio.sleep
        self._clock = clock or (lambda: datetime.now(UTC))
        self._pending: asyncio.Task[None] | None = None
        self.writes = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def schedule(self, name: str, text: str) -> None:
        """(Re)start the debounce timer for this buffer state."""
        self.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._write_later(name, text))

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _write_later(self, name: str, text: str) -> None:
        await self._sleep(self._delay_s)
        self._write(name, text)

    def _write(self, name: str, text: str) -> None:
        self._repository.save_draft(Draft(name=name, text=text, saved_at=self._clock()))
        self.writes += 1

    def flush(self, name: str, text: str) -> None:
        """Write immediately, dropping any pending timer."""
        self.cancel()
        self._write(name, text)

    async def wait(self) -> None:
        """Wait for the pending write, if any, to finish."""
        task = self._pending
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        finally:
            if self._pending is task:
                self._pending = None


class DraftRestorer:
    """Offers the stored draft back to the editor at most once."""

    def __init__(self, repository: LocalStateRepository) -> None:
        self._repository = repository
        self.attempted = False

    def restore(self, selected_name: str, buffer_name: str, buffer_text: str) -> Draft | None:
        """Return the stored draft if restoring cannot overwrite live work.

        Restoring requires no selected document and an empty buffer (name and
        text). Only the first call ever looks at storage.
        """
        if self.attempted:
            return None
        self.attempted = True
        if selected_name.strip() or buffer_name.strip() or buffer_text.strip():
            return None
        draft = self._repository.load_draft()
        if draft is not None:
            logger.info(
                "Restoring local draft",
                extra={"structured": {"name": draft.name, "characters": len(draft.text)}},
            )
        return draft
