"""Operator-facing status notifications."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from kdoc_console.core.models.common import TERMINAL_TONES, StatusTone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusEvent:
    message: str
    tone: StatusTone
    at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def terminal(self) -> bool:
        return self.tone in TERMINAL_TONES


StatusListener = Callable[[StatusEvent], None]


class StatusReporter:
    """Keeps the status history and fans events out to listeners.

    ``loading`` events report progress; every public session action ends
    with exactly one terminal event (``ok``, ``info`` or ``warn``).
    """

    def __init__(self) -> None:
        self.events: list[StatusEvent] = []
        self._listeners: list[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    @property
    def last(self) -> StatusEvent | None:
        return self.events[-1] if self.events else None

    def emit(self, message: str, tone: StatusTone) -> StatusEvent:
        event = StatusEvent(message=message, tone=tone)
        self.events.append(event)
        log = logger.warning if tone is StatusTone.warn else logger.debug
        log(message, extra={"structured": {"tone": tone.value}})
        for listener in self._listeners:
            listener(event)
        return event

    def loading(self, message: str) -> StatusEvent:
        return self.emit(message, StatusTone.loading)

    def ok(self, message: str) -> StatusEvent:
        return self.emit(message, StatusTone.ok)

    def info(self, message: str) -> StatusEvent:
        return self.emit(message, StatusTone.info)

    def warn(self, message: str) -> StatusEvent:
        return self.emit(message, StatusTone.warn)

    def terminal_since(self, index: int) -> list[StatusEvent]:
        """Terminal events emitted after ``events[index - 1]``."""
        return [event for event in self.events[index:] if event.terminal]
