"""Snapshot-based dirty tracking for the editor buffer."""

import hashlib
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum


def snapshot_fingerprint(name: str, text: str) -> str:
    """Content-equality fingerprint of name + text."""
    payload = json.dumps({"name": name.strip(), "text": text}, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode()).hexdigest()


class DirtyTransition(str, Enum):
    became_dirty = "became_dirty"
    became_clean = "became_clean"


TransitionListener = Callable[[DirtyTransition], None]


@dataclass
class DirtyTracker:
    """Compares the live buffer against the last saved snapshot.

    Only the clean->dirty and dirty->clean transitions are reported; repeated
    edits in the same state produce nothing. While ``suppressed`` (a load is
    in flight) updates are ignored entirely.
    """

    saved_fingerprint: str = snapshot_fingerprint("", "")
    dirty: bool = False
    suppressed: bool = False

    def __post_init__(self) -> None:
        self._listeners: list[TransitionListener] = []

    def subscribe(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def mark_saved(self, name: str, text: str) -> DirtyTransition | None:
        """Record a new baseline (after a save or a completed load)."""
        self.saved_fingerprint = snapshot_fingerprint(name, text)
        return self._set_dirty(False)

    def update(self, name: str, text: str) -> DirtyTransition | None:
        if self.suppressed:
            return None
        return self._set_dirty(snapshot_fingerprint(name, text) != self.saved_fingerprint)

    def force_dirty(self) -> DirtyTransition | None:
        """Mark the buffer dirty regardless of content (restored drafts)."""
        return self._set_dirty(True)

    def _set_dirty(self, dirty: bool) -> DirtyTransition | None:
        if dirty == self.dirty:
            return None
        self.dirty = dirty
        transition = DirtyTransition.became_dirty if dirty else DirtyTransition.became_clean
        for listener in self._listeners:
            listener(transition)
        return transition


ConfirmFn = Callable[[str], Awaitable[bool]]


async def can_discard(tracker: DirtyTracker, confirm: ConfirmFn | None, action: str) -> bool:
    """Guard for actions that would drop unsaved edits.

    Clean buffers always pass. Dirty buffers pass only if ``confirm`` agrees;
    with no confirm callback the action is refused.
    """
    if not tracker.dirty:
        return True
    if confirm is None:
        return False
    return await confirm(f"You have unsaved changes. Discard them to {action}?")
