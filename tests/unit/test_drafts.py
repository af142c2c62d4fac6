"""Unit tests for dirty tracking, draft autosave and draft restore."""

import asyncio
from datetime import UTC, datetime

import pytest

from kdoc_console.core.drafts.autosave import DraftAutosaver, DraftRestorer
from kdoc_console.core.drafts.tracker import DirtyTracker, DirtyTransition, can_discard
from kdoc_console.core.models.organization import Draft
from kdoc_console.core.storage.keyvalue import InMemoryKeyValueStore
from kdoc_console.core.storage.records import LocalStateRepository

FIXED_NOW = datetime(2026, 2, 8, 9, 30, tzinfo=UTC)


class ManualSleep:
    """Sleep replacement that blocks until released."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self._release = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await self._release.wait()

    def release(self) -> None:
        self._release.set()


@pytest.fixture
def repository() -> LocalStateRepository:
    return LocalStateRepository(InMemoryKeyValueStore(), namespace="test")


class TestDirtyTracker:
    def test_only_transitions_are_reported(self) -> None:
        tracker = DirtyTracker()
        seen: list[DirtyTransition] = []
        tracker.subscribe(seen.append)
        tracker.mark_saved("doc", "v1")

        results = [
            tracker.update("doc", "v1 edited"),
            tracker.update("doc", "v1 edited more"),
            tracker.update("doc", "v1"),
            tracker.update("doc", "v1"),
        ]

        assert results == [DirtyTransition.became_dirty, None, DirtyTransition.became_clean, None]
        assert seen == [DirtyTransition.became_dirty, DirtyTransition.became_clean]

    def test_name_change_counts_as_edit(self) -> None:
        tracker = DirtyTracker()
        tracker.mark_saved("doc", "text")

        assert tracker.update("renamed", "text") is DirtyTransition.became_dirty

    def test_suppressed_updates_are_ignored(self) -> None:
        tracker = DirtyTracker()
        tracker.suppressed = True

        assert tracker.update("doc", "anything") is None
        assert tracker.dirty is False

    def test_force_dirty(self) -> None:
        tracker = DirtyTracker()

        assert tracker.force_dirty() is DirtyTransition.became_dirty
        assert tracker.force_dirty() is None

    @pytest.mark.asyncio
    async def test_can_discard(self) -> None:
        tracker = DirtyTracker()
        prompts: list[str] = []

        async def decline(message: str) -> bool:
            prompts.append(message)
            return False

        assert await can_discard(tracker, decline, "open another document") is True
        tracker.force_dirty()
        assert await can_discard(tracker, decline, "open another document") is False
        assert await can_discard(tracker, None, "open another document") is False
        assert len(prompts) == 1


class TestAutosaver:
    @pytest.mark.asyncio
    async def test_burst_of_edits_writes_once(self, repository: LocalStateRepository) -> None:
        sleep = ManualSleep()
        saver = DraftAutosaver(repository, delay_ms=250, sleep_fn=sleep, clock=lambda: FIXED_NOW)

        saver.schedule("doc", "a")
        saver.schedule("doc", "ab")
        saver.schedule("doc", "abc")
        await asyncio.sleep(0)
        sleep.release()
        await saver.wait()

        assert saver.writes == 1
        assert repository.load_draft() == Draft(name="doc", text="abc", saved_at=FIXED_NOW)
        assert sleep.calls[-1] == 0.25

    @pytest.mark.asyncio
    async def test_flush_writes_immediately_and_drops_timer(self, repository: LocalStateRepository) -> None:
        sleep = ManualSleep()
        saver = DraftAutosaver(repository, sleep_fn=sleep, clock=lambda: FIXED_NOW)
        saver.schedule("doc", "old")

        saver.flush("doc", "new")

        assert saver.pending is False
        assert saver.writes == 1
        draft = repository.load_draft()
        assert draft is not None and draft.text == "new"

    @pytest.mark.asyncio
    async def test_wait_without_pending_returns(self, repository: LocalStateRepository) -> None:
        await DraftAutosaver(repository).wait()


class TestRestorer:
    def test_restores_once_into_empty_editor(self, repository: LocalStateRepository) -> None:
        repository.save_draft(Draft(name="doc", text="unsaved"))
        restorer = DraftRestorer(repository)

        draft = restorer.restore(selected_name="", buffer_name="", buffer_text="")

        assert draft is not None and draft.text == "unsaved"
        assert restorer.restore("", "", "") is None

    @pytest.mark.parametrize(
        "selected,name,text",
        [("open.txt", "", ""), ("", "typed", ""), ("", "", "work in progress")],
    )
    def test_never_overwrites_live_work(
        self, repository: LocalStateRepository, selected: str, name: str, text: str
    ) -> None:
        repository.save_draft(Draft(name="doc", text="unsaved"))
        restorer = DraftRestorer(repository)

        assert restorer.restore(selected, name, text) is None
        assert restorer.attempted is True
