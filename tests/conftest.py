"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from kdoc_console.core.client.retry import BackoffPolicy, RetryingCaller
from kdoc_console.core.client.store_client import DocumentStoreClient
from kdoc_console.core.config import Settings
from kdoc_console.core.session import EditorSession
from kdoc_console.core.storage.keyvalue import InMemoryKeyValueStore
from kdoc_console.core.storage.records import LocalStateRepository
from tests.fakes import FakeDocumentStore, build_store_app, instant_sleep


@pytest.fixture
def fake_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def repository() -> LocalStateRepository:
    return LocalStateRepository(InMemoryKeyValueStore(), namespace="voicebot.webhost")


@pytest.fixture
def settings() -> Settings:
    return Settings(storage_backend="memory", store_base_url="http://store.test")


@pytest_asyncio.fixture
async def store_client(
    fake_store: FakeDocumentStore, settings: Settings
) -> AsyncGenerator[DocumentStoreClient, None]:
    """Store client wired to the fake store, with instant backoff."""
    http = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=build_store_app(fake_store)), base_url=settings.store_base_url
    )
    client = DocumentStoreClient(
        http,
        caller=RetryingCaller(sleep_fn=instant_sleep),
        policy=BackoffPolicy(retry_count=settings.retry_count, base_delay_ms=0),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def session(
    store_client: DocumentStoreClient, repository: LocalStateRepository, settings: Settings
) -> AsyncGenerator[EditorSession, None]:
    editor = EditorSession(store_client, repository, settings=settings, sleep_fn=instant_sleep)
    yield editor
    editor.autosaver.cancel()
    editor._cancel_image_refresh()
