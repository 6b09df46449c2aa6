"""Shared pytest fixtures."""

from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from codecollab.app import App
from codecollab.config import Config
from codecollab.core.db import MemoryKeyValueStore
from codecollab.core.modules.presence.broadcaster import PusherBroadcaster
from codecollab.web.server import create_fastapi_app


class RecordingBroadcaster(PusherBroadcaster):
    """Signs grants with the real Pusher client but records triggers instead of sending them."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.events: list[tuple[str, str, Any]] = []

    async def trigger(self, channel: str, event: str, data: Any) -> None:
        self.events.append((channel, event, data))

    def payloads(self, event: str) -> list[Any]:
        """Payloads of every recorded event with the given name."""
        return [data for _, name, data in self.events if name == event]


@pytest.fixture
def config():
    return Config(
        store_backend="memory",
        pusher_app_id="123456",
        pusher_key="test-key",
        pusher_secret="test-secret",
        max_write_attempts=5,
    )


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def broadcaster(config):
    return RecordingBroadcaster(config)


@pytest.fixture
def app(config, broadcaster, store):
    return App(config, broadcaster, store)


@pytest.fixture
def client(app, config):
    with TestClient(create_fastapi_app(app, config)) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def project(app):
    return await app.create_project("Demo", "u1")


@pytest_asyncio.fixture
async def other_project(app):
    return await app.create_project("Other", "u1")


@pytest.fixture
def project_id(client):
    """ID of a project created over HTTP, for tests driving the API."""
    return client.post("/api/projects", json={"name": "Demo", "userId": "u1"}).json()["project"]["id"]
