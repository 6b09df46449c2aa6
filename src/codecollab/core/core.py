from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import cast

from codecollab.config import Config
from codecollab.core.db import KeyValueStore, create_store
from codecollab.core.modules.presence.broadcaster import Broadcaster, PusherBroadcaster


class Service:
    """Base class for services with direct store access."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    from codecollab.core.modules.auth.service import AuthService  # noqa: PLC0415
    from codecollab.core.modules.file.service import FileService  # noqa: PLC0415
    from codecollab.core.modules.presence.service import PresenceService  # noqa: PLC0415
    from codecollab.core.modules.project.service import ProjectService  # noqa: PLC0415
    from codecollab.core.modules.session.service import SessionService  # noqa: PLC0415
    from codecollab.core.modules.user.service import UserService  # noqa: PLC0415

    user: UserService
    project: ProjectService
    file: FileService
    presence: PresenceService
    auth: AuthService
    session: SessionService

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._store = store

        # Service configuration: (attribute_name, module_path, class_name)
        service_configs = [
            ("user", "codecollab.core.modules.user.service", "UserService"),
            ("project", "codecollab.core.modules.project.service", "ProjectService"),
            ("file", "codecollab.core.modules.file.service", "FileService"),
            ("presence", "codecollab.core.modules.presence.service", "PresenceService"),
            ("auth", "codecollab.core.modules.auth.service", "AuthService"),
            ("session", "codecollab.core.modules.session.service", "SessionService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(store)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, store, channel broadcaster, and all service instances."""

    config: Config
    store: KeyValueStore
    broadcaster: Broadcaster
    services: Services

    def __init__(
        self, config: Config, broadcaster: Broadcaster | None = None, store: KeyValueStore | None = None
    ) -> None:
        """Initialize core with config, the configured store backend, and the Pusher broadcaster."""
        self.config = config
        self.store = store if store is not None else create_store(config)
        self.broadcaster = broadcaster if broadcaster is not None else PusherBroadcaster(config)
        self.services = Services(self.store)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.store.open()
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the store on shutdown."""
        await self.services.stop_all()
        await self.store.close()
