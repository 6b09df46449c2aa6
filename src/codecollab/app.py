from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from codecollab.config import Config
from codecollab.core.core import Core
from codecollab.core.db import KeyValueStore
from codecollab.core.modules.auth.models import ChannelGrant
from codecollab.core.modules.file.models import ProjectFile
from codecollab.core.modules.presence.broadcaster import Broadcaster
from codecollab.core.modules.project.models import Project
from codecollab.core.modules.session.models import JoinedSession, Session, SessionCredentials
from codecollab.core.modules.user.models import UserProfile


class App:
    """Facade for all application operations, delegates to Core services."""

    def __init__(
        self, config: Config, broadcaster: Broadcaster | None = None, store: KeyValueStore | None = None
    ) -> None:
        self._core = Core(config, broadcaster, store)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Collaboration sessions ===
    async def create_session(
        self, project_id: str, user_id: str, user_name: str, user_avatar: str | None = None
    ) -> SessionCredentials:
        """Start collaborating on a project."""
        return await self._core.services.session.create_session(project_id, user_id, user_name, user_avatar)

    async def join_session(
        self, session_id: str, user_id: str, user_name: str, user_avatar: str | None = None
    ) -> JoinedSession:
        """Join an existing session (idempotent per user)."""
        return await self._core.services.session.join_session(session_id, user_id, user_name, user_avatar)

    async def get_session(self, session_id: str) -> Session:
        return await self._core.services.session.get_session(session_id)

    async def find_session_by_project(self, project_id: str) -> Session:
        return await self._core.services.session.find_session_by_project(project_id)

    async def leave_session(self, session_id: str, user_id: str) -> None:
        """Leave a session; the last participant leaving deletes it."""
        await self._core.services.session.leave_session(session_id, user_id)

    # === Presence channel ===
    async def authorize_channel(self, socket_id: str, channel: str, user_id: str, auth_token: str) -> ChannelGrant:
        """Verify a collaboration token and sign a presence subscription grant."""
        return await self._core.services.auth.authorize_channel(socket_id, channel, user_id, auth_token)

    async def trigger_event(self, channel: str, event: str, data: Any) -> None:
        """Relay a client event to a channel."""
        await self._core.services.presence.relay(channel, event, data)

    # === User profiles ===
    async def get_user_profile(self, user_id: str) -> UserProfile:
        return await self._core.services.user.get_profile(user_id)

    async def save_user_profile(self, user_id: str, name: str, avatar: str | None = None) -> UserProfile:
        return await self._core.services.user.save_profile(user_id, name, avatar)

    # === Projects ===
    async def list_projects(self, user_id: str) -> list[Project]:
        return await self._core.services.project.list_projects(user_id)

    async def create_project(
        self, name: str, user_id: str, description: str = "", is_public: bool = False
    ) -> Project:
        return await self._core.services.project.create_project(name, user_id, description, is_public)

    async def update_project(self, project_id: str, changes: dict[str, Any]) -> Project:
        """Update project fields; keys not present in changes are left as they are."""
        return await self._core.services.project.update_project(project_id, changes)

    async def delete_project(self, project_id: str) -> None:
        """Delete a project and all of its files."""
        await self._core.services.project.delete_project(project_id)

    # === Files ===
    async def list_files(self, project_id: str) -> list[ProjectFile]:
        return await self._core.services.file.list_files(project_id)

    async def create_file(self, project_id: str, name: str, user_id: str, content: str = "") -> ProjectFile:
        return await self._core.services.file.create_file(project_id, name, content, user_id)

    async def update_file(self, file_id: str, changes: dict[str, Any]) -> ProjectFile:
        return await self._core.services.file.update_file(file_id, changes)

    async def delete_file(self, file_id: str) -> None:
        await self._core.services.file.delete_file(file_id)
