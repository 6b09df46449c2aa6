from typing import Any

import structlog

from codecollab import utils
from codecollab.core.core import Service
from codecollab.core.modules.project.models import Project
from codecollab.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


def _project_key(project_id: str) -> str:
    return f"project:{project_id}"


def _user_projects_key(user_id: str) -> str:
    return f"user:{user_id}:projects"


class ProjectService(Service):
    """Manages projects and the per-user project index."""

    async def get_project(self, project_id: str) -> Project:
        data = await self.store.get(_project_key(project_id))
        if data is None:
            raise NotFoundError(f"Project '{project_id}' not found")
        return Project.model_validate(data)

    async def list_projects(self, user_id: str) -> list[Project]:
        """Get all projects owned by a user, skipping index entries whose project is gone."""
        project_ids = await self.store.get(_user_projects_key(user_id)) or []
        projects = []
        for project_id in project_ids:
            data = await self.store.get(_project_key(project_id))
            if data is not None:
                projects.append(Project.model_validate(data))
        return projects

    async def create_project(self, name: str, user_id: str, description: str, is_public: bool) -> Project:
        now = utils.now_ms()
        project = Project(
            name=name, description=description, user_id=user_id, is_public=is_public, created_at=now, updated_at=now
        )
        await self.store.set_if_version(_project_key(project.id), project.to_record(), None)
        await self.store.add_to_set(_user_projects_key(user_id), project.id)
        logger.info("project_created", project_id=project.id, user_id=user_id)
        return project

    async def update_project(self, project_id: str, changes: dict[str, Any]) -> Project:
        """Apply the given field changes (name, description, is_public); absent fields are kept."""
        key = _project_key(project_id)
        for _ in range(self.core.config.max_write_attempts):
            record = await self.store.get_versioned(key)
            if record is None:
                raise NotFoundError(f"Project '{project_id}' not found")
            project = Project.model_validate(record.value)
            updated = project.model_copy(update={**changes, "updated_at": max(utils.now_ms(), project.updated_at + 1)})
            if await self.store.set_if_version(key, updated.to_record(), record.version):
                logger.debug("project_updated", project_id=project_id, fields=sorted(changes))
                return updated
        raise ConflictError(f"Project '{project_id}' is changing too fast, try again")

    async def delete_project(self, project_id: str) -> None:
        """Delete a project together with all of its files."""
        project = await self.get_project(project_id)
        await self.core.services.file.delete_project_files(project_id)
        await self.store.delete(_project_key(project_id))
        await self.store.remove_from_set(_user_projects_key(project.user_id), project_id)
        logger.info("project_deleted", project_id=project_id, user_id=project.user_id)
