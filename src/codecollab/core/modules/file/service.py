from typing import Any

import structlog

from codecollab import utils
from codecollab.core.core import Service
from codecollab.core.modules.file.models import ProjectFile
from codecollab.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


def _file_key(file_id: str) -> str:
    return f"file:{file_id}"


def _project_files_key(project_id: str) -> str:
    return f"project:{project_id}:files"


class FileService(Service):
    """Manages project files and the per-project file index."""

    async def get_file(self, file_id: str) -> ProjectFile:
        data = await self.store.get(_file_key(file_id))
        if data is None:
            raise NotFoundError(f"File '{file_id}' not found")
        return ProjectFile.model_validate(data)

    async def list_files(self, project_id: str) -> list[ProjectFile]:
        await self.core.services.project.get_project(project_id)
        file_ids = await self.store.get(_project_files_key(project_id)) or []
        files = []
        for file_id in file_ids:
            data = await self.store.get(_file_key(file_id))
            if data is not None:
                files.append(ProjectFile.model_validate(data))
        return files

    async def create_file(self, project_id: str, name: str, content: str, user_id: str) -> ProjectFile:
        await self.core.services.project.get_project(project_id)
        now = utils.now_ms()
        file = ProjectFile(
            name=name, content=content, user_id=user_id, project_id=project_id, created_at=now, updated_at=now
        )
        await self.store.set_if_version(_file_key(file.id), file.to_record(), None)
        await self.store.add_to_set(_project_files_key(project_id), file.id)
        logger.info("file_created", file_id=file.id, project_id=project_id, user_id=user_id)
        return file

    async def update_file(self, file_id: str, changes: dict[str, Any]) -> ProjectFile:
        """Apply the given field changes (name, content); absent fields are kept."""
        key = _file_key(file_id)
        for _ in range(self.core.config.max_write_attempts):
            record = await self.store.get_versioned(key)
            if record is None:
                raise NotFoundError(f"File '{file_id}' not found")
            file = ProjectFile.model_validate(record.value)
            updated = file.model_copy(update={**changes, "updated_at": max(utils.now_ms(), file.updated_at + 1)})
            if await self.store.set_if_version(key, updated.to_record(), record.version):
                logger.debug("file_updated", file_id=file_id, fields=sorted(changes))
                return updated
        raise ConflictError(f"File '{file_id}' is changing too fast, try again")

    async def delete_file(self, file_id: str) -> None:
        file = await self.get_file(file_id)
        await self.store.delete(_file_key(file_id))
        await self.store.remove_from_set(_project_files_key(file.project_id), file_id)
        logger.info("file_deleted", file_id=file_id, project_id=file.project_id)

    async def delete_project_files(self, project_id: str) -> None:
        """Delete every file of a project and the project's file index."""
        file_ids = await self.store.get(_project_files_key(project_id)) or []
        for file_id in file_ids:
            await self.store.delete(_file_key(file_id))
        await self.store.delete(_project_files_key(project_id))
        logger.debug("project_files_deleted", project_id=project_id, count=len(file_ids))
