"""Project file endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from codecollab.core.modules.file.models import ProjectFile
from codecollab.web.deps import AppDep
from codecollab.web.openapi import ErrorResponse, SuccessResponse

router = APIRouter(tags=["files"])


class CreateFileRequest(BaseModel):
    """Request to add a file to a project."""

    name: str = Field(..., min_length=1, description="File name")
    content: str = Field("", description="Initial content")
    user_id: str = Field(..., alias="userId", min_length=1, description="Creator user ID")
    project_id: str = Field(..., alias="projectId", min_length=1, description="Owning project ID")


class UpdateFileRequest(BaseModel):
    """Partial file update, omitted fields are kept."""

    id: str = Field(..., min_length=1, description="File ID")
    name: str | None = Field(None, min_length=1, description="New name")
    content: str | None = Field(None, description="New content")


class ProjectFileResponse(BaseModel):
    file: ProjectFile


class ProjectFilesResponse(BaseModel):
    files: list[ProjectFile]


@router.get(
    "/files",
    summary="List files",
    description="Get all files of a project.",
    operation_id="listFiles",
    responses={
        200: {"description": "Files of the project"},
        400: {"model": ErrorResponse, "description": "Missing projectId or userId"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def list_files(
    app: AppDep,
    project_id: Annotated[str, Query(alias="projectId", min_length=1)],
    user_id: Annotated[str, Query(alias="userId", min_length=1)],  # noqa: ARG001
) -> ProjectFilesResponse:
    return ProjectFilesResponse(files=await app.list_files(project_id))


@router.post(
    "/files",
    summary="Create file",
    description="Add a file to a project.",
    operation_id="createFile",
    status_code=201,
    responses={
        201: {"description": "File created"},
        400: {"model": ErrorResponse, "description": "Missing required fields"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def create_file(req: CreateFileRequest, app: AppDep) -> ProjectFileResponse:
    return ProjectFileResponse(file=await app.create_file(req.project_id, req.name, req.user_id, req.content))


@router.put(
    "/files",
    summary="Update file",
    description="Update the name or content of a file.",
    operation_id="updateFile",
    responses={
        200: {"description": "Updated file"},
        400: {"model": ErrorResponse, "description": "Missing file ID"},
        404: {"model": ErrorResponse, "description": "File not found"},
    },
)
async def update_file(req: UpdateFileRequest, app: AppDep) -> ProjectFileResponse:
    changes = req.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    return ProjectFileResponse(file=await app.update_file(req.id, changes))


@router.delete(
    "/files",
    summary="Delete file",
    description="Remove a file from its project.",
    operation_id="deleteFile",
    responses={
        200: {"description": "File deleted"},
        400: {"model": ErrorResponse, "description": "Missing file ID"},
        404: {"model": ErrorResponse, "description": "File not found"},
    },
)
async def delete_file(app: AppDep, file_id: Annotated[str, Query(alias="id", min_length=1)]) -> SuccessResponse:
    await app.delete_file(file_id)
    return SuccessResponse()
