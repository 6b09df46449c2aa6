"""Project endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from codecollab.core.modules.project.models import Project
from codecollab.web.deps import AppDep
from codecollab.web.openapi import ErrorResponse, SuccessResponse

router = APIRouter(tags=["projects"])


class CreateProjectRequest(BaseModel):
    """Request to create a project."""

    name: str = Field(..., min_length=1, description="Project name")
    user_id: str = Field(..., alias="userId", min_length=1, description="Owner user ID")
    description: str = Field("", description="Free-form description")
    is_public: bool = Field(False, alias="isPublic", description="Whether the project is listed publicly")


class UpdateProjectRequest(BaseModel):
    """Partial project update, omitted fields are kept."""

    id: str = Field(..., min_length=1, description="Project ID")
    name: str | None = Field(None, min_length=1, description="New name")
    description: str | None = Field(None, description="New description")
    is_public: bool | None = Field(None, alias="isPublic", description="New visibility")


class ProjectResponse(BaseModel):
    project: Project


class ProjectsResponse(BaseModel):
    projects: list[Project]


@router.get(
    "/projects",
    summary="List projects",
    description="Get all projects owned by a user.",
    operation_id="listProjects",
    responses={
        200: {"description": "Projects of the user"},
        400: {"model": ErrorResponse, "description": "Missing userId"},
    },
)
async def list_projects(app: AppDep, user_id: Annotated[str, Query(alias="userId", min_length=1)]) -> ProjectsResponse:
    return ProjectsResponse(projects=await app.list_projects(user_id))


@router.post(
    "/projects",
    summary="Create project",
    description="Create a project owned by the given user.",
    operation_id="createProject",
    status_code=201,
    responses={
        201: {"description": "Project created"},
        400: {"model": ErrorResponse, "description": "Missing required fields"},
    },
)
async def create_project(req: CreateProjectRequest, app: AppDep) -> ProjectResponse:
    project = await app.create_project(req.name, req.user_id, req.description, req.is_public)
    return ProjectResponse(project=project)


@router.put(
    "/projects",
    summary="Update project",
    description="Update name, description or visibility of a project.",
    operation_id="updateProject",
    responses={
        200: {"description": "Updated project"},
        400: {"model": ErrorResponse, "description": "Missing project ID"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def update_project(req: UpdateProjectRequest, app: AppDep) -> ProjectResponse:
    changes = req.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    return ProjectResponse(project=await app.update_project(req.id, changes))


@router.delete(
    "/projects",
    summary="Delete project",
    description="Delete a project together with all of its files.",
    operation_id="deleteProject",
    responses={
        200: {"description": "Project deleted"},
        400: {"model": ErrorResponse, "description": "Missing project ID"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def delete_project(app: AppDep, project_id: Annotated[str, Query(alias="id", min_length=1)]) -> SuccessResponse:
    await app.delete_project(project_id)
    return SuccessResponse()
