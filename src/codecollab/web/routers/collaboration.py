"""Collaboration session endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from codecollab.core.modules.session.models import JoinedSession, Session, SessionCredentials
from codecollab.errors import ValidationError
from codecollab.web.deps import AppDep
from codecollab.web.openapi import ErrorResponse, SuccessResponse

router = APIRouter(tags=["collaboration"])


class CreateSessionRequest(BaseModel):
    """Request to start collaborating on a project."""

    project_id: str = Field(..., alias="projectId", min_length=1, description="Project to collaborate on")
    user_id: str = Field(..., alias="userId", min_length=1, description="Calling user ID")
    user_name: str = Field(..., alias="userName", min_length=1, description="Calling user display name")
    user_avatar: str | None = Field(None, alias="userAvatar", description="Calling user avatar URL")


class JoinSessionRequest(BaseModel):
    """Request to join an existing session."""

    session_id: str = Field(..., alias="sessionId", min_length=1, description="Session to join")
    user_id: str = Field(..., alias="userId", min_length=1, description="Calling user ID")
    user_name: str = Field(..., alias="userName", min_length=1, description="Calling user display name")
    user_avatar: str | None = Field(None, alias="userAvatar", description="Calling user avatar URL")


class SessionResponse(BaseModel):
    session: Session


@router.post(
    "/collaboration",
    summary="Create session",
    description=(
        "Create a collaboration session for a project with the caller as its first participant. "
        "If the project already has a live session the caller joins it instead."
    ),
    operation_id="createSession",
    status_code=201,
    responses={
        201: {"description": "Session created, credentials for the presence channel returned"},
        400: {"model": ErrorResponse, "description": "Missing required fields"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def create_session(req: CreateSessionRequest, app: AppDep) -> SessionCredentials:
    return await app.create_session(req.project_id, req.user_id, req.user_name, req.user_avatar)


@router.put(
    "/collaboration",
    summary="Join session",
    description="Join an existing session. Joining twice leaves the roster unchanged but issues a fresh token.",
    operation_id="joinSession",
    responses={
        200: {"description": "Joined, current roster returned"},
        400: {"model": ErrorResponse, "description": "Missing required fields"},
        404: {"model": ErrorResponse, "description": "Session not found"},
    },
)
async def join_session(req: JoinSessionRequest, app: AppDep) -> JoinedSession:
    return await app.join_session(req.session_id, req.user_id, req.user_name, req.user_avatar)


@router.get(
    "/collaboration",
    summary="Get session",
    description="Get a session by ID, or the active session of a project by project ID.",
    operation_id="getSession",
    responses={
        200: {"description": "Session with its declared roster"},
        400: {"model": ErrorResponse, "description": "Neither sessionId nor projectId given"},
        404: {"model": ErrorResponse, "description": "Session not found"},
    },
)
async def get_session(
    app: AppDep,
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
    project_id: Annotated[str | None, Query(alias="projectId")] = None,
) -> SessionResponse:
    if session_id:
        return SessionResponse(session=await app.get_session(session_id))
    if project_id:
        return SessionResponse(session=await app.find_session_by_project(project_id))
    raise ValidationError("Session ID is required")


@router.delete(
    "/collaboration",
    summary="Leave session",
    description="Leave a session. The session is deleted when its last participant leaves.",
    operation_id="leaveSession",
    responses={
        200: {"description": "Left the session"},
        400: {"model": ErrorResponse, "description": "Missing sessionId or userId"},
        404: {"model": ErrorResponse, "description": "Session not found"},
    },
)
async def leave_session(
    app: AppDep,
    session_id: Annotated[str, Query(alias="sessionId", min_length=1)],
    user_id: Annotated[str, Query(alias="userId", min_length=1)],
) -> SuccessResponse:
    await app.leave_session(session_id, user_id)
    return SuccessResponse()
