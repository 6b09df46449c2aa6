from fastapi import APIRouter
from pydantic import BaseModel, Field

from codecollab.core.modules.user.models import UserProfile
from codecollab.web.deps import AppDep
from codecollab.web.openapi import ErrorResponse

router = APIRouter(tags=["users"])


class SaveProfileRequest(BaseModel):
    """Display profile shown to other collaborators."""

    name: str = Field(..., min_length=1, description="Display name")
    avatar: str | None = Field(None, description="Avatar image URL")


@router.get(
    "/users/{user_id}",
    summary="Get user profile",
    description="Get the display profile embedded in presence channel data.",
    operation_id="getUserProfile",
    responses={
        200: {"description": "User profile"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_user_profile(user_id: str, app: AppDep) -> UserProfile:
    return await app.get_user_profile(user_id)


@router.put(
    "/users/{user_id}",
    summary="Save user profile",
    description="Create or replace a user's display profile.",
    operation_id="saveUserProfile",
    responses={
        200: {"description": "Saved profile"},
        400: {"model": ErrorResponse, "description": "Invalid request"},
    },
)
async def save_user_profile(user_id: str, req: SaveProfileRequest, app: AppDep) -> UserProfile:
    return await app.save_user_profile(user_id, req.name, req.avatar)
