from pydantic import Field

from codecollab.core.db import RecordModel


class UserProfile(RecordModel):
    """Public display identity of a user, shown to other session members."""

    user_id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    avatar: str | None = Field(None, description="Avatar image URL")
