from pydantic import Field

from codecollab import utils
from codecollab.core.db import RecordModel


class Project(RecordModel):
    """A user's workspace of files; collaboration sessions are bound to one project."""

    id: str = Field(default_factory=utils.new_id, description="Project ID")
    name: str = Field(..., description="Project name")
    description: str = Field("", description="Free-form description")
    user_id: str = Field(..., description="Owner user ID")
    is_public: bool = Field(False, description="Whether the project is listed publicly")
    created_at: int = Field(..., description="Creation time, ms since epoch")
    updated_at: int = Field(..., description="Last change, ms since epoch")
