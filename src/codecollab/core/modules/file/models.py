from pydantic import Field

from codecollab import utils
from codecollab.core.db import RecordModel


class ProjectFile(RecordModel):
    """A source file stored in a project."""

    id: str = Field(default_factory=utils.new_id, description="File ID")
    name: str = Field(..., description="File name")
    content: str = Field("", description="File content")
    user_id: str = Field(..., description="Creator user ID")
    project_id: str = Field(..., description="Owning project ID")
    created_at: int = Field(..., description="Creation time, ms since epoch")
    updated_at: int = Field(..., description="Last change, ms since epoch")
