"""Collaboration session models."""

from pydantic import Field

from codecollab import utils
from codecollab.core.db import RecordModel


class Participant(RecordModel):
    """One user's membership in a session."""

    user_id: str = Field(..., description="User ID")
    user_name: str = Field(..., description="Display name at join time")
    user_avatar: str | None = Field(None, description="Avatar image URL")
    joined_at: int = Field(..., description="Join time, ms since epoch")


class Session(RecordModel):
    """Collaborative editing context bound to one project.

    Stored under `session:<id>`; the project index `project-session-index:<project_id>`
    points back to it while the session has participants.
    """

    id: str = Field(default_factory=utils.new_id, description="Session ID")
    project_id: str = Field(..., description="Project the session is bound to")
    created_at: int = Field(..., description="Creation time, ms since epoch")
    updated_at: int = Field(..., description="Last roster change, ms since epoch")
    participants: list[Participant] = Field(default_factory=list, description="Declared roster, unique by user ID")

    def find_participant(self, user_id: str) -> Participant | None:
        return next((p for p in self.participants if p.user_id == user_id), None)


class SessionCredentials(RecordModel):
    """What a client needs to subscribe to a session's presence channel."""

    session_id: str = Field(..., description="Session ID")
    auth_token: str = Field(..., description="Collaboration token for the presence channel auth endpoint")
    channel_name: str = Field(..., description="Presence channel name")


class JoinedSession(SessionCredentials):
    participants: list[Participant] = Field(..., description="Current declared roster")
