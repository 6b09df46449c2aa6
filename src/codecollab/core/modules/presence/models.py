"""Presence channel naming and application event payloads."""

from enum import StrEnum

from codecollab.core.db import RecordModel
from codecollab.errors import ValidationError

CHANNEL_PREFIX = "presence-collab-"


class PresenceEvent(StrEnum):
    """Application events published on a session's presence channel."""

    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    CODE_UPDATE = "code-update"


class UserLeftPayload(RecordModel):
    user_id: str


class CodeUpdatePayload(RecordModel):
    """Content change relayed from one editor to the other session members."""

    file_id: str
    content: str
    user_id: str
    timestamp: int


def channel_name(session_id: str) -> str:
    return f"{CHANNEL_PREFIX}{session_id}"


def session_id_from_channel(channel: str) -> str:
    """Extract the session id from a presence channel name."""
    if not channel.startswith(CHANNEL_PREFIX) or len(channel) == len(CHANNEL_PREFIX):
        raise ValidationError(f"Not a collaboration presence channel: '{channel}'")
    return channel.removeprefix(CHANNEL_PREFIX)
