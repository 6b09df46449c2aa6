"""Collaboration auth token and channel grant models."""

from typing import NewType

from pydantic import BaseModel, Field

AuthToken = NewType("AuthToken", str)


class ChannelGrant(BaseModel):
    """Signed presence channel subscription grant, in the channel service's wire format."""

    auth: str = Field(..., description="Key and HMAC signature, 'key:signature'")
    channel_data: str | None = Field(None, description="JSON-encoded presence member data")
