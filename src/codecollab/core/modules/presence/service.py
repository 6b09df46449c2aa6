from typing import Any

import structlog

from codecollab.core.core import Service
from codecollab.core.modules.auth.models import ChannelGrant
from codecollab.core.modules.presence.models import PresenceEvent, channel_name
from codecollab.core.modules.user.models import UserProfile
from codecollab.errors import ValidationError

logger = structlog.get_logger(__name__)

RESERVED_EVENT_PREFIX = "pusher:"


class PresenceService(Service):
    """Publishes session events and signs presence channel grants."""

    async def publish(self, session_id: str, event: PresenceEvent, payload: dict[str, Any]) -> None:
        """Publish an application event on the session's presence channel."""
        await self.core.broadcaster.trigger(channel_name(session_id), event, payload)

    async def relay(self, channel: str, event: str, data: Any) -> None:
        """Relay a client-originated event (e.g. code-update) to a channel."""
        if event.startswith(RESERVED_EVENT_PREFIX):
            raise ValidationError(f"Event name '{event}' is reserved by the channel service")
        await self.core.broadcaster.trigger(channel, event, data)

    def authorize(self, channel: str, socket_id: str, profile: UserProfile) -> ChannelGrant:
        """Sign a presence subscription grant carrying the user's public identity."""
        presence_data = {
            "user_id": profile.user_id,
            "user_info": {"name": profile.name, "avatar": profile.avatar},
        }
        grant = self.core.broadcaster.authorize(channel, socket_id, presence_data)
        logger.debug("presence_channel_authorized", channel=channel, user_id=profile.user_id)
        return ChannelGrant.model_validate(grant)
