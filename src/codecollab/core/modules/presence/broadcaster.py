"""Channel service clients used to fan out presence events."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import pusher
import requests
import structlog
from pusher.errors import PusherError

from codecollab.config import Config
from codecollab.errors import UpstreamError, ValidationError

logger = structlog.get_logger(__name__)


class Broadcaster(ABC):
    """Publish/subscribe service with access-controlled presence channels."""

    @abstractmethod
    async def trigger(self, channel: str, event: str, data: Any) -> None:
        """Deliver an event to every client currently subscribed to channel."""

    @abstractmethod
    def authorize(self, channel: str, socket_id: str, presence_data: dict[str, Any]) -> dict[str, str]:
        """Sign a subscription grant for socket_id on channel, embedding presence_data."""


class PusherBroadcaster(Broadcaster):
    """Pusher Channels backed broadcaster."""

    def __init__(self, config: Config) -> None:
        self._timeout = config.remote_timeout
        self._client = pusher.Pusher(
            app_id=config.pusher_app_id,
            key=config.pusher_key,
            secret=config.pusher_secret,
            cluster=config.pusher_cluster,
            ssl=True,
            timeout=max(1, round(config.remote_timeout)),  # the client only accepts whole seconds
        )

    async def trigger(self, channel: str, event: str, data: Any) -> None:
        # The Pusher client is blocking, keep it off the event loop
        try:
            async with asyncio.timeout(self._timeout):
                await asyncio.to_thread(self._client.trigger, channel, event, data)
        except ValueError as e:
            # Raised locally for invalid channel/event names and oversized payloads
            raise ValidationError(str(e)) from e
        except (PusherError, requests.RequestException, TimeoutError) as e:
            logger.warning("pusher_trigger_failed", channel=channel, event=event, error=repr(e))
            raise UpstreamError(f"Channel service trigger failed: {e!r}") from e
        logger.debug("pusher_event_triggered", channel=channel, event=event)

    def authorize(self, channel: str, socket_id: str, presence_data: dict[str, Any]) -> dict[str, str]:
        try:
            return self._client.authenticate(channel=channel, socket_id=socket_id, custom_data=presence_data)
        except ValueError as e:
            raise ValidationError(str(e)) from e
