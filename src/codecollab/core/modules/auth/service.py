import secrets

import structlog

from codecollab import utils
from codecollab.core.core import Service
from codecollab.core.modules.auth.models import AuthToken, ChannelGrant
from codecollab.core.modules.presence.models import session_id_from_channel
from codecollab.errors import AuthRejectedError

logger = structlog.get_logger(__name__)


def _token_key(session_id: str, user_id: str) -> str:
    return f"token:{session_id}:{user_id}"


class AuthService(Service):
    """Issues and verifies per-user per-session collaboration tokens."""

    async def issue_token(self, session_id: str, user_id: str) -> AuthToken:
        """Generate a fresh token, replacing any previous one for this user and session."""
        auth_token = AuthToken(utils.new_token())
        await self.store.set(_token_key(session_id, user_id), auth_token, ttl=self.core.config.auth_token_ttl)
        return auth_token

    async def revoke_token(self, session_id: str, user_id: str) -> None:
        await self.store.delete(_token_key(session_id, user_id))

    async def verify_token(self, session_id: str, user_id: str, presented_token: str) -> None:
        """Raise AuthRejectedError unless presented_token is the current token for the user and session."""
        stored = await self.store.get(_token_key(session_id, user_id))
        if stored is None or not secrets.compare_digest(str(stored).encode(), presented_token.encode()):
            logger.info("collab_token_rejected", session_id=session_id, user_id=user_id)
            raise AuthRejectedError

    async def authorize_channel(self, socket_id: str, channel: str, user_id: str, presented_token: str) -> ChannelGrant:
        """Verify the user's token for the channel's session and sign a presence grant.

        Raises:
            ValidationError: channel is not a collaboration presence channel
            AuthRejectedError: token missing, expired or not matching
            NotFoundError: user has no registered profile
        """
        session_id = session_id_from_channel(channel)
        await self.verify_token(session_id, user_id, presented_token)
        profile = await self.core.services.user.get_profile(user_id)
        return self.core.services.presence.authorize(channel, socket_id, profile)
