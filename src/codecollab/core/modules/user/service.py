import structlog

from codecollab.core.core import Service
from codecollab.core.modules.user.models import UserProfile
from codecollab.errors import NotFoundError

logger = structlog.get_logger(__name__)


def _profile_key(user_id: str) -> str:
    return f"user:{user_id}"


class UserService(Service):
    """Stores user display profiles."""

    async def get_profile(self, user_id: str) -> UserProfile:
        """Get a user's profile, raises NotFoundError if it was never registered."""
        data = await self.store.get(_profile_key(user_id))
        if data is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return UserProfile.model_validate(data)

    async def save_profile(self, user_id: str, name: str, avatar: str | None) -> UserProfile:
        profile = UserProfile(user_id=user_id, name=name, avatar=avatar)
        await self.store.set(_profile_key(user_id), profile.to_record())
        logger.debug("user_profile_saved", user_id=user_id)
        return profile
