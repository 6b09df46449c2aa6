import structlog

from codecollab import utils
from codecollab.core.core import Service
from codecollab.core.db import Versioned
from codecollab.core.modules.presence.models import PresenceEvent, UserLeftPayload, channel_name
from codecollab.core.modules.session.models import JoinedSession, Participant, Session, SessionCredentials
from codecollab.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


def _session_key(session_id: str) -> str:
    return f"session:{session_id}"


def _project_key(project_id: str) -> str:
    return f"project-session-index:{project_id}"


class SessionService(Service):
    """Manages collaboration session lifecycle and the declared participant roster.

    Every roster mutation is a read-modify-write guarded by the record version:
    when a concurrent writer got there first the mutation is re-applied on a
    fresh read, up to `max_write_attempts` times.
    """

    @property
    def _attempts(self) -> range:
        return range(self.core.config.max_write_attempts)

    async def _load(self, session_id: str) -> tuple[Session, int]:
        record = await self.store.get_versioned(_session_key(session_id))
        if record is None:
            raise NotFoundError(f"Session '{session_id}' not found")
        return Session.model_validate(record.value), record.version

    async def get_session(self, session_id: str) -> Session:
        session, _ = await self._load(session_id)
        return session

    async def find_session_by_project(self, project_id: str) -> Session:
        """Get the active session for a project via the project index."""
        session_id = await self.store.get(_project_key(project_id))
        if session_id is None:
            raise NotFoundError(f"No active session for project '{project_id}'")
        # The index can briefly outlive its session
        try:
            return await self.get_session(session_id)
        except NotFoundError:
            raise NotFoundError(f"No active session for project '{project_id}'") from None

    async def create_session(
        self, project_id: str, user_id: str, user_name: str, user_avatar: str | None
    ) -> SessionCredentials:
        """Create a session for a project with the caller as its only participant.

        If the project already has a live session, the caller joins that one instead
        and the new session is discarded, so a project never has two sessions.
        The new session record is removed whenever it does not end up owning the
        project index, including when the redirect fails.
        """
        await self.core.services.project.get_project(project_id)

        now = utils.now_ms()
        participant = Participant(user_id=user_id, user_name=user_name, user_avatar=user_avatar, joined_at=now)
        session = Session(project_id=project_id, created_at=now, updated_at=now, participants=[participant])
        await self.store.set_if_version(_session_key(session.id), session.to_record(), None)

        registered = False
        try:
            for _ in self._attempts:
                owner_id = await self._claim_project(project_id, session.id)
                if owner_id == session.id:
                    registered = True
                    break
                try:
                    joined = await self.join_session(owner_id, user_id, user_name, user_avatar)
                except NotFoundError:
                    continue  # owner vanished between index lookup and join
                logger.info(
                    "collab_session_create_redirected", project_id=project_id, session_id=owner_id, user_id=user_id
                )
                return SessionCredentials(
                    session_id=joined.session_id, auth_token=joined.auth_token, channel_name=joined.channel_name
                )
            else:
                raise ConflictError(f"Could not register a session for project '{project_id}'")
        finally:
            if not registered:
                await self.store.delete(_session_key(session.id))

        auth_token = await self.core.services.auth.issue_token(session.id, user_id)
        logger.info("collab_session_created", session_id=session.id, project_id=project_id, user_id=user_id)
        return SessionCredentials(session_id=session.id, auth_token=auth_token, channel_name=channel_name(session.id))

    async def join_session(
        self, session_id: str, user_id: str, user_name: str, user_avatar: str | None
    ) -> JoinedSession:
        """Add the caller to the roster unless already present, then issue a fresh token."""
        for _ in self._attempts:
            session, version = await self._load(session_id)
            if session.find_participant(user_id) is not None:
                break

            now = utils.now_ms()
            participant = Participant(user_id=user_id, user_name=user_name, user_avatar=user_avatar, joined_at=now)
            updated = session.model_copy(
                update={
                    "participants": [*session.participants, participant],
                    "updated_at": max(now, session.updated_at + 1),
                }
            )
            if not await self.store.set_if_version(_session_key(session_id), updated.to_record(), version):
                continue

            session = updated
            logger.info("collab_participant_joined", session_id=session_id, user_id=user_id)
            await self.core.services.presence.publish(session_id, PresenceEvent.USER_JOINED, participant.to_record())
            break
        else:
            raise ConflictError(f"Session '{session_id}' is changing too fast, try again")

        auth_token = await self.core.services.auth.issue_token(session_id, user_id)
        return JoinedSession(
            session_id=session_id,
            auth_token=auth_token,
            channel_name=channel_name(session_id),
            participants=session.participants,
        )

    async def leave_session(self, session_id: str, user_id: str) -> None:
        """Remove the caller from the roster, deleting the session when it becomes empty.

        Leaving a session the user is not part of is a no-op removal. The caller's
        token is revoked in every case.
        """
        for _ in self._attempts:
            session, version = await self._load(session_id)
            remaining = [p for p in session.participants if p.user_id != user_id]
            if len(remaining) == len(session.participants):
                break

            if remaining:
                updated = session.model_copy(
                    update={"participants": remaining, "updated_at": max(utils.now_ms(), session.updated_at + 1)}
                )
                if not await self.store.set_if_version(_session_key(session_id), updated.to_record(), version):
                    continue
                logger.info("collab_participant_left", session_id=session_id, user_id=user_id)
                await self.core.services.presence.publish(
                    session_id, PresenceEvent.USER_LEFT, UserLeftPayload(user_id=user_id).to_record()
                )
            else:
                if not await self.store.delete_if_version(_session_key(session_id), version):
                    continue
                await self._release_project(session.project_id, session_id)
                logger.info("collab_session_deleted", session_id=session_id, project_id=session.project_id)
            break
        else:
            raise ConflictError(f"Session '{session_id}' is changing too fast, try again")

        await self.core.services.auth.revoke_token(session_id, user_id)

    async def _claim_project(self, project_id: str, session_id: str) -> str:
        """Point the project index at session_id unless a live session owns it. Returns the owner."""
        key = _project_key(project_id)
        for _ in self._attempts:
            current: Versioned | None = await self.store.get_versioned(key)
            if current is None:
                if await self.store.set_if_version(key, session_id, None):
                    return session_id
                continue
            if current.value == session_id:
                return session_id
            if await self.store.get(_session_key(current.value)) is not None:
                return str(current.value)
            # Stale entry left behind by a deleted session
            if await self.store.set_if_version(key, session_id, current.version):
                return session_id
        raise ConflictError(f"Could not register a session for project '{project_id}'")

    async def _release_project(self, project_id: str, session_id: str) -> None:
        """Remove the project index entry if it still points at session_id."""
        key = _project_key(project_id)
        current = await self.store.get_versioned(key)
        if current is not None and current.value == session_id:
            await self.store.delete_if_version(key, current.version)
