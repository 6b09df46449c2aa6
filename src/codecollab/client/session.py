"""HTTP client reproducing the editor's collaboration hook."""

from typing import Any

import pydantic
import requests
import structlog

from codecollab import utils
from codecollab.client.presence import Collaborator, PresenceState, SessionJoined, parse_event, reduce
from codecollab.core.modules.auth.models import ChannelGrant
from codecollab.core.modules.presence.models import CodeUpdatePayload, PresenceEvent
from codecollab.core.modules.session.models import JoinedSession, Session, SessionCredentials
from codecollab.core.modules.user.models import UserProfile
from codecollab.errors import AuthRejectedError, ConflictError, NotFoundError, UpstreamError, ValidationError

logger = structlog.get_logger(__name__)


class CollaborationClient:
    """Drives one user's participation in a project's collaboration session.

    `http` is anything with a requests-compatible `request()` method; a plain
    `requests.Session` is used by default.
    """

    def __init__(
        self,
        base_url: str,
        user: UserProfile,
        http: Any = None,
        api_prefix: str = "/api",
        timeout: float = 5.0,
    ) -> None:
        self._base_url = base_url.rstrip("/") + api_prefix
        self._http = http if http is not None else requests.Session()
        self._timeout = timeout
        self.user = user
        self.credentials: SessionCredentials | None = None
        self.state = PresenceState(user_id=user.user_id)

    @property
    def session_id(self) -> str | None:
        return self.credentials.session_id if self.credentials else None

    @property
    def collaborators(self) -> list[Collaborator]:
        return self.state.collaborators

    @property
    def is_connected(self) -> bool:
        return self.state.connected

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._http.request(method, self._base_url + path, timeout=self._timeout, **kwargs)
        if response.status_code < 400:  # noqa: PLR2004
            return response.json()

        try:
            message = response.json().get("message", response.text)
        except ValueError:
            message = response.text
        match response.status_code:
            case 400:
                raise ValidationError(message)
            case 403:
                raise AuthRejectedError(message)
            case 404:
                raise NotFoundError(message)
            case 409:
                raise ConflictError(message)
        raise UpstreamError(f"{method} {path} failed with {response.status_code}: {message}")

    def _identity(self) -> dict[str, str | None]:
        return {"userId": self.user.user_id, "userName": self.user.name, "userAvatar": self.user.avatar}

    def start(self, project_id: str) -> SessionCredentials:
        """Join the project's active session, or create one if there is none."""
        try:
            session = self.find_project_session(project_id)
        except NotFoundError:
            return self.create(project_id)
        return self.join(session.id)

    def find_project_session(self, project_id: str) -> Session:
        data = self._request("GET", "/collaboration", params={"projectId": project_id})
        return Session.model_validate(data["session"])

    def create(self, project_id: str) -> SessionCredentials:
        data = self._request("POST", "/collaboration", json={"projectId": project_id, **self._identity()})
        self.credentials = SessionCredentials.model_validate(data)
        self.state = PresenceState(user_id=self.user.user_id)
        logger.debug("collab_client_created_session", session_id=self.credentials.session_id)
        return self.credentials

    def join(self, session_id: str) -> JoinedSession:
        data = self._request("PUT", "/collaboration", json={"sessionId": session_id, **self._identity()})
        joined = JoinedSession.model_validate(data)
        self.credentials = joined
        self.state = reduce(PresenceState(user_id=self.user.user_id), SessionJoined(participants=joined.participants))
        logger.debug("collab_client_joined_session", session_id=session_id, participants=len(joined.participants))
        return joined

    def leave(self) -> None:
        """Leave the current session and reset local state. No-op without a session."""
        if self.credentials is None:
            return
        self._request(
            "DELETE", "/collaboration", params={"sessionId": self.credentials.session_id, "userId": self.user.user_id}
        )
        self.credentials = None
        self.state = PresenceState(user_id=self.user.user_id)

    def authorize(self, socket_id: str) -> ChannelGrant:
        """Request a signed grant for the session's presence channel, as the channel client would."""
        if self.credentials is None:
            raise ValidationError("No active collaboration session")
        data = self._request(
            "POST",
            "/pusher/auth",
            data={
                "socket_id": socket_id,
                "channel_name": self.credentials.channel_name,
                "user_id": self.user.user_id,
                "auth_token": self.credentials.auth_token,
            },
        )
        return ChannelGrant.model_validate(data)

    def handle(self, event_name: str, payload: Any) -> bool:
        """Apply a channel event to the local view.

        Returns False when the event was not applied: untracked events and
        malformed payloads leave the view unchanged.
        """
        try:
            event = parse_event(event_name, payload)
        except pydantic.ValidationError as e:
            logger.warning("collab_client_malformed_event", event=event_name, errors=e.error_count())
            return False
        if event is None:
            return False
        self.state = reduce(self.state, event)
        return True

    def send_code_update(self, file_id: str, content: str) -> bool:
        """Publish a local edit to the other collaborators. Returns False when not connected."""
        if self.credentials is None or not self.state.connected:
            return False
        update = CodeUpdatePayload(file_id=file_id, content=content, user_id=self.user.user_id, timestamp=utils.now_ms())
        self._request(
            "POST",
            "/pusher/trigger",
            json={"channel": self.credentials.channel_name, "event": PresenceEvent.CODE_UPDATE, "data": update.to_record()},
        )
        return True

    def share_link(self, origin: str) -> str | None:
        """Link that opens the editor in this session."""
        if self.credentials is None:
            return None
        return f"{origin}?session={self.credentials.session_id}"
