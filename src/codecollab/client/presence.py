"""Client presence view: a pure reducer over presence channel events.

Two rosters are kept apart. `declared` mirrors the persisted session roster
(who joined and has not explicitly left), `live` mirrors the channel service's
presence roster (whose socket is subscribed right now). Display merges them
with the live roster taking precedence.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from codecollab.core.modules.presence.models import CodeUpdatePayload, PresenceEvent, UserLeftPayload
from codecollab.core.modules.session.models import Participant

SUBSCRIPTION_SUCCEEDED = "pusher:subscription_succeeded"
MEMBER_ADDED = "pusher:member_added"
MEMBER_REMOVED = "pusher:member_removed"


class MemberInfo(BaseModel):
    name: str | None = None
    avatar: str | None = None


class LiveMember(BaseModel):
    """A subscriber as reported by the channel service."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    info: MemberInfo = Field(default_factory=MemberInfo)


class Collaborator(BaseModel):
    """Merged roster entry shown in the editor."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str | None
    avatar: str | None
    online: bool


# === Events ===
class SessionJoined(BaseModel):
    """Initial declared roster returned by the join call."""

    participants: list[Participant]


class SubscriptionSucceeded(BaseModel):
    members: list[LiveMember]


class MemberAdded(BaseModel):
    member: LiveMember


class MemberRemoved(BaseModel):
    user_id: str


class UserJoined(BaseModel):
    participant: Participant


class UserLeft(BaseModel):
    user_id: str


class CodeUpdate(BaseModel):
    update: CodeUpdatePayload


PresenceViewEvent = (
    SessionJoined | SubscriptionSucceeded | MemberAdded | MemberRemoved | UserJoined | UserLeft | CodeUpdate
)


# === Channel protocol payloads ===
class PresenceHash(BaseModel):
    hash: dict[str, MemberInfo | None] = Field(default_factory=dict)


class SubscriptionPayload(BaseModel):
    presence: PresenceHash


class MemberPayload(BaseModel):
    user_id: str | int
    user_info: MemberInfo | None = None


def parse_event(name: str, payload: Any) -> PresenceViewEvent | None:
    """Build a view event from a channel event name and its wire payload.

    Presence notifications use the channel protocol shapes
    (`{"presence": {"hash": {id: info}}}`, `{"user_id", "user_info"}`);
    application events use the camelCase records published by the server.
    Returns None for events the view does not track. A payload that does not
    match its event raises pydantic.ValidationError.
    """
    if name == SUBSCRIPTION_SUCCEEDED:
        members = SubscriptionPayload.model_validate(payload).presence.hash
        return SubscriptionSucceeded(
            members=[LiveMember(user_id=user_id, info=info or MemberInfo()) for user_id, info in members.items()]
        )
    if name == MEMBER_ADDED:
        member = MemberPayload.model_validate(payload)
        return MemberAdded(member=LiveMember(user_id=str(member.user_id), info=member.user_info or MemberInfo()))
    if name == MEMBER_REMOVED:
        return MemberRemoved(user_id=str(MemberPayload.model_validate(payload).user_id))
    if name == PresenceEvent.USER_JOINED:
        return UserJoined(participant=Participant.model_validate(payload))
    if name == PresenceEvent.USER_LEFT:
        return UserLeft(user_id=UserLeftPayload.model_validate(payload).user_id)
    if name == PresenceEvent.CODE_UPDATE:
        return CodeUpdate(update=CodeUpdatePayload.model_validate(payload))
    return None


# === State ===
class PresenceState(BaseModel):
    """Immutable snapshot of the local view of a session."""

    model_config = ConfigDict(frozen=True)

    user_id: str  # Local user, used to drop echoes of our own code updates
    declared: tuple[Participant, ...] = ()
    live: tuple[LiveMember, ...] = ()
    connected: bool = False
    files: Mapping[str, CodeUpdatePayload] = Field(default_factory=dict)

    @property
    def collaborators(self) -> list[Collaborator]:
        """Live members first, then declared participants that are not connected."""
        result = [
            Collaborator(user_id=m.user_id, name=m.info.name, avatar=m.info.avatar, online=True) for m in self.live
        ]
        live_ids = {m.user_id for m in self.live}
        result.extend(
            Collaborator(user_id=p.user_id, name=p.user_name, avatar=p.user_avatar, online=False)
            for p in self.declared
            if p.user_id not in live_ids
        )
        return result


_T = TypeVar("_T", Participant, LiveMember)


def _dedupe(items: list[_T]) -> tuple[_T, ...]:
    # Last occurrence wins, position of the first one is kept
    by_id: dict[str, _T] = {}
    for item in items:
        by_id[item.user_id] = item
    return tuple(by_id.values())


def reduce(state: PresenceState, event: PresenceViewEvent) -> PresenceState:
    """Return the state after applying event. Never mutates state."""
    if isinstance(event, SessionJoined):
        return state.model_copy(update={"declared": _dedupe(event.participants)})

    if isinstance(event, SubscriptionSucceeded):
        return state.model_copy(update={"connected": True, "live": _dedupe(event.members)})

    if isinstance(event, MemberAdded):
        return state.model_copy(update={"live": _dedupe([*state.live, event.member])})

    if isinstance(event, MemberRemoved):
        return state.model_copy(update={"live": tuple(m for m in state.live if m.user_id != event.user_id)})

    if isinstance(event, UserJoined):
        if any(p.user_id == event.participant.user_id for p in state.declared):
            return state
        return state.model_copy(update={"declared": (*state.declared, event.participant)})

    if isinstance(event, UserLeft):
        return state.model_copy(update={"declared": tuple(p for p in state.declared if p.user_id != event.user_id)})

    if isinstance(event, CodeUpdate):
        update = event.update
        if update.user_id == state.user_id:
            return state
        current = state.files.get(update.file_id)
        if current is not None and current.timestamp > update.timestamp:
            return state
        return state.model_copy(update={"files": {**state.files, update.file_id: update}})

    raise TypeError(f"Unknown presence event: {event!r}")
