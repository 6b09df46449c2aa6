"""Tests for the client presence reducer."""

import pydantic
import pytest

from codecollab.client.presence import (
    CodeUpdate,
    LiveMember,
    MemberAdded,
    MemberInfo,
    MemberRemoved,
    PresenceState,
    SessionJoined,
    SubscriptionSucceeded,
    UserJoined,
    UserLeft,
    parse_event,
    reduce,
)
from codecollab.core.modules.presence.models import CodeUpdatePayload
from codecollab.core.modules.session.models import Participant


def participant(user_id: str, name: str | None = None) -> Participant:
    return Participant(user_id=user_id, user_name=name or user_id.upper(), joined_at=1)


def member(user_id: str, name: str | None = None) -> LiveMember:
    return LiveMember(user_id=user_id, info=MemberInfo(name=name or user_id.upper()))


def update(user_id: str, file_id: str = "f1", content: str = "x", timestamp: int = 10) -> CodeUpdate:
    return CodeUpdate(update=CodeUpdatePayload(file_id=file_id, content=content, user_id=user_id, timestamp=timestamp))


@pytest.fixture
def state():
    return PresenceState(user_id="me")


class TestRoster:
    def test_initial_roster_from_join(self, state):
        result = reduce(state, SessionJoined(participants=[participant("me"), participant("u2")]))

        assert [c.user_id for c in result.collaborators] == ["me", "u2"]
        assert not any(c.online for c in result.collaborators)
        assert not result.connected

    def test_subscription_marks_connected_and_live(self, state):
        state = reduce(state, SessionJoined(participants=[participant("me"), participant("u2")]))

        result = reduce(state, SubscriptionSucceeded(members=[member("me", "Me Live")]))

        assert result.connected
        assert [(c.user_id, c.name, c.online) for c in result.collaborators] == [
            ("me", "Me Live", True),
            ("u2", "U2", False),
        ]

    def test_deduplicates_across_sources(self, state):
        events = [
            SessionJoined(participants=[participant("u2")]),
            UserJoined(participant=participant("u2")),
            SubscriptionSucceeded(members=[member("u2")]),
            MemberAdded(member=member("u2")),
            MemberAdded(member=member("u3")),
            UserJoined(participant=participant("u3")),
        ]
        for event in events:
            state = reduce(state, event)

        assert [c.user_id for c in state.collaborators] == ["u2", "u3"]
        assert [p.user_id for p in state.declared] == ["u2", "u3"]

    def test_member_added_refreshes_info(self, state):
        state = reduce(state, MemberAdded(member=member("u2", "Old")))
        state = reduce(state, MemberAdded(member=member("u2", "New")))

        assert [c.name for c in state.collaborators] == ["New"]

    def test_member_removed_keeps_declared_entry(self, state):
        state = reduce(state, SessionJoined(participants=[participant("u2")]))
        state = reduce(state, MemberAdded(member=member("u2")))

        result = reduce(state, MemberRemoved(user_id="u2"))

        assert result.live == ()
        assert [(c.user_id, c.online) for c in result.collaborators] == [("u2", False)]

    def test_user_left_keeps_live_entry(self, state):
        state = reduce(state, SessionJoined(participants=[participant("u2")]))
        state = reduce(state, MemberAdded(member=member("u2")))

        result = reduce(state, UserLeft(user_id="u2"))

        assert result.declared == ()
        assert [(c.user_id, c.online) for c in result.collaborators] == [("u2", True)]

    def test_both_sources_gone_removes_collaborator(self, state):
        state = reduce(state, SessionJoined(participants=[participant("u2")]))
        state = reduce(state, MemberAdded(member=member("u2")))
        state = reduce(state, UserLeft(user_id="u2"))
        state = reduce(state, MemberRemoved(user_id="u2"))

        assert state.collaborators == []

    def test_reduce_does_not_mutate_input(self, state):
        reduce(state, SessionJoined(participants=[participant("u2")]))
        assert state.declared == ()


class TestCodeUpdates:
    def test_remote_update_applied(self, state):
        result = reduce(state, update("u2", content="print(1)"))

        assert result.files["f1"].content == "print(1)"

    def test_own_echo_ignored(self, state):
        result = reduce(state, update("me", content="mine"))

        assert result is state
        assert "f1" not in result.files

    def test_older_update_ignored(self, state):
        state = reduce(state, update("u2", content="new", timestamp=20))

        result = reduce(state, update("u3", content="old", timestamp=10))

        assert result.files["f1"].content == "new"

    def test_updates_tracked_per_file(self, state):
        state = reduce(state, update("u2", file_id="a.py", content="a"))
        state = reduce(state, update("u2", file_id="b.py", content="b"))

        assert {k: v.content for k, v in state.files.items()} == {"a.py": "a", "b.py": "b"}


class TestParseEvent:
    def test_subscription_succeeded(self):
        payload = {"presence": {"ids": ["u1"], "hash": {"u1": {"name": "Alice", "avatar": None}}, "count": 1}}

        event = parse_event("pusher:subscription_succeeded", payload)

        assert event == SubscriptionSucceeded(members=[LiveMember(user_id="u1", info=MemberInfo(name="Alice"))])

    def test_member_added_and_removed(self):
        added = parse_event("pusher:member_added", {"user_id": "u2", "user_info": {"name": "Bob"}})
        removed = parse_event("pusher:member_removed", {"user_id": "u2"})

        assert added == MemberAdded(member=LiveMember(user_id="u2", info=MemberInfo(name="Bob")))
        assert removed == MemberRemoved(user_id="u2")

    def test_application_events(self):
        joined = parse_event("user-joined", {"userId": "u2", "userName": "Bob", "userAvatar": None, "joinedAt": 5})
        left = parse_event("user-left", {"userId": "u2"})
        code = parse_event("code-update", {"fileId": "f", "content": "c", "userId": "u2", "timestamp": 7})

        assert joined == UserJoined(participant=Participant(user_id="u2", user_name="Bob", joined_at=5))
        assert left == UserLeft(user_id="u2")
        assert code.update.file_id == "f"

    def test_unknown_event_ignored(self):
        assert parse_event("pusher:error", {"message": "boom"}) is None

    def test_numeric_member_id(self):
        assert parse_event("pusher:member_removed", {"user_id": 42}) == MemberRemoved(user_id="42")

    @pytest.mark.parametrize(
        ("name", "payload"),
        [
            ("pusher:subscription_succeeded", {"presence": None}),
            ("pusher:subscription_succeeded", None),
            ("pusher:member_added", {"user_info": {"name": "Bob"}}),
            ("pusher:member_removed", {}),
            ("user-left", {"user": "u2"}),
        ],
    )
    def test_malformed_payload(self, name, payload):
        with pytest.raises(pydantic.ValidationError):
            parse_event(name, payload)
