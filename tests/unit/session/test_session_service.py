"""Tests for the collaboration session lifecycle."""

import pytest

from codecollab.app import App
from codecollab.core.db import MemoryKeyValueStore
from codecollab.core.modules.presence.broadcaster import PusherBroadcaster
from codecollab.errors import ConflictError, NotFoundError, UpstreamError


class InterleavingStore(MemoryKeyValueStore):
    """Runs a competing writer right before the next conditional write on a key prefix."""

    def __init__(self) -> None:
        super().__init__()
        self.pending = []

    async def set_if_version(self, key, value, version):
        if self.pending and key.startswith("session:"):
            competing = self.pending.pop(0)
            await competing()
        return await super().set_if_version(key, value, version)


class TrackingStore(MemoryKeyValueStore):
    """Remembers every session key ever created."""

    def __init__(self) -> None:
        super().__init__()
        self.created_sessions = []

    async def set_if_version(self, key, value, version):
        written = await super().set_if_version(key, value, version)
        if written and version is None and key.startswith("session:"):
            self.created_sessions.append(key)
        return written

    async def live_sessions(self):
        return [key for key in self.created_sessions if await self.get(key) is not None]


class UnreachableBroadcaster(PusherBroadcaster):
    async def trigger(self, channel, event, data):
        raise UpstreamError("connection refused")


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_creates_session_with_single_participant(self, app, project):
        creds = await app.create_session(project.id, "u1", "Alice", "https://img/alice.png")

        assert creds.session_id
        assert creds.auth_token
        assert creds.channel_name == f"presence-collab-{creds.session_id}"

        session = await app.get_session(creds.session_id)
        assert session.project_id == project.id
        assert session.created_at == session.updated_at
        assert [p.user_id for p in session.participants] == ["u1"]
        assert session.participants[0].user_avatar == "https://img/alice.png"

    @pytest.mark.asyncio
    async def test_unknown_project(self, app):
        with pytest.raises(NotFoundError):
            await app.create_session("no-such-project", "u1", "Alice")

    @pytest.mark.asyncio
    async def test_registers_project_index(self, app, project):
        creds = await app.create_session(project.id, "u1", "Alice")

        session = await app.find_session_by_project(project.id)
        assert session.id == creds.session_id

    @pytest.mark.asyncio
    async def test_second_create_for_same_project_joins_existing(self, app, project, broadcaster):
        first = await app.create_session(project.id, "u1", "Alice")
        second = await app.create_session(project.id, "u2", "Bob")

        assert second.session_id == first.session_id
        session = await app.get_session(first.session_id)
        assert [p.user_id for p in session.participants] == ["u1", "u2"]
        assert [e["userId"] for e in broadcaster.payloads("user-joined")] == ["u2"]

    @pytest.mark.asyncio
    async def test_stale_project_index_is_replaced(self, app, project, store):
        await store.set(f"project-session-index:{project.id}", "gone")

        creds = await app.create_session(project.id, "u1", "Alice")

        assert creds.session_id != "gone"
        assert (await app.find_session_by_project(project.id)).id == creds.session_id


class TestCreateSessionCleanup:
    @pytest.fixture
    def store(self):
        return TrackingStore()

    @pytest.mark.asyncio
    async def test_redirect_leaves_one_session(self, app, project, store):
        first = await app.create_session(project.id, "u1", "Alice")
        await app.create_session(project.id, "u2", "Bob")

        assert await store.live_sessions() == [f"session:{first.session_id}"]

    @pytest.mark.asyncio
    async def test_failed_redirect_leaves_one_session(self, app, project, store, config):
        failing = App(config, UnreachableBroadcaster(config), store)
        first = await app.create_session(project.id, "u1", "Alice")

        with pytest.raises(UpstreamError):
            await failing.create_session(project.id, "u2", "Bob")

        assert await store.live_sessions() == [f"session:{first.session_id}"]
        assert (await app.find_session_by_project(project.id)).id == first.session_id


class TestJoinSession:
    @pytest.mark.asyncio
    async def test_join_adds_participant_and_emits_event(self, app, project, broadcaster):
        creds = await app.create_session(project.id, "u1", "Alice")

        joined = await app.join_session(creds.session_id, "u2", "Bob")

        assert [p.user_id for p in joined.participants] == ["u1", "u2"]
        assert joined.channel_name == creds.channel_name
        events = broadcaster.payloads("user-joined")
        assert len(events) == 1
        assert events[0]["userId"] == "u2"
        assert events[0]["userName"] == "Bob"
        assert events[0]["userAvatar"] is None
        channel, _, _ = broadcaster.events[0]
        assert channel == creds.channel_name

    @pytest.mark.asyncio
    async def test_join_updates_updated_at(self, app, project):
        creds = await app.create_session(project.id, "u1", "Alice")
        before = await app.get_session(creds.session_id)

        await app.join_session(creds.session_id, "u2", "Bob")

        after = await app.get_session(creds.session_id)
        assert after.updated_at > before.updated_at
        assert after.created_at == before.created_at

    @pytest.mark.asyncio
    async def test_join_is_idempotent_per_user(self, app, project, broadcaster):
        creds = await app.create_session(project.id, "u1", "Alice")
        await app.join_session(creds.session_id, "u2", "Bob")
        before = await app.get_session(creds.session_id)

        again = await app.join_session(creds.session_id, "u2", "Bob")

        after = await app.get_session(creds.session_id)
        assert after == before
        assert len(again.participants) == 2
        assert len(broadcaster.payloads("user-joined")) == 1

    @pytest.mark.asyncio
    async def test_rejoin_issues_fresh_token(self, app, project):
        creds = await app.create_session(project.id, "u1", "Alice")

        joined = await app.join_session(creds.session_id, "u1", "Alice")

        assert joined.auth_token != creds.auth_token

    @pytest.mark.asyncio
    async def test_distinct_users_each_appear_once(self, app, project):
        creds = await app.create_session(project.id, "u0", "Host")
        users = ["u3", "u1", "u2", "u1", "u3", "u4"]

        for user_id in users:
            await app.join_session(creds.session_id, user_id, user_id.upper())

        session = await app.get_session(creds.session_id)
        ids = [p.user_id for p in session.participants]
        assert sorted(ids) == ["u0", "u1", "u2", "u3", "u4"]
        assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_join_missing_session(self, app):
        with pytest.raises(NotFoundError):
            await app.join_session("missing", "u1", "Alice")


class TestLeaveSession:
    @pytest.mark.asyncio
    async def test_leave_removes_participant_and_emits_event(self, app, project, broadcaster):
        creds = await app.create_session(project.id, "u1", "Alice")
        await app.join_session(creds.session_id, "u2", "Bob")

        await app.leave_session(creds.session_id, "u1")

        session = await app.get_session(creds.session_id)
        assert [p.user_id for p in session.participants] == ["u2"]
        assert broadcaster.payloads("user-left") == [{"userId": "u1"}]

    @pytest.mark.asyncio
    async def test_last_leave_deletes_session_and_index(self, app, project, broadcaster):
        creds = await app.create_session(project.id, "u1", "Alice")

        await app.leave_session(creds.session_id, "u1")

        with pytest.raises(NotFoundError):
            await app.get_session(creds.session_id)
        with pytest.raises(NotFoundError):
            await app.find_session_by_project(project.id)
        assert broadcaster.payloads("user-left") == []

    @pytest.mark.asyncio
    async def test_project_gets_new_session_after_deletion(self, app, project):
        old = await app.create_session(project.id, "u1", "Alice")
        await app.leave_session(old.session_id, "u1")

        new = await app.create_session(project.id, "u2", "Bob")

        assert new.session_id != old.session_id
        assert (await app.find_session_by_project(project.id)).id == new.session_id

    @pytest.mark.asyncio
    async def test_leave_by_non_participant_is_noop(self, app, project, broadcaster):
        creds = await app.create_session(project.id, "u1", "Alice")
        before = await app.get_session(creds.session_id)

        await app.leave_session(creds.session_id, "stranger")

        assert await app.get_session(creds.session_id) == before
        assert broadcaster.payloads("user-left") == []

    @pytest.mark.asyncio
    async def test_leave_revokes_token(self, app, project, store):
        creds = await app.create_session(project.id, "u1", "Alice")
        await app.join_session(creds.session_id, "u2", "Bob")

        await app.leave_session(creds.session_id, "u2")

        assert await store.get(f"token:{creds.session_id}:u2") is None
        assert await store.get(f"token:{creds.session_id}:u1") == creds.auth_token

    @pytest.mark.asyncio
    async def test_leave_missing_session(self, app):
        with pytest.raises(NotFoundError):
            await app.leave_session("missing", "u1")


class TestConcurrentWrites:
    @pytest.fixture
    def store(self):
        return InterleavingStore()

    @pytest.mark.asyncio
    async def test_concurrent_join_is_not_lost(self, app, project, store):
        creds = await app.create_session(project.id, "u1", "Alice")
        store.pending.append(lambda: app.join_session(creds.session_id, "u2", "Bob"))

        await app.join_session(creds.session_id, "u3", "Carol")

        session = await app.get_session(creds.session_id)
        assert sorted(p.user_id for p in session.participants) == ["u1", "u2", "u3"]

    @pytest.mark.asyncio
    async def test_join_racing_last_leave_does_not_resurrect(self, app, project, store):
        creds = await app.create_session(project.id, "u1", "Alice")
        store.pending.append(lambda: app.leave_session(creds.session_id, "u1"))

        with pytest.raises(NotFoundError):
            await app.join_session(creds.session_id, "u2", "Bob")

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, app, project, store, config):
        creds = await app.create_session(project.id, "u1", "Alice")

        async def bump():
            record = await store.get_versioned(f"session:{creds.session_id}")
            await MemoryKeyValueStore.set(store, f"session:{creds.session_id}", record.value)

        store.pending.extend([bump] * config.max_write_attempts)

        with pytest.raises(ConflictError):
            await app.join_session(creds.session_id, "u2", "Bob")
