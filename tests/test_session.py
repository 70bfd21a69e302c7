"""
Tests for the session model and session state persistence.
"""

import json

import pytest

from baasbox import Identity, MemoryStore, Session, SocialProvider
from baasbox.errors import ProtocolError
from baasbox.session import SESSION_KEY, SessionState

from conftest import login_data


class TestSessionPayload:
    """Decoding login payloads."""

    def test_from_login_payload(self):
        session = Session.from_payload(login_data())

        assert session.token == "tok123"
        assert session.is_authenticated()
        assert session.identity == Identity(id="1", username="alice", status="ACTIVE")
        assert session.visible_by_the_user == {"email": "alice@example.com"}
        assert session.social_provider is None

    def test_unauthenticated_by_default(self):
        assert not Session().is_authenticated()

    @pytest.mark.parametrize("field", ["id", "user", "X-BB-SESSION"])
    def test_missing_field(self, field):
        payload = login_data()
        del payload[field]
        with pytest.raises(ProtocolError):
            Session.from_payload(payload)

    def test_missing_user_name(self):
        payload = login_data()
        del payload["user"]["name"]
        with pytest.raises(ProtocolError):
            Session.from_payload(payload)

    def test_wrong_visibility_type(self):
        payload = login_data()
        payload["visibleByFriends"] = ["not", "a", "map"]
        with pytest.raises(ProtocolError):
            Session.from_payload(payload)

    def test_not_an_object(self):
        with pytest.raises(ProtocolError):
            Session.from_payload(["tok123"])

    def test_record_keeps_social_provider(self):
        session = Session.from_payload(login_data(), social_provider=SocialProvider.GOOGLE)
        decoded = Session.from_record(json.loads(json.dumps(session.to_record())))
        assert decoded == session

    def test_unknown_record_version(self):
        record = Session.from_payload(login_data()).to_record()
        record["version"] = 99
        with pytest.raises(ProtocolError):
            Session.from_record(record)

    def test_unknown_provider_is_dropped(self):
        record = Session.from_payload(login_data()).to_record()
        record["social_provider"] = "myspace"
        assert Session.from_record(record).social_provider is None


class TestSessionState:
    """Ownership and persistence of the live session."""

    def test_replace_persists(self, store: MemoryStore):
        state = SessionState(store)
        state.replace(Session.from_payload(login_data()))

        assert state.is_authenticated()
        assert state.token == "tok123"
        assert SessionState(store).token == "tok123"

    def test_snapshot_is_a_copy(self, store: MemoryStore):
        state = SessionState(store)
        state.replace(Session.from_payload(login_data()))

        snapshot = state.session
        snapshot.token = "changed"
        snapshot.identity.username = "mallory"
        snapshot.visible_by_the_user["email"] = "mallory@example.com"

        live = state.session
        assert live.token == "tok123"
        assert live.identity.username == "alice"
        assert live.visible_by_the_user == {"email": "alice@example.com"}

    def test_replaced_session_is_detached(self, store: MemoryStore):
        state = SessionState(store)
        session = Session.from_payload(login_data())
        state.replace(session)

        session.identity.username = "mallory"

        assert state.session.identity.username == "alice"

    def test_update_returns_a_copy(self, store: MemoryStore):
        state = SessionState(store)
        state.replace(Session.from_payload(login_data()))

        updated = state.update(push_token="apns-token")
        updated.identity.username = "mallory"

        assert state.session.identity.username == "alice"

    def test_update(self, store: MemoryStore):
        state = SessionState(store)
        state.replace(Session.from_payload(login_data()))

        state.update(push_token="apns-token", push_enabled=True)

        restored = SessionState(store).session
        assert restored.push_token == "apns-token"
        assert restored.push_enabled is True

    def test_clear(self, store: MemoryStore):
        state = SessionState(store)
        state.replace(Session.from_payload(login_data()))

        state.clear()

        assert not state.is_authenticated()
        assert store.get(SESSION_KEY) is None

    @pytest.mark.parametrize("raw", [b"garbage", b"{}", b'{"version": 1, "token": 5}'])
    def test_corrupt_record_is_discarded(self, store: MemoryStore, raw):
        store.set(SESSION_KEY, raw)
        assert not SessionState(store).is_authenticated()

    def test_reload_from_new_store(self, store: MemoryStore):
        other = MemoryStore()
        SessionState(other).replace(Session.from_payload(login_data("other-tok")))

        state = SessionState(store)
        state.reload(other)

        assert state.token == "other-tok"
