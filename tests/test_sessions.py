"""Tests for ig_mcp.sessions.SessionStore."""

from ig_mcp.models import IGCredentials, IGSession
from ig_mcp.sessions import SessionStore


def authenticated_session(account_id="ABC123"):
    return IGSession(cst="c", x_security_token="x", account_id=account_id, authenticated=True)


class TestSessionStore:
    def test_unknown_connection_is_empty(self):
        store = SessionStore()
        assert store.get("nobody") is None
        assert store.get_credentials("nobody") is None
        assert store.is_authenticated("nobody") is False

    def test_set_then_get(self):
        store = SessionStore()
        session = authenticated_session()
        store.set("conn-a", session)
        assert store.get("conn-a") is session
        assert store.is_authenticated("conn-a")

    def test_unauthenticated_session_does_not_count(self):
        store = SessionStore()
        store.set("conn-a", IGSession(cst="c", x_security_token="x"))
        assert store.is_authenticated("conn-a") is False

    def test_connections_are_isolated(self):
        store = SessionStore()
        store.set("conn-a", authenticated_session("A"))
        store.set("conn-b", authenticated_session("B"))
        assert store.get("conn-a").account_id == "A"
        assert store.get("conn-b").account_id == "B"

    def test_clear_drops_session_and_credentials(self):
        store = SessionStore()
        store.set("conn-a", authenticated_session())
        store.set_credentials("conn-a", IGCredentials("u", "p", "k"))
        store.clear("conn-a")
        assert store.get("conn-a") is None
        assert store.get_credentials("conn-a") is None
        assert store.is_authenticated("conn-a") is False

    def test_clear_unknown_connection_is_noop(self):
        SessionStore().clear("nobody")

    def test_clear_all_and_list_all(self):
        store = SessionStore()
        store.set("conn-a", authenticated_session())
        store.set_credentials("conn-b", IGCredentials("u", "p", "k"))
        listed = dict(store.list_all())
        assert set(listed) == {"conn-a", "conn-b"}
        assert listed["conn-b"] is None
        store.clear_all()
        assert store.list_all() == []


class TestConnectionIds:
    def test_ids_are_unique_and_prefixed(self):
        ids = {SessionStore.generate_connection_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(conn_id.startswith("conn_") for conn_id in ids)
