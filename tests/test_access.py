"""Tests for the access gate and session context."""
import pytest

from schema_canvas.access import AccessGate, AccessLevel, can_mutate
from schema_canvas.auth import SessionContext, extract_user_id, verify_token
from schema_canvas.errors import Unauthorized

from conftest import TEST_SECRET, make_token


@pytest.mark.parametrize("level, allowed", [
    ("owner", True),
    ("edit", True),
    ("view", False),
    (AccessLevel.EDIT, True),
    (None, False),
    ("admin", False),
])
def test_can_mutate(level, allowed):
    assert can_mutate(level) is allowed


def _noop(*args):
    return None


def test_view_grant_leaves_mutators_unwired():
    handlers = AccessGate("view").wire(_noop, _noop, _noop, _noop, _noop, _noop, _noop)
    assert handlers.read_only
    assert handlers.on_node_drag is _noop
    assert handlers.on_connect is None
    assert handlers.on_edge_activate is None
    assert handlers.on_recolor is None
    assert handlers.on_connect_confirm is None


def test_edit_grant_wires_everything():
    handlers = AccessGate("edit").wire(_noop, _noop, _noop, _noop, _noop, _noop, _noop)
    assert not handlers.read_only
    assert handlers.on_edge_activate is _noop


def test_verify_token_round_trip():
    assert extract_user_id(verify_token(make_token(user_id=12), TEST_SECRET)) == 12


def test_verify_token_rejects_wrong_secret():
    with pytest.raises(Unauthorized):
        verify_token(make_token(), "other-secret")


def test_extract_user_id_requires_numeric_claim():
    with pytest.raises(Unauthorized):
        extract_user_id({"sub": "abc"})
    with pytest.raises(Unauthorized):
        extract_user_id({"user_id": True})


def test_session_lifecycle():
    context = SessionContext()
    assert not context.is_authenticated
    assert not context.has_writer()

    state = context.start(make_token(user_id=3), secret=TEST_SECRET)
    assert state.is_authenticated
    assert state.user_id == 3
    assert state.access_level == AccessLevel.OWNER
    assert context.has_writer()
    assert context.auth_headers()["Authorization"].startswith("Bearer ")

    context.grant("view")
    assert not context.has_writer()
    assert not context.gate.can_mutate()

    context.teardown()
    assert context.auth_state().is_authenticated is False
    assert context.auth_headers() == {}


def test_share_token_editor_is_a_writer_without_login():
    context = SessionContext()
    context.grant("edit", share_token="abc123")
    assert context.has_writer()
    context.grant("view", share_token="abc123")
    assert not context.has_writer()


def test_start_without_secret_fails(monkeypatch):
    from schema_canvas.config import get_settings
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.setattr("schema_canvas.config.load_dotenv", lambda: False)
    get_settings.cache_clear()
    try:
        with pytest.raises(RuntimeError):
            SessionContext().start(make_token())
    finally:
        get_settings.cache_clear()
