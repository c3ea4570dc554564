"""
Tests for the in-memory session store.
"""
from datetime import datetime, timedelta

from motionflow.sessions import InMemorySessionStore


def test_sessions_are_scoped_per_user():
    store = InMemorySessionStore()
    store.set("alice", {"session_id": "s1", "thema": "Radwege"})

    assert store.get("alice", "s1")["thema"] == "Radwege"
    assert store.get("bob", "s1") is None


def test_stored_snapshots_are_copies():
    store = InMemorySessionStore()
    session = {"session_id": "s1", "questions": [{"id": "q1"}]}
    store.set("alice", session)
    session["questions"].append({"id": "q2"})

    loaded = store.get("alice", "s1")
    loaded["questions"].clear()
    assert store.get("alice", "s1")["questions"] == [{"id": "q1"}]


def test_update_merges_metadata_and_replaces_other_keys():
    store = InMemorySessionStore()
    store.set("alice", {"session_id": "s1", "conversation_state": "initiated", "metadata": {"a": 1}})
    store.update("alice", "s1", {"conversation_state": "completed", "metadata": {"b": 2}})

    session = store.get("alice", "s1")
    assert session["conversation_state"] == "completed"
    assert session["metadata"] == {"a": 1, "b": 2}


def test_update_creates_unknown_session():
    store = InMemorySessionStore()
    store.update("alice", "s9", {"conversation_state": "error"})
    assert store.get("alice", "s9")["user_id"] == "alice"


def test_expired_sessions_disappear():
    store = InMemorySessionStore(ttl_minutes=30)
    store.set("alice", {"session_id": "old"})
    store.set("alice", {"session_id": "fresh"})
    store._touched[("alice", "old")] = datetime.now() - timedelta(hours=1)

    assert store.purge_expired() == 1
    assert store.get("alice", "old") is None
    assert store.get("alice", "fresh") is not None


def test_expired_session_is_not_returned():
    store = InMemorySessionStore(ttl_minutes=30)
    store.set("alice", {"session_id": "s1"})
    store._touched[("alice", "s1")] = datetime.now() - timedelta(minutes=31)

    assert store.get("alice", "s1") is None
    assert len(store) == 0


def test_purge_terminal_and_delete():
    store = InMemorySessionStore()
    store.set("alice", {"session_id": "done", "conversation_state": "completed"})
    store.set("alice", {"session_id": "failed", "conversation_state": "error"})
    store.set("alice", {"session_id": "open", "conversation_state": "clarification_pending"})

    assert store.purge_terminal() == 2
    assert store.delete("alice", "open") is True
    assert store.delete("alice", "open") is False
    assert len(store) == 0
