"""
In-memory session storage for interactive generation sessions.

Sessions are kept per user, expire after a configurable idle time and are
written after every workflow transition. There is no locking beyond the
store's own mutex: concurrent writers to one session follow last-write-wins.
"""
import copy
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from motionflow.ports import SessionStore
from motionflow.utils import get_logger

logger = get_logger(__name__)

# keys whose values are merged rather than replaced on update
MERGED_KEYS = ("metadata",)

TERMINAL_STATES = ("completed", "error")


class InMemorySessionStore(SessionStore):
    """
    Thread-safe session store.
    Stores snapshots in memory with automatic cleanup of expired sessions.
    """

    def __init__(self, ttl_minutes: int = 60):
        self._sessions: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._touched: Dict[Tuple[str, str], datetime] = {}
        self._lock = threading.RLock()
        self._timeout = timedelta(minutes=ttl_minutes)

    def set(self, user_id: str, session: Dict[str, Any]) -> None:
        """Store a full session snapshot; ``session`` must carry ``session_id``."""
        key = (user_id, session["session_id"])
        with self._lock:
            self._sessions[key] = copy.deepcopy(session)
            self._touched[key] = datetime.now()
            self._cleanup_expired()

    def get(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        """Get session by id, returns None if not found or expired."""
        key = (user_id, session_id)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return None

            if datetime.now() - self._touched[key] > self._timeout:
                self._drop(key)
                return None

            self._touched[key] = datetime.now()
            return copy.deepcopy(session)

    def update(self, user_id: str, session_id: str, partial: Dict[str, Any]) -> None:
        """Merge ``partial`` into an existing session; unknown sessions are created."""
        key = (user_id, session_id)
        with self._lock:
            session = self._sessions.setdefault(key, {"session_id": session_id, "user_id": user_id})
            for name, value in copy.deepcopy(partial).items():
                if name in MERGED_KEYS and isinstance(value, dict):
                    session[name] = {**session.get(name, {}), **value}
                else:
                    session[name] = value
            self._touched[key] = datetime.now()

    def delete(self, user_id: str, session_id: str) -> bool:
        """Delete a session."""
        with self._lock:
            key = (user_id, session_id)
            if key in self._sessions:
                self._drop(key)
                return True
            return False

    def purge_expired(self) -> int:
        """Remove sessions idle longer than the TTL; returns how many."""
        with self._lock:
            return self._cleanup_expired()

    def purge_terminal(self) -> int:
        """Remove sessions that reached ``completed`` or ``error``; returns how many."""
        with self._lock:
            finished = [
                key for key, session in self._sessions.items()
                if session.get("conversation_state") in TERMINAL_STATES
            ]
            for key in finished:
                self._drop(key)
        if finished:
            logger.info(f"Purged {len(finished)} finished sessions")
        return len(finished)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _drop(self, key: Tuple[str, str]) -> None:
        self._sessions.pop(key, None)
        self._touched.pop(key, None)

    def _cleanup_expired(self) -> int:
        """Remove expired sessions (called internally with lock held)."""
        now = datetime.now()
        expired = [key for key, touched in self._touched.items() if now - touched > self._timeout]
        for key in expired:
            self._drop(key)
        return len(expired)
