"""
Checkpoints for suspended workflow runs.

A checkpoint is written only when a node suspends and is consumed exactly
once when the run is resumed.
"""
import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional


@dataclass
class Checkpoint:
    """
    Persisted execution frame of a suspended run.

    Attributes:
        thread_id: Run identifier (the session id for interactive generation)
        next_node: Node that executes first when the run resumes
        state: Full state snapshot at the suspend point
        interrupt_value: Payload surfaced to the caller while suspended
    """
    thread_id: str
    next_node: str
    state: Dict[str, Any]
    interrupt_value: Any = None
    created_at: datetime = field(default_factory=datetime.now)


class CheckpointStore(ABC):
    """Storage for checkpoints keyed by thread id."""

    @abstractmethod
    def put(self, checkpoint: Checkpoint) -> None:
        ...

    @abstractmethod
    def get(self, thread_id: str) -> Optional[Checkpoint]:
        ...

    @abstractmethod
    def pop(self, thread_id: str) -> Optional[Checkpoint]:
        """Remove and return the checkpoint, or None when there is none."""
        ...

    def has(self, thread_id: str) -> bool:
        return self.get(thread_id) is not None


class InMemoryCheckpointStore(CheckpointStore):
    """
    Process-local checkpoint store guarded by a lock.

    With ``max_age_minutes`` set, checkpoints older than that are dropped on
    read and whenever a new checkpoint is written. Without it they live until
    resumed.
    """

    def __init__(self, max_age_minutes: Optional[int] = None):
        self._checkpoints: Dict[str, Checkpoint] = {}
        self._lock = threading.Lock()
        self._max_age = timedelta(minutes=max_age_minutes) if max_age_minutes is not None else None

    def put(self, checkpoint: Checkpoint) -> None:
        with self._lock:
            self._checkpoints[checkpoint.thread_id] = copy.deepcopy(checkpoint)
            if self._max_age is not None:
                self._cleanup_older_than(self._max_age)

    def get(self, thread_id: str) -> Optional[Checkpoint]:
        with self._lock:
            checkpoint = self._checkpoints.get(thread_id)
            if checkpoint is None:
                return None
            if self._max_age is not None and datetime.now() - checkpoint.created_at > self._max_age:
                del self._checkpoints[thread_id]
                return None
            return copy.deepcopy(checkpoint)

    def pop(self, thread_id: str) -> Optional[Checkpoint]:
        with self._lock:
            checkpoint = self._checkpoints.pop(thread_id, None)
            if checkpoint is not None and self._max_age is not None:
                if datetime.now() - checkpoint.created_at > self._max_age:
                    return None
            return checkpoint

    def purge_expired(self, max_age: Optional[timedelta] = None) -> int:
        """
        Remove checkpoints written more than ``max_age`` ago.

        Args:
            max_age: Age limit; defaults to the store's own ``max_age_minutes``

        Returns:
            Number of removed checkpoints
        """
        limit = max_age if max_age is not None else self._max_age
        if limit is None:
            return 0
        with self._lock:
            return self._cleanup_older_than(limit)

    def __len__(self) -> int:
        with self._lock:
            return len(self._checkpoints)

    def _cleanup_older_than(self, max_age: timedelta) -> int:
        """Called with the lock held."""
        now = datetime.now()
        expired = [key for key, checkpoint in self._checkpoints.items() if now - checkpoint.created_at > max_age]
        for key in expired:
            del self._checkpoints[key]
        return len(expired)
