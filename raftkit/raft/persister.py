"""Stable storage for Raft state and service snapshots."""

from __future__ import annotations

import threading
from typing import Optional


class Persister:
    """Holds the persisted Raft state and snapshot; safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._raftstate = b""
        self._snapshot = b""

    def copy(self) -> Persister:
        """Return a new persister holding the same contents."""
        with self._lock:
            other = Persister()
            other._raftstate = self._raftstate
            other._snapshot = self._snapshot
            return other

    def read_raft_state(self) -> bytes:
        with self._lock:
            return self._raftstate

    def raft_state_size(self) -> int:
        with self._lock:
            return len(self._raftstate)

    def save(self, raftstate: Optional[bytes], snapshot: Optional[bytes]) -> None:
        """Store Raft state and snapshot together, as one atomic action."""
        with self._lock:
            self._raftstate = bytes(raftstate or b"")
            self._snapshot = bytes(snapshot or b"")

    def read_snapshot(self) -> bytes:
        with self._lock:
            return self._snapshot

    def snapshot_size(self) -> int:
        with self._lock:
            return len(self._snapshot)