"""The replicated log, its entries and the timing constants of the protocol."""

from __future__ import annotations

import bisect
import random
from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator, Optional, Sequence

_HEARTBEAT_MS = 125
_ELECTION_MIN_MS = 300
_ELECTION_SPREAD_MS = 350


@dataclass(frozen=True)
class LogEntry:
    """One entry of the Raft log."""

    term: int = 0
    command: Any = None
    index: int = 0


class RaftLog:
    """A log whose first entry stands for everything folded into the last snapshot.

    Entries are addressed by their absolute Raft index, not by list position.
    """

    def __init__(self, entries: Optional[Iterable[LogEntry]] = None) -> None:
        self._entries = list(entries) if entries is not None else [LogEntry()]
        if not self._entries:
            raise ValueError("a Raft log always holds at least one entry")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return f"RaftLog({self._entries!r})"

    def first(self) -> LogEntry:
        """The first entry, which marks the snapshot point."""
        return self._entries[0]

    def last(self) -> LogEntry:
        """The last entry."""
        return self._entries[-1]

    def _position(self, index: int) -> int:
        position = index - self._entries[0].index
        if not 0 <= position < len(self._entries):
            raise IndexError(f"log index {index} is not held in this log")
        return position

    def entry(self, index: int) -> LogEntry:
        """Return the entry at absolute ``index``; IndexError if it is not held."""
        return self._entries[self._position(index)]

    def matches(self, term: int, index: int) -> bool:
        """Whether the entry at ``index`` exists and has the given term."""
        position = index - self._entries[0].index
        if not 0 <= position < len(self._entries):
            return False
        return self._entries[position].term == term

    def is_up_to_date(self, term: int, index: int) -> bool:
        """Whether a log ending at (term, index) is at least as up to date as this one."""
        last = self.last()
        return term > last.term or (term == last.term and index >= last.index)

    def entries_from(self, index: int) -> list[LogEntry]:
        """Copy of all entries from absolute ``index`` to the end."""
        position = index - self._entries[0].index
        if position < 0:
            raise IndexError(f"log index {index} precedes the snapshot point")
        return self._entries[position:]

    def entries_between(self, start: int, stop: int) -> list[LogEntry]:
        """Copy of the entries with ``start <= index < stop``."""
        first = self._entries[0].index
        if start < first or stop < start:
            raise IndexError(f"log range [{start}, {stop}) is not held in this log")
        return self._entries[start - first : stop - first]

    def append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    def merge(self, entries: Sequence[LogEntry]) -> None:
        """Take entries from a leader: drop from the first conflict on and append the rest."""
        first = self._entries[0].index
        for offset, entry in enumerate(entries):
            position = entry.index - first
            if position >= len(self._entries) or self._entries[position].term != entry.term:
                self._entries = self._entries[:position] + list(entries[offset:])
                break

    def term_start(self, index: int) -> int:
        """First index of the run of entries, ending at ``index``, that share its term."""
        first = self._entries[0].index
        term = self.entry(index).term
        current = index - 1
        while current >= first and self._entries[current - first].term == term:
            current -= 1
        return current + 1

    def compact(self, index: int) -> bool:
        """Discard entries before ``index``; the entry at ``index`` becomes the snapshot mark.

        Returns False, changing nothing, if ``index`` is not past the current mark.
        """
        if index <= self._entries[0].index:
            return False
        position = self._position(index)
        kept = self._entries[position:]
        kept[0] = replace(kept[0], command=None)
        self._entries = kept
        return True

    def reset(self, term: int, index: int) -> None:
        """Replace the whole log by a single snapshot mark."""
        self._entries = [LogEntry(term=term, command=None, index=index)]


def search_next_index(entries: Sequence[LogEntry], conflict_term: int) -> int:
    """Position just after the last entry whose term is at most ``conflict_term``.

    ``entries`` must be ordered by term, as a Raft log is.
    """
    return bisect.bisect_right(entries, conflict_term, key=lambda entry: entry.term)


def stable_heartbeat_timeout() -> float:
    """Interval between leader heartbeats, in seconds."""
    return _HEARTBEAT_MS / 1000


def random_election_timeout() -> float:
    """A randomized election timeout, in seconds."""
    return (_ELECTION_MIN_MS + random.randrange(_ELECTION_SPREAD_MS)) / 1000