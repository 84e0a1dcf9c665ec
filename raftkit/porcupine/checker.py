"""Linearizability checking of operation and event histories."""

from __future__ import annotations

import queue
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Optional

from .bitset import Bitset
from .model import CheckResult, Event, EventKind, Model, Operation


@dataclass(frozen=True)
class _Entry:
    kind: EventKind
    value: Any
    id: int
    time: int
    client_id: int


@dataclass
class LinearizationInfo:
    """Per-partition entries and the longest partial linearizations found."""

    history: list[list[_Entry]] = field(default_factory=list)
    partial_linearizations: list[list[list[int]]] = field(default_factory=list)


class _Node:
    __slots__ = ("value", "match", "id", "next", "prev")

    def __init__(self, value: Any, match: Optional[_Node], node_id: int) -> None:
        self.value = value
        self.match = match  # a call node points to its return; a return has None
        self.id = node_id
        self.next: Optional[_Node] = None
        self.prev: Optional[_Node] = None


def _make_entries(history: list[Operation]) -> list[_Entry]:
    entries = []
    for op_id, op in enumerate(history):
        entries.append(_Entry(EventKind.CALL, op.input, op_id, op.call_time, op.client_id))
        entries.append(_Entry(EventKind.RETURN, op.output, op_id, op.return_time, op.client_id))
    # equal timestamps: calls come before returns
    entries.sort(key=lambda e: (e.time, e.kind is EventKind.RETURN))
    return entries


def _renumber(events: list[Event]) -> list[Event]:
    mapping: dict[int, int] = {}
    return [
        Event(e.client_id, e.kind, e.value, mapping.setdefault(e.id, len(mapping)))
        for e in events
    ]


def _convert_entries(events: list[Event]) -> list[_Entry]:
    # the position in the history serves as the timestamp
    return [_Entry(e.kind, e.value, e.id, position, e.client_id) for position, e in enumerate(events)]


def _insert_before(node: _Node, mark: Optional[_Node]) -> _Node:
    if mark is not None:
        before = mark.prev
        mark.prev = node
        node.next = mark
        if before is not None:
            node.prev = before
            before.next = node
    return node


def _length(node: Optional[_Node]) -> int:
    count = 0
    while node is not None:
        node = node.next
        count += 1
    return count


def _make_linked_entries(entries: list[_Entry]) -> Optional[_Node]:
    root: Optional[_Node] = None
    returns: dict[int, _Node] = {}
    for entry in reversed(entries):
        if entry.kind is EventKind.RETURN:
            node = _Node(entry.value, None, entry.id)
            returns[entry.id] = node
        else:
            node = _Node(entry.value, returns.get(entry.id), entry.id)
        _insert_before(node, root)
        root = node
    return root


def _lift(entry: _Node) -> None:
    entry.prev.next = entry.next
    entry.next.prev = entry.prev
    match = entry.match
    match.prev.next = match.next
    if match.next is not None:
        match.next.prev = match.prev


def _unlift(entry: _Node) -> None:
    match = entry.match
    match.prev.next = match
    if match.next is not None:
        match.next.prev = match
    entry.prev.next = entry
    entry.next.prev = entry


def _cache_contains(model: Model, cache, linearized: Bitset, state: Any) -> bool:
    return any(
        linearized == seen and model.equal(state, seen_state)
        for seen, seen_state in cache.get(linearized.fingerprint(), ())
    )


def _check_single(
    model: Model, history: list[_Entry], compute_partial: bool, kill: threading.Event
) -> tuple[bool, list[Optional[list[int]]]]:
    entry = _make_linked_entries(history)
    n = _length(entry) // 2
    linearized = Bitset(n)
    cache: dict[int, list[tuple[Bitset, Any]]] = defaultdict(list)
    calls: list[tuple[_Node, Any]] = []
    # longest linearizable prefix that includes each entry
    longest: list[Optional[list[int]]] = [None] * n

    state = model.init()
    head = _insert_before(_Node(None, None, -1), entry)
    while head.next is not None:
        if kill.is_set():
            return False, longest
        if entry.match is not None:
            ok, new_state = model.step(state, entry.value, entry.match.value)
            if ok:
                new_linearized = linearized.clone().set(entry.id)
                if not _cache_contains(model, cache, new_linearized, new_state):
                    cache[new_linearized.fingerprint()].append((new_linearized, new_state))
                    calls.append((entry, state))
                    state = new_state
                    linearized.set(entry.id)
                    _lift(entry)
                    entry = head.next
                else:
                    entry = entry.next
            else:
                entry = entry.next
        else:
            if not calls:
                return False, longest
            if compute_partial:
                seq: Optional[list[int]] = None
                for node, _ in calls:
                    current = longest[node.id]
                    if current is None or len(calls) > len(current):
                        if seq is None:
                            seq = [call_node.id for call_node, _ in calls]
                        longest[node.id] = seq
            entry, state = calls.pop()
            linearized.clear(entry.id)
            _unlift(entry)
            entry = entry.next
    seq = [node.id for node, _ in calls]
    return True, [seq] * n


def _check_parallel(
    model: Model, history: list[list[_Entry]], compute_info: bool, timeout: float
) -> tuple[CheckResult, LinearizationInfo]:
    results: queue.Queue[bool] = queue.Queue()
    longest: list[list[Optional[list[int]]]] = [[] for _ in history]
    kill = threading.Event()

    def worker(index: int, subhistory: list[_Entry]) -> None:
        ok, partial = _check_single(model, subhistory, compute_info, kill)
        longest[index] = partial
        results.put(ok)

    for index, subhistory in enumerate(history):
        threading.Thread(target=worker, args=(index, subhistory), daemon=True).start()

    deadline = time.monotonic() + timeout if timeout > 0 else None
    ok = True
    timed_out = False
    count = 0
    while count < len(history):
        try:
            if deadline is None:
                result = results.get()
            else:
                result = results.get(timeout=max(0.0, deadline - time.monotonic()))
        except queue.Empty:
            # a timeout may hide a violation
            timed_out = True
            kill.set()
            break
        count += 1
        ok = ok and result
        if not ok and not compute_info:
            kill.set()
            break

    info = LinearizationInfo()
    if compute_info:
        while count < len(history):
            results.get()
            count += 1
        partials = []
        for partition in longest:
            unique = {id(seq): seq for seq in partition if seq is not None}
            partials.append([list(seq) for seq in unique.values()])
        info = LinearizationInfo(history=list(history), partial_linearizations=partials)

    if not ok:
        result_kind = CheckResult.ILLEGAL
    elif timed_out:
        result_kind = CheckResult.UNKNOWN
    else:
        result_kind = CheckResult.OK
    return result_kind, info


def _check_events(
    model: Model, history: list[Event], verbose: bool, timeout: float
) -> tuple[CheckResult, LinearizationInfo]:
    partitions = model.partition_event(history)
    entries = [_convert_entries(_renumber(part)) for part in partitions]
    return _check_parallel(model, entries, verbose, timeout)


def _check_operations(
    model: Model, history: list[Operation], verbose: bool, timeout: float
) -> tuple[CheckResult, LinearizationInfo]:
    partitions = model.partition(history)
    entries = [_make_entries(part) for part in partitions]
    return _check_parallel(model, entries, verbose, timeout)


def check_operations(model: Model, history: list[Operation]) -> bool:
    """Return whether the operation history is linearizable."""
    result, _ = _check_operations(model, history, False, 0)
    return result is CheckResult.OK


def check_operations_timeout(model: Model, history: list[Operation], timeout: float = 0) -> CheckResult:
    """Check with a timeout in seconds; 0 means none. A timeout may give a false positive."""
    result, _ = _check_operations(model, history, False, timeout)
    return result


def check_operations_verbose(
    model: Model, history: list[Operation], timeout: float = 0
) -> tuple[CheckResult, LinearizationInfo]:
    """Check and also return partial linearizations for visualization."""
    return _check_operations(model, history, True, timeout)


def check_events(model: Model, history: list[Event]) -> bool:
    """Return whether the event history is linearizable."""
    result, _ = _check_events(model, history, False, 0)
    return result is CheckResult.OK


def check_events_timeout(model: Model, history: list[Event], timeout: float = 0) -> CheckResult:
    """Check with a timeout in seconds; 0 means none. A timeout may give a false positive."""
    result, _ = _check_events(model, history, False, timeout)
    return result


def check_events_verbose(
    model: Model, history: list[Event], timeout: float = 0
) -> tuple[CheckResult, LinearizationInfo]:
    """Check and also return partial linearizations for visualization."""
    return _check_events(model, history, True, timeout)