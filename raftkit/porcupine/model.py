"""Histories, models and results for linearizability checking."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


@dataclass(frozen=True)
class Operation:
    """A completed operation with invocation and response times."""

    client_id: int
    input: Any
    call_time: int
    output: Any
    return_time: int


class EventKind(Enum):
    CALL = "call"
    RETURN = "return"


@dataclass(frozen=True)
class Event:
    """One call or return event; matching call and return share an id."""

    client_id: int
    kind: EventKind
    value: Any
    id: int


def no_partition(history: list[Operation]) -> list[list[Operation]]:
    """Treat the whole history as a single partition."""
    return [history]


def no_partition_event(history: list[Event]) -> list[list[Event]]:
    """Treat the whole event history as a single partition."""
    return [history]


def shallow_equal(state1: Any, state2: Any) -> bool:
    return state1 == state2


def default_describe_operation(input_value: Any, output: Any) -> str:
    return f"{input_value} -> {output}"


def default_describe_state(state: Any) -> str:
    return f"{state}"


@dataclass
class Model:
    """A sequential specification of the system under test.

    ``step(state, input, output)`` returns ``(ok, new_state)`` and must not
    mutate ``state``.
    """

    init: Callable[[], Any]
    step: Callable[[Any, Any, Any], tuple[bool, Any]]
    partition: Callable[[list[Operation]], list[list[Operation]]] = no_partition
    partition_event: Callable[[list[Event]], list[list[Event]]] = no_partition_event
    equal: Callable[[Any, Any], bool] = shallow_equal
    describe_operation: Callable[[Any, Any], str] = default_describe_operation
    describe_state: Callable[[Any], str] = default_describe_state


class CheckResult(str, Enum):
    UNKNOWN = "Unknown"  # timed out
    OK = "Ok"
    ILLEGAL = "Illegal"