import time

from raftkit.porcupine.checker import (
    LinearizationInfo,
    check_events,
    check_events_timeout,
    check_events_verbose,
    check_operations,
    check_operations_timeout,
    check_operations_verbose,
)
from raftkit.porcupine.model import CheckResult, Event, EventKind, Model, Operation


def _register_step(state, input_value, output):
    kind, value = input_value
    if kind == "put":
        return True, value
    return output == state, state


REGISTER = Model(init=lambda: 0, step=_register_step)

PUT = EventKind.CALL
CALL = EventKind.CALL
RETURN = EventKind.RETURN

GOOD_OPS = [
    Operation(0, ("put", 100), 0, None, 100),
    Operation(1, ("get", None), 25, 100, 75),
    Operation(2, ("get", None), 30, 0, 60),
]

BAD_OPS = [
    Operation(0, ("put", 200), 0, None, 100),
    Operation(1, ("get", None), 10, 200, 30),
    Operation(2, ("get", None), 40, 0, 90),
]

GOOD_EVENTS = [
    Event(0, CALL, ("put", 100), 0),
    Event(1, CALL, ("get", None), 1),
    Event(2, CALL, ("get", None), 2),
    Event(2, RETURN, 0, 2),
    Event(1, RETURN, 100, 1),
    Event(0, RETURN, None, 0),
]

BAD_EVENTS = [
    Event(0, CALL, ("put", 200), 0),
    Event(1, CALL, ("get", None), 1),
    Event(1, RETURN, 200, 1),
    Event(2, CALL, ("get", None), 2),
    Event(2, RETURN, 0, 2),
    Event(0, RETURN, None, 0),
]


def test_linearizable_operations():
    assert check_operations(REGISTER, GOOD_OPS) is True


def test_non_linearizable_operations():
    assert check_operations(REGISTER, BAD_OPS) is False


def test_empty_history_is_linearizable():
    assert check_operations(REGISTER, []) is True


def test_sequential_history_order_matters():
    ok = [
        Operation(0, ("put", 1), 0, None, 1),
        Operation(0, ("get", None), 2, 1, 3),
    ]
    stale = [
        Operation(0, ("put", 1), 0, None, 1),
        Operation(0, ("get", None), 2, 0, 3),
    ]
    assert check_operations(REGISTER, ok)
    assert not check_operations(REGISTER, stale)


def test_timeout_variant_results():
    assert check_operations_timeout(REGISTER, GOOD_OPS, 0) is CheckResult.OK
    assert check_operations_timeout(REGISTER, BAD_OPS, 0) is CheckResult.ILLEGAL


def test_timeout_reports_unknown():
    def slow_step(state, input_value, output):
        time.sleep(0.1)
        return _register_step(state, input_value, output)

    slow = Model(init=lambda: 0, step=slow_step)
    assert check_operations_timeout(slow, GOOD_OPS, 0.01) is CheckResult.UNKNOWN


def test_verbose_ok_gives_full_linearization():
    result, info = check_operations_verbose(REGISTER, GOOD_OPS, 0)
    assert result is CheckResult.OK
    assert len(info.history) == 1
    assert len(info.history[0]) == 2 * len(GOOD_OPS)
    assert len(info.partial_linearizations[0]) == 1
    assert sorted(info.partial_linearizations[0][0]) == [0, 1, 2]


def test_verbose_ok_linearization_replays_on_model():
    _, info = check_operations_verbose(REGISTER, GOOD_OPS, 0)
    state = REGISTER.init()
    for op_id in info.partial_linearizations[0][0]:
        op = GOOD_OPS[op_id]
        ok, state = REGISTER.step(state, op.input, op.output)
        assert ok


def test_verbose_illegal_gives_partial_linearizations():
    result, info = check_operations_verbose(REGISTER, BAD_OPS, 0)
    assert result is CheckResult.ILLEGAL
    partials = info.partial_linearizations[0]
    assert partials
    for seq in partials:
        assert 0 < len(seq) < len(BAD_OPS)
        assert set(seq) <= {0, 1, 2}


def test_non_verbose_returns_no_info():
    _, info = check_operations_verbose(REGISTER, GOOD_OPS, 0)
    assert isinstance(info, LinearizationInfo)
    assert LinearizationInfo().history == []


def test_history_entries_sorted_with_calls_first():
    ops = [
        Operation(0, ("put", 1), 0, None, 5),
        Operation(1, ("get", None), 5, 1, 9),
    ]
    _, info = check_operations_verbose(REGISTER, ops, 0)
    times = [entry.time for entry in info.history[0]]
    assert times == sorted(times)
    at_five = [entry.kind for entry in info.history[0] if entry.time == 5]
    assert at_five == [EventKind.CALL, EventKind.RETURN]


def test_linearizable_events():
    assert check_events(REGISTER, GOOD_EVENTS) is True


def test_non_linearizable_events():
    assert check_events(REGISTER, BAD_EVENTS) is False


def test_events_with_arbitrary_ids():
    events = [
        Event(0, CALL, ("put", 7), 40),
        Event(0, RETURN, None, 40),
        Event(1, CALL, ("get", None), 90),
        Event(1, RETURN, 7, 90),
    ]
    assert check_events(REGISTER, events)
    assert check_events_timeout(REGISTER, events, 0) is CheckResult.OK


def test_events_verbose():
    result, info = check_events_verbose(REGISTER, BAD_EVENTS, 0)
    assert result is CheckResult.ILLEGAL
    assert [entry.time for entry in info.history[0]] == list(range(len(BAD_EVENTS)))
    assert all(len(seq) < 3 for seq in info.partial_linearizations[0])


def _kv_step(state, input_value, output):
    _, kind, value = input_value
    if kind == "put":
        return True, value
    return output == state, state


def _kv_partition(history):
    groups = {}
    for op in history:
        groups.setdefault(op.input[0], []).append(op)
    return list(groups.values())


KV = Model(init=lambda: "", step=_kv_step, partition=_kv_partition)


def test_partitioned_model_ok():
    history = [
        Operation(0, ("x", "put", "a"), 0, None, 1),
        Operation(1, ("y", "put", "b"), 0, None, 1),
        Operation(0, ("x", "get", None), 2, "a", 3),
        Operation(1, ("y", "get", None), 2, "b", 3),
    ]
    assert check_operations(KV, history)
    result, info = check_operations_verbose(KV, history, 0)
    assert result is CheckResult.OK
    assert len(info.history) == 2


def test_partitioned_model_detects_violation():
    history = [
        Operation(0, ("x", "put", "a"), 0, None, 1),
        Operation(1, ("y", "put", "b"), 0, None, 1),
        Operation(0, ("x", "get", None), 2, "b", 3),
    ]
    assert not check_operations(KV, history)
    assert check_operations_timeout(KV, history, 5) is CheckResult.ILLEGAL