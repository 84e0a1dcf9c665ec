import pytest

from raftkit.raft.log import (
    LogEntry,
    RaftLog,
    random_election_timeout,
    search_next_index,
    stable_heartbeat_timeout,
)


def make_log(terms, start=0):
    return RaftLog(LogEntry(term=t, command=f"c{i}", index=start + i) for i, t in enumerate(terms))


def test_default_log_holds_one_empty_entry():
    log = RaftLog()
    assert len(log) == 1
    assert log.first() == LogEntry(term=0, command=None, index=0)
    assert log.last() is log.first()


def test_empty_entries_rejected():
    with pytest.raises(ValueError):
        RaftLog([])


def test_entry_uses_absolute_index():
    log = make_log([1, 1, 2], start=5)
    assert log.entry(6).command == "c1"
    assert log.entry(5) == log.first()
    assert log.entry(7) == log.last()


@pytest.mark.parametrize("index", [4, 8, -1])
def test_entry_out_of_range(index):
    log = make_log([1, 1, 2], start=5)
    with pytest.raises(IndexError):
        log.entry(index)


def test_matches():
    log = make_log([0, 1, 2])
    assert log.matches(1, 1)
    assert not log.matches(2, 1)
    assert not log.matches(2, 3)
    assert not log.matches(0, -1)


def test_is_up_to_date():
    log = make_log([0, 1, 2])
    last = log.last()
    assert log.is_up_to_date(last.term, last.index)
    assert log.is_up_to_date(last.term + 1, 0)
    assert log.is_up_to_date(last.term, last.index + 1)
    assert not log.is_up_to_date(last.term, last.index - 1)
    assert not log.is_up_to_date(last.term - 1, last.index + 10)


def test_entries_from_and_between():
    log = make_log([0, 1, 1, 2], start=3)
    assert [e.index for e in log.entries_from(5)] == [5, 6]
    assert [e.index for e in log.entries_between(4, 6)] == [4, 5]
    assert log.entries_from(7) == []
    with pytest.raises(IndexError):
        log.entries_from(2)


def test_iteration_returns_copy():
    log = make_log([0, 1])
    items = list(log)
    items.append(LogEntry(9, "x", 9))
    assert len(log) == 2


def test_append():
    log = RaftLog()
    entry = LogEntry(term=1, command="x", index=1)
    log.append(entry)
    assert log.last() == entry
    assert log.entry(1) == entry


def test_merge_truncates_at_conflict():
    log = make_log([0, 1, 1, 1])
    incoming = [LogEntry(1, "c1", 1), LogEntry(2, "n2", 2)]
    log.merge(incoming)
    assert [e.term for e in log] == [0, 1, 2]
    assert log.last().command == "n2"


def test_merge_keeps_matching_suffix():
    log = make_log([0, 1, 1, 1])
    log.merge([LogEntry(1, "c1", 1), LogEntry(1, "c2", 2)])
    assert len(log) == 4
    assert log.last().command == "c3"


def test_merge_extends():
    log = make_log([0, 1])
    log.merge([LogEntry(1, "c1", 1), LogEntry(2, "n", 2), LogEntry(2, "m", 3)])
    assert [e.index for e in log] == [0, 1, 2, 3]


def test_term_start():
    log = make_log([0, 1, 2, 2, 2, 3])
    assert log.term_start(4) == 2
    assert log.term_start(5) == 5
    assert log.entry(log.term_start(3)).term == log.entry(3).term


def test_compact_clears_command_of_mark():
    log = make_log([0, 1, 1, 2])
    assert log.compact(2)
    assert log.first().index == 2
    assert log.first().command is None
    assert log.first().term == 1
    assert log.last().command == "c3"


def test_compact_ignores_old_index():
    log = make_log([0, 1, 1], start=4)
    assert not log.compact(4)
    assert not log.compact(1)
    assert len(log) == 3


def test_compact_beyond_log():
    log = make_log([0, 1])
    with pytest.raises(IndexError):
        log.compact(5)


def test_reset():
    log = make_log([0, 1, 1])
    log.reset(4, 20)
    assert len(log) == 1
    assert log.first() == LogEntry(term=4, command=None, index=20)


@pytest.mark.parametrize("terms", [[1, 1, 2, 2, 3], [1, 2, 3], [4, 4, 4], [], [1, 3, 3, 5]])
@pytest.mark.parametrize("conflict", [0, 1, 2, 3, 4, 5, 6])
def test_search_next_index_invariant(terms, conflict):
    entries = [LogEntry(term=t, index=i) for i, t in enumerate(terms)]
    position = search_next_index(entries, conflict)
    assert 0 <= position <= len(entries)
    assert all(e.term <= conflict for e in entries[:position])
    assert all(e.term > conflict for e in entries[position:])


def test_search_next_index_past_last_of_term():
    entries = [LogEntry(term=t) for t in [1, 1, 2, 2, 3]]
    assert search_next_index(entries, 2) == 4


def test_stable_heartbeat_timeout():
    assert stable_heartbeat_timeout() == pytest.approx(0.125)


def test_random_election_timeout_range():
    samples = [random_election_timeout() for _ in range(500)]
    assert all(0.3 <= s < 0.65 for s in samples)
    assert all(s > stable_heartbeat_timeout() for s in samples)
    assert len(set(samples)) > 1