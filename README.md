# raftkit

raftkit has two parts:

* `raftkit.porcupine` checks whether a concurrent history of operations is linearizable against a sequential model. It can also write an interactive HTML report of the partial linearizations it found.
* `raftkit.raft` provides the building blocks for a Raft peer. These are the replicated log (`raftkit.raft.log`), the protocol's timing constants, and thread-safe stable storage for Raft state and snapshots (`raftkit.raft.persister`).

Only the Python 3.10+ standard library is needed.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Checking linearizability

Describe the system as a `Model`. It takes an `init` function that returns the initial state, and a `step(state, input, output)` function that returns `(ok, new_state)`. `step` must not mutate `state`. The other fields are optional:

* `partition` and `partition_event` split a history into parts that can be checked independently.
* `equal` compares states.
* `describe_operation` and `describe_state` produce text for reports.

```python
from raftkit.porcupine.model import Model, Operation
from raftkit.porcupine.checker import check_operations

register = Model(
    init=lambda: 0,
    step=lambda state, inp, out: (
        (True, inp[1]) if inp[0] == "put" else (out == state, state)
    ),
)

history = [
    Operation(client_id=0, input=("put", 1), call_time=0, output=None, return_time=10),
    Operation(client_id=1, input=("get", None), call_time=5, output=1, return_time=15),
]

assert check_operations(register, history)
```

A history can also be given as a list of `Event` records, one per call or return. Each record has an `EventKind` of `CALL` or `RETURN`, and a call and its return share an `id`. Check such a history with `check_events`.

The checker runs each partition in its own thread. There are three variants for each kind of history:

* `check_operations` and `check_events` return a `bool`.
* `check_operations_timeout` and `check_events_timeout` take a timeout in seconds, where `0` means no limit. They return a `CheckResult`:
  * `OK` means the history is linearizable.
  * `ILLEGAL` means it is not.
  * `UNKNOWN` means the check timed out, which may hide a violation.
* `check_operations_verbose` and `check_events_verbose` return a `(CheckResult, LinearizationInfo)` pair. The info holds the longest partial linearizations found for each partition.

## Reports

```python
from raftkit.porcupine.checker import check_operations_verbose
from raftkit.porcupine.report import visualize_path

result, info = check_operations_verbose(register, history, 0)
visualize_path(register, info, "history.html")
```

Two other functions in `raftkit.porcupine.report` produce the same page:

* `visualize(model, info, output)` writes it to an open text stream.
* `render_html(data)` returns it as a string.

The data behind the page comes from `raftkit.porcupine.visualization.compute_visualization_data`. It returns one `PartitionVisualizationData` per partition, made up of `HistoryElement` and `LinearizationStep` records. `to_json` serialises that data as compact JSON that is safe to embed in HTML. If the model rejects a step of a partial linearization while the data is being built, a `ValueError` is raised.

## Raft building blocks

`RaftLog` holds `LogEntry(term, command, index)` records, addressed by their absolute Raft index. The first entry marks the snapshot point. Its methods:

* `first`, `last` and `entry` return entries.
* `matches` and `is_up_to_date` compare against another log position.
* `entries_from` and `entries_between` return copies of ranges.
* `append` adds an entry at the end.
* `merge` takes entries from a leader and truncates at the first conflict.
* `term_start` finds where a term's run of entries begins.
* `compact` discards entries up to a new snapshot point.
* `reset` replaces the log with a single snapshot mark.

Other helpers in `raftkit.raft.log`:

* `search_next_index(entries, conflict_term)` returns the position just after the last entry whose term is at most `conflict_term`.
* `stable_heartbeat_timeout()` returns 0.125 seconds.
* `random_election_timeout()` returns a random value from 0.300 up to, but not including, 0.650 seconds.

`Persister` stores the Raft state and the snapshot as bytes, and `save` writes both together. It also has `copy`, `read_raft_state`, `raft_state_size`, `read_snapshot` and `snapshot_size`.

## What is not included

raftkit does not contain a running Raft peer. It has no leader election, no RPC message types or transport, no replication to followers and no delivery of committed commands to a service. Those would be built on top of `RaftLog` and `Persister`. There is no command-line tool.