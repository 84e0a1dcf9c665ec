"""Turn linearization results into data that can be drawn as a timeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .checker import LinearizationInfo
from .model import EventKind, Model

# Characters escaped so the JSON can be embedded safely inside an HTML page.
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class HistoryElement:
    """One operation as drawn on a client's timeline."""

    client_id: int = 0
    start: int = 0
    end: int = 0
    description: str = ""


@dataclass
class LinearizationStep:
    """An operation within a partial linearization and the state after it."""

    index: int
    state_description: str


@dataclass
class PartitionVisualizationData:
    """Everything needed to draw one partition of a history."""

    history: list[HistoryElement] = field(default_factory=list)
    partial_linearizations: list[list[LinearizationStep]] = field(default_factory=list)
    # history element id -> index of the longest partial linearization holding it
    largest: dict[int, int] = field(default_factory=dict)


def _partition_data(model: Model, entries, partials: list[list[int]]) -> PartitionVisualizationData:
    history = [HistoryElement() for _ in range(len(entries) // 2)]
    call_values: dict[int, Any] = {}
    return_values: dict[int, Any] = {}
    for entry in entries:
        element = history[entry.id]
        if entry.kind is EventKind.CALL:
            element.client_id = entry.client_id
            element.start = entry.time
            call_values[entry.id] = entry.value
        else:
            element.end = entry.time
            element.description = model.describe_operation(call_values.get(entry.id), entry.value)
            return_values[entry.id] = entry.value

    largest_index: dict[int, int] = {}
    largest_size: dict[int, int] = {}
    linearizations: list[list[LinearizationStep]] = []
    for position, partial in enumerate(sorted(partials, key=len, reverse=True)):
        steps = []
        state = model.init()
        for hist_id in partial:
            ok, state = model.step(state, call_values.get(hist_id), return_values.get(hist_id))
            if not ok:
                raise ValueError(
                    "valid partial linearization returned non-ok result from model step"
                )
            steps.append(LinearizationStep(hist_id, model.describe_state(state)))
            if largest_size.get(hist_id, 0) < len(partial):
                largest_size[hist_id] = len(partial)
                largest_index[hist_id] = position
        linearizations.append(steps)

    return PartitionVisualizationData(history, linearizations, largest_index)


def compute_visualization_data(model: Model, info: LinearizationInfo) -> list[PartitionVisualizationData]:
    """Build per-partition drawing data from the result of a verbose check.

    Raises ValueError if a partial linearization is rejected by the model.
    """
    return [
        _partition_data(model, entries, partials)
        for entries, partials in zip(info.history, info.partial_linearizations)
    ]


def _encode(partition: PartitionVisualizationData) -> dict[str, Any]:
    return {
        "History": [
            {
                "ClientId": el.client_id,
                "Start": el.start,
                "End": el.end,
                "Description": el.description,
            }
            for el in partition.history
        ],
        "PartialLinearizations": [
            [{"Index": step.index, "StateDescription": step.state_description} for step in lin]
            for lin in partition.partial_linearizations
        ],
        "Largest": {
            key: partition.largest[int(key)]
            for key in sorted(str(k) for k in partition.largest)
        },
    }


def to_json(data: list[PartitionVisualizationData]) -> str:
    """Serialize visualization data as compact, HTML-safe JSON."""
    text = json.dumps([_encode(p) for p in data], separators=(",", ":"), ensure_ascii=False)
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)