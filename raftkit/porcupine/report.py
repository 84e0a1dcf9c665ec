"""Self-contained HTML reports for linearizability check results."""

from __future__ import annotations

import os
from typing import TextIO, Union

from .checker import LinearizationInfo
from .model import Model
from .visualization import PartitionVisualizationData, compute_visualization_data, to_json

_DATA_MARKER = "__VISUALIZATION_DATA__"

_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Linearizability report</title>
    <style>
html { font-family: Helvetica, Arial, sans-serif; font-size: 16px; }
text { dominant-baseline: middle; }
#legend { position: fixed; left: 10px; top: 10px; padding: 4px 8px;
  background: rgba(255, 255, 255, 0.7); border-radius: 4px; font-size: 0.85rem; }
#legend span { margin-right: 16px; }
#canvas { margin-top: 40px; }
.swatch { display: inline-block; width: 10px; height: 10px; margin-right: 4px; }
.bg { fill: transparent; }
.op { fill: #7fc6e8; stroke: #666; stroke-width: 1; cursor: pointer; }
.op.pinned { stroke-width: 4; }
.op-text { font-family: Menlo, Consolas, monospace; font-size: 0.85rem; pointer-events: none; }
.dim { opacity: 0.2; }
.hidden { display: none; }
.valid { stroke: rgba(0, 0, 0, 0.55); }
.invalid { stroke: rgba(220, 0, 0, 0.6); }
.lp { stroke-width: 4; pointer-events: none; }
.link { stroke-width: 2; pointer-events: none; }
#tooltip { position: absolute; opacity: 0; background: #fff; border: 1px solid #bbb;
  border-radius: 4px; padding: 6px; font-size: 0.8rem; pointer-events: none; }
    </style>
  </head>
  <body>
    <div id="legend">
      <span>Rows: clients, left to right: time</span>
      <span><i class="swatch" style="background: rgba(0, 0, 0, 0.55)"></i>linearization point</span>
      <span><i class="swatch" style="background: rgba(220, 0, 0, 0.6)"></i>rejected next step</span>
    </div>
    <div id="canvas"></div>
    <div id="tooltip"></div>
    <script>
'use strict'
const DATA = __VISUALIZATION_DATA__
const SVG_NS = 'http://www.w3.org/2000/svg'
const PAD = 10, LANE_H = 30, LANE_GAP = 15, LABEL_W = 20
const MIN_GAP = 20, STEP = 20, BLEED = 5, CHAR_W = 8, TEXT_PAD = 10

function add(parent, tag, attrs, text) {
  const node = document.createElementNS(SVG_NS, tag)
  for (const key of Object.keys(attrs || {})) node.setAttribute(key, attrs[key])
  if (text !== undefined) node.textContent = text
  parent.appendChild(node)
  return node
}

function esc(s) {
  const holder = document.createElement('div')
  holder.textContent = String(s)
  return holder.innerHTML
}

function laneY(client) {
  return PAD + client * (LANE_H + LANE_GAP)
}

function layout(data) {
  const all = []
  data.forEach(p => p.History.forEach(h => all.push(h)))
  const stamps = Array.from(new Set(all.flatMap(h => [h.Start, h.End]))).sort((a, b) => a - b)
  const byEnd = all.slice().sort((a, b) => a.End - b.End)
  const xs = {}
  let next = 0
  stamps.forEach((t, i) => {
    let pos = i === 0 ? 0 : xs[stamps[i - 1]] + MIN_GAP
    while (next < byEnd.length && byEnd[next].End <= t) {
      const h = byEnd[next]
      if (Object.prototype.hasOwnProperty.call(xs, h.Start)) {
        pos = Math.max(pos, xs[h.Start] + h.Description.length * CHAR_W + 2 * TEXT_PAD)
      }
      next++
    }
    xs[t] = pos
  })
  return xs
}

function candidates(history, included) {
  let minEnd = Infinity
  history.forEach((h, i) => { if (!included.has(i)) minEnd = Math.min(minEnd, h.End) })
  return history.map((h, i) => i).filter(i => !included.has(i) && history[i].Start < minEnd)
}

function render(data) {
  const xs = layout(data)
  let clients = 0
  data.forEach(p => p.History.forEach(h => { clients = Math.max(clients, h.ClientId + 1) }))
  const maxX = Object.values(xs).reduce((a, b) => Math.max(a, b), 0)
  const width = 2 * PAD + LABEL_W + maxX + 4 * STEP
  const height = 2 * PAD + clients * LANE_H + Math.max(0, clients - 1) * LANE_GAP
  const svg = add(document.getElementById('canvas'), 'svg', {width: width, height: height})
  const bg = add(svg, 'rect', {x: 0, y: 0, width: width, height: height, 'class': 'bg'})
  for (let c = 0; c < clients; c++) {
    add(svg, 'text', {x: PAD, y: laneY(c) + LANE_H / 2, 'text-anchor': 'middle'}, c)
  }
  const left = PAD + LABEL_W
  const tooltip = document.getElementById('tooltip')
  const layers = []
  let pinned = null

  data.forEach((p, pi) => {
    const historyLayer = add(svg, 'g', {})
    const rects = p.History.map(h => {
      const x = left + xs[h.Start]
      const w = Math.max(1, xs[h.End] - xs[h.Start])
      const y = laneY(h.ClientId)
      const rect = add(historyLayer, 'rect', {x: x, y: y, width: w, height: LANE_H, rx: 4, ry: 4, 'class': 'op'})
      add(historyLayer, 'text', {x: x + w / 2, y: y + LANE_H / 2, 'text-anchor': 'middle', 'class': 'op-text'}, h.Description)
      return rect
    })
    const lins = p.PartialLinearizations.map((steps, li) => {
      const g = add(svg, 'g', {'class': li === 0 ? '' : 'hidden'})
      const included = new Set()
      let prev = null
      const point = (h, kind) => {
        const here = left + xs[h.Start]
        const x = prev === null ? here : Math.max(here, prev.x + STEP)
        const y = laneY(h.ClientId) - BLEED
        if (prev !== null) {
          add(g, 'line', {x1: prev.x, y1: prev.y + LANE_H / 2 + BLEED, x2: x, y2: y + LANE_H / 2 + BLEED, 'class': kind + ' link'})
        }
        add(g, 'line', {x1: x, x2: x, y1: y, y2: y + LANE_H + 2 * BLEED, 'class': kind + ' lp'})
        return {x: x, y: y}
      }
      steps.forEach(step => {
        prev = point(p.History[step.Index], 'valid')
        included.add(step.Index)
      })
      const illegal = new Set(candidates(p.History, included))
      illegal.forEach(i => point(p.History[i], 'invalid'))
      return {g: g, steps: steps, illegal: illegal}
    })
    layers.push({history: historyLayer, rects: rects, lins: lins})
  })

  function linIndex(pi, idx) {
    const largest = data[pi].Largest
    if (Object.prototype.hasOwnProperty.call(largest, idx)) return largest[idx]
    let best = null
    layers[pi].lins.forEach((l, i) => {
      if (l.illegal.has(idx) && (best === null || l.steps.length > layers[pi].lins[best].steps.length)) best = i
    })
    return best
  }

  function show(pi, idx) {
    layers.forEach((layer, i) => {
      layer.history.classList.toggle('dim', i !== pi)
      layer.lins.forEach(l => l.g.classList.add('hidden'))
    })
    const which = linIndex(pi, idx)
    if (which !== null) layers[pi].lins[which].g.classList.remove('hidden')
  }

  function reset() {
    layers.forEach(layer => {
      layer.history.classList.remove('dim')
      layer.lins.forEach((l, i) => l.g.classList.toggle('hidden', i !== 0))
    })
  }

  function describe(pi, idx) {
    if (pinned !== null && pinned.pi !== pi) return 'Not part of selected partition.'
    const ref = pinned === null ? {pi: pi, idx: idx} : pinned
    const which = linIndex(ref.pi, ref.idx)
    const h = data[pi].History[idx]
    const times = '<br><br>Call: ' + h.Start + '<br>Return: ' + h.End
    if (which === null) return 'Not part of any partial linearization.' + times
    const l = layers[pi].lins[which]
    const pos = l.steps.findIndex(s => s.Index === idx)
    if (pos >= 0) {
      let msg = ''
      if (pos > 0) msg = '<strong>Previous state:</strong><br>' + esc(l.steps[pos - 1].StateDescription) + '<br><br>'
      return msg + '<strong>New state:</strong><br>' + esc(l.steps[pos].StateDescription) + times
    }
    if (!l.illegal.has(idx)) return 'Not part of this partial linearization.' + times
    const last = l.steps.length ? esc(l.steps[l.steps.length - 1].StateDescription) : ''
    return '<strong>Previous state:</strong><br>' + last +
      '<br><br><strong>New state:</strong><br>&lang;invalid op&rang;' + times
  }

  function unpin() {
    if (pinned === null) return
    layers[pinned.pi].rects[pinned.idx].classList.remove('pinned')
    pinned = null
    reset()
  }

  layers.forEach((layer, pi) => layer.rects.forEach((rect, idx) => {
    rect.addEventListener('mouseover', () => {
      if (pinned === null) show(pi, idx)
      tooltip.innerHTML = describe(pi, idx)
      tooltip.style.opacity = 1
    })
    rect.addEventListener('mousemove', ev => {
      tooltip.style.left = (ev.pageX + 20) + 'px'
      tooltip.style.top = (ev.pageY + 20) + 'px'
    })
    rect.addEventListener('mouseout', () => {
      tooltip.style.opacity = 0
      if (pinned === null) reset()
    })
    rect.addEventListener('click', () => {
      const same = pinned !== null && pinned.pi === pi && pinned.idx === idx
      unpin()
      if (!same) {
        pinned = {pi: pi, idx: idx}
        rect.classList.add('pinned')
        show(pi, idx)
      }
      tooltip.innerHTML = describe(pi, idx)
    })
  }))
  bg.addEventListener('click', unpin)
  reset()
}

render(DATA)
    </script>
  </body>
</html>
"""


def render_html(data: list[PartitionVisualizationData]) -> str:
    """Return an interactive HTML page that draws the given visualization data."""
    return _TEMPLATE.replace(_DATA_MARKER, to_json(data))


def visualize(model: Model, info: LinearizationInfo, output: TextIO) -> None:
    """Write an HTML report for a verbose check result to ``output``.

    Raises ValueError if a partial linearization is rejected by the model.
    """
    output.write(render_html(compute_visualization_data(model, info)))


def visualize_path(model: Model, info: LinearizationInfo, path: Union[str, os.PathLike]) -> None:
    """Write an HTML report for a verbose check result to the file at ``path``."""
    page = render_html(compute_visualization_data(model, info))
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(page)