from __future__ import annotations
from typing import Iterable

import pyqtgraph as pg
from PySide6 import QtCore, QtGui

from ..models import Verdict
from ..scene import MISSED, Edge, PanelScene

# Farben (dunkles Thema)
ROW_WHITE = "#0e0e11"
ROW_BLACK = "#08080a"
ROW_LINE = "#18181b"
OCTAVE_LINE = "#27272a"
GRID_LINE = "#18181b"
ANCHOR = (255, 255, 255, 140)
PLAYHEAD = "#f87171"
LABEL = (113, 113, 122)

NOTE_FILL = ("#34d399", "#059669")
NOTE_SELECTED = ("#60a5fa", "#2563eb")
NOTE_UNMAPPED = ("#fbbf24", "#b45309")

EDGE_COLORS = {
    Verdict.CORRECT.value: "#10b981",
    Verdict.INCORRECT.value: "#facc15",
    Verdict.UNVERIFIED.value: "#4ade80",
    MISSED: "#ef4444",
}


def _gradient(y: float, h: float, colors) -> QtGui.QLinearGradient:
    g = QtGui.QLinearGradient(0, y, 0, y + h)
    g.setColorAt(0.0, pg.mkColor(colors[0]))
    g.setColorAt(1.0, pg.mkColor(colors[1]))
    return g


def paint_panel(p: QtGui.QPainter, scene: PanelScene, y0: float = 0.0, title: str = "",
                note_radius: float = 3.0) -> None:
    W, H = scene.width, scene.height
    p.save()
    p.translate(0, y0)
    p.setClipRect(QtCore.QRectF(0, 0, W, H))

    # 1) Tonhöhen-Zeilen
    row_pen = pg.mkPen(ROW_LINE, width=0.5)
    oct_pen = pg.mkPen(OCTAVE_LINE, width=1.0)
    for row in scene.rows:
        p.fillRect(QtCore.QRectF(0, row.y, W, row.height),
                   pg.mkBrush(ROW_BLACK if row.black else ROW_WHITE))
        p.setPen(oct_pen if row.octave else row_pen)
        p.drawLine(QtCore.QPointF(0, row.y), QtCore.QPointF(W, row.y))

    # 2) Sekundenraster
    p.setPen(pg.mkPen(GRID_LINE, width=1.0))
    for x in scene.grid:
        p.drawLine(QtCore.QPointF(x, 0), QtCore.QPointF(x, H))

    # 3) statische Anker-Linie
    anchor_pen = pg.mkPen(ANCHOR, width=1.2)
    anchor_pen.setDashPattern([4, 4])
    p.setPen(anchor_pen)
    p.drawLine(QtCore.QPointF(scene.anchor_x, 0), QtCore.QPointF(scene.anchor_x, H))

    # 4) Noten
    font = QtGui.QFont("JetBrains Mono", 7)
    font.setBold(True)
    p.setFont(font)
    for n in scene.notes:
        colors = NOTE_SELECTED if n.selected else (NOTE_UNMAPPED if n.unmapped else NOTE_FILL)
        rect = QtCore.QRectF(n.x, n.y, n.w, n.h)
        p.setBrush(QtGui.QBrush(_gradient(n.y, n.h, colors)))
        p.setPen(pg.mkPen("w", width=2.5) if n.selected else pg.mkPen(colors[1], width=0.5))
        p.drawRoundedRect(rect, note_radius, note_radius)
        if n.label:
            p.setPen(pg.mkPen((255, 255, 255, 255 if n.selected else 180)))
            p.drawText(QtCore.QPointF(n.x + 5, n.y + min(12.0, n.h - 1)), str(n.id))
    p.setBrush(QtCore.Qt.BrushStyle.NoBrush)

    # 5) Playhead
    if scene.playhead_x is not None:
        p.setPen(pg.mkPen(PLAYHEAD, width=2.5))
        p.drawLine(QtCore.QPointF(scene.playhead_x, 0), QtCore.QPointF(scene.playhead_x, H))

    if title:
        p.setPen(pg.mkPen(LABEL))
        p.drawText(QtCore.QPointF(12, 18), title)
    p.restore()


def paint_overlay(p: QtGui.QPainter, edges: Iterable[Edge]) -> None:
    p.save()
    for e in edges:
        color = pg.mkColor(EDGE_COLORS.get(e.kind, EDGE_COLORS[MISSED]))
        color.setAlphaF(max(0.0, min(1.0, e.opacity)))
        pen = pg.mkPen(color, width=e.width)
        if e.dashed:
            pen.setDashPattern([2.0, 1.33])  # in units of pen width
        p.setPen(pen)
        p.drawLine(QtCore.QPointF(e.x1, e.y1), QtCore.QPointF(e.x2, e.y2))
    p.restore()
