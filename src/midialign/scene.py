"""
Draw lists for the two piano-roll panels and the alignment overlay.

Everything here is plain geometry in widget pixels; gui.painter turns the
primitives into QPainter calls. Panel 1 (score) occupies y in [0, H), panel 2
(performance) y in [H, 2H).
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import Panel, VisibilityMode
from .session import Session
from .transform import Transform

BLACK_KEYS = frozenset({1, 3, 6, 8, 10})
MISSED = "missed"  # edge kind for ground-truth pairs the alignment lacks


def is_black_key(pitch: int) -> bool:
    return pitch % 12 in BLACK_KEYS


@dataclass
class RenderSettings:
    label_zoom_y: float = 20.0
    min_note_width: float = 4.0
    note_radius: float = 3.0
    half_opacity: float = 0.3
    dim: float = 0.45
    cull_margin_px: float = 1000.0
    onset_offset: float = 0.05

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "RenderSettings":
        r = cfg.get("render") or {}
        o = cfg.get("overlay") or {}
        d = cls()
        return cls(
            label_zoom_y=float(r.get("label_zoom_y", d.label_zoom_y)),
            min_note_width=float(r.get("min_note_width", d.min_note_width)),
            note_radius=float(r.get("note_radius", d.note_radius)),
            half_opacity=float(o.get("half_opacity", d.half_opacity)),
            dim=float(o.get("dim", d.dim)),
            cull_margin_px=float(o.get("cull_margin_px", d.cull_margin_px)),
            onset_offset=float(o.get("onset_offset", d.onset_offset)),
        )


# --------------------- primitives ---------------------
@dataclass
class PitchRow:
    pitch: int
    y: float
    height: float
    black: bool
    octave: bool


@dataclass
class NoteBox:
    id: int
    x: float
    y: float
    w: float
    h: float
    selected: bool = False
    unmapped: bool = False
    label: bool = False


@dataclass
class PanelScene:
    width: float
    height: float
    anchor_x: float
    rows: List[PitchRow] = field(default_factory=list)
    grid: List[float] = field(default_factory=list)   # x of whole seconds
    notes: List[NoteBox] = field(default_factory=list)
    playhead_x: Optional[float] = None


@dataclass
class Edge:
    x1: float
    y1: float
    x2: float
    y2: float
    kind: str          # Verdict value or MISSED
    width: float
    opacity: float
    dashed: bool = False
    score_id: int = -1
    perf_id: int = -1


# --------------------- panel ---------------------
def build_panel_scene(session: Session, panel: Panel, width: float, height: float,
                      settings: Optional[RenderSettings] = None) -> PanelScene:
    st = settings or RenderSettings()
    view = session.views[panel]
    tr = Transform(view, height)
    scene = PanelScene(width=width, height=height, anchor_x=session.anchor_px)

    lo, hi = tr.visible_pitch_range()
    for pitch in range(lo, hi + 1):
        scene.rows.append(PitchRow(pitch, tr.pitch_to_y(pitch), view.zoom_y,
                                   is_black_key(pitch), pitch % 12 == 0))

    t0, t1 = tr.visible_time_range(width)
    for t in range(math.floor(t0), math.ceil(t1) + 1):
        scene.grid.append(tr.time_to_x(t))

    coll = session.notes(panel)
    if coll is not None:
        sel = session.selection
        sel_id = sel.id if sel is not None and sel.panel is panel else None
        many_labels = view.zoom_y > st.label_zoom_y
        for n in coll.overlapping(t0, t1):
            x = tr.time_to_x(n.start)
            w = n.duration * view.zoom_x
            if x + w < 0 or x > width:
                continue
            selected = n.id == sel_id
            scene.notes.append(NoteBox(
                id=n.id, x=x, y=tr.pitch_to_y(n.pitch),
                w=max(st.min_note_width, w), h=view.zoom_y - 1,
                selected=selected,
                unmapped=session.index.is_unmapped(panel, n.id),
                label=selected or many_labels,
            ))

    if session.playhead_panel is panel:
        px = tr.time_to_x(session.playback.position)
        if 0 <= px <= width:
            scene.playhead_x = px
    return scene


# --------------------- overlay ---------------------
def _note_point(tr: Transform, start: float, pitch: int, offset: float, y0: float):
    x = tr.time_to_x(start + offset)
    y = y0 + tr.pitch_to_y(pitch) + tr.view.zoom_y / 2.0
    return x, y


def build_overlay(session: Session, width: float, panel_height: float,
                  settings: Optional[RenderSettings] = None) -> List[Edge]:
    st = settings or RenderSettings()
    score, perf = session.score, session.perf
    if session.visibility is VisibilityMode.NONE or score is None or perf is None:
        return []

    index = session.index
    tr_s = Transform(session.views[Panel.SCORE], panel_height)
    tr_p = Transform(session.views[Panel.PERF], panel_height)
    alpha = st.half_opacity if session.visibility is VisibilityMode.HALF else 1.0
    lo, hi = -st.cull_margin_px, width + st.cull_margin_px
    sel = session.selection

    edges: List[Edge] = []
    for t in index.mapped_pairs():
        s_note, p_note = score.get(t.score_id), perf.get(t.perf_id)
        if s_note is None or p_note is None:
            continue
        x1, y1 = _note_point(tr_s, s_note.start, s_note.pitch, st.onset_offset, 0.0)
        x2, y2 = _note_point(tr_p, p_note.start, p_note.pitch, st.onset_offset, panel_height)
        if not lo <= x1 <= hi and not lo <= x2 <= hi:
            continue
        selected = sel is not None and sel.id == t.side(sel.panel)
        edges.append(Edge(
            x1, y1, x2, y2,
            kind=index.classify(t.score_id, t.perf_id).value,
            width=3.0 if selected else 1.0,
            opacity=1.0 if selected else alpha * st.dim,
            score_id=t.score_id, perf_id=t.perf_id,
        ))

    if sel is not None and index.has_ground_truth:
        gt = index.ground_truth_only_pair(sel.id, sel.panel)
        if gt is not None:
            s_note, p_note = score.get(gt.score_id), perf.get(gt.perf_id)
            if s_note is not None and p_note is not None:
                x1, y1 = _note_point(tr_s, s_note.start, s_note.pitch, st.onset_offset, 0.0)
                x2, y2 = _note_point(tr_p, p_note.start, p_note.pitch, st.onset_offset, panel_height)
                edges.append(Edge(x1, y1, x2, y2, kind=MISSED, width=3.0, opacity=1.0,
                                  dashed=True, score_id=gt.score_id, perf_id=gt.perf_id))
    return edges
