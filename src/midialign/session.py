"""
Application state of the viewer.

Everything the panels show lives in one Session and changes only through its
named operations. Cross-panel effects (playback follow, sync) are derived once
per tick from the playback state and the sync flag, never through callbacks
between the panels.
"""
from __future__ import annotations
import dataclasses
import logging
import time
from typing import Callable, Dict, Optional, Sequence, Tuple

from .alignment import AlignmentIndex
from .models import (
    AlignmentSet, AlignmentTuple, Axis, Note, NoteCollection, Panel, Selection, ViewState, VisibilityMode,
)
from .playback import PlaybackClock
from .transform import Transform

log = logging.getLogger(__name__)


class Session:
    def __init__(self,
                 anchor_px: float = 100.0,
                 default_view: Optional[ViewState] = None,
                 clock: Callable[[], float] = time.perf_counter,
                 visibility: VisibilityMode = VisibilityMode.FULL):
        self.anchor_px = float(anchor_px)
        self._default_view = (default_view or ViewState()).copy()
        self.views: Dict[Panel, ViewState] = {p: self._default_view.copy() for p in Panel}
        self._notes: Dict[Panel, Optional[NoteCollection]] = {p: None for p in Panel}
        self.alignments = AlignmentSet()
        self.index = AlignmentIndex()
        self.playback = PlaybackClock(anchor_px, clock=clock)
        self.selection: Optional[Selection] = None
        self.sync = False
        self.visibility = visibility

    # --------------------- data ---------------------
    def notes(self, panel: Panel) -> Optional[NoteCollection]:
        return self._notes[panel]

    @property
    def score(self) -> Optional[NoteCollection]:
        return self._notes[Panel.SCORE]

    @property
    def perf(self) -> Optional[NoteCollection]:
        return self._notes[Panel.PERF]

    @property
    def alignment(self) -> Tuple[AlignmentTuple, ...]:
        return self.alignments.working

    @property
    def ground_truth(self) -> Tuple[AlignmentTuple, ...]:
        return self.alignments.ground_truth

    def _reindex(self) -> None:
        self.index = AlignmentIndex(self.alignment, self.ground_truth, self.score, self.perf)

    def set_notes(self, panel: Panel, coll: Optional[NoteCollection]) -> None:
        self._notes[panel] = coll
        # Auswahl zeigt auf die alte Sammlung
        if self.selection is not None and self.selection.panel is panel:
            self.selection = None
        self._reindex()

    def set_alignment(self, tuples: Sequence[AlignmentTuple]) -> None:
        self.alignments = dataclasses.replace(self.alignments, working=tuple(tuples))
        self._reindex()

    def set_ground_truth(self, tuples: Sequence[AlignmentTuple]) -> None:
        self.alignments = dataclasses.replace(self.alignments, ground_truth=tuple(tuples))
        self._reindex()

    def clear(self) -> None:
        """Drop all data; selection, playback and both views go back to defaults."""
        self._notes = {p: None for p in Panel}
        self.alignments = AlignmentSet()
        self._reindex()
        self.selection = None
        self.playback.stop()
        self.playback.reset()
        self.views = {p: self._default_view.copy() for p in Panel}
        log.info("session cleared")

    # --------------------- navigation ---------------------
    def pan(self, panel: Panel, dx: float, dy: float = 0.0) -> None:
        self.views[panel].pan(dx, dy)

    def zoom(self, panel: Panel, axis: Axis, factor: float, anchor: float) -> None:
        self.views[panel].zoom(axis, factor, anchor)

    def _pin(self, panel: Panel, t: float) -> None:
        """Scroll `panel` so time `t` sits under the anchor column."""
        view = self.views[panel]
        target = t - self.anchor_px / view.zoom_x
        view.pan(target - view.scroll_x, 0.0)

    def anchor_time(self, panel: Panel) -> float:
        return Transform(self.views[panel], 0).anchor_time(self.anchor_px)

    # --------------------- selection ---------------------
    def select(self, panel: Panel, note_id: int) -> None:
        """Toggle: selecting the selected note again clears the selection."""
        if self.selection == Selection(note_id, panel):
            self.selection = None
        else:
            self.selection = Selection(note_id, panel)

    def clear_selection(self) -> None:
        self.selection = None

    def step_selection(self, delta: int) -> bool:
        """
        Move the selection to id+delta within the same collection.
        Out-of-range targets leave the selection as it is.
        """
        sel = self.selection
        if sel is None:
            return False
        coll = self._notes[sel.panel]
        if coll is None:
            return False
        new_id = sel.id + delta
        # TODO: confirm boundary behaviour (clamp / wrap / stop); currently stops.
        if not 0 <= new_id < len(coll):
            return False
        self.selection = Selection(new_id, sel.panel)
        return True

    @property
    def selected_note(self) -> Optional[Note]:
        if self.selection is None:
            return None
        coll = self._notes[self.selection.panel]
        return coll.get(self.selection.id) if coll is not None else None

    # --------------------- modes ---------------------
    def toggle_sync(self) -> bool:
        self.sync = not self.sync
        return self.sync

    def set_visibility(self, mode: VisibilityMode) -> None:
        self.visibility = VisibilityMode(mode)

    def cycle_visibility(self) -> VisibilityMode:
        self.visibility = self.visibility.cycle()
        return self.visibility

    # --------------------- playback ---------------------
    def toggle_playback(self, panel: Panel) -> bool:
        return self.playback.toggle(panel, self.views[panel])

    def play_pause(self) -> bool:
        """Play/pause on the driving panel, else the last one, else the score."""
        panel = self.playback.state.active_panel or self.playback.last_panel or Panel.SCORE
        return self.toggle_playback(panel)

    def stop_playback(self) -> None:
        self.playback.stop()

    @property
    def playhead_panel(self) -> Optional[Panel]:
        return self.playback.last_panel

    def driving(self, panel: Panel) -> bool:
        return self.playback.driving(panel)

    def tick(self) -> bool:
        """
        One frame of playback. Pins the driving panel to the playhead and, in
        sync mode, pins the other panel to the counterpart of the note under
        the playhead. Returns False when nothing is playing.
        """
        pos = self.playback.advance()
        if pos is None:
            return False
        panel = self.playback.state.active_panel
        self._pin(panel, pos)
        if self.sync:
            self._follow_counterpart(panel, pos)
        return True

    def _follow_counterpart(self, panel: Panel, pos: float) -> None:
        mine, theirs = self._notes[panel], self._notes[panel.other]
        if mine is None or theirs is None:
            return
        note = mine.containing(pos)
        if note is None:
            return
        other = theirs.get(self.index.counterpart(panel, note.id))
        if other is None:
            return
        self._pin(panel.other, other.start)
