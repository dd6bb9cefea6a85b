from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .transform import zoom_about

NO_MATCH = -1  # sentinel: "explicitly no counterpart"

ZOOM_X_BOUNDS = (10.0, 5000.0)   # px per second
ZOOM_Y_BOUNDS = (2.0, 100.0)     # px per semitone


class Panel(str, Enum):
    SCORE = "score"
    PERF = "perf"

    @property
    def other(self) -> "Panel":
        return Panel.PERF if self is Panel.SCORE else Panel.SCORE


class Axis(str, Enum):
    X = "x"
    Y = "y"


class VisibilityMode(str, Enum):
    FULL = "full"
    HALF = "half"
    NONE = "none"

    def cycle(self) -> "VisibilityMode":
        order = [VisibilityMode.FULL, VisibilityMode.HALF, VisibilityMode.NONE]
        return order[(order.index(self) + 1) % len(order)]


class Verdict(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNVERIFIED = "unverified"


# --------------------- Notes ---------------------
@dataclass(frozen=True)
class Note:
    id: int
    pitch: int
    start: float     # seconds
    duration: float  # seconds
    velocity: int = 80

    @property
    def end(self) -> float:
        return self.start + self.duration


class NoteCollection:
    """
    Immutable, id-indexed note list of one panel.

    Ids are contiguous over [0, N-1] and equal the list index, so lookups by id
    are plain bounds-checked indexing. Start/end/pitch arrays are built once so
    per-frame queries stay vectorised.
    """
    def __init__(self, notes: Sequence[Note], total_duration: float = 0.0, name: str = ""):
        self.notes: Tuple[Note, ...] = tuple(notes)
        for i, n in enumerate(self.notes):
            if n.id != i:
                raise ValueError(f"note ids must be contiguous: index {i} holds id {n.id}")
        self.name = name
        ends = [n.end for n in self.notes]
        self.total_duration = max([float(total_duration)] + ends)
        self.starts = np.array([n.start for n in self.notes], dtype=float)
        self.ends = np.array(ends, dtype=float)
        self.pitches = np.array([n.pitch for n in self.notes], dtype=int)

    def __len__(self) -> int:
        return len(self.notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self.notes)

    def get(self, note_id: Optional[int]) -> Optional[Note]:
        if note_id is None or not 0 <= note_id < len(self.notes):
            return None
        return self.notes[note_id]

    def containing(self, t: float) -> Optional[Note]:
        """First note (lowest id) whose [start, end] interval contains t."""
        hits = np.flatnonzero((self.starts <= t) & (self.ends >= t))
        return self.notes[int(hits[0])] if hits.size else None

    def hit_test(self, t: float, pitch: float) -> Optional[Note]:
        hits = np.flatnonzero((self.starts <= t) & (self.ends >= t)
                              & (self.pitches == int(np.floor(pitch))))
        return self.notes[int(hits[0])] if hits.size else None

    def overlapping(self, t0: float, t1: float) -> List[Note]:
        """Notes whose time span overlaps [t0, t1], in id order."""
        idx = np.flatnonzero((self.ends >= t0) & (self.starts <= t1))
        return [self.notes[int(i)] for i in idx]


# --------------------- Alignment ---------------------
@dataclass(frozen=True)
class AlignmentTuple:
    score_id: int
    annot_id: int
    perf_id: int

    @property
    def is_pair(self) -> bool:
        return self.score_id != NO_MATCH and self.perf_id != NO_MATCH

    def side(self, panel: Panel) -> int:
        return self.score_id if panel is Panel.SCORE else self.perf_id


# --------------------- View / playback / selection ---------------------
def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass
class ViewState:
    zoom_x: float = 100.0   # px per second
    zoom_y: float = 15.0    # px per semitone
    scroll_x: float = 0.0   # seconds at the left edge
    scroll_y: float = 60.0  # semitones at the bottom edge

    def __post_init__(self):
        self.zoom_x = _clamp(float(self.zoom_x), *ZOOM_X_BOUNDS)
        self.zoom_y = _clamp(float(self.zoom_y), *ZOOM_Y_BOUNDS)

    def pan(self, dx: float, dy: float = 0.0) -> None:
        """Shift by domain units (seconds, semitones). Never clamped."""
        self.scroll_x += dx
        self.scroll_y += dy

    def zoom(self, axis: Axis, factor: float, anchor: float) -> None:
        if axis is Axis.X:
            self.scroll_x, self.zoom_x = zoom_about(self.scroll_x, self.zoom_x, anchor, factor, *ZOOM_X_BOUNDS)
        else:
            self.scroll_y, self.zoom_y = zoom_about(self.scroll_y, self.zoom_y, anchor, factor, *ZOOM_Y_BOUNDS)

    def copy(self) -> "ViewState":
        return ViewState(self.zoom_x, self.zoom_y, self.scroll_x, self.scroll_y)


@dataclass
class PlaybackState:
    is_playing: bool = False
    start_time: float = 0.0
    start_offset: float = 0.0
    active_panel: Optional[Panel] = None


@dataclass(frozen=True)
class Selection:
    id: int
    panel: Panel


@dataclass(frozen=True)
class AlignmentSet:
    """Working alignment and ground truth; each is replaced as a whole."""
    working: Tuple[AlignmentTuple, ...] = field(default_factory=tuple)
    ground_truth: Tuple[AlignmentTuple, ...] = field(default_factory=tuple)
