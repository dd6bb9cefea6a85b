"""
Ingestion: MIDI files -> NoteCollection, alignment text -> AlignmentTuple list.

Note ids are defined here, not by the decoder: every note of every instrument
is flattened, sorted by (onset, pitch) with an onset tolerance, and numbered
0..N-1. Alignment files reference notes by exactly these ids.
"""
from __future__ import annotations
import functools
import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import pretty_midi as pm

from .models import AlignmentTuple, Note, NoteCollection, NO_MATCH

log = logging.getLogger(__name__)

# Onsets closer than this count as simultaneous and are ordered by pitch.
# Changing it renumbers notes and invalidates every existing alignment file.
# Not a total order: onsets chained within the tolerance (a~b, b~c, a<c by
# more) can compare cyclically, and their relative order then follows the
# decoder's input order. Ids stay stable for the same file.
ONSET_EPSILON = 1e-4

MIDI_SIGNATURE = b"MThd"

_FIELD_SPLIT = re.compile(r"[,\s]+")
_LEADING_INT = re.compile(r"[+-]?\d+")


class IngestError(ValueError):
    """A source could not be turned into data at all; nothing is installed."""


@dataclass(frozen=True)
class RawNote:
    pitch: int
    start: float
    duration: float
    velocity: int


# --------------------- IDs ---------------------
def _onset_order(a: RawNote, b: RawNote) -> int:
    if abs(a.start - b.start) > ONSET_EPSILON:
        return -1 if a.start < b.start else 1
    return (a.pitch > b.pitch) - (a.pitch < b.pitch)


def assign_ids(raw: Iterable[RawNote]) -> List[Note]:
    ordered = sorted(raw, key=functools.cmp_to_key(_onset_order))
    return [Note(id=i, pitch=r.pitch, start=r.start, duration=r.duration, velocity=r.velocity)
            for i, r in enumerate(ordered)]


# --------------------- MIDI ---------------------
def _check_signature(path: str) -> None:
    try:
        with open(path, "rb") as fh:
            head = fh.read(len(MIDI_SIGNATURE))
    except OSError as e:
        raise IngestError(f"cannot read {path}: {e}") from e
    if head != MIDI_SIGNATURE:
        raise IngestError(f"{os.path.basename(path)} is not a MIDI file (missing MThd header)")


def load_midi(path: str) -> NoteCollection:
    _check_signature(path)
    try:
        midi = pm.PrettyMIDI(path)
    except Exception as e:
        raise IngestError(f"cannot decode {os.path.basename(path)}: {e}") from e

    raw: List[RawNote] = []
    for inst in midi.instruments:
        for n in inst.notes:
            raw.append(RawNote(int(n.pitch), float(n.start), float(n.end - n.start), int(n.velocity)))

    notes = assign_ids(raw)
    coll = NoteCollection(notes, total_duration=float(midi.get_end_time()),
                          name=os.path.basename(path))
    log.info("loaded %s: %d notes, %.2fs", coll.name, len(coll), coll.total_duration)
    return coll


# --------------------- Alignment ---------------------
def _leading_int(token: str) -> Optional[int]:
    m = _LEADING_INT.match(token)
    return int(m.group(0)) if m else None


def parse_alignment_line(line: str) -> Optional[AlignmentTuple]:
    """
    One record: `score, perf` or `score, annot, perf[, ...]`.
    Returns None when the line does not start with enough integers.
    """
    parts = [p for p in _FIELD_SPLIT.split(line.strip()) if p]
    if len(parts) < 2:
        return None
    vals = [_leading_int(p) for p in parts[:3]]
    if len(parts) == 2:
        s_id, p_id = vals
        a_id: Optional[int] = NO_MATCH
    else:
        s_id, a_id, p_id = vals
        if a_id is None:
            a_id = NO_MATCH
    if s_id is None or p_id is None:
        return None
    return AlignmentTuple(s_id, a_id, p_id)


def parse_alignment_text(text: str) -> Tuple[AlignmentTuple, ...]:
    pairs: List[AlignmentTuple] = []
    skipped = 0
    for line in text.splitlines():
        if not line.strip():
            continue
        tup = parse_alignment_line(line)
        if tup is None:
            skipped += 1
            continue
        pairs.append(tup)
    if skipped:
        log.debug("alignment: skipped %d unparsable line(s)", skipped)
    return tuple(pairs)


def load_alignment(path: str) -> Tuple[AlignmentTuple, ...]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            text = fh.read()
    except OSError as e:
        raise IngestError(f"cannot read {path}: {e}") from e
    pairs = parse_alignment_text(text)
    log.info("loaded alignment %s: %d tuples", os.path.basename(path), len(pairs))
    return pairs
