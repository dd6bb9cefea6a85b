"""Shared fixtures: note collections, a controllable clock, MIDI files on disk."""
from typing import List, Sequence, Tuple

import mido
import pytest

from midialign.ingest import RawNote, assign_ids
from midialign.models import NoteCollection
from midialign.session import Session


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


def make_collection(notes: Sequence[Tuple[int, float, float]], name: str = "") -> NoteCollection:
    """(pitch, start, duration) triples -> id-assigned collection."""
    raw = [RawNote(pitch, start, dur, 80) for pitch, start, dur in notes]
    return NoteCollection(assign_ids(raw), name=name)


def write_midi(path, notes: List[Tuple[int, float, float]], tpb: int = 480) -> None:
    """Single-track MIDI at 120 bpm; times in seconds."""
    mid = mido.MidiFile(ticks_per_beat=tpb)
    track = mido.MidiTrack(); mid.tracks.append(track)
    track.append(mido.MetaMessage("set_tempo", tempo=500000, time=0))
    ticks_per_sec = tpb * 2
    evs = []
    for pitch, start, dur in notes:
        evs.append((int(round(start * ticks_per_sec)), 1, mido.Message("note_on", note=pitch, velocity=80)))
        evs.append((int(round((start + dur) * ticks_per_sec)), 0, mido.Message("note_off", note=pitch, velocity=0)))
    # Off zuerst bei gleichem Tick
    evs.sort(key=lambda x: (x[0], x[1]))
    last = 0
    for tick, _, msg in evs:
        track.append(msg.copy(time=tick - last))
        last = tick
    mid.save(str(path))


@pytest.fixture
def clock():
    return FakeClock(10.0)


@pytest.fixture
def session(clock):
    return Session(anchor_px=100.0, clock=clock)


@pytest.fixture
def make_notes():
    return make_collection


@pytest.fixture
def midi_file(tmp_path):
    def _write(name: str, notes):
        path = tmp_path / name
        write_midi(path, notes)
        return path
    return _write
