from __future__ import annotations
from typing import Dict, FrozenSet, Optional, Sequence, Set, Tuple

from .models import AlignmentTuple, NoteCollection, Panel, Verdict, NO_MATCH

Pair = Tuple[int, int]  # (score_id, perf_id)


class AlignmentIndex:
    """
    Derived, read-only view of the working alignment and the ground truth.

    Built once per data change (notes, alignment or ground truth replaced) and
    consumed by rendering, playback sync and the status readout until the next
    change.
    """
    def __init__(self,
                 alignment: Sequence[AlignmentTuple] = (),
                 ground_truth: Sequence[AlignmentTuple] = (),
                 score: Optional[NoteCollection] = None,
                 perf: Optional[NoteCollection] = None):
        self.alignment: Tuple[AlignmentTuple, ...] = tuple(alignment)
        self.ground_truth: Tuple[AlignmentTuple, ...] = tuple(ground_truth)
        self._collections = {Panel.SCORE: score, Panel.PERF: perf}

        self._work_pairs: Set[Pair] = {(t.score_id, t.perf_id) for t in self.alignment if t.is_pair}
        self._gt_pairs: Set[Pair] = {(t.score_id, t.perf_id) for t in self.ground_truth if t.is_pair}

        self._mapped: Dict[Panel, FrozenSet[int]] = {}
        self._explicit: Dict[Panel, FrozenSet[int]] = {}
        self._unmapped: Dict[Panel, FrozenSet[int]] = {}
        self._counterpart: Dict[Panel, Dict[int, int]] = {}
        for panel in Panel:
            self._build_side(panel)

    def _build_side(self, panel: Panel) -> None:
        mapped: Set[int] = set()
        explicit: Set[int] = set()
        first: Dict[int, int] = {}
        for t in self.alignment:
            mine, theirs = t.side(panel), t.side(panel.other)
            if mine == NO_MATCH:
                continue
            if theirs != NO_MATCH:
                mapped.add(mine)
                first.setdefault(mine, theirs)
            else:
                explicit.add(mine)

        unmapped = set(explicit)
        coll = self._collections[panel]
        # ohne Alignment gibt es nichts zu beurteilen
        if coll is not None and self.alignment:
            unmapped.update(n.id for n in coll if n.id not in mapped)

        self._mapped[panel] = frozenset(mapped)
        self._explicit[panel] = frozenset(explicit)
        self._unmapped[panel] = frozenset(unmapped)
        self._counterpart[panel] = first

    # --- sets ---
    def mapped(self, side: Panel) -> FrozenSet[int]:
        return self._mapped[side]

    def explicitly_unmapped(self, side: Panel) -> FrozenSet[int]:
        return self._explicit[side]

    def unmapped(self, side: Panel) -> FrozenSet[int]:
        return self._unmapped[side]

    def is_unmapped(self, side: Panel, note_id: int) -> bool:
        return note_id in self._unmapped[side]

    @property
    def has_ground_truth(self) -> bool:
        return bool(self.ground_truth)

    # --- lookups ---
    def classify(self, score_id: int, perf_id: int) -> Verdict:
        if not self.ground_truth:
            return Verdict.UNVERIFIED
        return Verdict.CORRECT if (score_id, perf_id) in self._gt_pairs else Verdict.INCORRECT

    def counterpart(self, panel: Panel, note_id: int) -> Optional[int]:
        """Other-side id of the first working tuple mapping `note_id` on `panel`."""
        return self._counterpart[panel].get(note_id)

    def ground_truth_only_pair(self, note_id: int, panel: Panel) -> Optional[AlignmentTuple]:
        """Ground-truth pair for the note that the working alignment is missing."""
        for t in self.ground_truth:
            if t.side(panel) != note_id or not t.is_pair:
                continue
            if (t.score_id, t.perf_id) not in self._work_pairs:
                return t
        return None

    def mapped_pairs(self):
        """Working tuples with both sides valid, in file order."""
        return (t for t in self.alignment if t.is_pair)

    def summary(self) -> Dict[str, int]:
        out = {
            "tuples": len(self.alignment),
            "pairs": len(self._work_pairs),
            "ground_truth_pairs": len(self._gt_pairs),
        }
        for panel in Panel:
            coll = self._collections[panel]
            out[f"{panel.value}_notes"] = len(coll) if coll is not None else 0
            out[f"{panel.value}_mapped"] = len(self._mapped[panel])
            out[f"{panel.value}_unmapped"] = len(self._unmapped[panel])
        verdicts = {v: 0 for v in Verdict}
        for s_id, p_id in self._work_pairs:
            verdicts[self.classify(s_id, p_id)] += 1
        for v, n in verdicts.items():
            out[v.value] = n
        if self._gt_pairs:
            out["missed"] = len(self._gt_pairs - self._work_pairs)
        return out
