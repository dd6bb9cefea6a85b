from __future__ import annotations
import argparse
import json
import logging
import pathlib
import sys

from .alignment import AlignmentIndex
from .ingest import IngestError, load_alignment, load_midi

log = logging.getLogger(__name__)


def build_index(score_path, perf_path, align_path, gt_path=None) -> AlignmentIndex:
    score = load_midi(str(score_path))
    perf = load_midi(str(perf_path))
    alignment = load_alignment(str(align_path))
    gt = load_alignment(str(gt_path)) if gt_path else ()
    return AlignmentIndex(alignment, gt, score, perf)


def format_summary(summary: dict) -> str:
    lines = [
        f"tuples={summary['tuples']} pairs={summary['pairs']}",
        f"score: notes={summary['score_notes']} mapped={summary['score_mapped']} unmapped={summary['score_unmapped']}",
        f"perf:  notes={summary['perf_notes']} mapped={summary['perf_mapped']} unmapped={summary['perf_unmapped']}",
    ]
    if summary.get("ground_truth_pairs"):
        lines.append(
            f"ground truth: pairs={summary['ground_truth_pairs']} correct={summary['correct']} "
            f"incorrect={summary['incorrect']} missed={summary.get('missed', 0)}"
        )
    else:
        lines.append(f"ground truth: none (unverified={summary['unverified']})")
    return "\n".join(lines)


def main(argv=None):
    p = argparse.ArgumentParser(description="Alignment report for a score/performance MIDI pair")
    p.add_argument("--score", required=True, help="Score MIDI file")
    p.add_argument("--perf", required=True, help="Performance MIDI file")
    p.add_argument("--align", required=True, help="Alignment file")
    p.add_argument("--gt", default=None, help="Ground-truth alignment file")
    p.add_argument("--json", action="store_true", help="Print the summary as JSON")
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="[%(name)s] %(levelname)s: %(message)s")

    paths = [args.score, args.perf, args.align] + ([args.gt] if args.gt else [])
    for raw in paths:
        path = pathlib.Path(raw).expanduser().resolve()
        if not path.exists():
            print(f"[report] ERROR: Input not found: {path}", file=sys.stderr)
            sys.exit(1)

    try:
        index = build_index(args.score, args.perf, args.align, args.gt)
    except IngestError as e:
        print(f"[report] ERROR: {e}", file=sys.stderr)
        sys.exit(2)

    summary = index.summary()
    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print(format_summary(summary))


if __name__ == "__main__":
    main()
