"""
Score a coaching session offline.

The session file lists checked behavior ids and manual step levels:

    {"checked": [1, 4, 22], "overrides": {"3": 4}, "assessee_name": "Jane Smith"}

Usage:
    python -m salescoach.scripts.score_session session.json
    python -m salescoach.scripts.score_session session.json --rubric my_rubric.json
    python -m salescoach.scripts.score_session session.json --format markdown -o report.md
    python -m salescoach.scripts.score_session session.json --format csv -o scores.csv
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from salescoach.config import settings
from salescoach.core.exceptions import ConfigurationError, RubricUnavailable
from salescoach.models.assessment import Assessment
from salescoach.services.report_generator import (
    benchmark_rows,
    generate_session_report,
    snapshot_to_frame,
)
from salescoach.services.rubric_loader import load_rubric_file
from salescoach.services.session import AssessmentSession

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL), format='%(asctime)s | %(levelname)-8s | %(message)s', datefmt='%H:%M:%S')
logger = logging.getLogger(__name__)


def load_session_file(path: Path) -> dict:
    """Read {checked, overrides} from a session JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return {
        "checked": [int(b) for b in data.get("checked", [])],
        "overrides": {int(k): int(v) for k, v in data.get("overrides", {}).items()},
        "assessee_name": data.get("assessee_name") or "Unnamed coachee",
        "title": data.get("title") or "Offline assessment",
        "context": data.get("context"),
    }


def score_session(session_path: Path, rubric_path: Path, fmt: str = "text", benchmark_level=None) -> str:
    """Score the session file and render it in the requested format."""
    rubric = load_rubric_file(rubric_path)
    data = load_session_file(session_path)

    assessment = Assessment(
        id=0,
        title=data["title"],
        user_id=0,
        assessee_name=data["assessee_name"],
        context=data["context"],
    )
    session = AssessmentSession(rubric, assessment, checked=data["checked"], overrides=data["overrides"])
    snapshot = session.snapshot

    if fmt == "markdown":
        return generate_session_report(rubric, snapshot, assessment, overrides=session.overrides)
    if fmt == "csv":
        return snapshot_to_frame(rubric, snapshot).to_csv(index=False)
    if fmt == "json":
        return json.dumps(
            {"snapshot": snapshot.to_dict(), "benchmark": benchmark_rows(rubric, snapshot, benchmark_level)},
            indent=2,
        )

    lines = [
        f"Total score:   {snapshot.total_score}",
        f"Observed:      {snapshot.checked_count}/{snapshot.total_behaviors}",
        f"Overall level: {snapshot.overall_label}",
        "",
    ]
    for row in benchmark_rows(rubric, snapshot, benchmark_level):
        lines.append(
            f"  {row['step']:<28} {row['actual']:>4}/{row['target']:<4} "
            f"{row['actual_percent']:>4}%  {row['level']}"
        )
    return "\n".join(lines) + "\n"


def main(argv=None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Score a coaching session against the rubric")
    parser.add_argument("session", type=Path, help="Session JSON file")
    parser.add_argument("--rubric", type=Path, default=settings.RUBRIC_PATH, help="Rubric JSON file")
    parser.add_argument("--format", choices=["text", "markdown", "csv", "json"], default="text")
    parser.add_argument("--benchmark-level", type=int, choices=[1, 2, 3, 4], default=None)
    parser.add_argument("-o", "--output", type=Path, default=None, help="Write to file instead of stdout")
    args = parser.parse_args(argv)

    try:
        output = score_session(args.session, args.rubric, args.format, args.benchmark_level)
    except (RubricUnavailable, ConfigurationError) as e:
        logger.error(f"Scoring failed: {e}")
        return 1
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.error(f"Could not read session file {args.session}: {e}")
        return 1

    if args.output:
        args.output.write_text(output, encoding="utf-8")
        logger.info(f"Wrote {args.format} output to {args.output}")
    else:
        sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
