"""
Report Generator - Sales Coaching Assessment
salescoach/services/report_generator.py

Presentation of a SessionSnapshot: markdown export, a per-step pandas frame
for CSV export, benchmark rows for the radar chart and a JSON export.
All numbers come from the snapshot; nothing here scores behaviors.

Benchmark per step:
    target = behaviors in step x benchmark level (step target_score by default)
    actual_percent = round(100 * step score / target), 0 when target is 0
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from salescoach.models.assessment import Assessment, CoachingNotesUpdate
from salescoach.models.enumerations import ScoreSource
from salescoach.models.rubric import Rubric
from salescoach.services.session import SessionSnapshot

NOTE_HEADINGS = (
    ("key_observations", "Key Observations"),
    ("what_worked_well", "What Worked Well"),
    ("what_can_be_improved", "What Can Be Improved"),
    ("next_steps", "Next Steps"),
)


def benchmark_rows(
    rubric: Rubric,
    snapshot: SessionSnapshot,
    benchmark_level: Optional[int] = None,
) -> List[Dict]:
    """One row per step with actual points against the benchmark target."""
    rows = []
    for step in rubric.steps:
        level = benchmark_level or step.target_score
        target = step.behavior_count * level
        actual = snapshot.per_step_scores.get(step.id, 0)
        rows.append({
            "step_id": step.id,
            "step": step.title,
            "actual": actual,
            "target": target,
            "actual_percent": round(100 * actual / target) if target else 0,
            "target_percent": 100,
            "level": snapshot.per_step_labels.get(step.id, ""),
        })
    return rows


def snapshot_to_frame(rubric: Rubric, snapshot: SessionSnapshot) -> pd.DataFrame:
    """Per-step table for CSV export."""
    records = []
    for step in rubric.steps:
        source = snapshot.per_step_sources.get(step.id, ScoreSource.CALCULATED)
        records.append({
            "Step": step.title,
            "Score": snapshot.per_step_scores.get(step.id, 0),
            "Level": snapshot.per_step_labels.get(step.id, ""),
            "Source": source.value,
            "Progress %": snapshot.per_step_progress.get(step.id, 0.0),
            "Behaviors": step.behavior_count,
        })
    return pd.DataFrame.from_records(
        records, columns=["Step", "Score", "Level", "Source", "Progress %", "Behaviors"]
    )


def generate_session_report(
    rubric: Rubric,
    snapshot: SessionSnapshot,
    assessment: Optional[Assessment] = None,
    notes: Optional[CoachingNotesUpdate] = None,
    overrides: Optional[Dict[int, int]] = None,
) -> str:
    """Markdown report of a session."""
    overrides = overrides or {}
    if notes is None and assessment is not None:
        notes = assessment.notes

    lines = ["# Sales Behavior Assessment Results", ""]
    if assessment is not None:
        lines += [
            f"**Assessment:** {assessment.title}",
            f"**Coachee:** {assessment.assessee_name}",
            f"**Date:** {assessment.created_at.date().isoformat()}",
            f"**Status:** {assessment.status.value}",
        ]
        if assessment.context:
            lines.append(f"**Context:** {assessment.context}")
        lines.append("")

    lines += [
        f"**Total Score:** {snapshot.total_score} points",
        f"**Behaviors Observed:** {snapshot.checked_count} of {snapshot.total_behaviors}",
        f"**Overall Level:** {snapshot.overall_label}"
        + (f" (average {snapshot.average_level:.2f})" if snapshot.average_level is not None else ""),
        "",
        "## Step Breakdown",
        "",
        "| Step | Points | Level | Progress | Manual Score |",
        "|---|---|---|---|---|",
    ]
    for step in rubric.steps:
        manual = overrides.get(step.id)
        lines.append(
            f"| {step.title} | {snapshot.per_step_scores.get(step.id, 0)} "
            f"| {snapshot.per_step_labels.get(step.id, '')} "
            f"| {snapshot.per_step_progress.get(step.id, 0.0):.0f}% "
            f"| {manual if manual else '-'} |"
        )

    if notes is not None and notes.has_content():
        lines += ["", "## Coaching Notes"]
        for name, heading in NOTE_HEADINGS:
            value = getattr(notes, name)
            if value:
                lines += ["", f"### {heading}", "", value.strip()]

    return "\n".join(lines) + "\n"


def export_session_json(
    out_dir: Path,
    rubric: Rubric,
    snapshot: SessionSnapshot,
    assessment: Assessment,
    checked: Optional[set] = None,
    overrides: Optional[Dict[int, int]] = None,
) -> Path:
    """Write the session as JSON to out_dir; returns the file path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        "assessment": assessment.model_dump(mode="json"),
        "checked": sorted(checked or ()),
        "overrides": {str(k): v for k, v in sorted((overrides or {}).items())},
        "snapshot": snapshot.to_dict(),
        "benchmark": benchmark_rows(rubric, snapshot),
        "exported_at": datetime.now(timezone.utc).isoformat(),
    }

    safe_name = assessment.assessee_name.replace("/", "-").replace(" ", "_")
    out_path = out_dir / f"assessment_{assessment.id}_{safe_name}.json"
    out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out_path
