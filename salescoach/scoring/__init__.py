"""
scoring/ - Proficiency Scoring Engine

Modules:
    proficiency.py   - Substep / step / overall scores and classifications
    thresholds.py    - Special-cased step threshold table and its step-ID mapping
"""

from salescoach.scoring.proficiency import (
    StepLevel,
    SubstepLevel,
    checked_count,
    classify_overall,
    classify_step,
    classify_substep,
    level_counts,
    step_score,
    structural_maxima,
    substep_score,
    total_score,
)
from salescoach.scoring.thresholds import TITLE_THRESHOLDS, derive_title_overrides

__all__ = [
    "StepLevel",
    "SubstepLevel",
    "checked_count",
    "classify_overall",
    "classify_step",
    "classify_substep",
    "level_counts",
    "step_score",
    "structural_maxima",
    "substep_score",
    "total_score",
    "TITLE_THRESHOLDS",
    "derive_title_overrides",
]
