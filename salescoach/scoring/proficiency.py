"""
Proficiency Scoring Engine
salescoach/scoring/proficiency.py

Pure functions turning a rubric scope plus a set of checked behavior IDs into
scores and classifications.

Substeps are classified by the AVERAGE level of their checked behaviors:
    avg >= 3.5 -> Expert
    avg >= 2.5 -> Proficient
    avg >= 1.5 -> Developing
    otherwise  -> Beginner
    no behavior checked -> Not Assessed

Steps are classified by their RAW TOTAL:
    manual override (1-4) wins outright
    score == 0 -> Not Assessed
    special-cased step: score >= master / experienced / qualified (inclusive)
    otherwise, with L1..L3 = structural counts of level-1..3 behaviors:
        max1 = L1, max2 = max1 + 2*L2, max3 = max2 + 3*L3
        score > max3 -> Master, > max2 -> Experienced, > max1 -> Qualified,
        else Learner

Overall classification averages the total score over the number of checked
behaviors and maps it onto the step label scale with the substep bands.

Usage:
    level = classify_step(step, checked, thresholds=rubric.thresholds_for(step.id))
    level.label   # "Experienced"
    level.rank    # 3
"""

from enum import Enum
from typing import AbstractSet, Dict, Iterable, Mapping, Optional, Tuple

from salescoach.core.exceptions import ConfigurationError
from salescoach.models.rubric import Behavior, Step, StepThresholds, Substep

VALID_LEVELS = (1, 2, 3, 4)

# (lower bound inclusive, rank) checked top-down
AVERAGE_BANDS: Tuple[Tuple[float, int], ...] = (
    (3.5, 4),
    (2.5, 3),
    (1.5, 2),
)


# ---------------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------------

class SubstepLevel(Enum):
    """Average-based substep classification."""
    NOT_ASSESSED = (0, "Not Assessed")
    BEGINNER = (1, "Beginner")
    DEVELOPING = (2, "Developing")
    PROFICIENT = (3, "Proficient")
    EXPERT = (4, "Expert")

    @property
    def rank(self) -> int:
        return self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]

    @classmethod
    def from_rank(cls, rank: int) -> "SubstepLevel":
        for level in cls:
            if level.rank == rank:
                return level
        raise ConfigurationError(f"No substep level with rank {rank}")


class StepLevel(Enum):
    """Step and overall classification scale."""
    NOT_ASSESSED = (0, "Not Assessed")
    LEARNER = (1, "Learner")
    QUALIFIED = (2, "Qualified")
    EXPERIENCED = (3, "Experienced")
    MASTER = (4, "Master")

    @property
    def rank(self) -> int:
        return self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]

    @property
    def short_code(self) -> str:
        return self.label[0] if self.rank else "-"

    @classmethod
    def from_rank(cls, rank: int) -> "StepLevel":
        for level in cls:
            if level.rank == rank:
                return level
        raise ConfigurationError(f"No step level with rank {rank}")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_behavior(behavior: Behavior) -> None:
    """Reject behaviors whose proficiency level is outside 1-4."""
    if behavior.proficiency_level not in VALID_LEVELS:
        raise ConfigurationError(
            f"Behavior {behavior.id} has proficiency level "
            f"{behavior.proficiency_level}; expected one of {VALID_LEVELS}",
            entity_type="Behavior",
            entity_id=behavior.id,
        )


def validate_override(step_id: int, level: Optional[int]) -> None:
    """Manual levels are 0 (automatic) or 1-4."""
    if level is None:
        return
    if level != 0 and level not in VALID_LEVELS:
        raise ConfigurationError(
            f"Step {step_id} override level {level} is outside 0-4",
            entity_type="Step",
            entity_id=step_id,
        )


def validate_checked(checked: AbstractSet[int], steps: Iterable[Step]) -> None:
    """Every checked ID must belong to a behavior of the supplied steps."""
    known = {behavior.id for step in steps for behavior in step.iter_behaviors()}
    unknown = sorted(set(checked) - known)
    if unknown:
        raise ConfigurationError(
            f"Checked behaviors not in rubric scope: {unknown}",
            entity_type="Behavior",
            entity_id=unknown[0],
        )


# ---------------------------------------------------------------------------
# Substeps
# ---------------------------------------------------------------------------

def substep_score(substep: Substep, checked: AbstractSet[int]) -> int:
    """Sum of proficiency levels of the substep's checked behaviors."""
    total = 0
    for behavior in substep.behaviors:
        validate_behavior(behavior)
        if behavior.id in checked:
            total += behavior.proficiency_level
    return total


def checked_count(substep: Substep, checked: AbstractSet[int]) -> int:
    return sum(1 for behavior in substep.behaviors if behavior.id in checked)


def _average_rank(total: int, count: int) -> int:
    avg = total / count
    for lower, rank in AVERAGE_BANDS:
        if avg >= lower:
            return rank
    return 1


def classify_substep(substep: Substep, checked: AbstractSet[int]) -> SubstepLevel:
    """
    Classify a substep by the average level of its checked behaviors.

    The label only depends on how well the checked behaviors score on
    average, not on how many behaviors the substep defines.
    """
    score = substep_score(substep, checked)
    count = checked_count(substep, checked)
    if count == 0:
        return SubstepLevel.NOT_ASSESSED
    return SubstepLevel.from_rank(_average_rank(score, count))


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def step_score(step: Step, checked: AbstractSet[int]) -> int:
    """Sum of substep scores."""
    return sum(substep_score(substep, checked) for substep in step.substeps)


def level_counts(step: Step) -> Dict[int, int]:
    """Structural number of behaviors per level (independent of checked state)."""
    counts = {level: 0 for level in VALID_LEVELS}
    for behavior in step.iter_behaviors():
        validate_behavior(behavior)
        counts[behavior.proficiency_level] += 1
    return counts


def structural_maxima(step: Step) -> Tuple[int, int, int]:
    """Cumulative maxima (max1, max2, max3) of the learner/qualified/experienced tiers."""
    counts = level_counts(step)
    max1 = counts[1] * 1
    max2 = max1 + counts[2] * 2
    max3 = max2 + counts[3] * 3
    return max1, max2, max3


def classify_step(
    step: Step,
    checked: AbstractSet[int],
    override: Optional[int] = None,
    thresholds: Optional[StepThresholds] = None,
) -> StepLevel:
    """
    Classify a step.

    Args:
        step: Rubric step
        checked: Checked behavior IDs
        override: Manual level (1-4); 0 or None computes automatically
        thresholds: Inclusive thresholds of a special-cased step

    Returns:
        StepLevel for the step
    """
    validate_override(step.id, override)
    max1, max2, max3 = structural_maxima(step)
    if override:
        return StepLevel.from_rank(override)

    score = step_score(step, checked)
    if score == 0:
        return StepLevel.NOT_ASSESSED

    if thresholds is not None:
        if score >= thresholds.master:
            return StepLevel.MASTER
        if score >= thresholds.experienced:
            return StepLevel.EXPERIENCED
        if score >= thresholds.qualified:
            return StepLevel.QUALIFIED
        return StepLevel.LEARNER

    if score > max3:
        return StepLevel.MASTER
    if score > max2:
        return StepLevel.EXPERIENCED
    if score > max1:
        return StepLevel.QUALIFIED
    return StepLevel.LEARNER


# ---------------------------------------------------------------------------
# Overall
# ---------------------------------------------------------------------------

def total_score(steps: Iterable[Step], checked: AbstractSet[int]) -> int:
    return sum(step_score(step, checked) for step in steps)


def classify_overall(
    steps: Iterable[Step],
    checked: AbstractSet[int],
    overrides: Optional[Mapping[int, int]] = None,
) -> StepLevel:
    """
    Classify the whole session by the average level of all checked behaviors.

    Manual step overrides are range-checked but do not move the
    behavior-derived average.
    """
    steps = list(steps)
    for step_id, level in (overrides or {}).items():
        validate_override(step_id, level)
    validate_checked(checked, steps)

    score = total_score(steps, checked)
    count = sum(
        checked_count(substep, checked)
        for step in steps
        for substep in step.substeps
    )
    if count == 0:
        return StepLevel.NOT_ASSESSED
    return StepLevel.from_rank(_average_rank(score, count))
