"""
Assessment Session - Sales Coaching Assessment
salescoach/services/session.py

Mutable state of one coaching session: the checked behavior set, manual step
overrides and free-text coaching notes. Every change recomputes the derived
scores through the scoring engine; callers read them from compute_snapshot()
and never score anything themselves.

Persistence failures never roll back local state. The affected behavior or
step is reported through unsaved_behaviors / unsaved_steps until
retry_unsaved() succeeds.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, Optional, Set

from salescoach.config import settings
from salescoach.core.exceptions import (
    ConfigurationError,
    EntityNotFoundException,
    PersistenceFailure,
    RepositoryException,
)
from salescoach.models.assessment import Assessment, CoachingNotesUpdate, PaginatedAssessmentResponse
from salescoach.models.enumerations import AssessmentStatus, ScoreSource
from salescoach.models.rubric import Rubric
from salescoach.scoring.proficiency import (
    StepLevel,
    checked_count,
    classify_overall,
    classify_step,
    classify_substep,
    step_score,
    substep_score,
    validate_checked,
    validate_override,
)
from salescoach.services.score_writer import BehaviorScoreWriter

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Derived scores of a session at one point in time."""
    total_score: int
    per_step_scores: Dict[int, int]
    per_step_labels: Dict[int, str]
    per_substep_scores: Dict[int, int]
    per_substep_labels: Dict[int, str]
    overall_label: str
    overall_level: StepLevel = StepLevel.NOT_ASSESSED
    checked_count: int = 0
    total_behaviors: int = 0
    average_level: Optional[float] = None
    per_step_levels: Dict[int, StepLevel] = field(default_factory=dict)
    per_step_progress: Dict[int, float] = field(default_factory=dict)
    per_step_sources: Dict[int, ScoreSource] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "per_step_scores": self.per_step_scores,
            "per_step_labels": self.per_step_labels,
            "per_substep_scores": self.per_substep_scores,
            "per_substep_labels": self.per_substep_labels,
            "overall_label": self.overall_label,
            "checked_count": self.checked_count,
            "total_behaviors": self.total_behaviors,
            "average_level": self.average_level,
            "per_step_progress": self.per_step_progress,
            "per_step_sources": {k: v.value for k, v in self.per_step_sources.items()},
        }


def compute_snapshot(
    rubric: Rubric,
    checked: AbstractSet[int],
    overrides: Optional[Dict[int, int]] = None,
) -> SessionSnapshot:
    """
    Score a checked set against a rubric.

    Raises:
        ConfigurationError: unknown behavior ids, invalid levels or overrides
    """
    overrides = overrides or {}
    validate_checked(checked, rubric.steps)

    per_step_scores: Dict[int, int] = {}
    per_step_levels: Dict[int, StepLevel] = {}
    per_step_progress: Dict[int, float] = {}
    per_step_sources: Dict[int, ScoreSource] = {}
    per_substep_scores: Dict[int, int] = {}
    per_substep_labels: Dict[int, str] = {}
    n_checked = 0

    for step in rubric.steps:
        override = overrides.get(step.id)
        level = classify_step(step, checked, override, rubric.thresholds_for(step.id))
        per_step_scores[step.id] = step_score(step, checked)
        per_step_levels[step.id] = level
        per_step_sources[step.id] = ScoreSource.MANUAL if override else ScoreSource.CALCULATED

        step_checked = 0
        for substep in step.substeps:
            per_substep_scores[substep.id] = substep_score(substep, checked)
            per_substep_labels[substep.id] = classify_substep(substep, checked).label
            step_checked += checked_count(substep, checked)
        n_checked += step_checked
        per_step_progress[step.id] = (
            round(100.0 * step_checked / step.behavior_count, 1) if step.behavior_count else 0.0
        )

    overall = classify_overall(rubric.steps, checked, overrides)
    total = sum(per_step_scores.values())

    return SessionSnapshot(
        total_score=total,
        per_step_scores=per_step_scores,
        per_step_labels={step_id: level.label for step_id, level in per_step_levels.items()},
        per_substep_scores=per_substep_scores,
        per_substep_labels=per_substep_labels,
        overall_label=overall.label,
        overall_level=overall,
        checked_count=n_checked,
        total_behaviors=rubric.total_behaviors,
        average_level=round(total / n_checked, 2) if n_checked else None,
        per_step_levels=per_step_levels,
        per_step_progress=per_step_progress,
        per_step_sources=per_step_sources,
    )


def clone_checked_set(score_store, previous_assessment_id: int) -> Set[int]:
    """Checked behavior ids of a previous session, used as a new session's baseline."""
    return {
        score.behavior_id
        for score in score_store.get_scores(previous_assessment_id)
        if score.checked
    }


def find_baseline(record_store, assessee_name: str, exclude_id: int) -> Optional[Assessment]:
    """The coachee's most recent other assessment; None when this is their first."""
    return record_store.get_previous_for_coachee(assessee_name, exclude_id)


def coaching_history(
    record_store,
    page: int = 1,
    page_size: int = 20,
    user_id: Optional[int] = None,
) -> PaginatedAssessmentResponse:
    """One page of past assessments, newest first."""
    items, total = record_store.get_all(page=page, page_size=page_size, user_id=user_id)
    return PaginatedAssessmentResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if page_size else 0,
    )


class AssessmentSession:
    """One coach editing one assessment."""

    def __init__(
        self,
        rubric: Rubric,
        assessment: Assessment,
        score_store=None,
        checked: Optional[Iterable[int]] = None,
        overrides: Optional[Dict[int, int]] = None,
        auto_flush: Optional[bool] = None,
    ):
        self.rubric = rubric
        self.assessment = assessment
        self.score_store = score_store
        self.checked: Set[int] = set(checked or ())
        self.overrides: Dict[int, int] = {k: v for k, v in (overrides or {}).items() if v}
        self.notes: CoachingNotesUpdate = assessment.notes
        self.unsaved_steps: Dict[int, int] = {}
        self.last_failure: Optional[PersistenceFailure] = None

        if auto_flush is None:
            auto_flush = settings.AUTO_FLUSH_SCORES
        self.writer = (
            BehaviorScoreWriter(score_store, assessment.id, auto_flush=auto_flush)
            if score_store is not None else None
        )

        for step_id in self.overrides:
            self._require_step(step_id)
        self.snapshot = self.compute_snapshot()

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def start(
        cls,
        rubric: Rubric,
        record_store,
        score_store,
        title: str,
        user_id: int,
        assessee_name: str,
        context: Optional[str] = None,
        baseline_id: Optional[int] = None,
        use_previous: bool = False,
        auto_flush: Optional[bool] = None,
    ) -> "AssessmentSession":
        """
        Create the assessment record and open a session on it.

        With use_previous, the coachee's most recent other assessment (if any)
        becomes the baseline; a baseline's checked behaviors are copied into
        the new session and persisted for it.
        """
        assessment = record_store.create(title, user_id, assessee_name, context)

        if use_previous and baseline_id is None:
            previous = find_baseline(record_store, assessee_name, assessment.id)
            baseline_id = previous.id if previous else None

        baseline: Set[int] = set()
        if baseline_id is not None:
            baseline = clone_checked_set(score_store, baseline_id)
            stale = baseline - rubric.behavior_ids
            if stale:
                logger.warning(
                    "baseline_behaviors_dropped",
                    extra={"baseline_id": baseline_id, "behavior_ids": sorted(stale)},
                )
                baseline -= stale

        session = cls(rubric, assessment, score_store, auto_flush=auto_flush)
        for behavior_id in sorted(baseline):
            session.toggle_behavior(behavior_id, True)

        logger.info(
            "session_started",
            extra={
                "assessment_id": assessment.id,
                "assessee_name": assessee_name,
                "baseline_id": baseline_id,
                "baseline_behaviors": len(baseline),
            },
        )
        return session

    @classmethod
    def resume(
        cls,
        rubric: Rubric,
        record_store,
        score_store,
        assessment_id: int,
        auto_flush: Optional[bool] = None,
    ) -> "AssessmentSession":
        """
        Rehydrate a session from the durable stores.

        Raises:
            EntityNotFoundException: unknown assessment id
        """
        assessment = record_store.get_by_id(assessment_id)
        if assessment is None:
            raise EntityNotFoundException("Assessment", assessment_id)

        checked = clone_checked_set(score_store, assessment_id)
        overrides = {
            score.step_id: score.level
            for score in score_store.get_step_overrides(assessment_id)
        }
        return cls(rubric, assessment, score_store, checked, overrides, auto_flush=auto_flush)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle_behavior(self, behavior_id: int, checked: bool) -> bool:
        """
        Set or clear one behavior.

        Returns:
            False if the behavior was already in the requested state

        Raises:
            ConfigurationError: behavior not in the rubric
        """
        if self.rubric.get_behavior(behavior_id) is None:
            raise ConfigurationError(
                f"Behavior {behavior_id} is not part of the rubric", "Behavior", behavior_id
            )
        if (behavior_id in self.checked) == checked:
            return False

        if checked:
            self.checked.add(behavior_id)
        else:
            self.checked.discard(behavior_id)
        self.snapshot = self.compute_snapshot()

        logger.info(
            "behavior_toggled",
            extra={"assessment_id": self.assessment.id, "behavior_id": behavior_id, "checked": checked},
        )

        if self.writer is not None:
            self.writer.submit(behavior_id, checked)
            self._note_writer_failure(behavior_id)
        return True

    def set_step_override(self, step_id: int, level: int) -> None:
        """
        Set a manual step level (1-4) or clear it (0).

        Raises:
            ConfigurationError: unknown step or level outside 0-4
        """
        self._require_step(step_id)
        validate_override(step_id, level)

        if level:
            self.overrides[step_id] = level
        else:
            self.overrides.pop(step_id, None)
        self.snapshot = self.compute_snapshot()

        logger.info(
            "step_override_set",
            extra={"assessment_id": self.assessment.id, "step_id": step_id, "level": level},
        )

        if self.score_store is not None:
            self._save_step_override(step_id, level)

    def update_notes(self, **fields) -> CoachingNotesUpdate:
        """Edit coaching free-text fields locally; unknown field names are rejected."""
        self.notes = CoachingNotesUpdate.model_validate(
            {**self.notes.model_dump(), **fields}
        )
        return self.notes

    def prefill_notes(self, record_store) -> bool:
        """
        Copy the coaching text of the coachee's previous assessment into empty notes.

        Returns:
            True if anything was copied
        """
        if any(self.notes.model_dump(exclude={"context"}).values()):
            return False
        previous = find_baseline(record_store, self.assessment.assessee_name, self.assessment.id)
        if previous is None:
            return False
        carried = {
            name: value
            for name, value in previous.notes.model_dump(exclude={"context"}).items()
            if value
        }
        if not carried:
            return False
        self.update_notes(**carried)
        return True

    def finalize(self, record_store) -> Assessment:
        """
        Flush outstanding score writes, then save the coaching notes and close the session.

        Raises:
            RepositoryException: the record store rejected the update; local notes are kept
        """
        if self.writer is not None:
            self.writer.flush()
        self.assessment = record_store.update(
            self.assessment.id, self.notes, status=AssessmentStatus.FINALIZED
        )
        self.notes = self.assessment.notes
        logger.info(
            "session_finalized",
            extra={
                "assessment_id": self.assessment.id,
                "overall_label": self.snapshot.overall_label,
                "unsaved_behaviors": sorted(self.unsaved_behaviors),
            },
        )
        return self.assessment

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def compute_snapshot(self) -> SessionSnapshot:
        return compute_snapshot(self.rubric, self.checked, self.overrides)

    @property
    def unsaved_behaviors(self) -> Set[int]:
        if self.writer is None:
            return set()
        return self.writer.failed_behaviors | self.writer.pending_behaviors

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.unsaved_behaviors or self.unsaved_steps)

    def flush(self) -> Set[int]:
        """Send deferred behavior writes; returns the behaviors still unsaved."""
        if self.writer is not None:
            self.writer.flush()
        return self.unsaved_behaviors

    def retry_unsaved(self) -> bool:
        """
        Re-send every write that previously failed.

        Returns:
            True when nothing is left unsaved
        """
        if self.writer is not None:
            self.writer.retry_failed()
        for step_id, level in list(self.unsaved_steps.items()):
            self._save_step_override(step_id, level)
        return not self.has_unsaved_changes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_step(self, step_id: int) -> None:
        if self.rubric.get_step(step_id) is None:
            raise ConfigurationError(f"Step {step_id} is not part of the rubric", "Step", step_id)

    def _note_writer_failure(self, behavior_id: int) -> None:
        failure = self.writer.failures.get(behavior_id)
        if failure is not None:
            self.last_failure = failure[2]

    def _save_step_override(self, step_id: int, level: int) -> None:
        try:
            self.score_store.put_step_override(self.assessment.id, step_id, level)
        except RepositoryException as e:
            self.unsaved_steps[step_id] = level
            self.last_failure = PersistenceFailure(
                f"Step {step_id} override could not be saved: {e}",
                assessment_id=self.assessment.id,
            )
            logger.warning(
                "step_override_write_failed",
                extra={"assessment_id": self.assessment.id, "step_id": step_id, "level": level, "error": str(e)},
            )
        else:
            self.unsaved_steps.pop(step_id, None)
