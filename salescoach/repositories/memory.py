"""
In-Memory Repositories - Sales Coaching Assessment
salescoach/repositories/memory.py

Dictionary-backed score and assessment stores with the same interface as
the Snowflake repositories. Used by tests, the CLI and the default
STORE_BACKEND=memory configuration.
"""

from datetime import datetime, timezone
from itertools import count
from typing import Dict, List, Optional, Tuple

from salescoach.core.exceptions import EntityNotFoundException
from salescoach.models.assessment import (
    Assessment,
    BehaviorScore,
    CoachingNotesUpdate,
    StepScore,
)
from salescoach.models.enumerations import AssessmentStatus


class InMemoryScoreRepository:
    """Behavior flags and manual step levels keyed by (assessment_id, entity_id)."""

    def __init__(self):
        self._behavior_scores: Dict[Tuple[int, int], bool] = {}
        self._step_scores: Dict[Tuple[int, int], int] = {}

    def put_behavior_score(self, assessment_id: int, behavior_id: int, checked: bool) -> BehaviorScore:
        self._behavior_scores[(assessment_id, behavior_id)] = checked
        return BehaviorScore(assessment_id=assessment_id, behavior_id=behavior_id, checked=checked)

    def get_scores(self, assessment_id: int) -> List[BehaviorScore]:
        return [
            BehaviorScore(assessment_id=aid, behavior_id=bid, checked=checked)
            for (aid, bid), checked in sorted(self._behavior_scores.items())
            if aid == assessment_id
        ]

    def put_step_override(self, assessment_id: int, step_id: int, level: int) -> Optional[StepScore]:
        """Level 0 clears the stored override."""
        if level == 0:
            self._step_scores.pop((assessment_id, step_id), None)
            return None
        self._step_scores[(assessment_id, step_id)] = level
        return StepScore(assessment_id=assessment_id, step_id=step_id, level=level)

    def get_step_overrides(self, assessment_id: int) -> List[StepScore]:
        return [
            StepScore(assessment_id=aid, step_id=sid, level=level)
            for (aid, sid), level in sorted(self._step_scores.items())
            if aid == assessment_id
        ]


class InMemoryAssessmentRepository:
    """Assessment records with sequential integer ids."""

    def __init__(self):
        self._records: Dict[int, Assessment] = {}
        self._ids = count(1)

    def create(
        self,
        title: str,
        user_id: int,
        assessee_name: str,
        context: Optional[str] = None,
    ) -> Assessment:
        assessment = Assessment(
            id=next(self._ids),
            title=title,
            user_id=user_id,
            assessee_name=assessee_name,
            context=context,
            created_at=datetime.now(timezone.utc),
        )
        self._records[assessment.id] = assessment
        return assessment

    def get_by_id(self, assessment_id: int) -> Optional[Assessment]:
        return self._records.get(assessment_id)

    def update(
        self,
        assessment_id: int,
        notes: CoachingNotesUpdate,
        status: Optional[AssessmentStatus] = None,
    ) -> Assessment:
        """
        Apply the coaching fields set on ``notes``; a field set to None is cleared.

        Raises:
            EntityNotFoundException: unknown assessment id
        """
        existing = self._records.get(assessment_id)
        if existing is None:
            raise EntityNotFoundException("Assessment", assessment_id)

        changes = notes.model_dump(exclude_unset=True)
        if status is not None:
            changes["status"] = status
        updated = existing.model_copy(update=changes)
        self._records[assessment_id] = updated
        return updated

    def get_all(
        self,
        page: int = 1,
        page_size: int = 20,
        user_id: Optional[int] = None,
    ) -> Tuple[List[Assessment], int]:
        """Newest first; returns (page items, total matching)."""
        records = [
            record for record in self._records.values()
            if user_id is None or record.user_id == user_id
        ]
        records.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        offset = (page - 1) * page_size
        return records[offset:offset + page_size], len(records)

    def get_previous_for_coachee(self, assessee_name: str, exclude_id: int) -> Optional[Assessment]:
        """Most recent other assessment of the coachee, or None."""
        candidates = [
            record for record in self._records.values()
            if record.assessee_name == assessee_name and record.id != exclude_id
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: (r.created_at, r.id))
