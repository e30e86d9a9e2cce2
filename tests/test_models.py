# tests/test_models.py

"""
Model Validation Tests - rubric, assessment and score models
"""

import pytest
from pydantic import ValidationError

from salescoach.models.assessment import (
    Assessment,
    AssessmentCreate,
    BehaviorScore,
    CoachingNotesUpdate,
    StepScore,
)
from salescoach.models.enumerations import AssessmentStatus, ScoreSource
from salescoach.models.rubric import Behavior, StepThresholds


# ENUMERATION TESTS


class TestAssessmentStatusEnum:

    def test_all_statuses_exist(self):
        assert [s.value for s in AssessmentStatus] == ["draft", "in_progress", "finalized"]

    def test_score_sources(self):
        assert [s.value for s in ScoreSource] == ["manual", "calculated"]


# RUBRIC MODEL TESTS


class TestRubricModels:

    def test_behavior_is_frozen(self):
        behavior = Behavior(id=1, substep_id=1, description="Greets", proficiency_level=1, order=1)
        with pytest.raises(ValidationError):
            behavior.proficiency_level = 4

    def test_behavior_requires_description(self):
        with pytest.raises(ValidationError):
            Behavior(id=1, substep_id=1, description="", proficiency_level=1, order=1)

    def test_step_target_score_range(self, step_factory):
        step = step_factory(1, "Opening", [[1]])
        with pytest.raises(ValidationError):
            step.model_validate({**step.model_dump(), "target_score": 5})

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValidationError):
            StepThresholds(qualified=-1, experienced=2, master=3)

    def test_step_helpers(self, opening_step):
        assert opening_step.behavior_count == 4
        assert [b.id for b in opening_step.iter_behaviors()] == [101, 102, 103, 104]

    def test_rubric_lookups(self, small_rubric):
        assert small_rubric.total_behaviors == 11
        assert small_rubric.get_step(2).title == "Active Listening"
        assert small_rubric.get_step(99) is None
        assert small_rubric.get_behavior(303).proficiency_level == 2
        assert small_rubric.get_behavior(999) is None
        assert small_rubric.thresholds_for(1) is None


# ASSESSMENT MODEL TESTS


class TestAssessmentModels:

    def test_create_requires_assessee(self):
        with pytest.raises(ValidationError):
            AssessmentCreate(title="Call review", user_id=1, assessee_name="")

    def test_title_length(self):
        with pytest.raises(ValidationError):
            AssessmentCreate(title="x" * 256, user_id=1, assessee_name="Jane Smith")

    def test_defaults(self):
        assessment = Assessment(id=1, title="Call review", user_id=1, assessee_name="Jane Smith")
        assert assessment.status == AssessmentStatus.DRAFT
        assert assessment.created_at.tzinfo is not None
        assert assessment.next_steps is None

    def test_notes_view(self):
        assessment = Assessment(
            id=1, title="Call review", user_id=1, assessee_name="Jane Smith",
            context="Renewal call", next_steps="Book a follow-up",
        )
        notes = assessment.notes
        assert notes.context == "Renewal call"
        assert notes.next_steps == "Book a follow-up"
        assert notes.key_observations is None


class TestCoachingNotesUpdate:

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            CoachingNotesUpdate(summary="not a notes field")

    def test_has_content(self):
        assert CoachingNotesUpdate().has_content() is False
        assert CoachingNotesUpdate(what_worked_well="Good rapport").has_content() is True
        assert CoachingNotesUpdate(next_steps="").has_content() is False


class TestScoreModels:

    def test_behavior_score_default_unchecked(self):
        assert BehaviorScore(assessment_id=1, behavior_id=101).checked is False

    @pytest.mark.parametrize("level", [0, 1, 4])
    def test_step_score_levels_accepted(self, level):
        assert StepScore(assessment_id=1, step_id=1, level=level).level == level

    @pytest.mark.parametrize("level", [-1, 5])
    def test_step_score_levels_rejected(self, level):
        with pytest.raises(ValidationError):
            StepScore(assessment_id=1, step_id=1, level=level)
