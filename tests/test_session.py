# tests/test_session.py
"""
Session aggregator: toggles, overrides, snapshots, persistence failures,
baselines, resume and finalize.
"""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from salescoach.core.exceptions import (
    ConfigurationError,
    DatabaseConnectionException,
    EntityNotFoundException,
    PersistenceFailure,
)
from salescoach.models.enumerations import AssessmentStatus, ScoreSource
from salescoach.repositories.memory import InMemoryAssessmentRepository, InMemoryScoreRepository
from salescoach.scoring.proficiency import StepLevel
from salescoach.services.session import (
    AssessmentSession,
    clone_checked_set,
    compute_snapshot,
    coaching_history,
    find_baseline,
)


@pytest.fixture
def session(small_rubric, assessment, score_store):
    return AssessmentSession(small_rubric, assessment, score_store, auto_flush=True)


@pytest.fixture
def failing_store():
    store = MagicMock(spec=InMemoryScoreRepository)
    store.put_behavior_score.side_effect = DatabaseConnectionException("down")
    store.put_step_override.side_effect = DatabaseConnectionException("down")
    return store


class TestToggleBehavior:

    def test_check_and_uncheck(self, session):
        assert session.toggle_behavior(101, True) is True
        assert session.checked == {101}
        assert session.toggle_behavior(101, False) is True
        assert session.checked == set()

    def test_idempotent(self, session):
        session.toggle_behavior(104, True)
        before = set(session.checked)
        assert session.toggle_behavior(104, True) is False
        assert session.checked == before

    def test_noop_sends_no_write(self, small_rubric, assessment):
        store = MagicMock(spec=InMemoryScoreRepository)
        session = AssessmentSession(small_rubric, assessment, store, auto_flush=True)
        session.toggle_behavior(104, True)
        session.toggle_behavior(104, True)
        session.toggle_behavior(103, False)
        assert store.put_behavior_score.call_count == 1

    def test_unknown_behavior_rejected(self, session):
        with pytest.raises(ConfigurationError):
            session.toggle_behavior(999, True)
        assert session.checked == set()

    def test_toggle_persists_flag(self, session, score_store, assessment):
        session.toggle_behavior(202, True)
        session.toggle_behavior(301, True)
        session.toggle_behavior(301, False)
        flags = {s.behavior_id: s.checked for s in score_store.get_scores(assessment.id)}
        assert flags == {202: True, 301: False}

    def test_toggle_recomputes_snapshot(self, session):
        session.toggle_behavior(104, True)
        # Opening maxima 1/3/6, score 4
        assert session.snapshot.total_score == 4
        assert session.snapshot.per_step_labels[1] == "Experienced"
        assert session.snapshot.per_substep_labels[12] == "Expert"

    def test_without_store_nothing_persisted(self, small_rubric, assessment):
        session = AssessmentSession(small_rubric, assessment)
        session.toggle_behavior(101, True)
        assert session.writer is None
        assert session.has_unsaved_changes is False


class TestStepOverride:

    def test_set_and_clear(self, session):
        session.set_step_override(3, 4)
        assert session.overrides == {3: 4}
        assert session.snapshot.per_step_labels[3] == "Master"
        assert session.snapshot.per_step_sources[3] is ScoreSource.MANUAL

        session.set_step_override(3, 0)
        assert session.overrides == {}
        assert session.snapshot.per_step_labels[3] == "Not Assessed"
        assert session.snapshot.per_step_sources[3] is ScoreSource.CALCULATED

    def test_persisted(self, session, score_store, assessment):
        session.set_step_override(1, 2)
        session.set_step_override(3, 4)
        session.set_step_override(1, 0)
        assert [(s.step_id, s.level) for s in score_store.get_step_overrides(assessment.id)] == [(3, 4)]

    def test_unknown_step(self, session):
        with pytest.raises(ConfigurationError):
            session.set_step_override(42, 3)

    @pytest.mark.parametrize("level", [5, -1])
    def test_out_of_range(self, session, level):
        with pytest.raises(ConfigurationError):
            session.set_step_override(1, level)
        assert session.overrides == {}


class TestSnapshot:

    def test_empty_session(self, session):
        snap = session.compute_snapshot()
        assert snap.total_score == 0
        assert snap.overall_label == "Not Assessed"
        assert snap.checked_count == 0
        assert snap.total_behaviors == 11
        assert snap.average_level is None
        assert set(snap.per_step_labels.values()) == {"Not Assessed"}
        assert set(snap.per_substep_labels.values()) == {"Not Assessed"}

    def test_full_snapshot(self, small_rubric):
        # 104 (4) + 202 (2) + 301 (1) + 302 (1) + 304 (3)
        checked = {104, 202, 301, 302, 304}
        snap = compute_snapshot(small_rubric, checked)

        assert snap.total_score == 11
        assert snap.per_step_scores == {1: 4, 2: 2, 3: 5}
        assert snap.per_step_labels == {1: "Experienced", 2: "Experienced", 3: "Experienced"}
        assert snap.per_substep_scores == {11: 0, 12: 4, 21: 2, 31: 2, 32: 3}
        assert snap.per_substep_labels == {
            11: "Not Assessed", 12: "Expert", 21: "Developing", 31: "Beginner", 32: "Proficient",
        }
        # 11 / 5 = 2.2
        assert snap.overall_label == "Qualified"
        assert snap.overall_level is StepLevel.QUALIFIED
        assert snap.average_level == 2.2
        assert snap.checked_count == 5
        assert snap.per_step_progress == {1: 25.0, 2: 33.3, 3: 75.0}

    def test_unknown_checked_id(self, small_rubric):
        with pytest.raises(ConfigurationError):
            compute_snapshot(small_rubric, {555})

    def test_to_dict(self, session):
        session.set_step_override(2, 3)
        data = session.snapshot.to_dict()
        assert data["per_step_sources"][2] == "manual"
        assert data["overall_label"] == "Not Assessed"


class TestPersistenceFailure:

    def test_toggle_keeps_state_and_flags_unsaved(self, small_rubric, assessment, failing_store):
        session = AssessmentSession(small_rubric, assessment, failing_store, auto_flush=True)

        assert session.toggle_behavior(104, True) is True

        assert session.checked == {104}
        assert session.snapshot.total_score == 4
        assert session.unsaved_behaviors == {104}
        assert session.has_unsaved_changes
        assert isinstance(session.last_failure, PersistenceFailure)

    def test_override_keeps_state_and_flags_unsaved(self, small_rubric, assessment, failing_store):
        session = AssessmentSession(small_rubric, assessment, failing_store, auto_flush=True)
        session.set_step_override(1, 4)
        assert session.overrides == {1: 4}
        assert session.unsaved_steps == {1: 4}

    def test_retry_unsaved(self, small_rubric, assessment, failing_store):
        session = AssessmentSession(small_rubric, assessment, failing_store, auto_flush=True)
        session.toggle_behavior(104, True)
        session.set_step_override(1, 4)

        failing_store.put_behavior_score.side_effect = None
        failing_store.put_step_override.side_effect = None

        assert session.retry_unsaved() is True
        assert not session.has_unsaved_changes
        failing_store.put_behavior_score.assert_called_with(assessment.id, 104, True)
        failing_store.put_step_override.assert_called_with(assessment.id, 1, 4)

    def test_deferred_writes_are_unsaved_until_flush(self, small_rubric, assessment, score_store):
        session = AssessmentSession(small_rubric, assessment, score_store, auto_flush=False)
        session.toggle_behavior(101, True)
        session.toggle_behavior(102, True)
        assert session.unsaved_behaviors == {101, 102}
        assert score_store.get_scores(assessment.id) == []

        assert session.flush() == set()
        assert {s.behavior_id for s in score_store.get_scores(assessment.id)} == {101, 102}


class TestBaseline:

    def test_clone_checked_set_only_checked(self, score_store):
        score_store.put_behavior_score(1, 101, True)
        score_store.put_behavior_score(1, 102, False)
        score_store.put_behavior_score(2, 103, True)
        assert clone_checked_set(score_store, 1) == {101}

    def test_find_baseline_none_for_first_session(self, record_store, assessment):
        assert find_baseline(record_store, "Jane Smith", assessment.id) is None

    def test_start_from_explicit_baseline(self, small_rubric, record_store, score_store):
        first = AssessmentSession.start(small_rubric, record_store, score_store, "First", 1, "Jane Smith")
        first.toggle_behavior(101, True)
        first.toggle_behavior(304, True)

        second = AssessmentSession.start(
            small_rubric, record_store, score_store, "Second", 1, "Jane Smith",
            baseline_id=first.assessment.id,
        )

        assert second.assessment.id != first.assessment.id
        assert second.checked == {101, 304}
        assert clone_checked_set(score_store, second.assessment.id) == {101, 304}

    def test_start_from_previous_session(self, small_rubric, record_store, score_store):
        first = AssessmentSession.start(small_rubric, record_store, score_store, "First", 1, "Jane Smith")
        first.toggle_behavior(203, True)
        AssessmentSession.start(small_rubric, record_store, score_store, "Other", 1, "John Doe").toggle_behavior(
            101, True
        )

        second = AssessmentSession.start(
            small_rubric, record_store, score_store, "Second", 1, "Jane Smith", use_previous=True
        )
        assert second.checked == {203}

    def test_start_without_previous_is_empty(self, small_rubric, record_store, score_store):
        session = AssessmentSession.start(
            small_rubric, record_store, score_store, "First", 1, "Jane Smith", use_previous=True
        )
        assert session.checked == set()
        assert session.assessment.status is AssessmentStatus.DRAFT

    def test_baseline_drops_ids_missing_from_rubric(self, small_rubric, record_store, score_store):
        score_store.put_behavior_score(99, 101, True)
        score_store.put_behavior_score(99, 7777, True)
        session = AssessmentSession.start(
            small_rubric, record_store, score_store, "Second", 1, "Jane Smith", baseline_id=99
        )
        assert session.checked == {101}


class TestResume:

    def test_round_trip(self, small_rubric, record_store, score_store):
        session = AssessmentSession.start(small_rubric, record_store, score_store, "First", 1, "Jane Smith")
        for behavior_id in (101, 104, 203, 302):
            session.toggle_behavior(behavior_id, True)
        session.toggle_behavior(104, False)
        session.set_step_override(2, 3)

        resumed = AssessmentSession.resume(small_rubric, record_store, score_store, session.assessment.id)

        assert resumed.checked == session.checked == {101, 203, 302}
        assert resumed.overrides == {2: 3}
        assert resumed.snapshot == session.snapshot

    def test_unknown_assessment(self, small_rubric, record_store, score_store):
        with pytest.raises(EntityNotFoundException):
            AssessmentSession.resume(small_rubric, record_store, score_store, 404)


class TestNotes:

    def test_update_notes(self, session):
        notes = session.update_notes(key_observations="Good rapport", next_steps="Practice closing")
        assert notes.key_observations == "Good rapport"
        session.update_notes(next_steps="Role play")
        assert session.notes.key_observations == "Good rapport"
        assert session.notes.next_steps == "Role play"

    def test_unknown_note_field(self, session):
        with pytest.raises(ValidationError):
            session.update_notes(mood="great")

    def test_finalize(self, session, record_store, score_store):
        session.toggle_behavior(101, True)
        session.update_notes(what_worked_well="Clear agenda")

        saved = session.finalize(record_store)

        assert saved.status is AssessmentStatus.FINALIZED
        assert saved.what_worked_well == "Clear agenda"
        assert record_store.get_by_id(saved.id).what_worked_well == "Clear agenda"

    def test_finalize_flushes_deferred_writes(self, small_rubric, assessment, record_store, score_store):
        session = AssessmentSession(small_rubric, assessment, score_store, auto_flush=False)
        session.toggle_behavior(101, True)
        session.finalize(record_store)
        assert clone_checked_set(score_store, assessment.id) == {101}

    def test_finalize_clears_removed_note(self, session, record_store):
        session.update_notes(next_steps="Call back Friday", what_worked_well="Clear agenda")
        session.finalize(record_store)

        session.update_notes(next_steps=None)
        saved = session.finalize(record_store)

        assert saved.next_steps is None
        assert saved.what_worked_well == "Clear agenda"
        assert record_store.get_by_id(saved.id).next_steps is None
        assert session.notes == saved.notes

    def test_finalize_unknown_record_keeps_notes(self, session):
        session.update_notes(next_steps="Follow up")
        with pytest.raises(EntityNotFoundException):
            session.finalize(InMemoryAssessmentRepository())
        assert session.notes.next_steps == "Follow up"

    def test_prefill_from_previous(self, small_rubric, record_store, score_store):
        first = AssessmentSession.start(small_rubric, record_store, score_store, "First", 1, "Jane Smith")
        first.update_notes(key_observations="Talks too much", context="Quarterly review")
        first.finalize(record_store)

        second = AssessmentSession.start(
            small_rubric, record_store, score_store, "Second", 1, "Jane Smith", context="Follow-up call"
        )
        assert second.prefill_notes(record_store) is True
        assert second.notes.key_observations == "Talks too much"
        assert second.notes.context == "Follow-up call"

    def test_prefill_skipped_when_notes_present(self, session, record_store):
        session.update_notes(next_steps="Already written")
        assert session.prefill_notes(record_store) is False


class TestCoachingHistory:

    def test_paginated_newest_first(self):
        records = InMemoryAssessmentRepository()
        for name in ("Jane Smith", "John Doe", "Jane Smith"):
            records.create(f"Assessment for {name}", 1, name)

        history = coaching_history(records, page=1, page_size=2)

        assert history.total == 3
        assert history.total_pages == 2
        assert len(history.items) == 2
        assert history.items[0].id == 3

    def test_filtered_by_coach(self):
        records = InMemoryAssessmentRepository()
        records.create("Mine", 1, "Jane Smith")
        records.create("Theirs", 2, "John Doe")

        history = coaching_history(records, user_id=2)

        assert [a.title for a in history.items] == ["Theirs"]
        assert history.total_pages == 1

    def test_empty_history(self):
        history = coaching_history(InMemoryAssessmentRepository())
        assert history.items == []
        assert history.total_pages == 0
