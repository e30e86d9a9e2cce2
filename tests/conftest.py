# tests/conftest.py

"""
Pytest Fixtures - Shared rubrics, stores and sessions

SMALL RUBRIC ID REFERENCE (behavior id = step id * 100 + position):
- Step 1 "Opening":          substeps 11 [L1, L2], 12 [L3, L4]   -> behaviors 101-104
                             L1=L2=L3=L4=1, maxima 1/3/6
- Step 2 "Active Listening": substep 21 [L1, L2, L3]             -> behaviors 201-203
                             special-cased thresholds 2/2/3
- Step 3 "Need Dialog":      substeps 31 [L1, L1], 32 [L2, L3]   -> behaviors 301-304
                             L1=2, L2=1, L3=1, maxima 2/4/7
"""

from typing import List
from unittest.mock import patch

import pytest

from salescoach.config import DEFAULT_RUBRIC_PATH
from salescoach.models.rubric import Behavior, Step, Substep
from salescoach.repositories.memory import InMemoryAssessmentRepository, InMemoryScoreRepository
from salescoach.services.rubric_loader import build_rubric, load_rubric_file


def make_step(step_id: int, title: str, substep_levels: List[List[int]], target_score: int = 3) -> Step:
    """Build a step whose substeps hold behaviors at the given levels."""
    substeps = []
    position = 0
    for index, levels in enumerate(substep_levels, start=1):
        substep_id = step_id * 10 + index
        behaviors = []
        for order, level in enumerate(levels, start=1):
            position += 1
            behaviors.append(Behavior(
                id=step_id * 100 + position,
                substep_id=substep_id,
                description=f"Behavior {step_id}.{position}",
                proficiency_level=level,
                order=order,
            ))
        substeps.append(Substep(
            id=substep_id, step_id=step_id, title=f"Substep {substep_id}", order=index, behaviors=behaviors,
        ))
    return Step(id=step_id, title=title, order=step_id, target_score=target_score, substeps=substeps)


# =============================================================================
# REDIS ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def no_redis():
    """Rubric provider never talks to a real Redis during tests."""
    with patch("salescoach.services.rubric_loader.get_cache", return_value=None) as mock_get_cache:
        yield mock_get_cache


# =============================================================================
# RUBRIC FIXTURES
# =============================================================================

@pytest.fixture
def step_factory():
    return make_step


@pytest.fixture
def opening_step():
    return make_step(1, "Opening", [[1, 2], [3, 4]])


@pytest.fixture
def listening_step():
    return make_step(2, "Active Listening", [[1, 2, 3]])


@pytest.fixture
def need_dialog_step():
    return make_step(3, "Need Dialog", [[1, 1], [2, 3]])


@pytest.fixture
def small_rubric(opening_step, listening_step, need_dialog_step):
    return build_rubric([opening_step, listening_step, need_dialog_step])


@pytest.fixture(scope="session")
def default_rubric():
    return load_rubric_file(DEFAULT_RUBRIC_PATH)


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def score_store():
    return InMemoryScoreRepository()


@pytest.fixture
def record_store():
    return InMemoryAssessmentRepository()


@pytest.fixture
def assessment(record_store):
    return record_store.create("Assessment for Jane Smith", user_id=1, assessee_name="Jane Smith")
