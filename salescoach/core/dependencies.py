"""
Dependencies - Sales Coaching Assessment
salescoach/core/dependencies.py

Cached factories for the stores and the rubric provider, selected by
STORE_BACKEND.
"""

from functools import lru_cache

from salescoach.config import settings
from salescoach.repositories.assessment_repository import AssessmentRepository
from salescoach.repositories.memory import InMemoryAssessmentRepository, InMemoryScoreRepository
from salescoach.repositories.rubric_repository import RubricRepository
from salescoach.repositories.score_repository import ScoreRepository
from salescoach.services.rubric_loader import RubricProvider, load_rubric_file


@lru_cache()
def get_score_repository():
    """Get cached score store for the configured backend."""
    if settings.STORE_BACKEND == "snowflake":
        return ScoreRepository()
    return InMemoryScoreRepository()


@lru_cache()
def get_assessment_repository():
    """Get cached assessment record store for the configured backend."""
    if settings.STORE_BACKEND == "snowflake":
        return AssessmentRepository()
    return InMemoryAssessmentRepository()


@lru_cache()
def get_rubric_provider() -> RubricProvider:
    """Rubric tables for the snowflake backend, the JSON document otherwise."""
    if settings.STORE_BACKEND == "snowflake":
        return RubricProvider(RubricRepository().load)
    return RubricProvider(lambda: load_rubric_file(settings.RUBRIC_PATH))
