"""
Repositories Package - Sales Coaching Assessment
salescoach/repositories/__init__.py

Score, assessment and rubric stores (Snowflake and in-memory).
"""

from salescoach.repositories.base import BaseRepository
from salescoach.repositories.assessment_repository import AssessmentRepository
from salescoach.repositories.memory import InMemoryAssessmentRepository, InMemoryScoreRepository
from salescoach.repositories.rubric_repository import RubricRepository
from salescoach.repositories.score_repository import ScoreRepository

__all__ = [
    "BaseRepository",
    "AssessmentRepository",
    "InMemoryAssessmentRepository",
    "InMemoryScoreRepository",
    "RubricRepository",
    "ScoreRepository",
]
