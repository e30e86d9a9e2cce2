"""
Core Package - Sales Coaching Assessment
salescoach/core/__init__.py

Core infrastructure: exceptions here, store factories in
salescoach.core.dependencies.
"""

from salescoach.core.exceptions import (
    ConfigurationError,
    DatabaseConnectionException,
    DuplicateEntityException,
    EntityNotFoundException,
    ForeignKeyViolationException,
    PersistenceFailure,
    RepositoryException,
    RubricUnavailable,
    ScoringException,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConnectionException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "ForeignKeyViolationException",
    "PersistenceFailure",
    "RepositoryException",
    "RubricUnavailable",
    "ScoringException",
]
