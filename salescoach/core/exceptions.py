"""
Custom Exceptions - Sales Coaching Assessment
salescoach/core/exceptions.py

Exception classes for rubric scoring and repository operations.
"""

from typing import Optional


class ScoringException(Exception):
    """Base exception for rubric and scoring failures."""

    pass


class ConfigurationError(ScoringException):
    """Malformed rubric, out-of-range proficiency level or unknown rubric id."""

    def __init__(self, message: str, entity_type: Optional[str] = None, entity_id: Optional[int] = None):
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message)


class RubricUnavailable(ScoringException):
    """Rubric could not be fetched; a session cannot start without it."""

    def __init__(self, message: str = "Rubric unavailable", cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class RepositoryException(Exception):
    """Base exception for repository operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Entity not found in the store."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class DuplicateEntityException(RepositoryException):
    """Duplicate entity violation."""

    def __init__(self, message: str = "Entity already exists"):
        self.message = message
        super().__init__(message)


class DatabaseConnectionException(RepositoryException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        self.message = message
        super().__init__(message)


class ForeignKeyViolationException(RepositoryException):
    """Foreign key constraint violation."""

    def __init__(self, message: str = "Foreign key constraint violation"):
        self.message = message
        super().__init__(message)


class PersistenceFailure(RepositoryException):
    """A behavior toggle or step override could not be saved."""

    def __init__(self, message: str = "Score could not be saved", assessment_id: Optional[int] = None):
        self.message = message
        self.assessment_id = assessment_id
        super().__init__(message)
