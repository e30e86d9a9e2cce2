from enum import Enum

class AssessmentStatus(str, Enum):
    DRAFT = "draft"              # Created, nothing scored yet
    IN_PROGRESS = "in_progress"  # Behaviors being checked
    FINALIZED = "finalized"      # Coaching notes saved

class ScoreSource(str, Enum):
    MANUAL = "manual"
    CALCULATED = "calculated"
