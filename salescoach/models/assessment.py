from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, List

from salescoach.models.enumerations import AssessmentStatus


class AssessmentBase(BaseModel):
    """
    Base Pydantic model for a coaching session record.
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Session title, e.g. 'Assessment for Jane Smith - 2024-05-01'"
    )

    user_id: int = Field(
        ...,
        description="Coach (person doing the assessment)"
    )

    assessee_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Coachee being assessed"
    )

    context: Optional[str] = Field(
        default=None,
        description="Assessment context or focus areas"
    )


class AssessmentCreate(AssessmentBase):
    """
    Model for creating a new assessment.
    """
    pass


class CoachingNotesUpdate(BaseModel):
    """
    Free-text coaching fields saved when a session is closed.
    """

    context: Optional[str] = None
    key_observations: Optional[str] = None
    what_worked_well: Optional[str] = None
    what_can_be_improved: Optional[str] = None
    next_steps: Optional[str] = None

    model_config = {"extra": "forbid"}

    def has_content(self) -> bool:
        return any(value for value in self.model_dump().values())


class Assessment(AssessmentBase):
    """
    Persisted session record.
    """

    id: int = Field(..., description="Unique assessment identifier")

    key_observations: Optional[str] = None
    what_worked_well: Optional[str] = None
    what_can_be_improved: Optional[str] = None
    next_steps: Optional[str] = None

    status: AssessmentStatus = Field(
        default=AssessmentStatus.DRAFT,
        description="Current status of the session"
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Record creation timestamp (UTC)"
    )

    model_config = {"from_attributes": True}

    @property
    def notes(self) -> CoachingNotesUpdate:
        return CoachingNotesUpdate(
            context=self.context,
            key_observations=self.key_observations,
            what_worked_well=self.what_worked_well,
            what_can_be_improved=self.what_can_be_improved,
            next_steps=self.next_steps,
        )


class BehaviorScore(BaseModel):
    """
    Durable checked flag of one behavior within one assessment.
    """

    assessment_id: int
    behavior_id: int
    checked: bool = False


class StepScore(BaseModel):
    """
    Durable manual level of one step within one assessment (1=Learner .. 4=Master).
    """

    assessment_id: int
    step_id: int
    level: int = Field(..., ge=0, le=4)


class PaginatedAssessmentResponse(BaseModel):
    """
    Paginated listing of assessments (coaching history).
    """

    items: List[Assessment]
    total: int
    page: int
    page_size: int
    total_pages: int
