from pydantic import BaseModel, Field
from typing import Dict, Iterator, List, Optional, Set


class Behavior(BaseModel):
    """
    Observable behavior worth its proficiency level in points when checked.
    """

    id: int = Field(..., description="Unique behavior identifier")
    substep_id: int = Field(..., description="Foreign key reference to Substep")
    description: str = Field(..., min_length=1, description="Observable behavior text")
    proficiency_level: int = Field(
        ...,
        description="Points awarded when observed (1-4); validated by the scoring engine"
    )
    order: int = Field(..., description="Display order within the substep")

    model_config = {"frozen": True}


class Substep(BaseModel):
    """
    Group of behaviors belonging to exactly one step.
    """

    id: int = Field(..., description="Unique substep identifier")
    step_id: int = Field(..., description="Foreign key reference to Step")
    title: str = Field(..., min_length=1)
    order: int = Field(..., description="Display order within the step")
    behaviors: List[Behavior] = Field(default_factory=list)

    model_config = {"frozen": True}


class Step(BaseModel):
    """
    Top-level stage of a sales call.
    """

    id: int = Field(..., description="Unique step identifier")
    title: str = Field(..., min_length=1)
    description: str = Field(default="")
    order: int = Field(..., description="Position of the step in the call")
    target_score: int = Field(
        default=3,
        ge=1,
        le=4,
        description="Benchmark proficiency level expected for this step"
    )
    substeps: List[Substep] = Field(default_factory=list)

    model_config = {"frozen": True}

    def iter_behaviors(self) -> Iterator[Behavior]:
        for substep in self.substeps:
            yield from substep.behaviors

    @property
    def behavior_count(self) -> int:
        return sum(len(substep.behaviors) for substep in self.substeps)


class StepThresholds(BaseModel):
    """
    Hand-tuned inclusive score thresholds for a special-cased step.
    """

    qualified: int = Field(..., ge=0)
    experienced: int = Field(..., ge=0)
    master: int = Field(..., ge=0)

    model_config = {"frozen": True}


class Rubric(BaseModel):
    """
    Complete Steps -> Substeps -> Behaviors tree plus per-step threshold overrides.
    """

    steps: List[Step] = Field(default_factory=list)
    threshold_overrides: Dict[int, StepThresholds] = Field(
        default_factory=dict,
        description="Step ID -> threshold triple replacing the structural computation"
    )

    def iter_behaviors(self) -> Iterator[Behavior]:
        for step in self.steps:
            yield from step.iter_behaviors()

    @property
    def behavior_ids(self) -> Set[int]:
        return {behavior.id for behavior in self.iter_behaviors()}

    @property
    def total_behaviors(self) -> int:
        return sum(step.behavior_count for step in self.steps)

    def get_step(self, step_id: int) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def get_behavior(self, behavior_id: int) -> Optional[Behavior]:
        for behavior in self.iter_behaviors():
            if behavior.id == behavior_id:
                return behavior
        return None

    def thresholds_for(self, step_id: int) -> Optional[StepThresholds]:
        return self.threshold_overrides.get(step_id)
