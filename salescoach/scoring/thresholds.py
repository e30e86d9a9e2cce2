"""
Step Threshold Overrides
salescoach/scoring/thresholds.py

Known tuning exceptions for step classification. Steps whose title contains
one of the keys below are classified against these inclusive thresholds
instead of the structural level-count maxima.

The table is only consulted when a rubric is loaded: it is turned into a
declarative step ID -> StepThresholds map stored on the Rubric, so the
scoring engine never matches titles itself.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional

from salescoach.models.rubric import Step, StepThresholds

logger = logging.getLogger(__name__)


# Order matters: the first key contained in the step title wins.
TITLE_THRESHOLDS: Dict[str, StepThresholds] = {
    "analyzing results": StepThresholds(qualified=2, experienced=3, master=4),
    "maintaining rapport": StepThresholds(qualified=3, experienced=4, master=5),
    "asking for commitment": StepThresholds(qualified=2, experienced=3, master=2),
    "summarizing": StepThresholds(qualified=2, experienced=3, master=2),
    "objection handling": StepThresholds(qualified=2, experienced=3, master=4),
    "active listening": StepThresholds(qualified=2, experienced=2, master=3),
}


def match_title(
    title: str,
    table: Mapping[str, StepThresholds] = TITLE_THRESHOLDS,
) -> Optional[StepThresholds]:
    """Return the thresholds of the first table key contained in ``title`` (case-insensitive)."""
    lowered = title.lower()
    for key, thresholds in table.items():
        if key in lowered:
            return thresholds
    return None


def derive_title_overrides(
    steps: Iterable[Step],
    table: Mapping[str, StepThresholds] = TITLE_THRESHOLDS,
) -> Dict[int, StepThresholds]:
    """
    Build the step ID -> thresholds map for every special-cased step.

    Args:
        steps: Rubric steps
        table: Title substring -> thresholds table

    Returns:
        Mapping containing only the steps that matched a table entry
    """
    overrides: Dict[int, StepThresholds] = {}
    for step in steps:
        thresholds = match_title(step.title, table)
        if thresholds is not None:
            overrides[step.id] = thresholds
            logger.debug(
                "step_thresholds_matched",
                extra={"step_id": step.id, "title": step.title},
            )
    return overrides
