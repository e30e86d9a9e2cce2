"""
Rubric Repository - Sales Coaching Assessment
salescoach/repositories/rubric_repository.py

Reads and seeds the static rubric tables STEPS, SUBSTEPS and BEHAVIORS.
STEPS may carry explicit QUALIFIED/EXPERIENCED/MASTER_THRESHOLD columns
for special-cased steps.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List

from salescoach.core.exceptions import RepositoryException, RubricUnavailable
from salescoach.models.rubric import Behavior, Rubric, Step, StepThresholds, Substep
from salescoach.repositories.base import BaseRepository
from salescoach.services.rubric_loader import build_rubric, split_compound_behaviors

logger = logging.getLogger(__name__)


class RubricRepository(BaseRepository):
    """Repository for the read-only rubric hierarchy."""

    def load(self) -> Rubric:
        """
        Load the full Steps -> Substeps -> Behaviors tree.

        Raises:
            RubricUnavailable: the tables could not be read or are empty
        """
        try:
            step_rows = self.execute_query(
                """
                SELECT ID, TITLE, DESCRIPTION, "ORDER", TARGET_SCORE,
                       QUALIFIED_THRESHOLD, EXPERIENCED_THRESHOLD, MASTER_THRESHOLD
                FROM STEPS ORDER BY "ORDER"
                """,
                fetch_all=True,
            ) or []
            substep_rows = self.execute_query(
                'SELECT ID, STEP_ID, TITLE, "ORDER" FROM SUBSTEPS ORDER BY STEP_ID, "ORDER"',
                fetch_all=True,
            ) or []
            behavior_rows = self.execute_query(
                """
                SELECT ID, SUBSTEP_ID, DESCRIPTION, PROFICIENCY_LEVEL, "ORDER"
                FROM BEHAVIORS ORDER BY SUBSTEP_ID, "ORDER"
                """,
                fetch_all=True,
            ) or []
        except RepositoryException as e:
            raise RubricUnavailable(f"Failed to load rubric tables: {e}", cause=e)

        if not step_rows:
            raise RubricUnavailable("Rubric tables are empty")

        behaviors_by_substep: Dict[int, List[Behavior]] = defaultdict(list)
        for row in behavior_rows:
            behavior = Behavior(**self.row_to_dict(row))
            behaviors_by_substep[behavior.substep_id].append(behavior)

        substeps_by_step: Dict[int, List[Substep]] = defaultdict(list)
        for row in substep_rows:
            data = self.row_to_dict(row)
            substeps_by_step[data["step_id"]].append(
                Substep(**data, behaviors=behaviors_by_substep.get(data["id"], []))
            )

        steps = []
        explicit: Dict[int, StepThresholds] = {}
        for row in step_rows:
            data = self.row_to_dict(row)
            thresholds = self._thresholds(data)
            if thresholds is not None:
                explicit[data["id"]] = thresholds
            steps.append(Step(
                id=data["id"],
                title=data["title"],
                description=data.get("description") or "",
                order=data["order"],
                target_score=data.get("target_score") or 3,
                substeps=substeps_by_step.get(data["id"], []),
            ))

        rubric = build_rubric(steps, explicit)
        logger.info(
            "rubric_loaded",
            extra={"source": "snowflake", "steps": len(rubric.steps), "behaviors": rubric.total_behaviors},
        )
        return rubric

    def seed(self, rubric: Rubric) -> int:
        """
        Seed the rubric tables once; does nothing when STEPS already has rows.

        Returns:
            Number of behaviors written
        """
        existing = self.execute_query("SELECT COUNT(*) AS TOTAL FROM STEPS", fetch_one=True)
        if existing and existing["TOTAL"]:
            logger.info("rubric_seed_skipped", extra={"existing_steps": existing["TOTAL"]})
            return 0

        rubric = split_compound_behaviors(rubric)

        step_rows = []
        for step in rubric.steps:
            thresholds = rubric.thresholds_for(step.id)
            step_rows.append((
                step.id, step.title, step.description, step.order, step.target_score,
                thresholds.qualified if thresholds else None,
                thresholds.experienced if thresholds else None,
                thresholds.master if thresholds else None,
            ))
        substep_rows = [
            (substep.id, substep.step_id, substep.title, substep.order)
            for step in rubric.steps for substep in step.substeps
        ]
        behavior_rows = [
            (b.id, b.substep_id, b.description, b.proficiency_level, b.order)
            for b in rubric.iter_behaviors()
        ]

        self.execute_many(
            """
            INSERT INTO STEPS (ID, TITLE, DESCRIPTION, "ORDER", TARGET_SCORE,
                               QUALIFIED_THRESHOLD, EXPERIENCED_THRESHOLD, MASTER_THRESHOLD)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            step_rows,
        )
        self.execute_many(
            'INSERT INTO SUBSTEPS (ID, STEP_ID, TITLE, "ORDER") VALUES (%s, %s, %s, %s)',
            substep_rows,
        )
        self.execute_many(
            """
            INSERT INTO BEHAVIORS (ID, SUBSTEP_ID, DESCRIPTION, PROFICIENCY_LEVEL, "ORDER")
            VALUES (%s, %s, %s, %s, %s)
            """,
            behavior_rows,
        )
        logger.info(
            "rubric_seeded",
            extra={"steps": len(step_rows), "substeps": len(substep_rows), "behaviors": len(behavior_rows)},
        )
        return len(behavior_rows)

    @staticmethod
    def _thresholds(data: Dict[str, Any]):
        values = (
            data.get("qualified_threshold"),
            data.get("experienced_threshold"),
            data.get("master_threshold"),
        )
        if any(v is None for v in values):
            return None
        return StepThresholds(qualified=values[0], experienced=values[1], master=values[2])
