"""
Score Repository - Sales Coaching Assessment
salescoach/repositories/score_repository.py

Durable checked flags (ASSESSMENT_SCORES) and manual step levels
(STEP_SCORES), upserted with MERGE so a repeated write replaces the row.
"""

from typing import Any, Dict, List, Optional

from salescoach.models.assessment import BehaviorScore, StepScore
from salescoach.repositories.base import BaseRepository


class ScoreRepository(BaseRepository):
    """Repository for per-assessment behavior and step scores."""

    BEHAVIOR_TABLE = "ASSESSMENT_SCORES"
    STEP_TABLE = "STEP_SCORES"

    def put_behavior_score(self, assessment_id: int, behavior_id: int, checked: bool) -> BehaviorScore:
        """
        Upsert the checked flag of one behavior.

        Args:
            assessment_id: Assessment the flag belongs to
            behavior_id: Rubric behavior id
            checked: Observed or not
        """
        sql = f"""
            MERGE INTO {self.BEHAVIOR_TABLE} t
            USING (SELECT %s AS ASSESSMENT_ID, %s AS BEHAVIOR_ID, %s AS CHECKED) s
            ON t.ASSESSMENT_ID = s.ASSESSMENT_ID AND t.BEHAVIOR_ID = s.BEHAVIOR_ID
            WHEN MATCHED THEN UPDATE SET CHECKED = s.CHECKED, UPDATED_AT = CURRENT_TIMESTAMP()
            WHEN NOT MATCHED THEN INSERT (ASSESSMENT_ID, BEHAVIOR_ID, CHECKED, UPDATED_AT)
                VALUES (s.ASSESSMENT_ID, s.BEHAVIOR_ID, s.CHECKED, CURRENT_TIMESTAMP())
        """
        self.execute_query(sql, (assessment_id, behavior_id, checked), commit=True)
        return BehaviorScore(assessment_id=assessment_id, behavior_id=behavior_id, checked=checked)

    def get_scores(self, assessment_id: int) -> List[BehaviorScore]:
        sql = f"""
            SELECT ASSESSMENT_ID, BEHAVIOR_ID, CHECKED
            FROM {self.BEHAVIOR_TABLE}
            WHERE ASSESSMENT_ID = %s
            ORDER BY BEHAVIOR_ID
        """
        rows = self.execute_query(sql, (assessment_id,), fetch_all=True) or []
        return [BehaviorScore(**self.row_to_dict(row)) for row in rows]

    def put_step_override(self, assessment_id: int, step_id: int, level: int) -> Optional[StepScore]:
        """Upsert a manual step level; level 0 deletes the row."""
        if level == 0:
            sql = f"DELETE FROM {self.STEP_TABLE} WHERE ASSESSMENT_ID = %s AND STEP_ID = %s"
            self.execute_query(sql, (assessment_id, step_id), commit=True)
            return None

        sql = f"""
            MERGE INTO {self.STEP_TABLE} t
            USING (SELECT %s AS ASSESSMENT_ID, %s AS STEP_ID, %s AS LEVEL) s
            ON t.ASSESSMENT_ID = s.ASSESSMENT_ID AND t.STEP_ID = s.STEP_ID
            WHEN MATCHED THEN UPDATE SET LEVEL = s.LEVEL, UPDATED_AT = CURRENT_TIMESTAMP()
            WHEN NOT MATCHED THEN INSERT (ASSESSMENT_ID, STEP_ID, LEVEL, UPDATED_AT)
                VALUES (s.ASSESSMENT_ID, s.STEP_ID, s.LEVEL, CURRENT_TIMESTAMP())
        """
        self.execute_query(sql, (assessment_id, step_id, level), commit=True)
        return StepScore(assessment_id=assessment_id, step_id=step_id, level=level)

    def get_step_overrides(self, assessment_id: int) -> List[StepScore]:
        sql = f"""
            SELECT ASSESSMENT_ID, STEP_ID, LEVEL
            FROM {self.STEP_TABLE}
            WHERE ASSESSMENT_ID = %s
            ORDER BY STEP_ID
        """
        rows = self.execute_query(sql, (assessment_id,), fetch_all=True) or []
        return [StepScore(**self._step_row(row)) for row in rows]

    def _step_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        data = self.row_to_dict(row)
        data["level"] = int(data["level"])
        return data
