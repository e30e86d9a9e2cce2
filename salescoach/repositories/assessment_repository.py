"""
Assessment Repository - Sales Coaching Assessment
salescoach/repositories/assessment_repository.py

Data access layer for coaching session records.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from salescoach.core.exceptions import EntityNotFoundException, RepositoryException
from salescoach.models.assessment import Assessment, CoachingNotesUpdate
from salescoach.models.enumerations import AssessmentStatus
from salescoach.repositories.base import BaseRepository

_COLUMNS = """
    ID, TITLE, USER_ID, ASSESSEE_NAME, CONTEXT, KEY_OBSERVATIONS,
    WHAT_WORKED_WELL, WHAT_CAN_BE_IMPROVED, NEXT_STEPS, STATUS, CREATED_AT
"""


class AssessmentRepository(BaseRepository):
    """Repository for Assessment CRUD operations."""

    TABLE_NAME = "ASSESSMENTS"
    SEQUENCE_NAME = "ASSESSMENTS_ID_SEQ"

    def create(
        self,
        title: str,
        user_id: int,
        assessee_name: str,
        context: Optional[str] = None,
    ) -> Assessment:
        """
        Create a new assessment.

        Args:
            title: Session title
            user_id: Coach id
            assessee_name: Coachee name
            context: Optional assessment context

        Returns:
            Created assessment
        """
        row = self.execute_query(f"SELECT {self.SEQUENCE_NAME}.NEXTVAL AS ID", fetch_one=True)
        if not row:
            raise RepositoryException("Could not allocate assessment id")
        assessment_id = int(row["ID"])

        sql = f"""
            INSERT INTO {self.TABLE_NAME} (ID, TITLE, USER_ID, ASSESSEE_NAME, CONTEXT, STATUS, CREATED_AT)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            assessment_id,
            title,
            user_id,
            assessee_name,
            context,
            AssessmentStatus.DRAFT.value,
            datetime.now(timezone.utc),
        )
        self.execute_query(sql, params, commit=True)

        created = self.get_by_id(assessment_id)
        if created is None:
            raise EntityNotFoundException("Assessment", assessment_id)
        return created

    def get_by_id(self, assessment_id: int) -> Optional[Assessment]:
        sql = f"SELECT {_COLUMNS} FROM {self.TABLE_NAME} WHERE ID = %s"
        row = self.execute_query(sql, (assessment_id,), fetch_one=True)
        if not row:
            return None
        return self._row_to_model(row)

    def update(
        self,
        assessment_id: int,
        notes: CoachingNotesUpdate,
        status: Optional[AssessmentStatus] = None,
    ) -> Assessment:
        """
        Save coaching free-text fields (and optionally the status).

        Raises:
            EntityNotFoundException: unknown assessment id
        """
        if self.get_by_id(assessment_id) is None:
            raise EntityNotFoundException("Assessment", assessment_id)

        update_data: Dict[str, Any] = notes.model_dump(exclude_unset=True)
        if status is not None:
            update_data["status"] = status.value

        if update_data:
            sql, params = self.build_update_query(self.TABLE_NAME, update_data, "ID", assessment_id)
            self.execute_query(sql, tuple(params), commit=True)

        return self.get_by_id(assessment_id)

    def get_all(
        self,
        page: int = 1,
        page_size: int = 20,
        user_id: Optional[int] = None,
    ) -> Tuple[List[Assessment], int]:
        """
        Retrieve paginated coaching history, newest first.

        Returns:
            Tuple of (assessments, total count)
        """
        offset = (page - 1) * page_size

        where_clauses = ["1=1"]
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("USER_ID = %s")
            params.append(user_id)
        where_sql = " AND ".join(where_clauses)

        count_sql = f"SELECT COUNT(*) AS TOTAL FROM {self.TABLE_NAME} WHERE {where_sql}"
        count_result = self.execute_query(count_sql, tuple(params), fetch_one=True)
        total = count_result["TOTAL"] if count_result else 0

        data_sql = f"""
            SELECT {_COLUMNS}
            FROM {self.TABLE_NAME}
            WHERE {where_sql}
            ORDER BY CREATED_AT DESC, ID DESC
            LIMIT %s OFFSET %s
        """
        rows = self.execute_query(data_sql, tuple(params) + (page_size, offset), fetch_all=True) or []
        return [self._row_to_model(row) for row in rows], total

    def get_previous_for_coachee(self, assessee_name: str, exclude_id: int) -> Optional[Assessment]:
        """Most recent other assessment of the coachee, or None."""
        sql = f"""
            SELECT {_COLUMNS}
            FROM {self.TABLE_NAME}
            WHERE ASSESSEE_NAME = %s AND ID <> %s
            ORDER BY CREATED_AT DESC, ID DESC
            LIMIT 1
        """
        row = self.execute_query(sql, (assessee_name, exclude_id), fetch_one=True)
        if not row:
            return None
        return self._row_to_model(row)

    def _row_to_model(self, row: Dict[str, Any]) -> Assessment:
        data = self.row_to_dict(row)
        data["status"] = AssessmentStatus(data["status"])
        data["created_at"] = self.normalize_timestamp(data["created_at"])
        return Assessment(**data)
