"""
Base Repository - Sales Coaching Assessment
salescoach/repositories/base.py

Shared Snowflake plumbing for the rubric, score and assessment repositories:
one connection per statement, DictCursor rows with UPPERCASE keys, and
connector errors translated into the RepositoryException family so the
session layer never sees snowflake.connector types.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from snowflake.connector import DictCursor
from snowflake.connector.errors import DatabaseError, InterfaceError, ProgrammingError

from salescoach.core.exceptions import (
    DatabaseConnectionException,
    DuplicateEntityException,
    ForeignKeyViolationException,
    RepositoryException,
)
from salescoach.services.snowflake import get_snowflake_connection

# Substrings of ProgrammingError messages -> exception raised instead
CONSTRAINT_ERRORS: Tuple[Tuple[Tuple[str, ...], type], ...] = (
    (("UNIQUE", "DUPLICATE"), DuplicateEntityException),
    (("FOREIGN KEY",), ForeignKeyViolationException),
)


class BaseRepository:
    """Snowflake access shared by all coaching repositories."""

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        try:
            conn = get_snowflake_connection()
        except InterfaceError as e:
            raise DatabaseConnectionException(f"Snowflake unreachable: {e}")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Iterator[Any]:
        """Cursor on a fresh connection; both are closed on exit."""
        with self.get_connection() as conn:
            cursor = conn.cursor(DictCursor) if dict_cursor else conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        sql: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
    ) -> Optional[Any]:
        """
        Run one statement.

        Returns:
            The first row (fetch_one), every row (fetch_all) or the affected
            row count
        """
        def run(cursor):
            cursor.execute(sql, params or ())
            if commit:
                cursor.connection.commit()
            if fetch_one:
                return cursor.fetchone()
            if fetch_all:
                return cursor.fetchall()
            return cursor.rowcount

        return self._guarded(run)

    def execute_many(self, sql: str, rows: Sequence[tuple]) -> int:
        """Bulk insert in one transaction; an empty batch never opens a connection."""
        if not rows:
            return 0

        def run(cursor):
            cursor.executemany(sql, list(rows))
            cursor.connection.commit()
            return cursor.rowcount

        return self._guarded(run, dict_cursor=False)

    def _guarded(self, run: Callable[[Any], Any], dict_cursor: bool = True) -> Any:
        with self.get_cursor(dict_cursor=dict_cursor) as cursor:
            try:
                return run(cursor)
            except ProgrammingError as e:
                self._raise_mapped(e)
            except DatabaseError as e:
                raise RepositoryException(f"Snowflake error: {e}")

    @staticmethod
    def _raise_mapped(error: ProgrammingError) -> None:
        message = str(error)
        upper = message.upper()
        for markers, exc_class in CONSTRAINT_ERRORS:
            if any(marker in upper for marker in markers):
                raise exc_class(message)
        raise RepositoryException(f"Statement rejected: {message}")

    def normalize_timestamp(self, value: Optional[datetime]) -> Optional[datetime]:
        """Snowflake TIMESTAMP_NTZ comes back naive; treat it as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def row_to_dict(self, row: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """UPPERCASE column names -> model field names."""
        return {key.lower(): value for key, value in (row or {}).items()}

    def build_update_query(
        self,
        table_name: str,
        update_data: Dict[str, Any],
        where_column: str,
        where_value: Any,
    ) -> Tuple[str, List[Any]]:
        """UPDATE statement for the given fields; returns (sql, params)."""
        assignments = ", ".join(f"{column.upper()} = %s" for column in update_data)
        sql = f"UPDATE {table_name} SET {assignments} WHERE {where_column} = %s"
        return sql, [*update_data.values(), where_value]
