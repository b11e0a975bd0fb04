"""Data Access Layer for RoleAssignment persistence operations."""

import sqlite3
from typing import Any


class RoleAssignmentDAL:
    """Executes SQL for RoleAssignment operations.

    Attributes:
        _conn: Shared SQLite connection (managed by SQLiteDatabase).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert(self, data: dict[str, Any]) -> int:
        """Insert a role assignment and return its generated id."""
        cur = self._conn.execute(
            """
            INSERT INTO role_assignments (dataset_id, assignee, role)
            VALUES (:dataset_id, :assignee, :role)
            """,
            data,
        )
        return cur.lastrowid

    def list_for_dataset(self, dataset_id: int) -> list[dict[str, Any]]:
        """List role assignments granted on a dataset."""
        cur = self._conn.execute(
            "SELECT * FROM role_assignments WHERE dataset_id = ? ORDER BY id",
            (dataset_id,),
        )
        return [dict(row) for row in cur.fetchall()]
