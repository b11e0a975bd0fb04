"""Data Access Layer for DatasetType lookups."""

import sqlite3
from typing import Any, Optional


class DatasetTypeDAL:
    """Executes SQL for DatasetType operations.

    Attributes:
        _conn: Shared SQLite connection (managed by SQLiteDatabase).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def ensure(self, name: str) -> int:
        """Insert a dataset type if missing and return its id."""
        self._conn.execute(
            "INSERT OR IGNORE INTO dataset_types (name) VALUES (?)",
            (name,),
        )
        return self.get_by_name(name)["id"]

    def get_by_name(self, name: str) -> Optional[dict[str, Any]]:
        """Retrieve a dataset type by name, or None."""
        cur = self._conn.execute(
            "SELECT * FROM dataset_types WHERE name = ?", (name,)
        )
        row = cur.fetchone()
        return dict(row) if row else None
