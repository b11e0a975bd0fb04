"""Data Access Layer for DataFile persistence operations."""

import sqlite3
from typing import Any


class DataFileDAL:
    """Executes SQL for DataFile operations.

    Attributes:
        _conn: Shared SQLite connection (managed by SQLiteDatabase).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert(self, data: dict[str, Any]) -> int:
        """Insert a datafile record and return its generated id."""
        cur = self._conn.execute(
            """
            INSERT INTO datafiles (
                dataset_id, label, content_type, checksum,
                checksum_type, filesize, storage_identifier,
                creator, create_date
            ) VALUES (
                :dataset_id, :label, :content_type, :checksum,
                :checksum_type, :filesize, :storage_identifier,
                :creator, :create_date
            )
            """,
            data,
        )
        return cur.lastrowid

    def list_for_dataset(self, dataset_id: int) -> list[dict[str, Any]]:
        """List the files of a dataset in insertion order."""
        cur = self._conn.execute(
            "SELECT * FROM datafiles WHERE dataset_id = ? ORDER BY id",
            (dataset_id,),
        )
        return [dict(row) for row in cur.fetchall()]
