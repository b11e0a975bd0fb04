"""Data Access Layer for DatasetVersion persistence operations.

Covers versions and the file associations (file metadatas) each
version owns.
"""

import sqlite3
from typing import Any


class DatasetVersionDAL:
    """Executes SQL for DatasetVersion and FileMetadata operations.

    Attributes:
        _conn: Shared SQLite connection (managed by SQLiteDatabase).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert(self, data: dict[str, Any]) -> int:
        """Insert a datasetversion record and return its generated id."""
        cur = self._conn.execute(
            """
            INSERT INTO datasetversions (
                dataset_id, version_state, version_number,
                minor_version_number, metadata, terms_of_use,
                create_time, last_update_time
            ) VALUES (
                :dataset_id, :version_state, :version_number,
                :minor_version_number, :metadata, :terms_of_use,
                :create_time, :last_update_time
            )
            """,
            data,
        )
        return cur.lastrowid

    def insert_file_metadata(self, data: dict[str, Any]) -> int:
        """Insert a filemetadata record and return its generated id."""
        cur = self._conn.execute(
            """
            INSERT INTO filemetadatas (
                datasetversion_id, datafile_id, label,
                directory_label, description
            ) VALUES (
                :datasetversion_id, :datafile_id, :label,
                :directory_label, :description
            )
            """,
            data,
        )
        return cur.lastrowid

    def list_for_dataset(self, dataset_id: int) -> list[dict[str, Any]]:
        """List the versions of a dataset, oldest first."""
        cur = self._conn.execute(
            "SELECT * FROM datasetversions WHERE dataset_id = ? ORDER BY id",
            (dataset_id,),
        )
        return [dict(row) for row in cur.fetchall()]

    def list_file_metadatas(self, version_id: int) -> list[dict[str, Any]]:
        """List the file associations of a version."""
        cur = self._conn.execute(
            """
            SELECT * FROM filemetadatas
            WHERE datasetversion_id = ? ORDER BY id
            """,
            (version_id,),
        )
        return [dict(row) for row in cur.fetchall()]
