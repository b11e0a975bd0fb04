"""Data Access Layer for Dataset persistence operations.

Executes SQL against a SQLite connection to persist and retrieve
Dataset records. All methods operate on plain dictionaries to
keep the DAL decoupled from domain entity classes.
"""

import sqlite3
from typing import Any, Optional


class DatasetDAL:
    """Executes SQL for Dataset operations.

    Attributes:
        _conn: Shared SQLite connection (managed by SQLiteDatabase).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert(self, data: dict[str, Any]) -> int:
        """Insert a dataset record.

        Args:
            data: Dictionary with keys matching the datasets table
                  columns, without ``id``.

        Returns:
            The generated dataset id.
        """
        cur = self._conn.execute(
            """
            INSERT INTO datasets (
                protocol, authority, identifier, storage_identifier,
                dataset_type, owner, harvested_from,
                identifier_registered, global_id_create_time,
                creator, create_date, modification_time
            ) VALUES (
                :protocol, :authority, :identifier, :storage_identifier,
                :dataset_type, :owner, :harvested_from,
                :identifier_registered, :global_id_create_time,
                :creator, :create_date, :modification_time
            )
            """,
            data,
        )
        return cur.lastrowid

    def get(self, id: int) -> Optional[dict[str, Any]]:
        """Retrieve a dataset by id.

        Args:
            id: Dataset database identity.

        Returns:
            Dictionary of dataset fields, or None if not found.
        """
        cur = self._conn.execute(
            "SELECT * FROM datasets WHERE id = ?", (id,)
        )
        row = cur.fetchone()
        return dict(row) if row else None

    def exists_global_id(
        self, protocol: str, authority: str, identifier: str
    ) -> bool:
        """Check whether a dataset uses the given global id."""
        cur = self._conn.execute(
            """
            SELECT 1 FROM datasets
            WHERE protocol = ? AND authority = ? AND identifier = ?
            """,
            (protocol, authority, identifier),
        )
        return cur.fetchone() is not None

    def exists_identifier(self, authority: str, identifier: str) -> bool:
        """Check whether an identifier is taken within an authority."""
        cur = self._conn.execute(
            "SELECT 1 FROM datasets WHERE authority = ? AND identifier = ?",
            (authority, identifier),
        )
        return cur.fetchone() is not None
