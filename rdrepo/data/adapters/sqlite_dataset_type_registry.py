"""DatasetTypeRegistry backed by the repository's SQLite database."""

from typing import TYPE_CHECKING, Optional

from rdrepo.domain.entities.dataset_type import DatasetType

if TYPE_CHECKING:
    from rdrepo.data.persistence_sqlite import SQLiteDatabase


class SQLiteDatasetTypeRegistry:
    """Looks up and registers dataset types.

    Attributes:
        _db: Shared SQLite database.
    """

    def __init__(self, database: "SQLiteDatabase") -> None:
        self._db = database

    def add(self, name: str) -> DatasetType:
        """Register a dataset type, returning the stored type."""
        with self._db.lock:
            type_id = self._db.dataset_type_dal.ensure(name)
        return DatasetType(name=name, id=type_id)

    def get_by_name(self, name: str) -> Optional[DatasetType]:
        with self._db.lock:
            row = self._db.dataset_type_dal.get_by_name(name)
        if row is None:
            return None
        return DatasetType(name=row["name"], id=row["id"])
