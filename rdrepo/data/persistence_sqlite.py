"""Concrete PersistenceContext backed by SQLite.

SQLiteDatabase owns the shared connection, schema and write lock.
SQLitePersistenceContext is a unit of work over it: inserts are
buffered until flush, flush writes the aggregate graph inside an
explicit transaction and assigns generated ids, commit and rollback
end the transaction. The write lock is held from the first flush
until commit or rollback, so concurrent units of work serialize
their write sets.
"""

import json
import sqlite3
import threading
from datetime import datetime
from typing import Optional, TypeVar

from rdrepo.data.dal.datafile_dal import DataFileDAL
from rdrepo.data.dal.dataset_dal import DatasetDAL
from rdrepo.data.dal.dataset_type_dal import DatasetTypeDAL
from rdrepo.data.dal.dataversion_dal import DatasetVersionDAL
from rdrepo.data.dal.role_assignment_dal import RoleAssignmentDAL
from rdrepo.data.schema import SCHEMA_DDL
from rdrepo.domain.entities.datafile import DataFile
from rdrepo.domain.entities.dataset import Dataset
from rdrepo.domain.entities.dataset_type import DatasetType
from rdrepo.domain.entities.dataversion import DatasetVersion, FileMetadata
from rdrepo.domain.entities.persistence import PersistenceContext
from rdrepo.domain.entities.role_assignment import RoleAssignment
from rdrepo.domain.entities.user import AuthenticatedUser
from rdrepo.domain.enums import VersionState
from rdrepo.domain.exceptions import PersistenceError
from rdrepo.log import logger

logger = logger.getChild(__name__)

T = TypeVar("T")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _user_id(user: Optional[AuthenticatedUser]) -> Optional[str]:
    return user.identifier if user is not None else None


class SQLiteDatabase:
    """Shared SQLite connection with schema and write lock.

    Attributes:
        _db_path: Path to SQLite database file (or ':memory:').
        _conn: Lazy-initialized SQLite connection.
        lock: Re-entrant lock serializing transactions and reads.
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize with database path.

        Args:
            db_path: Path to SQLite database file.
                     Use ':memory:' for in-memory testing.
        """
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._dataset_dal: Optional[DatasetDAL] = None
        self._datafile_dal: Optional[DataFileDAL] = None
        self._dataversion_dal: Optional[DatasetVersionDAL] = None
        self._dataset_type_dal: Optional[DatasetTypeDAL] = None
        self._role_assignment_dal: Optional[RoleAssignmentDAL] = None
        self.lock = threading.RLock()

    @property
    def conn(self) -> sqlite3.Connection:
        """Lazy-initialize and return the database connection.

        The connection runs in autocommit mode; units of work issue
        BEGIN/COMMIT/ROLLBACK explicitly.

        Returns:
            Active SQLite connection with foreign keys enabled.
        """
        with self.lock:
            if self._conn is None:
                self._conn = sqlite3.connect(
                    self._db_path,
                    check_same_thread=False,
                    isolation_level=None,
                )
                self._conn.row_factory = sqlite3.Row
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute("PRAGMA foreign_keys=ON")
                self._conn.executescript(SCHEMA_DDL)
                self._dataset_dal = DatasetDAL(self._conn)
                self._datafile_dal = DataFileDAL(self._conn)
                self._dataversion_dal = DatasetVersionDAL(self._conn)
                self._dataset_type_dal = DatasetTypeDAL(self._conn)
                self._role_assignment_dal = RoleAssignmentDAL(self._conn)
            return self._conn

    @property
    def dataset_dal(self) -> DatasetDAL:
        """Access the Dataset DAL (triggers connection if needed)."""
        self.conn  # ensure initialized
        return self._dataset_dal

    @property
    def datafile_dal(self) -> DataFileDAL:
        """Access the DataFile DAL (triggers connection if needed)."""
        self.conn  # ensure initialized
        return self._datafile_dal

    @property
    def dataversion_dal(self) -> DatasetVersionDAL:
        """Access the DatasetVersion DAL (triggers connection if needed)."""
        self.conn  # ensure initialized
        return self._dataversion_dal

    @property
    def dataset_type_dal(self) -> DatasetTypeDAL:
        """Access the DatasetType DAL (triggers connection if needed)."""
        self.conn  # ensure initialized
        return self._dataset_type_dal

    @property
    def role_assignment_dal(self) -> RoleAssignmentDAL:
        """Access the RoleAssignment DAL (triggers connection if needed)."""
        self.conn  # ensure initialized
        return self._role_assignment_dal

    def identifier_exists(self, authority: str, identifier: str) -> bool:
        """Check whether an identifier is taken within an authority."""
        with self.lock:
            return self.dataset_dal.exists_identifier(authority, identifier)

    def list_role_assignments(self, dataset_id: int) -> list[RoleAssignment]:
        """Return the role assignments granted on a committed dataset.

        The returned assignments reference a placeholder Dataset
        carrying only the id.
        """
        with self.lock:
            rows = self.role_assignment_dal.list_for_dataset(dataset_id)
        placeholder = Dataset(id=dataset_id)
        return [
            RoleAssignment(
                id=row["id"],
                assignee=row["assignee"],
                role=row["role"],
                dataset=placeholder,
            )
            for row in rows
        ]

    def close(self) -> None:
        """Close the database connection."""
        with self.lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._dataset_dal = None
                self._datafile_dal = None
                self._dataversion_dal = None
                self._dataset_type_dal = None
                self._role_assignment_dal = None


class SQLitePersistenceContext(PersistenceContext):
    """Unit of work writing dataset aggregates to a SQLiteDatabase.

    Attributes:
        _db: Shared database.
        _pending: Entities inserted but not yet flushed, in order.
        _managed: Entities known to this context.
        _assigned: Entities that received an id in this transaction.
        _in_transaction: Whether BEGIN was issued and the lock held.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database
        self._pending: list[object] = []
        self._managed: list[object] = []
        self._assigned: list[object] = []
        self._in_transaction = False

    def __enter__(self) -> "SQLitePersistenceContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def is_managed(self, entity: object) -> bool:
        return any(e is entity for e in self._managed)

    # ── Unit of work ──────────────────────────────────────────

    def insert(self, entity: object) -> None:
        if self.is_managed(entity):
            return
        if not isinstance(entity, (Dataset, RoleAssignment)):
            raise PersistenceError(
                f"Cannot insert {type(entity).__name__}; only Dataset "
                "and RoleAssignment are aggregate roots"
            )
        self._pending.append(entity)
        self._managed.append(entity)

    def merge(self, entity: T) -> T:
        if self.is_managed(entity):
            return entity
        if getattr(entity, "id", None) is None:
            self.insert(entity)
        else:
            self._managed.append(entity)
        return entity

    def flush(self) -> None:
        self._begin()
        try:
            while self._pending:
                entity = self._pending[0]
                if isinstance(entity, Dataset):
                    self._write_dataset(entity)
                else:
                    self._write_role_assignment(entity)
                self._pending.pop(0)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Flush failed: {exc}") from exc

    def commit(self) -> None:
        if self._pending:
            self.flush()
        if not self._in_transaction:
            return
        try:
            self._db.conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise PersistenceError(f"Commit failed: {exc}") from exc
        finally:
            self._end()
        self._assigned = []

    def rollback(self) -> None:
        if self._in_transaction:
            try:
                self._db.conn.execute("ROLLBACK")
            finally:
                self._end()
        for entity in self._assigned:
            entity.id = None
        self._assigned = []
        self._pending = []
        self._managed = []

    def _begin(self) -> None:
        if self._in_transaction:
            return
        self._db.lock.acquire()
        try:
            self._db.conn.execute("BEGIN")
        except sqlite3.Error as exc:
            self._db.lock.release()
            raise PersistenceError(f"Cannot begin transaction: {exc}") from exc
        self._in_transaction = True

    def _end(self) -> None:
        self._in_transaction = False
        self._db.lock.release()

    def _assign(self, entity: object, id: int) -> None:
        entity.id = id
        self._assigned.append(entity)

    # ── Writers ───────────────────────────────────────────────

    def _write_dataset(self, dataset: Dataset) -> None:
        dataset_id = self._db.dataset_dal.insert(
            self._dataset_to_dict(dataset)
        )
        self._assign(dataset, dataset_id)
        for datafile in dataset.files:
            file_id = self._db.datafile_dal.insert(
                self._datafile_to_dict(datafile, dataset_id)
            )
            self._assign(datafile, file_id)
        for version in dataset.versions:
            version_id = self._db.dataversion_dal.insert(
                self._dataversion_to_dict(version, dataset_id)
            )
            self._assign(version, version_id)
            for fm in version.file_metadatas:
                if fm.datafile.id is None:
                    raise PersistenceError(
                        f"File '{fm.label or fm.datafile.label}' is not "
                        "part of the dataset being written"
                    )
                fm_id = self._db.dataversion_dal.insert_file_metadata(
                    {
                        "datasetversion_id": version_id,
                        "datafile_id": fm.datafile.id,
                        "label": fm.label,
                        "directory_label": fm.directory_label,
                        "description": fm.description,
                    }
                )
                self._assign(fm, fm_id)
        logger.debug("wrote dataset %s as id %d", dataset.global_id, dataset_id)

    def _write_role_assignment(self, assignment: RoleAssignment) -> None:
        if assignment.dataset.id is None:
            raise PersistenceError(
                "Role assignment refers to a dataset without an id"
            )
        assignment_id = self._db.role_assignment_dal.insert(
            {
                "dataset_id": assignment.dataset.id,
                "assignee": assignment.assignee,
                "role": assignment.role,
            }
        )
        self._assign(assignment, assignment_id)

    # ── Queries ───────────────────────────────────────────────

    def global_id_exists(self, global_id) -> bool:
        with self._db.lock:
            return self._db.dataset_dal.exists_global_id(
                global_id.protocol, global_id.authority, global_id.identifier
            )

    def find_dataset(self, id: int) -> Optional[Dataset]:
        with self._db.lock:
            data = self._db.dataset_dal.get(id)
            if data is None:
                return None
            files = self._db.datafile_dal.list_for_dataset(id)
            versions = self._db.dataversion_dal.list_for_dataset(id)
            fm_rows = {
                v["id"]: self._db.dataversion_dal.list_file_metadatas(v["id"])
                for v in versions
            }
            type_row = self._db.dataset_type_dal.get_by_name(
                data["dataset_type"]
            )
        return self._dataset_from_dict(data, files, versions, fm_rows, type_row)

    # ── Serialization helpers ─────────────────────────────────

    def _dataset_to_dict(self, dataset: Dataset) -> dict:
        """Convert Dataset entity to persistence dictionary."""
        return {
            "protocol": dataset.protocol,
            "authority": dataset.authority,
            "identifier": dataset.identifier,
            "storage_identifier": dataset.storage_identifier,
            "dataset_type": (
                dataset.dataset_type.name if dataset.dataset_type else None
            ),
            "owner": dataset.owner,
            "harvested_from": dataset.harvested_from,
            "identifier_registered": int(dataset.identifier_registered),
            "global_id_create_time": _iso(dataset.global_id_create_time),
            "creator": _user_id(dataset.creator),
            "create_date": _iso(dataset.create_date),
            "modification_time": _iso(dataset.modification_time),
        }

    def _datafile_to_dict(self, datafile: DataFile, dataset_id: int) -> dict:
        """Convert DataFile entity to persistence dictionary."""
        return {
            "dataset_id": dataset_id,
            "label": datafile.label,
            "content_type": datafile.content_type,
            "checksum": datafile.checksum,
            "checksum_type": datafile.checksum_type,
            "filesize": datafile.filesize,
            "storage_identifier": datafile.storage_identifier,
            "creator": _user_id(datafile.creator),
            "create_date": _iso(datafile.create_date),
        }

    def _dataversion_to_dict(
        self, version: DatasetVersion, dataset_id: int
    ) -> dict:
        """Convert DatasetVersion entity to persistence dictionary."""
        return {
            "dataset_id": dataset_id,
            "version_state": version.version_state.value,
            "version_number": version.version_number,
            "minor_version_number": version.minor_version_number,
            "metadata": json.dumps(version.metadata),
            "terms_of_use": version.terms_of_use,
            "create_time": _iso(version.create_time),
            "last_update_time": _iso(version.last_update_time),
        }

    def _dataset_from_dict(
        self,
        data: dict,
        file_rows: list[dict],
        version_rows: list[dict],
        fm_rows: dict[int, list[dict]],
        type_row: Optional[dict],
    ) -> Dataset:
        """Reconstruct a Dataset aggregate from persistence rows."""
        dataset = Dataset(
            id=data["id"],
            protocol=data["protocol"],
            authority=data["authority"],
            identifier=data["identifier"],
            storage_identifier=data["storage_identifier"],
            dataset_type=(
                DatasetType(name=type_row["name"], id=type_row["id"])
                if type_row
                else None
            ),
            owner=data["owner"],
            harvested_from=data["harvested_from"],
            identifier_registered=bool(data["identifier_registered"]),
            global_id_create_time=_from_iso(data["global_id_create_time"]),
            creator=AuthenticatedUser(data["creator"]),
            create_date=_from_iso(data["create_date"]),
            modification_time=_from_iso(data["modification_time"]),
        )
        files_by_id = {}
        for row in file_rows:
            datafile = DataFile(
                id=row["id"],
                label=row["label"],
                content_type=row["content_type"],
                checksum=row["checksum"],
                checksum_type=row["checksum_type"],
                filesize=row["filesize"],
                storage_identifier=row["storage_identifier"],
                creator=AuthenticatedUser(row["creator"]),
                create_date=_from_iso(row["create_date"]),
            )
            files_by_id[datafile.id] = datafile
            dataset.files.append(datafile)
        for row in version_rows:
            version = DatasetVersion(
                id=row["id"],
                dataset=dataset,
                version_state=VersionState(row["version_state"]),
                version_number=row["version_number"],
                minor_version_number=row["minor_version_number"],
                metadata=json.loads(row["metadata"]),
                terms_of_use=row["terms_of_use"],
                create_time=_from_iso(row["create_time"]),
                last_update_time=_from_iso(row["last_update_time"]),
            )
            version.file_metadatas = [
                FileMetadata(
                    id=fm["id"],
                    datafile=files_by_id[fm["datafile_id"]],
                    label=fm["label"],
                    directory_label=fm["directory_label"],
                    description=fm["description"],
                )
                for fm in fm_rows.get(row["id"], [])
            ]
            dataset.versions.append(version)
        return dataset
