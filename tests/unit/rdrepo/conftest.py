"""Shared fixtures for rdrepo unit tests."""

import random
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from rdrepo.data.adapters.fake_pid_provider import FakeDOIProvider
from rdrepo.data.adapters.sqlite_dataset_type_registry import (
    SQLiteDatasetTypeRegistry,
)
from rdrepo.data.persistence_sqlite import (
    SQLiteDatabase,
    SQLitePersistenceContext,
)
from rdrepo.domain.entities.datafile import DataFile
from rdrepo.domain.entities.dataset import Dataset
from rdrepo.domain.entities.dataset_type import (
    DEFAULT_DATASET_TYPE,
    DatasetType,
)
from rdrepo.domain.entities.dataversion import DatasetVersion, FileMetadata
from rdrepo.domain.entities.user import AuthenticatedUser, CommandRequest

FIXED_TIME = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ── Database Fixtures ─────────────────────────────────────────


@pytest.fixture
def database():
    """In-memory SQLiteDatabase for isolated tests.

    Yields:
        SQLiteDatabase connected to ':memory:' with the default
        dataset type registered. Automatically closed after test.
    """
    db = SQLiteDatabase(":memory:")
    SQLiteDatasetTypeRegistry(db).add(DEFAULT_DATASET_TYPE)
    yield db
    db.close()


@pytest.fixture
def persistence(database):
    """Unit of work over the in-memory database."""
    return SQLitePersistenceContext(database)


@pytest.fixture
def pid_provider():
    """Deterministic FakeDOIProvider.

    Returns:
        Provider with authority '10.5072' and a seeded generator.
    """
    return FakeDOIProvider(rng=random.Random(42))


# ── Mock Fixtures ─────────────────────────────────────────────


@pytest.fixture
def mock_pid_provider():
    """Mock PidProvider returning predictable values.

    get_protocol() returns "doi", get_authority() returns "10.5072",
    generate_identifier() sets identifier "FK2/MOCK01" on datasets
    without one, register_when_published() returns False.

    Returns:
        MagicMock conforming to PidProvider protocol.
    """
    mock = MagicMock()
    mock.get_protocol.return_value = "doi"
    mock.get_authority.return_value = "10.5072"
    mock.register_when_published.return_value = False
    mock.already_registered.return_value = False

    def generate(dataset):
        if not dataset.identifier:
            dataset.identifier = "FK2/MOCK01"

    mock.generate_identifier.side_effect = generate
    return mock


@pytest.fixture
def mock_index():
    """Mock IndexSynchronizer."""
    return MagicMock()


@pytest.fixture
def mock_persistence():
    """Mock PersistenceContext whose flush assigns id 1.

    merge() returns its argument; global_id_exists() returns False.

    Returns:
        MagicMock conforming to PersistenceContext.
    """
    mock = MagicMock()
    inserted = []
    mock.insert.side_effect = inserted.append
    mock.merge.side_effect = lambda entity: entity
    mock.global_id_exists.return_value = False

    def flush():
        for entity in inserted:
            if isinstance(entity, Dataset):
                entity.id = 1

    mock.flush.side_effect = flush
    return mock


# ── Sample Entity Fixtures ────────────────────────────────────


@pytest.fixture
def user():
    return AuthenticatedUser("jdoe", display_name="Jane Doe")


@pytest.fixture
def request_(user):
    """CommandRequest issued by the sample user."""
    return CommandRequest(user=user, source_address="127.0.0.1")


@pytest.fixture
def sample_file():
    return DataFile(
        label="data.csv",
        content_type="text/csv",
        checksum="d41d8cd98f00b204e9800998ecf8427e",
        filesize=1024,
    )


@pytest.fixture
def sample_dataset(sample_file):
    """A new Dataset with one titled draft version and one file.

    Returns:
        Dataset with no identity fields, owned by 'root'.
    """
    dataset = Dataset(files=[sample_file])
    version = DatasetVersion(
        dataset=dataset,
        metadata={"citation": {"title": "Rainfall 2024"}},
        file_metadatas=[FileMetadata(datafile=sample_file)],
    )
    dataset.versions.append(version)
    return dataset


@pytest.fixture
def software_type():
    return DatasetType(name="software")
