"""Facade for dataset creation.

Wires together all layers: creates the SQLite database, identifier
provider, dataset-type registry, vocabulary registrar, search index
and version preparer from Settings, and runs the creation pipeline
in a fresh unit of work per call. Provides lazy-initialized
properties.
"""

import threading
from typing import TYPE_CHECKING, Optional

from rdrepo.config import Settings
from rdrepo.domain.entities.dataset_type import DEFAULT_DATASET_TYPE
from rdrepo.domain.exceptions import EntityNotFoundError
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.app.creation.pipeline import CreationPipeline
    from rdrepo.app.creation.variants import CreationVariant
    from rdrepo.app.factory.datafile_factory import DataFileFactory
    from rdrepo.app.factory.dataset_factory import DatasetFactory
    from rdrepo.app.version_preparer import VersionPreparer
    from rdrepo.data.adapters.fake_pid_provider import FakeDOIProvider
    from rdrepo.data.adapters.search_index import (
        IndexService,
        SearchBackend,
    )
    from rdrepo.data.adapters.sqlite_dataset_type_registry import (
        SQLiteDatasetTypeRegistry,
    )
    from rdrepo.data.adapters.vocabulary_registrar import (
        ControlledVocabularyRegistrar,
        Resolver,
    )
    from rdrepo.data.persistence_sqlite import (
        SQLiteDatabase,
        SQLitePersistenceContext,
    )
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.entities.user import CommandRequest

logger = logger.getChild(__name__)


class RepositoryManager:
    """Facade for dataset creation.

    All collaborators are lazy-initialized from the settings, under a
    lock so that concurrent first calls share one instance of each.

    Attributes:
        _settings: Runtime settings.
        _search_backend: Backend for the index service; an in-memory
                         backend is created if None.
        _vocabulary_resolvers: "block.field" -> term resolver.
        _lock: Guards lazy initialization and close.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        search_backend: Optional["SearchBackend"] = None,
        vocabulary_resolvers: Optional[dict[str, "Resolver"]] = None,
    ) -> None:
        """Initialize with settings and optional collaborators.

        Args:
            settings: Runtime settings; defaults to Settings().
            search_backend: Document store of the search index.
            vocabulary_resolvers: Resolvers for externally controlled
                                  fields.
        """
        self._settings = settings or Settings()
        self._search_backend = search_backend
        self._vocabulary_resolvers = dict(vocabulary_resolvers or {})
        self._lock = threading.RLock()
        self._database: Optional["SQLiteDatabase"] = None
        self._pid_provider: Optional["FakeDOIProvider"] = None
        self._dataset_type_registry: Optional[
            "SQLiteDatasetTypeRegistry"
        ] = None
        self._vocabulary_registrar: Optional[
            "ControlledVocabularyRegistrar"
        ] = None
        self._index_service: Optional["IndexService"] = None
        self._version_preparer: Optional["VersionPreparer"] = None
        self._dataset_factory: Optional["DatasetFactory"] = None
        self._datafile_factory: Optional["DataFileFactory"] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def database(self) -> "SQLiteDatabase":
        """Lazy-initialize the SQLite database."""
        with self._lock:
            if self._database is None:
                from rdrepo.data.persistence_sqlite import SQLiteDatabase

                self._database = SQLiteDatabase(self._settings.db_path)
            return self._database

    @property
    def pid_provider(self) -> "FakeDOIProvider":
        """Lazy-initialize the identifier provider."""
        with self._lock:
            if self._pid_provider is None:
                from rdrepo.data.adapters.fake_pid_provider import (
                    FakeDOIProvider,
                )

                self._pid_provider = FakeDOIProvider(
                    authority=self._settings.pid_authority,
                    shoulder=self._settings.pid_shoulder,
                    identifier_exists=self.database.identifier_exists,
                    register_when_published=(
                        self._settings.register_when_published
                    ),
                )
            return self._pid_provider

    @property
    def dataset_type_registry(self) -> "SQLiteDatasetTypeRegistry":
        """Lazy-initialize the registry, seeded with the default type."""
        with self._lock:
            if self._dataset_type_registry is None:
                from rdrepo.data.adapters.sqlite_dataset_type_registry import (
                    SQLiteDatasetTypeRegistry,
                )

                registry = SQLiteDatasetTypeRegistry(self.database)
                registry.add(DEFAULT_DATASET_TYPE)
                self._dataset_type_registry = registry
            return self._dataset_type_registry

    @property
    def vocabulary_registrar(self) -> "ControlledVocabularyRegistrar":
        """Lazy-initialize the vocabulary registrar."""
        with self._lock:
            if self._vocabulary_registrar is None:
                from rdrepo.data.adapters.vocabulary_registrar import (
                    ControlledVocabularyRegistrar,
                )

                self._vocabulary_registrar = ControlledVocabularyRegistrar(
                    self._vocabulary_resolvers
                )
            return self._vocabulary_registrar

    @property
    def index_service(self) -> "IndexService":
        """Lazy-initialize the index service."""
        with self._lock:
            if self._index_service is None:
                from rdrepo.data.adapters.search_index import (
                    IndexService,
                    InMemorySearchBackend,
                )

                if self._search_backend is None:
                    self._search_backend = InMemorySearchBackend()
                self._index_service = IndexService(
                    self._search_backend,
                    max_workers=self._settings.index_workers,
                )
            return self._index_service

    @property
    def version_preparer(self) -> "VersionPreparer":
        """Lazy-initialize the version preparer."""
        with self._lock:
            if self._version_preparer is None:
                from rdrepo.app.version_preparer import VersionPreparer

                self._version_preparer = VersionPreparer(
                    default_terms=self._settings.default_terms,
                    required_fields=self._settings.required_fields,
                )
            return self._version_preparer

    @property
    def dataset_factory(self) -> "DatasetFactory":
        """Lazy-initialize the DatasetFactory."""
        with self._lock:
            if self._dataset_factory is None:
                from rdrepo.app.factory.dataset_factory import DatasetFactory

                self._dataset_factory = DatasetFactory()
            return self._dataset_factory

    @property
    def datafile_factory(self) -> "DataFileFactory":
        """Lazy-initialize the DataFileFactory."""
        with self._lock:
            if self._datafile_factory is None:
                from rdrepo.app.factory.datafile_factory import (
                    DataFileFactory,
                )

                self._datafile_factory = DataFileFactory(
                    self._settings.storage_driver
                )
            return self._datafile_factory

    def new_persistence_context(self) -> "SQLitePersistenceContext":
        """Open a unit of work on the database."""
        from rdrepo.data.persistence_sqlite import SQLitePersistenceContext

        return SQLitePersistenceContext(self.database)

    def build_pipeline(
        self,
        persistence: "SQLitePersistenceContext",
        variant: "CreationVariant",
    ) -> "CreationPipeline":
        """Build a creation pipeline bound to one unit of work.

        Args:
            persistence: Unit of work the dataset is written to.
            variant: Hooks and PID handler of the creation flow.

        Returns:
            Pipeline ready for a single ``create`` call.
        """
        from rdrepo.app.creation.pipeline import CreationPipeline
        from rdrepo.data.adapters.role_owner_association import (
            RoleOwnerAssociation,
        )
        from rdrepo.domain.services.system_metadata import (
            SystemMetadataKeyPolicy,
        )

        return CreationPipeline(
            pid_provider=self.pid_provider,
            version_preparer=self.version_preparer,
            vocabulary_registrar=self.vocabulary_registrar,
            dataset_type_registry=self.dataset_type_registry,
            persistence=persistence,
            index=self.index_service,
            owner_association=RoleOwnerAssociation(persistence),
            pid_handler=variant.pid_handler,
            hooks=variant.hooks,
            metadata_key_policy=SystemMetadataKeyPolicy(
                self._settings.system_metadata_keys
            ),
            default_driver_id=self._settings.storage_driver,
        )

    def create_dataset(
        self,
        dataset: "Dataset",
        request: "CommandRequest",
        harvested: bool = False,
        validate: bool = True,
        variant: Optional["CreationVariant"] = None,
    ) -> "Dataset":
        """Create a dataset in its own transaction.

        Commits on success. Any failure rolls the unit of work back
        and propagates.

        Args:
            dataset: Dataset to create.
            request: Request of the creating user.
            harvested: Dataset comes from a harvesting client.
            validate: Check required metadata of the version.
            variant: Creation flow; defaults to the harvest variant
                     when ``harvested`` and the interactive variant
                     otherwise.

        Returns:
            The committed dataset with its id set.

        Raises:
            CommandError: If creation fails.
        """
        from rdrepo.app.creation.variants import (
            harvest_variant,
            interactive_variant,
        )

        if variant is None:
            variant = harvest_variant() if harvested else interactive_variant()
        persistence = self.new_persistence_context()
        pipeline = self.build_pipeline(persistence, variant)
        logger.debug("creating dataset with %s variant", variant.name)
        try:
            created = pipeline.create(dataset, request, harvested, validate)
            persistence.commit()
        except Exception:
            persistence.rollback()
            raise
        return created

    def find_dataset(self, id: int) -> Optional["Dataset"]:
        """Load a committed dataset by id."""
        return self.new_persistence_context().find_dataset(id)

    def get_dataset(self, id: int) -> "Dataset":
        """Load a committed dataset by id.

        Raises:
            EntityNotFoundError: If no dataset has this id.
        """
        dataset = self.find_dataset(id)
        if dataset is None:
            raise EntityNotFoundError("Dataset", str(id))
        return dataset

    def close(self) -> None:
        """Release all held resources."""
        with self._lock:
            if self._index_service is not None:
                self._index_service.shutdown(wait=True)
                self._index_service = None
            if self._database is not None:
                self._database.close()
                self._database = None
            self._pid_provider = None
            self._dataset_type_registry = None
            self._vocabulary_registrar = None
            self._version_preparer = None
            self._dataset_factory = None
            self._datafile_factory = None
