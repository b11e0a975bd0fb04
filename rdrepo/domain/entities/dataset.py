from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from funcy import last

from rdrepo.domain.value_objects import GlobalId, for_file_storage

if TYPE_CHECKING:
    from rdrepo.domain.entities.datafile import DataFile
    from rdrepo.domain.entities.dataset_type import DatasetType
    from rdrepo.domain.entities.dataversion import DatasetVersion
    from rdrepo.domain.entities.user import AuthenticatedUser


@dataclass(eq=False)
class Dataset:
    """The aggregate root of a deposited dataset.

    Constructed by the caller with at least one version. Identity
    fields may arrive pre-filled (harvested or imported datasets);
    the creation pipeline fills the rest, stamps audit fields and
    hands the aggregate to the persistence context.

    Attributes:
        identifier: Persistent identifier within the authority.
        protocol: Naming scheme (e.g., "doi").
        authority: Naming authority (e.g., "10.5072").
        storage_identifier: Storage locator of the dataset's files.
        storage_driver_id: Storage driver override; the configured
                           default driver applies when None.
        dataset_type: Classification tag.
        owner: Alias of the collection the dataset is deposited in.
        harvested_from: Harvesting client name for harvested datasets.
        identifier_registered: Whether the PID is registered with the
                               naming authority.
        global_id_create_time: When the PID was registered.
        creator: User who created the dataset.
        create_date: When the dataset was created.
        modification_time: When the dataset was last modified.
        files: Files belonging to the dataset.
        versions: Versions of the dataset, oldest first.
        id: Database identity, None until flush.
    """

    identifier: Optional[str] = None
    protocol: Optional[str] = None
    authority: Optional[str] = None
    storage_identifier: Optional[str] = None
    storage_driver_id: Optional[str] = None
    dataset_type: Optional["DatasetType"] = None
    owner: str = "root"
    harvested_from: Optional[str] = None
    identifier_registered: bool = False
    global_id_create_time: Optional[datetime] = None
    creator: Optional["AuthenticatedUser"] = None
    create_date: Optional[datetime] = None
    modification_time: Optional[datetime] = None
    files: list["DataFile"] = field(default_factory=list)
    versions: list["DatasetVersion"] = field(
        default_factory=list, repr=False
    )
    id: Optional[int] = None

    @property
    def latest_version(self) -> Optional["DatasetVersion"]:
        """The most recently added version, or None."""
        return last(self.versions)

    @property
    def global_id(self) -> Optional[GlobalId]:
        """The persistent identifier, once all its parts are set."""
        if not (self.protocol and self.authority and self.identifier):
            return None
        return GlobalId(self.protocol, self.authority, self.identifier)

    @property
    def authority_for_file_storage(self) -> str:
        return for_file_storage(self.authority or "")

    @property
    def identifier_for_file_storage(self) -> str:
        return for_file_storage(self.identifier or "")

    @property
    def is_harvested(self) -> bool:
        return self.harvested_from is not None

    def effective_storage_driver_id(self, default: str) -> str:
        """Return the dataset's storage driver, or ``default``."""
        return self.storage_driver_id or default
