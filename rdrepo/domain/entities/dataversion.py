from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from rdrepo.domain.enums import VersionState

if TYPE_CHECKING:
    from rdrepo.domain.entities.datafile import DataFile
    from rdrepo.domain.entities.dataset import Dataset


@dataclass(eq=False)
class FileMetadata:
    """Association of a DataFile with a DatasetVersion.

    Attributes:
        datafile: The associated file.
        label: File name within this version.
        directory_label: Folder path within this version.
        description: Version-specific file description.
        id: Database identity, None until flush.
    """

    datafile: "DataFile"
    label: str = ""
    directory_label: str = ""
    description: str = ""
    id: Optional[int] = None


@dataclass(eq=False)
class DatasetVersion:
    """A version of a dataset's metadata and file associations.

    Attributes:
        dataset: Parent dataset.
        version_state: Lifecycle state (DRAFT for a new dataset).
        version_number: Major number, None while a draft.
        minor_version_number: Minor number, None while a draft.
        metadata: Metadata block name -> {field name -> value}.
        terms_of_use: License or terms text.
        file_metadatas: File associations of this version.
        create_time: When this version was created.
        last_update_time: When this version was last modified.
        id: Database identity, None until flush.
    """

    dataset: Optional["Dataset"] = field(default=None, repr=False)
    version_state: VersionState = VersionState.DRAFT
    version_number: Optional[int] = None
    minor_version_number: Optional[int] = None
    metadata: dict[str, dict[str, Any]] = field(default_factory=dict)
    terms_of_use: Optional[str] = None
    file_metadatas: list[FileMetadata] = field(default_factory=list)
    create_time: Optional[datetime] = None
    last_update_time: Optional[datetime] = None
    id: Optional[int] = None

    def get_field(self, block: str, name: str) -> Any:
        """Return a metadata field value, or None if unset."""
        return self.metadata.get(block, {}).get(name)

    @property
    def title(self) -> Optional[str]:
        return self.get_field("citation", "title")

    @property
    def datafiles(self) -> list["DataFile"]:
        return [fm.datafile for fm in self.file_metadatas]
