"""Factory for creating DataFile entities."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rdrepo.domain.entities.datafile import DataFile


class DataFileFactory:
    """Factory for creating DataFile entities with storage defaults.

    Attributes:
        _storage_driver: Driver prefix for file storage identifiers.
    """

    def __init__(self, storage_driver: str = "file") -> None:
        """Initialize with a storage driver.

        Args:
            storage_driver: Driver id prefixed to storage identifiers.
        """
        self._storage_driver = storage_driver

    def create(
        self,
        label: str,
        content_type: str = "application/octet-stream",
        checksum: str = "",
        filesize: int = 0,
        storage_key: Optional[str] = None,
    ) -> "DataFile":
        """Create a new DataFile.

        Args:
            label: File name.
            content_type: MIME type.
            checksum: MD5 checksum of the content.
            filesize: Size in bytes.
            storage_key: Key of the uploaded bytes within the driver.

        Returns:
            New DataFile entity without audit fields.
        """
        from rdrepo.domain.entities.datafile import DataFile

        storage_identifier = None
        if storage_key:
            storage_identifier = f"{self._storage_driver}://{storage_key}"
        return DataFile(
            label=label,
            content_type=content_type,
            checksum=checksum,
            filesize=filesize,
            storage_identifier=storage_identifier,
        )
