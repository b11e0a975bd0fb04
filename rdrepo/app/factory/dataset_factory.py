"""Factory for assembling new Dataset aggregates.

Builds a Dataset with one draft version whose file associations
cover every given file, ready to hand to the creation pipeline.
"""

from typing import TYPE_CHECKING, Any, Optional, Sequence

if TYPE_CHECKING:
    from rdrepo.domain.entities.datafile import DataFile
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.entities.dataset_type import DatasetType


class DatasetFactory:
    """Factory for creating Dataset aggregates.

    Attributes:
        _default_owner: Collection alias for datasets without one.
    """

    def __init__(self, default_owner: str = "root") -> None:
        """Initialize with a default owning collection.

        Args:
            default_owner: Collection alias new datasets belong to.
        """
        self._default_owner = default_owner

    def create(
        self,
        title: str,
        files: Sequence["DataFile"] = (),
        metadata: Optional[dict[str, dict[str, Any]]] = None,
        owner: Optional[str] = None,
        dataset_type: Optional["DatasetType"] = None,
        identifier: Optional[str] = None,
        harvested_from: Optional[str] = None,
    ) -> "Dataset":
        """Create a new Dataset with one draft version.

        Args:
            title: Citation title of the first version.
            files: Files attached to the dataset and its version.
            metadata: Additional metadata blocks; ``citation.title``
                      is always set from ``title``.
            owner: Owning collection alias.
            dataset_type: Pre-set dataset type.
            identifier: Pre-assigned identifier (imports, harvests).
            harvested_from: Harvesting client name.

        Returns:
            New Dataset entity with a single DatasetVersion.
        """
        from rdrepo.domain.entities.dataset import Dataset
        from rdrepo.domain.entities.dataversion import (
            DatasetVersion,
            FileMetadata,
        )

        blocks = {name: dict(values) for name, values in (metadata or {}).items()}
        blocks.setdefault("citation", {})["title"] = title

        dataset = Dataset(
            owner=owner or self._default_owner,
            dataset_type=dataset_type,
            identifier=identifier,
            harvested_from=harvested_from,
            files=list(files),
        )
        version = DatasetVersion(
            dataset=dataset,
            metadata=blocks,
            file_metadatas=[
                FileMetadata(datafile=f, label=f.label) for f in files
            ],
        )
        dataset.versions.append(version)
        return dataset
