from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset_type import DatasetType


@runtime_checkable
class DatasetTypeRegistry(Protocol):
    """Abstract read-only lookup of dataset types."""

    def get_by_name(self, name: str) -> Optional["DatasetType"]:
        """Look up a dataset type by its unique name.

        Args:
            name: Type name (e.g., "dataset").

        Returns:
            The matching DatasetType, or None.
        """
        ...
