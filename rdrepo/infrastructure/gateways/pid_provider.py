from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset


@runtime_checkable
class PidProvider(Protocol):
    """Abstract gateway to a persistent-identifier service.

    Generates identifiers under one naming scheme and registers them
    with the naming authority. Implementations wrap specific services
    (DataCite, Handle, permalinks, or a local fake).
    """

    def generate_identifier(self, dataset: "Dataset") -> None:
        """Assign a new unique identifier to the dataset.

        Does nothing if the dataset already has one.

        Args:
            dataset: Dataset to receive the identifier.
        """
        ...

    def get_protocol(self) -> str:
        """Return the naming scheme (e.g., "doi")."""
        ...

    def get_authority(self) -> str:
        """Return the naming authority (e.g., "10.5072")."""
        ...

    def register_when_published(self) -> bool:
        """Return True if registration is deferred to publication."""
        ...

    def already_registered(self, dataset: "Dataset") -> bool:
        """Check whether the dataset's identifier is registered.

        Args:
            dataset: Dataset with a complete global id.

        Returns:
            True if the naming authority knows the identifier.
        """
        ...

    def create_identifier(self, dataset: "Dataset") -> str:
        """Register the dataset's identifier with the naming authority.

        Args:
            dataset: Dataset with a complete global id.

        Returns:
            The registered global id string.

        Raises:
            IdentifierRegistrationError: If the authority rejects it.
        """
        ...
