from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataversion import DatasetVersion


@runtime_checkable
class VocabularyRegistrar(Protocol):
    """Abstract gateway to external controlled-vocabulary services."""

    def register_external_values(self, version: "DatasetVersion") -> None:
        """Resolve and register externally controlled field values.

        Args:
            version: Version whose metadata may reference external
                     vocabulary terms.

        Raises:
            VocabularyRegistrationError: If a term cannot be resolved.
        """
        ...
