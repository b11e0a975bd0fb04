from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset


@runtime_checkable
class IndexSynchronizer(Protocol):
    """Abstract gateway keeping the search index in step with datasets."""

    def index_dataset(self, dataset: "Dataset", cleanup: bool) -> None:
        """Index a dataset and wait for the index to accept it.

        Args:
            dataset: Flushed dataset (has a database id).
            cleanup: Remove stale documents for the dataset first.

        Raises:
            IndexingError: If the index rejects the document.
        """
        ...

    def async_index_dataset(self, dataset: "Dataset", cleanup: bool) -> None:
        """Schedule indexing of a dataset and return immediately.

        Never raises; failures are logged and recorded by the
        implementation.

        Args:
            dataset: Flushed dataset (has a database id).
            cleanup: Remove stale documents for the dataset first.
        """
        ...
