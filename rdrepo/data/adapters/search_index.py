"""IndexSynchronizer over a pluggable search backend.

IndexService turns a flushed Dataset into a flat search document
and hands it to a SearchBackend. Synchronous indexing raises
IndexingError on failure; asynchronous indexing runs on a thread
pool, never raises to the caller, and records failures in
``IndexService.failures``.
"""

import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Protocol

from funcy import notnone, select_values

from rdrepo.domain.exceptions import IndexingError
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset

logger = logger.getChild(__name__)


class SearchBackend(Protocol):
    """Minimal document store a search engine client must offer."""

    def add(self, document: dict[str, Any]) -> None:
        ...

    def delete_for_entity(self, entity_id: int) -> None:
        ...


class InMemorySearchBackend:
    """Thread-safe dict-backed SearchBackend.

    Attributes:
        documents: Document id -> document.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.documents: dict[str, dict[str, Any]] = {}

    def add(self, document: dict[str, Any]) -> None:
        with self._lock:
            self.documents[document["id"]] = document

    def delete_for_entity(self, entity_id: int) -> None:
        with self._lock:
            stale = [
                doc_id
                for doc_id, doc in self.documents.items()
                if doc.get("entity_id") == entity_id
            ]
            for doc_id in stale:
                del self.documents[doc_id]

    def find_by_entity(self, entity_id: int) -> list[dict[str, Any]]:
        with self._lock:
            return [
                doc
                for doc in self.documents.values()
                if doc.get("entity_id") == entity_id
            ]


@dataclass(frozen=True)
class IndexFailure:
    """A failed asynchronous indexing attempt.

    Attributes:
        dataset_id: Database id of the dataset.
        global_id: Global id string, if known.
        message: Failure description.
    """

    dataset_id: Optional[int]
    global_id: Optional[str]
    message: str


def build_document(dataset: "Dataset") -> dict[str, Any]:
    """Build the search document for a dataset's latest version.

    Args:
        dataset: Flushed dataset.

    Returns:
        Flat document; unset fields are omitted.
    """
    version = dataset.latest_version
    state = version.version_state.value.lower() if version else "draft"
    return select_values(
        notnone,
        {
            "id": f"dataset_{dataset.id}_{state}",
            "entity_id": dataset.id,
            "global_id": str(dataset.global_id) if dataset.global_id else None,
            "title": version.title if version else None,
            "dataset_type": (
                dataset.dataset_type.name if dataset.dataset_type else None
            ),
            "owner": dataset.owner,
            "creator": dataset.creator.identifier if dataset.creator else None,
            "create_date": (
                dataset.create_date.isoformat() if dataset.create_date else None
            ),
            "version_state": version.version_state.value if version else None,
            "file_count": len(dataset.files),
            "harvested_from": dataset.harvested_from,
        }
    )


class IndexService:
    """Keeps a search backend in step with created datasets.

    Attributes:
        _backend: Document store receiving search documents.
        _max_workers: Thread pool size for asynchronous indexing.
        _executor: Lazy-initialized thread pool.
        failures: Most recent asynchronous indexing failures, oldest
                  first; holds at most ``max_failures`` entries and is
                  emptied by ``drain_failures``.
    """

    def __init__(
        self,
        backend: SearchBackend,
        max_workers: int = 2,
        max_failures: int = 1000,
    ) -> None:
        self._backend = backend
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self.failures: deque[IndexFailure] = deque(maxlen=max_failures)

    @property
    def executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="rdrepo-index",
                )
            return self._executor

    def index_dataset(self, dataset: "Dataset", cleanup: bool) -> None:
        """Index a dataset synchronously.

        Raises:
            IndexingError: If the dataset has no id or the backend
                           fails.
        """
        if dataset.id is None:
            raise IndexingError("Cannot index a dataset without an id")
        try:
            if cleanup:
                self._backend.delete_for_entity(dataset.id)
            self._backend.add(build_document(dataset))
        except IndexingError:
            raise
        except Exception as exc:
            raise IndexingError(
                f"Failed to index dataset {dataset.id}: {exc}"
            ) from exc
        logger.debug("indexed dataset %d", dataset.id)

    def async_index_dataset(
        self, dataset: "Dataset", cleanup: bool
    ) -> Optional[Future]:
        """Schedule indexing of a dataset on the thread pool.

        Returns:
            The scheduled future, or None if scheduling failed.
        """
        try:
            return self.executor.submit(self._index_quietly, dataset, cleanup)
        except RuntimeError as exc:
            self._record_failure(dataset, f"not scheduled: {exc}")
            return None

    def _index_quietly(self, dataset: "Dataset", cleanup: bool) -> None:
        try:
            self.index_dataset(dataset, cleanup)
        except Exception as exc:
            self._record_failure(dataset, str(exc))

    def _record_failure(self, dataset: "Dataset", message: str) -> None:
        global_id = str(dataset.global_id) if dataset.global_id else None
        logger.error(
            "async indexing of dataset %s (%s) failed: %s",
            dataset.id,
            global_id,
            message,
        )
        with self._lock:
            self.failures.append(IndexFailure(dataset.id, global_id, message))

    def drain_failures(self) -> list[IndexFailure]:
        """Return the recorded failures and forget them."""
        with self._lock:
            drained = list(self.failures)
            self.failures.clear()
        return drained

    def shutdown(self, wait: bool = True) -> None:
        """Stop the thread pool, optionally waiting for queued work."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
