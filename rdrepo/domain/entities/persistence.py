from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, TypeVar

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.value_objects import GlobalId

T = TypeVar("T")


class PersistenceContext(ABC):
    """Abstract transactional unit of work for repository entities.

    Entities handed to ``insert`` are pending until ``flush``, which
    writes them and assigns database-generated ids. Nothing written
    by a flush is durable until ``commit``; ``rollback`` discards
    pending and flushed-but-uncommitted work.

    There is ONE PersistenceContext abstract (Domain Layer) and ONE
    concrete implementation (Data Layer) in the architecture.
    """

    @abstractmethod
    def insert(self, entity: object) -> None:
        """Schedule a new entity (and its owned children) for writing.

        Args:
            entity: A Dataset or RoleAssignment.
        """

    @abstractmethod
    def merge(self, entity: T) -> T:
        """Re-attach an entity to the managed state.

        Args:
            entity: Entity possibly detached from this context.

        Returns:
            The managed instance representing the entity.
        """

    @abstractmethod
    def flush(self) -> None:
        """Write pending entities and assign generated ids.

        Raises:
            PersistenceError: If the write fails.
        """

    @abstractmethod
    def commit(self) -> None:
        """Make flushed work durable and end the transaction."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard pending and uncommitted work."""

    @abstractmethod
    def global_id_exists(self, global_id: "GlobalId") -> bool:
        """Check whether a persisted dataset already uses a global id.

        Args:
            global_id: Persistent identifier to look up.

        Returns:
            True if a committed dataset carries this global id.
        """

    @abstractmethod
    def find_dataset(self, id: int) -> Optional["Dataset"]:
        """Load a committed dataset by database id.

        Args:
            id: Database identity.

        Returns:
            Dataset with its versions and files, or None.
        """
