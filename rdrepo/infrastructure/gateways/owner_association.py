from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.entities.user import AuthenticatedUser


@runtime_checkable
class OwnerAssociation(Protocol):
    """Abstract gateway recording who owns a newly created dataset."""

    def attach_owner(
        self, user: "AuthenticatedUser", dataset: "Dataset"
    ) -> None:
        """Associate the user with the dataset as its owner.

        Called after the dataset is inserted and before flush; the
        association is written in the same transaction.

        Args:
            user: The requesting user.
            dataset: The inserted, not yet flushed, dataset.
        """
        ...
