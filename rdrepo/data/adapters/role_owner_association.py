"""OwnerAssociation granting the creator a role on the new dataset."""

from typing import TYPE_CHECKING

from rdrepo.domain.entities.role_assignment import CREATOR_ROLE, RoleAssignment

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.entities.persistence import PersistenceContext
    from rdrepo.domain.entities.user import AuthenticatedUser


class RoleOwnerAssociation:
    """Inserts a RoleAssignment for the dataset's creator.

    The assignment is inserted into the same unit of work as the
    dataset and written after it at flush.

    Attributes:
        _persistence: Unit of work of the current creation.
        _role: Role alias granted to the creator.
    """

    def __init__(
        self, persistence: "PersistenceContext", role: str = CREATOR_ROLE
    ) -> None:
        self._persistence = persistence
        self._role = role

    def attach_owner(
        self, user: "AuthenticatedUser", dataset: "Dataset"
    ) -> RoleAssignment:
        assignment = RoleAssignment(
            assignee=user.assignee_identifier,
            role=self._role,
            dataset=dataset,
        )
        self._persistence.insert(assignment)
        return assignment
