from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset

CREATOR_ROLE = "admin"


@dataclass(eq=False)
class RoleAssignment:
    """Grants a role on a dataset to an assignee.

    Attributes:
        assignee: Assignee identifier (e.g., "@jdoe").
        role: Role alias (e.g., "admin").
        dataset: Dataset the role is granted on.
        id: Database identity, None until flush.
    """

    assignee: str
    role: str
    dataset: "Dataset"
    id: Optional[int] = None
