"""Domain service completing a dataset's identity fields.

Protocol, authority, identifier and storage locator are filled only
where absent, so a harvested or imported dataset that arrives with
some of them set keeps its values.
"""

from typing import TYPE_CHECKING

from rdrepo.domain.exceptions import IdentifierAssignmentError
from rdrepo.domain.value_objects import (
    IdentityAssignment,
    build_storage_locator,
)

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.infrastructure.gateways.pid_provider import PidProvider


def identity_of(dataset: "Dataset") -> IdentityAssignment:
    """Read the identity fields of a dataset, blanks as absent."""
    return IdentityAssignment(
        protocol=dataset.protocol or None,
        authority=dataset.authority or None,
        identifier=dataset.identifier or None,
        storage_identifier=dataset.storage_identifier or None,
    )


def apply_identity(
    dataset: "Dataset", identity: IdentityAssignment
) -> None:
    """Write identity fields back onto the dataset."""
    dataset.protocol = identity.protocol
    dataset.authority = identity.authority
    dataset.identifier = identity.identifier
    dataset.storage_identifier = identity.storage_identifier


def complete_identity(
    dataset: "Dataset",
    pid_provider: "PidProvider",
    default_driver_id: str,
) -> IdentityAssignment:
    """Fill the dataset's absent identity fields.

    The identifier is resolved before the storage locator so that the
    locator is always derived from the final authority and identifier.

    Args:
        dataset: Dataset whose identity is completed in place.
        pid_provider: Supplies protocol, authority and identifiers.
        default_driver_id: Storage driver used when the dataset has
                           no override.

    Returns:
        The completed identity.

    Raises:
        IdentifierAssignmentError: If no identifier can be obtained.
    """
    identity = identity_of(dataset)
    identity = identity.merge_absent("protocol", pid_provider.get_protocol)
    identity = identity.merge_absent(
        "authority", pid_provider.get_authority
    )
    apply_identity(dataset, identity)

    def generate() -> str:
        pid_provider.generate_identifier(dataset)
        if not dataset.identifier:
            raise IdentifierAssignmentError(
                "Identifier provider returned no identifier"
            )
        return dataset.identifier

    identity = identity.merge_absent("identifier", generate)

    def locate() -> str:
        driver_id = dataset.effective_storage_driver_id(default_driver_id)
        return build_storage_locator(
            driver_id, identity.authority, identity.identifier
        )

    identity = identity.merge_absent("storage_identifier", locate)
    apply_identity(dataset, identity)
    return identity
