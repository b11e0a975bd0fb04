"""Domain service guarding system-managed metadata blocks.

Some metadata blocks may only be written by trusted systems. Each
such block is configured with a secret key; a request that sets any
value in the block must carry the key in a ``mdkey.<block>`` header.
"""

from typing import TYPE_CHECKING, Optional

from rdrepo.domain.exceptions import ValidationError
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataversion import DatasetVersion
    from rdrepo.domain.entities.user import CommandRequest

logger = logger.getChild(__name__)

HEADER_PREFIX = "mdkey."


def _has_values(block_values: dict) -> bool:
    return any(v not in (None, "", [], {}) for v in block_values.values())


class SystemMetadataKeyPolicy:
    """Checks that system metadata blocks are written with their key.

    Attributes:
        _block_keys: Block name -> required key.
    """

    def __init__(self, block_keys: Optional[dict[str, str]] = None) -> None:
        """Initialize with the configured system blocks.

        Args:
            block_keys: Block name -> key the request must present.
        """
        self._block_keys = dict(block_keys or {})

    def check(
        self, version: "DatasetVersion", request: "CommandRequest"
    ) -> None:
        """Verify the request may write the version's system blocks.

        Args:
            version: Version about to be persisted.
            request: Request carrying ``mdkey.<block>`` headers.

        Raises:
            ValidationError: If a populated system block is not
                             accompanied by its key.
        """
        for block, key in self._block_keys.items():
            values = version.metadata.get(block) or {}
            if not _has_values(values):
                continue
            presented = request.headers.get(HEADER_PREFIX + block)
            if presented != key:
                logger.debug("rejected write to system block %s", block)
                raise ValidationError(
                    f"Metadata block '{block}' is system-managed; "
                    f"a valid '{HEADER_PREFIX}{block}' key is required"
                )
