from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rdrepo.domain.entities.user import AuthenticatedUser


@dataclass(eq=False)
class DataFile:
    """A file belonging to a dataset.

    Files are attached to the dataset before creation; the creation
    pipeline only stamps their audit fields.

    Attributes:
        label: File name as shown to users.
        content_type: MIME type.
        checksum: Content checksum value.
        checksum_type: Checksum algorithm (e.g., "MD5").
        filesize: Size in bytes.
        storage_identifier: Location of the file's bytes.
        creator: User who created the file record.
        create_date: When the file record was created.
        id: Database identity, None until flush.
    """

    label: str = ""
    content_type: str = "application/octet-stream"
    checksum: str = ""
    checksum_type: str = "MD5"
    filesize: int = 0
    storage_identifier: Optional[str] = None
    creator: Optional["AuthenticatedUser"] = None
    create_date: Optional[datetime] = None
    id: Optional[int] = None
