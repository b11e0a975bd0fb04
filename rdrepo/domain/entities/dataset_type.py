from dataclasses import dataclass
from typing import Optional

DEFAULT_DATASET_TYPE = "dataset"


@dataclass
class DatasetType:
    """Classification tag of a dataset (e.g., "dataset", "software").

    Attributes:
        name: Unique type name.
        id: Database identity, None until stored.
    """

    name: str
    id: Optional[int] = None
