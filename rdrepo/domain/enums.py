from enum import Enum


class VersionState(str, Enum):
    """Lifecycle state for DatasetVersion entities."""

    DRAFT = "DRAFT"
    RELEASED = "RELEASED"
    ARCHIVED = "ARCHIVED"
    DEACCESSIONED = "DEACCESSIONED"


class CreationStage(str, Enum):
    """Named stages of the dataset creation pipeline, in order."""

    VALIDATE = "VALIDATE"
    ASSIGN_ID = "ASSIGN_ID"
    PREPARE_VERSION = "PREPARE_VERSION"
    METADATA_KEY_CHECK = "METADATA_KEY_CHECK"
    VOCAB_REGISTER = "VOCAB_REGISTER"
    STAMP = "STAMP"
    COMPLETE_LOCATORS = "COMPLETE_LOCATORS"
    RESOLVE_TYPE = "RESOLVE_TYPE"
    HANDLE_PID = "HANDLE_PID"
    PERSIST = "PERSIST"
    POST_PERSIST = "POST_PERSIST"
    ATTACH_OWNER = "ATTACH_OWNER"
    MERGE = "MERGE"
    FLUSH = "FLUSH"
    POST_FLUSH = "POST_FLUSH"
    INDEX = "INDEX"
    DONE = "DONE"


class IndexOutcome(str, Enum):
    """How the indexing stage finished."""

    SYNC_INDEXED = "SYNC_INDEXED"
    SYNC_FAILED = "SYNC_FAILED"
    ASYNC_DISPATCHED = "ASYNC_DISPATCHED"
