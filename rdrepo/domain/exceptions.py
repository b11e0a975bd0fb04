from typing import Optional


class RdrepoError(Exception):
    """Base exception for all rdrepo errors."""


class ConfigError(RdrepoError):
    """Raised for invalid runtime configuration."""


class EntityNotFoundError(RdrepoError):
    """Raised when a requested entity does not exist.

    Attributes:
        entity_type: Type name (e.g., "Dataset", "DatasetType").
        identifier: Id or name used in the lookup.
    """

    def __init__(self, entity_type: str, identifier: str) -> None:
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(f"{entity_type} not found: {identifier}")


class CommandError(RdrepoError):
    """Raised when dataset creation fails.

    Attributes:
        stage: Name of the pipeline stage that failed, once known.
    """

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        self.stage = stage
        super().__init__(message)


class ValidationError(CommandError):
    """Raised when caller-supplied parameters are rejected."""


class IdentifierAssignmentError(CommandError):
    """Raised when no usable persistent identifier can be assigned."""


class VersionPreparationError(CommandError):
    """Raised when the version to persist cannot be normalized.

    Attributes:
        missing_fields: Required "block.field" names left empty.
    """

    def __init__(
        self,
        message: str,
        missing_fields: Optional[list[str]] = None,
        stage: Optional[str] = None,
    ) -> None:
        self.missing_fields = missing_fields or []
        super().__init__(message, stage)


class VocabularyRegistrationError(CommandError):
    """Raised when an external vocabulary value cannot be registered."""


class IdentifierRegistrationError(CommandError):
    """Raised when the naming authority rejects a registration."""


class PersistenceError(CommandError):
    """Raised when insert, merge or flush fails."""


class IndexingError(RdrepoError):
    """Raised by synchronous indexing when the search index rejects a
    document or cannot be reached."""
