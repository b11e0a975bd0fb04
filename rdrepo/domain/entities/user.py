from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AuthenticatedUser:
    """A logged-in user acting on the repository.

    Attributes:
        identifier: Unique user identifier (e.g., "jdoe").
        display_name: Human-readable name.
        superuser: Whether the user bypasses permission checks.
    """

    identifier: str
    display_name: str = ""
    superuser: bool = False

    @property
    def assignee_identifier(self) -> str:
        """Identifier used in role assignments (e.g., "@jdoe")."""
        return f"@{self.identifier}"


@dataclass(frozen=True)
class CommandRequest:
    """The context a creation command is invoked in.

    Attributes:
        user: The requesting user.
        source_address: Network address the request came from.
        headers: Request headers; carries system metadata keys.
    """

    user: AuthenticatedUser
    source_address: Optional[str] = None
    headers: dict = field(default_factory=dict)
