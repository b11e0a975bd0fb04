"""PidProvider that mints DOIs locally without a registry.

Identifiers are random strings under a configurable shoulder,
checked against the repository for local uniqueness. Registration
is recorded in memory. Suitable for test and demo installations,
where the authority is usually the DataCite test prefix 10.5072.
"""

import random
import string
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from rdrepo.domain.exceptions import (
    IdentifierAssignmentError,
    IdentifierRegistrationError,
)
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset

logger = logger.getChild(__name__)

_ALPHABET = string.ascii_uppercase + string.digits


class FakeDOIProvider:
    """Locally minting DOI provider.

    Attributes:
        _authority: DOI prefix.
        _shoulder: Prefix prepended to every generated identifier.
        _identifier_exists: Callable(authority, identifier) -> bool
                            checking persisted datasets.
        _register_when_published: Whether registration is deferred.
        _length: Number of random characters per identifier.
        _max_attempts: Attempts before giving up on a unique value.
        _reserved: Identifiers handed out by this provider.
        registered: Global id strings registered so far.
    """

    PROTOCOL = "doi"

    def __init__(
        self,
        authority: str = "10.5072",
        shoulder: str = "FK2/",
        identifier_exists: Optional[Callable[[str, str], bool]] = None,
        register_when_published: bool = False,
        length: int = 6,
        max_attempts: int = 10,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._authority = authority
        self._shoulder = shoulder
        self._identifier_exists = identifier_exists or (lambda a, i: False)
        self._register_when_published = register_when_published
        self._length = length
        self._max_attempts = max_attempts
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._reserved: set[str] = set()
        self.registered: set[str] = set()

    def get_protocol(self) -> str:
        return self.PROTOCOL

    def get_authority(self) -> str:
        return self._authority

    def register_when_published(self) -> bool:
        return self._register_when_published

    def generate_identifier(self, dataset: "Dataset") -> None:
        """Assign a locally unique identifier to the dataset.

        Args:
            dataset: Dataset to receive the identifier. Left untouched
                     if it already has one.

        Raises:
            IdentifierAssignmentError: If no unique identifier is found
                                       within the attempt limit.
        """
        if dataset.identifier:
            return
        authority = dataset.authority or self._authority
        with self._lock:
            for _ in range(self._max_attempts):
                candidate = self._shoulder + "".join(
                    self._rng.choice(_ALPHABET) for _ in range(self._length)
                )
                if candidate in self._reserved:
                    continue
                if self._identifier_exists(authority, candidate):
                    continue
                self._reserved.add(candidate)
                dataset.identifier = candidate
                return
        raise IdentifierAssignmentError(
            f"No unique identifier found after {self._max_attempts} attempts"
        )

    def already_registered(self, dataset: "Dataset") -> bool:
        global_id = dataset.global_id
        return global_id is not None and str(global_id) in self.registered

    def create_identifier(self, dataset: "Dataset") -> str:
        """Record the dataset's global id as registered.

        Raises:
            IdentifierRegistrationError: If the global id is incomplete
                                         or already registered.
        """
        global_id = dataset.global_id
        if global_id is None:
            raise IdentifierRegistrationError(
                "Cannot register an incomplete global id"
            )
        gid = str(global_id)
        with self._lock:
            if gid in self.registered:
                raise IdentifierRegistrationError(
                    f"Identifier already registered: {gid}"
                )
            self.registered.add(gid)
        logger.debug("registered %s at %s", gid, datetime.now(timezone.utc))
        return gid
