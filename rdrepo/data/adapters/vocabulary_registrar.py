"""VocabularyRegistrar resolving terms through configured resolvers.

Fields under external vocabulary control are configured as
``"block.field"`` names mapped to a resolver callable. A resolver
takes a term (usually a URI) and returns the term's description,
or None if the term is unknown. Resolved terms are cached.
"""

import threading
from typing import TYPE_CHECKING, Any, Callable, Optional

from rdrepo.domain.exceptions import VocabularyRegistrationError
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataversion import DatasetVersion

logger = logger.getChild(__name__)

Resolver = Callable[[str], Optional[dict[str, Any]]]


class ControlledVocabularyRegistrar:
    """Registers external vocabulary values referenced by a version.

    Attributes:
        _resolvers: "block.field" -> resolver callable.
        registered: Term -> resolved description, across calls.
    """

    def __init__(self, resolvers: Optional[dict[str, Resolver]] = None) -> None:
        self._resolvers = dict(resolvers or {})
        self._lock = threading.Lock()
        self.registered: dict[str, dict[str, Any]] = {}

    def register_external_values(self, version: "DatasetVersion") -> None:
        for qualified, resolver in self._resolvers.items():
            block, _, name = qualified.partition(".")
            value = version.get_field(block, name)
            if value in (None, "", []):
                continue
            terms = value if isinstance(value, list) else [value]
            for term in terms:
                self._register(qualified, term, resolver)

    def _register(self, qualified: str, term: str, resolver: Resolver) -> None:
        with self._lock:
            if term in self.registered:
                return
        try:
            resolved = resolver(term)
        except Exception as exc:
            raise VocabularyRegistrationError(
                f"Lookup of '{term}' for {qualified} failed: {exc}"
            ) from exc
        if resolved is None:
            raise VocabularyRegistrationError(
                f"Unknown vocabulary term '{term}' for {qualified}"
            )
        with self._lock:
            self.registered[term] = resolved
        logger.debug("registered term %s for %s", term, qualified)
