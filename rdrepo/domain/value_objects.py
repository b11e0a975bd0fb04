import re
from dataclasses import dataclass, fields, replace
from typing import Callable, Optional

STORAGE_SEPARATOR = "://"

_UNSAFE_STORAGE_CHARS = re.compile(r"[^A-Za-z0-9._/-]")


def for_file_storage(value: str) -> str:
    """Return a locator-safe form of an authority or identifier.

    Strips surrounding whitespace and slashes and replaces every
    character outside ``[A-Za-z0-9._/-]`` with ``-``.
    """
    return _UNSAFE_STORAGE_CHARS.sub("-", value.strip().strip("/"))


def build_storage_locator(
    driver_id: str, authority: str, identifier: str
) -> str:
    """Derive a dataset storage locator.

    Args:
        driver_id: Storage driver id (e.g., "file", "s3").
        authority: Naming authority (display form).
        identifier: Dataset identifier (display form).

    Returns:
        ``driver_id://<authority>/<identifier>`` using the
        locator-safe forms of authority and identifier.
    """
    return (
        driver_id
        + STORAGE_SEPARATOR
        + for_file_storage(authority)
        + "/"
        + for_file_storage(identifier)
    )


@dataclass(frozen=True)
class GlobalId:
    """Immutable persistent identifier of a dataset.

    Attributes:
        protocol: Naming scheme (e.g., "doi", "hdl", "perma").
        authority: Naming authority (e.g., "10.5072").
        identifier: Identifier within the authority (e.g., "FK2/ABC123").
    """

    protocol: str
    authority: str
    identifier: str

    def as_string(self) -> str:
        return f"{self.protocol}:{self.authority}/{self.identifier}"

    def __str__(self) -> str:
        return self.as_string()


@dataclass(frozen=True)
class IdentityAssignment:
    """Partial record of a dataset's identity fields.

    A field left as None is absent. ``merge_absent`` fills absent
    fields only, so merging into a pre-filled record is a no-op.

    Attributes:
        protocol: Naming scheme.
        authority: Naming authority.
        identifier: Dataset identifier.
        storage_identifier: Storage locator.
    """

    protocol: Optional[str] = None
    authority: Optional[str] = None
    identifier: Optional[str] = None
    storage_identifier: Optional[str] = None

    @property
    def complete(self) -> bool:
        return all(
            getattr(self, f.name) is not None for f in fields(self)
        )

    def merge_absent(
        self, field_name: str, supplier: Callable[[], Optional[str]]
    ) -> "IdentityAssignment":
        """Fill one field if it is absent.

        The supplier is only called when the field is absent.

        Args:
            field_name: Name of the field to fill.
            supplier: Produces the value for an absent field.

        Returns:
            This record if the field was present, else a copy with
            the supplied value.
        """
        if getattr(self, field_name) is not None:
            return self
        return replace(self, **{field_name: supplier()})
