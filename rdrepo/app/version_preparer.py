"""Normalization of a new dataset version before persistence.

The same state setup serves both dataset creation and the creation
of later versions; it never persists anything and never changes
file lists.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Sequence

from rdrepo.domain.enums import VersionState
from rdrepo.domain.exceptions import VersionPreparationError

if TYPE_CHECKING:
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.entities.dataversion import DatasetVersion


class VersionPreparer:
    """Puts a version into a state ready for persistence.

    Attributes:
        _default_terms: Terms of use for versions that set none.
        _required_fields: "block.field" names checked on validation.
    """

    def __init__(
        self,
        default_terms: Optional[str] = "CC0 1.0",
        required_fields: Sequence[str] = ("citation.title",),
    ) -> None:
        self._default_terms = default_terms
        self._required_fields = tuple(required_fields)

    def prepare(
        self,
        dataset: "Dataset",
        version: "DatasetVersion",
        validate: bool = True,
        now: Optional[datetime] = None,
        preserve_state: bool = False,
    ) -> "DatasetVersion":
        """Normalize a version in place.

        Links the version and the dataset, forces DRAFT state with no
        version numbers unless ``preserve_state`` is set, applies
        default terms, sets timestamps and checks that every file
        association points at a file already attached to the dataset.
        File lists are never changed.

        Args:
            dataset: Parent dataset.
            version: Version to normalize.
            validate: Check required fields.
            now: Timestamp to use; defaults to the current UTC time.
            preserve_state: Keep the incoming state and version numbers,
                            as for versions published upstream.

        Returns:
            The normalized version.

        Raises:
            VersionPreparationError: If a file association refers to a
                                     file outside the dataset, or if
                                     validation finds empty required
                                     fields, or if a preserved
                                     non-draft state has no version
                                     number.
        """
        now = now or datetime.now(timezone.utc)

        version.dataset = dataset
        if not any(v is version for v in dataset.versions):
            dataset.versions.append(version)

        if not preserve_state:
            version.version_state = VersionState.DRAFT
            version.version_number = None
            version.minor_version_number = None
        elif (
            version.version_state is not VersionState.DRAFT
            and version.version_number is None
        ):
            raise VersionPreparationError(
                f"A {version.version_state.value} version needs a version "
                "number"
            )
        if not version.terms_of_use:
            version.terms_of_use = self._default_terms
        version.create_time = version.create_time or now
        version.last_update_time = now

        for fm in version.file_metadatas:
            if not fm.label:
                fm.label = fm.datafile.label
            if not any(f is fm.datafile for f in dataset.files):
                raise VersionPreparationError(
                    f"File '{fm.label}' is not attached to the dataset"
                )

        if validate:
            self.validate(version)
        return version

    def validate(self, version: "DatasetVersion") -> None:
        """Check that every required field has a value.

        Raises:
            VersionPreparationError: Listing the empty fields.
        """
        missing = []
        for qualified in self._required_fields:
            block, _, name = qualified.partition(".")
            value = version.get_field(block, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(qualified)
        if missing:
            raise VersionPreparationError(
                f"Required fields are empty: {', '.join(missing)}",
                missing_fields=missing,
            )
