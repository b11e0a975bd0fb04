"""Creation variants: interactive deposit, API import and harvest.

A variant bundles the hooks and the PidHandler a creation flow plugs
into the shared pipeline.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rdrepo.app.creation.pipeline import CreationHooks, PidHandler
from rdrepo.domain.exceptions import (
    IdentifierRegistrationError,
    ValidationError,
)
from rdrepo.domain.value_objects import GlobalId
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.app.creation.pipeline import CreationContext
    from rdrepo.domain.entities.dataset import Dataset

logger = logger.getChild(__name__)


@dataclass(frozen=True)
class CreationVariant:
    """Hooks and identifier registration policy of a creation flow.

    Attributes:
        name: Variant name, used in logs.
        pid_handler: Identifier registration strategy.
        hooks: Extension points.
    """

    name: str
    pid_handler: PidHandler
    hooks: CreationHooks = field(default_factory=CreationHooks)


# ── PID handlers ──────────────────────────────────────────────


def _register(dataset: "Dataset", context: "CreationContext") -> None:
    try:
        context.pid_provider.create_identifier(dataset)
    except IdentifierRegistrationError:
        raise
    except Exception as exc:
        raise IdentifierRegistrationError(
            f"Registration of {dataset.global_id} failed: {exc}"
        ) from exc
    dataset.identifier_registered = True
    dataset.global_id_create_time = context.clock()


class RegisterNowPidHandler:
    """Registers the identifier immediately unless the provider defers
    registration to publication. Any failure aborts the creation."""

    def handle(self, dataset: "Dataset", context: "CreationContext") -> None:
        if context.persistence.global_id_exists(dataset.global_id):
            raise IdentifierRegistrationError(
                f"Persistent identifier {dataset.global_id} is already in use"
            )
        if context.pid_provider.register_when_published():
            return
        _register(dataset, context)


class TolerantImportPidHandler:
    """Registers an imported dataset's identifier if the naming
    authority does not know it yet.

    Imported identifiers usually exist upstream already, so a failed
    registration is logged and the import continues.
    """

    def handle(self, dataset: "Dataset", context: "CreationContext") -> None:
        provider = context.pid_provider
        if provider.register_when_published():
            return
        try:
            if provider.already_registered(dataset):
                dataset.identifier_registered = True
                return
            _register(dataset, context)
        except Exception as exc:
            logger.warning(
                "could not register imported identifier %s, continuing: %s",
                dataset.global_id,
                exc,
            )


class DeferredPidHandler:
    """Leaves registration to the harvesting source."""

    def handle(self, dataset: "Dataset", context: "CreationContext") -> None:
        logger.debug("registration of %s deferred", dataset.global_id)


# ── Pre-checks ────────────────────────────────────────────────


def require_new_dataset(dataset: "Dataset", context: "CreationContext") -> None:
    """Reject datasets that were persisted before or have no version."""
    if dataset.id is not None:
        raise ValidationError(f"Dataset {dataset.id} already exists")
    if not dataset.versions:
        raise ValidationError("Dataset has no version")


def require_import_identifier(
    dataset: "Dataset", context: "CreationContext"
) -> None:
    """Imported datasets bring their own, locally unused identifier.

    Protocol and authority default to the provider's when the dataset
    does not set them.
    """
    require_new_dataset(dataset, context)
    if not dataset.identifier:
        raise ValidationError(
            "Imported datasets must have a persistent global identifier"
        )
    provider = context.pid_provider
    global_id = GlobalId(
        dataset.protocol or provider.get_protocol(),
        dataset.authority or provider.get_authority(),
        dataset.identifier,
    )
    if context.persistence.global_id_exists(global_id):
        raise ValidationError(
            f"A dataset with identifier {global_id} already exists"
        )


def require_harvest_source(
    dataset: "Dataset", context: "CreationContext"
) -> None:
    """Harvested datasets name the client they were harvested by."""
    require_new_dataset(dataset, context)
    if not dataset.harvested_from:
        raise ValidationError("Harvested datasets must name their source")


# ── Variants ──────────────────────────────────────────────────


def interactive_variant() -> CreationVariant:
    return CreationVariant(
        name="interactive",
        pid_handler=RegisterNowPidHandler(),
        hooks=CreationHooks(pre_check=require_new_dataset),
    )


def import_variant() -> CreationVariant:
    return CreationVariant(
        name="import",
        pid_handler=TolerantImportPidHandler(),
        hooks=CreationHooks(pre_check=require_import_identifier),
    )


def harvest_variant() -> CreationVariant:
    return CreationVariant(
        name="harvest",
        pid_handler=DeferredPidHandler(),
        hooks=CreationHooks(pre_check=require_harvest_source),
    )
