"""The dataset creation pipeline.

Creation runs a fixed sequence of stages declared in
``CreationPipeline.STAGES``. Four stages call overridable hooks
(``CreationHooks``) and one calls the required PidHandler strategy
that each creation variant supplies. Every stage before INDEX is
fatal on failure: the error is tagged with the stage, non-command
errors are wrapped in the stage's error type, and the caller rolls
the unit of work back. INDEX is the only stage that may swallow an
error, and only on the harvested path.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    TYPE_CHECKING,
    Callable,
    Optional,
    Protocol,
    runtime_checkable,
)

from rdrepo.domain.entities.dataset_type import DEFAULT_DATASET_TYPE
from rdrepo.domain.enums import CreationStage, IndexOutcome
from rdrepo.domain.exceptions import (
    CommandError,
    IdentifierAssignmentError,
    IdentifierRegistrationError,
    PersistenceError,
    ValidationError,
    VersionPreparationError,
    VocabularyRegistrationError,
)
from rdrepo.domain.services.identity import complete_identity
from rdrepo.domain.services.system_metadata import SystemMetadataKeyPolicy
from rdrepo.log import logger

if TYPE_CHECKING:
    from rdrepo.app.version_preparer import VersionPreparer
    from rdrepo.domain.entities.dataset import Dataset
    from rdrepo.domain.entities.dataversion import DatasetVersion
    from rdrepo.domain.entities.persistence import PersistenceContext
    from rdrepo.domain.entities.user import CommandRequest
    from rdrepo.infrastructure.gateways.dataset_type_registry import (
        DatasetTypeRegistry,
    )
    from rdrepo.infrastructure.gateways.index_synchronizer import (
        IndexSynchronizer,
    )
    from rdrepo.infrastructure.gateways.owner_association import (
        OwnerAssociation,
    )
    from rdrepo.infrastructure.gateways.pid_provider import PidProvider
    from rdrepo.infrastructure.gateways.vocabulary_registrar import (
        VocabularyRegistrar,
    )

logger = logger.getChild(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreationOptions:
    """Per-call creation mode.

    Attributes:
        harvested: The dataset comes from a harvesting client; keeps
                   the version state published upstream, skips the
                   system metadata key check and indexes
                   synchronously on a best-effort basis.
        validate: Check required metadata while preparing the version.
    """

    harvested: bool = False
    validate: bool = True


@dataclass
class CreationContext:
    """State shared by the stages and hooks of one creation run.

    Attributes:
        request: The request the creation runs for.
        options: Creation mode.
        pid_provider: Identifier provider in effect.
        persistence: Unit of work the dataset is written to.
        clock: Source of the current time.
        version: The version selected for persistence, once known.
        completed: Stages completed so far, in order.
        index_outcome: How indexing finished, once it has.
    """

    request: "CommandRequest"
    options: CreationOptions
    pid_provider: "PidProvider"
    persistence: "PersistenceContext"
    clock: Callable[[], datetime] = utcnow
    version: Optional["DatasetVersion"] = None
    completed: list[CreationStage] = field(default_factory=list)
    index_outcome: Optional[IndexOutcome] = None


def no_op(dataset: "Dataset", context: CreationContext) -> None:
    """Default hook: does nothing."""


def latest_version(dataset: "Dataset") -> Optional["DatasetVersion"]:
    """Default version selection: the most recently added version."""
    return dataset.latest_version


@dataclass(frozen=True)
class CreationHooks:
    """Extension points of the creation pipeline.

    Attributes:
        pre_check: Validates caller-supplied parameters before any
                   mutation; raise ValidationError to reject.
        select_version: Picks the version to persist.
        post_persist: Runs after insert and before flush; the dataset
                      has no database id yet.
        post_flush: Runs after flush; the dataset has its id.
    """

    pre_check: Callable[["Dataset", CreationContext], None] = no_op
    select_version: Callable[
        ["Dataset"], Optional["DatasetVersion"]
    ] = latest_version
    post_persist: Callable[["Dataset", CreationContext], None] = no_op
    post_flush: Callable[["Dataset", CreationContext], None] = no_op


@runtime_checkable
class PidHandler(Protocol):
    """Decides whether and how to register the identifier.

    Runs after the identity is complete and before the dataset is
    inserted, so a rejected registration leaves nothing persisted.
    """

    def handle(self, dataset: "Dataset", context: CreationContext) -> None:
        """Register, defer or skip registration of the dataset's PID.

        Raises:
            IdentifierRegistrationError: To abort the creation.
        """
        ...


@dataclass(frozen=True)
class Stage:
    """One pipeline stage.

    Attributes:
        name: Stage name.
        method: Name of the CreationPipeline method running the stage.
        error_type: Error raised for unexpected failures in the stage.
    """

    name: CreationStage
    method: str
    error_type: type[CommandError]


class CreationPipeline:
    """Creates a dataset with its first version.

    One pipeline instance serves one unit of work; build a new one
    per creation.

    Attributes:
        _pid_provider: Generates identifiers and naming-scheme fields.
        _version_preparer: Normalizes the version to persist.
        _vocabulary_registrar: Registers external vocabulary values.
        _dataset_type_registry: Resolves the default dataset type.
        _persistence: Unit of work receiving the dataset.
        _index_synchronizer: Search index synchronizer.
        _owner_association: Records the creator as owner.
        _pid_handler: Variant-specific identifier registration.
        _hooks: Variant-specific extension points.
        _metadata_key_policy: Guards system metadata blocks.
        _default_driver_id: Storage driver for datasets without one.
        _clock: Source of the current time.
    """

    STAGES: tuple[Stage, ...] = (
        Stage(CreationStage.VALIDATE, "_validate", ValidationError),
        Stage(
            CreationStage.ASSIGN_ID,
            "_assign_identifier",
            IdentifierAssignmentError,
        ),
        Stage(
            CreationStage.PREPARE_VERSION,
            "_prepare_version",
            VersionPreparationError,
        ),
        Stage(
            CreationStage.METADATA_KEY_CHECK,
            "_check_metadata_keys",
            ValidationError,
        ),
        Stage(
            CreationStage.VOCAB_REGISTER,
            "_register_vocabulary",
            VocabularyRegistrationError,
        ),
        Stage(CreationStage.STAMP, "_stamp", CommandError),
        Stage(
            CreationStage.COMPLETE_LOCATORS,
            "_complete_locators",
            IdentifierAssignmentError,
        ),
        Stage(CreationStage.RESOLVE_TYPE, "_resolve_type", ValidationError),
        Stage(
            CreationStage.HANDLE_PID,
            "_handle_pid",
            IdentifierRegistrationError,
        ),
        Stage(CreationStage.PERSIST, "_persist", PersistenceError),
        Stage(CreationStage.POST_PERSIST, "_post_persist", CommandError),
        Stage(CreationStage.ATTACH_OWNER, "_attach_owner", PersistenceError),
        Stage(CreationStage.MERGE, "_merge", PersistenceError),
        Stage(CreationStage.FLUSH, "_flush", PersistenceError),
        Stage(CreationStage.POST_FLUSH, "_post_flush", CommandError),
        Stage(CreationStage.INDEX, "_index", CommandError),
    )

    def __init__(
        self,
        *,
        pid_provider: "PidProvider",
        version_preparer: "VersionPreparer",
        vocabulary_registrar: "VocabularyRegistrar",
        dataset_type_registry: "DatasetTypeRegistry",
        persistence: "PersistenceContext",
        index: "IndexSynchronizer",
        owner_association: "OwnerAssociation",
        pid_handler: PidHandler,
        hooks: Optional[CreationHooks] = None,
        metadata_key_policy: Optional[SystemMetadataKeyPolicy] = None,
        default_driver_id: str = "file",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if pid_handler is None:
            raise ValueError("A PidHandler is required")
        self._pid_provider = pid_provider
        self._version_preparer = version_preparer
        self._vocabulary_registrar = vocabulary_registrar
        self._dataset_type_registry = dataset_type_registry
        self._persistence = persistence
        self._index_synchronizer = index
        self._owner_association = owner_association
        self._pid_handler = pid_handler
        self._hooks = hooks or CreationHooks()
        self._metadata_key_policy = (
            metadata_key_policy or SystemMetadataKeyPolicy()
        )
        self._default_driver_id = default_driver_id
        self._clock = clock

    def create(
        self,
        dataset: "Dataset",
        request: "CommandRequest",
        harvested: bool = False,
        validate: bool = True,
    ) -> "Dataset":
        """Run every stage and return the flushed dataset.

        Args:
            dataset: Dataset to create, possibly with identity fields
                     already set.
            request: Request of the creating user.
            harvested: Dataset comes from a harvesting client.
            validate: Check required metadata of the version.

        Returns:
            The persistence-context-managed dataset, with its id set.

        Raises:
            CommandError: A subclass naming the failure; ``stage``
                          holds the failing stage.
        """
        context = CreationContext(
            request=request,
            options=CreationOptions(harvested=harvested, validate=validate),
            pid_provider=self._pid_provider,
            persistence=self._persistence,
            clock=self._clock,
        )
        return self.run(dataset, context)

    def run(self, dataset: "Dataset", context: CreationContext) -> "Dataset":
        """Run every stage with an existing context."""
        for stage in self.STAGES:
            dataset = self._run_stage(stage, dataset, context)
        context.completed.append(CreationStage.DONE)
        logger.info(
            "created dataset %s (id %s)", dataset.global_id, dataset.id
        )
        return dataset

    def _run_stage(
        self, stage: Stage, dataset: "Dataset", context: CreationContext
    ) -> "Dataset":
        logger.debug("stage %s", stage.name.value)
        try:
            result = getattr(type(self), stage.method)(self, dataset, context)
        except CommandError as exc:
            if exc.stage is None:
                exc.stage = stage.name.value
            logger.debug("stage %s failed: %s", exc.stage, exc)
            raise
        except Exception as exc:
            logger.debug("stage %s failed: %s", stage.name.value, exc)
            raise stage.error_type(
                f"{stage.name.value} failed: {exc}", stage=stage.name.value
            ) from exc
        context.completed.append(stage.name)
        return dataset if result is None else result

    # ── Stages ────────────────────────────────────────────────

    def _validate(self, dataset, context) -> None:
        self._hooks.pre_check(dataset, context)

    def _assign_identifier(self, dataset, context) -> None:
        if not dataset.identifier:
            self._pid_provider.generate_identifier(dataset)
        if not dataset.identifier:
            raise IdentifierAssignmentError(
                "Identifier provider returned no identifier"
            )

    def _prepare_version(self, dataset, context) -> None:
        version = self._hooks.select_version(dataset)
        if version is None:
            raise VersionPreparationError("Dataset has no version to persist")
        self._version_preparer.prepare(
            dataset,
            version,
            context.options.validate,
            now=context.clock(),
            preserve_state=context.options.harvested,
        )
        context.version = version

    def _check_metadata_keys(self, dataset, context) -> None:
        if context.options.harvested:
            return
        self._metadata_key_policy.check(context.version, context.request)

    def _register_vocabulary(self, dataset, context) -> None:
        self._vocabulary_registrar.register_external_values(context.version)

    def _stamp(self, dataset, context) -> None:
        user = context.request.user
        now = context.clock()
        dataset.creator = user
        dataset.create_date = now
        dataset.modification_time = now
        for datafile in dataset.files:
            datafile.creator = user
            datafile.create_date = dataset.create_date

    def _complete_locators(self, dataset, context) -> None:
        complete_identity(
            dataset, self._pid_provider, self._default_driver_id
        )

    def _resolve_type(self, dataset, context) -> None:
        logger.debug("existing dataset type: %s", dataset.dataset_type)
        if dataset.dataset_type is not None:
            return
        default = self._dataset_type_registry.get_by_name(DEFAULT_DATASET_TYPE)
        if default is None:
            raise ValidationError(
                f"Default dataset type '{DEFAULT_DATASET_TYPE}' is not "
                "registered"
            )
        dataset.dataset_type = default

    def _handle_pid(self, dataset, context) -> None:
        self._pid_handler.handle(dataset, context)

    def _persist(self, dataset, context) -> None:
        self._persistence.insert(dataset)

    def _post_persist(self, dataset, context) -> None:
        self._hooks.post_persist(dataset, context)

    def _attach_owner(self, dataset, context) -> None:
        self._owner_association.attach_owner(context.request.user, dataset)

    def _merge(self, dataset, context) -> "Dataset":
        return self._persistence.merge(dataset)

    def _flush(self, dataset, context) -> None:
        self._persistence.flush()
        if dataset.id is None:
            raise PersistenceError("Flush did not assign a dataset id")

    def _post_flush(self, dataset, context) -> None:
        self._hooks.post_flush(dataset, context)

    def _index(self, dataset, context) -> None:
        if context.options.harvested:
            try:
                self._index_synchronizer.index_dataset(dataset, True)
            except Exception as exc:
                logger.warning(
                    "Failed to index harvested dataset %s: %s",
                    dataset.global_id,
                    exc,
                )
                context.index_outcome = IndexOutcome.SYNC_FAILED
            else:
                context.index_outcome = IndexOutcome.SYNC_INDEXED
        else:
            self._index_synchronizer.async_index_dataset(dataset, True)
            context.index_outcome = IndexOutcome.ASYNC_DISPATCHED
