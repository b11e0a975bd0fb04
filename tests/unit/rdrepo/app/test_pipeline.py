"""Tests for CreationPipeline stage ordering and failure handling."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from rdrepo.app.creation.pipeline import (
    CreationContext,
    CreationHooks,
    CreationOptions,
    CreationPipeline,
)
from rdrepo.app.version_preparer import VersionPreparer
from rdrepo.data.adapters.search_index import (
    IndexService,
    InMemorySearchBackend,
)
from rdrepo.domain.entities.dataset import Dataset
from rdrepo.domain.entities.dataset_type import DatasetType
from rdrepo.domain.enums import CreationStage, IndexOutcome, VersionState
from rdrepo.domain.exceptions import (
    CommandError,
    IdentifierAssignmentError,
    IdentifierRegistrationError,
    IndexingError,
    PersistenceError,
    ValidationError,
    VersionPreparationError,
    VocabularyRegistrationError,
)

FIXED_TIME = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def type_registry():
    """Mock DatasetTypeRegistry knowing only the default type."""
    mock = MagicMock()
    mock.get_by_name.side_effect = (
        lambda name: DatasetType(name, id=1) if name == "dataset" else None
    )
    return mock


@pytest.fixture
def pid_handler():
    return MagicMock()


@pytest.fixture
def collaborators(
    mock_pid_provider, mock_persistence, mock_index, type_registry, pid_handler
):
    """Keyword arguments for a CreationPipeline built from mocks."""
    return dict(
        pid_provider=mock_pid_provider,
        version_preparer=VersionPreparer(),
        vocabulary_registrar=MagicMock(),
        dataset_type_registry=type_registry,
        persistence=mock_persistence,
        index=mock_index,
        owner_association=MagicMock(),
        pid_handler=pid_handler,
        clock=lambda: FIXED_TIME,
    )


@pytest.fixture
def pipeline(collaborators):
    return CreationPipeline(**collaborators)


def _context(request, collaborators, harvested=False, validate=True):
    return CreationContext(
        request=request,
        options=CreationOptions(harvested=harvested, validate=validate),
        pid_provider=collaborators["pid_provider"],
        persistence=collaborators["persistence"],
        clock=collaborators["clock"],
    )


class TestPipelineConstruction:
    def test_requires_pid_handler(self, collaborators):
        collaborators["pid_handler"] = None
        with pytest.raises(ValueError, match="PidHandler"):
            CreationPipeline(**collaborators)

    def test_stage_table_matches_enum(self):
        """Every stage except DONE is declared once, in enum order."""
        declared = [stage.name for stage in CreationPipeline.STAGES]
        assert declared == [s for s in CreationStage if s is not CreationStage.DONE]


class TestStageOrdering:
    """Verify stages run in their fixed order."""

    def test_completed_stages(self, pipeline, sample_dataset, request_, collaborators):
        context = _context(request_, collaborators)
        pipeline.run(sample_dataset, context)
        assert context.completed == list(CreationStage)

    def test_collaborator_call_order(
        self, collaborators, sample_dataset, request_
    ):
        calls = []
        persistence = collaborators["persistence"]
        insert = persistence.insert.side_effect
        flush = persistence.flush.side_effect

        def record_insert(entity):
            calls.append("insert")
            insert(entity)

        def record_flush():
            calls.append("flush")
            flush()

        persistence.insert.side_effect = record_insert
        persistence.flush.side_effect = record_flush
        collaborators["pid_handler"].handle.side_effect = (
            lambda dataset, context: calls.append("pid")
        )
        collaborators["owner_association"].attach_owner.side_effect = (
            lambda user, dataset: calls.append("owner")
        )
        collaborators["index"].async_index_dataset.side_effect = (
            lambda dataset, cleanup: calls.append("index")
        )
        CreationPipeline(**collaborators).create(sample_dataset, request_)
        assert calls == ["pid", "insert", "owner", "flush", "index"]

    def test_hooks_see_id_only_after_flush(
        self, collaborators, sample_dataset, request_
    ):
        seen = {}
        collaborators["hooks"] = CreationHooks(
            post_persist=lambda d, c: seen.setdefault("persist", d.id),
            post_flush=lambda d, c: seen.setdefault("flush", d.id),
        )
        CreationPipeline(**collaborators).create(sample_dataset, request_)
        assert seen == {"persist": None, "flush": 1}


class TestIdentity:
    """Verify identifier assignment and locator completion."""

    def test_generated_identity(self, pipeline, sample_dataset, request_):
        dataset = pipeline.create(sample_dataset, request_)
        assert dataset.protocol == "doi"
        assert dataset.authority == "10.5072"
        assert dataset.identifier == "FK2/MOCK01"
        assert dataset.storage_identifier == "file://10.5072/FK2/MOCK01"

    def test_prefilled_identity_unchanged(
        self, pipeline, sample_dataset, request_, mock_pid_provider
    ):
        sample_dataset.protocol = "hdl"
        sample_dataset.authority = "1902.1"
        sample_dataset.identifier = "H-42"
        sample_dataset.storage_identifier = "s3://bucket/h42"
        dataset = pipeline.create(sample_dataset, request_)
        assert str(dataset.global_id) == "hdl:1902.1/H-42"
        assert dataset.storage_identifier == "s3://bucket/h42"
        mock_pid_provider.generate_identifier.assert_not_called()

    def test_driver_override(self, pipeline, sample_dataset, request_):
        sample_dataset.storage_driver_id = "s3"
        dataset = pipeline.create(sample_dataset, request_)
        assert dataset.storage_identifier == "s3://10.5072/FK2/MOCK01"

    def test_no_identifier_aborts(
        self, pipeline, sample_dataset, request_, mock_pid_provider
    ):
        mock_pid_provider.generate_identifier.side_effect = None
        with pytest.raises(IdentifierAssignmentError) as exc_info:
            pipeline.create(sample_dataset, request_)
        assert exc_info.value.stage == "ASSIGN_ID"


class TestStamping:
    """Verify audit fields on the dataset and its files."""

    def test_creator_and_dates(self, pipeline, sample_dataset, request_, user):
        dataset = pipeline.create(sample_dataset, request_)
        assert dataset.creator is user
        assert dataset.create_date == FIXED_TIME
        assert dataset.modification_time == dataset.create_date

    def test_single_instant(self, collaborators, sample_dataset, request_):
        """Creation and modification time share one clock reading."""
        ticks = iter(FIXED_TIME + timedelta(seconds=i) for i in range(100))
        collaborators["clock"] = lambda: next(ticks)
        dataset = CreationPipeline(**collaborators).create(
            sample_dataset, request_
        )
        assert dataset.create_date == dataset.modification_time

    def test_files_stamped(self, pipeline, sample_dataset, request_, user):
        dataset = pipeline.create(sample_dataset, request_)
        for datafile in dataset.files:
            assert datafile.creator is user
            assert datafile.create_date == dataset.create_date

    def test_version_is_draft(self, pipeline, sample_dataset, request_):
        sample_dataset.versions[0].version_number = 3
        dataset = pipeline.create(sample_dataset, request_)
        version = dataset.latest_version
        assert version.version_state is VersionState.DRAFT
        assert version.version_number is None
        assert version.terms_of_use == "CC0 1.0"

    def test_harvested_version_state_kept(
        self, pipeline, sample_dataset, request_
    ):
        version = sample_dataset.versions[0]
        version.version_state = VersionState.RELEASED
        version.version_number = 2
        version.minor_version_number = 1
        dataset = pipeline.create(sample_dataset, request_, harvested=True)
        assert dataset.latest_version.version_state is VersionState.RELEASED
        assert dataset.latest_version.version_number == 2
        assert dataset.latest_version.minor_version_number == 1


class TestDatasetType:
    """Verify type preservation and defaulting."""

    def test_existing_type_kept(
        self, pipeline, sample_dataset, request_, software_type, type_registry
    ):
        sample_dataset.dataset_type = software_type
        dataset = pipeline.create(sample_dataset, request_)
        assert dataset.dataset_type is software_type
        type_registry.get_by_name.assert_not_called()

    def test_default_type(self, pipeline, sample_dataset, request_):
        dataset = pipeline.create(sample_dataset, request_)
        assert dataset.dataset_type.name == "dataset"

    def test_missing_default_type(
        self, pipeline, sample_dataset, request_, type_registry
    ):
        type_registry.get_by_name.side_effect = None
        type_registry.get_by_name.return_value = None
        with pytest.raises(ValidationError) as exc_info:
            pipeline.create(sample_dataset, request_)
        assert exc_info.value.stage == "RESOLVE_TYPE"


class TestFailures:
    """Verify fatal stages abort with tagged errors."""

    def test_registration_failure_leaves_nothing_inserted(
        self, pipeline, sample_dataset, request_, pid_handler, mock_persistence
    ):
        pid_handler.handle.side_effect = IdentifierRegistrationError("taken")
        with pytest.raises(IdentifierRegistrationError) as exc_info:
            pipeline.create(sample_dataset, request_)
        assert exc_info.value.stage == "HANDLE_PID"
        mock_persistence.insert.assert_not_called()
        mock_persistence.flush.assert_not_called()

    def test_unexpected_error_wrapped(
        self, collaborators, sample_dataset, request_
    ):
        registrar = collaborators["vocabulary_registrar"]
        registrar.register_external_values.side_effect = RuntimeError("boom")
        with pytest.raises(VocabularyRegistrationError) as exc_info:
            CreationPipeline(**collaborators).create(sample_dataset, request_)
        assert exc_info.value.stage == "VOCAB_REGISTER"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_validation_failure(self, pipeline, sample_dataset, request_):
        sample_dataset.versions[0].metadata = {}
        with pytest.raises(VersionPreparationError) as exc_info:
            pipeline.create(sample_dataset, request_)
        assert exc_info.value.stage == "PREPARE_VERSION"
        assert exc_info.value.missing_fields == ["citation.title"]

    def test_validation_skipped(self, pipeline, sample_dataset, request_):
        sample_dataset.versions[0].metadata = {}
        dataset = pipeline.create(sample_dataset, request_, validate=False)
        assert dataset.id == 1

    def test_no_version(self, pipeline, request_):
        with pytest.raises(VersionPreparationError, match="no version"):
            pipeline.create(Dataset(), request_)

    def test_pre_check_rejects(self, collaborators, sample_dataset, request_):
        def reject(dataset, context):
            raise ValidationError("nope")

        collaborators["hooks"] = CreationHooks(pre_check=reject)
        with pytest.raises(ValidationError) as exc_info:
            CreationPipeline(**collaborators).create(sample_dataset, request_)
        assert exc_info.value.stage == "VALIDATE"
        collaborators["pid_provider"].generate_identifier.assert_not_called()

    def test_flush_without_id(
        self, pipeline, sample_dataset, request_, mock_persistence
    ):
        mock_persistence.flush.side_effect = None
        with pytest.raises(PersistenceError) as exc_info:
            pipeline.create(sample_dataset, request_)
        assert exc_info.value.stage == "FLUSH"

    def test_post_flush_failure(self, collaborators, sample_dataset, request_):
        def explode(dataset, context):
            raise KeyError("missing")

        collaborators["hooks"] = CreationHooks(post_flush=explode)
        with pytest.raises(CommandError) as exc_info:
            CreationPipeline(**collaborators).create(sample_dataset, request_)
        assert exc_info.value.stage == "POST_FLUSH"


class TestMerge:
    def test_managed_instance_returned(
        self, pipeline, sample_dataset, request_, mock_persistence
    ):
        managed = Dataset(id=99)
        mock_persistence.merge.side_effect = lambda entity: managed
        assert pipeline.create(sample_dataset, request_) is managed


class TestMetadataKeys:
    """Verify the system metadata key check depends on the mode."""

    def test_checked_interactively(
        self, collaborators, sample_dataset, request_
    ):
        policy = MagicMock()
        collaborators["metadata_key_policy"] = policy
        CreationPipeline(**collaborators).create(sample_dataset, request_)
        policy.check.assert_called_once_with(
            sample_dataset.versions[0], request_
        )

    def test_skipped_for_harvest(self, collaborators, sample_dataset, request_):
        policy = MagicMock()
        collaborators["metadata_key_policy"] = policy
        CreationPipeline(**collaborators).create(
            sample_dataset, request_, harvested=True
        )
        policy.check.assert_not_called()


class TestIndexing:
    """Verify synchronous and asynchronous indexing paths."""

    def test_interactive_dispatches_async(
        self, pipeline, sample_dataset, request_, mock_index, collaborators
    ):
        context = _context(request_, collaborators)
        dataset = pipeline.run(sample_dataset, context)
        mock_index.async_index_dataset.assert_called_once_with(dataset, True)
        mock_index.index_dataset.assert_not_called()
        assert context.index_outcome is IndexOutcome.ASYNC_DISPATCHED

    def test_harvested_indexes_synchronously(
        self, pipeline, sample_dataset, request_, mock_index, collaborators
    ):
        context = _context(request_, collaborators, harvested=True)
        dataset = pipeline.run(sample_dataset, context)
        mock_index.index_dataset.assert_called_once_with(dataset, True)
        mock_index.async_index_dataset.assert_not_called()
        assert context.index_outcome is IndexOutcome.SYNC_INDEXED

    def test_harvested_index_failure_suppressed(
        self, pipeline, sample_dataset, request_, mock_index, collaborators, caplog
    ):
        mock_index.index_dataset.side_effect = IndexingError("solr down")
        context = _context(request_, collaborators, harvested=True)
        dataset = pipeline.run(sample_dataset, context)
        assert dataset.id == 1
        assert context.index_outcome is IndexOutcome.SYNC_FAILED
        assert context.completed[-1] is CreationStage.DONE
        assert "Failed to index harvested dataset" in caplog.text
        assert "solr down" in caplog.text

    def test_interactive_index_failure_fatal(
        self, pipeline, sample_dataset, request_, mock_index
    ):
        mock_index.async_index_dataset.side_effect = RuntimeError("pool gone")
        with pytest.raises(CommandError) as exc_info:
            pipeline.create(sample_dataset, request_)
        assert exc_info.value.stage == "INDEX"


class TestIndexServiceIntegration:
    """Run the pipeline against a real IndexService."""

    @pytest.fixture
    def backend(self):
        return InMemorySearchBackend()

    @pytest.fixture
    def index_service(self, backend):
        service = IndexService(backend, max_workers=1)
        yield service
        service.shutdown()

    @pytest.fixture
    def real_pipeline(self, collaborators, index_service):
        collaborators["index"] = index_service
        return CreationPipeline(**collaborators)

    def test_harvested_indexed(
        self, real_pipeline, sample_dataset, request_, backend
    ):
        dataset = real_pipeline.create(
            sample_dataset, request_, harvested=True
        )
        assert dataset is sample_dataset
        docs = backend.find_by_entity(1)
        assert [d["id"] for d in docs] == ["dataset_1_draft"]
        assert docs[0]["title"] == "Rainfall 2024"

    def test_interactive_indexed_async(
        self, real_pipeline, sample_dataset, request_, backend, index_service
    ):
        dataset = real_pipeline.create(sample_dataset, request_)
        index_service.shutdown(wait=True)
        assert dataset is sample_dataset
        assert backend.find_by_entity(1)
        assert not index_service.failures

    def test_merged_instance_survives_later_stages(
        self,
        real_pipeline,
        collaborators,
        sample_dataset,
        request_,
        mock_persistence,
    ):
        managed = Dataset(id=99)
        mock_persistence.merge.side_effect = lambda entity: managed
        context = _context(request_, collaborators, harvested=True)
        assert real_pipeline.run(sample_dataset, context) is managed
        assert context.completed[-1] is CreationStage.DONE
        assert context.index_outcome is IndexOutcome.SYNC_INDEXED


class TestStageLookup:
    def test_stage_methods_not_shadowed(self, pipeline):
        for stage in CreationPipeline.STAGES:
            assert callable(getattr(CreationPipeline, stage.method))
            assert stage.method not in vars(pipeline)
