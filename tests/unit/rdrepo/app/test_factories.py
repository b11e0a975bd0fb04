"""Tests for DatasetFactory and DataFileFactory."""

from rdrepo.app.factory.datafile_factory import DataFileFactory
from rdrepo.app.factory.dataset_factory import DatasetFactory
from rdrepo.domain.entities.dataset_type import DatasetType
from rdrepo.domain.enums import VersionState


class TestDataFileFactory:
    def test_create(self):
        datafile = DataFileFactory().create(
            "data.csv", "text/csv", checksum="abc", filesize=12
        )
        assert datafile.label == "data.csv"
        assert datafile.content_type == "text/csv"
        assert datafile.checksum_type == "MD5"
        assert datafile.storage_identifier is None
        assert datafile.id is None

    def test_storage_key(self):
        datafile = DataFileFactory("s3").create("a.bin", storage_key="18f2a")
        assert datafile.storage_identifier == "s3://18f2a"


class TestDatasetFactory:
    """Verify new aggregates are ready for the creation pipeline."""

    def test_single_draft_version(self):
        dataset = DatasetFactory().create("Rainfall")
        assert len(dataset.versions) == 1
        version = dataset.latest_version
        assert version.dataset is dataset
        assert version.version_state is VersionState.DRAFT
        assert version.title == "Rainfall"
        assert dataset.owner == "root"

    def test_files_associated(self):
        files = [DataFileFactory().create(n) for n in ("a.csv", "b.csv")]
        dataset = DatasetFactory().create("T", files=files)
        assert dataset.files == files
        version = dataset.latest_version
        assert version.datafiles == files
        assert [fm.label for fm in version.file_metadatas] == ["a.csv", "b.csv"]

    def test_metadata_merged_with_title(self):
        metadata = {"citation": {"author": "Doe"}, "geo": {"country": "NL"}}
        dataset = DatasetFactory().create("T", metadata=metadata)
        version = dataset.latest_version
        assert version.metadata["citation"] == {"author": "Doe", "title": "T"}
        assert version.metadata["geo"] == {"country": "NL"}
        assert "title" not in metadata["citation"]

    def test_optional_fields(self):
        kind = DatasetType("software")
        dataset = DatasetFactory(default_owner="lab").create(
            "T", dataset_type=kind, identifier="X1", harvested_from="oai"
        )
        assert dataset.owner == "lab"
        assert dataset.dataset_type is kind
        assert dataset.identifier == "X1"
        assert dataset.is_harvested
