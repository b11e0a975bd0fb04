"""Tests for ControlledVocabularyRegistrar."""

from unittest.mock import MagicMock

import pytest

from rdrepo.data.adapters.vocabulary_registrar import (
    ControlledVocabularyRegistrar,
)
from rdrepo.domain.entities.dataversion import DatasetVersion
from rdrepo.domain.exceptions import VocabularyRegistrationError

TERM = "https://vocab.example.org/rain"


def _version(value):
    return DatasetVersion(metadata={"citation": {"keyword": value}})


class TestControlledVocabularyRegistrar:
    """Verify external term resolution and caching."""

    def test_no_resolvers_is_no_op(self):
        ControlledVocabularyRegistrar().register_external_values(_version(TERM))

    def test_registers_term(self):
        resolver = MagicMock(return_value={"label": "rain"})
        registrar = ControlledVocabularyRegistrar({"citation.keyword": resolver})
        registrar.register_external_values(_version(TERM))
        resolver.assert_called_once_with(TERM)
        assert registrar.registered[TERM] == {"label": "rain"}

    def test_list_values(self):
        resolver = MagicMock(return_value={"label": "x"})
        registrar = ControlledVocabularyRegistrar({"citation.keyword": resolver})
        registrar.register_external_values(_version([TERM, TERM + "2"]))
        assert resolver.call_count == 2

    def test_cached_terms_not_resolved_again(self):
        resolver = MagicMock(return_value={"label": "rain"})
        registrar = ControlledVocabularyRegistrar({"citation.keyword": resolver})
        registrar.register_external_values(_version(TERM))
        registrar.register_external_values(_version(TERM))
        resolver.assert_called_once()

    def test_empty_field_skipped(self):
        resolver = MagicMock()
        registrar = ControlledVocabularyRegistrar({"citation.keyword": resolver})
        registrar.register_external_values(_version(""))
        resolver.assert_not_called()

    def test_unknown_term(self):
        registrar = ControlledVocabularyRegistrar(
            {"citation.keyword": lambda term: None}
        )
        with pytest.raises(VocabularyRegistrationError, match="Unknown"):
            registrar.register_external_values(_version(TERM))

    def test_resolver_failure_wrapped(self):
        resolver = MagicMock(side_effect=TimeoutError("slow"))
        registrar = ControlledVocabularyRegistrar({"citation.keyword": resolver})
        with pytest.raises(VocabularyRegistrationError) as exc_info:
            registrar.register_external_values(_version(TERM))
        assert isinstance(exc_info.value.__cause__, TimeoutError)
