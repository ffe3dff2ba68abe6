"""Tests for the docfilter exception hierarchy."""

import pytest

from docfilter.exceptions import (
    CollectionNotInitializedError,
    ConfigurationError,
    DocFilterError,
    InvalidFieldError,
    MissingConfigError,
    ValidationError,
)


class TestDocFilterError:
    def test_message_only(self):
        err = DocFilterError("Something failed")
        assert str(err) == "Something failed"
        assert err.details == {}

    def test_message_with_details(self):
        err = DocFilterError("Invalid value", field="limit", value=-1)
        assert str(err) == "Invalid value (field='limit', value=-1)"

    def test_details_only(self):
        assert str(DocFilterError(collection_name="tenants")) == "collection_name='tenants'"

    def test_repr(self):
        err = DocFilterError("Oops", field="x")
        assert repr(err) == "DocFilterError(message='Oops', details={'field': 'x'})"


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_class,parent",
        [
            (ValidationError, DocFilterError),
            (InvalidFieldError, ValidationError),
            (ConfigurationError, DocFilterError),
            (MissingConfigError, ConfigurationError),
            (CollectionNotInitializedError, DocFilterError),
        ],
    )
    def test_subclass(self, exc_class, parent):
        assert issubclass(exc_class, parent)

    def test_catch_by_base(self):
        with pytest.raises(DocFilterError) as exc_info:
            raise MissingConfigError("Configuration not set", config_key="MONGO_URI")
        assert exc_info.value.details["config_key"] == "MONGO_URI"
