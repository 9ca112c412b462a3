from datetime import datetime
from typing import Dict, List, Set

import pytest

from vecstore.core.definition import (
    VectorStoreRecordDataField,
    VectorStoreRecordDefinition,
    VectorStoreRecordKeyField,
    VectorStoreRecordVectorField,
)
from vecstore.core.exceptions import ConfigurationError
from vecstore.core.validation import TypeCapability, validate_supported_types

CAPABILITY = TypeCapability(
    key_types=frozenset({str}),
    data_types=frozenset({str, int, float, bool, list}),
    vector_types=frozenset({list}),
    data_element_types=frozenset({str}),
)


def definition(*extra):
    return VectorStoreRecordDefinition.create([VectorStoreRecordKeyField(name="id"), *extra])


def test_supported_definition_passes():
    validate_supported_types(
        definition(
            VectorStoreRecordDataField(name="name", field_type=str),
            VectorStoreRecordDataField(name="tags", field_type=List[str]),
            VectorStoreRecordVectorField(name="embedding", dimensions=4),
        ),
        CAPABILITY,
    )


def test_unsupported_key_type():
    bad = VectorStoreRecordDefinition.create([VectorStoreRecordKeyField(name="id", field_type=int)])

    with pytest.raises(ConfigurationError, match="Unsupported type int for key field 'id'"):
        validate_supported_types(bad, CAPABILITY)


def test_unsupported_data_type_names_supported_types():
    bad = definition(VectorStoreRecordDataField(name="created", field_type=datetime))

    with pytest.raises(ConfigurationError) as exc_info:
        validate_supported_types(bad, CAPABILITY)

    message = str(exc_info.value)
    assert "data field 'created'" in message
    assert "datetime" in message
    assert "Supported types are: bool, float, int, list, str" in message


def test_unsupported_element_type():
    bad = definition(VectorStoreRecordDataField(name="scores", field_type=List[int]))

    with pytest.raises(ConfigurationError, match="Unsupported element type int for data field 'scores'"):
        validate_supported_types(bad, CAPABILITY)


def test_collection_types_are_checked_as_lists():
    ok = definition(VectorStoreRecordDataField(name="labels", field_type=Set[str]))
    validate_supported_types(ok, CAPABILITY)

    bad = definition(VectorStoreRecordDataField(name="meta", field_type=Dict[str, str]))
    with pytest.raises(ConfigurationError, match="'meta'"):
        validate_supported_types(bad, CAPABILITY)


def test_unsupported_vector_element_type():
    bad = definition(VectorStoreRecordVectorField(name="embedding", field_type=List[str], dimensions=2))

    with pytest.raises(ConfigurationError, match="vector field 'embedding'"):
        validate_supported_types(bad, CAPABILITY)
