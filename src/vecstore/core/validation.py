from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable

from vecstore.core.definition import (
    VectorStoreRecordDataField,
    VectorStoreRecordDefinition,
    VectorStoreRecordField,
    VectorStoreRecordKeyField,
)
from vecstore.core.definition.fields import type_name, type_parts
from vecstore.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class TypeCapability:
    """
    The field types a backend can store, partitioned by role.

    Collection typed fields (``List[T]``) are accepted when ``list`` is in the role's
    allow-set and ``T`` is in the matching element allow-set.
    """

    key_types: FrozenSet[Any]
    data_types: FrozenSet[Any]
    vector_types: FrozenSet[Any]
    data_element_types: FrozenSet[Any] = field(default_factory=frozenset)
    vector_element_types: FrozenSet[Any] = field(default_factory=lambda: frozenset({float}))


def _names(types: Iterable[Any]) -> str:
    return ", ".join(sorted(getattr(t, "__name__", str(t)) for t in types))


def _check(field: VectorStoreRecordField, allowed: FrozenSet[Any], elements: FrozenSet[Any]) -> None:
    outer, element = type_parts(field.field_type)
    if outer not in allowed:
        raise ConfigurationError(
            f"Unsupported type {type_name(field.field_type)} for {field.role.value} field '{field.name}'. "
            f"Supported types are: {_names(allowed)}"
        )
    if element is not None and element not in elements:
        raise ConfigurationError(
            f"Unsupported element type {getattr(element, '__name__', element)} for {field.role.value} field "
            f"'{field.name}'. Supported element types are: {_names(elements)}"
        )


def validate_supported_types(definition: VectorStoreRecordDefinition, capability: TypeCapability) -> None:
    """
    Check every field of a definition against what a backend can store.

    Raises:
        ConfigurationError: Naming the first offending field and its type.
    """
    for f in definition.all_fields:
        if isinstance(f, VectorStoreRecordKeyField):
            _check(f, capability.key_types, frozenset())
        elif isinstance(f, VectorStoreRecordDataField):
            _check(f, capability.data_types, capability.data_element_types)
        else:
            _check(f, capability.vector_types, capability.vector_element_types)
