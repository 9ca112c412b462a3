import threading
import typing
from typing import Any, Dict, List, Optional, Sequence, Type

from pydantic import BaseModel

from vecstore.core.exceptions import ConfigurationError

from .fields import (
    VectorStoreRecordData,
    VectorStoreRecordDataField,
    VectorStoreRecordField,
    VectorStoreRecordKey,
    VectorStoreRecordKeyField,
    VectorStoreRecordVector,
    VectorStoreRecordVectorField,
    unwrap_optional,
)

_definition_cache: Dict[type, "VectorStoreRecordDefinition"] = {}
_cache_lock = threading.Lock()


class VectorStoreRecordDefinition:
    """
    Describes the fields of a record type and the role each one plays.

    Definitions are immutable once created. Build one explicitly with :meth:`create`
    or derive it from a pydantic record model carrying role markers with
    :meth:`from_record_type`.
    """

    def __init__(
        self,
        key_field: VectorStoreRecordKeyField,
        data_fields: Sequence[VectorStoreRecordDataField],
        vector_fields: Sequence[VectorStoreRecordVectorField],
        all_fields: Sequence[VectorStoreRecordField],
    ) -> None:
        self._key_field = key_field
        self._data_fields = tuple(data_fields)
        self._vector_fields = tuple(vector_fields)
        self._all_fields = tuple(all_fields)
        self._by_name = {f.name: f for f in self._all_fields}

    @classmethod
    def create(cls, fields: Sequence[VectorStoreRecordField]) -> "VectorStoreRecordDefinition":
        """Build a definition from an ordered list of fields, checking the role invariants."""
        key_fields = [f for f in fields if isinstance(f, VectorStoreRecordKeyField)]
        if len(key_fields) != 1:
            raise ConfigurationError(f"Exactly one key field is required, found {len(key_fields)}")

        names = set()
        storage_names = set()
        for field in fields:
            if field.name in names:
                raise ConfigurationError(f"Duplicate field name '{field.name}'")
            if field.effective_storage_name in storage_names:
                raise ConfigurationError(f"Duplicate storage name '{field.effective_storage_name}'")
            names.add(field.name)
            storage_names.add(field.effective_storage_name)

            if isinstance(field, VectorStoreRecordVectorField) and field.dimensions is not None:
                if field.dimensions < 1:
                    raise ConfigurationError(
                        f"Vector field '{field.name}' must have dimensions >= 1, got {field.dimensions}"
                    )

        data_fields = [f for f in fields if isinstance(f, VectorStoreRecordDataField)]
        vector_fields = [f for f in fields if isinstance(f, VectorStoreRecordVectorField)]
        return cls(key_fields[0], data_fields, vector_fields, list(fields))

    @classmethod
    def from_record_type(cls, record_type: Type[BaseModel]) -> "VectorStoreRecordDefinition":
        """
        Derive a definition from the ``Annotated`` role markers of a pydantic model.

        The result is cached per type, so repeated calls return the same definition.
        Attributes without a role marker are not part of the definition.
        """
        cached = _definition_cache.get(record_type)
        if cached is not None:
            return cached

        if not (isinstance(record_type, type) and issubclass(record_type, BaseModel)):
            raise ConfigurationError(f"Record type {record_type!r} must be a pydantic model")

        fields: List[VectorStoreRecordField] = []
        for name, info in record_type.model_fields.items():
            field_type = unwrap_optional(info.annotation)
            for marker in info.metadata:
                field = _field_from_marker(name, field_type, marker)
                if field is not None:
                    fields.append(field)
                    break

        definition = cls.create(fields)
        with _cache_lock:
            return _definition_cache.setdefault(record_type, definition)

    @property
    def key_field(self) -> VectorStoreRecordKeyField:
        return self._key_field

    @property
    def data_fields(self) -> List[VectorStoreRecordDataField]:
        return list(self._data_fields)

    @property
    def vector_fields(self) -> List[VectorStoreRecordVectorField]:
        return list(self._vector_fields)

    @property
    def all_fields(self) -> List[VectorStoreRecordField]:
        return list(self._all_fields)

    @property
    def non_vector_fields(self) -> List[VectorStoreRecordField]:
        """Key and data fields, used for projections that exclude vectors."""
        return [f for f in self._all_fields if not isinstance(f, VectorStoreRecordVectorField)]

    def get_field(self, name: str) -> VectorStoreRecordField:
        field = self._by_name.get(name)
        if field is None:
            raise ConfigurationError(f"Field not found: {name}")
        return field

    def find_by_storage_name(self, storage_name: str) -> Optional[VectorStoreRecordField]:
        for field in self._all_fields:
            if field.effective_storage_name == storage_name:
                return field
        return None

    def get_vector_field(self, name: Optional[str] = None) -> VectorStoreRecordVectorField:
        """
        Resolve the vector field a search targets: the named one, or the first declared.

        Raises:
            ConfigurationError: If the definition has no vector fields or the name is unknown.
        """
        if not self._vector_fields:
            raise ConfigurationError("No vector fields defined. Cannot perform vector search")
        if name is None:
            return self._vector_fields[0]
        for field in self._vector_fields:
            if name in (field.name, field.effective_storage_name):
                return field
        raise ConfigurationError(f"Vector field not found: {name}")

    def require_vector_dimensions(self) -> None:
        for field in self._vector_fields:
            if field.dimensions is None or field.dimensions < 1:
                raise ConfigurationError(f"Vector field '{field.name}' must have dimensions >= 1 to create a collection")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorStoreRecordDefinition):
            return NotImplemented
        return self._all_fields == other._all_fields

    def __hash__(self) -> int:
        return hash(self._all_fields)

    def __repr__(self) -> str:
        return f"VectorStoreRecordDefinition(fields={[f.name for f in self._all_fields]})"


def _field_from_marker(name: str, field_type: Any, marker: Any) -> Optional[VectorStoreRecordField]:
    if isinstance(marker, VectorStoreRecordKey):
        return VectorStoreRecordKeyField(name=name, storage_name=marker.storage_name, field_type=field_type)
    if isinstance(marker, VectorStoreRecordData):
        return VectorStoreRecordDataField(
            name=name,
            storage_name=marker.storage_name,
            field_type=field_type,
            is_filterable=marker.is_filterable,
            is_full_text_searchable=marker.is_full_text_searchable,
        )
    if isinstance(marker, VectorStoreRecordVector):
        if field_type is list:
            field_type = typing.List[float]
        return VectorStoreRecordVectorField(
            name=name,
            storage_name=marker.storage_name,
            field_type=field_type,
            dimensions=marker.dimensions,
            distance_function=marker.distance_function,
            index_kind=marker.index_kind,
        )
    return None
