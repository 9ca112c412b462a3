from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union

from vecstore.core.definition import VectorStoreRecordDefinition, VectorStoreRecordVectorField
from vecstore.core.definition.fields import type_parts
from vecstore.core.exceptions import ConfigurationError, MappingError
from vecstore.core.mapper import RecordT, VectorStoreRecordMapper
from vecstore.core.options import GetRecordOptions
from vecstore.core.serialization import (
    build_record,
    from_text,
    pack_vector,
    read_field,
    to_text,
    unpack_vector,
)

HashValue = Union[bytes, str]
TAG_SEPARATOR = ","

# Redis drops a hash once its last field is gone, so a record without any stored values
# is kept alive by this field. It is never read back into a record.
EMPTY_RECORD_FIELD = "__vecstore_empty__"
EMPTY_RECORD_VALUE = ""


def _as_str(value: HashValue) -> str:
    return value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else value


def _is_string_list(field_type: Any) -> bool:
    outer, element = type_parts(field_type)
    return outer is list and element is str


class RedisHashSetVectorStoreRecordMapper(VectorStoreRecordMapper[RecordT, Tuple[str, Dict[str, HashValue]]]):
    """
    Maps records to Redis hashes.

    The key travels next to the hash, not inside it. Strings are stored as-is, string
    lists as tag text joined by commas, vectors as packed float32 bytes and everything
    else as JSON text. Fields holding None are left out of the hash; a record with no
    stored values at all is written as a placeholder field so that it still exists.
    """

    def __init__(self, record_type: Type[RecordT], record_definition: VectorStoreRecordDefinition) -> None:
        super().__init__(record_type, record_definition)
        for field in record_definition.all_fields:
            if field.effective_storage_name == EMPTY_RECORD_FIELD:
                raise ConfigurationError(
                    f"Field '{field.name}' uses the reserved hash field name {EMPTY_RECORD_FIELD!r}"
                )

    def to_storage_model(self, record: RecordT) -> Tuple[str, Dict[str, HashValue]]:
        key_field = self.record_definition.key_field
        key = read_field(record, key_field)
        if key is None:
            raise MappingError(key_field.name, message="key must not be None")

        fields: Dict[str, HashValue] = {}
        for field in self.record_definition.data_fields + self.record_definition.vector_fields:
            value = read_field(record, field)
            if value is None:
                continue
            try:
                fields[field.effective_storage_name] = self._encode(field, value)
            except (TypeError, ValueError) as e:
                raise MappingError(field.name, e) from e
        if not fields:
            fields[EMPTY_RECORD_FIELD] = EMPTY_RECORD_VALUE
        return str(key), fields

    def _encode(self, field, value: Any) -> HashValue:
        if isinstance(field, VectorStoreRecordVectorField):
            return value if isinstance(value, str) else pack_vector(value)
        if _is_string_list(field.field_type):
            for element in value:
                if TAG_SEPARATOR in element:
                    raise ValueError(f"tag value {element!r} contains the separator {TAG_SEPARATOR!r}")
            return TAG_SEPARATOR.join(value)
        return to_text(value, field.field_type)

    def to_record(
        self, storage_model: Tuple[str, Mapping[Any, Any]], options: Optional[GetRecordOptions] = None
    ) -> Optional[RecordT]:
        key, hash_fields = storage_model
        if hash_fields is None:
            return None
        stored = {_as_str(k): v for k, v in hash_fields.items() if v is not None}

        include_vectors = bool(options and options.include_vectors)
        values: Dict[str, Any] = {self.record_definition.key_field.name: key}
        for field in self.record_definition.data_fields:
            if field.effective_storage_name in stored:
                values[field.name] = self._decode(field, stored[field.effective_storage_name])
        if include_vectors:
            for vector_field in self.record_definition.vector_fields:
                if vector_field.effective_storage_name in stored:
                    values[vector_field.name] = self._decode(vector_field, stored[vector_field.effective_storage_name])
        return build_record(self.record_type, values)

    def _decode(self, field, raw: HashValue) -> Any:
        try:
            if isinstance(field, VectorStoreRecordVectorField):
                if field.field_type is str:
                    return _as_str(raw)
                if not isinstance(raw, (bytes, bytearray)):
                    raise ValueError("vector was decoded as text, the Redis client must not decode responses")
                return unpack_vector(bytes(raw))
            if _is_string_list(field.field_type):
                text = _as_str(raw)
                return text.split(TAG_SEPARATOR) if text else []
            return from_text(raw, field.field_type)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise MappingError(field.name, e) from e
