from typing import Any, Dict, Mapping, Optional, Tuple

from vecstore.core.exceptions import MappingError
from vecstore.core.mapper import RecordT, VectorStoreRecordMapper
from vecstore.core.options import GetRecordOptions
from vecstore.core.serialization import (
    build_record,
    decode_fields,
    encode_value,
    read_field,
)

JSON_PATH_PREFIX = "$."


def strip_path(name: str) -> str:
    return name[len(JSON_PATH_PREFIX) :] if name.startswith(JSON_PATH_PREFIX) else name


def field_path(storage_name: str) -> str:
    return f"{JSON_PATH_PREFIX}{storage_name}"


class RedisJsonVectorStoreRecordMapper(VectorStoreRecordMapper[RecordT, Tuple[str, Dict[str, Any]]]):
    """
    Maps records to RedisJSON documents.

    The key is removed from the document on write and put back on read. Documents read
    with selected paths come back as ``{"$.field": [value]}``; the path prefix and the
    result array are removed here, mirroring how the paths were built.
    """

    def to_storage_model(self, record: RecordT) -> Tuple[str, Dict[str, Any]]:
        key_field = self.record_definition.key_field
        key = read_field(record, key_field)
        if key is None:
            raise MappingError(key_field.name, message="key must not be None")

        document: Dict[str, Any] = {}
        for field in self.record_definition.data_fields + self.record_definition.vector_fields:
            value = read_field(record, field)
            try:
                document[field.effective_storage_name] = encode_value(value, field.field_type)
            except (TypeError, ValueError) as e:
                raise MappingError(field.name, e) from e
        return str(key), document

    def to_record(
        self, storage_model: Tuple[str, Optional[Mapping[str, Any]]], options: Optional[GetRecordOptions] = None
    ) -> Optional[RecordT]:
        key, document = storage_model
        if document is None:
            return None

        normalized: Dict[str, Any] = {}
        for name, value in document.items():
            if name.startswith(JSON_PATH_PREFIX):
                if not value:
                    continue
                value = value[0]
            normalized[strip_path(name)] = value

        key_field = self.record_definition.key_field
        normalized.pop(key_field.effective_storage_name, None)
        include_vectors = bool(options and options.include_vectors)
        fields = self.record_definition.data_fields
        if include_vectors:
            fields = fields + self.record_definition.vector_fields

        values = decode_fields(fields, normalized)
        values[key_field.name] = key
        return build_record(self.record_type, values)
