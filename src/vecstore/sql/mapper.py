from typing import Any, Dict, Mapping, Optional, Type

from vecstore.core.definition import (
    VectorStoreRecordDefinition,
    VectorStoreRecordVectorField,
)
from vecstore.core.exceptions import MappingError
from vecstore.core.mapper import RecordT, VectorStoreRecordMapper
from vecstore.core.options import GetRecordOptions
from vecstore.core.serialization import build_record, decode_value, read_field

from .query_provider import SQLVectorStoreQueryProvider, row_value


class SQLVectorStoreRecordMapper(VectorStoreRecordMapper[RecordT, Dict[str, Any]]):
    """Maps records to bind parameters keyed by column name, and result rows back to records."""

    def __init__(
        self,
        record_type: Type[RecordT],
        record_definition: VectorStoreRecordDefinition,
        query_provider: SQLVectorStoreQueryProvider,
    ) -> None:
        super().__init__(record_type, record_definition)
        self.query_provider = query_provider

    def to_storage_model(self, record: RecordT) -> Dict[str, Any]:
        row: Dict[str, Any] = {}
        for field in self.record_definition.all_fields:
            value = read_field(record, field)
            try:
                if isinstance(field, VectorStoreRecordVectorField):
                    row[field.effective_storage_name] = self.query_provider.encode_vector(value)
                else:
                    row[field.effective_storage_name] = self.query_provider.encode_column(value, field.field_type)
            except (TypeError, ValueError) as e:
                raise MappingError(field.name, e) from e

        key_field = self.record_definition.key_field
        if row[key_field.effective_storage_name] is None:
            raise MappingError(key_field.name, message="key must not be None")
        return row

    def to_record(self, storage_model: Mapping[str, Any], options: Optional[GetRecordOptions] = None) -> Optional[RecordT]:
        if not storage_model:
            return None
        include_vectors = bool(options and options.include_vectors)
        fields = self.record_definition.all_fields if include_vectors else self.record_definition.non_vector_fields

        values: Dict[str, Any] = {}
        for field in fields:
            raw = row_value(storage_model, field.effective_storage_name)
            try:
                if isinstance(field, VectorStoreRecordVectorField) and field.field_type is not str:
                    values[field.name] = self.query_provider.decode_vector(raw)
                else:
                    values[field.name] = decode_value(raw, field.field_type)
            except (TypeError, ValueError, ArithmeticError) as e:
                raise MappingError(field.name, e) from e
        return build_record(self.record_type, values)

    def key_of(self, row: Mapping[str, Any]) -> str:
        return str(row[self.record_definition.key_field.effective_storage_name])
