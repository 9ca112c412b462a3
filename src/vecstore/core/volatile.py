"""In-memory vector store for testing and prototyping.

Not for production use. Records are kept in process memory as JSON compatible
documents and searched exactly with the record definition's distance function.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type
from uuid import UUID

from pydantic import BaseModel

from vecstore.core.collection import RecordT, VectorStoreRecordCollection
from vecstore.core.definition import (
    VectorStoreRecordDefinition,
    VectorStoreRecordVectorField,
)
from vecstore.core.exceptions import MappingError, UnsupportedFilterError
from vecstore.core.filter import (
    AnyTagEqualToFilterClause,
    EqualToFilterClause,
    FilterClause,
    VectorSearchFilter,
)
from vecstore.core.mapper import VectorStoreRecordMapper
from vecstore.core.options import (
    DeleteRecordOptions,
    GetRecordOptions,
    UpsertRecordOptions,
    VectorSearchOptions,
)
from vecstore.core.results import VectorSearchResult, VectorSearchResults
from vecstore.core.serialization import (
    build_record,
    decode_fields,
    decode_value,
    encode_value,
    read_field,
)
from vecstore.core.store import CollectionFactory, VectorStore
from vecstore.core.validation import TypeCapability
from vecstore.core.vector_operations import exact_search

VOLATILE_CAPABILITY = TypeCapability(
    key_types=frozenset({str}),
    data_types=frozenset({str, bool, int, float, Decimal, datetime, UUID, bytes, list}),
    vector_types=frozenset({list}),
    data_element_types=frozenset({str, bool, int, float}),
)

Document = Dict[str, Any]


class VolatileVectorStoreRecordMapper(VectorStoreRecordMapper[RecordT, Tuple[str, Document]]):
    def to_storage_model(self, record: RecordT) -> Tuple[str, Document]:
        key = read_field(record, self.record_definition.key_field)
        document: Document = {}
        for field in self.record_definition.all_fields:
            value = read_field(record, field)
            try:
                document[field.effective_storage_name] = encode_value(value, field.field_type)
            except (TypeError, ValueError) as e:
                raise MappingError(field.name, e) from e
        return str(key), document

    def to_record(
        self, storage_model: Tuple[str, Document], options: Optional[GetRecordOptions] = None
    ) -> Optional[RecordT]:
        _, document = storage_model
        if not document:
            return None
        include_vectors = bool(options and options.include_vectors)
        fields = self.record_definition.all_fields if include_vectors else self.record_definition.non_vector_fields
        return build_record(self.record_type, decode_fields(fields, document))


class VolatileVectorStoreRecordCollection(VectorStoreRecordCollection[RecordT]):
    def __init__(
        self,
        collection_name: str,
        record_type: Type[RecordT],
        record_definition: Optional[VectorStoreRecordDefinition] = None,
        collections: Optional[Dict[str, Dict[str, Document]]] = None,
    ) -> None:
        super().__init__(collection_name, record_type, record_definition)
        self._collections: Dict[str, Dict[str, Document]] = collections if collections is not None else {}
        self.mapper = VolatileVectorStoreRecordMapper(record_type, self.record_definition)

    def get_type_capability(self) -> TypeCapability:
        return VOLATILE_CAPABILITY

    def _table(self, create: bool = False) -> Dict[str, Document]:
        if create:
            return self._collections.setdefault(self.collection_name, {})
        return self._collections.get(self.collection_name, {})

    async def collection_exists(self) -> bool:
        return self.collection_name in self._collections

    async def create_collection(self) -> None:
        self._collections.setdefault(self.collection_name, {})

    async def delete_collection(self) -> None:
        self._collections.pop(self.collection_name, None)

    async def get_batch(self, keys: Sequence[str], options: Optional[GetRecordOptions] = None) -> List[RecordT]:
        table = self._table()
        records: List[RecordT] = []
        for key in keys:
            document = table.get(key)
            if document is None:
                continue
            record = self.mapper.to_record((key, document), options)
            if record is not None:
                records.append(record)
        return records

    async def upsert_batch(
        self, records: Sequence[RecordT], options: Optional[UpsertRecordOptions] = None
    ) -> List[str]:
        table = self._table(create=True)
        keys: List[str] = []
        for record in records:
            key, document = self.mapper.to_storage_model(record)
            table[key] = document
            keys.append(key)
        return keys

    async def delete_batch(self, keys: Sequence[str], options: Optional[DeleteRecordOptions] = None) -> None:
        table = self._table()
        for key in keys:
            table.pop(key, None)

    async def search(
        self, vector: Sequence[float], options: Optional[VectorSearchOptions] = None
    ) -> VectorSearchResults[RecordT]:
        options = options or VectorSearchOptions()
        vector_field = self.record_definition.get_vector_field(options.vector_field_name)
        _check_filter(options.filter)
        candidates = [
            (key, _stored_vector(document, vector_field))
            for key, document in self._table().items()
            if self._matches(document, options.filter)
        ]
        ranked = exact_search(candidates, vector, vector_field.distance_function, options)

        get_options = options.get_record_options()
        table = self._table()
        results: List[VectorSearchResult[RecordT]] = []
        for key, score in ranked:
            record = self.mapper.to_record((key, table[key]), get_options)
            if record is not None:
                results.append(VectorSearchResult(record=record, score=score))
        return VectorSearchResults(results=results)

    # ---- Helpers: filtering ----
    def _matches(self, document: Document, search_filter: Optional[VectorSearchFilter]) -> bool:
        if search_filter is None:
            return True
        return all(self._eval_clause(document, clause) for clause in search_filter.clauses)

    def _eval_clause(self, document: Document, clause: FilterClause) -> bool:
        field = self.record_definition.find_by_storage_name(clause.field_name)
        if field is None:
            return False
        value = decode_value(document.get(clause.field_name), field.field_type)
        if isinstance(clause, EqualToFilterClause):
            return bool(value == clause.value)
        if isinstance(clause, AnyTagEqualToFilterClause):
            return isinstance(value, list) and clause.value in value
        return False


def _check_filter(search_filter: Optional[VectorSearchFilter]) -> None:
    for clause in search_filter.clauses if search_filter else []:
        if not isinstance(clause, (EqualToFilterClause, AnyTagEqualToFilterClause)):
            raise UnsupportedFilterError(f"Unsupported filter clause type '{type(clause).__name__}'")


def _stored_vector(document: Document, field: VectorStoreRecordVectorField) -> Optional[List[float]]:
    stored = document.get(field.effective_storage_name)
    return [float(v) for v in stored] if stored is not None else None


class VolatileVectorStore(VectorStore):
    """Keeps every collection in a dictionary owned by the store."""

    def __init__(self, collection_factory: Optional[CollectionFactory] = None) -> None:
        super().__init__(collection_factory)
        self._collections: Dict[str, Dict[str, Document]] = {}

    def _new_collection(
        self,
        collection_name: str,
        record_type: Type[BaseModel],
        record_definition: Optional[VectorStoreRecordDefinition],
    ) -> VolatileVectorStoreRecordCollection:
        return VolatileVectorStoreRecordCollection(
            collection_name, record_type, record_definition, collections=self._collections
        )

    async def list_collection_names(self) -> List[str]:
        return list(self._collections.keys())
