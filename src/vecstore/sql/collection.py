from typing import List, Optional, Sequence, Type

from sqlalchemy.exc import SQLAlchemyError

from vecstore.core.collection import RecordT, VectorStoreRecordCollection
from vecstore.core.definition import VectorStoreRecordDefinition
from vecstore.core.options import (
    DeleteRecordOptions,
    GetRecordOptions,
    UpsertRecordOptions,
    VectorSearchOptions,
)
from vecstore.core.results import VectorSearchResult, VectorSearchResults
from vecstore.core.validation import TypeCapability

from .mapper import SQLVectorStoreRecordMapper
from .query_provider import SQLVectorStoreQueryProvider


class SQLVectorStoreRecordCollection(VectorStoreRecordCollection[RecordT]):
    """
    A collection stored in a SQL table.

    The table name is validated when the collection is constructed, and the record's
    field types are checked against the dialect, so configuration problems surface
    before any statement is sent.
    """

    io_errors = (SQLAlchemyError,)

    def __init__(
        self,
        collection_name: str,
        record_type: Type[RecordT],
        query_provider: SQLVectorStoreQueryProvider,
        record_definition: Optional[VectorStoreRecordDefinition] = None,
    ) -> None:
        self.query_provider = query_provider
        query_provider.get_collection_table_name(collection_name)
        super().__init__(collection_name, record_type, record_definition)
        self.mapper = SQLVectorStoreRecordMapper(record_type, self.record_definition, query_provider)

    def get_type_capability(self) -> TypeCapability:
        return self.query_provider.get_type_capability()

    async def collection_exists(self) -> bool:
        return await self._run("check collection", self.query_provider.collection_exists, self.collection_name)

    async def create_collection(self) -> None:
        await self._run(
            "create collection", self.query_provider.create_collection, self.collection_name, self.record_definition
        )

    async def delete_collection(self) -> None:
        await self._run("delete collection", self.query_provider.delete_collection, self.collection_name)

    async def get_batch(self, keys: Sequence[str], options: Optional[GetRecordOptions] = None) -> List[RecordT]:
        include_vectors = bool(options and options.include_vectors)
        rows = await self._run(
            "get records",
            self.query_provider.get_records,
            self.collection_name,
            self.record_definition,
            list(keys),
            include_vectors,
        )
        records = [self.mapper.to_record(row, options) for row in rows]
        return [r for r in records if r is not None]

    async def upsert_batch(
        self, records: Sequence[RecordT], options: Optional[UpsertRecordOptions] = None
    ) -> List[str]:
        rows = [self.mapper.to_storage_model(record) for record in records]
        await self._run(
            "upsert records", self.query_provider.upsert_records, self.collection_name, self.record_definition, rows
        )
        return [self.mapper.key_of(row) for row in rows]

    async def delete_batch(self, keys: Sequence[str], options: Optional[DeleteRecordOptions] = None) -> None:
        await self._run(
            "delete records", self.query_provider.delete_records, self.collection_name, self.record_definition, list(keys)
        )

    async def search(
        self, vector: Sequence[float], options: Optional[VectorSearchOptions] = None
    ) -> VectorSearchResults[RecordT]:
        options = options or VectorSearchOptions()
        self.record_definition.get_vector_field(options.vector_field_name)
        # Fail on unsupported clauses before any I/O.
        self.query_provider.build_filter(options.filter, self.record_definition)

        ranked = await self._run(
            "search", self.query_provider.search, self.collection_name, self.record_definition, list(vector), options
        )
        get_options = options.get_record_options()
        results: List[VectorSearchResult[RecordT]] = []
        for row, score in ranked:
            record = self.mapper.to_record(row, get_options)
            if record is not None:
                results.append(VectorSearchResult(record=record, score=score))
        return VectorSearchResults(results=results)
