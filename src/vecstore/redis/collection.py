from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, List, Optional, Sequence, Tuple, Type, Union
from uuid import UUID

import redis
from redis.commands.search.document import Document
from redis.commands.search.index_definition import IndexDefinition, IndexType

from vecstore.core.collection import RecordT, VectorStoreRecordCollection
from vecstore.core.definition import VectorStoreRecordDefinition
from vecstore.core.mapper import VectorStoreRecordMapper
from vecstore.core.options import (
    DeleteRecordOptions,
    GetRecordOptions,
    UpsertRecordOptions,
    VectorSearchOptions,
)
from vecstore.core.results import VectorSearchResult, VectorSearchResults
from vecstore.core.validation import TypeCapability

from .search_mapping import (
    VECTOR_SCORE_FIELD,
    RedisStorageType,
    build_query,
    build_schema,
    check_vector_fields,
)

REDIS_CAPABILITY = TypeCapability(
    key_types=frozenset({str}),
    data_types=frozenset({str, bool, int, float, Decimal, datetime, UUID, bytes, list}),
    vector_types=frozenset({list}),
    data_element_types=frozenset({str, bool, int, float}),
)

RedisClient = Union[redis.StrictRedis, redis.RedisCluster]

_UNKNOWN_INDEX_MESSAGES = ("unknown index name", "no such index", "unknown index")


def is_unknown_index_error(error: redis.ResponseError) -> bool:
    return any(message in str(error).lower() for message in _UNKNOWN_INDEX_MESSAGES)


def _as_str(value: Union[bytes, str]) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisVectorStoreRecordCollection(VectorStoreRecordCollection[RecordT]):
    """
    A collection kept as one Redis entry per record plus a RediSearch index named after
    the collection, built over the key prefix ``<collection>:``.
    """

    io_errors = (redis.RedisError,)
    storage_type: ClassVar[RedisStorageType]
    index_type: ClassVar[IndexType]

    def __init__(
        self,
        client: RedisClient,
        collection_name: str,
        record_type: Type[RecordT],
        record_definition: Optional[VectorStoreRecordDefinition] = None,
        prefix_collection_name: bool = True,
    ) -> None:
        self.client = client
        self.prefix_collection_name = prefix_collection_name
        super().__init__(collection_name, record_type, record_definition)
        check_vector_fields(self.record_definition)
        self.mapper = self._create_mapper()

    @abstractmethod
    def _create_mapper(self) -> VectorStoreRecordMapper:
        pass  # pragma: no cover

    def get_type_capability(self) -> TypeCapability:
        return REDIS_CAPABILITY

    @property
    def key_prefix(self) -> str:
        return f"{self.collection_name}:"

    def redis_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}" if self.prefix_collection_name else key

    def record_key(self, redis_key: str) -> str:
        if self.prefix_collection_name and redis_key.startswith(self.key_prefix):
            return redis_key[len(self.key_prefix) :]
        return redis_key

    # ---------------------- collection ----------------------

    def _index_exists(self) -> bool:
        try:
            self.client.ft(self.collection_name).info()
            return True
        except redis.ResponseError as e:
            if is_unknown_index_error(e):
                return False
            raise

    async def collection_exists(self) -> bool:
        return await self._run("check collection", self._index_exists)

    async def create_collection(self) -> None:
        schema = build_schema(self.record_definition, self.storage_type)
        index_definition = IndexDefinition(prefix=[self.key_prefix], index_type=self.index_type)
        await self._run(
            "create collection",
            lambda: self.client.ft(self.collection_name).create_index(schema, definition=index_definition),
        )

    def _drop_index(self) -> None:
        try:
            self.client.ft(self.collection_name).dropindex(delete_documents=False)
        except redis.ResponseError as e:
            if not is_unknown_index_error(e):
                raise

    async def delete_collection(self) -> None:
        await self._run("delete collection", self._drop_index)

    # ---------------------- records ----------------------

    @abstractmethod
    def _fetch(self, redis_keys: Sequence[str], include_vectors: bool) -> List[Tuple[str, Any]]:
        """
        Read the stored entries for ``redis_keys`` in one pipeline, as ``(redis_key, raw)`` pairs.

        ``raw`` is None for keys that hold no record.
        """
        pass  # pragma: no cover

    @abstractmethod
    def _write(self, storage_models: Sequence[Tuple[str, Any]]) -> None:
        """Write mapped records in one pipeline. Entries written before a failing command stay written."""
        pass  # pragma: no cover

    @abstractmethod
    def _search_document(self, doc: Document) -> Any:
        """The raw stored entry carried by a search result document, in the form ``_fetch`` returns."""
        pass  # pragma: no cover

    async def get_batch(self, keys: Sequence[str], options: Optional[GetRecordOptions] = None) -> List[RecordT]:
        if not keys:
            return []
        include_vectors = bool(options and options.include_vectors)
        redis_keys = [self.redis_key(k) for k in keys]
        entries = await self._run("get records", self._fetch, redis_keys, include_vectors)
        records = [self.mapper.to_record((self.record_key(redis_key), raw), options) for redis_key, raw in entries]
        return [record for record in records if record is not None]

    async def upsert_batch(
        self, records: Sequence[RecordT], options: Optional[UpsertRecordOptions] = None
    ) -> List[str]:
        storage_models = [self.mapper.to_storage_model(record) for record in records]
        if storage_models:
            await self._run("upsert records", self._write, storage_models)
        return [key for key, _ in storage_models]

    async def delete_batch(self, keys: Sequence[str], options: Optional[DeleteRecordOptions] = None) -> None:
        if not keys:
            return
        redis_keys = [self.redis_key(k) for k in keys]
        await self._run("delete records", self.client.delete, *redis_keys)

    # ---------------------- search ----------------------

    async def search(
        self, vector: Sequence[float], options: Optional[VectorSearchOptions] = None
    ) -> VectorSearchResults[RecordT]:
        """
        KNN search through the collection's index.

        The index returns the best ``top + skip`` matches together with their stored
        fields; the window is cut out client side.
        """
        options = options or VectorSearchOptions()
        query, params = build_query(vector, options, self.record_definition, self.storage_type)
        result = await self._run(
            "search", lambda: self.client.ft(self.collection_name).search(query, query_params=params)
        )

        get_options = options.get_record_options()
        results: List[VectorSearchResult] = []
        for doc in result.docs[options.window(len(result.docs))]:
            record_key = self.record_key(_as_str(doc.id))
            record = self.mapper.to_record((record_key, self._search_document(doc)), get_options)
            if record is not None:
                results.append(VectorSearchResult(record=record, score=float(getattr(doc, VECTOR_SCORE_FIELD))))
        return VectorSearchResults(results=results)
