from typing import Any, Dict, List, Sequence, Tuple

from redis.commands.search.document import Document
from redis.commands.search.index_definition import IndexType

from vecstore.core.collection import RecordT

from .collection import RedisVectorStoreRecordCollection
from .hashset_mapper import EMPTY_RECORD_FIELD, HashValue, RedisHashSetVectorStoreRecordMapper
from .search_mapping import VECTOR_SCORE_FIELD, RedisStorageType

_DOCUMENT_ATTRIBUTES = ("id", "payload", VECTOR_SCORE_FIELD)


class RedisHashSetVectorStoreRecordCollection(RedisVectorStoreRecordCollection[RecordT]):
    """Records stored as Redis hashes, one hash per record."""

    storage_type = RedisStorageType.HASH_SET
    index_type = IndexType.HASH

    def _create_mapper(self) -> RedisHashSetVectorStoreRecordMapper:
        return RedisHashSetVectorStoreRecordMapper(self.record_type, self.record_definition)

    def _fetch(self, redis_keys: Sequence[str], include_vectors: bool) -> List[Tuple[str, Any]]:
        data_fields = [f.effective_storage_name for f in self.record_definition.data_fields]
        partial = not include_vectors and bool(data_fields)

        with self.client.pipeline(transaction=False) as pipe:
            for redis_key in redis_keys:
                if partial:
                    # HMGET answers nils for a missing key and for a hash without those fields alike.
                    pipe.exists(redis_key)
                    pipe.hmget(redis_key, data_fields)
                else:
                    pipe.hgetall(redis_key)
            responses = pipe.execute()

        entries: List[Tuple[str, Any]] = []
        if partial:
            for i, redis_key in enumerate(redis_keys):
                exists, values = responses[2 * i], responses[2 * i + 1]
                entries.append((redis_key, dict(zip(data_fields, values)) if exists else None))
        else:
            for redis_key, response in zip(redis_keys, responses):
                entries.append((redis_key, response or None))
        return entries

    def _write(self, storage_models: Sequence[Tuple[str, Dict[str, HashValue]]]) -> None:
        stored_fields = [
            f.effective_storage_name for f in self.record_definition.data_fields + self.record_definition.vector_fields
        ]
        stored_fields.append(EMPTY_RECORD_FIELD)
        with self.client.pipeline(transaction=False) as pipe:
            for key, fields in storage_models:
                redis_key = self.redis_key(key)
                pipe.hset(redis_key, mapping=fields)
                # Fields that are now None must not keep their previous value.
                cleared = [name for name in stored_fields if name not in fields]
                if cleared:
                    pipe.hdel(redis_key, *cleared)
            pipe.execute()

    def _search_document(self, doc: Document) -> Dict[str, Any]:
        return {name: value for name, value in vars(doc).items() if name not in _DOCUMENT_ATTRIBUTES}
