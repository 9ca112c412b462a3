import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from redis.commands.search.document import Document
from redis.commands.search.index_definition import IndexType

from vecstore.core.collection import RecordT

from .collection import RedisVectorStoreRecordCollection
from .json_mapper import RedisJsonVectorStoreRecordMapper, field_path
from .search_mapping import RedisStorageType


class RedisJsonVectorStoreRecordCollection(RedisVectorStoreRecordCollection[RecordT]):
    """
    Records stored as RedisJSON documents.

    Reads that exclude vectors select only the data field paths, so vector payloads are
    not transferred.
    """

    storage_type = RedisStorageType.JSON
    index_type = IndexType.JSON

    def _create_mapper(self) -> RedisJsonVectorStoreRecordMapper:
        return RedisJsonVectorStoreRecordMapper(self.record_type, self.record_definition)

    def _fetch(self, redis_keys: Sequence[str], include_vectors: bool) -> List[Tuple[str, Any]]:
        paths = [field_path(f.effective_storage_name) for f in self.record_definition.data_fields]
        partial = not include_vectors and bool(paths)

        with self.client.json().pipeline(transaction=False) as pipe:
            for redis_key in redis_keys:
                if partial:
                    pipe.get(redis_key, *paths)
                else:
                    pipe.get(redis_key)
            responses = pipe.execute()

        entries: List[Tuple[str, Any]] = []
        for redis_key, response in zip(redis_keys, responses):
            # A single selected path comes back as its bare result array.
            if partial and len(paths) == 1 and isinstance(response, list):
                response = {paths[0]: response}
            entries.append((redis_key, response))
        return entries

    def _write(self, storage_models: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        with self.client.json().pipeline(transaction=False) as pipe:
            for key, document in storage_models:
                pipe.set(self.redis_key(key), "$", document)
            pipe.execute()

    def _search_document(self, doc: Document) -> Optional[Dict[str, Any]]:
        raw = getattr(doc, "json", None)
        return None if raw is None else json.loads(raw)
