from .collection import RedisVectorStoreRecordCollection
from .connection_manager import RedisBackendConfig, RedisConnectionManager
from .hashset_collection import RedisHashSetVectorStoreRecordCollection
from .hashset_mapper import RedisHashSetVectorStoreRecordMapper
from .json_collection import RedisJsonVectorStoreRecordCollection
from .json_mapper import RedisJsonVectorStoreRecordMapper
from .search_mapping import RedisStorageType
from .store import RedisVectorStore, RedisVectorStoreOptions

__all__ = [
    "RedisVectorStoreRecordCollection",
    "RedisBackendConfig",
    "RedisConnectionManager",
    "RedisHashSetVectorStoreRecordCollection",
    "RedisHashSetVectorStoreRecordMapper",
    "RedisJsonVectorStoreRecordCollection",
    "RedisJsonVectorStoreRecordMapper",
    "RedisStorageType",
    "RedisVectorStore",
    "RedisVectorStoreOptions",
]
