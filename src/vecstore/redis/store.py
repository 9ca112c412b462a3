import asyncio
from typing import List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict
import redis

from vecstore.core.definition import VectorStoreRecordDefinition
from vecstore.core.exceptions import BackendIOError
from vecstore.core.store import CollectionFactory, VectorStore

from .collection import RedisClient, RedisVectorStoreRecordCollection
from .connection_manager import RedisBackendConfig, RedisConnectionManager
from .hashset_collection import RedisHashSetVectorStoreRecordCollection
from .json_collection import RedisJsonVectorStoreRecordCollection
from .search_mapping import RedisStorageType


class RedisVectorStoreOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    storage_type: RedisStorageType = RedisStorageType.JSON
    prefix_collection_name: bool = True


class RedisVectorStore(VectorStore):
    """Vector store over Redis; every RediSearch index is a collection."""

    def __init__(
        self,
        redis_client: Union[RedisClient, RedisConnectionManager, RedisBackendConfig, dict],
        options: Optional[RedisVectorStoreOptions] = None,
        collection_factory: Optional[CollectionFactory] = None,
    ) -> None:
        super().__init__(collection_factory)
        if not isinstance(redis_client, RedisConnectionManager):
            redis_client = RedisConnectionManager(redis_client)
        self.connection_manager = redis_client
        self.options = options or RedisVectorStoreOptions()

    @property
    def client(self) -> RedisClient:
        return self.connection_manager.get_client()

    def _new_collection(
        self,
        collection_name: str,
        record_type: Type[BaseModel],
        record_definition: Optional[VectorStoreRecordDefinition],
    ) -> RedisVectorStoreRecordCollection:
        collection_class: Type[RedisVectorStoreRecordCollection] = (
            RedisHashSetVectorStoreRecordCollection
            if self.options.storage_type == RedisStorageType.HASH_SET
            else RedisJsonVectorStoreRecordCollection
        )
        return collection_class(
            self.client,
            collection_name,
            record_type,
            record_definition,
            prefix_collection_name=self.options.prefix_collection_name,
        )

    def _list_indexes(self) -> List[str]:
        names = self.client.execute_command("FT._LIST")
        return [n.decode("utf-8") if isinstance(n, bytes) else str(n) for n in names or []]

    async def list_collection_names(self) -> List[str]:
        try:
            return await asyncio.to_thread(self._list_indexes)
        except redis.RedisError as e:
            raise BackendIOError("Failed to list collection names", e) from e

    def close(self) -> None:
        self.connection_manager.close()
