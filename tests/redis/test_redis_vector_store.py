import socket
from unittest.mock import MagicMock, patch

import fakeredis
import pytest
import redis

from vecstore.core.exceptions import BackendIOError
from vecstore.redis import (
    RedisBackendConfig,
    RedisConnectionManager,
    RedisHashSetVectorStoreRecordCollection,
    RedisJsonVectorStoreRecordCollection,
    RedisStorageType,
    RedisVectorStore,
    RedisVectorStoreOptions,
)
from vecstore.testing import Hotel


class TestRedisVectorStore:
    def test_json_collections_by_default(self):
        store = RedisVectorStore(fakeredis.FakeStrictRedis())

        collection = store.get_collection("hotels", Hotel)

        assert isinstance(collection, RedisJsonVectorStoreRecordCollection)
        assert collection.redis_key("h1") == "hotels:h1"

    def test_hash_set_collections(self):
        options = RedisVectorStoreOptions(storage_type=RedisStorageType.HASH_SET, prefix_collection_name=False)
        store = RedisVectorStore(fakeredis.FakeStrictRedis(), options)

        collection = store.get_collection("hotels", Hotel)

        assert isinstance(collection, RedisHashSetVectorStoreRecordCollection)
        assert collection.redis_key("h1") == "h1"

    @pytest.mark.asyncio
    async def test_list_collection_names(self):
        client = fakeredis.FakeStrictRedis()
        store = RedisVectorStore(client)

        with patch.object(client, "execute_command", return_value=[b"hotels", b"articles"]) as execute:
            assert await store.list_collection_names() == ["hotels", "articles"]

        execute.assert_called_once_with("FT._LIST")

    @pytest.mark.asyncio
    async def test_list_collection_names_wraps_errors(self):
        client = fakeredis.FakeStrictRedis()
        store = RedisVectorStore(client)

        with patch.object(client, "execute_command", side_effect=redis.ConnectionError("down")):
            with pytest.raises(BackendIOError, match="Failed to list collection names"):
                await store.list_collection_names()

    def test_collection_factory(self):
        factory = MagicMock()
        store = RedisVectorStore(fakeredis.FakeStrictRedis(), collection_factory=factory)

        assert store.get_collection("hotels", Hotel) is factory.return_value
        factory.assert_called_once_with("hotels", Hotel, None)


class TestRedisConnectionManager:
    def test_default_configuration(self):
        config = RedisBackendConfig(host="localhost", port=6379)

        assert config.db == 0
        assert config.socket_keepalive is True
        assert config.socket_keepalive_options is not None
        assert config.socket_keepalive_options[socket.TCP_KEEPIDLE] == 300
        assert config.socket_keepalive_options[socket.TCP_KEEPINTVL] == 60
        assert config.socket_keepalive_options[socket.TCP_KEEPCNT] == 3
        assert config.health_check_interval == 30
        assert config.socket_connect_timeout == 10
        assert config.socket_timeout == 30

    def test_existing_client_is_used(self):
        client = fakeredis.FakeStrictRedis()

        assert RedisConnectionManager(client).get_client() is client
        assert RedisConnectionManager({"redis_client": client}).get_client() is client
        assert RedisConnectionManager(client).get_config() is None

    @patch("redis.StrictRedis")
    def test_client_from_config_does_not_decode_responses(self, mock_redis):
        manager = RedisConnectionManager({"host": "redis.example.com", "port": 6380, "password": "secret"})

        assert manager.get_config().host == "redis.example.com"
        kwargs = mock_redis.call_args.kwargs
        assert kwargs["host"] == "redis.example.com"
        assert kwargs["port"] == 6380
        assert kwargs["password"] == "secret"
        assert kwargs["decode_responses"] is False

    @patch("redis.RedisCluster")
    def test_cluster_client(self, mock_cluster):
        RedisConnectionManager(RedisBackendConfig(host="node-1", port=7000, is_cluster=True))

        node = mock_cluster.call_args.kwargs["startup_nodes"][0]
        assert (node.host, node.port) == ("node-1", 7000)

    def test_invalid_clients(self):
        with pytest.raises(ValueError, match="Invalid Redis client"):
            RedisConnectionManager("redis://localhost")  # type: ignore[arg-type]
        with pytest.raises(ValueError, match="must be a Redis client instance"):
            RedisConnectionManager({"redis_client": object()})

    def test_close_logs_errors(self, caplog):
        client = MagicMock(spec=redis.StrictRedis)
        client.close.side_effect = redis.ConnectionError("gone")

        RedisConnectionManager(client).close()

        assert "Error closing Redis connection: gone" in caplog.text

    def test_store_closes_its_connection(self):
        client = MagicMock(spec=redis.StrictRedis)

        RedisVectorStore(client).close()

        client.close.assert_called_once()
