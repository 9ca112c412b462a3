import logging
import socket
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field
import redis
from redis.cluster import ClusterNode

logger = logging.getLogger(__name__)


class RedisBackendConfig(BaseModel):
    host: str
    port: int
    db: int = Field(default=0)
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    ssl: bool = Field(default=False)
    ssl_certfile: Optional[str] = Field(default=None)
    ssl_keyfile: Optional[str] = Field(default=None)
    ssl_ca_certs: Optional[str] = Field(default=None)
    is_cluster: bool = Field(default=False)

    socket_keepalive: bool = Field(default=True)
    socket_keepalive_options: Optional[Dict[int, int]] = Field(
        default_factory=lambda: {
            k: v
            for k, v in [
                (getattr(socket, "TCP_KEEPIDLE", None), 300),
                (getattr(socket, "TCP_KEEPINTVL", None), 60),
                (getattr(socket, "TCP_KEEPCNT", None), 3),
            ]
            if k is not None
        }
    )
    health_check_interval: int = Field(default=30)
    socket_connect_timeout: int = Field(default=10)
    socket_timeout: int = Field(default=30)


class RedisConnectionManager:
    """
    Owns the Redis client used by the vector store.

    Responses are not decoded: hash-set records hold vectors as raw float32 bytes.
    """

    def __init__(self, redis_client: Union[redis.StrictRedis, redis.RedisCluster, RedisBackendConfig, dict]) -> None:
        """
        Initialize the connection manager.

        Args:
            redis_client: A Redis client instance, configuration, or dict. A dict either
                wraps a client under ``redis_client`` or holds configuration values.
        """
        self.client: Union[redis.StrictRedis, redis.RedisCluster]
        self.config: Optional[RedisBackendConfig] = None

        if isinstance(redis_client, dict):
            if "redis_client" in redis_client:
                actual_client = redis_client["redis_client"]
                if not isinstance(actual_client, (redis.StrictRedis, redis.RedisCluster)):
                    raise ValueError("redis_client in dict must be a Redis client instance")
                redis_client = actual_client
            else:
                redis_client = RedisBackendConfig(**redis_client)

        if isinstance(redis_client, RedisBackendConfig):
            self.config = redis_client
            self.client = self._create_client(redis_client)
        elif isinstance(redis_client, (redis.StrictRedis, redis.RedisCluster)):
            self.client = redis_client
        else:
            raise ValueError("Invalid Redis client")

    def _create_client(self, config: RedisBackendConfig) -> Union[redis.StrictRedis, redis.RedisCluster]:
        common = dict(
            username=config.username,
            password=config.password,
            ssl=config.ssl,
            ssl_certfile=config.ssl_certfile,
            ssl_keyfile=config.ssl_keyfile,
            ssl_ca_certs=config.ssl_ca_certs,
            socket_keepalive=config.socket_keepalive,
            socket_keepalive_options=config.socket_keepalive_options,
            health_check_interval=config.health_check_interval,
            socket_connect_timeout=config.socket_connect_timeout,
            socket_timeout=config.socket_timeout,
            decode_responses=False,
        )
        if config.is_cluster:
            return redis.RedisCluster(startup_nodes=[ClusterNode(config.host, config.port)], **common)  # type: ignore
        return redis.StrictRedis(host=config.host, port=config.port, db=config.db, **common)

    def get_client(self) -> Union[redis.StrictRedis, redis.RedisCluster]:
        """Get the Redis client instance."""
        return self.client

    def get_config(self) -> Optional[RedisBackendConfig]:
        """Get the configuration if available."""
        return self.config

    def close(self) -> None:
        """Close the Redis connection."""
        try:
            self.client.close()
        except redis.RedisError as e:
            logger.warning(f"Error closing Redis connection: {e}")
