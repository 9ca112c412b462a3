import asyncio
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from vecstore.core.definition import VectorStoreRecordDefinition
from vecstore.core.exceptions import BackendIOError, ConfigurationError
from vecstore.core.store import CollectionFactory, VectorStore

from .collection import SQLVectorStoreRecordCollection
from .mysql import MySQLVectorStoreQueryProvider
from .postgres import PostgreSQLVectorStoreQueryProvider
from .query_provider import SQLVectorStoreQueryProvider
from .sqlite import SQLiteVectorStoreQueryProvider

QUERY_PROVIDERS: Dict[str, Type[SQLVectorStoreQueryProvider]] = {
    "sqlite": SQLiteVectorStoreQueryProvider,
    "mysql": MySQLVectorStoreQueryProvider,
    "mariadb": MySQLVectorStoreQueryProvider,
    "postgresql": PostgreSQLVectorStoreQueryProvider,
}


class SQLVectorStoreOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    collections_table: str = SQLVectorStoreQueryProvider.DEFAULT_COLLECTIONS_TABLE
    prefix_for_collection_tables: str = SQLVectorStoreQueryProvider.DEFAULT_PREFIX_FOR_COLLECTION_TABLES


def query_provider_for(engine: Engine, options: Optional[SQLVectorStoreOptions] = None) -> SQLVectorStoreQueryProvider:
    """Pick the query provider matching the engine's dialect."""
    options = options or SQLVectorStoreOptions()
    provider_class = QUERY_PROVIDERS.get(engine.dialect.name)
    if provider_class is None:
        raise ConfigurationError(f"Unsupported SQL dialect: {engine.dialect.name}")
    return provider_class(
        engine,
        collections_table=options.collections_table,
        prefix_for_collection_tables=options.prefix_for_collection_tables,
    )


class SQLVectorStore(VectorStore):
    """
    Vector store over a relational database.

    Call :meth:`prepare` once before use to create the collections side table (and, on
    PostgreSQL, the pgvector extension).
    """

    def __init__(
        self,
        query_provider: SQLVectorStoreQueryProvider,
        collection_factory: Optional[CollectionFactory] = None,
    ) -> None:
        super().__init__(collection_factory)
        self.query_provider = query_provider

    @classmethod
    def from_engine(cls, engine: Engine, options: Optional[SQLVectorStoreOptions] = None) -> "SQLVectorStore":
        return cls(query_provider_for(engine, options))

    @classmethod
    def from_url(cls, url: str, options: Optional[SQLVectorStoreOptions] = None) -> "SQLVectorStore":
        return cls.from_engine(create_engine(url), options)

    def _new_collection(
        self,
        collection_name: str,
        record_type: Type[BaseModel],
        record_definition: Optional[VectorStoreRecordDefinition],
    ) -> SQLVectorStoreRecordCollection:
        return SQLVectorStoreRecordCollection(collection_name, record_type, self.query_provider, record_definition)

    async def prepare(self) -> None:
        try:
            await asyncio.to_thread(self.query_provider.prepare_vector_store)
        except SQLAlchemyError as e:
            raise BackendIOError("Failed to prepare vector store", e) from e

    async def list_collection_names(self) -> List[str]:
        try:
            return await asyncio.to_thread(self.query_provider.list_collection_names)
        except SQLAlchemyError as e:
            raise BackendIOError("Failed to list collection names", e) from e
