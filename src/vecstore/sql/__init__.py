from .collection import SQLVectorStoreRecordCollection
from .mapper import SQLVectorStoreRecordMapper
from .mysql import MySQLVectorStoreQueryProvider
from .postgres import PostgreSQLVectorStoreQueryProvider
from .query_provider import SQLVectorStoreQueryProvider, validate_sql_identifier
from .sqlite import SQLiteVectorStoreQueryProvider
from .store import SQLVectorStore, SQLVectorStoreOptions

__all__ = [
    "SQLVectorStoreRecordCollection",
    "SQLVectorStoreRecordMapper",
    "MySQLVectorStoreQueryProvider",
    "PostgreSQLVectorStoreQueryProvider",
    "SQLVectorStoreQueryProvider",
    "validate_sql_identifier",
    "SQLiteVectorStoreQueryProvider",
    "SQLVectorStore",
    "SQLVectorStoreOptions",
]
