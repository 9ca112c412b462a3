from .collection import VectorStoreRecordCollection
from .definition import (
    DistanceFunction,
    IndexKind,
    VectorStoreRecordData,
    VectorStoreRecordDataField,
    VectorStoreRecordDefinition,
    VectorStoreRecordKey,
    VectorStoreRecordKeyField,
    VectorStoreRecordVector,
    VectorStoreRecordVectorField,
)
from .exceptions import (
    BackendIOError,
    ConfigurationError,
    MappingError,
    UnsupportedFilterError,
    UnsupportedQueryError,
    VectorStoreError,
)
from .filter import AnyTagEqualToFilterClause, EqualToFilterClause, VectorSearchFilter
from .options import (
    DeleteRecordOptions,
    GetRecordOptions,
    UpsertRecordOptions,
    VectorSearchOptions,
)
from .results import VectorSearchResult, VectorSearchResults
from .store import VectorStore

__all__ = [
    "VectorStoreRecordCollection",
    "DistanceFunction",
    "IndexKind",
    "VectorStoreRecordData",
    "VectorStoreRecordDataField",
    "VectorStoreRecordDefinition",
    "VectorStoreRecordKey",
    "VectorStoreRecordKeyField",
    "VectorStoreRecordVector",
    "VectorStoreRecordVectorField",
    "BackendIOError",
    "ConfigurationError",
    "MappingError",
    "UnsupportedFilterError",
    "UnsupportedQueryError",
    "VectorStoreError",
    "AnyTagEqualToFilterClause",
    "EqualToFilterClause",
    "VectorSearchFilter",
    "DeleteRecordOptions",
    "GetRecordOptions",
    "UpsertRecordOptions",
    "VectorSearchOptions",
    "VectorSearchResult",
    "VectorSearchResults",
    "VectorStore",
]
