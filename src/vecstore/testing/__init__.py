from .base_test_collection import BaseTestVectorSearch, BaseTestVectorStoreRecordCollection
from .hotels import SEARCH_QUERY, Hotel, sample_hotels, search_hotels

__all__ = [
    "BaseTestVectorSearch",
    "BaseTestVectorStoreRecordCollection",
    "Hotel",
    "SEARCH_QUERY",
    "sample_hotels",
    "search_hotels",
]
