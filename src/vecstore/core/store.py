from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Type

from pydantic import BaseModel

from vecstore.core.collection import VectorStoreRecordCollection
from vecstore.core.definition import VectorStoreRecordDefinition

CollectionFactory = Callable[
    [str, Type[BaseModel], Optional[VectorStoreRecordDefinition]], VectorStoreRecordCollection
]


class VectorStore(ABC):
    """
    Entry point to a backend: hands out collection handles and lists existing collections.

    Handles are not cached, callers may ask for the same collection repeatedly.
    """

    def __init__(self, collection_factory: Optional[CollectionFactory] = None) -> None:
        self.collection_factory = collection_factory

    def get_collection(
        self,
        collection_name: str,
        record_type: Type[BaseModel],
        record_definition: Optional[VectorStoreRecordDefinition] = None,
    ) -> VectorStoreRecordCollection:
        """
        Get a collection bound to ``collection_name`` and ``record_type``.

        No backend call is made. When the store was given a collection factory, the
        factory builds the collection instead of the store's default implementation.
        """
        if self.collection_factory is not None:
            return self.collection_factory(collection_name, record_type, record_definition)
        return self._new_collection(collection_name, record_type, record_definition)

    @abstractmethod
    def _new_collection(
        self,
        collection_name: str,
        record_type: Type[BaseModel],
        record_definition: Optional[VectorStoreRecordDefinition],
    ) -> VectorStoreRecordCollection:
        pass  # pragma: no cover

    @abstractmethod
    async def list_collection_names(self) -> List[str]:
        pass  # pragma: no cover
