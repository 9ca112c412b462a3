from abc import ABC, abstractmethod
from typing import Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from vecstore.core.definition import VectorStoreRecordDefinition
from vecstore.core.options import GetRecordOptions

RecordT = TypeVar("RecordT", bound=BaseModel)
StorageT = TypeVar("StorageT")


class VectorStoreRecordMapper(ABC, Generic[RecordT, StorageT]):
    """
    Converts between application records and a backend's storage representation.

    A mapper is built once per collection and holds no per-call state, so one instance
    can serve concurrent operations.
    """

    def __init__(self, record_type: Type[RecordT], record_definition: VectorStoreRecordDefinition) -> None:
        self.record_type = record_type
        self.record_definition = record_definition

    @abstractmethod
    def to_storage_model(self, record: RecordT) -> StorageT:
        """
        Convert a record to its storage representation. The record is not modified.

        Raises:
            MappingError: If a field value cannot be serialized.
        """
        pass  # pragma: no cover

    @abstractmethod
    def to_record(self, storage_model: StorageT, options: Optional[GetRecordOptions] = None) -> Optional[RecordT]:
        """
        Build a new record from its storage representation.

        Vector fields are only populated when ``options.include_vectors`` is set; otherwise
        they keep the record type's default.

        Returns:
            The record, or None when the backend returned no data for the key.

        Raises:
            MappingError: If a stored value cannot be deserialized.
        """
        pass  # pragma: no cover
