from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Any, Callable, ClassVar, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel

from vecstore.core.definition import VectorStoreRecordDefinition
from vecstore.core.exceptions import BackendIOError, VectorStoreError
from vecstore.core.options import (
    DeleteRecordOptions,
    GetRecordOptions,
    UpsertRecordOptions,
    VectorSearchOptions,
)
from vecstore.core.results import VectorSearchResults
from vecstore.core.validation import TypeCapability, validate_supported_types

RecordT = TypeVar("RecordT", bound=BaseModel)
ResultT = TypeVar("ResultT")

logger = logging.getLogger(__name__)


class VectorStoreRecordCollection(ABC, Generic[RecordT]):
    """
    Operations on one named collection of records in a backend.

    Every operation is a coroutine that completes with a value or a single error.
    Blocking driver calls are moved off the event loop, batch operations are issued
    as one round trip, and nothing is retried. Batches are not transactional: when a
    batch fails part way, the writes that already succeeded stay in place.
    """

    # Driver exceptions wrapped into BackendIOError by ``_run``.
    io_errors: ClassVar[Tuple[Type[BaseException], ...]] = ()

    def __init__(
        self,
        collection_name: str,
        record_type: Type[RecordT],
        record_definition: Optional[VectorStoreRecordDefinition] = None,
    ) -> None:
        self.collection_name = collection_name
        self.record_type = record_type
        self.record_definition = record_definition or VectorStoreRecordDefinition.from_record_type(record_type)
        validate_supported_types(self.record_definition, self.get_type_capability())

    @abstractmethod
    def get_type_capability(self) -> TypeCapability:
        """The field types this backend can store."""
        pass  # pragma: no cover

    @abstractmethod
    async def collection_exists(self) -> bool:
        pass  # pragma: no cover

    @abstractmethod
    async def create_collection(self) -> None:
        """
        Create the collection with a physical schema derived from the record definition.

        The schema is not migrated afterwards; changing it requires delete and recreate.
        """
        pass  # pragma: no cover

    async def create_collection_if_not_exists(self) -> None:
        """
        Create the collection unless it already exists.

        This is check-then-act and not atomic: two concurrent callers may both attempt
        the creation.
        """
        if not await self.collection_exists():
            await self.create_collection()

    @abstractmethod
    async def delete_collection(self) -> None:
        pass  # pragma: no cover

    async def get(self, key: str, options: Optional[GetRecordOptions] = None) -> Optional[RecordT]:
        """Fetch one record, or None when the key does not exist."""
        records = await self.get_batch([key], options)
        return records[0] if records else None

    @abstractmethod
    async def get_batch(self, keys: Sequence[str], options: Optional[GetRecordOptions] = None) -> List[RecordT]:
        """
        Fetch several records in one round trip.

        Keys that do not exist are absent from the result; the result is not padded
        with None and is not guaranteed to follow the order of ``keys``.
        """
        pass  # pragma: no cover

    async def upsert(self, record: RecordT, options: Optional[UpsertRecordOptions] = None) -> str:
        """Insert or replace one record and return its key."""
        keys = await self.upsert_batch([record], options)
        return keys[0]

    @abstractmethod
    async def upsert_batch(
        self, records: Sequence[RecordT], options: Optional[UpsertRecordOptions] = None
    ) -> List[str]:
        """
        Insert or replace several records, last writer wins.

        Returns:
            The keys written, read back from the mapped records.
        """
        pass  # pragma: no cover

    async def delete(self, key: str, options: Optional[DeleteRecordOptions] = None) -> None:
        """Delete one record. Deleting a missing key is not an error."""
        await self.delete_batch([key], options)

    @abstractmethod
    async def delete_batch(self, keys: Sequence[str], options: Optional[DeleteRecordOptions] = None) -> None:
        pass  # pragma: no cover

    @abstractmethod
    async def search(
        self, vector: Sequence[float], options: Optional[VectorSearchOptions] = None
    ) -> VectorSearchResults[RecordT]:
        """
        Find the records closest to ``vector``.

        Results are ordered best first. For distance metrics a smaller score is closer,
        for similarity and dot product a larger score is closer.

        Raises:
            ConfigurationError: If the record definition has no vector field.
        """
        pass  # pragma: no cover

    async def _run(self, action: str, func: Callable[..., ResultT], *args: Any) -> ResultT:
        """Run a blocking driver call in a worker thread, wrapping driver errors."""
        try:
            return await asyncio.to_thread(func, *args)
        except VectorStoreError:
            raise
        except self.io_errors as e:
            logger.debug(f"{action} failed for collection {self.collection_name}: {e}")
            raise BackendIOError(f"Failed to {action} for collection '{self.collection_name}'", e) from e
