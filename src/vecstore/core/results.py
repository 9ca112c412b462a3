from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

RecordT = TypeVar("RecordT")


class VectorSearchResult(BaseModel, Generic[RecordT]):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    record: RecordT
    score: float


class VectorSearchResults(BaseModel, Generic[RecordT]):
    """Search results ordered best first."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    results: List[VectorSearchResult[RecordT]] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def records(self) -> List[RecordT]:
        return [r.record for r in self.results]

    @property
    def scores(self) -> List[float]:
        return [r.score for r in self.results]
