from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vecstore.core.filter import VectorSearchFilter

DEFAULT_RESULT_LIMIT = 3


class GetRecordOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    include_vectors: bool = False


class UpsertRecordOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class DeleteRecordOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class VectorSearchOptions(BaseModel):
    """
    Options for a vector search.

    ``top`` bounds the number of results returned after ``skip`` results have been
    passed over; a non-positive ``top`` returns everything that remains.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    vector_field_name: Optional[str] = None
    top: int = DEFAULT_RESULT_LIMIT
    skip: int = 0
    include_vectors: bool = False
    filter: Optional[VectorSearchFilter] = Field(default=None)

    @field_validator("skip")
    @classmethod
    def _clamp_skip(cls, v: int) -> int:
        return max(0, v)

    @property
    def is_unbounded(self) -> bool:
        return self.top <= 0

    def window(self, available: int) -> slice:
        """Slice selecting ``[skip, skip + top)`` out of ``available`` ranked results."""
        if self.is_unbounded:
            return slice(self.skip, max(self.skip, available))
        return slice(self.skip, self.skip + self.top)

    def fetch_limit(self, available: int) -> int:
        """How many ranked results a backend has to produce so the window can be cut out client side."""
        if self.is_unbounded:
            return available
        return self.top + self.skip

    def get_record_options(self) -> GetRecordOptions:
        return GetRecordOptions(include_vectors=self.include_vectors)
