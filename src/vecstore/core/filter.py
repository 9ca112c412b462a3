from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class FilterClause(BaseModel):
    """A single clause of a search filter. ``field_name`` is the storage name of a data field."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field_name: str
    value: Any


class EqualToFilterClause(FilterClause):
    """Matches records whose field equals ``value``."""

    pass


class AnyTagEqualToFilterClause(FilterClause):
    """Matches records whose multi-valued field contains ``value``."""

    pass


class VectorSearchFilter(BaseModel):
    """An ordered conjunction of filter clauses."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    clauses: List[FilterClause] = Field(default_factory=list)

    @classmethod
    def create_default(cls) -> "VectorSearchFilter":
        return cls()

    def equal_to(self, field_name: str, value: Any) -> "VectorSearchFilter":
        return VectorSearchFilter(clauses=[*self.clauses, EqualToFilterClause(field_name=field_name, value=value)])

    def any_tag_equal_to(self, field_name: str, value: Any) -> "VectorSearchFilter":
        return VectorSearchFilter(
            clauses=[*self.clauses, AnyTagEqualToFilterClause(field_name=field_name, value=value)]
        )

    @property
    def is_empty(self) -> bool:
        return not self.clauses
