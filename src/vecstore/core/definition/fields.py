from dataclasses import dataclass
from enum import Enum
import typing
from typing import Any, ClassVar, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from vecstore.core.exceptions import ConfigurationError


class DistanceFunction(str, Enum):
    COSINE_SIMILARITY = "cosineSimilarity"
    COSINE_DISTANCE = "cosineDistance"
    DOT_PRODUCT = "dotProduct"
    EUCLIDEAN_DISTANCE = "euclidean"
    UNDEFINED = "undefined"

    @classmethod
    def from_string(cls, text: Optional[str]) -> "DistanceFunction":
        """Parse a distance function from its value or member name; empty means cosine similarity."""
        if not text:
            return cls.COSINE_SIMILARITY
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ConfigurationError(f"No distance function with value {text} found")


class IndexKind(str, Enum):
    HNSW = "Hnsw"
    FLAT = "Flat"
    IVFFLAT = "IVFFlat"
    UNDEFINED = "undefined"

    @classmethod
    def from_string(cls, text: Optional[str]) -> "IndexKind":
        """Parse an index kind from its value or member name; empty means flat."""
        if not text:
            return cls.FLAT
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ConfigurationError(f"No index kind with value {text} found")


class FieldRole(str, Enum):
    KEY = "key"
    DATA = "data"
    VECTOR = "vector"


def unwrap_optional(annotation: Any) -> Any:
    """Strip ``Optional[...]`` from an annotation, leaving the declared type."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or type(annotation).__name__ == "UnionType":
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def type_parts(field_type: Any) -> Tuple[Any, Optional[Any]]:
    """
    Split a declared type into its outer type and, for collection types, its element type.

    ``List[float]`` gives ``(list, float)``, ``str`` gives ``(str, None)``.
    """
    field_type = unwrap_optional(field_type)
    origin = typing.get_origin(field_type)
    if origin in (list, tuple, set, frozenset):
        args = typing.get_args(field_type)
        return list, (unwrap_optional(args[0]) if args else Any)
    if field_type in (list, tuple):
        return list, Any
    return field_type, None


def type_name(field_type: Any) -> str:
    outer, element = type_parts(field_type)
    outer_name = getattr(outer, "__name__", str(outer))
    if element is None:
        return outer_name
    return f"{outer_name}[{getattr(element, '__name__', str(element))}]"


class VectorStoreRecordField(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    role: ClassVar[FieldRole]

    name: str
    storage_name: Optional[str] = None
    field_type: Any = str

    @property
    def effective_storage_name(self) -> str:
        return self.storage_name or self.name


class VectorStoreRecordKeyField(VectorStoreRecordField):
    role: ClassVar[FieldRole] = FieldRole.KEY


class VectorStoreRecordDataField(VectorStoreRecordField):
    role: ClassVar[FieldRole] = FieldRole.DATA

    is_filterable: bool = False
    is_full_text_searchable: bool = False


class VectorStoreRecordVectorField(VectorStoreRecordField):
    role: ClassVar[FieldRole] = FieldRole.VECTOR

    field_type: Any = typing.List[float]
    dimensions: Optional[int] = None
    distance_function: DistanceFunction = DistanceFunction.UNDEFINED
    index_kind: IndexKind = IndexKind.UNDEFINED


# Role markers placed in ``typing.Annotated`` metadata on record models, e.g.
#   hotel_id: Annotated[str, VectorStoreRecordKey()]


@dataclass(frozen=True)
class VectorStoreRecordKey:
    storage_name: Optional[str] = None


@dataclass(frozen=True)
class VectorStoreRecordData:
    storage_name: Optional[str] = None
    is_filterable: bool = False
    is_full_text_searchable: bool = False


@dataclass(frozen=True)
class VectorStoreRecordVector:
    dimensions: Optional[int] = None
    storage_name: Optional[str] = None
    distance_function: DistanceFunction = DistanceFunction.UNDEFINED
    index_kind: IndexKind = IndexKind.UNDEFINED
