"""Translation of record definitions and search options into RediSearch terms."""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from redis.commands.search.field import (
    Field,
    NumericField,
    TagField,
    TextField,
    VectorField,
)
from redis.commands.search.query import Query

from vecstore.core.definition import (
    DistanceFunction,
    IndexKind,
    VectorStoreRecordDataField,
    VectorStoreRecordDefinition,
    VectorStoreRecordVectorField,
)
from vecstore.core.definition.fields import type_name, type_parts
from vecstore.core.exceptions import ConfigurationError, UnsupportedFilterError
from vecstore.core.filter import (
    AnyTagEqualToFilterClause,
    EqualToFilterClause,
    VectorSearchFilter,
)
from vecstore.core.options import VectorSearchOptions
from vecstore.core.serialization import pack_vector

VECTOR_SCORE_FIELD = "vector_score"
JSON_DOCUMENT_FIELD = "$"

# KNN needs a concrete K; an unbounded search asks for the server's default result cap.
UNBOUNDED_KNN_LIMIT = 10000

DISTANCE_METRICS: Dict[DistanceFunction, str] = {
    DistanceFunction.COSINE_DISTANCE: "COSINE",
    DistanceFunction.DOT_PRODUCT: "IP",
    DistanceFunction.EUCLIDEAN_DISTANCE: "L2",
    DistanceFunction.UNDEFINED: "COSINE",
}

ALGORITHMS: Dict[IndexKind, str] = {
    IndexKind.HNSW: "HNSW",
    IndexKind.FLAT: "FLAT",
    IndexKind.UNDEFINED: "HNSW",
}

NUMERIC_TYPES = (int, float)

_TAG_SPECIAL_CHARACTERS = set(",.<>{}[]\"':;!@#$%^&*()-+=~|/\\ ")


class RedisStorageType(str, Enum):
    HASH_SET = "hash_set"
    JSON = "json"


def get_distance_metric(distance_function: DistanceFunction) -> str:
    metric = DISTANCE_METRICS.get(distance_function)
    if metric is None:
        raise ConfigurationError(f"Unsupported distance function for Redis: {distance_function.name}")
    return metric


def get_algorithm(index_kind: IndexKind) -> str:
    algorithm = ALGORITHMS.get(index_kind)
    if algorithm is None:
        raise ConfigurationError(f"Unsupported index kind for Redis: {index_kind.name}")
    return algorithm


def check_vector_fields(definition: VectorStoreRecordDefinition) -> None:
    """Check that every vector field maps onto a Redis metric and algorithm."""
    for field in definition.vector_fields:
        get_distance_metric(field.distance_function)
        get_algorithm(field.index_kind)


def _field_path(storage_name: str, storage_type: RedisStorageType, multi_valued: bool = False) -> str:
    if storage_type == RedisStorageType.JSON:
        return f"$.{storage_name}[*]" if multi_valued else f"$.{storage_name}"
    return storage_name


def _as_name(storage_name: str, storage_type: RedisStorageType) -> Optional[str]:
    return storage_name if storage_type == RedisStorageType.JSON else None


def map_data_field(field: VectorStoreRecordDataField, storage_type: RedisStorageType) -> Optional[Field]:
    """Index field for a data field, or None when the field is neither filterable nor full text searchable."""
    if not (field.is_filterable or field.is_full_text_searchable):
        return None

    storage_name = field.effective_storage_name
    as_name = _as_name(storage_name, storage_type)
    outer, element = type_parts(field.field_type)
    if outer is str:
        return TextField(_field_path(storage_name, storage_type), as_name=as_name)
    if not field.is_filterable:
        raise ConfigurationError(f"Only string fields can be full text searchable, '{field.name}' is {type_name(field.field_type)}")
    if outer is bool:
        return TagField(_field_path(storage_name, storage_type), as_name=as_name)
    if outer in NUMERIC_TYPES:
        return NumericField(_field_path(storage_name, storage_type), as_name=as_name)
    if outer is list and element is str:
        return TagField(_field_path(storage_name, storage_type, multi_valued=True), as_name=as_name)
    raise ConfigurationError(
        f"Unsupported filterable type {type_name(field.field_type)} for field '{field.name}' in Redis"
    )


def map_vector_field(field: VectorStoreRecordVectorField, storage_type: RedisStorageType) -> Field:
    if field.dimensions is None or field.dimensions < 1:
        raise ConfigurationError(f"Vector field '{field.name}' must have dimensions >= 1 to create a Redis index")
    storage_name = field.effective_storage_name
    return VectorField(
        _field_path(storage_name, storage_type),
        get_algorithm(field.index_kind),
        {
            "TYPE": "FLOAT32",
            "DIM": field.dimensions,
            "DISTANCE_METRIC": get_distance_metric(field.distance_function),
        },
        as_name=_as_name(storage_name, storage_type),
    )


def build_schema(definition: VectorStoreRecordDefinition, storage_type: RedisStorageType) -> List[Field]:
    """Index schema for a collection. The key field is not indexed, it is the Redis key."""
    schema: List[Field] = []
    for data_field in definition.data_fields:
        mapped = map_data_field(data_field, storage_type)
        if mapped is not None:
            schema.append(mapped)
    for vector_field in definition.vector_fields:
        schema.append(map_vector_field(vector_field, storage_type))
    return schema


# ---------------------- queries ----------------------


def escape_tag(value: Any) -> str:
    return "".join(f"\\{c}" if c in _TAG_SPECIAL_CHARACTERS else c for c in str(value))


def escape_phrase(value: Any) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def _equal_to(clause: EqualToFilterClause, definition: VectorStoreRecordDefinition) -> str:
    name = clause.field_name
    value = clause.value
    field = definition.find_by_storage_name(name)
    declared = type_parts(field.field_type)[0] if field is not None else type(value)

    if declared is bool or isinstance(value, bool):
        return f"@{name}:{{{str(bool(value)).lower()}}}"
    if declared in NUMERIC_TYPES and isinstance(value, NUMERIC_TYPES):
        return f"@{name}:[{value} {value}]"
    if isinstance(value, str):
        return f'@{name}:"{escape_phrase(value)}"'
    raise UnsupportedFilterError(f"Unsupported value type {type(value).__name__} for equality on '{name}'")


def build_filter(search_filter: Optional[VectorSearchFilter], definition: VectorStoreRecordDefinition) -> str:
    """
    Query prefix selecting the records a KNN search runs over.

    ``*`` when there is no filter, otherwise the clauses intersected in parentheses.

    Raises:
        UnsupportedFilterError: For clause kinds Redis cannot express.
    """
    if search_filter is None or search_filter.is_empty:
        return "*"

    clauses: List[str] = []
    for clause in search_filter.clauses:
        if isinstance(clause, EqualToFilterClause):
            clauses.append(_equal_to(clause, definition))
        elif isinstance(clause, AnyTagEqualToFilterClause):
            clauses.append(f"@{clause.field_name}:{{{escape_tag(clause.value)}}}")
        else:
            raise UnsupportedFilterError(f"Unsupported filter clause type '{type(clause).__name__}'")
    return f"({' '.join(clauses)})"


def _return_fields(
    query: Query,
    definition: VectorStoreRecordDefinition,
    storage_type: RedisStorageType,
    include_vectors: bool,
) -> Query:
    if storage_type == RedisStorageType.JSON:
        # The whole document comes back as JSON text in the result's ``json`` attribute.
        return query.return_field(JSON_DOCUMENT_FIELD)
    for data_field in definition.data_fields:
        query.return_field(data_field.effective_storage_name)
    if include_vectors:
        for vector_field in definition.vector_fields:
            # Packed vectors are binary and must reach the mapper undecoded.
            query.return_field(vector_field.effective_storage_name, decode_field=vector_field.field_type is str)
    return query


def build_query(
    vector: Sequence[float],
    options: VectorSearchOptions,
    definition: VectorStoreRecordDefinition,
    storage_type: RedisStorageType,
) -> Tuple[Query, Dict[str, Any]]:
    """
    KNN query and its parameters.

    ``K`` is ``top + skip``: the index returns the best ``K`` and the caller slices off
    the first ``skip``. Scores sort ascending since Redis reports distances. The stored
    fields are returned with each match, so a search needs no second read.
    """
    vector_field = definition.get_vector_field(options.vector_field_name)
    k = options.fetch_limit(UNBOUNDED_KNN_LIMIT)
    query_string = (
        f"{build_filter(options.filter, definition)}"
        f"=>[KNN $K @{vector_field.effective_storage_name} $BLOB AS {VECTOR_SCORE_FIELD}]"
    )
    query = _return_fields(Query(query_string), definition, storage_type, options.include_vectors)
    query = query.return_field(VECTOR_SCORE_FIELD).sort_by(VECTOR_SCORE_FIELD, asc=True).paging(0, k).dialect(2)
    return query, {"K": k, "BLOB": pack_vector(vector)}
