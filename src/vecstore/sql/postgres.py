from decimal import Decimal
from enum import Enum
import logging
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text

from vecstore.core.definition import (
    DistanceFunction,
    IndexKind,
    VectorStoreRecordDefinition,
    VectorStoreRecordVectorField,
)
from vecstore.core.exceptions import ConfigurationError
from vecstore.core.options import VectorSearchOptions
from vecstore.core.serialization import vector_to_json

from .query_provider import (
    Row,
    SQLVectorStoreQueryProvider,
    parameter_map,
    validate_sql_identifier,
)

logger = logging.getLogger(__name__)


class PostgreSQLVectorDistanceFunction(Enum):
    L2 = ("vector_l2_ops", "<->")
    COSINE = ("vector_cosine_ops", "<=>")
    INNER_PRODUCT = ("vector_ip_ops", "<#>")

    def __init__(self, ops: str, operator: str) -> None:
        self.ops = ops
        self.operator = operator

    @classmethod
    def from_distance_function(cls, distance_function: DistanceFunction) -> "PostgreSQLVectorDistanceFunction":
        mapping = {
            DistanceFunction.EUCLIDEAN_DISTANCE: cls.L2,
            DistanceFunction.UNDEFINED: cls.L2,
            DistanceFunction.COSINE_DISTANCE: cls.COSINE,
            DistanceFunction.COSINE_SIMILARITY: cls.COSINE,
            DistanceFunction.DOT_PRODUCT: cls.INNER_PRODUCT,
        }
        if distance_function not in mapping:
            raise ConfigurationError(f"Unsupported distance function: {distance_function}")
        return mapping[distance_function]


POSTGRES_INDEX_KINDS = {IndexKind.HNSW: "hnsw", IndexKind.IVFFLAT: "ivfflat"}


class PostgreSQLVectorStoreQueryProvider(SQLVectorStoreQueryProvider):
    """
    PostgreSQL with the pgvector extension.

    Vectors are stored in ``VECTOR(n)`` columns and ranked server side with the pgvector
    distance operators, so only the requested window leaves the database.
    """

    data_types: ClassVar[Dict[Any, str]] = {
        **SQLVectorStoreQueryProvider.data_types,
        float: "DOUBLE PRECISION",
        bytes: "BYTEA",
        Decimal: "NUMERIC",
    }
    vector_types: ClassVar[Dict[Any, str]] = {list: "VECTOR(%d)", str: "TEXT"}

    def prepare_vector_store(self) -> None:
        super().prepare_vector_store()
        with self.engine.connect() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

    def build_create_table_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        definition.require_vector_dimensions()
        return super().build_create_table_statement(collection_name, definition)

    def build_index_statements(self, collection_name: str, definition: VectorStoreRecordDefinition) -> List[str]:
        table = self.get_collection_table_name(collection_name)
        statements = []
        for field in definition.vector_fields:
            method = POSTGRES_INDEX_KINDS.get(field.index_kind)
            if method is None:
                continue
            column = validate_sql_identifier(field.effective_storage_name)
            ops = PostgreSQLVectorDistanceFunction.from_distance_function(field.distance_function).ops
            index_name = validate_sql_identifier(f"{table}_{column}_idx")
            statements.append(f"CREATE INDEX IF NOT EXISTS {index_name} ON {table} USING {method} ({column} {ops})")
        return statements

    def create_collection(self, collection_name: str, definition: VectorStoreRecordDefinition) -> None:
        create_table = self.build_create_table_statement(collection_name, definition)
        indexes = self.build_index_statements(collection_name, definition)
        with self.engine.connect() as conn:
            conn.execute(text(create_table))
            for statement in indexes:
                logger.debug(statement)
                conn.execute(text(statement))
            self._register_collection(conn, collection_name)

    def _placeholder(self, field_name: str, is_vector: bool) -> str:
        return f"CAST(:{field_name} AS vector)" if is_vector else f":{field_name}"

    def build_upsert_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        key = validate_sql_identifier(definition.key_field.effective_storage_name)
        columns = []
        values = []
        for field in definition.all_fields:
            column = validate_sql_identifier(field.effective_storage_name)
            is_vector = isinstance(field, VectorStoreRecordVectorField) and field.field_type is not str
            columns.append(column)
            values.append(self._placeholder(column, is_vector))

        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns if c != key)
        conflict = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
        return (
            f"INSERT INTO {self.get_collection_table_name(collection_name)} ({', '.join(columns)}) "
            f"VALUES ({', '.join(values)}) ON CONFLICT ({key}) {conflict}"
        )

    def build_search_statement(
        self,
        collection_name: str,
        definition: VectorStoreRecordDefinition,
        options: VectorSearchOptions,
    ) -> Tuple[str, List[Any], PostgreSQLVectorDistanceFunction]:
        vector_field = definition.get_vector_field(options.vector_field_name)
        function = PostgreSQLVectorDistanceFunction.from_distance_function(vector_field.distance_function)
        where, parameters = self.build_filter(options.filter, definition)

        fields = definition.all_fields if options.include_vectors else definition.non_vector_fields
        columns = ", ".join(validate_sql_identifier(f.effective_storage_name) for f in fields)
        column = validate_sql_identifier(vector_field.effective_storage_name)

        statement = (
            f"SELECT {columns}, {column} {function.operator} CAST(:query_vector AS vector) AS vector_score "
            f"FROM {self.get_collection_table_name(collection_name)}"
        )
        if where:
            statement += f" WHERE {where}"
        statement += " ORDER BY vector_score"
        statement += " LIMIT ALL" if options.is_unbounded else f" LIMIT {int(options.top)}"
        statement += f" OFFSET {int(options.skip)}"
        return statement, parameters, function

    def search(
        self,
        collection_name: str,
        definition: VectorStoreRecordDefinition,
        vector: Sequence[float],
        options: VectorSearchOptions,
    ) -> List[Tuple[Row, float]]:
        statement, parameters, _ = self.build_search_statement(collection_name, definition, options)
        distance_function = definition.get_vector_field(options.vector_field_name).distance_function
        bind = {**parameter_map(parameters), "query_vector": vector_to_json(vector)}
        with self.engine.connect() as conn:
            rows = [dict(row._mapping) for row in conn.execute(text(statement), bind)]
        return [(row, _to_score(distance_function, row.pop("vector_score"))) for row in rows]


def _to_score(distance_function: DistanceFunction, value: Optional[float]) -> float:
    value = float(value or 0.0)
    if distance_function == DistanceFunction.DOT_PRODUCT:
        # pgvector's <#> is the negated inner product
        return -value
    if distance_function == DistanceFunction.COSINE_SIMILARITY:
        return 1.0 - value
    return value
