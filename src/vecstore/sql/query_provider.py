from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
import json
import logging
import re
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from vecstore.core.definition import (
    IndexKind,
    VectorStoreRecordDefinition,
    VectorStoreRecordField,
    VectorStoreRecordVectorField,
)
from vecstore.core.definition.fields import type_parts
from vecstore.core.exceptions import ConfigurationError, UnsupportedFilterError
from vecstore.core.filter import EqualToFilterClause, VectorSearchFilter
from vecstore.core.options import VectorSearchOptions
from vecstore.core.serialization import encode_value, vector_to_json
from vecstore.core.validation import TypeCapability
from vecstore.core.vector_operations import exact_search

logger = logging.getLogger(__name__)

SQL_IDENTIFIER_PATTERN = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

Row = Mapping[str, Any]


def validate_sql_identifier(identifier: str) -> str:
    """
    Check that an identifier is safe to interpolate into SQL text.

    Identifiers are the only values ever interpolated; everything else is bound.

    Raises:
        ConfigurationError: If the identifier does not match ``[a-zA-Z_][a-zA-Z0-9_]*``.
    """
    if not isinstance(identifier, str) or not SQL_IDENTIFIER_PATTERN.fullmatch(identifier):
        raise ConfigurationError(f"Invalid SQL identifier: {identifier!r}")
    return identifier


def row_value(row: Row, column: str) -> Any:
    """Read a column from a result row, tolerating databases that fold unquoted names to lower case."""
    if column in row:
        return row[column]
    return row.get(column.lower())


class SQLVectorStoreQueryProvider(ABC):
    """
    Builds and executes the SQL for vector store collections on one database.

    Each collection lives in its own table named ``<prefix><collection>``; a side table
    records which collections exist. Dialects differ in column types and in their
    insert-or-update syntax. Search is exact: filtered rows are scored in process,
    unless a dialect ranks server side.
    """

    DEFAULT_COLLECTIONS_TABLE: ClassVar[str] = "SKCollections"
    DEFAULT_PREFIX_FOR_COLLECTION_TABLES: ClassVar[str] = "SKCollection_"

    key_types: ClassVar[Dict[Any, str]] = {str: "VARCHAR(255)"}
    data_types: ClassVar[Dict[Any, str]] = {
        str: "TEXT",
        int: "BIGINT",
        float: "DOUBLE",
        bool: "BOOLEAN",
        Decimal: "DECIMAL(38, 10)",
        datetime: "TIMESTAMPTZ",
        UUID: "VARCHAR(36)",
        bytes: "BLOB",
        list: "TEXT",
    }
    vector_types: ClassVar[Dict[Any, str]] = {list: "TEXT", str: "TEXT"}
    element_types: ClassVar[frozenset] = frozenset({str, int, float, bool})
    # Types bound as their exact text form where the native column would drop digits or the time zone.
    text_encoded_types: ClassVar[frozenset] = frozenset()

    def __init__(
        self,
        engine: Engine,
        collections_table: str = DEFAULT_COLLECTIONS_TABLE,
        prefix_for_collection_tables: str = DEFAULT_PREFIX_FOR_COLLECTION_TABLES,
    ) -> None:
        self.collections_table = validate_sql_identifier(collections_table)
        self.prefix_for_collection_tables = prefix_for_collection_tables
        # Every statement commits on its own, batches included.
        self.engine = engine.execution_options(isolation_level="AUTOCOMMIT")

    def get_type_capability(self) -> TypeCapability:
        return TypeCapability(
            key_types=frozenset(self.key_types),
            data_types=frozenset(self.data_types),
            vector_types=frozenset(self.vector_types),
            data_element_types=self.element_types,
        )

    def get_collection_table_name(self, collection_name: str) -> str:
        return validate_sql_identifier(self.prefix_for_collection_tables + collection_name)

    # ---------------------- statements ----------------------

    def column_type(self, field: VectorStoreRecordField) -> str:
        outer, _ = type_parts(field.field_type)
        if isinstance(field, VectorStoreRecordVectorField):
            sql_type = self.vector_types[outer]
            return sql_type % field.dimensions if "%d" in sql_type else sql_type
        return self.data_types[outer]

    def build_create_table_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        key = definition.key_field
        columns = [f"{validate_sql_identifier(key.effective_storage_name)} {self.key_types[str]} PRIMARY KEY"]
        for field in [*definition.data_fields, *definition.vector_fields]:
            columns.append(f"{validate_sql_identifier(field.effective_storage_name)} {self.column_type(field)}")
        return f"CREATE TABLE IF NOT EXISTS {self.get_collection_table_name(collection_name)} ({', '.join(columns)})"

    @abstractmethod
    def build_upsert_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        """Insert-or-update statement with one ``:<column>`` bind parameter per field."""
        pass  # pragma: no cover

    def build_select_statement(
        self, collection_name: str, definition: VectorStoreRecordDefinition, include_vectors: bool
    ) -> str:
        fields = definition.all_fields if include_vectors else definition.non_vector_fields
        columns = ", ".join(validate_sql_identifier(f.effective_storage_name) for f in fields)
        key = validate_sql_identifier(definition.key_field.effective_storage_name)
        return f"SELECT {columns} FROM {self.get_collection_table_name(collection_name)} WHERE {key} IN :keys"

    def build_delete_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        key = validate_sql_identifier(definition.key_field.effective_storage_name)
        return f"DELETE FROM {self.get_collection_table_name(collection_name)} WHERE {key} IN :keys"

    def build_filter(
        self, search_filter: Optional[VectorSearchFilter], definition: VectorStoreRecordDefinition
    ) -> Tuple[str, List[Any]]:
        """
        Translate a filter into a ``WHERE`` body and its positional parameters.

        Parameters are referenced as ``:p0``, ``:p1``... in clause order.

        Raises:
            UnsupportedFilterError: For any clause other than equality.
        """
        if search_filter is None or search_filter.is_empty:
            return "", []

        clauses: List[str] = []
        parameters: List[Any] = []
        for clause in search_filter.clauses:
            if not isinstance(clause, EqualToFilterClause):
                raise UnsupportedFilterError(f"Unsupported filter clause type '{type(clause).__name__}'")
            column = validate_sql_identifier(clause.field_name)
            field = definition.find_by_storage_name(clause.field_name)
            value = clause.value
            if field is not None:
                value = self.encode_column(value, field.field_type)
            clauses.append(f"{column} = :p{len(parameters)}")
            parameters.append(value)
        return " AND ".join(clauses), parameters

    # ---------------------- value encoding ----------------------

    def encode_column(self, value: Any, field_type: Any) -> Any:
        """Convert a data field value to what the driver binds for its column type."""
        if value is None:
            return None
        outer, _ = type_parts(field_type)
        if outer is list:
            return json.dumps(encode_value(value, field_type))
        if outer in self.text_encoded_types:
            return encode_value(value, field_type)
        if outer is UUID:
            return str(value)
        return value

    def encode_vector(self, value: Any) -> Any:
        return None if value is None else vector_to_json(value)

    def decode_vector(self, raw: Any) -> Optional[List[float]]:
        if raw is None:
            return None
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        return [float(v) for v in raw]

    # ---------------------- execution ----------------------

    def prepare_vector_store(self) -> None:
        """Create the table that records which collections exist."""
        statement = (
            f"CREATE TABLE IF NOT EXISTS {self.collections_table} (collectionId VARCHAR(255) PRIMARY KEY)"
        )
        with self.engine.connect() as conn:
            conn.execute(text(statement))

    def collection_exists(self, collection_name: str) -> bool:
        statement = f"SELECT 1 FROM {self.collections_table} WHERE collectionId = :collection_id"
        with self.engine.connect() as conn:
            return conn.execute(text(statement), {"collection_id": collection_name}).first() is not None

    def create_collection(self, collection_name: str, definition: VectorStoreRecordDefinition) -> None:
        if any(f.index_kind not in (IndexKind.UNDEFINED, IndexKind.FLAT) for f in definition.vector_fields):
            logger.warning(f"Indexes are not supported in {type(self).__name__}. Ignoring indexKind property.")

        create_table = self.build_create_table_statement(collection_name, definition)
        logger.debug(create_table)
        with self.engine.connect() as conn:
            conn.execute(text(create_table))
            self._register_collection(conn, collection_name)

    def _register_collection(self, conn, collection_name: str) -> None:
        exists = conn.execute(
            text(f"SELECT 1 FROM {self.collections_table} WHERE collectionId = :collection_id"),
            {"collection_id": collection_name},
        ).first()
        if exists is None:
            conn.execute(
                text(f"INSERT INTO {self.collections_table} (collectionId) VALUES (:collection_id)"),
                {"collection_id": collection_name},
            )

    def delete_collection(self, collection_name: str) -> None:
        table = self.get_collection_table_name(collection_name)
        with self.engine.connect() as conn:
            conn.execute(
                text(f"DELETE FROM {self.collections_table} WHERE collectionId = :collection_id"),
                {"collection_id": collection_name},
            )
            conn.execute(text(f"DROP TABLE IF EXISTS {table}"))

    def list_collection_names(self) -> List[str]:
        with self.engine.connect() as conn:
            rows = conn.execute(text(f"SELECT collectionId FROM {self.collections_table}")).all()
        return [row[0] for row in rows]

    def upsert_records(
        self, collection_name: str, definition: VectorStoreRecordDefinition, rows: Sequence[Dict[str, Any]]
    ) -> None:
        """Write all rows with one batched statement. Rows written before a failure stay written."""
        if not rows:
            return
        statement = self.build_upsert_statement(collection_name, definition)
        with self.engine.connect() as conn:
            conn.execute(text(statement), list(rows))

    def get_records(
        self,
        collection_name: str,
        definition: VectorStoreRecordDefinition,
        keys: Sequence[str],
        include_vectors: bool,
    ) -> List[Row]:
        if not keys:
            return []
        statement = text(self.build_select_statement(collection_name, definition, include_vectors)).bindparams(
            bindparam("keys", expanding=True)
        )
        with self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(statement, {"keys": list(keys)})]

    def delete_records(
        self, collection_name: str, definition: VectorStoreRecordDefinition, keys: Sequence[str]
    ) -> None:
        if not keys:
            return
        statement = text(self.build_delete_statement(collection_name, definition)).bindparams(
            bindparam("keys", expanding=True)
        )
        with self.engine.connect() as conn:
            conn.execute(statement, {"keys": list(keys)})

    def search(
        self,
        collection_name: str,
        definition: VectorStoreRecordDefinition,
        vector: Sequence[float],
        options: VectorSearchOptions,
    ) -> List[Tuple[Row, float]]:
        """
        Exact search: fetch the filtered rows with their vectors and rank them in process.

        Returns:
            ``(row, score)`` pairs for the requested window, best first.
        """
        vector_field = definition.get_vector_field(options.vector_field_name)
        where, parameters = self.build_filter(options.filter, definition)

        columns = ", ".join(validate_sql_identifier(f.effective_storage_name) for f in definition.all_fields)
        statement = f"SELECT {columns} FROM {self.get_collection_table_name(collection_name)}"
        if where:
            statement += f" WHERE {where}"

        with self.engine.connect() as conn:
            rows = [dict(row._mapping) for row in conn.execute(text(statement), parameter_map(parameters))]

        column = vector_field.effective_storage_name
        candidates = [(row, self.decode_vector(row_value(row, column))) for row in rows]
        return exact_search(candidates, vector, vector_field.distance_function, options)


def parameter_map(parameters: Sequence[Any]) -> Dict[str, Any]:
    """Bind values for the ``:p<n>`` placeholders produced by ``build_filter``."""
    return {f"p{i}": value for i, value in enumerate(parameters)}
