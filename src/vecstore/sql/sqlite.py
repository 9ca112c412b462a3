from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict

from vecstore.core.definition import VectorStoreRecordDefinition

from .query_provider import SQLVectorStoreQueryProvider, validate_sql_identifier


class SQLiteVectorStoreQueryProvider(SQLVectorStoreQueryProvider):
    """SQLite dialect. Decimals and timestamps are stored as text to round trip exactly."""

    data_types: ClassVar[Dict[Any, str]] = {
        **SQLVectorStoreQueryProvider.data_types,
        float: "REAL",
        Decimal: "TEXT",
        datetime: "TEXT",
    }
    text_encoded_types: ClassVar[frozenset] = frozenset({Decimal, datetime})

    def build_upsert_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        columns = [validate_sql_identifier(f.effective_storage_name) for f in definition.all_fields]
        return (
            f"INSERT OR REPLACE INTO {self.get_collection_table_name(collection_name)} "
            f"({', '.join(columns)}) VALUES ({', '.join(':' + c for c in columns)})"
        )
