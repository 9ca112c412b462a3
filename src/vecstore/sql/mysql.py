from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict

from vecstore.core.definition import VectorStoreRecordDefinition

from .query_provider import SQLVectorStoreQueryProvider, validate_sql_identifier


class MySQLVectorStoreQueryProvider(SQLVectorStoreQueryProvider):
    """
    MySQL and MariaDB dialect.

    ``DATETIME`` keeps no time zone and ``DECIMAL`` a fixed scale, so timestamps and
    decimals are stored as ISO 8601 and decimal text instead.
    """

    data_types: ClassVar[Dict[Any, str]] = {
        **SQLVectorStoreQueryProvider.data_types,
        Decimal: "VARCHAR(255)",
        datetime: "VARCHAR(64)",
    }
    text_encoded_types: ClassVar[frozenset] = frozenset({Decimal, datetime})

    def build_upsert_statement(self, collection_name: str, definition: VectorStoreRecordDefinition) -> str:
        columns = [validate_sql_identifier(f.effective_storage_name) for f in definition.all_fields]
        key = definition.key_field.effective_storage_name
        updates = ", ".join(f"{c} = VALUES({c})" for c in columns if c != key)
        statement = (
            f"INSERT INTO {self.get_collection_table_name(collection_name)} "
            f"({', '.join(columns)}) VALUES ({', '.join(':' + c for c in columns)})"
        )
        if updates:
            statement += f" ON DUPLICATE KEY UPDATE {updates}"
        else:
            statement += f" ON DUPLICATE KEY UPDATE {key} = VALUES({key})"
        return statement
