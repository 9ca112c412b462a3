from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Dict, Optional
from uuid import UUID

from pydantic import BaseModel
import pytest
from sqlalchemy.exc import OperationalError

from vecstore.core.definition import VectorStoreRecordData, VectorStoreRecordKey
from vecstore.core.exceptions import (
    BackendIOError,
    ConfigurationError,
    UnsupportedFilterError,
)
from vecstore.core.filter import VectorSearchFilter
from vecstore.core.options import GetRecordOptions, VectorSearchOptions
from vecstore.sql import SQLiteVectorStoreQueryProvider, SQLVectorStore, SQLVectorStoreOptions
from vecstore.testing import (
    BaseTestVectorSearch,
    BaseTestVectorStoreRecordCollection,
    Hotel,
    sample_hotels,
    search_hotels,
)


class Invoice(BaseModel):
    invoice_id: Annotated[str, VectorStoreRecordKey()]
    amount: Annotated[Decimal, VectorStoreRecordData()]
    issued_at: Annotated[datetime, VectorStoreRecordData()]
    customer: Annotated[UUID, VectorStoreRecordData()]
    attachment: Annotated[Optional[bytes], VectorStoreRecordData()] = None
    line_count: Annotated[int, VectorStoreRecordData()] = 0


class WithMetadata(BaseModel):
    id: Annotated[str, VectorStoreRecordKey()]
    metadata: Annotated[Dict[str, str], VectorStoreRecordData()]


@pytest.fixture
def store(tmp_path):
    store = SQLVectorStore.from_url(f"sqlite:///{tmp_path / 'vectors.db'}")
    store.query_provider.prepare_vector_store()
    return store


def created_collection(store, name="hotels", record_type=Hotel):
    collection = store.get_collection(name, record_type)
    store.query_provider.create_collection(name, collection.record_definition)
    return collection


class TestSQLiteCollection(BaseTestVectorStoreRecordCollection):
    @pytest.fixture
    def collection(self, store):
        return created_collection(store)

    @pytest.mark.asyncio
    async def test_exact_types_round_trip(self, store):
        invoices = created_collection(store, "invoices", Invoice)
        invoice = Invoice(
            invoice_id="inv-1",
            amount=Decimal("1043.1000"),
            issued_at=datetime(2024, 2, 29, 23, 59, 59, 123456, tzinfo=timezone.utc),
            customer=UUID("0b5d4c8e-6f2a-4f59-9d55-3f6a1c0f7e21"),
            attachment=b"%PDF-1.7\x00",
            line_count=2**40,
        )

        await invoices.upsert(invoice)

        assert await invoices.get("inv-1", GetRecordOptions(include_vectors=True)) == invoice


class TestSQLiteSearch(BaseTestVectorSearch):
    @pytest.fixture
    def collection(self, store):
        collection = created_collection(store)
        store.query_provider.upsert_records(
            "hotels",
            collection.record_definition,
            [collection.mapper.to_storage_model(h) for h in search_hotels()],
        )
        return collection

    @pytest.mark.asyncio
    async def test_tag_filters_are_not_supported(self, collection):
        search_filter = VectorSearchFilter.create_default().any_tag_equal_to("tags", "sea")

        with pytest.raises(UnsupportedFilterError, match="AnyTagEqualToFilterClause"):
            await collection.search([1.0, 0.0, 0.0], VectorSearchOptions(filter=search_filter))


class TestSQLVectorStore:
    @pytest.mark.asyncio
    async def test_collection_lifecycle(self, tmp_path):
        store = SQLVectorStore.from_url(f"sqlite:///{tmp_path / 'lifecycle.db'}")
        await store.prepare()
        collection = store.get_collection("hotels", Hotel)

        assert not await collection.collection_exists()

        await collection.create_collection_if_not_exists()
        await collection.create_collection_if_not_exists()
        assert await collection.collection_exists()
        assert await store.list_collection_names() == ["hotels"]

        await collection.delete_collection()
        assert not await collection.collection_exists()
        assert await store.list_collection_names() == []

    def test_index_kinds_are_ignored_with_a_warning(self, store, caplog):
        with caplog.at_level("WARNING"):
            created_collection(store)

        assert "Indexes are not supported in SQLiteVectorStoreQueryProvider" in caplog.text

    def test_table_prefix(self, tmp_path):
        store = SQLVectorStore.from_url(
            f"sqlite:///{tmp_path / 'prefixed.db'}",
            SQLVectorStoreOptions(collections_table="vs_collections", prefix_for_collection_tables="vs_"),
        )

        assert isinstance(store.query_provider, SQLiteVectorStoreQueryProvider)
        assert store.query_provider.collections_table == "vs_collections"
        assert store.query_provider.get_collection_table_name("hotels") == "vs_hotels"

    def test_invalid_collection_name(self, store):
        with pytest.raises(ConfigurationError, match="Invalid SQL identifier"):
            store.get_collection("hotels; DROP TABLE users", Hotel)

    def test_unsupported_field_type(self, store):
        with pytest.raises(ConfigurationError, match="data field 'metadata'"):
            store.get_collection("meta", WithMetadata)

    @pytest.mark.asyncio
    async def test_driver_errors_are_wrapped(self, store):
        collection = store.get_collection("never_created", Hotel)

        with pytest.raises(BackendIOError) as exc_info:
            await collection.get("h1")

        assert isinstance(exc_info.value.cause, OperationalError)
        assert "never_created" in str(exc_info.value)
