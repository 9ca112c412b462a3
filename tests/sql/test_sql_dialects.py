from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Annotated, List, Optional
from unittest.mock import MagicMock

from pydantic import BaseModel
import pytest

from vecstore.core.definition import (
    DistanceFunction,
    VectorStoreRecordData,
    VectorStoreRecordDefinition,
    VectorStoreRecordKey,
    VectorStoreRecordKeyField,
    VectorStoreRecordVector,
    VectorStoreRecordVectorField,
)
from vecstore.core.exceptions import ConfigurationError, UnsupportedFilterError
from vecstore.core.filter import VectorSearchFilter
from vecstore.core.options import VectorSearchOptions
from vecstore.sql import (
    MySQLVectorStoreQueryProvider,
    PostgreSQLVectorStoreQueryProvider,
    SQLVectorStore,
    SQLVectorStoreRecordCollection,
    SQLVectorStoreRecordMapper,
    validate_sql_identifier,
)
from vecstore.sql.postgres import PostgreSQLVectorDistanceFunction
from vecstore.sql.store import query_provider_for
from vecstore.testing import Hotel

HOTEL = VectorStoreRecordDefinition.from_record_type(Hotel)


class Invoice(BaseModel):
    invoice_id: Annotated[str, VectorStoreRecordKey()]
    total: Annotated[Decimal, VectorStoreRecordData()]
    issued_at: Annotated[datetime, VectorStoreRecordData(is_filterable=True)]


INVOICE = VectorStoreRecordDefinition.from_record_type(Invoice)


class Article(BaseModel):
    article_id: Annotated[str, VectorStoreRecordKey()]
    title: Annotated[str, VectorStoreRecordData(is_filterable=True)]
    embedding: Annotated[
        Optional[List[float]], VectorStoreRecordVector(dimensions=2, distance_function=DistanceFunction.DOT_PRODUCT)
    ] = None


def mock_engine(dialect="postgresql", rows=()):
    engine = MagicMock()
    engine.execution_options.return_value = engine
    engine.dialect.name = dialect
    conn = engine.connect.return_value.__enter__.return_value
    conn.execute.return_value = [MagicMock(_mapping=row) for row in rows]
    return engine, conn


@pytest.mark.parametrize("identifier", ["hotels", "_private", "Table_2"])
def test_valid_identifiers(identifier):
    assert validate_sql_identifier(identifier) == identifier


@pytest.mark.parametrize("identifier", ["", "2fast", "bad-name", "a b", "x;DROP TABLE y", "quote'd", "naïve"])
def test_invalid_identifiers(identifier):
    with pytest.raises(ConfigurationError, match="Invalid SQL identifier"):
        validate_sql_identifier(identifier)


class TestQueryProviderSelection:
    @pytest.mark.parametrize(
        "dialect,provider_class",
        [
            ("mysql", MySQLVectorStoreQueryProvider),
            ("mariadb", MySQLVectorStoreQueryProvider),
            ("postgresql", PostgreSQLVectorStoreQueryProvider),
        ],
    )
    def test_provider_follows_dialect(self, dialect, provider_class):
        engine, _ = mock_engine(dialect)

        assert isinstance(query_provider_for(engine), provider_class)
        assert isinstance(SQLVectorStore.from_engine(engine).query_provider, provider_class)

    def test_unknown_dialect(self):
        engine, _ = mock_engine("oracle")

        with pytest.raises(ConfigurationError, match="Unsupported SQL dialect: oracle"):
            query_provider_for(engine)

    def test_engine_runs_in_autocommit(self):
        engine, _ = mock_engine()
        query_provider_for(engine)

        engine.execution_options.assert_called_once_with(isolation_level="AUTOCOMMIT")


class TestMySQLStatements:
    @pytest.fixture
    def provider(self):
        return MySQLVectorStoreQueryProvider(mock_engine("mysql")[0])

    def test_create_table(self, provider):
        assert provider.build_create_table_statement("hotels", HOTEL) == (
            "CREATE TABLE IF NOT EXISTS SKCollection_hotels (hotel_id VARCHAR(255) PRIMARY KEY, "
            "hotel_name TEXT, description TEXT, rating DOUBLE, parking BOOLEAN, tags TEXT, "
            "description_embedding TEXT)"
        )

    def test_upsert(self, provider):
        statement = provider.build_upsert_statement("hotels", HOTEL)

        assert statement.startswith(
            "INSERT INTO SKCollection_hotels (hotel_id, hotel_name, description, rating, parking, tags, "
            "description_embedding) VALUES (:hotel_id, :hotel_name, :description, :rating, :parking, :tags, "
            ":description_embedding) ON DUPLICATE KEY UPDATE "
        )
        assert "hotel_name = VALUES(hotel_name)" in statement
        assert "hotel_id = VALUES(hotel_id)" not in statement

    def test_select_and_delete(self, provider):
        assert provider.build_select_statement("hotels", HOTEL, include_vectors=False) == (
            "SELECT hotel_id, hotel_name, description, rating, parking, tags FROM SKCollection_hotels "
            "WHERE hotel_id IN :keys"
        )
        assert provider.build_delete_statement("hotels", HOTEL) == (
            "DELETE FROM SKCollection_hotels WHERE hotel_id IN :keys"
        )

    def test_filter(self, provider):
        search_filter = VectorSearchFilter.create_default().equal_to("parking", True).equal_to("tags", ["sea"])

        where, parameters = provider.build_filter(search_filter, HOTEL)

        assert where == "parking = :p0 AND tags = :p1"
        assert parameters == [True, '["sea"]']

    def test_filter_rejects_bad_column_and_clause(self, provider):
        with pytest.raises(ConfigurationError):
            provider.build_filter(VectorSearchFilter.create_default().equal_to("rating OR 1=1", 1), HOTEL)
        with pytest.raises(UnsupportedFilterError):
            provider.build_filter(VectorSearchFilter.create_default().any_tag_equal_to("tags", "sea"), HOTEL)

    def test_timestamps_and_decimals_are_stored_as_text(self, provider):
        assert provider.build_create_table_statement("invoices", INVOICE) == (
            "CREATE TABLE IF NOT EXISTS SKCollection_invoices (invoice_id VARCHAR(255) PRIMARY KEY, "
            "total VARCHAR(255), issued_at VARCHAR(64))"
        )

    def test_timestamps_and_decimals_round_trip_exactly(self, provider):
        invoice = Invoice(
            invoice_id="i1",
            total=Decimal("1234.567890123456789"),
            issued_at=datetime(2024, 5, 1, 12, 30, 15, 250, tzinfo=timezone(timedelta(hours=2))),
        )
        mapper = SQLVectorStoreRecordMapper(Invoice, INVOICE, provider)

        row = mapper.to_storage_model(invoice)

        assert row == {
            "invoice_id": "i1",
            "total": "1234.567890123456789",
            "issued_at": "2024-05-01T12:30:15.000250+02:00",
        }
        stored = mapper.to_record(row)
        assert stored == invoice
        assert stored.issued_at.utcoffset() == timedelta(hours=2)

    def test_timestamp_filters_bind_the_stored_text(self, provider):
        issued_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
        search_filter = VectorSearchFilter.create_default().equal_to("issued_at", issued_at)

        assert provider.build_filter(search_filter, INVOICE) == ("issued_at = :p0", ["2024-05-01T00:00:00+00:00"])


class TestPostgreSQLStatements:
    @pytest.fixture
    def provider(self):
        return PostgreSQLVectorStoreQueryProvider(mock_engine()[0])

    def test_create_table_uses_pgvector_columns(self, provider):
        assert provider.build_create_table_statement("hotels", HOTEL) == (
            "CREATE TABLE IF NOT EXISTS SKCollection_hotels (hotel_id VARCHAR(255) PRIMARY KEY, "
            "hotel_name TEXT, description TEXT, rating DOUBLE PRECISION, parking BOOLEAN, tags TEXT, "
            "description_embedding VECTOR(3))"
        )

    def test_create_table_requires_dimensions(self, provider):
        definition = VectorStoreRecordDefinition.create(
            [VectorStoreRecordKeyField(name="id"), VectorStoreRecordVectorField(name="v")]
        )

        with pytest.raises(ConfigurationError, match="dimensions"):
            provider.build_create_table_statement("docs", definition)

    def test_index_statements(self, provider):
        assert provider.build_index_statements("hotels", HOTEL) == [
            "CREATE INDEX IF NOT EXISTS SKCollection_hotels_description_embedding_idx ON SKCollection_hotels "
            "USING hnsw (description_embedding vector_l2_ops)"
        ]
        assert provider.build_index_statements("articles", VectorStoreRecordDefinition.from_record_type(Article)) == []

    def test_upsert_casts_vectors(self, provider):
        statement = provider.build_upsert_statement("hotels", HOTEL)

        assert "CAST(:description_embedding AS vector)" in statement
        assert statement.endswith(
            "ON CONFLICT (hotel_id) DO UPDATE SET hotel_name = EXCLUDED.hotel_name, "
            "description = EXCLUDED.description, rating = EXCLUDED.rating, parking = EXCLUDED.parking, "
            "tags = EXCLUDED.tags, description_embedding = EXCLUDED.description_embedding"
        )

    def test_search_statement(self, provider):
        options = VectorSearchOptions(
            top=2, skip=1, filter=VectorSearchFilter.create_default().equal_to("parking", True)
        )

        statement, parameters, function = provider.build_search_statement("hotels", HOTEL, options)

        assert statement == (
            "SELECT hotel_id, hotel_name, description, rating, parking, tags, "
            "description_embedding <-> CAST(:query_vector AS vector) AS vector_score "
            "FROM SKCollection_hotels WHERE parking = :p0 ORDER BY vector_score LIMIT 2 OFFSET 1"
        )
        assert parameters == [True]
        assert function == PostgreSQLVectorDistanceFunction.L2

    def test_unbounded_search_statement(self, provider):
        statement, _, _ = provider.build_search_statement("hotels", HOTEL, VectorSearchOptions(top=0, skip=3))

        assert statement.endswith("ORDER BY vector_score LIMIT ALL OFFSET 3")

    @pytest.mark.parametrize(
        "distance_function,expected",
        [
            (DistanceFunction.EUCLIDEAN_DISTANCE, PostgreSQLVectorDistanceFunction.L2),
            (DistanceFunction.UNDEFINED, PostgreSQLVectorDistanceFunction.L2),
            (DistanceFunction.COSINE_DISTANCE, PostgreSQLVectorDistanceFunction.COSINE),
            (DistanceFunction.COSINE_SIMILARITY, PostgreSQLVectorDistanceFunction.COSINE),
            (DistanceFunction.DOT_PRODUCT, PostgreSQLVectorDistanceFunction.INNER_PRODUCT),
        ],
    )
    def test_distance_operators(self, distance_function, expected):
        assert PostgreSQLVectorDistanceFunction.from_distance_function(distance_function) == expected


class TestPostgreSQLSearch:
    @pytest.mark.asyncio
    async def test_inner_product_scores_are_positive(self):
        rows = [
            {"article_id": "a1", "title": "Best", "vector_score": -2.0},
            {"article_id": "a2", "title": "Worse", "vector_score": -0.5},
        ]
        engine, conn = mock_engine(rows=rows)
        collection = SQLVectorStoreRecordCollection(
            "articles", Article, PostgreSQLVectorStoreQueryProvider(engine)
        )

        results = await collection.search([1.0, 1.0], VectorSearchOptions(top=2))

        assert [r.article_id for r in results.records] == ["a1", "a2"]
        assert results.scores == [2.0, 0.5]
        assert results.records[0].embedding is None

        statement, bind = conn.execute.call_args.args
        assert "embedding <#> CAST(:query_vector AS vector)" in str(statement)
        assert bind == {"query_vector": "[1.0,1.0]"}
