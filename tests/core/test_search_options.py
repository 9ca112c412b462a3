import pytest

from vecstore.core.filter import (
    AnyTagEqualToFilterClause,
    EqualToFilterClause,
    VectorSearchFilter,
)
from vecstore.core.options import DEFAULT_RESULT_LIMIT, VectorSearchOptions


class TestVectorSearchOptions:
    def test_defaults(self):
        options = VectorSearchOptions()

        assert options.top == DEFAULT_RESULT_LIMIT == 3
        assert options.skip == 0
        assert options.vector_field_name is None
        assert not options.include_vectors
        assert options.filter is None
        assert not options.get_record_options().include_vectors

    def test_negative_skip_is_clamped(self):
        assert VectorSearchOptions(skip=-5).skip == 0

    def test_window(self):
        assert list(range(10))[VectorSearchOptions(top=2, skip=3).window(10)] == [3, 4]
        assert list(range(4))[VectorSearchOptions(top=10, skip=1).window(4)] == [1, 2, 3]

    @pytest.mark.parametrize("top", [0, -1])
    def test_non_positive_top_returns_everything_after_skip(self, top):
        options = VectorSearchOptions(top=top, skip=2)

        assert options.is_unbounded
        assert list(range(5))[options.window(5)] == [2, 3, 4]
        assert options.fetch_limit(100) == 100

    def test_fetch_limit_covers_skip(self):
        assert VectorSearchOptions(top=3, skip=4).fetch_limit(100) == 7

    def test_options_are_immutable(self):
        options = VectorSearchOptions()

        with pytest.raises(ValueError):
            options.top = 5  # type: ignore[misc]


class TestVectorSearchFilter:
    def test_builder_returns_new_filters(self):
        empty = VectorSearchFilter.create_default()
        one = empty.equal_to("rating", 4)
        two = one.any_tag_equal_to("tags", "sea")

        assert empty.is_empty
        assert len(one.clauses) == 1
        assert two.clauses == [
            EqualToFilterClause(field_name="rating", value=4),
            AnyTagEqualToFilterClause(field_name="tags", value="sea"),
        ]
