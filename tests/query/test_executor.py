"""Tests for QueryExecutor and batched preloading."""

import pytest
from sqlalchemy import text

from leftjoin.core.logging import get_query_metrics
from leftjoin.core.models.base import NullsPlacement
from leftjoin.query import QueryExecutor, QuerySpec, execute_query, field
from leftjoin.schema import AssociationDescriptor, RelationDescriptor


class TestExecute:
    """Tests for QueryExecutor.execute()."""

    def test_default_columns(self, connection, books):
        spec = QuerySpec.from_(books).order_by(field("books", "id"))

        result = QueryExecutor(connection).execute(spec)

        assert result.success
        assert result.unwrap().columns == ["books.id", "books.name", "books.category_id"]
        assert result.unwrap().tuples()[0] == (1, "Book A", 1)

    def test_reverse_left_join_keeps_empty_category(
        self, connection, books, categories, book_category
    ):
        connection.execute(text("INSERT INTO categories (id, name) VALUES (3, 'Category C')"))
        spec = (
            QuerySpec.from_(categories)
            .left_join(book_category, books)
            .select("categories.name", "books.name")
            .order_by(field("categories", "id"), field("books", "id"))
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.tuples() == [
            ("Category A", "Book A"),
            ("Category A", "Book B"),
            ("Category B", "Book C"),
            ("Category C", None),
        ]

    def test_in_filter_limit_offset(self, connection, books):
        spec = (
            QuerySpec.from_(books)
            .select("books.name")
            .where(field("books", "id").in_([1, 2, 3]))
            .order_by(field("books", "id").desc())
            .limit(2)
            .offset(1)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.tuples() == [("Book B",), ("Book A",)]

    def test_nulls_first(self, connection, books):
        spec = (
            QuerySpec.from_(books)
            .select("books.name")
            .order_by(field("books", "category_id").asc(nulls=NullsPlacement.FIRST))
            .order_by(field("books", "id"))
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.tuples()[0] == ("Book D",)

    def test_unknown_table_fails(self, connection):
        spec = QuerySpec.from_(RelationDescriptor(name="missing"))

        result = QueryExecutor(connection).execute(spec)

        assert not result.success
        assert "missing" in (result.error or "")

    def test_metrics_cleared_after_execute(self, connection, books):
        QueryExecutor(connection).execute(QuerySpec.from_(books))

        assert get_query_metrics() is None

    def test_execute_query_helper(self, connection, books):
        result = execute_query(QuerySpec.from_(books), connection)

        assert len(result.unwrap()) == 4

    def test_runs_on_session(self, manager, books):
        with manager.session_scope() as session:
            result = QueryExecutor(session).execute(QuerySpec.from_(books))

        assert len(result.unwrap()) == 4

    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_invalid_batch_size(self, connection, batch_size):
        with pytest.raises(ValueError, match="batch_size"):
            QueryExecutor(connection, batch_size=batch_size)


class TestPreload:
    """Tests for batched eager loading."""

    def test_belongs_to(self, connection, books, categories, book_category):
        spec = (
            QuerySpec.from_(books)
            .select("books.name")
            .order_by(field("books", "id"))
            .preload(book_category, categories)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.columns == ["books.name"]
        assert [row.preloaded["category"] for row in result.rows] == [
            {"id": 1, "name": "Category A"},
            {"id": 1, "name": "Category A"},
            {"id": 2, "name": "Category B"},
            None,
        ]
        assert result.queries_issued == 2

    def test_one_round_trip_per_batch(self, connection, books, categories, book_category):
        spec = QuerySpec.from_(books).preload(book_category, categories)

        result = QueryExecutor(connection, batch_size=1).execute(spec).unwrap()

        # primary query + one batch per distinct category id (1, 2)
        assert result.queries_issued == 3

    def test_without_descriptor_fetches_all_columns(self, connection, books, book_category):
        spec = QuerySpec.from_(books).where(field("books", "id").eq(3)).preload(book_category)

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.rows[0].preloaded["category"] == {"id": 2, "name": "Category B"}

    def test_has_many(self, connection, books, categories, book_category):
        connection.execute(text("INSERT INTO categories (id, name) VALUES (3, 'Category C')"))
        spec = (
            QuerySpec.from_(categories)
            .order_by(field("categories", "id"))
            .preload(book_category, books)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        names = [[b["name"] for b in row.preloaded["books"]] for row in result.rows]
        assert names == [["Book A", "Book B"], ["Book C"], []]
        assert result.queries_issued == 2

    def test_no_keys_skips_follow_up_query(self, connection, books, categories, book_category):
        spec = (
            QuerySpec.from_(books)
            .where(field("books", "category_id").is_null())
            .preload(book_category, categories)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.rows[0].preloaded == {"category": None}
        assert result.queries_issued == 1

    def test_has_many_without_descriptor(self, connection, categories, book_category):
        spec = (
            QuerySpec.from_(categories)
            .order_by(field("categories", "id"))
            .preload(book_category)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        names = [sorted(b["name"] for b in row.preloaded["books"]) for row in result.rows]
        assert names == [["Book A", "Book B"], ["Book C"]]

    def test_two_has_many_onto_one_base(self, connection, books, categories, book_category):
        connection.execute(
            text(
                "CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT, "
                "category_id INTEGER REFERENCES categories(id))"
            )
        )
        connection.execute(text("INSERT INTO posts (id, title, category_id) VALUES (1, 'Post', 2)"))
        posts = RelationDescriptor(name="posts", fields=("title", "category_id"))
        post_category = AssociationDescriptor.between(posts, "category_id", categories)
        spec = (
            QuerySpec.from_(categories)
            .select("categories.name")
            .order_by(field("categories", "id"))
            .preload(book_category, books)
            .preload(post_category, posts)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.columns == ["categories.name"]
        assert [len(row.preloaded["books"]) for row in result.rows] == [2, 1]
        assert [[p["title"] for p in row.preloaded["posts"]] for row in result.rows] == [
            [],
            ["Post"],
        ]
        assert result.queries_issued == 3
