"""End-to-end: books left-joined to categories on in-memory SQLite."""

from leftjoin.query import QueryExecutor, QuerySpec, field


def _books_with_category_names(spec: QuerySpec) -> QuerySpec:
    return (
        spec.select(field("categories", "name"), field("books", "name"))
        .order_by(field("categories", "name"))
        .order_by(field("books", "name"))
    )


class TestBooksAndCategories:
    """The four-book scenario: Book D has no category."""

    def test_left_join_keeps_uncategorised_book(self, connection, books, categories, book_category):
        spec = _books_with_category_names(
            QuerySpec.from_(books).left_join(book_category, categories)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.tuples() == [
            ("Category A", "Book A"),
            ("Category A", "Book B"),
            ("Category B", "Book C"),
            (None, "Book D"),
        ]

    def test_inner_join_drops_uncategorised_book(
        self, connection, books, categories, book_category
    ):
        spec = _books_with_category_names(
            QuerySpec.from_(books).inner_join(book_category, categories)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.tuples() == [
            ("Category A", "Book A"),
            ("Category A", "Book B"),
            ("Category B", "Book C"),
        ]

    def test_result_columns_and_row_access(self, connection, books, categories, book_category):
        spec = _books_with_category_names(
            QuerySpec.from_(books).left_join(book_category, categories)
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.columns == ["categories.name", "books.name"]
        assert len(result) == 4
        assert result.rows[3]["books.name"] == "Book D"
        assert result.rows[3]["categories.name"] is None

    def test_filter_on_missing_category(self, connection, books, categories, book_category):
        spec = (
            QuerySpec.from_(books)
            .left_join(book_category, categories)
            .where(field("categories", "name").is_null())
            .select("books.name")
        )

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert result.tuples() == [("Book D",)]

    def test_join_with_preload(self, connection, books, categories, book_category):
        """Join for ordering, preload for the associated rows, in one spec."""
        spec = _books_with_category_names(
            QuerySpec.from_(books).left_join(book_category, categories)
        ).preload(book_category, categories)

        result = QueryExecutor(connection).execute(spec).unwrap()

        assert [row.preloaded["category"] for row in result.rows] == [
            {"id": 1, "name": "Category A"},
            {"id": 1, "name": "Category A"},
            {"id": 2, "name": "Category B"},
            None,
        ]
        assert result.queries_issued == 2
