"""Tests for the outer-join clause builder."""

import pytest
from pydantic import ValidationError

from leftjoin.core.models.base import JoinKind
from leftjoin.query.expressions import FieldRef
from leftjoin.query.join import (
    JoinClause,
    build_left_join,
    inner_join_for,
    join_for,
    left_join_for,
)
from leftjoin.schema import AssociationDescriptor


class TestBuildLeftJoin:
    """Tests for build_left_join()."""

    def test_builds_left_outer_clause(self):
        clause = build_left_join("books", "category_id", "categories", "id")

        assert clause.kind is JoinKind.LEFT_OUTER
        assert clause.is_outer
        assert clause.owner == "books"
        assert clause.foreign_key == "category_id"
        assert clause.referenced == "categories"
        assert clause.referenced_key == "id"
        assert clause.target == "categories"
        assert clause.source == "books"

    def test_condition_is_owner_fk_equals_referenced_pk(self):
        clause = build_left_join("books", "category_id", "categories", "id")

        left, right = clause.condition

        assert left == FieldRef(relation="books", field="category_id")
        assert right == FieldRef(relation="categories", field="id")

    def test_describe(self):
        clause = build_left_join("books", "category_id", "categories", "id")

        assert clause.describe() == (
            "LEFT OUTER JOIN categories ON books.category_id = categories.id"
        )
        assert str(clause) == clause.describe()

    def test_same_input_builds_equal_values(self):
        """Two builds of the same descriptors are equal by value and hash alike."""
        first = build_left_join("books", "category_id", "categories", "id")
        second = build_left_join("books", "category_id", "categories", "id")

        assert first == second
        assert first is not second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_different_input_builds_different_values(self):
        first = build_left_join("books", "category_id", "categories", "id")
        second = build_left_join("books", "author_id", "authors", "id")

        assert first != second

    def test_clause_is_immutable(self):
        clause = build_left_join("books", "category_id", "categories", "id")

        with pytest.raises(ValidationError):
            clause.owner = "authors"

    def test_does_not_validate_names(self):
        """Malformed names pass through; callers validate descriptors."""
        clause = build_left_join("", "", "", "")

        assert clause.owner == ""
        assert clause.target == ""


class TestAssociationJoins:
    """Tests for left_join_for() / inner_join_for() / join_for()."""

    def test_left_join_for_matches_build_left_join(self, book_category: AssociationDescriptor):
        assert left_join_for(book_category) == build_left_join(
            "books", "category_id", "categories", "id"
        )

    def test_inner_join_for(self, book_category: AssociationDescriptor):
        clause = inner_join_for(book_category)

        assert clause.kind is JoinKind.INNER
        assert not clause.is_outer
        assert clause.describe() == "JOIN categories ON books.category_id = categories.id"

    def test_reverse_joins_owner_onto_referenced(self, book_category: AssociationDescriptor):
        clause = left_join_for(book_category, reverse=True)

        assert clause.target == "books"
        assert clause.source == "categories"
        assert clause.describe() == (
            "LEFT OUTER JOIN books ON books.category_id = categories.id"
        )

    def test_join_for_kind(self, book_category: AssociationDescriptor):
        assert join_for(book_category, JoinKind.LEFT_OUTER) == left_join_for(book_category)
        assert join_for(book_category, JoinKind.INNER) == inner_join_for(book_category)

    def test_custom_referenced_key(self):
        association = AssociationDescriptor(
            owner="orders",
            foreign_key="customer_code",
            referenced="customers",
            referenced_key="code",
        )

        clause = left_join_for(association)

        assert clause == JoinClause(
            owner="orders",
            foreign_key="customer_code",
            referenced="customers",
            referenced_key="code",
        )
