"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import pytest
from sqlalchemy import Connection, ForeignKey, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from leftjoin.core.connections import ConnectionConfig, ConnectionManager
from leftjoin.schema import AssociationDescriptor, RelationDescriptor


class Base(DeclarativeBase):
    pass


class Category(Base):
    __tablename__ = "categories"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))


class Book(Base):
    __tablename__ = "books"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"))


@pytest.fixture
def metadata() -> MetaData:
    """SQLAlchemy metadata holding the books/categories tables."""
    return Base.metadata


@pytest.fixture
def books() -> RelationDescriptor:
    return RelationDescriptor(name="books", fields=("name", "category_id"))


@pytest.fixture
def categories() -> RelationDescriptor:
    return RelationDescriptor(name="categories", fields=("name",))


@pytest.fixture
def book_category(
    books: RelationDescriptor, categories: RelationDescriptor
) -> AssociationDescriptor:
    return AssociationDescriptor.between(books, "category_id", categories)


@pytest.fixture
def manager():
    """In-memory SQLite with two categories and four books, one uncategorised."""
    manager = ConnectionManager(ConnectionConfig.in_memory())
    manager.initialize(Base.metadata)

    with manager.session_scope() as session:
        session.add_all(
            [
                Category(id=1, name="Category A"),
                Category(id=2, name="Category B"),
            ]
        )
        session.flush()
        session.add_all(
            [
                Book(id=1, name="Book A", category_id=1),
                Book(id=2, name="Book B", category_id=1),
                Book(id=3, name="Book C", category_id=2),
                Book(id=4, name="Book D", category_id=None),
            ]
        )

    yield manager
    manager.close()


@pytest.fixture
def connection(manager: ConnectionManager) -> Connection:
    with manager.connection() as conn:
        yield conn
