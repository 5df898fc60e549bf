"""Field references, filter conditions and orderings.

These are plain immutable values. ``query.rendering`` turns them into
SQLAlchemy expressions.

Usage:
    name = FieldRef(relation="categories", field="name")
    spec = spec.where(name.is_not_null()).order_by(name.asc())
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict

from leftjoin.core.models.base import NullsPlacement, Operator, SortDirection


class FieldRef(BaseModel):
    """Reference to a field of a relation."""

    model_config = ConfigDict(frozen=True)

    relation: str
    field: str

    @classmethod
    def parse(cls, dotted: str) -> FieldRef:
        """Build from ``"relation.field"``.

        Raises:
            ValueError: If the string is not of that form
        """
        relation, sep, field_name = dotted.partition(".")
        if not sep or not relation or not field_name:
            raise ValueError(f"Expected 'relation.field', got {dotted!r}")
        return cls(relation=relation, field=field_name)

    @property
    def label(self) -> str:
        return f"{self.relation}.{self.field}"

    def __str__(self) -> str:
        return self.label

    # Conditions

    def eq(self, value: Any) -> Condition:
        return Condition(field=self, operator=Operator.EQ, value=value)

    def ne(self, value: Any) -> Condition:
        return Condition(field=self, operator=Operator.NE, value=value)

    def lt(self, value: Any) -> Condition:
        return Condition(field=self, operator=Operator.LT, value=value)

    def le(self, value: Any) -> Condition:
        return Condition(field=self, operator=Operator.LE, value=value)

    def gt(self, value: Any) -> Condition:
        return Condition(field=self, operator=Operator.GT, value=value)

    def ge(self, value: Any) -> Condition:
        return Condition(field=self, operator=Operator.GE, value=value)

    def is_null(self) -> Condition:
        return Condition(field=self, operator=Operator.IS_NULL)

    def is_not_null(self) -> Condition:
        return Condition(field=self, operator=Operator.IS_NOT_NULL)

    def in_(self, values: Iterable[Any]) -> Condition:
        return Condition(field=self, operator=Operator.IN, value=tuple(values))

    # Orderings

    def asc(self, nulls: NullsPlacement = NullsPlacement.LAST) -> Ordering:
        return Ordering(field=self, direction=SortDirection.ASC, nulls=nulls)

    def desc(self, nulls: NullsPlacement = NullsPlacement.LAST) -> Ordering:
        return Ordering(field=self, direction=SortDirection.DESC, nulls=nulls)


def field(relation: str, name: str) -> FieldRef:
    """Shorthand for ``FieldRef(relation=relation, field=name)``."""
    return FieldRef(relation=relation, field=name)


class Condition(BaseModel):
    """A single filter predicate: ``field <operator> value``.

    Conditions passed together to ``QuerySpec.where`` are ANDed.
    """

    model_config = ConfigDict(frozen=True)

    field: FieldRef
    operator: Operator
    value: Any = None

    def __str__(self) -> str:
        if self.operator.is_unary:
            return f"{self.field} {self.operator.value}"
        return f"{self.field} {self.operator.value} {self.value!r}"


class Ordering(BaseModel):
    """Ordering on one field with explicit NULL placement.

    NULL placement is explicit because engines disagree on the default
    (SQLite and MySQL put NULLs first ascending, PostgreSQL and Oracle last).
    """

    model_config = ConfigDict(frozen=True)

    field: FieldRef
    direction: SortDirection = SortDirection.ASC
    nulls: NullsPlacement = NullsPlacement.LAST

    def __str__(self) -> str:
        return f"{self.field} {self.direction.value} nulls {self.nulls.value}"
