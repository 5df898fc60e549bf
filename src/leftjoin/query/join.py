"""Outer-join clause builder.

Turns association metadata into an abstract join clause instead of a raw
SQL fragment. The clause carries only names; ``query.rendering`` hands it
to SQLAlchemy, which emits ``LEFT OUTER JOIN <referenced> ON
<owner>.<fk> = <referenced>.<pk>`` in whatever dialect the target
database speaks.

Building is pure data transformation: no database round-trip, no shared
state, and a new immutable value per call. Descriptors are not validated
here (see ``schema.validation``); unknown names surface when the query runs.

Usage:
    clause = build_left_join("books", "category_id", "categories", "id")
    clause = left_join_for(book_category)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from leftjoin.core.models.base import JoinKind
from leftjoin.query.expressions import FieldRef
from leftjoin.schema.descriptors import AssociationDescriptor


class JoinClause(BaseModel):
    """An abstract join between an owning and a referenced relation.

    ``target`` is the relation spliced into the FROM clause: the referenced
    relation normally, or the owner when ``reverse`` is set (joining from
    the referenced side, e.g. categories -> books). The ON condition is
    always ``owner.foreign_key = referenced.referenced_key``.
    """

    model_config = ConfigDict(frozen=True)

    kind: JoinKind = JoinKind.LEFT_OUTER
    owner: str
    foreign_key: str
    referenced: str
    referenced_key: str
    reverse: bool = False

    @property
    def target(self) -> str:
        return self.owner if self.reverse else self.referenced

    @property
    def source(self) -> str:
        """The relation that must already be in the FROM clause."""
        return self.referenced if self.reverse else self.owner

    @property
    def condition(self) -> tuple[FieldRef, FieldRef]:
        return (
            FieldRef(relation=self.owner, field=self.foreign_key),
            FieldRef(relation=self.referenced, field=self.referenced_key),
        )

    @property
    def is_outer(self) -> bool:
        return self.kind is JoinKind.LEFT_OUTER

    def describe(self) -> str:
        """Dialect-neutral text form, for logs and error messages."""
        left, right = self.condition
        return f"{self.kind.value} {self.target} ON {left} = {right}"

    def __str__(self) -> str:
        return self.describe()


def build_left_join(
    owner: str,
    foreign_key: str,
    referenced: str,
    referenced_key: str,
) -> JoinClause:
    """Build ``LEFT OUTER JOIN referenced ON owner.foreign_key = referenced.referenced_key``.

    Args:
        owner: Name of the relation holding the foreign key
        foreign_key: Foreign key field on ``owner``
        referenced: Name of the referenced relation
        referenced_key: Key field on ``referenced`` (usually its primary key)

    Returns:
        Immutable join clause
    """
    return JoinClause(
        kind=JoinKind.LEFT_OUTER,
        owner=owner,
        foreign_key=foreign_key,
        referenced=referenced,
        referenced_key=referenced_key,
    )


def left_join_for(association: AssociationDescriptor, *, reverse: bool = False) -> JoinClause:
    """Build the left outer join described by an association.

    Args:
        association: Foreign-key relationship to join along
        reverse: Join the owner onto the referenced relation instead
    """
    return join_for(association, JoinKind.LEFT_OUTER, reverse)


def inner_join_for(association: AssociationDescriptor, *, reverse: bool = False) -> JoinClause:
    """Inner-join counterpart of ``left_join_for``; drops unmatched rows."""
    return join_for(association, JoinKind.INNER, reverse)


def join_for(
    association: AssociationDescriptor,
    kind: JoinKind,
    reverse: bool = False,
) -> JoinClause:
    """Build a join of any kind along an association."""
    return JoinClause(
        kind=kind,
        owner=association.owner,
        foreign_key=association.foreign_key,
        referenced=association.referenced,
        referenced_key=association.referenced_key,
        reverse=reverse,
    )
