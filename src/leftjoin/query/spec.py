"""Chainable, immutable query definitions.

A ``QuerySpec`` describes a SELECT without touching a database: the base
relation, its joins, selected fields, filters, ordering, paging, and which
associations to preload in follow-up queries. Every chaining method
returns a new spec.

Usage:
    spec = (
        QuerySpec.from_(books)
        .left_join(book_category, categories)
        .select(field("categories", "name"), field("books", "name"))
        .order_by(field("categories", "name").asc())
        .preload(book_category, categories)
    )
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from leftjoin.core.models.base import JoinKind
from leftjoin.query.expressions import Condition, FieldRef, Ordering
from leftjoin.query.join import JoinClause, join_for
from leftjoin.schema.descriptors import AssociationDescriptor, RelationDescriptor


class PreloadDirection(str, Enum):
    """Which side of an association a preload fetches."""

    BELONGS_TO = "belongs_to"  # base is the owner; fetch the referenced row
    HAS_MANY = "has_many"  # base is the referenced relation; fetch owner rows


class JoinedRelation(BaseModel):
    """A join clause plus, when known, the descriptor of the joined relation."""

    model_config = ConfigDict(frozen=True)

    clause: JoinClause
    relation: RelationDescriptor | None = None


class Preload(BaseModel):
    """An eager-loading directive, resolved against the base relation.

    ``name`` is the key the fetched rows are attached under in
    ``ResultRow.preloaded``.
    """

    model_config = ConfigDict(frozen=True)

    association: AssociationDescriptor
    direction: PreloadDirection
    name: str
    relation: RelationDescriptor | None = None

    @property
    def local_key(self) -> FieldRef:
        """Field on the base relation whose values key the follow-up query."""
        a = self.association
        if self.direction is PreloadDirection.BELONGS_TO:
            return FieldRef(relation=a.owner, field=a.foreign_key)
        return FieldRef(relation=a.referenced, field=a.referenced_key)

    @property
    def remote_relation(self) -> str:
        a = self.association
        return a.referenced if self.direction is PreloadDirection.BELONGS_TO else a.owner

    @property
    def remote_key(self) -> str:
        a = self.association
        if self.direction is PreloadDirection.BELONGS_TO:
            return a.referenced_key
        return a.foreign_key


class QuerySpec(BaseModel):
    """Immutable description of a query rooted at one relation."""

    model_config = ConfigDict(frozen=True)

    base: RelationDescriptor
    joins: tuple[JoinedRelation, ...] = ()
    columns: tuple[FieldRef, ...] = ()
    conditions: tuple[Condition, ...] = ()
    orderings: tuple[Ordering, ...] = ()
    preloads: tuple[Preload, ...] = ()
    limit_count: int | None = Field(default=None, ge=0)
    offset_count: int | None = Field(default=None, ge=0)

    @classmethod
    def from_(cls, relation: RelationDescriptor) -> QuerySpec:
        return cls(base=relation)

    @property
    def relation_names(self) -> tuple[str, ...]:
        """Relations in the FROM clause, base first."""
        return (self.base.name, *(j.clause.target for j in self.joins))

    @property
    def selected_fields(self) -> tuple[FieldRef, ...]:
        """Explicit selection, or every known column of every relation in FROM.

        Joined relations added without a descriptor contribute no default
        columns.
        """
        if self.columns:
            return self.columns
        fields = [FieldRef(relation=self.base.name, field=c) for c in self.base.columns]
        for joined in self.joins:
            if joined.relation is not None:
                fields.extend(
                    FieldRef(relation=joined.relation.name, field=c)
                    for c in joined.relation.columns
                )
        return tuple(fields)

    # Joins

    def join(self, clause: JoinClause, relation: RelationDescriptor | None = None) -> QuerySpec:
        """Splice a prebuilt join clause into the FROM clause.

        Raises:
            ValueError: If the clause's source relation is not in FROM yet,
                its target already is, or ``relation`` names another relation
        """
        present = self.relation_names
        if clause.source not in present:
            raise ValueError(
                f"Cannot apply '{clause.describe()}': {clause.source!r} is not in the query"
            )
        if clause.target in present:
            raise ValueError(
                f"Relation {clause.target!r} is already in the query; joining it again "
                "needs a table alias"
            )
        if relation is not None and relation.name != clause.target:
            raise ValueError(
                f"Descriptor {relation.name!r} does not match join target {clause.target!r}"
            )
        joined = JoinedRelation(clause=clause, relation=relation)
        return self.model_copy(update={"joins": (*self.joins, joined)})

    def left_join(
        self,
        association: AssociationDescriptor,
        relation: RelationDescriptor | None = None,
    ) -> QuerySpec:
        """Left outer join along ``association``.

        Joins the referenced relation when the owner is already in the
        query, or the owner when only the referenced relation is.

        Args:
            association: Foreign-key relationship to join along
            relation: Descriptor of the joined relation, used for default
                column selection
        """
        return self._join_association(association, JoinKind.LEFT_OUTER, relation)

    def inner_join(
        self,
        association: AssociationDescriptor,
        relation: RelationDescriptor | None = None,
    ) -> QuerySpec:
        return self._join_association(association, JoinKind.INNER, relation)

    def _join_association(
        self,
        association: AssociationDescriptor,
        kind: JoinKind,
        relation: RelationDescriptor | None,
    ) -> QuerySpec:
        present = self.relation_names
        owner_in = association.owner in present
        referenced_in = association.referenced in present
        if owner_in and referenced_in:
            raise ValueError(
                f"Both sides of {association} are already in the query; joining again "
                "needs a table alias"
            )
        if not owner_in and not referenced_in:
            raise ValueError(f"Association {association} is not connected to the query")
        clause = join_for(association, kind, reverse=not owner_in)
        return self.join(clause, relation)

    # Projection, filtering, ordering, paging

    def select(self, *fields: FieldRef | str) -> QuerySpec:
        """Replace the selected fields. Strings are parsed as ``relation.field``."""
        refs = tuple(FieldRef.parse(f) if isinstance(f, str) else f for f in fields)
        return self.model_copy(update={"columns": refs})

    def where(self, *conditions: Condition) -> QuerySpec:
        """Add filter conditions; all conditions are ANDed."""
        return self.model_copy(update={"conditions": (*self.conditions, *conditions)})

    def order_by(self, *orderings: Ordering | FieldRef) -> QuerySpec:
        """Append orderings. A bare FieldRef sorts ascending, NULLs last."""
        resolved = tuple(o.asc() if isinstance(o, FieldRef) else o for o in orderings)
        return self.model_copy(update={"orderings": (*self.orderings, *resolved)})

    def limit(self, count: int) -> QuerySpec:
        if count < 0:
            raise ValueError(f"limit must be >= 0, got {count}")
        return self.model_copy(update={"limit_count": count})

    def offset(self, count: int) -> QuerySpec:
        if count < 0:
            raise ValueError(f"offset must be >= 0, got {count}")
        return self.model_copy(update={"offset_count": count})

    # Eager loading

    def preload(
        self,
        association: AssociationDescriptor,
        relation: RelationDescriptor | None = None,
        *,
        name: str | None = None,
    ) -> QuerySpec:
        """Fetch associated rows in a batched follow-up query.

        The direction follows from the base relation: the owner preloads
        its referenced row (belongs-to), the referenced relation preloads
        its owner rows (has-many).

        Args:
            association: Association to preload
            relation: Descriptor of the preloaded relation; without it every
                column (``*``) is fetched
            name: Key for the fetched rows in ``ResultRow.preloaded``;
                defaults to the association name (belongs-to) or the owner
                relation name (has-many)

        Raises:
            ValueError: If the base relation is on neither side, the
                association is already preloaded, or the name is taken
        """
        if association.owner == self.base.name:
            direction = PreloadDirection.BELONGS_TO
        elif association.referenced == self.base.name:
            direction = PreloadDirection.HAS_MANY
        else:
            raise ValueError(
                f"Cannot preload {association} from {self.base.name!r}: "
                "base relation is on neither side"
            )
        if name is None:
            name = (
                association.name
                if direction is PreloadDirection.BELONGS_TO
                else association.owner
            )
        if any(p.association == association for p in self.preloads):
            raise ValueError(f"Association {association} is already preloaded")
        if any(p.name == name for p in self.preloads):
            raise ValueError(f"Preload name {name!r} is already used; pass name= to rename")
        preload = Preload(
            association=association, direction=direction, name=name, relation=relation
        )
        if relation is not None and relation.name != preload.remote_relation:
            raise ValueError(
                f"Descriptor {relation.name!r} does not match preloaded relation "
                f"{preload.remote_relation!r}"
            )
        return self.model_copy(update={"preloads": (*self.preloads, preload)})
