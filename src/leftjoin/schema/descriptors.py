"""Relation and association descriptors.

Descriptors are immutable value objects: created once per query
definition, compared by value, hashable, and safe to share across threads.
They carry names only; no SQLAlchemy objects or live connections.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RelationDescriptor(BaseModel):
    """A queryable collection, analogous to a database table."""

    model_config = ConfigDict(frozen=True)

    name: str
    primary_key: str = "id"
    fields: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def columns(self) -> tuple[str, ...]:
        """Primary key followed by the other fields, without duplicates."""
        seen: dict[str, None] = {self.primary_key: None}
        for field_name in self.fields:
            seen.setdefault(field_name, None)
        return tuple(seen)

    def has_field(self, field_name: str) -> bool:
        return field_name in self.columns

    def __str__(self) -> str:
        return self.name


def _default_association_name(foreign_key: str) -> str:
    if foreign_key.endswith("_id") and len(foreign_key) > 3:
        return foreign_key[:-3]
    return foreign_key


class AssociationDescriptor(BaseModel):
    """A foreign-key relationship from an owning relation to a referenced one.

    ``owner.foreign_key`` points at ``referenced.referenced_key``. The
    association is named after the foreign key without its ``_id`` suffix
    unless a name is given (``category_id`` -> ``category``).
    """

    model_config = ConfigDict(frozen=True)

    owner: str
    foreign_key: str
    referenced: str
    referenced_key: str = "id"
    name: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("foreign_key"):
            return {**data, "name": _default_association_name(data["foreign_key"])}
        return data

    @classmethod
    def between(
        cls,
        owner: RelationDescriptor,
        foreign_key: str,
        referenced: RelationDescriptor,
        name: str = "",
    ) -> AssociationDescriptor:
        """Build an association from two relation descriptors.

        The referenced key is the referenced relation's primary key.
        """
        return cls(
            owner=owner.name,
            foreign_key=foreign_key,
            referenced=referenced.name,
            referenced_key=referenced.primary_key,
            name=name,
        )

    @property
    def is_self_referencing(self) -> bool:
        return self.owner == self.referenced

    def __str__(self) -> str:
        return f"{self.owner}.{self.foreign_key} -> {self.referenced}.{self.referenced_key}"
