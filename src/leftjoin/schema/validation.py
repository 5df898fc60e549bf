"""Caller-side descriptor validation.

The join builder trusts its input. Code that accepts descriptors from
outside (configuration, user input) runs them through these checks first.
Failures are expected outcomes, so they come back as ``Result.fail``.
"""

from __future__ import annotations

from leftjoin.core.models.base import Result
from leftjoin.schema.descriptors import AssociationDescriptor, RelationDescriptor
from leftjoin.schema.registry import SchemaRegistry


def validate_relation(relation: RelationDescriptor) -> Result[RelationDescriptor]:
    """Check that a relation has a name, a primary key and no empty fields."""
    if not relation.name.strip():
        return Result.fail("Relation name is empty")
    if not relation.primary_key.strip():
        return Result.fail(f"Relation {relation.name!r} has an empty primary key")
    if any(not f.strip() for f in relation.fields):
        return Result.fail(f"Relation {relation.name!r} has an empty field name")
    return Result.ok(relation)


def validate_association(
    association: AssociationDescriptor,
    registry: SchemaRegistry,
) -> Result[AssociationDescriptor]:
    """Check an association against the relations in ``registry``.

    Verifies:
    - no empty names
    - both relations are registered
    - the foreign key exists on the owner
    - the referenced key exists on the referenced relation

    Self-referencing associations pass with a warning; joining one needs
    a table alias.

    Args:
        association: Association to check
        registry: Registry holding the relations it refers to

    Returns:
        Result with the association, or the first problem found
    """
    for label, value in (
        ("owner", association.owner),
        ("foreign_key", association.foreign_key),
        ("referenced", association.referenced),
        ("referenced_key", association.referenced_key),
    ):
        if not value.strip():
            return Result.fail(f"Association {association.name!r} has an empty {label}")

    if not registry.has_relation(association.owner):
        return Result.fail(f"Unknown owner relation: {association.owner!r}")
    if not registry.has_relation(association.referenced):
        return Result.fail(f"Unknown referenced relation: {association.referenced!r}")

    owner = registry.relation(association.owner)
    if not owner.has_field(association.foreign_key):
        return Result.fail(
            f"Foreign key {association.foreign_key!r} not found on {association.owner!r}"
        )

    referenced = registry.relation(association.referenced)
    if not referenced.has_field(association.referenced_key):
        return Result.fail(
            f"Referenced key {association.referenced_key!r} not found on "
            f"{association.referenced!r}"
        )

    warnings = []
    if association.is_self_referencing:
        warnings.append(f"Association {association.name!r} references its own relation")
    return Result.ok(association, warnings)
