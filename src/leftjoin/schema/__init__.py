"""Schema layer: relation/association descriptors and their registry."""

from leftjoin.schema.descriptors import AssociationDescriptor, RelationDescriptor
from leftjoin.schema.registry import SchemaRegistry
from leftjoin.schema.validation import validate_association, validate_relation

__all__ = [
    "AssociationDescriptor",
    "RelationDescriptor",
    "SchemaRegistry",
    "validate_association",
    "validate_relation",
]
