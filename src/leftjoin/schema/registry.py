"""Named lookup of relation and association descriptors.

The registry is the schema layer's view of relationship metadata: callers
define (or reflect) the relations and foreign keys once and then look up
associations by name when composing queries.
"""

from __future__ import annotations

from sqlalchemy import Engine, MetaData
from sqlalchemy import Table as SATable

from leftjoin.core.logging import get_logger
from leftjoin.schema.descriptors import AssociationDescriptor, RelationDescriptor

logger = get_logger(__name__)


class SchemaRegistry:
    """Relations keyed by name, associations keyed by (owner, name)."""

    def __init__(self) -> None:
        self._relations: dict[str, RelationDescriptor] = {}
        self._associations: dict[tuple[str, str], AssociationDescriptor] = {}

    def add_relation(self, relation: RelationDescriptor) -> RelationDescriptor:
        self._relations[relation.name] = relation
        return relation

    def relation(self, name: str) -> RelationDescriptor:
        """Get a relation by name.

        Raises:
            KeyError: If no relation with that name is registered
        """
        try:
            return self._relations[name]
        except KeyError:
            raise KeyError(f"Unknown relation: {name!r}") from None

    def has_relation(self, name: str) -> bool:
        return name in self._relations

    @property
    def relations(self) -> list[RelationDescriptor]:
        return list(self._relations.values())

    def add_association(self, association: AssociationDescriptor) -> AssociationDescriptor:
        self._associations[(association.owner, association.name)] = association
        return association

    def association(self, owner: str, name: str) -> AssociationDescriptor:
        """Get an association by owning relation and association name.

        Raises:
            KeyError: If the owner has no association with that name
        """
        try:
            return self._associations[(owner, name)]
        except KeyError:
            raise KeyError(f"Unknown association: {owner}.{name}") from None

    def associations_from(self, owner: str) -> list[AssociationDescriptor]:
        """All associations whose foreign key lives on ``owner``."""
        return [a for (o, _), a in self._associations.items() if o == owner]

    def associations_to(self, referenced: str) -> list[AssociationDescriptor]:
        """All associations pointing at ``referenced``."""
        return [a for a in self._associations.values() if a.referenced == referenced]

    @classmethod
    def from_metadata(cls, metadata: MetaData) -> SchemaRegistry:
        """Derive descriptors from SQLAlchemy table metadata.

        Tables with a single-column primary key become relations. Each
        single-column foreign key becomes an association. Composite keys
        are skipped.

        Args:
            metadata: SQLAlchemy MetaData holding the tables

        Returns:
            Populated registry
        """
        registry = cls()
        for table in metadata.sorted_tables:
            relation = _relation_from_table(table)
            if relation is None:
                logger.debug("relation_skipped", table=table.name, reason="composite_primary_key")
                continue
            registry.add_relation(relation)

        for table in metadata.sorted_tables:
            for constraint in table.foreign_key_constraints:
                if len(constraint.elements) != 1:
                    logger.debug("association_skipped", table=table.name, reason="composite_fk")
                    continue
                element = constraint.elements[0]
                registry.add_association(
                    AssociationDescriptor(
                        owner=table.name,
                        foreign_key=element.parent.name,
                        referenced=element.column.table.name,
                        referenced_key=element.column.name,
                    )
                )

        logger.debug(
            "schema_loaded",
            relations=len(registry._relations),
            associations=len(registry._associations),
        )
        return registry

    @classmethod
    def reflect(cls, engine: Engine) -> SchemaRegistry:
        """Reflect a live database into a registry."""
        metadata = MetaData()
        metadata.reflect(bind=engine)
        return cls.from_metadata(metadata)


def _relation_from_table(table: SATable) -> RelationDescriptor | None:
    pk_columns = list(table.primary_key.columns)
    if len(pk_columns) != 1:
        return None
    primary_key = pk_columns[0].name
    return RelationDescriptor(
        name=table.name,
        primary_key=primary_key,
        fields=tuple(c.name for c in table.columns if c.name != primary_key),
    )
