"""SQLAlchemy tables and imperative mappers for the target content graph."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from bulkimport.domain.model import (
    Item,
    ItemSet,
    Media,
    Property,
    Resource,
    ResourceClass,
    ResourceKind,
    ResourceTemplate,
    User,
    Value,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

MARKER_LENGTH: Final = 190


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Reference tables --------------------------------------------------------------

user_table = Table(
    "user_account",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column("email", String(190), nullable=False, unique=True),
    Column("name", String(190), nullable=False, default=""),
    Column("role", String(32), nullable=False, default="editor"),
)

property_table = Table(
    "property",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column("term", String(190), nullable=False, unique=True),
    Column("label", String(255), nullable=False, default=""),
)

resource_class_table = Table(
    "resource_class",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column("term", String(190), nullable=False, unique=True),
    Column("label", String(255), nullable=False, default=""),
)

resource_template_table = Table(
    "resource_template",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column("label", String(190), nullable=False, unique=True),
    Column(
        "title_property_id",
        Integer,
        ForeignKey("property.id", ondelete="SET NULL"),
        nullable=True,
    ),
)

# Resources -----------------------------------------------------------------------

# ``title`` doubles as the correlation marker of reserved placeholders.
resource_table = Table(
    "resource",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column("resource_type", String(32), nullable=False),
    Column("owner_id", Integer, ForeignKey("user_account.id", ondelete="SET NULL")),
    Column("resource_class_id", Integer, ForeignKey("resource_class.id", ondelete="SET NULL")),
    Column(
        "resource_template_id", Integer, ForeignKey("resource_template.id", ondelete="SET NULL")
    ),
    Column("thumbnail_id", Integer, nullable=True),
    Column("title", Text, nullable=True),
    Column("is_public", Boolean, nullable=False, default=True),
    Column("created", UTCDateTime(), nullable=False),
    Column("modified", UTCDateTime(), nullable=True),
    Index("ix_resource_type_title", "resource_type", "title"),
)

item_set_table = Table(
    "item_set",
    mapper_registry.metadata,
    Column("id", Integer, ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True),
    Column("is_open", Boolean, nullable=False, default=False),
)

item_table = Table(
    "item",
    mapper_registry.metadata,
    Column("id", Integer, ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True),
)

media_table = Table(
    "media",
    mapper_registry.metadata,
    Column("id", Integer, ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "item_id",
        Integer,
        ForeignKey("item.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("ingester", String(255), nullable=False, default=""),
    Column("renderer", String(255), nullable=False, default=""),
    Column("data", JSON, nullable=True),
    Column("source", Text, nullable=True),
    Column("media_type", String(255), nullable=True),
    Column("lang", String(190), nullable=True),
    Column("position", Integer, nullable=False, default=0),
)

item_item_set_table = Table(
    "item_item_set",
    mapper_registry.metadata,
    Column("item_id", Integer, ForeignKey("item.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "item_set_id", Integer, ForeignKey("item_set.id", ondelete="CASCADE"), primary_key=True
    ),
)

value_table = Table(
    "value",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "resource_id",
        Integer,
        ForeignKey("resource.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("property_id", Integer, ForeignKey("property.id", ondelete="CASCADE"), nullable=False),
    Column("datatype", String(190), nullable=False, default="literal"),
    Column("lang", String(190), nullable=True),
    Column("value", Text, nullable=True),
    Column("uri", Text, nullable=True),
    Column(
        "value_resource_id",
        Integer,
        ForeignKey("resource.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("is_public", Boolean, nullable=False, default=True),
    Index("ix_value_property_value", "property_id", "value"),
)

# Run ledger ---------------------------------------------------------------------------

import_mapping_table = Table(
    "import_mapping",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True),
    Column("run_id", String(32), nullable=False, index=True),
    Column("kind", String(16), nullable=False),
    Column("source_id", String(MARKER_LENGTH), nullable=False),
    Column("target_id", Integer, nullable=True),
    UniqueConstraint("run_id", "kind", "source_id"),
)

KIND_TABLES: Final[dict[ResourceKind, Table]] = {
    ResourceKind.ITEM_SETS: item_set_table,
    ResourceKind.ITEMS: item_table,
    ResourceKind.MEDIA: media_table,
}


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(User, user_table)
    mapper_registry.map_imperatively(Property, property_table)
    mapper_registry.map_imperatively(ResourceClass, resource_class_table)
    mapper_registry.map_imperatively(ResourceTemplate, resource_template_table)
    mapper_registry.map_imperatively(Value, value_table)

    mapper_registry.map_imperatively(
        Resource,
        resource_table,
        polymorphic_on=resource_table.c.resource_type,
        polymorphic_abstract=True,
        properties={
            "owner": relationship(User),
            "resource_class": relationship(ResourceClass),
            "resource_template": relationship(ResourceTemplate),
            "values": relationship(
                Value,
                cascade="all, delete-orphan",
                foreign_keys=[value_table.c.resource_id],
                order_by=value_table.c.id,
            ),
        },
    )

    mapper_registry.map_imperatively(
        ItemSet,
        item_set_table,
        inherits=Resource,
        polymorphic_identity=ResourceKind.ITEM_SETS.value,
    )

    mapper_registry.map_imperatively(
        Item,
        item_table,
        inherits=Resource,
        polymorphic_identity=ResourceKind.ITEMS.value,
        properties={
            "item_sets": relationship(
                ItemSet,
                secondary=item_item_set_table,
                primaryjoin=item_table.c.id == item_item_set_table.c.item_id,
                secondaryjoin=item_set_table.c.id == item_item_set_table.c.item_set_id,
            ),
            "media": relationship(
                Media,
                back_populates="item",
                cascade="all, delete-orphan",
                primaryjoin=item_table.c.id == media_table.c.item_id,
                foreign_keys=[media_table.c.item_id],
                order_by=media_table.c.position,
            ),
        },
    )

    mapper_registry.map_imperatively(
        Media,
        media_table,
        inherits=Resource,
        polymorphic_identity=ResourceKind.MEDIA.value,
        properties={
            "item": relationship(
                Item,
                back_populates="media",
                primaryjoin=item_table.c.id == media_table.c.item_id,
                foreign_keys=[media_table.c.item_id],
            ),
        },
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
