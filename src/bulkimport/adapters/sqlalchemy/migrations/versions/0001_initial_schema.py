"""Initial target store schema with the Dublin Core terms.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

DCTERMS: Sequence[tuple[str, str]] = (
    ("title", "Title"),
    ("creator", "Creator"),
    ("subject", "Subject"),
    ("description", "Description"),
    ("publisher", "Publisher"),
    ("contributor", "Contributor"),
    ("date", "Date"),
    ("type", "Type"),
    ("format", "Format"),
    ("identifier", "Identifier"),
    ("source", "Source"),
    ("language", "Language"),
    ("relation", "Relation"),
    ("coverage", "Coverage"),
    ("rights", "Rights"),
    ("isPartOf", "Is Part Of"),
    ("hasPart", "Has Part"),
    ("created", "Date Created"),
    ("spatial", "Spatial Coverage"),
)


def upgrade() -> None:
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=190), nullable=False),
        sa.Column("name", sa.String(length=190), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_account")),
        sa.UniqueConstraint("email", name=op.f("uq_user_account_email")),
    )
    property_table = op.create_table(
        "property",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("term", sa.String(length=190), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_property")),
        sa.UniqueConstraint("term", name=op.f("uq_property_term")),
    )
    op.create_table(
        "resource_class",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("term", sa.String(length=190), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_resource_class")),
        sa.UniqueConstraint("term", name=op.f("uq_resource_class_term")),
    )
    op.create_table(
        "resource_template",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(length=190), nullable=False),
        sa.Column("title_property_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["title_property_id"],
            ["property.id"],
            name=op.f("fk_resource_template_title_property_id_property"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_resource_template")),
        sa.UniqueConstraint("label", name=op.f("uq_resource_template_label")),
    )
    op.create_table(
        "resource",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("resource_type", sa.String(length=32), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        sa.Column("resource_class_id", sa.Integer(), nullable=True),
        sa.Column("resource_template_id", sa.Integer(), nullable=True),
        sa.Column("thumbnail_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["owner_id"],
            ["user_account.id"],
            name=op.f("fk_resource_owner_id_user_account"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["resource_class_id"],
            ["resource_class.id"],
            name=op.f("fk_resource_resource_class_id_resource_class"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["resource_template_id"],
            ["resource_template.id"],
            name=op.f("fk_resource_resource_template_id_resource_template"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_resource")),
    )
    op.create_index("ix_resource_type_title", "resource", ["resource_type", "title"])
    op.create_table(
        "item_set",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("is_open", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["id"], ["resource.id"], name=op.f("fk_item_set_id_resource"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_item_set")),
    )
    op.create_table(
        "item",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["id"], ["resource.id"], name=op.f("fk_item_id_resource"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_item")),
    )
    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("ingester", sa.String(length=255), nullable=False),
        sa.Column("renderer", sa.String(length=255), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("source", sa.Text(), nullable=True),
        sa.Column("media_type", sa.String(length=255), nullable=True),
        sa.Column("lang", sa.String(length=190), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["id"], ["resource.id"], name=op.f("fk_media_id_resource"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["item.id"], name=op.f("fk_media_item_id_item"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_media")),
    )
    op.create_index(op.f("ix_media_item_id"), "media", ["item_id"])
    op.create_table(
        "item_item_set",
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_set_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["item_id"], ["item.id"], name=op.f("fk_item_item_set_item_id_item"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["item_set_id"],
            ["item_set.id"],
            name=op.f("fk_item_item_set_item_set_id_item_set"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("item_id", "item_set_id", name=op.f("pk_item_item_set")),
    )
    op.create_table(
        "value",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("datatype", sa.String(length=190), nullable=False),
        sa.Column("lang", sa.String(length=190), nullable=True),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("uri", sa.Text(), nullable=True),
        sa.Column("value_resource_id", sa.Integer(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["resource_id"],
            ["resource.id"],
            name=op.f("fk_value_resource_id_resource"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["property_id"],
            ["property.id"],
            name=op.f("fk_value_property_id_property"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["value_resource_id"],
            ["resource.id"],
            name=op.f("fk_value_value_resource_id_resource"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_value")),
    )
    op.create_index(op.f("ix_value_resource_id"), "value", ["resource_id"])
    op.create_index("ix_value_property_value", "value", ["property_id", "value"])
    op.create_table(
        "import_mapping",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=32), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("source_id", sa.String(length=190), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_import_mapping")),
        sa.UniqueConstraint(
            "run_id", "kind", "source_id", name=op.f("uq_import_mapping_run_id")
        ),
    )
    op.create_index(op.f("ix_import_mapping_run_id"), "import_mapping", ["run_id"])

    op.bulk_insert(
        property_table,
        [{"term": f"dcterms:{name}", "label": label} for name, label in DCTERMS],
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_import_mapping_run_id"), table_name="import_mapping")
    op.drop_table("import_mapping")
    op.drop_index("ix_value_property_value", table_name="value")
    op.drop_index(op.f("ix_value_resource_id"), table_name="value")
    op.drop_table("value")
    op.drop_table("item_item_set")
    op.drop_index(op.f("ix_media_item_id"), table_name="media")
    op.drop_table("media")
    op.drop_table("item")
    op.drop_table("item_set")
    op.drop_index("ix_resource_type_title", table_name="resource")
    op.drop_table("resource")
    op.drop_table("resource_template")
    op.drop_table("resource_class")
    op.drop_table("property")
    op.drop_table("user_account")
