"""
RBAC tables.

Two relations back the whole hierarchy:
- items: one row per role / permission, keyed by its unique name.
- items children: one row per parent → child edge, keyed by both names.

Table names are configurable per storage instance, so the tables are
built into a caller-supplied MetaData instead of being declared once
on a declarative base.  Timestamps are plain integers (Unix seconds).

The foreign keys mirror the deployed schema (cascade on delete and on
update), but the storage propagates renames and deletes itself and
never relies on the engine enforcing them.
"""

from typing import NamedTuple

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)


class RbacTables(NamedTuple):
    items: Table
    items_children: Table


def build_tables(
    metadata: MetaData,
    items_table: str = "rbac_item",
    items_children_table: str = "rbac_item_child",
) -> RbacTables:
    items = Table(
        items_table,
        metadata,
        Column("name", String(126), primary_key=True),
        Column("type", String(10), nullable=False),
        Column("description", String(191), nullable=True),
        Column("rule_name", String(64), nullable=True),
        Column("data", JSON, nullable=True),
        Column("created_at", Integer, nullable=False),
        Column("updated_at", Integer, nullable=False),
        Index(f"idx-{items_table}-type", "type"),
    )

    # ── Association table (parent → child) ──────────────────────────
    items_children = Table(
        items_children_table,
        metadata,
        Column(
            "parent",
            ForeignKey(f"{items_table}.name", ondelete="CASCADE", onupdate="CASCADE"),
            primary_key=True,
        ),
        Column(
            "child",
            ForeignKey(f"{items_table}.name", ondelete="CASCADE", onupdate="CASCADE"),
            primary_key=True,
        ),
    )

    return RbacTables(items=items, items_children=items_children)
