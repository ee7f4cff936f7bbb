"""
Pydantic schemas for RBAC items.

Kept in a single file for now.  Schemas are deliberately decoupled from
the SQLAlchemy tables so callers never see rows, only items keyed by
name.  Items read back from storage are built as `Role` or `Permission`
according to the stored type, so they compare equal to what was added.
"""

import enum
from typing import Any, Literal, TypedDict

from pydantic import BaseModel


class ItemType(str, enum.Enum):
    ROLE = "role"
    PERMISSION = "permission"


class Item(BaseModel):
    name: str
    type: ItemType
    description: str | None = None
    rule_name: str | None = None
    data: dict[str, Any] | None = None
    created_at: int | None = None
    updated_at: int | None = None


class Role(Item):
    type: Literal[ItemType.ROLE] = ItemType.ROLE


class Permission(Item):
    type: Literal[ItemType.PERMISSION] = ItemType.PERMISSION


def item_from_row(row: Any) -> Item:
    """Build the concrete item class for a row of the items table."""
    values = dict(row._mapping)
    item_class = Role if values.pop("type") == ItemType.ROLE.value else Permission
    return item_class.model_validate(values)


# ── Hierarchy ────────────────────────────────────────────────────────
class HierarchyNode(TypedDict):
    item: Item
    children: dict[str, Item]
