"""
RBAC items storage — roles, permissions and their hierarchy in a
relational database.
"""

from rbac_db.core.exceptions import (
    CycleDetected,
    DuplicateName,
    HierarchyConflict,
    InvalidConfiguration,
    ItemAlreadyHasChild,
    RbacStorageError,
    SeparatorCollisionException,
    UnknownItem,
)
from rbac_db.schemas import HierarchyNode, Item, ItemType, Permission, Role
from rbac_db.services.items_storage import ItemsStorage

__all__ = [
    "ItemsStorage",
    "Item",
    "ItemType",
    "Role",
    "Permission",
    "HierarchyNode",
    "RbacStorageError",
    "InvalidConfiguration",
    "DuplicateName",
    "UnknownItem",
    "HierarchyConflict",
    "ItemAlreadyHasChild",
    "CycleDetected",
    "SeparatorCollisionException",
]
