"""
Permission & Role seeding script.

Run this once against a live database to populate the default
permissions, roles and hierarchy.  It is IDEMPOTENT — safe to re-run:
existing items are left untouched and existing edges are skipped.

Hierarchy seeded here:
    • posts.viewer  → posts.view
    • posts.redactor → posts.viewer (+ posts.create / posts.update)
    • posts.admin   → posts.redactor (+ posts.delete)
    • admin         → posts.admin, user.manage

Usage:
    python -m rbac_db.rbac.permission_seed
"""

import logging

from rbac_db.core.exceptions import HierarchyConflict
from rbac_db.schemas import Permission, Role
from rbac_db.services.items_storage import ItemsStorage

logger = logging.getLogger("rbac")

# ────────────────────────────────────────────────────────────────────
# 1.  CANONICAL PERMISSION LIST
# ────────────────────────────────────────────────────────────────────
PERMISSIONS: list[dict[str, str]] = [
    {"name": "posts.view", "description": "View posts"},
    {"name": "posts.create", "description": "Create posts"},
    {"name": "posts.update", "description": "Update any post"},
    {"name": "posts.delete", "description": "Delete any post"},
    {"name": "user.manage", "description": "Manage user accounts"},
]

ROLES: list[dict[str, str]] = [
    {"name": "posts.viewer", "description": "Reads posts"},
    {"name": "posts.redactor", "description": "Writes and edits posts"},
    {"name": "posts.admin", "description": "Full control over posts"},
    {"name": "admin", "description": "Full access"},
]

# ────────────────────────────────────────────────────────────────────
# 2.  PARENT → CHILDREN MAPPING
# ────────────────────────────────────────────────────────────────────
CHILDREN: dict[str, list[str]] = {
    "posts.viewer": ["posts.view"],
    "posts.redactor": ["posts.viewer", "posts.create", "posts.update"],
    "posts.admin": ["posts.redactor", "posts.delete"],
    "admin": ["posts.admin", "user.manage"],
}


# ────────────────────────────────────────────────────────────────────
# 3.  SEED FUNCTION (idempotent)
# ────────────────────────────────────────────────────────────────────
def seed(storage: ItemsStorage) -> tuple[int, int]:
    """
    Create permissions, roles and edges if they don't already exist.

    Returns the number of items and edges created.
    """
    created_items = 0
    created_edges = 0

    # ── Items ────────────────────────────────────────────────────────
    existing = set(storage.get_by_names([d["name"] for d in PERMISSIONS + ROLES]))
    for pdata in PERMISSIONS:
        if pdata["name"] not in existing:
            storage.add(Permission(**pdata))
            created_items += 1
    for rdata in ROLES:
        if rdata["name"] not in existing:
            storage.add(Role(**rdata))
            created_items += 1

    # ── Edges ────────────────────────────────────────────────────────
    for parent, child_names in CHILDREN.items():
        for child in child_names:
            if storage.has_child(parent, child):
                continue
            try:
                storage.add_child(parent, child)
            except HierarchyConflict:
                # Hand-edited data may already link these the other way round.
                logger.warning("Skipping seed edge %s -> %s", parent, child)
                continue
            created_edges += 1

    logger.info("Seeded %d items and %d edges.", created_items, created_edges)
    return created_items, created_edges


# ────────────────────────────────────────────────────────────────────
# 4.  CLI entrypoint:  python -m rbac_db.rbac.permission_seed
# ────────────────────────────────────────────────────────────────────
def main() -> None:
    from rbac_db.main import create_items_storage

    storage = create_items_storage(create_schema=True)
    try:
        seed(storage)
    finally:
        storage.db.dispose()


if __name__ == "__main__":
    main()
