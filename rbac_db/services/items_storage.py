"""
Items storage — roles, permissions and their parent → child hierarchy.

Handles:
- Item CRUD keyed by name (a rename is propagated to every edge)
- Edge CRUD with duplicate and loop rejection
- Closure queries: all children, all parents, hierarchy view

Every mutation runs in a single transaction.  Cascading deletes and
rename propagation are explicit statements issued here, so the
storage behaves the same whether or not the engine enforces the
declared foreign keys.

Usage:
    storage = ItemsStorage(engine)
    storage.metadata.create_all(engine)

    storage.add(Permission(name="posts.view"))
    storage.add(Role(name="posts.viewer"))
    storage.add_child("posts.viewer", "posts.view")

    storage.get_all_children("posts.viewer")   # {"posts.view": Permission(...)}
"""

import logging
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Connection, Engine, MetaData, delete, insert, or_, select, update

from rbac_db.core.exceptions import (
    CycleDetected,
    DuplicateName,
    InvalidConfiguration,
    ItemAlreadyHasChild,
    SeparatorCollisionException,
    UnknownItem,
)
from rbac_db.models.tables import build_tables
from rbac_db.schemas import HierarchyNode, Item, ItemType, Permission, Role, item_from_row
from rbac_db.services.tree_traversal import descendants_within, expand, is_reachable

logger = logging.getLogger("rbac")


class ItemsStorage:
    """
    Relational storage for RBAC items and their hierarchy.

    `db` is either an Engine (each call checks out its own connection)
    or a Connection owned by the caller; when that connection is already
    inside a transaction, mutations run in a SAVEPOINT so a failure only
    rolls back the failed operation.
    """

    def __init__(
        self,
        db: Engine | Connection,
        items_table: str = "rbac_item",
        items_children_table: str = "rbac_item_child",
        names_separator: str = "/",
    ):
        if len(names_separator) != 1:
            raise InvalidConfiguration("Names separator must be exactly 1 character long.")

        self.db = db
        self.names_separator = names_separator
        self.metadata = MetaData()
        self.items, self.items_children = build_tables(
            self.metadata, items_table, items_children_table
        )

    # ============================================================
    # CONNECTION HANDLING
    # ============================================================

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        if isinstance(self.db, Engine):
            with self.db.connect() as conn:
                yield conn
        else:
            # Reads autobegin; end that transaction unless the caller owned one.
            caller_transaction = self.db.in_transaction()
            try:
                yield self.db
            finally:
                if not caller_transaction and self.db.in_transaction():
                    self.db.rollback()

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        if isinstance(self.db, Engine):
            with self.db.begin() as conn:
                yield conn
        elif self.db.in_transaction():
            with self.db.begin_nested():
                yield self.db
        else:
            with self.db.begin():
                yield self.db

    # ============================================================
    # ITEMS
    # ============================================================

    def get_all(self) -> list[Item]:
        with self._connect() as conn:
            rows = conn.execute(select(self.items)).all()
        return [item_from_row(row) for row in rows]

    def get_by_names(self, names: Iterable[str]) -> dict[str, Item]:
        """Items for the given names, skipping names that do not exist."""
        names = list(names)
        if not names:
            return {}
        with self._connect() as conn:
            return self._fetch_items(conn, names)

    def get(self, name: str) -> Item | None:
        """Get item by name.  Absence is a normal outcome, not an error."""
        with self._connect() as conn:
            row = conn.execute(select(self.items).where(self.items.c.name == name)).first()
        return item_from_row(row) if row is not None else None

    def exists(self, name: str) -> bool:
        with self._connect() as conn:
            return self._item_exists(conn, name)

    def role_exists(self, name: str) -> bool:
        with self._connect() as conn:
            return self._item_exists(conn, name, ItemType.ROLE)

    def get_roles(self) -> dict[str, Role]:
        return self._get_all_by_type(ItemType.ROLE)

    def get_roles_by_names(self, names: Iterable[str]) -> dict[str, Role]:
        return self._get_by_names_and_type(names, ItemType.ROLE)

    def get_role(self, name: str) -> Role | None:
        return self._get_by_names_and_type([name], ItemType.ROLE).get(name)

    def get_permissions(self) -> dict[str, Permission]:
        return self._get_all_by_type(ItemType.PERMISSION)

    def get_permissions_by_names(self, names: Iterable[str]) -> dict[str, Permission]:
        return self._get_by_names_and_type(names, ItemType.PERMISSION)

    def get_permission(self, name: str) -> Permission | None:
        return self._get_by_names_and_type([name], ItemType.PERMISSION).get(name)

    def add(self, item: Item) -> None:
        """Insert a new item.  Missing timestamps are set to the current time."""
        values = self._row_values(item, int(time.time()))
        with self._transaction() as conn:
            if self._item_exists(conn, item.name):
                raise DuplicateName(item.name)
            conn.execute(insert(self.items).values(**values))
        logger.debug("Added %s %s", item.type.value, item.name)

    def update(self, name: str, item: Item) -> None:
        """
        Replace the item stored under `name` with `item`.

        When `item.name` differs from `name` the item is renamed and every
        edge pointing at the old name, as parent or as child, is rewritten
        in the same transaction.
        """
        items, children = self.items, self.items_children
        now = int(time.time())

        with self._transaction() as conn:
            current = conn.execute(select(items).where(items.c.name == name)).first()
            if current is None:
                raise UnknownItem(name)

            renamed = item.name != name
            if renamed and self._item_exists(conn, item.name):
                raise DuplicateName(item.name)

            values = self._row_values(item, now)
            if item.created_at is None:
                values["created_at"] = current.created_at
            conn.execute(update(items).where(items.c.name == name).values(**values))

            if renamed:
                conn.execute(
                    update(children).where(children.c.parent == name).values(parent=item.name)
                )
                conn.execute(
                    update(children).where(children.c.child == name).values(child=item.name)
                )

        if renamed:
            logger.debug("Renamed %s to %s", name, item.name)
        else:
            logger.debug("Updated %s", name)

    def remove(self, name: str) -> None:
        """Delete the item and every edge where it is parent or child."""
        items, children = self.items, self.items_children
        with self._transaction() as conn:
            conn.execute(
                delete(children).where(or_(children.c.parent == name, children.c.child == name))
            )
            conn.execute(delete(items).where(items.c.name == name))
        logger.debug("Removed %s", name)

    def clear(self) -> None:
        with self._transaction() as conn:
            conn.execute(delete(self.items_children))
            conn.execute(delete(self.items))
        logger.debug("Cleared all items")

    def clear_by_type(self, item_type: ItemType) -> None:
        """
        Delete every item of `item_type`.

        Only edges touching a deleted item go with them; edges between two
        surviving items of the other type are left alone.
        """
        items, children = self.items, self.items_children
        doomed = select(items.c.name).where(items.c.type == item_type.value)

        with self._transaction() as conn:
            conn.execute(
                delete(children).where(
                    or_(children.c.parent.in_(doomed), children.c.child.in_(doomed))
                )
            )
            conn.execute(delete(items).where(items.c.type == item_type.value))
        logger.debug("Cleared all items of type %s", item_type.value)

    def clear_roles(self) -> None:
        self.clear_by_type(ItemType.ROLE)

    def clear_permissions(self) -> None:
        self.clear_by_type(ItemType.PERMISSION)

    # ============================================================
    # CHILDREN
    # ============================================================

    def add_child(self, parent_name: str, child_name: str) -> None:
        """
        Add a direct parent → child edge.

        Raises:
            UnknownItem: either name is not stored.
            ItemAlreadyHasChild: the edge already exists.
            CycleDetected: the edge would close a loop (including a self loop).
        """
        children = self.items_children

        with self._transaction() as conn:
            for name in (parent_name, child_name):
                if not self._item_exists(conn, name):
                    raise UnknownItem(name)

            if self._edge_exists(conn, parent_name, child_name):
                logger.warning("Edge %s -> %s already exists", parent_name, child_name)
                raise ItemAlreadyHasChild(parent_name, child_name)

            # The child must not already be an ancestor of the parent.
            if parent_name == child_name or is_reachable(conn, children, child_name, parent_name):
                logger.warning("Edge %s -> %s rejected, loop detected", parent_name, child_name)
                raise CycleDetected(parent_name, child_name)

            conn.execute(insert(children).values(parent=parent_name, child=child_name))
        logger.debug("Added child %s -> %s", parent_name, child_name)

    def has_child(self, parent_name: str, child_name: str) -> bool:
        """Direct edges only.  See `has_descendant` for the transitive check."""
        with self._connect() as conn:
            return self._edge_exists(conn, parent_name, child_name)

    def has_descendant(self, parent_name: str, child_name: str) -> bool:
        with self._connect() as conn:
            return is_reachable(conn, self.items_children, parent_name, child_name)

    def has_children(self, parent_name: str) -> bool:
        children = self.items_children
        with self._connect() as conn:
            stmt = select(select(children.c.child).where(children.c.parent == parent_name).exists())
            return bool(conn.scalar(stmt))

    def get_direct_children(self, name: str) -> dict[str, Item]:
        items, children = self.items, self.items_children
        stmt = (
            select(items)
            .join(children, children.c.child == items.c.name)
            .where(children.c.parent == name)
        )
        with self._connect() as conn:
            rows = conn.execute(stmt).all()
        return {row.name: item_from_row(row) for row in rows}

    def remove_child(self, parent_name: str, child_name: str) -> None:
        """Delete exactly one edge.  Absent edges are silently ignored."""
        children = self.items_children
        with self._transaction() as conn:
            result = conn.execute(
                delete(children).where(
                    children.c.parent == parent_name,
                    children.c.child == child_name,
                )
            )
        if result.rowcount:
            logger.debug("Removed child %s -> %s", parent_name, child_name)

    def remove_children(self, parent_name: str) -> None:
        children = self.items_children
        with self._transaction() as conn:
            result = conn.execute(delete(children).where(children.c.parent == parent_name))
        logger.debug("Removed %s children of %s", result.rowcount, parent_name)

    # ============================================================
    # HIERARCHY
    # ============================================================

    def get_all_children(self, names: str | Iterable[str]) -> dict[str, Item]:
        """Every item reachable downward from `names`, direct or transitive."""
        return self._get_all_children(names)

    def get_all_child_roles(self, names: str | Iterable[str]) -> dict[str, Role]:
        return self._get_all_children(names, ItemType.ROLE)

    def get_all_child_permissions(self, names: str | Iterable[str]) -> dict[str, Permission]:
        return self._get_all_children(names, ItemType.PERMISSION)

    def get_all_parents(self, name: str) -> dict[str, Item]:
        """Every item `name` is reachable from, direct or transitive."""
        with self._connect() as conn:
            closure = expand(conn, self.items_children, [name], upward=True)
            if not closure.names:
                return {}
            return self._fetch_items(conn, closure.names)

    def get_hierarchy(self, name: str) -> dict[str, HierarchyNode]:
        """
        Hierarchy view around `name`.

        Keys are `name` itself followed by all of its ancestors.  Each value
        holds the item and, under "children", every item of the view found
        below it (the cumulative set, not only direct children):

            {
                "posts.view":   {"item": ..., "children": {}},
                "posts.viewer": {"item": ..., "children": {"posts.view": ...}},
                ...
            }

        Raises SeparatorCollisionException when any stored item name
        contains the names separator.
        """
        with self._connect() as conn:
            self._assert_no_separator_collision(conn)

            closure = expand(conn, self.items_children, [name], upward=True)
            names = [name] + [parent for parent in closure.names if parent != name]
            found = self._fetch_items(conn, names)

        if name not in found:
            return {}

        names = [n for n in names if n in found]
        descendants = descendants_within(names, closure.edges)
        return {
            n: {"item": found[n], "children": {c: found[c] for c in descendants[n]}}
            for n in names
        }

    # ============================================================
    # HELPERS
    # ============================================================

    def _get_all_children(
        self,
        names: str | Iterable[str],
        item_type: ItemType | None = None,
    ) -> dict[str, Any]:
        roots = [names] if isinstance(names, str) else list(names)
        if not roots:
            return {}
        with self._connect() as conn:
            closure = expand(conn, self.items_children, roots)
            if not closure.names:
                return {}
            return self._fetch_items(conn, closure.names, item_type)

    def _get_all_by_type(self, item_type: ItemType) -> dict[str, Any]:
        stmt = select(self.items).where(self.items.c.type == item_type.value)
        with self._connect() as conn:
            rows = conn.execute(stmt).all()
        return {row.name: item_from_row(row) for row in rows}

    def _get_by_names_and_type(self, names: Iterable[str], item_type: ItemType) -> dict[str, Any]:
        names = list(names)
        if not names:
            return {}
        with self._connect() as conn:
            return self._fetch_items(conn, names, item_type)

    def _fetch_items(
        self,
        conn: Connection,
        names: list[str],
        item_type: ItemType | None = None,
    ) -> dict[str, Item]:
        """Load items by name, keeping the order of `names`."""
        stmt = select(self.items).where(self.items.c.name.in_(names))
        if item_type is not None:
            stmt = stmt.where(self.items.c.type == item_type.value)
        found = {row.name: item_from_row(row) for row in conn.execute(stmt)}
        return {name: found[name] for name in names if name in found}

    def _item_exists(
        self,
        conn: Connection,
        name: str,
        item_type: ItemType | None = None,
    ) -> bool:
        query = select(self.items.c.name).where(self.items.c.name == name)
        if item_type is not None:
            query = query.where(self.items.c.type == item_type.value)
        return bool(conn.scalar(select(query.exists())))

    def _edge_exists(self, conn: Connection, parent_name: str, child_name: str) -> bool:
        children = self.items_children
        query = select(children.c.parent).where(
            children.c.parent == parent_name,
            children.c.child == child_name,
        )
        return bool(conn.scalar(select(query.exists())))

    def _assert_no_separator_collision(self, conn: Connection) -> None:
        query = select(self.items.c.name).where(
            self.items.c.name.contains(self.names_separator, autoescape=True)
        )
        if conn.scalar(select(query.exists())):
            raise SeparatorCollisionException()

    @staticmethod
    def _row_values(item: Item, now: int) -> dict[str, Any]:
        return {
            "name": item.name,
            "type": item.type.value,
            "description": item.description,
            "rule_name": item.rule_name,
            "data": item.data,
            "created_at": item.created_at if item.created_at is not None else now,
            "updated_at": item.updated_at if item.updated_at is not None else now,
        }
