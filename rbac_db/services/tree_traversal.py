"""
Tree traversal — closure expansion over the items-children table.

Every walk is breadth-first and batched per level: one SELECT fetches
the edges of the whole frontier, so a hierarchy of depth N costs N+1
queries no matter how wide it is.  A visited set guards every walk;
the graph is acyclic, but diamonds would otherwise be expanded twice.

Results are identical to naive one-step-at-a-time expansion; only the
query count differs.  Each level is read ordered by name, so discovery
order does not depend on how rows were inserted.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import Connection, Table, select


@dataclass
class Closure:
    """
    Outcome of a walk.

    - names: every name reached from the roots, in discovery order.
    - edges: every (parent, child) pair followed on the way.
    """

    names: list[str] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)


def expand(
    conn: Connection,
    items_children: Table,
    roots: Iterable[str],
    *,
    upward: bool = False,
) -> Closure:
    """Walk parent → child edges from `roots` (or child → parent if `upward`)."""
    if upward:
        source, target = items_children.c.child, items_children.c.parent
    else:
        source, target = items_children.c.parent, items_children.c.child

    frontier = list(dict.fromkeys(roots))
    expanded = set(frontier)
    reached: dict[str, None] = {}
    closure = Closure()

    while frontier:
        rows = conn.execute(
            select(source, target).where(source.in_(frontier)).order_by(source, target)
        ).all()
        frontier = []
        for src, dst in rows:
            closure.edges.append((dst, src) if upward else (src, dst))
            if dst not in reached:
                reached[dst] = None
            if dst not in expanded:
                expanded.add(dst)
                frontier.append(dst)

    closure.names = list(reached)
    return closure


def is_reachable(
    conn: Connection,
    items_children: Table,
    start: str,
    target: str,
) -> bool:
    """True if `target` can be reached from `start` following parent → child edges."""
    parent, child = items_children.c.parent, items_children.c.child
    frontier = [start]
    visited = {start}

    while frontier:
        rows = conn.execute(select(child).where(parent.in_(frontier))).scalars().all()
        frontier = []
        for name in rows:
            if name == target:
                return True
            if name not in visited:
                visited.add(name)
                frontier.append(name)
    return False


def descendants_within(
    names: list[str],
    edges: Iterable[tuple[str, str]],
) -> dict[str, list[str]]:
    """
    For every name, list all its direct and transitive descendants that
    belong to `names`, ordered as in `names`.

    Used by the hierarchy view: each level carries the cumulative set of
    everything collected below it, not only its immediate children.
    """
    position = {name: index for index, name in enumerate(names)}
    children_of: dict[str, list[str]] = defaultdict(list)
    for parent, child in edges:
        children_of[parent].append(child)

    result: dict[str, list[str]] = {}
    for name in names:
        seen: set[str] = set()
        stack = list(children_of[name])
        while stack:
            current = stack.pop()
            if current in seen or current not in position:
                continue
            seen.add(current)
            stack.extend(children_of[current])
        result[name] = sorted(seen, key=position.__getitem__)
    return result
