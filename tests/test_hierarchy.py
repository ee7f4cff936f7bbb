"""
Tests for closure queries and the hierarchy view.
"""

import pytest

from rbac_db import ItemsStorage, Permission, Role, SeparatorCollisionException

CREATED_AT = 1703440278


def test_get_all_children(populated_storage):
    children = populated_storage.get_all_children("posts.admin")

    assert set(children) == {
        "posts.redactor",
        "posts.delete",
        "posts.viewer",
        "posts.create",
        "posts.update",
        "posts.view",
        "posts.update.own",
    }
    assert isinstance(children["posts.viewer"], Role)
    assert isinstance(children["posts.view"], Permission)


def test_get_all_children_of_several_roots(populated_storage):
    children = populated_storage.get_all_children(["posts.viewer", "posts.update"])
    assert set(children) == {"posts.view", "posts.update.own"}


def test_get_all_children_includes_root_reached_from_another_root(populated_storage):
    children = populated_storage.get_all_children(["posts.admin", "posts.redactor"])
    assert "posts.redactor" in children
    assert "posts.admin" not in children


@pytest.mark.parametrize("names", ["guest", "posts.view", "ghost", []])
def test_get_all_children_empty(populated_storage, names):
    assert populated_storage.get_all_children(names) == {}


def test_get_all_children_matches_single_step_expansion(populated_storage):
    """The batched walk must agree with naive one-edge-at-a-time expansion."""
    expected: set[str] = set()
    pending = ["admin"]
    while pending:
        for child in populated_storage.get_direct_children(pending.pop()):
            if child not in expected:
                expected.add(child)
                pending.append(child)

    assert set(populated_storage.get_all_children("admin")) == expected


def test_get_all_child_roles(populated_storage):
    roles = populated_storage.get_all_child_roles("admin")
    assert set(roles) == {"posts.admin", "posts.redactor", "posts.viewer"}


def test_get_all_child_permissions(populated_storage):
    permissions = populated_storage.get_all_child_permissions("posts.redactor")
    assert set(permissions) == {"posts.view", "posts.create", "posts.update", "posts.update.own"}


def test_get_all_parents(populated_storage):
    parents = populated_storage.get_all_parents("posts.view")

    assert set(parents) == {"posts.viewer", "posts.redactor", "posts.admin", "admin", "posts.update"}
    assert populated_storage.get_all_parents("admin") == {}


# ── Hierarchy view ───────────────────────────────────────────────────


def _posts_items():
    view = Permission(name="posts.view", created_at=CREATED_AT, updated_at=CREATED_AT)
    viewer = Role(name="posts.viewer", created_at=CREATED_AT, updated_at=CREATED_AT)
    redactor = Role(name="posts.redactor", created_at=CREATED_AT, updated_at=CREATED_AT)
    admin = Role(name="posts.admin", created_at=CREATED_AT, updated_at=CREATED_AT)
    return view, viewer, redactor, admin


@pytest.fixture
def posts_storage(storage):
    view, viewer, redactor, admin = _posts_items()
    for item in (view, viewer, redactor, admin):
        storage.add(item)
    storage.add_child("posts.viewer", "posts.view")
    storage.add_child("posts.redactor", "posts.view")
    storage.add_child("posts.redactor", "posts.viewer")
    storage.add_child("posts.admin", "posts.view")
    storage.add_child("posts.admin", "posts.viewer")
    storage.add_child("posts.admin", "posts.redactor")
    return storage


def test_get_hierarchy_with_custom_separator(posts_storage, engine):
    view, viewer, redactor, admin = _posts_items()
    storage = ItemsStorage(engine, names_separator="|")

    assert storage.get_hierarchy("posts.view") == {
        "posts.view": {"item": view, "children": {}},
        "posts.viewer": {"item": viewer, "children": {"posts.view": view}},
        "posts.redactor": {
            "item": redactor,
            "children": {"posts.view": view, "posts.viewer": viewer},
        },
        "posts.admin": {
            "item": admin,
            "children": {
                "posts.view": view,
                "posts.viewer": viewer,
                "posts.redactor": redactor,
            },
        },
    }


def test_get_hierarchy_root_comes_first(posts_storage):
    hierarchy = posts_storage.get_hierarchy("posts.view")
    assert next(iter(hierarchy)) == "posts.view"


def test_get_hierarchy_from_middle(posts_storage):
    hierarchy = posts_storage.get_hierarchy("posts.viewer")

    assert set(hierarchy) == {"posts.viewer", "posts.redactor", "posts.admin"}
    assert set(hierarchy["posts.admin"]["children"]) == {"posts.viewer", "posts.redactor"}


def test_get_hierarchy_unknown_root(posts_storage):
    assert posts_storage.get_hierarchy("ghost") == {}


def test_get_hierarchy_separator_collision(posts_storage, engine):
    storage = ItemsStorage(engine, names_separator=".")

    with pytest.raises(SeparatorCollisionException, match="^Separator collision has been detected.$"):
        storage.get_hierarchy("posts.view")


def test_get_hierarchy_collision_on_unrelated_item(posts_storage):
    posts_storage.add(Role(name="team/lead"))

    with pytest.raises(SeparatorCollisionException):
        posts_storage.get_hierarchy("posts.view")


def test_get_hierarchy_wildcard_separator_is_literal(posts_storage, engine):
    storage = ItemsStorage(engine, names_separator="%")
    assert len(storage.get_hierarchy("posts.view")) == 4


def test_get_hierarchy_order_ignores_edge_insertion_order(storage):
    view, viewer, redactor, admin = _posts_items()
    for item in (admin, redactor, viewer, view):
        storage.add(item)
    storage.add_child("posts.admin", "posts.redactor")
    storage.add_child("posts.admin", "posts.viewer")
    storage.add_child("posts.admin", "posts.view")
    storage.add_child("posts.redactor", "posts.viewer")
    storage.add_child("posts.redactor", "posts.view")
    storage.add_child("posts.viewer", "posts.view")

    hierarchy = storage.get_hierarchy("posts.view")

    assert list(hierarchy) == ["posts.view", "posts.admin", "posts.redactor", "posts.viewer"]
    assert list(hierarchy["posts.admin"]["children"]) == [
        "posts.view",
        "posts.redactor",
        "posts.viewer",
    ]
