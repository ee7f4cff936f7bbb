"""
Models package — the two RBAC relations, built per storage instance so
their table names stay configurable.
"""

from rbac_db.models.tables import RbacTables, build_tables

__all__ = [
    "RbacTables",
    "build_tables",
]
