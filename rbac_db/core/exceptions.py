"""Exception classes raised by the RBAC storage."""


class RbacStorageError(Exception):
    """Base exception for the RBAC storage."""

    default_message = "RBAC storage error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidConfiguration(RbacStorageError, ValueError):
    """Raised when the storage is constructed with bad settings."""

    default_message = "Invalid RBAC storage configuration."


class DuplicateName(RbacStorageError):
    """Raised when an item with the same name already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Item "{name}" already exists.')


class UnknownItem(RbacStorageError, LookupError):
    """Raised when an operation references an item that does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Item "{name}" does not exist.')


class HierarchyConflict(RbacStorageError):
    """Raised when a parent/child edge can not be added."""

    def __init__(self, parent: str, child: str, message: str | None = None):
        self.parent = parent
        self.child = child
        super().__init__(message)


class ItemAlreadyHasChild(HierarchyConflict):
    """Raised when the parent → child edge is already stored."""

    def __init__(self, parent: str, child: str):
        super().__init__(parent, child, f'"{parent}" already has a child "{child}".')


class CycleDetected(HierarchyConflict):
    """Raised when an edge would introduce a loop into the hierarchy."""

    def __init__(self, parent: str, child: str):
        super().__init__(
            parent,
            child,
            f'Cannot add "{child}" as a child of "{parent}". A loop has been detected.',
        )


class SeparatorCollisionException(RbacStorageError):
    default_message = "Separator collision has been detected."
