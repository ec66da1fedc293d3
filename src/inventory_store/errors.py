"""
Error types for inventory store operations.

All errors are explicit and never silent.
"""

from typing import Optional


class InventoryStoreError(Exception):
    """Base exception for all inventory store errors."""
    pass


class MalformedSnapshotError(InventoryStoreError):
    """Raised when stored snapshot text cannot be decoded into a snapshot."""

    def __init__(self, reason: str, key: Optional[str] = None):
        self.reason = reason
        self.key = key
        msg = f"Malformed snapshot: {reason}"
        if key:
            msg += f" (key: {key})"
        super().__init__(msg)


class SnapshotNotFoundError(InventoryStoreError):
    """Raised when a requested snapshot does not exist."""

    def __init__(self, digest: str):
        self.digest = digest
        super().__init__(f"Snapshot not found: {digest}")


class SnapshotCorruptedError(InventoryStoreError):
    """Raised when a snapshot's content does not match its digest."""

    def __init__(self, digest: str, actual: str):
        self.digest = digest
        self.actual = actual
        super().__init__(
            f"Snapshot corrupted: {digest}\n"
            f"Recomputed digest: {actual}"
        )


class InventoryValidationError(InventoryStoreError):
    """Base class for rejected user input. Nothing is committed."""
    pass


class DuplicateNameError(InventoryValidationError):
    """Raised when an item name is already taken in the current snapshot."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"An item named {name!r} already exists")


class EmptyNameError(InventoryValidationError):
    """Raised when an item name is empty."""

    def __init__(self):
        super().__init__("Item name cannot be empty")


class SchemaViolationError(InventoryValidationError):
    """Raised when bulk item data does not match the item schema."""

    def __init__(self, description: str, cause: Optional[Exception] = None):
        self.description = description
        self.cause = cause
        msg = f"Schema violation: {description}"
        if cause:
            msg += f"\nCause: {cause}"
        super().__init__(msg)


class StorageError(InventoryStoreError):
    """Raised when the host key/value storage denies an operation."""

    def __init__(self, operation: str, key: Optional[str] = None, cause: Optional[Exception] = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        msg = f"Storage error during {operation}"
        if key:
            msg += f": {key}"
        if cause:
            msg += f"\nCause: {cause}"
        super().__init__(msg)


class StorageUnavailableError(StorageError):
    """Raised when storage cannot be read or written at all."""
    pass


class StorageFullError(StorageError):
    """Raised when a write is refused because storage is out of space."""
    pass


class InvariantViolationError(InventoryStoreError):
    """Raised when a system invariant is violated."""

    def __init__(self, invariant: str, details: str):
        self.invariant = invariant
        self.details = details
        super().__init__(f"Invariant violation: {invariant}\nDetails: {details}")
