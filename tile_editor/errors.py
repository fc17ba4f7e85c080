"""
Exception hierarchy for the tile editor engine.
All failures are recoverable at the call site.
"""


class EditorError(Exception):
    """Base class for all editor errors."""


class NameConflict(EditorError):
    """Raised when a name is already used in the same collection."""

    def __init__(self, collection: str, name: str):
        super().__init__(f"{collection} named '{name}' already exists")
        self.collection = collection
        self.name = name


class InvalidName(EditorError, ValueError):
    pass


class ReferencedElsewhere(EditorError):
    """Raised when removing an entity that other entities still reference."""

    def __init__(self, message: str, referrers=()):
        super().__init__(message)
        self.referrers = list(referrers)


class IndexOutOfRange(EditorError, IndexError):
    pass


class InvalidDimension(EditorError, ValueError):
    pass


class OutOfBounds(EditorError, IndexError):
    pass


class GestureInProgress(EditorError):
    """Raised when the document is mutated while a gesture is uncommitted."""
