"""
Exception types raised by avlstore.

Absence is never an exception here: lookups report it with False, None or an
end iterator. These cover caller mistakes and broken files.
"""


class AVLStoreError(Exception):
    """Base class for every avlstore error."""


class IteratorRangeError(AVLStoreError, IndexError):
    """Raised when an iterator is moved past end/begin or dereferenced at end."""


class StaleIteratorError(AVLStoreError, RuntimeError):
    """Raised when an iterator or position is used after the tree was mutated."""


class GraphError(AVLStoreError, ValueError):
    """Raised for invalid vertex names, self loops and negative weights."""


class StorageError(AVLStoreError, OSError):
    """Raised when a record file is truncated or has an unreadable header."""
