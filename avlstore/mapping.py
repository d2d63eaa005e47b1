from typing import Any, Callable, Iterable, Optional, Tuple

from avlstore.indexing import AVLTree


class AVLTreeMap:
    """Map implementation over an AVLTree of (key, value) entries ordered by key."""

    class _MapEntry:
        """Lightweight composite to store key-value pairs."""
        __slots__ = '_key', '_value'

        def __init__(self, key, value):
            self._key = key
            self._value = value

        def get_key(self): return self._key
        def get_value(self): return self._value

        def __lt__(self, other): return self._key < other.get_key()
        def __le__(self, other): return self._key <= other.get_key()
        def __eq__(self, other): return self._key == other.get_key()
        def __repr__(self): return f"({self._key}, {self._value})"

    def __init__(self, default_factory: Optional[Callable[[], Any]] = None):
        self._tree = AVLTree()
        self._default_factory = default_factory

    def __len__(self) -> int:
        return len(self._tree)

    def is_empty(self) -> bool:
        return len(self._tree) == 0

    def height(self) -> int:
        """Height of the underlying tree."""
        return self._tree.height()

    def __iter__(self) -> Iterable[Any]:
        """Generate an iteration of the map's keys in order."""
        for entry in self._tree:
            yield entry.get_key()

    def keys(self) -> Iterable[Any]:
        return iter(self)

    def values(self) -> Iterable[Any]:
        """Generate an iteration of the map's values in key order."""
        for entry in self._tree:
            yield entry.get_value()

    def items(self) -> Iterable[Tuple[Any, Any]]:
        for entry in self._tree:
            yield entry.get_key(), entry.get_value()

    def _probe(self, k: Any):
        return self._MapEntry(k, None)

    def _find_position(self, k: Any):
        """Return an iterator at the entry for k, or None."""
        it = self._tree.find(self._probe(k))
        if it.is_end():
            return None
        return it

    # ------------------ Lookups ------------------
    def get(self, k: Any, default: Any = None) -> Any:
        """Return the value associated with key k, or default."""
        p = self._find_position(k)
        if p is None:
            return default
        return p.get_element().get_value()

    def at(self, k: Any) -> Any:
        """Return the value for k; raise KeyError when k is absent."""
        p = self._find_position(k)
        if p is None:
            raise KeyError(k)
        return p.get_element().get_value()

    def contains_key(self, k: Any) -> bool:
        return self._find_position(k) is not None

    def __contains__(self, k: Any) -> bool:
        return self.contains_key(k)

    def __getitem__(self, k: Any) -> Any:
        """Return the value for k, inserting default_factory() first when k is absent."""
        p = self._find_position(k)
        if p is not None:
            return p.get_element().get_value()
        if self._default_factory is None:
            raise KeyError(k)
        value = self._default_factory()
        self._tree.insert(self._MapEntry(k, value))
        return value

    # ------------------ Mutations ------------------
    def put(self, k: Any, v: Any) -> Optional[Any]:
        """Insert or replace entry (k, v) and return old value, or None."""
        p = self._find_position(k)
        if p is not None:
            old_entry = self._tree.replace(p, self._MapEntry(k, v))
            return old_entry.get_value()
        self._tree.insert(self._MapEntry(k, v))
        return None

    def __setitem__(self, k: Any, v: Any) -> None:
        self.put(k, v)

    def remove(self, k: Any) -> Optional[Any]:
        """Remove entry with key k and return its value, or None."""
        p = self._find_position(k)
        if p is None:
            return None
        old_value = p.get_element().get_value()
        self._tree.remove(self._probe(k))
        return old_value

    def __delitem__(self, k: Any) -> None:
        if not self._tree.remove(self._probe(k)):
            raise KeyError(k)

    def remove_where(self, predicate: Callable[[Any], bool]) -> int:
        """Remove every entry whose key satisfies predicate; return how many went."""
        doomed = [k for k in self if predicate(k)]
        for k in doomed:
            self._tree.remove(self._probe(k))
        return len(doomed)

    def for_each(self, operation: Callable[[Any], None]) -> None:
        """Call operation(value) for every value in key order."""
        for value in self.values():
            operation(value)

    def clear(self) -> None:
        self._tree.clear()

    def __str__(self) -> str:
        return "[" + "".join(f"({k}:{v})" for k, v in self.items()) + "]"

    def __repr__(self) -> str:
        return f"AVLTreeMap({dict(self.items())!r})"
