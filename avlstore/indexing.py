from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Iterator, List, Optional

from avlstore.errors import IteratorRangeError, StaleIteratorError

Comparator = Callable[[Any, Any], int]

# Which slot holds a node: its parent's left or right child, or the tree root.
LEFT = 0
RIGHT = 1
ROOT = 2


def compare(a: Any, b: Any) -> int:
    """Three-way comparison built from < and ==; the default comparator."""
    if a < b:
        return -1
    if a == b:
        return 0
    return 1


def key_comparator(key: Callable[[Any], Any]) -> Comparator:
    """Return a comparator that orders elements by key(element) only."""
    def _compare(a, b):
        return compare(key(a), key(b))
    return _compare


class Position(ABC):
    @abstractmethod
    def get_element(self):
        """Return the element stored at this position."""
        pass

    def __eq__(self, other):
        """Return True if other is a Position representing the same location."""
        raise NotImplementedError('must be implemented by subclass')

    def __ne__(self, other):
        """Return True if other does not represent the same location."""
        return not (self == other)


class Tree(ABC):
    """Abstract base class representing a tree structure."""

    @abstractmethod
    def __len__(self) -> int:
        """Return the total number of elements in the tree."""
        pass

    def is_empty(self) -> bool:
        """Return True if the tree is empty."""
        return len(self) == 0

    @abstractmethod
    def __iter__(self):
        """Generate an iteration of the tree's elements."""
        pass

    @abstractmethod
    def root(self) -> Optional[Position]:
        """Return the root Position of the tree (or None if tree is empty)."""
        pass

    @abstractmethod
    def parent(self, p: Position) -> Optional[Position]:
        """Return the Position of p's parent (or None if p is root)."""
        pass

    @abstractmethod
    def children(self, p: Position) -> Iterable[Position]:
        """Return an iterable collection containing the children of Position p."""
        pass

    @abstractmethod
    def num_children(self, p: Position) -> int:
        """Return the number of children that Position p has."""
        pass

    def is_leaf(self, p: Position) -> bool:
        """Return True if Position p has no children."""
        return self.num_children(p) == 0

    def is_root(self, p: Position) -> bool:
        """Return True if Position p represents the root of the tree."""
        return p == self.root()

    def depth(self, p: Position) -> int:
        """Return the number of levels separating Position p from the root."""
        if self.is_root(p):
            return 0
        else:
            return 1 + self.depth(self.parent(p))


class BinaryTree(Tree):
    """Abstract base class representing a binary tree structure."""

    @abstractmethod
    def left(self, p: Position) -> Optional[Position]:
        """Return the Position of p's left child (or None if no child exists)."""
        pass

    @abstractmethod
    def right(self, p: Position) -> Optional[Position]:
        """Return the Position of p's right child (or None if no child exists)."""
        pass

    def sibling(self, p: Position) -> Optional[Position]:
        """Return the Position of p's sibling (or None if no sibling exists)."""
        parent = self.parent(p)
        if parent is None:
            return None
        if p == self.left(parent):
            return self.right(parent)
        else:
            return self.left(parent)

    def num_children(self, p: Position) -> int:
        """Return the number of children of Position p."""
        count = 0
        if self.left(p) is not None:
            count += 1
        if self.right(p) is not None:
            count += 1
        return count

    def children(self, p: Position) -> Iterable[Position]:
        """Generate an iteration of Positions representing p's children."""
        if self.left(p) is not None:
            yield self.left(p)
        if self.right(p) is not None:
            yield self.right(p)

    def positions(self) -> Iterable[Position]:
        """Generate an inorder iteration of positions (nodes) in the tree."""
        if not self.is_empty():
            yield from self._subtree_inorder(self.root())

    def _subtree_inorder(self, p: Position) -> Iterable[Position]:
        """Generate an inorder iteration of positions of the subtree rooted at p."""
        if self.left(p) is not None:
            yield from self._subtree_inorder(self.left(p))

        yield p

        if self.right(p) is not None:
            yield from self._subtree_inorder(self.right(p))


class AVLTree(BinaryTree):
    """
    Self-balancing binary search tree ordered by a three-way comparator.

    Nodes live in an arena and are addressed by integer handles. Every node
    records the slot holding it (parent handle plus LEFT/RIGHT, or ROOT), so a
    node with at most one child is excised in O(1). Rotations swap node
    contents instead of relinking, which keeps the handle at each slot stable
    and lets the recursive mutators rebalance on the way back up without
    returning a new subtree root.

    Duplicates are allowed: equal elements route right on insert, and find()
    and remove() act on the leftmost match in order.

    Iterators and positions are invalidated by any structural mutation made
    through the tree; using one afterwards raises StaleIteratorError.
    """

    class _Node:
        """Arena record for a single node."""
        __slots__ = '_element', '_left', '_right', '_height', '_parent', '_side'

        def __init__(self, e, parent=None, side=ROOT):
            self._element = e
            self._left = None
            self._right = None
            self._height = 1
            self._parent = parent
            self._side = side

    class _NodePosition(Position):
        """Read-only view of one node, valid until the next mutation."""
        __slots__ = '_tree', '_index', '_generation'

        def __init__(self, tree, index):
            self._tree = tree
            self._index = index
            self._generation = tree._generation

        def get_element(self):
            return self._tree._validate(self)._element

        def __eq__(self, other):
            return (type(other) is type(self) and other._tree is self._tree
                    and other._index == self._index)

        def __hash__(self):
            return hash((id(self._tree), self._index))

    def __init__(self, comparator: Optional[Comparator] = None):
        self._compare = comparator if comparator is not None else compare
        self._nodes: List[Optional[AVLTree._Node]] = []
        self._free: List[int] = []
        self._root: Optional[int] = None
        self._size = 0
        self._generation = 0

    # ------------------ Arena ------------------
    def _make_node(self, e, parent: Optional[int], side: int) -> int:
        """Allocate a leaf for e and return its handle."""
        node = self._Node(e, parent, side)
        if self._free:
            index = self._free.pop()
            self._nodes[index] = node
        else:
            index = len(self._nodes)
            self._nodes.append(node)
        return index

    def _release(self, index: int) -> None:
        self._nodes[index] = None
        self._free.append(index)

    def _set_slot(self, parent: Optional[int], side: int, child: Optional[int]) -> None:
        """Store child in the slot (parent, side) and point child's back-reference at it."""
        if side == ROOT:
            self._root = child
        elif side == LEFT:
            self._nodes[parent]._left = child
        else:
            self._nodes[parent]._right = child
        if child is not None:
            node = self._nodes[child]
            node._parent = parent
            node._side = side

    def _adopt(self, index: int) -> None:
        """Rewrite the back-references of both children of the node at index."""
        node = self._nodes[index]
        if node._left is not None:
            child = self._nodes[node._left]
            child._parent = index
            child._side = LEFT
        if node._right is not None:
            child = self._nodes[node._right]
            child._parent = index
            child._side = RIGHT

    # ------------------ Heights and balance ------------------
    def _get_height(self, index: Optional[int]) -> int:
        if index is None:
            return 0
        return self._nodes[index]._height

    def _recalc_height(self, index: int) -> None:
        node = self._nodes[index]
        node._height = 1 + max(self._get_height(node._left), self._get_height(node._right))

    def _balance_factor(self, index: int) -> int:
        node = self._nodes[index]
        return self._get_height(node._right) - self._get_height(node._left)

    def _balance(self, index: int) -> None:
        """Restore |balance factor| <= 1 at index; child subtrees must already be AVL."""
        factor = self._balance_factor(index)
        node = self._nodes[index]
        if factor > 1:
            if self._balance_factor(node._right) <= -1:
                self._rotate_right(node._right)
            self._rotate_left(index)
        elif factor < -1:
            if self._balance_factor(node._left) >= 1:
                self._rotate_left(node._left)
            self._rotate_right(index)

    @staticmethod
    def _swap_contents(a, b) -> None:
        a._element, b._element = b._element, a._element
        a._left, b._left = b._left, a._left
        a._right, b._right = b._right, a._right
        a._height, b._height = b._height, a._height

    def _rotate_right(self, index: int) -> None:
        """Rotate the subtree at index right; the handle at index stays its root."""
        node = self._nodes[index]
        pivot_index = node._left
        pivot = self._nodes[pivot_index]
        node._left = pivot._right
        self._swap_contents(node, pivot)
        node._right = pivot_index
        self._adopt(pivot_index)
        self._adopt(index)
        self._recalc_height(pivot_index)
        self._recalc_height(index)

    def _rotate_left(self, index: int) -> None:
        """Rotate the subtree at index left; the handle at index stays its root."""
        node = self._nodes[index]
        pivot_index = node._right
        pivot = self._nodes[pivot_index]
        node._right = pivot._left
        self._swap_contents(node, pivot)
        node._left = pivot_index
        self._adopt(pivot_index)
        self._adopt(index)
        self._recalc_height(pivot_index)
        self._recalc_height(index)

    def _rebalance_upward(self, index: Optional[int]) -> None:
        """Recompute heights and rebalance from index up to the root."""
        while index is not None:
            self._recalc_height(index)
            self._balance(index)
            index = self._nodes[index]._parent

    # ------------------ Insertion ------------------
    def insert(self, value: Any) -> None:
        """Insert value; duplicates are kept and placed after their equals."""
        if self._root is None:
            self._root = self._make_node(value, None, ROOT)
        else:
            self._insert(self._root, value)
        self._size += 1
        self._generation += 1

    def _insert(self, index: int, value: Any) -> None:
        node = self._nodes[index]
        side = LEFT if self._compare(value, node._element) < 0 else RIGHT
        child = node._left if side == LEFT else node._right
        if child is None:
            self._set_slot(index, side, self._make_node(value, index, side))
        else:
            self._insert(child, value)
        self._recalc_height(index)
        self._balance(index)

    # ------------------ Deletion ------------------
    def remove(self, value: Any) -> bool:
        """Remove the leftmost element equal to value. Return False if none exists."""
        if self._root is None or not self._remove(self._root, value):
            return False
        self._size -= 1
        self._generation += 1
        return True

    def _remove(self, index: int, value: Any) -> bool:
        node = self._nodes[index]
        c = self._compare(value, node._element)
        if c < 0:
            removed = node._left is not None and self._remove(node._left, value)
        elif c > 0:
            removed = node._right is not None and self._remove(node._right, value)
        else:
            # an equal element in the left subtree comes first in order
            removed = node._left is not None and self._remove(node._left, value)
            if not removed:
                self._delete_node(index)
                return True
        if removed:
            self._recalc_height(index)
            self._balance(index)
        return removed

    def _delete_node(self, index: int) -> None:
        """Delete the element at index; ancestors are rebalanced by the caller."""
        node = self._nodes[index]
        if node._left is not None and node._right is not None:
            node._element = self._remove_min(node._right)
            self._recalc_height(index)
            self._balance(index)
        else:
            self._excise(index)

    def _remove_min(self, index: int) -> Any:
        """Excise the leftmost node of the subtree at index and return its element."""
        node = self._nodes[index]
        if node._left is None:
            element = node._element
            self._excise(index)
            return element
        element = self._remove_min(node._left)
        self._recalc_height(index)
        self._balance(index)
        return element

    def _excise(self, index: int) -> None:
        """Splice the only child (if any) of the node at index into its slot."""
        node = self._nodes[index]
        child = node._left if node._left is not None else node._right
        self._set_slot(node._parent, node._side, child)
        self._release(index)

    def _remove_at(self, index: int) -> None:
        """Delete exactly the node at index and rebalance up to the root."""
        node = self._nodes[index]
        if node._left is not None and node._right is not None:
            self._delete_node(index)
            self._rebalance_upward(node._parent)
        else:
            parent = node._parent
            self._excise(index)
            self._rebalance_upward(parent)
        self._size -= 1
        self._generation += 1

    def clear(self) -> None:
        """Remove every element."""
        self._nodes = []
        self._free = []
        self._root = None
        self._size = 0
        self._generation += 1

    # ------------------ Lookup ------------------
    def find(self, value: Any) -> 'TreeIterator':
        """Return an iterator at the leftmost element equal to value, or end()."""
        path: List[int] = []
        match_depth = 0
        index = self._root
        while index is not None:
            path.append(index)
            node = self._nodes[index]
            c = self._compare(value, node._element)
            if c == 0:
                match_depth = len(path)
            index = node._left if c <= 0 else node._right
        return TreeIterator(self, path[:match_depth])

    def __contains__(self, value: Any) -> bool:
        return not self.find(value).is_end()

    def _handle(self, p: Position) -> int:
        """Return the node handle under a position or iterator of this tree."""
        if isinstance(p, TreeIterator):
            if p._tree is not self:
                raise TypeError("Not an iterator of this tree")
            p._check()
            if not p._stack:
                raise IteratorRangeError("the end iterator has no node")
            return p._stack[-1]
        self._validate(p)
        return p._index

    def height(self, p: Optional[Position] = None) -> int:
        """
        Return the height of the tree, or of the subtree at p (empty = 0).

        p may be a node position or a non-end iterator.
        """
        if p is None:
            return self._get_height(self._root)
        return self._nodes[self._handle(p)]._height

    def balance_factor(self, p: Position) -> int:
        """Return height(right) - height(left) at a position or iterator."""
        return self._balance_factor(self._handle(p))

    def replace(self, p: 'TreeIterator', value: Any) -> Any:
        """
        Replace the element under iterator p with value and return the old one.

        A value that compares equal to the old element is written in place and
        p stays valid. Otherwise this is a removal of that node followed by
        insert(value); p is moved to find(value) and every other iterator
        becomes stale.
        """
        if not isinstance(p, TreeIterator) or p._tree is not self:
            raise TypeError("Not an iterator of this tree")
        old = p.get_element()
        index = p._stack[-1]
        if self._compare(old, value) == 0:
            self._nodes[index]._element = value
            return old
        self._remove_at(index)
        self.insert(value)
        moved = self.find(value)
        p._stack = moved._stack
        p._generation = self._generation
        return old

    # ------------------ Iteration ------------------
    def begin(self) -> 'TreeIterator':
        """Return an iterator at the smallest element (equal to end() when empty)."""
        it = TreeIterator(self)
        if self._root is not None:
            it._push_chain(self._root, LEFT)
        return it

    def end(self) -> 'TreeIterator':
        """Return the past-the-end iterator."""
        return TreeIterator(self)

    def __iter__(self) -> 'TreeIterator':
        """Iterate elements in order; the tree must not be mutated meanwhile."""
        return self.begin()

    def __reversed__(self) -> Iterator[Any]:
        it = self.end()
        for _ in range(self._size):
            yield it.retreat().get_element()

    def __len__(self) -> int:
        return self._size

    # ------------------ Structural access ------------------
    def _validate(self, p):
        """Validates the position and returns its node."""
        if not isinstance(p, self._NodePosition) or p._tree is not self:
            raise TypeError("Not a position of this tree")
        if p._generation != self._generation:
            raise StaleIteratorError("position is no longer valid")
        return self._nodes[p._index]

    def _position(self, index: Optional[int]) -> Optional[Position]:
        return self._NodePosition(self, index) if index is not None else None

    def root(self) -> Optional[Position]:
        return self._position(self._root)

    def parent(self, p: Position) -> Optional[Position]:
        return self._position(self._validate(p)._parent)

    def left(self, p: Position) -> Optional[Position]:
        return self._position(self._validate(p)._left)

    def right(self, p: Position) -> Optional[Position]:
        return self._position(self._validate(p)._right)

    def __str__(self) -> str:
        def render(index):
            node = self._nodes[index]
            parts = ["("]
            if node._left is not None:
                parts.append(render(node._left))
            parts.append(str(node._element))
            if node._right is not None:
                parts.append(render(node._right))
            parts.append(")")
            return "".join(parts)

        if self._root is None:
            return "[]"
        return "[" + render(self._root) + "]"

    def __repr__(self) -> str:
        return f"AVLTree({list(self)!r})"


class TreeIterator(Position):
    """
    Bidirectional in-order cursor over an AVLTree.

    The cursor keeps an explicit stack of node handles: the path from the
    root down to the current node. An empty stack is the end position.
    Moving past end or before the first element raises IteratorRangeError.
    Any structural change to the tree not made through this iterator makes
    it stale, and further use raises StaleIteratorError.
    """
    __slots__ = '_tree', '_stack', '_generation'

    def __init__(self, tree: AVLTree, stack: Optional[List[int]] = None):
        self._tree = tree
        self._stack: List[int] = list(stack) if stack else []
        self._generation = tree._generation

    def _check(self) -> None:
        if self._generation != self._tree._generation:
            raise StaleIteratorError("tree was modified after this iterator was created")

    def _push_chain(self, index: int, side: int) -> None:
        """Push index and then its descendants along one side."""
        nodes = self._tree._nodes
        while index is not None:
            self._stack.append(index)
            node = nodes[index]
            index = node._left if side == LEFT else node._right

    def is_end(self) -> bool:
        self._check()
        return not self._stack

    def get_element(self) -> Any:
        self._check()
        if not self._stack:
            raise IteratorRangeError("cannot dereference the end iterator")
        return self._tree._nodes[self._stack[-1]]._element

    def advance(self) -> 'TreeIterator':
        """Move to the next element in order; at the last element this reaches end."""
        self._check()
        stack = self._stack
        if not stack:
            raise IteratorRangeError("cannot advance past the end")
        nodes = self._tree._nodes
        right = nodes[stack[-1]]._right
        if right is not None:
            self._push_chain(right, LEFT)
        else:
            index = stack.pop()
            while stack and nodes[index]._side == RIGHT:
                index = stack.pop()
        return self

    def retreat(self) -> 'TreeIterator':
        """Move to the previous element in order; from end this reaches the last one."""
        self._check()
        tree = self._tree
        nodes = tree._nodes
        if not self._stack:
            if tree._root is None:
                raise IteratorRangeError("cannot retreat past the beginning")
            self._push_chain(tree._root, RIGHT)
            return self
        left = nodes[self._stack[-1]]._left
        if left is not None:
            self._push_chain(left, RIGHT)
            return self
        stack = list(self._stack)
        index = stack.pop()
        while stack and nodes[index]._side == LEFT:
            index = stack.pop()
        if not stack:
            raise IteratorRangeError("cannot retreat past the beginning")
        self._stack = stack
        return self

    def copy(self) -> 'TreeIterator':
        self._check()
        return TreeIterator(self._tree, self._stack)

    def __iter__(self) -> 'TreeIterator':
        return self

    def __next__(self) -> Any:
        if self.is_end():
            raise StopIteration
        element = self.get_element()
        self.advance()
        return element

    def __eq__(self, other):
        if not isinstance(other, TreeIterator):
            return NotImplemented
        mine = self._stack[-1] if self._stack else None
        theirs = other._stack[-1] if other._stack else None
        return (other._tree is self._tree and other._generation == self._generation
                and mine == theirs)

    def __hash__(self):
        return hash((id(self._tree), self._generation, self._stack[-1] if self._stack else None))

    def __repr__(self) -> str:
        if not self._stack:
            return "TreeIterator(end)"
        return f"TreeIterator({self._tree._nodes[self._stack[-1]]._element!r})"
