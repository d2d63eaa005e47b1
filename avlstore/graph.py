"""
Weighted directed graph with named vertices.

Vertices: names mapped to matrix indexes.
Edges: cells of an adjacency SparseMatrix; -1 means "no edge".
"""

from collections import deque
from typing import Dict, List, Set

from avlstore.errors import GraphError
from avlstore.mapping import AVLTreeMap
from avlstore.matrix import SparseMatrix

NO_EDGE = -1.0


# ------------------ Graph ------------------
class Graph:
    def __init__(self):
        self.names: AVLTreeMap = AVLTreeMap()
        self.matrix = SparseMatrix(NO_EDGE, 0, 0)
        self._names_by_index: AVLTreeMap = AVLTreeMap()
        self._free_indexes: List[int] = []

    def clear(self) -> None:
        """Remove every vertex and edge."""
        self.names.clear()
        self._names_by_index.clear()
        self.matrix = SparseMatrix(NO_EDGE, 0, 0)
        self._free_indexes = []

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def _index_of(self, name: str) -> int:
        index = self.names.get(name)
        if index is None:
            raise GraphError(f"vertex {name!r} does not exist")
        return index

    def vertices(self) -> List[str]:
        """Return vertex names in sorted order."""
        return list(self.names)

    # ------------------ Vertices ------------------
    def add_vertex(self, name: str) -> None:
        if name in self.names:
            raise GraphError(f"vertex {name!r} already exists")

        if self._free_indexes:
            index = self._free_indexes.pop()
        else:
            index = self.matrix.width
            self.matrix.resize(index + 1, index + 1)
        self.names.put(name, index)
        self._names_by_index.put(index, name)

    def remove_vertex(self, name: str) -> None:
        """Remove a vertex and every edge touching it; its index is reused later."""
        index = self._index_of(name)
        self.matrix.purge_row(index)
        self.matrix.purge_col(index)
        self.names.remove(name)
        self._names_by_index.remove(index)
        self._free_indexes.append(index)

    # ------------------ Edges ------------------
    def add_edge(self, source: str, target: str, weight: float) -> None:
        u = self._index_of(source)
        v = self._index_of(target)
        if u == v:
            raise GraphError("cannot go from a vertex to itself")
        if weight < 0:
            raise GraphError(f"invalid weight {weight}")
        self.matrix.set(u, v, float(weight))

    def remove_edge(self, source: str, target: str) -> None:
        u = self._index_of(source)
        v = self._index_of(target)
        self.matrix.set(u, v, NO_EDGE)

    def cost(self, source: str, target: str) -> float:
        """Return the edge weight from source to target, or -1 when there is none."""
        return self.matrix.at(self._index_of(source), self._index_of(target))

    def neighbors(self, name: str) -> Dict[str, float]:
        """Return outgoing neighbors and edge weights for a vertex."""
        return {
            self._names_by_index.at(col): weight
            for col, weight in self.matrix.row(self._index_of(name))
        }

    # ------------------ Traversals ------------------
    def bfs(self, start: str) -> List[str]:
        """Breadth-first traversal from a start vertex."""
        self._index_of(start)
        visited: Set[str] = {start}
        queue = deque([start])
        order: List[str] = []

        while queue:
            u = queue.popleft()
            order.append(u)
            for v in self.neighbors(u):
                if v not in visited:
                    visited.add(v)
                    queue.append(v)
        return order

    def dfs(self, start: str) -> List[str]:
        """Depth-first traversal from a start vertex."""
        self._index_of(start)
        visited: Set[str] = set()
        order: List[str] = []

        def _dfs(u: str) -> None:
            visited.add(u)
            order.append(u)
            for v in self.neighbors(u):
                if v not in visited:
                    _dfs(v)

        _dfs(start)
        return order

    def __str__(self) -> str:
        lines = [f"{name}: {index}" for name, index in self.names.items()]
        lines.append(str(self.matrix))
        return "\n".join(lines)
