"""AVL tree core with map, sparse matrix, graph and record-file collaborators."""

from avlstore.errors import (
    AVLStoreError,
    GraphError,
    IteratorRangeError,
    StaleIteratorError,
    StorageError,
)
from avlstore.graph import Graph
from avlstore.indexing import AVLTree, TreeIterator, compare, key_comparator
from avlstore.mapping import AVLTreeMap
from avlstore.matrix import SparseMatrix
from avlstore.storage import FileFlags, FileStorage, RecordDB

__version__ = "0.1.0"

__all__ = [
    "AVLStoreError",
    "AVLTree",
    "AVLTreeMap",
    "FileFlags",
    "FileStorage",
    "Graph",
    "GraphError",
    "IteratorRangeError",
    "RecordDB",
    "SparseMatrix",
    "StaleIteratorError",
    "StorageError",
    "TreeIterator",
    "compare",
    "key_comparator",
]
