"""
Sparse 2-D matrix built from nested AVL maps.

Rows map to column maps; only cells holding something other than the
default value are stored.
"""

from typing import Any, Iterable, Tuple

from avlstore.mapping import AVLTreeMap


# ------------------ Sparse Matrix ------------------
class SparseMatrix:
    def __init__(self, default: Any, width: int = 0, height: int = 0):
        if width < 0 or height < 0:
            raise ValueError("matrix dimensions must be non-negative")
        self._default = default
        self._width = width
        self._height = height
        self._rows: AVLTreeMap = AVLTreeMap()

    @property
    def default(self) -> Any:
        return self._default

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def _check(self, row: int, col: int) -> None:
        if not (0 <= row < self._height and 0 <= col < self._width):
            raise IndexError(f"cell ({row}, {col}) outside {self._height}x{self._width} matrix")

    def at(self, row: int, col: int) -> Any:
        """Return the value at (row, col), or the default when nothing is stored."""
        self._check(row, col)
        cols = self._rows.get(row)
        if cols is None:
            return self._default
        return cols.get(col, self._default)

    def set(self, row: int, col: int, value: Any) -> None:
        """Store value at (row, col); storing the default clears the cell."""
        self._check(row, col)
        cols = self._rows.get(row)
        if value == self._default:
            if cols is not None:
                cols.remove(col)
                if cols.is_empty():
                    self._rows.remove(row)
            return
        if cols is None:
            cols = AVLTreeMap()
            self._rows.put(row, cols)
        cols.put(col, value)

    def __getitem__(self, cell: Tuple[int, int]) -> Any:
        row, col = cell
        return self.at(row, col)

    def __setitem__(self, cell: Tuple[int, int], value: Any) -> None:
        row, col = cell
        self.set(row, col, value)

    def resize(self, width: int, height: int) -> None:
        """Change the dimensions; cells falling outside are dropped."""
        if width < 0 or height < 0:
            raise ValueError("matrix dimensions must be non-negative")
        self._rows.remove_where(lambda r: r >= height)
        for cols in self._rows.values():
            cols.remove_where(lambda c: c >= width)
        self._rows.remove_where(lambda r: self._rows.get(r).is_empty())
        self._width = width
        self._height = height

    def purge_row(self, row: int) -> None:
        """Reset every cell of row to the default."""
        self._rows.remove(row)

    def purge_col(self, col: int) -> None:
        """Reset every cell of col to the default."""
        for cols in self._rows.values():
            cols.remove(col)
        self._rows.remove_where(lambda r: self._rows.get(r).is_empty())

    def row(self, row: int) -> Iterable[Tuple[int, Any]]:
        """Generate (col, value) for the stored cells of row."""
        cols = self._rows.get(row)
        if cols is not None:
            yield from cols.items()

    def nonzero(self) -> Iterable[Tuple[int, int, Any]]:
        """Generate (row, col, value) for stored cells in row-major order."""
        for r, cols in self._rows.items():
            for c, value in cols.items():
                yield r, c, value

    def __len__(self) -> int:
        return sum(len(cols) for cols in self._rows.values())

    def __str__(self) -> str:
        lines = []
        for r in range(self._height):
            lines.append(" ".join(str(self.at(r, c)) for c in range(self._width)))
        return "\n".join(lines)
