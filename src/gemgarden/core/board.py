"""
Board representation for the 8x8 match-3 grid.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from .tokens import DEFAULT_PALETTE, EMPTY, Palette

Cell = Tuple[int, int]  # (x, y)


class Board:
    """
    Square game board of token codes.

    The grid is indexed ``grid[y, x]`` with ``y == 0`` at the top, so gravity
    pulls tokens towards ``y == size - 1``. Codes come from a ``Palette``:
    - 0 = empty cell
    - gems and drop tokens are positive codes
    """

    SIZE = 8

    def __init__(
        self,
        grid: Optional[np.ndarray] = None,
        palette: Optional[Palette] = None,
        size: Optional[int] = None,
    ):
        """Initialize the board, optionally from an existing grid."""
        self.palette = palette or DEFAULT_PALETTE
        self.size = size or (grid.shape[0] if grid is not None else self.SIZE)
        if grid is not None:
            if grid.shape != (self.size, self.size):
                raise ValueError(f"Grid must be {self.size}x{self.size}")
            self.grid = grid.astype(np.int8)
        else:
            self.grid = np.full((self.size, self.size), EMPTY, dtype=np.int8)

    def copy(self) -> Board:
        """Create a deep copy of the board."""
        return Board(self.grid.copy(), self.palette, self.size)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def get(self, x: int, y: int) -> int:
        return int(self.grid[y, x])

    def set(self, x: int, y: int, code: int):
        self.grid[y, x] = code

    def token(self, x: int, y: int) -> Optional[str]:
        """Token name at (x, y), None for an empty cell."""
        return self.palette.name(self.grid[y, x])

    def swap(self, a: Cell, b: Cell):
        """Swap two cells in place. No validation."""
        (ax, ay), (bx, by) = a, b
        self.grid[ay, ax], self.grid[by, bx] = self.grid[by, bx], self.grid[ay, ax]

    @staticmethod
    def is_adjacent(a: Cell, b: Cell) -> bool:
        """True when the cells are 4-connected (Manhattan distance 1)."""
        return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1

    def is_drop(self, x: int, y: int) -> bool:
        return self.palette.is_drop(self.grid[y, x])

    def drop_positions(self) -> List[Tuple[str, int, int]]:
        """All drop tokens on the board as (type, x, y), row-major."""
        found = []
        for y, x in zip(*np.nonzero(self.grid)):
            code = int(self.grid[y, x])
            if self.palette.is_drop(code):
                found.append((self.palette.name(code), int(x), int(y)))
        return found

    def get_empty_cells(self) -> int:
        """Return the count of empty cells."""
        return int(np.sum(self.grid == EMPTY))

    def to_list(self) -> List[List[Optional[str]]]:
        """Wire format: rows of token names (``board[y][x]``), None for empty."""
        return [[self.palette.name(code) for code in row] for row in self.grid]

    @classmethod
    def from_list(
        cls, rows: Sequence[Sequence[Optional[str]]], palette: Optional[Palette] = None
    ) -> Board:
        """Create a Board from the wire format."""
        palette = palette or DEFAULT_PALETTE
        grid = np.array([[palette.code(name) for name in row] for row in rows], dtype=np.int8)
        if grid.ndim != 2 or grid.shape[0] != grid.shape[1]:
            raise ValueError("Board must be square")
        return cls(grid, palette)

    def __str__(self) -> str:
        """Return a string representation of the board."""
        lines = []
        lines.append("+" + "-" * (self.size * 3 + 1) + "+")
        for row in self.grid:
            cells = []
            for code in row:
                name = self.palette.name(code)
                if name is None:
                    cells.append("..")
                elif self.palette.is_drop(code):
                    cells.append("*" + name.split("_")[-1][0].upper())
                else:
                    cells.append(name[:2])
            lines.append("| " + " ".join(cells) + " |")
        lines.append("+" + "-" * (self.size * 3 + 1) + "+")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Board({self.size}x{self.size}, drops={len(self.drop_positions())})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return False
        return np.array_equal(self.grid, other.grid)

    def __hash__(self) -> int:
        return hash(self.grid.tobytes())
