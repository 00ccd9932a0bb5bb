"""
Deadlock detection: does any single adjacent swap produce a match?
"""
from __future__ import annotations

from typing import Iterator, List, Tuple

from .board import Board, Cell
from .matching import has_match

Swap = Tuple[Cell, Cell]


def _candidate_swaps(board: Board) -> Iterator[Swap]:
    """Right and down neighbour pairs, skipping drop tokens (they cannot be swapped)."""
    size = board.size
    for y in range(size):
        for x in range(size):
            if board.is_drop(x, y):
                continue
            if x + 1 < size and not board.is_drop(x + 1, y):
                yield (x, y), (x + 1, y)
            if y + 1 < size and not board.is_drop(x, y + 1):
                yield (x, y), (x, y + 1)


def swap_creates_match(board: Board, a: Cell, b: Cell, min_run: int = 3) -> bool:
    """Apply the swap, scan, revert. The board is unchanged afterwards."""
    board.swap(a, b)
    try:
        return has_match(board, min_run)
    finally:
        board.swap(a, b)


def find_valid_swaps(board: Board, min_run: int = 3) -> List[Swap]:
    """Enumerate adjacent swaps that would produce a match."""
    scratch = board.copy()
    return [
        (a, b) for a, b in _candidate_swaps(scratch)
        if swap_creates_match(scratch, a, b, min_run)
    ]


def has_valid_move(board: Board, min_run: int = 3) -> bool:
    """True as soon as one match-producing swap is found."""
    scratch = board.copy()
    for a, b in _candidate_swaps(scratch):
        if swap_creates_match(scratch, a, b, min_run):
            return True
    return False
