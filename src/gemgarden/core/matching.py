"""
Match detection: runs of three or more identical gems in a row or column.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Set, Tuple

from .board import Board, Cell


@dataclass
class MatchRun:
    """One straight run of identical gems."""
    type: str
    cells: List[Cell]

    @property
    def length(self) -> int:
        return len(self.cells)

    @property
    def horizontal(self) -> bool:
        return len({y for _, y in self.cells}) == 1


def _scan_line(board: Board, line: List[Tuple[int, int]], min_run: int) -> List[MatchRun]:
    """
    Scan one row or column for runs.

    When a run is found the scan resumes after its last cell, so runs in the
    same direction never overlap.
    """
    runs = []
    palette = board.palette
    n = len(line)
    i = 0
    while i <= n - min_run:
        x, y = line[i]
        code = board.get(x, y)
        if not palette.is_gem(code):
            i += 1
            continue

        end = i + 1
        while end < n and board.get(*line[end]) == code:
            end += 1

        if end - i >= min_run:
            runs.append(MatchRun(type=palette.name(code), cells=line[i:end]))
            i = end
        else:
            i += 1
    return runs


def find_runs(board: Board, min_run: int = 3) -> List[MatchRun]:
    """
    Find every run of length >= min_run.

    Horizontal runs come first (rows top to bottom), then vertical runs
    (columns left to right). Drop tokens and empty cells never match. A cell
    where a horizontal and a vertical run cross appears in both runs.
    """
    runs: List[MatchRun] = []
    size = board.size

    for y in range(size):
        runs.extend(_scan_line(board, [(x, y) for x in range(size)], min_run))

    for x in range(size):
        runs.extend(_scan_line(board, [(x, y) for y in range(size)], min_run))

    return runs


def find_matches(board: Board, min_run: int = 3) -> Set[Cell]:
    """Return the set of (x, y) cells that belong to any run, overlaps merged."""
    matched: Set[Cell] = set()
    for run in find_runs(board, min_run):
        matched.update(run.cells)
    return matched


def has_match(board: Board, min_run: int = 3) -> bool:
    return bool(find_runs(board, min_run))
