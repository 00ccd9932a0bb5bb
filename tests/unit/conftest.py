"""
Shared fixtures for the engine tests.
"""
import numpy as np
import pytest

from gemgarden.core.board import Board
from gemgarden.core.config import DEFAULT_CONFIG
from gemgarden.core.tokens import DEFAULT_PALETTE

GEMS = DEFAULT_CONFIG.gem_types


def make_pattern_board() -> Board:
    """Match-free board: gem index (x + 3y) % 6 at every cell."""
    grid = np.zeros((8, 8), dtype=np.int8)
    for y in range(8):
        for x in range(8):
            grid[y, x] = DEFAULT_PALETTE.code(GEMS[(x + 3 * y) % 6])
    return Board(grid)


def make_one_swap_board() -> Board:
    """
    Pattern board with (1, 1) turned to fire.

    Column 0 reads fire, air, fire from the top, so swapping (0, 1) with
    (1, 1) lines up three fires. No other swap makes a match.
    """
    board = make_pattern_board()
    board.set(1, 1, DEFAULT_PALETTE.code("fire"))
    return board


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def pattern_board():
    return make_pattern_board()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def one_swap_board():
    return make_one_swap_board()
