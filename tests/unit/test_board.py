"""
Unit tests for the Board class.
"""
import pytest
import numpy as np

from gemgarden.core.board import Board
from gemgarden.core.tokens import DEFAULT_PALETTE, EMPTY, Palette


class TestBoard:
    """Tests for Board class."""

    def test_init_empty(self):
        """Test creating an empty board."""
        board = Board()
        assert board.grid.shape == (8, 8)
        assert board.grid.dtype == np.int8
        assert np.all(board.grid == EMPTY)
        assert board.get_empty_cells() == 64

    def test_init_from_array(self):
        """Test creating a board from an existing array."""
        grid = np.zeros((8, 8), dtype=np.int8)
        grid[0, 3] = DEFAULT_PALETTE.code("fire")

        board = Board(grid)
        assert board.token(3, 0) == "fire"
        assert board.get(3, 0) == DEFAULT_PALETTE.code("fire")
        assert board.token(0, 3) is None

    def test_init_rejects_wrong_shape(self):
        """Test that a grid of the wrong size is refused."""
        with pytest.raises(ValueError):
            Board(np.zeros((8, 7), dtype=np.int8))

    def test_swap(self, pattern_board):
        """Test swapping two cells in place."""
        a = pattern_board.token(0, 0)
        b = pattern_board.token(1, 0)

        pattern_board.swap((0, 0), (1, 0))

        assert pattern_board.token(0, 0) == b
        assert pattern_board.token(1, 0) == a

    def test_is_adjacent(self):
        """Test 4-connected adjacency."""
        assert Board.is_adjacent((3, 3), (4, 3))
        assert Board.is_adjacent((3, 3), (3, 2))
        assert not Board.is_adjacent((3, 3), (4, 4))
        assert not Board.is_adjacent((3, 3), (3, 3))
        assert not Board.is_adjacent((0, 0), (2, 0))

    def test_in_bounds(self):
        """Test bounds checking."""
        board = Board()
        assert board.in_bounds(0, 0)
        assert board.in_bounds(7, 7)
        assert not board.in_bounds(8, 0)
        assert not board.in_bounds(0, -1)

    def test_drop_positions(self, pattern_board):
        """Test listing drop tokens as (type, x, y)."""
        pattern_board.set(5, 1, DEFAULT_PALETTE.code("drop_seeds"))
        pattern_board.set(2, 0, DEFAULT_PALETTE.code("drop_gold"))

        assert pattern_board.drop_positions() == [
            ("drop_gold", 2, 0),
            ("drop_seeds", 5, 1),
        ]
        assert pattern_board.is_drop(5, 1)
        assert not pattern_board.is_drop(0, 0)

    def test_copy(self, pattern_board):
        """Test that copy creates an independent board."""
        copy = pattern_board.copy()
        copy.set(0, 0, EMPTY)

        assert pattern_board.token(0, 0) == "fire"
        assert copy.token(0, 0) is None

    def test_list_format(self, pattern_board):
        """Test the wire format indexes rows first."""
        rows = pattern_board.to_list()

        assert len(rows) == 8
        assert rows[1][0] == pattern_board.token(0, 1) == "air"
        assert Board.from_list(rows) == pattern_board

    def test_from_list_unknown_token(self):
        """Test that unknown token names are rejected."""
        rows = [["fire"] * 8 for _ in range(8)]
        rows[4][4] = "plasma"
        with pytest.raises(ValueError):
            Board.from_list(rows)

    def test_equality_and_hash(self, pattern_board):
        """Test boards compare by content."""
        copy = pattern_board.copy()
        assert copy == pattern_board
        assert hash(copy) == hash(pattern_board)

        copy.swap((0, 0), (1, 0))
        assert copy != pattern_board

    def test_str(self, pattern_board):
        """Test the text rendering marks drop tokens."""
        pattern_board.set(4, 0, DEFAULT_PALETTE.code("drop_energy"))
        text = str(pattern_board)

        assert "*E" in text
        assert "fi" in text


class TestPalette:
    """Tests for token codes."""

    def test_codes(self):
        """Test gems come first and drop tokens after them."""
        palette = Palette(("fire", "water", "earth"), ("drop_gold",))

        assert palette.gem_codes == (1, 2, 3)
        assert palette.drop_codes == (4,)
        assert palette.is_gem(3)
        assert not palette.is_gem(4)
        assert palette.is_drop(4)
        assert palette.name(0) is None
        assert palette.code(None) == EMPTY

    def test_too_few_gems(self):
        """Test a palette needs three gem types."""
        with pytest.raises(ValueError):
            Palette(("fire", "water"))
