"""
Unit tests for board generation, drop token placement and reshuffling.
"""
import logging

from gemgarden.core import generator as generator_module
from gemgarden.core.board import Board
from gemgarden.core.config import DEFAULT_CONFIG
from gemgarden.core.generator import BoardGenerator
from gemgarden.core.matching import has_match
from gemgarden.core.solvability import has_valid_move
from gemgarden.core.tokens import DEFAULT_PALETTE


class TestGenerate:
    """Tests for match-free generation."""

    def test_generated_boards_are_match_free(self):
        """Test 1000 consecutive boards contain no run of three."""
        generator = BoardGenerator(seed=0)
        for _ in range(1000):
            board = generator.generate()
            assert not has_match(board)

    def test_board_is_full_of_gems(self):
        """Test every cell holds a gem (no drops, no empties)."""
        board = BoardGenerator(seed=1).generate()

        assert board.get_empty_cells() == 0
        assert all(DEFAULT_PALETTE.is_gem(code) for code in board.grid.flatten())

    def test_same_seed_same_boards(self):
        """Test that the same seed reproduces the same sequence."""
        a = BoardGenerator(seed=42)
        b = BoardGenerator(seed=42)

        for _ in range(5):
            assert a.generate() == b.generate()
        assert [a.random_gem() for _ in range(20)] == [b.random_gem() for _ in range(20)]

    def test_different_seeds_differ(self):
        """Test that different seeds give different boards."""
        boards = {BoardGenerator(seed=s).generate() for s in range(5)}
        assert len(boards) > 1


class TestDropBoards:
    """Tests for drop mode boards."""

    def test_one_token_of_each_kind(self):
        """Test placement: one of each subtype, top rows, unique columns."""
        generator = BoardGenerator(seed=3)
        for _ in range(50):
            board, _ = generator.generate_drop_board()
            drops = board.drop_positions()

            assert sorted(kind for kind, _, _ in drops) == sorted(DEFAULT_CONFIG.drop_types)
            assert len({x for _, x, _ in drops}) == len(drops)
            assert all(y < DEFAULT_CONFIG.drop_rows for _, _, y in drops)
            assert not has_match(board)

    def test_drop_boards_are_solvable(self):
        """Test generated drop boards have at least one valid swap."""
        generator = BoardGenerator(seed=5)
        for _ in range(50):
            board, solvable = generator.generate_drop_board()
            assert solvable
            assert has_valid_move(board)

    def test_fallback_after_attempts(self, monkeypatch, caplog):
        """Test the last candidate is accepted, with a warning, when nothing is solvable."""
        monkeypatch.setattr(generator_module, "has_valid_move", lambda board, min_run=3: False)
        generator = BoardGenerator(seed=5)

        with caplog.at_level(logging.WARNING, logger="gemgarden.core.generator"):
            board, solvable = generator.generate_drop_board(max_attempts=3)

        assert not solvable
        assert isinstance(board, Board)
        assert len(board.drop_positions()) == 3
        assert "fallback" in caplog.text


class TestReshuffle:
    """Tests for deadlock reshuffling."""

    def test_keeps_drop_tokens(self):
        """Test drop tokens stay in place while gems are redrawn."""
        generator = BoardGenerator(seed=11)
        board, _ = generator.generate_drop_board()

        shuffled, solvable = generator.reshuffle(board)

        assert solvable
        assert shuffled.drop_positions() == board.drop_positions()
        assert not has_match(shuffled)
        assert has_valid_move(shuffled)

    def test_input_board_untouched(self):
        """Test reshuffle returns a new board."""
        generator = BoardGenerator(seed=12)
        board = generator.generate()
        before = board.grid.tobytes()

        shuffled, _ = generator.reshuffle(board)

        assert board.grid.tobytes() == before
        assert shuffled is not board
