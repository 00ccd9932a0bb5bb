"""
Board generation for the match-3 grid.

The generator can be seeded for reproducible sequences, which is useful for
testing and for replaying a session from its seed.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import numpy as np

from .board import Board, Cell
from .config import DEFAULT_CONFIG, EngineConfig
from .solvability import has_valid_move
from .tokens import EMPTY, Palette

logger = logging.getLogger(__name__)


class BoardGenerator:
    """
    Produces match-free boards and fresh refill gems.

    Every random draw goes through ``self.rng`` so two generators built from
    the same seed produce identical boards and refills.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        palette: Optional[Palette] = None,
        seed: Optional[int] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.palette = palette or Palette.from_config(self.config)
        self.size = self.config.board_size
        self.rng = np.random.default_rng(seed)

    def random_gem(self) -> int:
        """Draw a single gem code uniformly from the palette."""
        gems = self.palette.gem_codes
        return gems[int(self.rng.integers(len(gems)))]

    def _would_match(self, grid: np.ndarray, x: int, y: int, code: int) -> bool:
        """Check if placing a gem would complete a run with the two preceding cells."""
        # Check horizontal
        if x >= 2 and grid[y, x - 1] == code and grid[y, x - 2] == code:
            return True
        # Check vertical
        if y >= 2 and grid[y - 1, x] == code and grid[y - 2, x] == code:
            return True
        return False

    def _fill(self, grid: np.ndarray, keep: Optional[Dict[Cell, int]] = None) -> np.ndarray:
        keep = keep or {}
        for y in range(self.size):
            for x in range(self.size):
                if (x, y) in keep:
                    grid[y, x] = keep[(x, y)]
                    continue
                code = self.random_gem()
                while self._would_match(grid, x, y, code):
                    code = self.random_gem()
                grid[y, x] = code
        return grid

    def generate(self) -> Board:
        """Generate a full board with no runs of three anywhere."""
        grid = np.full((self.size, self.size), EMPTY, dtype=np.int8)
        return Board(self._fill(grid), self.palette, self.size)

    def place_drop_tokens(self, board: Board) -> Board:
        """
        Place one of each drop token subtype in the top rows, in unique columns.

        Drop tokens never match, so replacing gems with them cannot create a
        run. It can however remove the only valid swap, which is why drop
        boards go through ``generate_drop_board``.
        """
        drop_codes = self.palette.drop_codes
        rows = min(self.config.drop_rows, self.size)
        columns = self.rng.choice(self.size, size=len(drop_codes), replace=False)
        for code, x in zip(drop_codes, columns):
            y = int(self.rng.integers(rows))
            board.set(int(x), y, code)
        return board

    def generate_drop_board(self, max_attempts: Optional[int] = None) -> Tuple[Board, bool]:
        """
        Generate a drop-mode board that has at least one valid swap.

        Returns:
            Tuple of (board, solvable). After ``max_attempts`` failed candidates
            the last one is accepted anyway so the player is never blocked.
        """
        attempts = max_attempts or self.config.drop_board_attempts
        board = None
        for attempt in range(1, attempts + 1):
            board = self.place_drop_tokens(self.generate())
            if has_valid_move(board, self.config.min_run):
                if attempt > 1:
                    logger.debug("Drop board solvable after %d attempts", attempt)
                return board, True

        logger.warning("No solvable drop board after %d attempts, using fallback", attempts)
        return board, False

    def reshuffle(self, board: Board, max_attempts: Optional[int] = None) -> Tuple[Board, bool]:
        """
        Replace every gem on a deadlocked board, keeping drop tokens where they are.

        Returns:
            Tuple of (new board, solvable). Falls back to the last candidate
            after ``max_attempts``.
        """
        keep = {
            (x, y): board.get(x, y)
            for _, x, y in board.drop_positions()
        }
        attempts = max_attempts or self.config.reshuffle_attempts
        candidate = None
        for _ in range(attempts):
            grid = np.full((self.size, self.size), EMPTY, dtype=np.int8)
            candidate = Board(self._fill(grid, keep), self.palette, self.size)
            if has_valid_move(candidate, self.config.min_run):
                return candidate, True

        logger.warning("Reshuffle found no solvable layout after %d attempts", attempts)
        return candidate, False
