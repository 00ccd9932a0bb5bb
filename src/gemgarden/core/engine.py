"""
MatchEngine bundles generation, matching and cascade resolution.

The predictive client and the server authority each build their own
instance (with their own random stream); they never share one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .board import Board, Cell
from .cascade import CascadeResolver, CascadeResult
from .config import DEFAULT_CONFIG, EngineConfig, Mode
from .errors import InvalidMove
from .generator import BoardGenerator
from .matching import has_match
from .session import Session
from .solvability import has_valid_move
from .tokens import Palette

logger = logging.getLogger(__name__)


@dataclass
class SwapOutcome:
    """Result of trying one swap on a board."""
    valid: bool
    board: Board
    cascade: Optional[CascadeResult] = None
    reshuffled: bool = False

    @property
    def points(self) -> int:
        return self.cascade.total_points if self.cascade else 0

    @property
    def combo(self) -> int:
        return self.cascade.final_combo if self.cascade else 0


class MatchEngine:
    """One independent instance of the match-3 rules."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        seed: Optional[int] = None,
        name: str = "engine",
    ):
        self.config = config or DEFAULT_CONFIG
        self.name = name
        self.palette = Palette.from_config(self.config)
        self.generator = BoardGenerator(self.config, self.palette, seed=seed)
        self.resolver = CascadeResolver(self.generator, self.config)

    def new_board(self, mode: Mode) -> Board:
        mode = Mode.parse(mode)
        rules = self.config.rules(mode)
        if rules.drop_tokens:
            board, solvable = self.generator.generate_drop_board()
            if not solvable:
                logger.warning("[%s] drop board accepted without a valid swap", self.name)
            return board
        return self.generator.generate()

    def new_session(self, mode: Mode) -> Session:
        """Fresh session for ``mode`` with a full budget."""
        mode = Mode.parse(mode)
        rules = self.config.rules(mode)
        return Session(
            mode=mode,
            board=self.new_board(mode),
            moves_left=rules.moves,
            seconds_left=rules.seconds,
            drop_total=rules.drop_tokens,
        )

    def validate_swap(self, board: Board, a: Cell, b: Cell):
        """Raise InvalidMove for swaps that can never be accepted."""
        if not (board.in_bounds(*a) and board.in_bounds(*b)):
            raise InvalidMove(f"Swap {a} -> {b} is off the board")
        if not Board.is_adjacent(a, b):
            raise InvalidMove(f"Cells {a} and {b} are not adjacent")
        if board.is_drop(*a) or board.is_drop(*b):
            raise InvalidMove("Drop tokens cannot be swapped")

    def apply_swap(self, board: Board, a: Cell, b: Cell, drop_mode: bool = False) -> SwapOutcome:
        """
        Try a swap on a copy of ``board``.

        The input board is never modified. A swap that produces no match
        returns ``valid=False`` with the original board.

        Raises:
            InvalidMove: If the cells are off the board, not adjacent, or a
                drop token is involved
        """
        self.validate_swap(board, a, b)

        work = board.copy()
        work.swap(a, b)
        if not has_match(work, self.config.min_run):
            return SwapOutcome(valid=False, board=board)

        cascade = self.resolver.resolve(work, drop_mode=drop_mode)

        reshuffled = False
        if not has_valid_move(work, self.config.min_run):
            logger.info("[%s] board deadlocked after cascade, reshuffling", self.name)
            work, _ = self.generator.reshuffle(work)
            reshuffled = True

        return SwapOutcome(valid=True, board=work, cascade=cascade, reshuffled=reshuffled)
