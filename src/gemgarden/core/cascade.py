"""
Cascade resolution: clear matches, apply gravity, refill, repeat.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .board import Board
from .config import EngineConfig
from .generator import BoardGenerator
from .matching import find_matches
from .tokens import EMPTY

logger = logging.getLogger(__name__)


@dataclass
class CascadeStep:
    """One clear + gravity + refill pass."""
    combo: int
    points: int
    cleared: List[Dict[str, Any]] = field(default_factory=list)    # {x, y, type}
    fallen: List[Dict[str, int]] = field(default_factory=list)     # {x, fromY, toY}
    filled: List[Dict[str, Any]] = field(default_factory=list)     # {x, y, type}
    collected: List[Dict[str, Any]] = field(default_factory=list)  # {x, y, type, replacement}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'combo': self.combo,
            'points': self.points,
            'cleared': self.cleared,
            'fallen': self.fallen,
            'filled': self.filled,
            'collected': self.collected,
        }


@dataclass
class CascadeResult:
    """Outcome of resolving a board until it is stable."""
    steps: List[CascadeStep]
    total_points: int
    final_combo: int

    @property
    def collected(self) -> List[str]:
        """Drop token subtypes collected during this resolve, in order."""
        return [c['type'] for step in self.steps for c in step.collected]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'steps': [s.to_dict() for s in self.steps],
            'totalPoints': self.total_points,
            'finalCombo': self.final_combo,
        }


class CascadeResolver:
    """
    Resolves a board in place until no matches remain.

    Scoring per pass: ``matched_cells * points_per_cell * min(combo, cap)``
    where combo counts the passes of this resolve call, starting at 1.
    """

    def __init__(self, generator: BoardGenerator, config: Optional[EngineConfig] = None):
        self.generator = generator
        self.config = config or generator.config

    def resolve(self, board: Board, drop_mode: bool = False) -> CascadeResult:
        """
        Resolve all matches on the board (mutates ``board``).

        Args:
            board: Board to resolve
            drop_mode: If True, drop tokens that reach the bottom row after a
                pass are collected and replaced by a gem

        Returns:
            CascadeResult with every pass; zero steps if the board was stable
        """
        steps: List[CascadeStep] = []
        total = 0
        combo = 0

        matched = find_matches(board, self.config.min_run)
        while matched:
            combo += 1
            multiplier = min(combo, self.config.max_combo_multiplier)
            points = len(matched) * self.config.points_per_cell * multiplier
            total += points

            step = CascadeStep(combo=combo, points=points)
            for x, y in sorted(matched, key=lambda c: (c[1], c[0])):
                # Drop tokens are never cleared
                if board.is_drop(x, y):
                    continue
                step.cleared.append({'x': x, 'y': y, 'type': board.token(x, y)})
                board.set(x, y, EMPTY)

            self._apply_gravity(board, step)
            if drop_mode:
                self._collect_drops(board, step)

            steps.append(step)
            logger.debug(
                "Cascade pass %d: cleared %d cells for %d points",
                combo, len(step.cleared), points,
            )
            matched = find_matches(board, self.config.min_run)

        return CascadeResult(steps=steps, total_points=total, final_combo=combo)

    def _apply_gravity(self, board: Board, step: CascadeStep):
        """Compact each column downward (stable) and refill the top."""
        size = board.size
        for x in range(size):
            write_y = size - 1
            for y in range(size - 1, -1, -1):
                code = board.get(x, y)
                if code == EMPTY:
                    continue
                if write_y != y:
                    board.set(x, write_y, code)
                    board.set(x, y, EMPTY)
                    step.fallen.append({'x': x, 'fromY': y, 'toY': write_y})
                write_y -= 1

            for y in range(write_y, -1, -1):
                code = self.generator.random_gem()
                board.set(x, y, code)
                step.filled.append({'x': x, 'y': y, 'type': board.palette.name(code)})

    def _collect_drops(self, board: Board, step: CascadeStep):
        """Collect drop tokens sitting on the bottom row."""
        bottom = board.size - 1
        for x in range(board.size):
            if not board.is_drop(x, bottom):
                continue
            token = board.token(x, bottom)
            replacement = self.generator.random_gem()
            board.set(x, bottom, replacement)
            step.collected.append({
                'x': x,
                'y': bottom,
                'type': token,
                'replacement': board.palette.name(replacement),
            })
            logger.debug("Drop token %s collected at column %d", token, x)
