"""
Token palette for the match-3 board.

Cells are stored as small integer codes:
- 0 = empty (only seen mid-cascade)
- 1..N = gems, in palette order
- N+1.. = drop tokens (never match, never refilled)
"""
from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG

EMPTY = 0


class Palette:
    """Maps token names to board codes and back."""

    def __init__(self, gem_types: Sequence[str], drop_types: Sequence[str] = ()):
        if len(gem_types) < 3:
            raise ValueError("Need at least 3 gem types to build a match-free board")
        self.gem_types: Tuple[str, ...] = tuple(gem_types)
        self.drop_types: Tuple[str, ...] = tuple(drop_types)

        names = self.gem_types + self.drop_types
        self._codes: Dict[str, int] = {name: i + 1 for i, name in enumerate(names)}
        self._names: Dict[int, str] = {code: name for name, code in self._codes.items()}

        self.gem_codes: Tuple[int, ...] = tuple(self._codes[g] for g in self.gem_types)
        self.drop_codes: Tuple[int, ...] = tuple(self._codes[d] for d in self.drop_types)
        self._first_drop = len(self.gem_types) + 1

    @classmethod
    def from_config(cls, config=None) -> Palette:
        config = config or DEFAULT_CONFIG
        return cls(config.gem_types, config.drop_types)

    def code(self, name: Optional[str]) -> int:
        if name is None:
            return EMPTY
        try:
            return self._codes[name]
        except KeyError:
            raise ValueError(f"Unknown token: {name}") from None

    def name(self, code: int) -> Optional[str]:
        if code == EMPTY:
            return None
        return self._names[int(code)]

    def is_gem(self, code: int) -> bool:
        return EMPTY < code < self._first_drop

    def is_drop(self, code: int) -> bool:
        return code >= self._first_drop

    def __len__(self) -> int:
        return len(self._codes)

    def __repr__(self) -> str:
        return f"Palette(gems={len(self.gem_types)}, drops={len(self.drop_types)})"


DEFAULT_PALETTE = Palette.from_config()
