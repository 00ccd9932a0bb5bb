"""
Sessions: the persisted in-progress state of one mode for one player.

A ``SessionStore`` keeps at most one session per mode; at most one of them is
active, the others are suspended and can be resumed for free.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .board import Board
from .config import Mode
from .tokens import Palette


@dataclass
class Session:
    """In-progress state of one mode."""
    mode: Mode
    board: Board
    score: int = 0
    combo: int = 0
    max_combo: int = 0
    moves_made: int = 0

    # Budget: classic/drop count moves, timed counts seconds
    moves_left: Optional[int] = None
    seconds_left: Optional[float] = None

    # Drop mode extras
    drop_total: int = 0
    collected: List[str] = field(default_factory=list)

    game_over: bool = False

    # Monotonic timestamp the countdown was last (re)started at; None while paused
    running_since: Optional[float] = field(default=None, repr=False, compare=False)

    @property
    def is_timed(self) -> bool:
        return self.seconds_left is not None

    @property
    def stars_dropped(self) -> int:
        return len(self.collected)

    def remaining_seconds(self, now: float) -> Optional[float]:
        if self.seconds_left is None:
            return None
        if self.running_since is None:
            return max(0.0, self.seconds_left)
        return max(0.0, self.seconds_left - (now - self.running_since))

    def is_expired(self, now: float) -> bool:
        remaining = self.remaining_seconds(now)
        return remaining is not None and remaining <= 0

    def pause(self, now: float):
        """Freeze the countdown at its current value."""
        if self.seconds_left is not None and self.running_since is not None:
            self.seconds_left = self.remaining_seconds(now)
        self.running_since = None

    def resume(self, now: float):
        if self.seconds_left is not None and self.running_since is None:
            self.running_since = now

    def to_dict(self, now: Optional[float] = None) -> Dict[str, Any]:
        """Wire/snapshot format. ``now`` folds a running countdown into secondsLeft."""
        data: Dict[str, Any] = {
            'mode': self.mode.value,
            'board': self.board.to_list(),
            'score': self.score,
            'combo': self.combo,
            'maxCombo': self.max_combo,
            'movesMade': self.moves_made,
        }
        extras: Dict[str, Any] = {}
        if self.moves_left is not None:
            data['movesLeft'] = self.moves_left
        if self.seconds_left is not None:
            remaining = self.remaining_seconds(now) if now is not None else self.seconds_left
            data['secondsLeft'] = round(remaining, 3)
            extras['secondsLeft'] = data['secondsLeft']
        if self.mode is Mode.DROP:
            extras['starsDropped'] = self.stars_dropped
            extras['dropTotal'] = self.drop_total
            extras['collected'] = list(self.collected)
            extras['dropTokens'] = [
                {'type': kind, 'x': x, 'y': y}
                for kind, x, y in self.board.drop_positions()
            ]
        data['modeExtras'] = extras
        if self.game_over:
            data['isGameOver'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], palette: Optional[Palette] = None) -> Session:
        extras = data.get('modeExtras') or {}
        return cls(
            mode=Mode.parse(data['mode']),
            board=Board.from_list(data['board'], palette),
            score=int(data.get('score', 0)),
            combo=int(data.get('combo', 0)),
            max_combo=int(data.get('maxCombo', 0)),
            moves_made=int(data.get('movesMade', 0)),
            moves_left=data.get('movesLeft'),
            seconds_left=data.get('secondsLeft'),
            drop_total=int(extras.get('dropTotal', 0)),
            collected=list(extras.get('collected', [])),
            game_over=bool(data.get('isGameOver', False)),
        )


class SessionStore:
    """
    One saved session per mode, plus which of them is active.

    Owned by a single player; callers serialize access.
    """

    def __init__(self):
        self.sessions: Dict[Mode, Session] = {}
        self.active_mode: Optional[Mode] = None

    @property
    def active(self) -> Optional[Session]:
        if self.active_mode is None:
            return None
        return self.sessions.get(self.active_mode)

    def get(self, mode: Mode) -> Optional[Session]:
        return self.sessions.get(Mode.parse(mode))

    def save(self, session: Session, active: bool = True):
        self.sessions[session.mode] = session
        if active:
            self.active_mode = session.mode

    def suspend_active(self, now: float) -> Optional[Session]:
        """Snapshot the active session (countdown paused) and leave no mode active."""
        session = self.active
        if session is not None:
            session.pause(now)
        self.active_mode = None
        return session

    def activate(self, mode: Mode, now: float) -> Session:
        session = self.sessions[Mode.parse(mode)]
        self.active_mode = session.mode
        session.resume(now)
        return session

    def clear(self, mode: Mode) -> Optional[Session]:
        """Destroy the session for ``mode`` only."""
        mode = Mode.parse(mode)
        if self.active_mode is mode:
            self.active_mode = None
        return self.sessions.pop(mode, None)

    def saved_modes(self, now: Optional[float] = None) -> Dict[str, Dict[str, Any]]:
        """Suspended (non-active) sessions by mode name."""
        return {
            mode.value: session.to_dict(now)
            for mode, session in self.sessions.items()
            if mode is not self.active_mode
        }

    def replace_all(self, sessions: Dict[Mode, Session], active_mode: Optional[Mode] = None):
        """Drop everything held and adopt ``sessions``. Never merges."""
        self.sessions = dict(sessions)
        self.active_mode = active_mode if active_mode in self.sessions else None

    def __len__(self) -> int:
        return len(self.sessions)

    def __contains__(self, mode: object) -> bool:
        try:
            return Mode.parse(mode) in self.sessions
        except ValueError:
            return False

    def to_dict(self, now: Optional[float] = None) -> Dict[str, Any]:
        return {
            'activeMode': self.active_mode.value if self.active_mode else None,
            'sessions': {m.value: s.to_dict(now) for m, s in self.sessions.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], palette: Optional[Palette] = None) -> SessionStore:
        store = cls()
        for name, payload in (data.get('sessions') or {}).items():
            session = Session.from_dict(payload, palette)
            store.sessions[session.mode] = session
        active = data.get('activeMode')
        if active and Mode.parse(active) in store.sessions:
            store.active_mode = Mode.parse(active)
        return store
