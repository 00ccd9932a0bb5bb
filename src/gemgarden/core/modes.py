"""
Mode controller for the three match-3 play modes.

The controller works on an explicit ``PlayerState``: sessions per mode, the
active mode, the high score and the move phase. It holds no per-player
state of its own, so one controller serves every player.

Mode rules:
1. classic: 30 moves, each accepted move costs one regardless of combos
2. timed: unbounded moves against a 90 second countdown
3. drop: 30 moves; ends early once all three drop tokens are collected
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .board import Cell
from .cascade import CascadeResult
from .config import Mode
from .economy import Economy, FreePlay
from .engine import MatchEngine
from .errors import MoveInProgress, NoActiveSession
from .rewards import Payout, RewardCalculator
from .session import Session, SessionStore
from .solvability import find_valid_swaps

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Per-move lifecycle: Idle -> AwaitingSwap -> Resolving -> Idle."""
    IDLE = "idle"
    AWAITING_SWAP = "awaiting_swap"
    RESOLVING = "resolving"


@dataclass
class PlayerState:
    """Everything the engine keeps for one player."""
    player_id: str
    username: str = "Player"
    store: SessionStore = field(default_factory=SessionStore)
    high_score: int = 0
    total_games: int = 0
    phase: Phase = Phase.IDLE
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def to_dict(self, now: Optional[float] = None) -> Dict[str, Any]:
        return {
            'id': self.player_id,
            'username': self.username,
            'highScore': self.high_score,
            'totalGames': self.total_games,
            'match3': self.store.to_dict(now),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], palette=None) -> PlayerState:
        return cls(
            player_id=data['id'],
            username=data.get('username', "Player"),
            store=SessionStore.from_dict(data.get('match3') or {}, palette),
            high_score=int(data.get('highScore', 0)),
            total_games=int(data.get('totalGames', 0)),
        )


@dataclass
class StartResult:
    session: Session
    resumed: bool
    energy_spent: int = 0
    suspended: Optional[Mode] = None


@dataclass
class Settlement:
    """A finished run: what was paid and the player's new standing."""
    mode: Mode
    score: int
    payout: Payout
    high_score: int
    new_high_score: bool
    rank: Optional[int] = None

    @property
    def gold_reward(self) -> int:
        return self.payout.gold

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode.value,
            'score': self.score,
            'goldReward': self.payout.gold,
            'payout': self.payout.to_dict(),
            'highScore': self.high_score,
            'newHighScore': self.new_high_score,
            'rank': self.rank,
        }


@dataclass
class MoveOutcome:
    """Result of a move request against the active session."""
    valid: bool
    session: Session
    points: int = 0
    combo: int = 0
    cascade: Optional[CascadeResult] = None
    collected: List[str] = field(default_factory=list)
    reshuffled: bool = False
    settlement: Optional[Settlement] = None

    @property
    def game_over(self) -> bool:
        return self.settlement is not None


class ModeController:
    """
    Drives start / move / end for any player.

    Args:
        engine: Engine instance whose rules and randomness this controller uses
        economy: Energy and gold collaborator (FreePlay when omitted)
        rewards: Reward calculator (built from the engine config when omitted)
        clock: Monotonic clock used by the timed countdown
    """

    def __init__(
        self,
        engine: MatchEngine,
        economy: Optional[Economy] = None,
        rewards: Optional[RewardCalculator] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.config = engine.config
        self.economy = economy or FreePlay()
        self.rewards = rewards or RewardCalculator(self.config.rewards)
        self.clock = clock

    # ------------------------------------------------------------------
    # start
    # ------------------------------------------------------------------

    def start(self, player: PlayerState, mode: Mode) -> StartResult:
        """
        Start or resume ``mode``.

        A saved session for the mode is resumed for free. Otherwise energy is
        charged and a fresh session created. Any other active mode is
        suspended first. A timed session whose countdown has run out is
        settled and never resumed.

        Raises:
            InsufficientResource: Not enough energy; nothing was changed
        """
        mode = Mode.parse(mode)
        with player.lock:
            now = self.clock()
            store = player.store
            self._expire(player, store.active, now)

            if store.active_mode is mode:
                session = store.active
                return StartResult(session=session, resumed=True)

            saved = store.get(mode)
            if saved is not None and self._expire(player, saved, now) is None:
                suspended = self._suspend(player, now)
                session = store.activate(mode, now)
                logger.info("Player %s resumed %s (score %d)", player.player_id, mode.value, session.score)
                return StartResult(session=session, resumed=True, suspended=suspended)

            # Charge first: a failed charge must leave every session untouched
            cost = self.config.energy_cost
            self.economy.spend_energy(player.player_id, cost)

            suspended = self._suspend(player, now)
            session = self.engine.new_session(mode)
            session.resume(now)
            store.save(session, active=True)
            player.total_games += 1
            player.phase = Phase.IDLE
            logger.info("Player %s started %s", player.player_id, mode.value)
            return StartResult(session=session, resumed=False, energy_spent=cost, suspended=suspended)

    def _suspend(self, player: PlayerState, now: float) -> Optional[Mode]:
        outgoing = player.store.suspend_active(now)
        if outgoing is None:
            return None
        logger.info("Player %s suspended %s", player.player_id, outgoing.mode.value)
        return outgoing.mode

    # ------------------------------------------------------------------
    # move
    # ------------------------------------------------------------------

    def move(
        self,
        player: PlayerState,
        src: Cell,
        dst: Cell,
        mode: Optional[Mode] = None,
    ) -> MoveOutcome:
        """
        Swap two cells of the active session and resolve the cascade.

        A swap that produces no match returns ``valid=False`` and leaves the
        session exactly as it was.

        Raises:
            NoActiveSession: No active session (or not for ``mode``). A timed
                session that has run out of time is settled first, so a move
                against it raises this too.
            MoveInProgress: A previous move is still resolving
            InvalidMove: Off-board, non-adjacent or drop-token swap
        """
        with player.lock:
            self._expire(player, player.store.active, self.clock())
            session = self._active_session(player, mode)
            if player.phase is Phase.RESOLVING:
                raise MoveInProgress("Previous move is still resolving")

            player.phase = Phase.RESOLVING
            try:
                swap = self.engine.apply_swap(
                    session.board, tuple(src), tuple(dst),
                    drop_mode=session.mode is Mode.DROP,
                )
                if not swap.valid:
                    return MoveOutcome(valid=False, session=session)

                cascade = swap.cascade
                session.board = swap.board
                session.score += cascade.total_points
                session.combo = cascade.final_combo
                session.max_combo = max(session.max_combo, cascade.final_combo)
                session.moves_made += 1
                if session.moves_left is not None:
                    session.moves_left -= 1
                session.collected.extend(cascade.collected)

                outcome = MoveOutcome(
                    valid=True,
                    session=session,
                    points=cascade.total_points,
                    combo=cascade.final_combo,
                    cascade=cascade,
                    collected=cascade.collected,
                    reshuffled=swap.reshuffled,
                )

                if self._is_finished(session):
                    outcome.settlement = self._settle(player, session)
                else:
                    player.store.save(session, active=True)
                return outcome
            finally:
                player.phase = Phase.IDLE

    def _is_finished(self, session: Session) -> bool:
        if session.moves_left is not None and session.moves_left <= 0:
            return True
        if session.drop_total and session.stars_dropped >= session.drop_total:
            return True
        return False

    def _active_session(self, player: PlayerState, mode: Optional[Mode]) -> Session:
        session = player.store.active
        wanted = Mode.parse(mode) if mode is not None else None
        if session is None or (wanted is not None and session.mode is not wanted):
            raise NoActiveSession(wanted.value if wanted else None)
        return session

    # ------------------------------------------------------------------
    # end
    # ------------------------------------------------------------------

    def end(
        self,
        player: PlayerState,
        mode: Optional[Mode] = None,
        reported_score: Optional[int] = None,
    ) -> Settlement:
        """
        Force the end of a mode, pay out and clear that mode's session.

        The stored score is canonical; a different client-reported score is
        only logged.

        Raises:
            NoActiveSession: Nothing to end (already ended or never started)
        """
        with player.lock:
            if mode is None:
                session = player.store.active
            else:
                session = player.store.get(mode)
            if session is None:
                raise NoActiveSession(Mode.parse(mode).value if mode is not None else None)
            if player.phase is Phase.RESOLVING:
                raise MoveInProgress("Cannot end while a move is resolving")

            if reported_score is not None and reported_score != session.score:
                logger.warning(
                    "Player %s reported score %s for %s, server has %d",
                    player.player_id, reported_score, session.mode.value, session.score,
                )
            return self._settle(player, session)

    def _settle(self, player: PlayerState, session: Session) -> Settlement:
        """Compute the reward, credit it, update the high score, clear the session."""
        payout = self.rewards.mode_reward(
            session.mode, session.score, session.collected, session.drop_total,
        )
        self.economy.credit(player.player_id, payout)

        new_high = session.score > player.high_score
        if new_high:
            player.high_score = session.score

        session.game_over = True
        session.pause(self.clock())
        player.store.clear(session.mode)
        logger.info(
            "Player %s finished %s: score %d, %d gold",
            player.player_id, session.mode.value, session.score, payout.gold,
        )
        return Settlement(
            mode=session.mode,
            score=session.score,
            payout=payout,
            high_score=player.high_score,
            new_high_score=new_high,
        )

    def _expire(self, player: PlayerState, session: Optional[Session], now: float) -> Optional[Settlement]:
        if session is None or not session.is_expired(now):
            return None
        logger.info("Player %s ran out of time in %s", player.player_id, session.mode.value)
        return self._settle(player, session)

    def expire(self, player: PlayerState) -> Optional[Settlement]:
        """Settle the active session if its countdown has run out."""
        with player.lock:
            return self._expire(player, player.store.active, self.clock())

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    def state(self, player: PlayerState) -> Dict[str, Any]:
        """Canonical view: active session, high score and suspended sessions."""
        with player.lock:
            now = self.clock()
            self._expire(player, player.store.active, now)
            session = player.store.active
            return {
                'game': session.to_dict(now) if session else None,
                'highScore': player.high_score,
                'savedModes': player.store.saved_modes(now),
            }


def play_random_game(
    mode: Mode = Mode.CLASSIC,
    seed: Optional[int] = None,
    max_moves: int = 500,
    verbose: bool = False,
) -> Settlement:
    """
    Play a complete run with random valid swaps.
    Useful for testing and for checking the reward curve against real scores.

    Timed runs have no move budget, so they are ended after ``max_moves``.
    """
    import random

    rng = random.Random(seed)
    controller = ModeController(MatchEngine(seed=seed, name="sim"))
    player = PlayerState(player_id="sim")
    controller.start(player, mode)

    for _ in range(max_moves):
        session = player.store.active
        swaps = find_valid_swaps(session.board)
        if not swaps:
            break
        src, dst = rng.choice(swaps)
        outcome = controller.move(player, src, dst)

        if verbose:
            print(f"Swap {src} -> {dst}: +{outcome.points} (combo {outcome.combo})")
            print(session.board)

        if outcome.settlement is not None:
            return outcome.settlement

    return controller.end(player)
