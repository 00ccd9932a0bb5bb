"""
MatchClient: the predictive side of a match-3 game.

The client runs its own MatchEngine so a swap can be checked and animated
immediately, then reports the move to the server and adopts whatever the
server returns as the canonical session. Refills come from different random
streams, so the predicted board after a cascade is only a preview.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.board import Board, Cell
from ..core.config import EngineConfig, Mode
from ..core.engine import MatchEngine, SwapOutcome
from ..core.errors import MoveInProgress, NoActiveSession
from ..core.modes import Phase
from ..core.session import Session
from .cache import SessionCache
from .timer import CountdownTimer
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class ClientMoveResult:
    """What the client shows after one swap."""
    valid: bool
    prediction: SwapOutcome
    session: Optional[Session] = None
    points: int = 0
    combo: int = 0
    collected: List[str] = field(default_factory=list)
    settlement: Optional[Dict[str, Any]] = None

    @property
    def game_over(self) -> bool:
        return self.settlement is not None


class MatchClient:
    """
    Args:
        transport: Connection to the server authority
        config: Engine configuration; must match the server's rules
        seed: Seed for the client's own engine
        cache_path: Optional file the session cache is mirrored to
        clock: Monotonic clock for the timed countdown
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[EngineConfig] = None,
        seed: Optional[int] = None,
        cache_path: Optional[Path] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.engine = MatchEngine(config, seed=seed, name="client")
        self.cache = SessionCache(self.engine.palette, cache_path)
        self.clock = clock
        self.timer = CountdownTimer(on_expire=self._on_time_up, clock=clock)

        self.phase = Phase.IDLE
        self.selected: Optional[Cell] = None
        self.high_score = 0
        self.resources: Dict[str, Any] = {}
        self.last_settlement: Optional[Dict[str, Any]] = None
        self.pending_end: Optional[asyncio.Future] = None

    @property
    def session(self) -> Optional[Session]:
        return self.cache.active

    def _settle_phase(self):
        self.phase = Phase.AWAITING_SWAP if self.cache.active is not None else Phase.IDLE

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    def fetch_state(self) -> Optional[Session]:
        """Replace the local cache with the server's view."""
        state = self.transport.state()
        self.high_score = state.get('highScore', self.high_score)
        active = self.cache.reconcile(state)
        if active is not None:
            active.resume(self.clock())
        self.selected = None
        self._arm_timer(active)
        self._settle_phase()
        return active

    # ------------------------------------------------------------------
    # start / end
    # ------------------------------------------------------------------

    def start(self, mode: Mode) -> Session:
        """
        Start or resume a mode on the server and make it the local active session.

        Raises:
            InsufficientResource: The server refused to charge energy. The
                local cache is left as it was.
            MoveInProgress: A swap is still resolving
        """
        mode = Mode.parse(mode)
        if self.phase is Phase.RESOLVING:
            raise MoveInProgress("Cannot switch modes while a move is resolving")

        response = self.transport.start(mode.value)

        now = self.clock()
        self.timer.cancel()
        self.cache.suspend_active(now)
        session = Session.from_dict(response['game'], self.engine.palette)
        session.resume(now)
        self.cache.save(session, active=True)

        self.high_score = response.get('highScore', self.high_score)
        self.resources = response.get('resources', self.resources)
        self.selected = None
        self._arm_timer(session)
        self._settle_phase()
        logger.info("%s %s", "Resumed" if response.get('resumed') else "Started", mode.value)
        return session

    def end(self, mode: Optional[Mode] = None) -> Dict[str, Any]:
        """
        End a mode and collect the reward.

        Raises:
            NoActiveSession: The server has nothing to end. The cache is
                re-fetched before the error propagates.
        """
        mode = Mode.parse(mode) if mode is not None else None
        session = self.cache.get(mode) if mode is not None else self.cache.active
        if self.phase is Phase.RESOLVING:
            raise MoveInProgress("Cannot end while a move is resolving")

        self.timer.cancel()
        try:
            response = self.transport.end(
                mode.value if mode is not None else None,
                session.score if session is not None else None,
            )
        except NoActiveSession:
            self.fetch_state()
            raise

        self._record_settlement(response)
        self._settle_phase()
        return response

    def _record_settlement(self, response: Dict[str, Any]):
        self.cache.clear(Mode.parse(response['mode']))
        self.last_settlement = response
        self.high_score = response.get('highScore', self.high_score)
        self.resources = response.get('resources', self.resources)
        logger.info(
            "Finished %s with %d points, %d gold",
            response['mode'], response['score'], response['goldReward'],
        )

    # ------------------------------------------------------------------
    # input
    # ------------------------------------------------------------------

    def select(self, x: int, y: int) -> Optional[ClientMoveResult]:
        """
        Handle a tap on cell (x, y).

        The first tap selects a cell, a tap on an adjacent cell swaps the
        two, and any other tap moves the selection. Taps are ignored unless
        the client is awaiting a swap.
        """
        if self.phase is not Phase.AWAITING_SWAP:
            return None

        cell = (x, y)
        if self.selected is None:
            self.selected = cell
            return None
        if cell == self.selected:
            self.selected = None
            return None
        if not Board.is_adjacent(self.selected, cell):
            self.selected = cell
            return None

        src, self.selected = self.selected, None
        return self.swap(src, cell)

    def swap(self, src: Cell, dst: Cell) -> ClientMoveResult:
        """
        Predict a swap locally and, if it matches, send it to the server.

        Raises:
            NoActiveSession: No local session, or the server no longer has one
            MoveInProgress: A previous swap is still resolving
            InvalidMove: The swap can never be accepted
        """
        session = self.cache.active
        if session is None:
            raise NoActiveSession()
        if self.phase is Phase.RESOLVING:
            raise MoveInProgress("Previous move is still resolving")

        self.phase = Phase.RESOLVING
        try:
            prediction = self.engine.apply_swap(
                session.board, tuple(src), tuple(dst),
                drop_mode=session.mode is Mode.DROP,
            )
            if not prediction.valid:
                return ClientMoveResult(valid=False, prediction=prediction, session=session)

            try:
                response = self.transport.move(src, dst, session.mode.value)
            except NoActiveSession:
                logger.warning("Server has no %s session; re-fetching state", session.mode.value)
                self.fetch_state()
                raise

            if not response.get('valid'):
                logger.warning("Server rejected a swap predicted as valid; re-fetching state")
                self.fetch_state()
                return ClientMoveResult(valid=False, prediction=prediction, session=self.cache.active)

            return self._adopt(response, prediction)
        finally:
            self._settle_phase()

    def _adopt(self, response: Dict[str, Any], prediction: SwapOutcome) -> ClientMoveResult:
        """Take the server's session as canonical."""
        game = Session.from_dict(response['game'], self.engine.palette)
        result = ClientMoveResult(
            valid=True,
            prediction=prediction,
            session=game,
            points=response.get('points', 0),
            combo=response.get('combo', 0),
            collected=list(response.get('collected', [])),
        )

        if 'goldReward' in response:
            self.timer.cancel()
            self._record_settlement(response)
            result.settlement = response
            return result

        game.resume(self.clock())
        self.cache.save(game, active=True)
        if game.is_timed and not self.timer.running:
            self._arm_timer(game)
        return result

    # ------------------------------------------------------------------
    # timed mode
    # ------------------------------------------------------------------

    def _arm_timer(self, session: Optional[Session]):
        self.timer.cancel()
        if session is None or not session.is_timed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous use: the server still enforces the countdown
            return
        self.timer.start(session.remaining_seconds(self.clock()))

    def _on_time_up(self):
        session = self.cache.active
        if session is None or not session.is_timed:
            return
        logger.info("Time is up for %s", session.mode.value)
        # Transports block, so the end request runs off the event loop
        loop = asyncio.get_running_loop()
        self.pending_end = loop.run_in_executor(None, self._end_expired, session.mode)

    def _end_expired(self, mode: Mode):
        try:
            self.end(mode)
        except NoActiveSession:
            logger.info("Timed session was already settled on the server")

    def close(self):
        self.timer.cancel()
        self.cache.close()
