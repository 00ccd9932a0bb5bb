"""
ServerAuthority: the canonical copy of the match engine.

Clients predict moves with their own engine instance; this one decides what
is persisted and what is paid out. Every call for a player runs under that
player's lock, so a move or end against a session that has already been
cleared fails with NoActiveSession instead of paying twice.
"""
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.board import Cell
from ..core.config import DEFAULT_CONFIG, EngineConfig, Mode
from ..core.economy import InMemoryEconomy
from ..core.engine import MatchEngine
from ..core.errors import NoActiveSession
from ..core.modes import ModeController, PlayerState, Settlement
from .persistence import SnapshotWriter, load_snapshot

logger = logging.getLogger(__name__)


class ServerAuthority:
    """
    Owns player state, the server engine instance and the economy.

    Args:
        config: Engine configuration
        economy: Economy collaborator; an InMemoryEconomy when omitted
        seed: Seed for the server engine's random stream
        snapshot_path: If set, state is loaded from and saved to this JSON file
        clock: Monotonic clock for timed mode
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        economy: Optional[InMemoryEconomy] = None,
        seed: Optional[int] = None,
        snapshot_path: Optional[Path] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or DEFAULT_CONFIG
        self.engine = MatchEngine(self.config, seed=seed, name="server")
        self.economy = economy or InMemoryEconomy()
        self.controller = ModeController(self.engine, self.economy, clock=clock)
        self.clock = clock

        self.players: Dict[str, PlayerState] = {}
        self._players_lock = threading.Lock()

        self.writer: Optional[SnapshotWriter] = None
        if snapshot_path is not None:
            self._restore(Path(snapshot_path))
            self.writer = SnapshotWriter(Path(snapshot_path), self.snapshot)

    # ------------------------------------------------------------------
    # player lifecycle
    # ------------------------------------------------------------------

    def open_player(self, player_id: str, username: Optional[str] = None) -> PlayerState:
        """Get or create the state object for a player."""
        if not player_id:
            raise ValueError("player id required")
        with self._players_lock:
            player = self.players.get(player_id)
            if player is None:
                player = PlayerState(player_id=player_id, username=username or "Player")
                self.players[player_id] = player
                logger.info("Registered player %s", player_id)
            elif username:
                player.username = username
            return player

    def suspend(self, player_id: str) -> Dict[str, Any]:
        """Suspend the player's active session (countdown paused) and persist."""
        player = self.open_player(player_id)
        with player.lock:
            outgoing = player.store.suspend_active(self.clock())
            if outgoing is not None:
                logger.info("Player %s suspended %s", player_id, outgoing.mode.value)
            state = self.controller.state(player)
        self._persist()
        return state

    # ------------------------------------------------------------------
    # endpoints
    # ------------------------------------------------------------------

    def start(self, player_id: str, mode: str = "classic", username: Optional[str] = None) -> Dict[str, Any]:
        player = self.open_player(player_id, username)
        with player.lock:
            result = self.controller.start(player, Mode.parse(mode))
            response = {
                'success': True,
                'game': result.session.to_dict(self.clock()),
                'resumed': result.resumed,
                'highScore': player.high_score,
                'resources': self.economy.resources(player_id),
            }
        self._persist()
        return response

    def move(
        self,
        player_id: str,
        src: Cell,
        dst: Cell,
        mode: Optional[str] = None,
    ) -> Dict[str, Any]:
        player = self.open_player(player_id)
        with player.lock:
            try:
                outcome = self.controller.move(player, src, dst, Mode.parse(mode) if mode else None)
            except NoActiveSession:
                # The move may have settled an expired timed session
                self._persist()
                raise
            if not outcome.valid:
                return {'valid': False}

            response: Dict[str, Any] = {
                'valid': True,
                'game': outcome.session.to_dict(self.clock()),
                'points': outcome.points,
                'combo': outcome.combo,
                'collected': outcome.collected,
                'reshuffled': outcome.reshuffled,
            }
            response.update(outcome.cascade.to_dict())
            if outcome.settlement is not None:
                response.update(self._settlement_response(player, outcome.settlement))
        self._persist()
        return response

    def end(self, player_id: str, mode: Optional[str] = None, score: Optional[int] = None) -> Dict[str, Any]:
        player = self.open_player(player_id)
        with player.lock:
            settlement = self.controller.end(
                player, Mode.parse(mode) if mode else None, reported_score=score,
            )
            response = {'success': True}
            response.update(self._settlement_response(player, settlement))
        self._persist()
        return response

    def state(self, player_id: str) -> Dict[str, Any]:
        player = self.open_player(player_id)
        with player.lock:
            if self.controller.expire(player) is not None:
                self._persist()
            return self.controller.state(player)

    def _settlement_response(self, player: PlayerState, settlement: Settlement) -> Dict[str, Any]:
        settlement.rank = self.rank(player.player_id)
        data = settlement.to_dict()
        data['resources'] = self.economy.resources(player.player_id)
        return data

    # ------------------------------------------------------------------
    # ranking
    # ------------------------------------------------------------------

    def _ranked(self) -> List[PlayerState]:
        with self._players_lock:
            scored = [p for p in self.players.values() if p.high_score > 0]
        return sorted(scored, key=lambda p: p.high_score, reverse=True)

    def rank(self, player_id: str) -> int:
        """1-based rank by high score; players without a score rank last."""
        ranked = self._ranked()
        for i, player in enumerate(ranked):
            if player.player_id == player_id:
                return i + 1
        return len(ranked) + 1

    def leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        return [
            {'username': p.username, 'highScore': p.high_score}
            for p in self._ranked()[:limit]
        ]

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        now = self.clock()
        with self._players_lock:
            players = list(self.players.values())
        snap_players = {}
        for player in players:
            with player.lock:
                snap_players[player.player_id] = player.to_dict(now)
        return {'players': snap_players, 'economy': self.economy.to_dict()}

    def _persist(self):
        if self.writer is not None:
            self.writer.schedule()

    def _restore(self, path: Path):
        data = load_snapshot(path)
        if not data:
            return
        now = self.clock()
        for player_id, payload in (data.get('players') or {}).items():
            try:
                player = PlayerState.from_dict(payload, self.engine.palette)
            except (KeyError, ValueError) as e:
                logger.warning("Skipping corrupt player %s in snapshot: %s", player_id, e)
                continue
            # A countdown that was running when the snapshot was taken restarts now
            active = player.store.active
            if active is not None:
                active.resume(now)
            self.players[player_id] = player
        self.economy.load(data.get('economy') or {})
        logger.info("Restored %d players from %s", len(self.players), path)

    def shutdown(self):
        if self.writer is not None:
            self.writer.cancel()
            self.writer.flush()
