"""
Client-side cache of saved sessions and reconciliation with the server.

The server copy always wins. A fetch replaces the whole cache with the
server's view; nothing from the local copy is merged back in, so a session
that ended on another device can never come back as a ghost.
"""
from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.config import Mode
from ..core.session import Session, SessionStore
from ..core.tokens import Palette

logger = logging.getLogger(__name__)


class SessionCache:
    """
    Local copy of the player's sessions, one per mode.

    Args:
        palette: Token palette used to decode boards
        path: Optional JSON file the cache is mirrored to. Writes run on a
            background worker and failures are only logged.
    """

    def __init__(self, palette: Optional[Palette] = None, path: Optional[Path] = None):
        self.palette = palette
        self.store = SessionStore()
        self.path = Path(path) if path is not None else None
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.path is not None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session-cache")
            self._load()

    @property
    def active(self) -> Optional[Session]:
        return self.store.active

    @property
    def modes(self):
        return sorted(m.value for m in self.store.sessions)

    def get(self, mode: Mode) -> Optional[Session]:
        return self.store.get(mode)

    def save(self, session: Session, active: bool = True):
        """Store a session after an accepted move or a mode switch."""
        self.store.save(session, active=active)
        self.persist()

    def suspend_active(self, now: float) -> Optional[Session]:
        session = self.store.suspend_active(now)
        if session is not None:
            self.persist()
        return session

    def clear(self, mode: Mode):
        self.store.clear(mode)
        self.persist()

    def reconcile(self, state: Dict[str, Any]) -> Optional[Session]:
        """
        Adopt the server's view from a ``/api/game/state`` payload.

        With an active server session the cache becomes exactly that session
        plus the server's saved modes. Without one, the cache becomes the
        server's saved modes only (usually nothing). Stale local sessions are
        discarded either way.

        Returns:
            The active session, if the server has one
        """
        sessions: Dict[Mode, Session] = {}
        active_mode = None

        game = state.get('game')
        if game:
            active = Session.from_dict(game, self.palette)
            sessions[active.mode] = active
            active_mode = active.mode

        for payload in (state.get('savedModes') or {}).values():
            saved = Session.from_dict(payload, self.palette)
            if saved.mode not in sessions:
                sessions[saved.mode] = saved

        dropped = [m.value for m in self.store.sessions if m not in sessions]
        if dropped:
            logger.info("Discarding stale local sessions: %s", ", ".join(sorted(dropped)))

        self.store.replace_all(sessions, active_mode)
        self.persist()
        return self.store.active

    # ------------------------------------------------------------------
    # background persistence
    # ------------------------------------------------------------------

    def persist(self) -> Optional[Future]:
        """Fire-and-forget write of the cache file."""
        if self._executor is None:
            return None
        data = self.store.to_dict()
        return self._executor.submit(self._write, data)

    def _write(self, data: Dict[str, Any]):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(data, f)
        except OSError as e:
            logger.warning("Could not write session cache %s: %s", self.path, e)

    def _load(self):
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            self.store = SessionStore.from_dict(data, self.palette)
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Ignoring unreadable session cache %s: %s", self.path, e)

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
