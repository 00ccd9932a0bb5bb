"""
Debounced JSON snapshots of server state.

Writes happen on a background timer so request handlers never wait on disk.
Failures are logged and the write is rescheduled; they never reach a player.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """
    Coalesces save requests into one write per ``delay`` seconds.

    Args:
        path: Target JSON file
        snapshot: Callable returning the JSON-serializable state to write
        delay: Debounce window in seconds
        max_retries: Consecutive failed writes before giving up until the
            next ``schedule`` call
    """

    def __init__(
        self,
        path: Path,
        snapshot: Callable[[], Dict[str, Any]],
        delay: float = 2.0,
        max_retries: int = 5,
    ):
        self.path = Path(path)
        self.snapshot = snapshot
        self.delay = delay
        self.max_retries = max_retries
        self.failures = 0
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def schedule(self):
        """Request a save. Returns immediately."""
        with self._lock:
            if self._timer is not None:
                return
            self._timer = threading.Timer(self.delay, self._run)
            self._timer.daemon = True
            self._timer.start()

    def _run(self):
        with self._lock:
            self._timer = None
        if self.flush():
            return
        if self.failures < self.max_retries:
            self.schedule()
        else:
            logger.error("Giving up on snapshot %s after %d failures", self.path, self.failures)
            self.failures = 0

    def flush(self) -> bool:
        """Write now. Returns False (and logs) on failure."""
        try:
            data = self.snapshot()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, 'w') as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            self.failures += 1
            logger.warning("Snapshot to %s failed (attempt %d): %s", self.path, self.failures, e)
            return False
        self.failures = 0
        logger.debug("Snapshot written to %s", self.path)
        return True

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


def load_snapshot(path: Path) -> Optional[Dict[str, Any]]:
    """Read a snapshot written by SnapshotWriter, or None if missing/corrupt."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
        return None
