"""
How a MatchClient talks to the server authority.

DirectTransport calls a ServerAuthority in-process; HttpTransport speaks the
JSON API through any client object with ``get``/``post`` methods (an
``httpx.Client`` or FastAPI's ``TestClient``).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..core.board import Cell
from ..core.errors import error_from_payload


class Transport(ABC):
    """The four calls a client makes. All return decoded JSON payloads."""

    @abstractmethod
    def start(self, mode: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def move(self, src: Cell, dst: Cell, mode: Optional[str] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    def end(self, mode: Optional[str] = None, score: Optional[int] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    def state(self) -> Dict[str, Any]:
        pass


class DirectTransport(Transport):
    """In-process calls into a ServerAuthority."""

    def __init__(self, authority, player_id: str, username: Optional[str] = None):
        self.authority = authority
        self.player_id = player_id
        self.username = username

    def start(self, mode: str) -> Dict[str, Any]:
        return self.authority.start(self.player_id, mode, self.username)

    def move(self, src: Cell, dst: Cell, mode: Optional[str] = None) -> Dict[str, Any]:
        return self.authority.move(self.player_id, src, dst, mode)

    def end(self, mode: Optional[str] = None, score: Optional[int] = None) -> Dict[str, Any]:
        return self.authority.end(self.player_id, mode, score)

    def state(self) -> Dict[str, Any]:
        return self.authority.state(self.player_id)


class HttpTransport(Transport):
    """
    JSON over HTTP.

    Error responses are turned back into the engine exceptions they came
    from, so callers handle both transports the same way.
    """

    def __init__(self, http, player_id: str, username: Optional[str] = None, prefix: str = "/api/game"):
        self.http = http
        self.player_id = player_id
        self.username = username
        self.prefix = prefix

    def _check(self, response) -> Dict[str, Any]:
        payload = response.json()
        if response.status_code >= 400:
            raise error_from_payload(payload, response.status_code)
        return payload

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        body = {'userId': self.player_id, **body}
        return self._check(self.http.post(f"{self.prefix}/{path}", json=body))

    def start(self, mode: str) -> Dict[str, Any]:
        return self._post("start", {'mode': mode, 'username': self.username})

    def move(self, src: Cell, dst: Cell, mode: Optional[str] = None) -> Dict[str, Any]:
        return self._post("move", {
            'fromX': src[0], 'fromY': src[1],
            'toX': dst[0], 'toY': dst[1],
            'mode': mode,
        })

    def end(self, mode: Optional[str] = None, score: Optional[int] = None) -> Dict[str, Any]:
        return self._post("end", {'mode': mode, 'score': score})

    def state(self) -> Dict[str, Any]:
        response = self.http.get(f"{self.prefix}/state", params={'userId': self.player_id})
        return self._check(response)
