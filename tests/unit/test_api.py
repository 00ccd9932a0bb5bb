"""
Tests for the HTTP API (FastAPI TestClient over a fresh ServerAuthority).
"""
import threading

import pytest
from fastapi.testclient import TestClient

from gemgarden.api.app import create_app
from gemgarden.api.authority import ServerAuthority
from gemgarden.core.board import Board
from gemgarden.core.solvability import find_valid_swaps


@pytest.fixture
def authority():
    return ServerAuthority(seed=9)


@pytest.fixture
def client(authority):
    with TestClient(create_app(authority)) as test_client:
        yield test_client


def valid_move_body(game, user_id="u1"):
    board = Board.from_list(game['board'])
    (fx, fy), (tx, ty) = find_valid_swaps(board)[0]
    return {'userId': user_id, 'fromX': fx, 'fromY': fy, 'toX': tx, 'toY': ty}


class TestGameEndpoints:
    """Tests for start / move / end / state."""

    def test_health(self, client):
        """Test the health check."""
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()['status'] == "ok"

    def test_start(self, client):
        """Test starting classic mode charges energy and returns a board."""
        response = client.post("/api/game/start", json={'userId': "u1", 'mode': "classic"})

        assert response.status_code == 200
        data = response.json()
        assert data['success']
        assert not data['resumed']
        assert data['game']['mode'] == "classic"
        assert data['game']['movesLeft'] == 30
        assert len(data['game']['board']) == 8
        assert data['resources']['energy']['current'] == 15

    def test_move_and_end(self, client):
        """Test a valid move scores and ending pays the server-side score."""
        game = client.post("/api/game/start", json={'userId': "u1"}).json()['game']

        moved = client.post("/api/game/move", json=valid_move_body(game)).json()
        assert moved['valid']
        assert moved['points'] > 0
        assert moved['game']['score'] == moved['points']
        assert moved['game']['movesLeft'] == 29
        assert moved['steps'][0]['combo'] == 1
        assert moved['totalPoints'] == moved['points']
        assert moved['finalCombo'] == moved['combo']

        ended = client.post("/api/game/end", json={'userId': "u1", 'score': 1}).json()
        assert ended['success']
        assert ended['score'] == moved['points']
        assert ended['goldReward'] >= 5
        assert ended['rank'] == 1
        assert ended['newHighScore']
        assert ended['resources']['gold'] == 100 + ended['goldReward']

    def test_invalid_swap(self, client):
        """Test a swap that matches nothing is answered with valid=false."""
        game = client.post("/api/game/start", json={'userId': "u1"}).json()['game']
        board = Board.from_list(game['board'])
        valid = set(find_valid_swaps(board))
        src, dst = next(
            ((x, y), (x + 1, y))
            for y in range(8) for x in range(7)
            if ((x, y), (x + 1, y)) not in valid
        )

        response = client.post("/api/game/move", json={
            'userId': "u1", 'fromX': src[0], 'fromY': src[1], 'toX': dst[0], 'toY': dst[1],
        })

        assert response.status_code == 200
        assert response.json() == {'valid': False}
        state = client.get("/api/game/state", params={'userId': "u1"}).json()
        assert state['game']['board'] == game['board']
        assert state['game']['movesLeft'] == 30

    def test_non_adjacent_move(self, client):
        """Test a non-adjacent swap is an INVALID_MOVE error."""
        client.post("/api/game/start", json={'userId': "u1"})

        response = client.post("/api/game/move", json={
            'userId': "u1", 'fromX': 0, 'fromY': 0, 'toX': 2, 'toY': 0,
        })

        assert response.status_code == 400
        assert response.json()['error'] == "INVALID_MOVE"

    def test_state(self, client):
        """Test the canonical state lists active and saved sessions."""
        client.post("/api/game/start", json={'userId': "u1", 'mode': "drop"})
        client.post("/api/game/start", json={'userId': "u1", 'mode': "timed"})

        state = client.post("/api/game/state", json={'userId': "u1"}).json()

        assert state['game']['mode'] == "timed"
        assert list(state['savedModes']) == ["drop"]
        assert state['savedModes']['drop']['modeExtras']['dropTotal'] == 3
        assert state['highScore'] == 0

    def test_state_for_new_player(self, client):
        """Test a player with no sessions gets an empty state."""
        state = client.get("/api/game/state", params={'userId': "nobody"}).json()
        assert state == {'game': None, 'highScore': 0, 'savedModes': {}}

    def test_suspend(self, client):
        """Test suspending leaves no active mode and keeps the session saved."""
        client.post("/api/game/start", json={'userId': "u1", 'mode': "classic"})

        state = client.post("/api/game/suspend", json={'userId': "u1"}).json()

        assert state['game'] is None
        assert list(state['savedModes']) == ["classic"]
        resumed = client.post("/api/game/start", json={'userId': "u1", 'mode': "classic"}).json()
        assert resumed['resumed']
        assert resumed['resources']['energy']['current'] == 15

    def test_expired_timed_session(self, clock):
        """Test the server settles a timed run on its own once time runs out."""
        authority = ServerAuthority(seed=9, clock=clock)
        with TestClient(create_app(authority)) as test_client:
            game = test_client.post("/api/game/start", json={'userId': "u1", 'mode': "timed"}).json()['game']
            clock.advance(91)

            response = test_client.post("/api/game/move", json=valid_move_body(game))
            assert response.status_code == 409
            assert response.json()['error'] == "NO_ACTIVE_SESSION"

            state = test_client.get("/api/game/state", params={'userId': "u1"}).json()
            assert state['game'] is None
            assert authority.economy.resources("u1")['gold'] == 105


class TestErrors:
    """Tests for error codes on the wire."""

    def test_not_enough_energy(self, client):
        """Test the fifth charged start is refused with the deficit."""
        for _ in range(4):
            assert client.post("/api/game/start", json={'userId': "u1"}).status_code == 200
            assert client.post("/api/game/end", json={'userId': "u1"}).status_code == 200

        response = client.post("/api/game/start", json={'userId': "u1"})

        assert response.status_code == 400
        assert response.json() == {'error': "NOT_ENOUGH_ENERGY", 'required': 5, 'current': 0}

    def test_end_twice(self, client):
        """Test ending an already ended session is a conflict."""
        client.post("/api/game/start", json={'userId': "u1"})
        assert client.post("/api/game/end", json={'userId': "u1"}).status_code == 200

        response = client.post("/api/game/end", json={'userId': "u1"})

        assert response.status_code == 409
        assert response.json()['error'] == "NO_ACTIVE_SESSION"

    def test_move_without_session(self, client):
        """Test moving with nothing started is a conflict."""
        response = client.post("/api/game/move", json={
            'userId': "u1", 'fromX': 0, 'fromY': 0, 'toX': 1, 'toY': 0,
        })

        assert response.status_code == 409
        assert response.json()['error'] == "NO_ACTIVE_SESSION"

    def test_unknown_mode(self, client):
        """Test an unknown mode name is rejected."""
        response = client.post("/api/game/start", json={'userId': "u1", 'mode': "zen"})

        assert response.status_code == 400
        assert response.json()['error'] == "UNKNOWN_MODE"

    def test_missing_user(self, client):
        """Test requests without a userId fail validation."""
        response = client.post("/api/game/start", json={'mode': "classic"})
        assert response.status_code == 422


class TestLeaderboard:
    """Tests for ranking."""

    def test_ranking(self, client, authority):
        """Test players are ranked by high score."""
        for user, high in (("a", 300), ("b", 900), ("c", 0)):
            authority.open_player(user, username=user.upper()).high_score = high

        board = client.get("/api/leaderboard").json()

        assert board == [
            {'username': "B", 'highScore': 900},
            {'username': "A", 'highScore': 300},
        ]
        assert authority.rank("b") == 1
        assert authority.rank("c") == 3


def held_by_another_thread(lock) -> bool:
    """True when a second thread cannot take ``lock`` right now."""
    acquired = []

    def try_acquire():
        got = lock.acquire(blocking=False)
        if got:
            lock.release()
        acquired.append(got)

    worker = threading.Thread(target=try_acquire)
    worker.start()
    worker.join()
    return not acquired[0]


class TestAuthorityLocking:
    """Tests that responses are built while the player's lock is held."""

    def test_responses_built_under_player_lock(self, authority, monkeypatch):
        """Test start and end read resources without releasing the player lock."""
        player = authority.open_player("u1")
        locked = []
        resources = authority.economy.resources

        def recording_resources(player_id):
            locked.append(held_by_another_thread(player.lock))
            return resources(player_id)

        monkeypatch.setattr(authority.economy, "resources", recording_resources)

        authority.start("u1", "classic")
        authority.end("u1")

        assert locked == [True, True]
