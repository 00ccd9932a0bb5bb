"""
FastAPI backend for the Gem Garden match-3 mini-game.

Endpoints (JSON):
- POST /api/game/start  {userId, mode}
- POST /api/game/move   {userId, fromX, fromY, toX, toY}
- POST /api/game/end    {userId, score, mode}
- GET|POST /api/game/state
- POST /api/game/suspend {userId}
- GET /api/leaderboard, GET /api/health
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import uvicorn

from ..core.errors import MatchEngineError
from .authority import ServerAuthority

logger = logging.getLogger(__name__)


class PlayerRequest(BaseModel):
    """Identifies the calling player. Authentication happens upstream."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    username: Optional[str] = None


class StartRequest(PlayerRequest):
    mode: str = "classic"


class MoveRequest(PlayerRequest):
    from_x: int = Field(alias="fromX")
    from_y: int = Field(alias="fromY")
    to_x: int = Field(alias="toX")
    to_y: int = Field(alias="toY")
    mode: Optional[str] = None


class EndRequest(PlayerRequest):
    score: Optional[int] = None
    mode: Optional[str] = None


def create_app(authority: Optional[ServerAuthority] = None) -> FastAPI:
    """Build the app around one ServerAuthority (a fresh in-memory one by default)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.authority.shutdown()

    app = FastAPI(title="Gem Garden Match-3", lifespan=lifespan)
    app.state.authority = authority or ServerAuthority()

    # Allow CORS for the embedded activity frame
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MatchEngineError)
    async def engine_error_handler(request: Request, exc: MatchEngineError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    def _authority() -> ServerAuthority:
        return app.state.authority

    @app.get("/api/health")
    def health():
        return {"status": "ok", "players": len(_authority().players)}

    @app.get("/api/game/state")
    def get_state(userId: str):
        if not userId:
            raise HTTPException(status_code=400, detail="userId required")
        return _authority().state(userId)

    @app.post("/api/game/state")
    def post_state(body: PlayerRequest):
        return _authority().state(body.user_id)

    @app.post("/api/game/start")
    def start_game(body: StartRequest):
        return _authority().start(body.user_id, body.mode, body.username)

    @app.post("/api/game/move")
    def move(body: MoveRequest):
        return _authority().move(
            body.user_id,
            (body.from_x, body.from_y),
            (body.to_x, body.to_y),
            body.mode,
        )

    @app.post("/api/game/end")
    def end_game(body: EndRequest):
        return _authority().end(body.user_id, body.mode, body.score)

    @app.post("/api/game/suspend")
    def suspend_game(body: PlayerRequest):
        return _authority().suspend(body.user_id)

    @app.get("/api/leaderboard")
    def leaderboard(limit: int = 10):
        return _authority().leaderboard(limit)

    return app


app = create_app()


def main(
    host: str = "127.0.0.1",
    port: int = 8000,
    snapshot_path: Optional[Path] = None,
    seed: Optional[int] = None,
):
    """Run the server."""
    authority = ServerAuthority(seed=seed, snapshot_path=snapshot_path)
    uvicorn.run(create_app(authority), host=host, port=port)


if __name__ == "__main__":
    main()
