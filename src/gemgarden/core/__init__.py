from .board import Board
from .cascade import CascadeResolver, CascadeResult, CascadeStep
from .config import EngineConfig, Mode
from .engine import MatchEngine
from .generator import BoardGenerator
from .matching import find_matches, find_runs
from .modes import ModeController, PlayerState
from .rewards import RewardCalculator, reward
from .session import Session, SessionStore
from .solvability import find_valid_swaps, has_valid_move

__all__ = [
    "Board",
    "BoardGenerator",
    "CascadeResolver",
    "CascadeResult",
    "CascadeStep",
    "EngineConfig",
    "MatchEngine",
    "Mode",
    "ModeController",
    "PlayerState",
    "RewardCalculator",
    "Session",
    "SessionStore",
    "find_matches",
    "find_runs",
    "find_valid_swaps",
    "has_valid_move",
    "reward",
]
