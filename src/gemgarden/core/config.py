"""
Configuration for the match-3 engine.

Defaults reproduce the live game-hub tuning. Any value can be overridden from a
JSON parameters file with ``EngineConfig.from_parameters_file``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import UnknownMode


class Mode(str, Enum):
    """Play modes. Each keeps its own saved session."""
    CLASSIC = "classic"
    TIMED = "timed"
    DROP = "drop"

    @classmethod
    def parse(cls, value: Any) -> Mode:
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value))
        except ValueError:
            raise UnknownMode(str(value)) from None


@dataclass(frozen=True)
class ModeRules:
    """Budget for one mode. Exactly one of moves/seconds is set."""
    moves: Optional[int] = None
    seconds: Optional[float] = None
    drop_tokens: int = 0

    @property
    def is_timed(self) -> bool:
        return self.seconds is not None


MODE_RULES: Dict[Mode, ModeRules] = {
    Mode.CLASSIC: ModeRules(moves=30),
    Mode.TIMED: ModeRules(seconds=90.0),
    Mode.DROP: ModeRules(moves=30, drop_tokens=3),
}


@dataclass
class RewardConfig:
    """Gold curve and drop-mode payouts."""
    # Flat reward once a run scores at least `base_ramp_score` points
    base_reward: int = 40
    base_ramp_score: int = 100

    # Losing or empty runs still pay something
    min_reward: int = 5

    # Progressive tiers above the first 1000 points
    tier_width: int = 1000
    tier_step: int = 100
    tier_rates_pct: Tuple[int, ...] = (5, 10, 20, 40)
    tier_rate_cap_pct: int = 200

    # Hard ceiling on a single payout
    max_reward: int = 400

    timed_multiplier: float = 1.5

    # Drop mode payouts per collected token subtype
    drop_gold: int = 50
    drop_seed_packs: int = 1
    drop_energy: int = 5
    drop_completion_bonus: int = 100


DEFAULT_REWARDS = RewardConfig()


@dataclass
class EconomyConfig:
    """Starting balances and energy regeneration for the in-memory economy."""
    energy_max: int = 20
    energy_start: int = 20
    energy_regen_interval: float = 5 * 60.0  # seconds per energy point
    gold_start: int = 100


DEFAULT_ECONOMY = EconomyConfig()


@dataclass
class EngineConfig:
    """Board shape, palette and mode tuning shared by client and server engines."""
    board_size: int = 8
    gem_types: Tuple[str, ...] = ("fire", "water", "earth", "air", "light", "dark")
    drop_types: Tuple[str, ...] = ("drop_gold", "drop_seeds", "drop_energy")

    min_run: int = 3
    points_per_cell: int = 10
    max_combo_multiplier: int = 5

    # Drop tokens are placed in the top `drop_rows` rows
    drop_rows: int = 2
    drop_board_attempts: int = 10
    reshuffle_attempts: int = 20

    energy_cost: int = 5

    modes: Dict[Mode, ModeRules] = field(default_factory=lambda: dict(MODE_RULES))
    rewards: RewardConfig = field(default_factory=RewardConfig)

    def rules(self, mode: Mode) -> ModeRules:
        return self.modes[Mode.parse(mode)]

    @classmethod
    def from_parameters_file(cls, filepath: str) -> EngineConfig:
        """
        Load overrides from a JSON parameters file.

        Expected format (every key optional):
        {
            "board_size": 8,
            "gem_types": ["fire", "water", ...],
            "energy_cost": 5,
            "modes": {"classic": {"moves": 30}, "timed": {"seconds": 90}},
            "rewards": {"base_reward": 40, "tier_rates_pct": [5, 10, 20, 40]}
        }
        """
        with open(filepath, 'r') as f:
            params = json.load(f)
        return cls.from_dict(params)

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> EngineConfig:
        config = cls()
        simple = {
            f.name for f in fields(cls) if f.name not in ("modes", "rewards")
        }
        overrides: Dict[str, Any] = {}
        for key, value in params.items():
            if key in simple:
                overrides[key] = tuple(value) if isinstance(value, list) else value
        config = replace(config, **overrides)

        if "modes" in params:
            modes = dict(config.modes)
            for name, rules in params["modes"].items():
                modes[Mode.parse(name)] = ModeRules(**rules)
            config.modes = modes

        if "rewards" in params:
            reward_overrides = {
                key: tuple(value) if isinstance(value, list) else value
                for key, value in params["rewards"].items()
            }
            config.rewards = replace(config.rewards, **reward_overrides)

        return config


DEFAULT_CONFIG = EngineConfig()
