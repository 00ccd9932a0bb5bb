"""
Reward calculation for finished match-3 runs.

Gold curve:
- score <= 0 pays the floor (5 gold)
- 0 < score < 1000 ramps linearly to the 40 gold base, reached at 100 points
- every 1000-wide tier above that adds ``steps * rate * base`` gold, where
  steps are whole 100-point increments inside the tier and the rate runs
  5%, 10%, 20%, 40%, then doubles per tier, capped at 200%
- a single payout never exceeds 400 gold

Drop mode does not use the curve: each collected drop token pays its own
component, plus a completion bonus when all of them were collected.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .config import DEFAULT_REWARDS, Mode, RewardConfig


@dataclass
class Payout:
    """What a finished run credits to the economy."""
    gold: int
    seed_packs: int = 0
    energy: int = 0
    completion_bonus: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gold': self.gold,
            'seedPacks': self.seed_packs,
            'energy': self.energy,
            'completionBonus': self.completion_bonus,
        }


class RewardCalculator:
    """Turns a final score (or collected drop tokens) into a payout."""

    def __init__(self, config: Optional[RewardConfig] = None):
        self.config = config or DEFAULT_REWARDS

    def tier_rate_pct(self, tier: int) -> int:
        """Rate (percent of base) for 1-based tier ``tier``."""
        rates = self.config.tier_rates_pct
        if tier <= len(rates):
            rate = rates[tier - 1]
        else:
            rate = rates[-1] * 2 ** (tier - len(rates))
        return min(rate, self.config.tier_rate_cap_pct)

    def reward(self, score: float) -> int:
        """
        Gold for a classic-curve score.

        Non-decreasing in ``score``; reward(0) == 5, reward(100) == 40,
        reward(2500) == 78, never above 400.
        """
        cfg = self.config
        score = int(math.floor(score))
        if score <= 0:
            return cfg.min_reward

        if score < cfg.tier_width:
            ramp = cfg.base_reward * min(score, cfg.base_ramp_score) // cfg.base_ramp_score
            return max(cfg.min_reward, ramp)

        gold = cfg.base_reward
        tier = 1
        while tier * cfg.tier_width <= score:
            tier_start = tier * cfg.tier_width
            tier_end = tier_start + cfg.tier_width - 1
            steps = (min(score, tier_end) - tier_start) // cfg.tier_step
            gold += steps * self.tier_rate_pct(tier) * cfg.base_reward // 100
            if gold >= cfg.max_reward:
                break
            tier += 1

        return min(gold, cfg.max_reward)

    def drop_reward(self, collected: Iterable[str], total_tokens: int = 3) -> Payout:
        """Structured payout from the drop tokens collected in a drop-mode run."""
        cfg = self.config
        collected = list(collected)
        kinds = set(collected)

        payout = Payout(gold=0)
        for kind in collected:
            if kind == "drop_gold":
                payout.gold += cfg.drop_gold
            elif kind == "drop_seeds":
                payout.seed_packs += cfg.drop_seed_packs
            elif kind == "drop_energy":
                payout.energy += cfg.drop_energy

        if total_tokens and len(kinds) >= total_tokens:
            payout.completion_bonus = cfg.drop_completion_bonus
            payout.gold += cfg.drop_completion_bonus

        if payout.gold == 0 and payout.seed_packs == 0 and payout.energy == 0:
            payout.gold = cfg.min_reward

        return payout

    def mode_reward(
        self,
        mode: Mode,
        score: int,
        collected: Iterable[str] = (),
        total_tokens: int = 3,
    ) -> Payout:
        """Payout for a finished run of ``mode``."""
        mode = Mode.parse(mode)
        if mode is Mode.DROP:
            return self.drop_reward(collected, total_tokens)
        if mode is Mode.TIMED:
            return Payout(gold=self.reward(score * self.config.timed_multiplier))
        return Payout(gold=self.reward(score))


_DEFAULT_CALCULATOR = RewardCalculator()


def reward(score: float) -> int:
    """Gold for ``score`` with the default curve."""
    return _DEFAULT_CALCULATOR.reward(score)
