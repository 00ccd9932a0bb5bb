"""
Demo script: random games in every mode and the rewards they earn.
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from gemgarden.core import MatchEngine, Mode, reward
from gemgarden.core.modes import play_random_game


def demo_board():
    """Show a freshly generated drop-mode board."""
    print("=" * 60)
    print("DROP BOARD")
    print("=" * 60)

    engine = MatchEngine(seed=42, name="demo")
    print(engine.new_board(Mode.DROP))


def demo_reward_curve():
    """Print the gold reward for a range of scores."""
    print("\n" + "=" * 60)
    print("REWARD CURVE")
    print("=" * 60)

    for score in (0, 50, 100, 500, 999, 1000, 2500, 5000, 10000, 50000):
        print(f"  {score:>6} points -> {reward(score):>4} gold")


def demo_modes(n_games=20):
    """Play random games per mode and summarize scores and payouts."""
    print("\n" + "=" * 60)
    print(f"RANDOM PLAY ({n_games} games per mode)")
    print("=" * 60)

    print(f"\n{'Mode':<10} {'Mean':>8} {'Max':>8} {'Min':>8} {'Gold':>8}")
    print("-" * 46)
    for mode in Mode:
        scores = []
        gold = []
        for i in range(n_games):
            # Timed runs are capped at 60 swaps here
            settlement = play_random_game(mode, seed=i, max_moves=60)
            scores.append(settlement.score)
            gold.append(settlement.gold_reward)
        print(f"{mode.value:<10} {np.mean(scores):>8.0f} {np.max(scores):>8.0f} "
              f"{np.min(scores):>8.0f} {np.mean(gold):>8.1f}")


if __name__ == "__main__":
    print("Gem Garden Match-3 - Demo")

    demo_board()
    demo_reward_curve()
    demo_modes()

    print("\n" + "=" * 60)
    print("Demo complete!")
