"""
Unit tests for the reward curve and mode payouts.
"""
import pytest

from gemgarden.core.config import Mode, RewardConfig
from gemgarden.core.rewards import Payout, RewardCalculator, reward


class TestRewardCurve:
    """Tests for the score -> gold curve."""

    def test_known_points(self):
        """Test the anchor values of the curve."""
        assert reward(0) == 5
        assert reward(-50) == 5
        assert reward(100) == 40
        assert reward(999) == 40
        assert reward(1000) == 40
        assert reward(2500) == 78

    def test_low_scores_ramp(self):
        """Test scores below 100 ramp linearly with a floor of 5."""
        assert reward(1) == 5
        assert reward(50) == 20
        assert reward(75) == 30
        assert reward(99) == 39

    def test_monotonic(self):
        """Test reward never decreases as score grows."""
        previous = reward(0)
        for score in range(0, 20001, 7):
            current = reward(score)
            assert current >= previous, f"reward dropped at {score}"
            previous = current

    def test_capped(self):
        """Test huge scores never exceed the ceiling."""
        assert reward(99999) <= 400
        assert reward(10 ** 7) == 400

    def test_fractional_score(self):
        """Test non-integer scores (timed mode) are floored."""
        assert reward(150.9) == reward(150)

    def test_tier_rates(self):
        """Test tier rates double after the table and stop at the cap."""
        calc = RewardCalculator()
        assert [calc.tier_rate_pct(t) for t in range(1, 8)] == [5, 10, 20, 40, 80, 160, 200]

    def test_custom_config(self):
        """Test the curve follows its config."""
        calc = RewardCalculator(RewardConfig(base_reward=20, max_reward=50))
        assert calc.reward(100) == 20
        assert calc.reward(10 ** 6) == 50


class TestModeRewards:
    """Tests for per-mode payouts."""

    def test_classic_uses_curve(self):
        """Test classic mode pays reward(score)."""
        calc = RewardCalculator()
        assert calc.mode_reward(Mode.CLASSIC, 2500) == Payout(gold=78)

    def test_timed_multiplier(self):
        """Test timed mode pays reward(score * 1.5)."""
        calc = RewardCalculator()
        assert calc.mode_reward(Mode.TIMED, 2000).gold == reward(3000)
        assert calc.mode_reward("timed", 60).gold == reward(90)

    def test_drop_components(self):
        """Test each collected token pays its own component."""
        calc = RewardCalculator()
        payout = calc.mode_reward(Mode.DROP, 1234, ["drop_gold", "drop_seeds"])

        assert payout.gold == 50
        assert payout.seed_packs == 1
        assert payout.energy == 0
        assert payout.completion_bonus == 0

    def test_drop_completion_bonus(self):
        """Test collecting every kind adds the completion bonus."""
        calc = RewardCalculator()
        payout = calc.drop_reward(["drop_energy", "drop_gold", "drop_seeds"])

        assert payout == Payout(gold=150, seed_packs=1, energy=5, completion_bonus=100)
        assert payout.to_dict() == {
            'gold': 150, 'seedPacks': 1, 'energy': 5, 'completionBonus': 100,
        }

    def test_drop_nothing_collected(self):
        """Test an empty drop run still pays the floor."""
        assert RewardCalculator().drop_reward([]) == Payout(gold=5)

    def test_unknown_mode(self):
        """Test unknown mode names are rejected."""
        with pytest.raises(ValueError):
            RewardCalculator().mode_reward("zen", 100)
