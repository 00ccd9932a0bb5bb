"""
Economy collaborator contract.

The match engine never touches balances directly: it spends energy when a
mode starts and credits a payout when a mode ends, through these two calls.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .config import DEFAULT_ECONOMY, EconomyConfig
from .errors import InsufficientResource
from .rewards import Payout

logger = logging.getLogger(__name__)


class Economy(ABC):
    """Owner of player energy, gold and seed packs."""

    @abstractmethod
    def spend_energy(self, player_id: str, amount: int) -> int:
        """
        Atomically decrement energy.

        Returns:
            Energy left after spending

        Raises:
            InsufficientResource: If the player has less than ``amount``
        """

    @abstractmethod
    def credit(self, player_id: str, payout: Payout) -> None:
        """Atomically add a payout to the player's balances."""

    def resources(self, player_id: str) -> Dict[str, Any]:
        return {}


class FreePlay(Economy):
    """No costs and no credits. Used by the predictive client and simulations."""

    def spend_energy(self, player_id: str, amount: int) -> int:
        return 0

    def credit(self, player_id: str, payout: Payout) -> None:
        pass


@dataclass
class Wallet:
    gold: int
    energy: int
    energy_max: int
    last_regen: float
    seed_packs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gold': self.gold,
            'energy': {'current': self.energy, 'max': self.energy_max},
            'seedPacks': self.seed_packs,
        }


class InMemoryEconomy(Economy):
    """
    Process-local wallets with lazy passive energy regeneration.

    Energy regenerates one point per ``energy_regen_interval`` seconds up to
    the cap, computed on access rather than by a background timer.
    """

    def __init__(
        self,
        config: Optional[EconomyConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or DEFAULT_ECONOMY
        self.clock = clock
        self.wallets: Dict[str, Wallet] = {}
        self._lock = threading.Lock()

    def _wallet(self, player_id: str) -> Wallet:
        wallet = self.wallets.get(player_id)
        if wallet is None:
            wallet = Wallet(
                gold=self.config.gold_start,
                energy=self.config.energy_start,
                energy_max=self.config.energy_max,
                last_regen=self.clock(),
            )
            self.wallets[player_id] = wallet
        self._regen(wallet)
        return wallet

    def _regen(self, wallet: Wallet):
        now = self.clock()
        if wallet.energy >= wallet.energy_max:
            wallet.last_regen = now
            return
        interval = self.config.energy_regen_interval
        elapsed = now - wallet.last_regen
        gained = int(elapsed // interval)
        if gained <= 0:
            return
        wallet.energy = min(wallet.energy_max, wallet.energy + gained)
        if wallet.energy < wallet.energy_max:
            # Keep the partial interval so regeneration stays on schedule
            wallet.last_regen = now - (elapsed % interval)
        else:
            wallet.last_regen = now

    def spend_energy(self, player_id: str, amount: int) -> int:
        with self._lock:
            wallet = self._wallet(player_id)
            if wallet.energy < amount:
                raise InsufficientResource(required=amount, current=wallet.energy)
            wallet.energy -= amount
            return wallet.energy

    def credit(self, player_id: str, payout: Payout) -> None:
        with self._lock:
            wallet = self._wallet(player_id)
            wallet.gold += payout.gold
            wallet.seed_packs += payout.seed_packs
            # Energy rewards may exceed the regeneration cap
            wallet.energy += payout.energy
        logger.info(
            "Credited %s: %d gold, %d seed packs, %d energy",
            player_id, payout.gold, payout.seed_packs, payout.energy,
        )

    def resources(self, player_id: str) -> Dict[str, Any]:
        with self._lock:
            return self._wallet(player_id).to_dict()

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                pid: {
                    'gold': w.gold,
                    'energy': w.energy,
                    'energyMax': w.energy_max,
                    'lastRegen': w.last_regen,
                    'seedPacks': w.seed_packs,
                }
                for pid, w in self.wallets.items()
            }

    def load(self, data: Dict[str, Any]):
        with self._lock:
            self.wallets = {
                pid: Wallet(
                    gold=int(w['gold']),
                    energy=int(w['energy']),
                    energy_max=int(w.get('energyMax', self.config.energy_max)),
                    last_regen=float(w.get('lastRegen', self.clock())),
                    seed_packs=int(w.get('seedPacks', 0)),
                )
                for pid, w in data.items()
            }
