"""
core/game/scoring.py — Life and doom scoring policies.

Both policies are driven by the emotional state once per tick and integrate
over real time, so the outcome does not depend on the frame rate:

    LifeScore   1.0 ──drain while not CALM──▶ 0.0        game over at 0
    DoomScore   0.0 ──fill while not CALM───▶ doom_max   game over at max

A preset picks exactly one policy (``GameConfig.scoring``); ``make_score``
builds it. The state machine owns the instance and never inspects which
policy it holds.

Bounds are compared with TERMINAL_EPSILON so floating-point residue such as
a life of 1e-16 after many subtractions still ends the game.
"""

from __future__ import annotations

from core.config import GameConfig
from core.game.types import EmotionalState, ScoringModel

TERMINAL_EPSILON: float = 1e-9


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


class LifeScore:
    """Life pool that drains while the singer is off pitch.

    Args:
        initial_life: Starting (and maximum) life.
        unstable_drain_rate: Life lost per second in UNSTABLE.
        chaos_drain_rate: Life lost per second in CHAOS.
    """

    model = ScoringModel.LIFE

    def __init__(
        self,
        initial_life: float = 1.0,
        unstable_drain_rate: float = 0.05,
        chaos_drain_rate: float = 0.15,
    ) -> None:
        self._initial = initial_life
        self._rates = {
            EmotionalState.CALM: 0.0,
            EmotionalState.UNSTABLE: unstable_drain_rate,
            EmotionalState.CHAOS: chaos_drain_rate,
        }
        self.value = initial_life

    @property
    def maximum(self) -> float:
        return self._initial

    @property
    def is_terminal(self) -> bool:
        return self.value <= TERMINAL_EPSILON

    def apply(self, state: EmotionalState, dt_s: float) -> None:
        """Drain life for ``dt_s`` seconds spent in ``state``."""
        self.value = _clamp(self.value - self._rates[state] * dt_s, 0.0, self._initial)
        if self.is_terminal:
            self.value = 0.0

    def reward(self, amount: float) -> None:
        """Restore life, never above the initial pool."""
        self.value = _clamp(self.value + amount, 0.0, self._initial)

    def reset(self) -> None:
        self.value = self._initial


class DoomScore:
    """Doom meter that fills while the singer is off pitch.

    CHAOS adds one unit per second; UNSTABLE adds ``unstable_weight`` units per
    second. Rewards (earned by holding CALM) take doom away.
    """

    model = ScoringModel.DOOM

    def __init__(self, doom_max: float = 10.0, unstable_weight: float = 0.5) -> None:
        self._max = doom_max
        self._weights = {
            EmotionalState.CALM: 0.0,
            EmotionalState.UNSTABLE: unstable_weight,
            EmotionalState.CHAOS: 1.0,
        }
        self.value = 0.0

    @property
    def maximum(self) -> float:
        return self._max

    @property
    def is_terminal(self) -> bool:
        return self.value >= self._max - TERMINAL_EPSILON

    def apply(self, state: EmotionalState, dt_s: float) -> None:
        self.value = _clamp(self.value + self._weights[state] * dt_s, 0.0, self._max)
        if self.is_terminal:
            self.value = self._max

    def reward(self, amount: float) -> None:
        self.value = _clamp(self.value - amount, 0.0, self._max)

    def reset(self) -> None:
        self.value = 0.0


Score = LifeScore | DoomScore


def make_score(config: GameConfig) -> Score:
    """Build the scoring policy selected by ``config.scoring``."""
    if config.scoring == ScoringModel.DOOM:
        return DoomScore(config.doom_max, config.unstable_weight)
    return LifeScore(config.initial_life, config.unstable_drain_rate, config.chaos_drain_rate)
