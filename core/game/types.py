"""
core/game/types.py — Enums and frozen value objects for the voice game.

All types are frozen dataclasses or str-valued enums. Pure module with no I/O,
no imports from api/ or infrastructure/.

Hierarchy:
    SessionSnapshot
    ├── state: EmotionalState
    ├── phase: GamePhase
    ├── current_target: Target | None
    └── targets: tuple[Target, ...]   (sequence mode only)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EmotionalState(str, Enum):
    """Creature mood. Transitions follow the hysteresis rules in state_machine.py."""

    CALM = "CALM"
    UNSTABLE = "UNSTABLE"
    CHAOS = "CHAOS"


class GamePhase(str, Enum):
    """Lifecycle phase of a GameSession.

    Simple mode goes IDLE → PLAYING → GAME_OVER.
    Sequence mode goes IDLE → LISTEN → COUNTDOWN → PLAYING → GAME_OVER.
    """

    IDLE = "IDLE"
    LISTEN = "LISTEN"
    COUNTDOWN = "COUNTDOWN"
    PLAYING = "PLAYING"
    GAME_OVER = "GAME_OVER"


class ScoringModel(str, Enum):
    """How sustained off-pitch singing is penalised."""

    LIFE = "life"
    """Life pool starts full and drains while not CALM."""

    DOOM = "doom"
    """Doom meter fills while not CALM; holding CALM retargets and rewards."""


class GameMode(str, Enum):
    SIMPLE = "simple"
    SEQUENCE = "sequence"


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Target:
    """A note the singer should match.

    Invariants:
        frequency_hz > 0
        midi == 69 + 12·log2(frequency_hz / 440)
    """

    note_name: str
    """Scientific pitch notation, e.g. 'E4'."""

    frequency_hz: float

    midi: float
    """Fractional MIDI of frequency_hz. Integer-valued for named notes."""

    duration_s: float | None = None
    """Hold duration in sequence mode. None in simple mode."""


# ---------------------------------------------------------------------------
# Snapshot handed to renderers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of a GameSession's state after a tick.

    Renderers receive this instead of the live session so they cannot mutate
    engine internals. All sequences are tuples.
    """

    mode: GameMode
    phase: GamePhase
    state: EmotionalState
    scoring: ScoringModel

    energy: float
    """Smoothed proximity in [0, 1]. 1 = perfectly in tune."""

    life: float | None
    """Remaining life in [0, initial_life] (LIFE model), else None."""

    doom: float | None
    """Accumulated doom in [0, doom_max] (DOOM model), else None."""

    doom_max: float | None

    survival_time_s: float
    """Seconds spent in PLAYING, including grace-frozen ticks."""

    is_game_over: bool

    current_target: Target | None
    """Target being scored. None before start or with an empty sequence."""

    targets: tuple[Target, ...] = field(default_factory=tuple)
    """Full sequence in sequence mode. Empty tuple in simple mode."""

    current_index: int = 0
    """Index of current_target within targets (sequence mode)."""

    countdown: int = 0
    """Visible countdown number during COUNTDOWN, else 0."""

    demo_index: int = -1
    """Index of the note being demonstrated during LISTEN, else -1."""

    last_error: float | None = None
    """Most recent max semitone error used for a state decision."""

    frequencies: tuple[float, ...] = field(default_factory=tuple)
    """Valid frequencies from the latest tick."""

    @property
    def score(self) -> float | None:
        """The active scoring value: life or doom depending on the model."""
        return self.life if self.scoring == ScoringModel.LIFE else self.doom
