"""
core/game — Voice-proximity game engine.

Converts a stream of frequency sets into an emotional state, a smoothed
energy value and a life/doom score. Pure and deterministic given the same
ticks and random seed. The caller owns the clock and drives ``tick()``.

Public API:
    Types:      EmotionalState, GamePhase, GameMode, ScoringModel, Target,
                SessionSnapshot
    Session:    core.game.session.GameSession
"""

from core.game.types import (
    EmotionalState,
    GameMode,
    GamePhase,
    ScoringModel,
    SessionSnapshot,
    Target,
)

__all__ = [
    "EmotionalState",
    "GameMode",
    "GamePhase",
    "ScoringModel",
    "SessionSnapshot",
    "Target",
]
