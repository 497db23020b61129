"""
api/schemas/session.py — Pydantic models for the /sessions endpoints.

Snapshots are serialised field-for-field from ``core.game.types.SessionSnapshot``
so the renderer contract is the same over HTTP as in process.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from core.music_math import note_name_to_midi

_MAX_FRAME_SAMPLES = 16384


def _check_note_name(value: str) -> str:
    if note_name_to_midi(value) is None:
        raise ValueError(f"invalid note name {value!r}, expected e.g. 'A4' or 'C#3'")
    return value


class CueNoteIn(BaseModel):
    note: str = Field(..., description="Scientific pitch notation, e.g. 'G3'")
    duration_s: float = Field(..., gt=0, le=60.0)

    @field_validator("note")
    @classmethod
    def note_must_parse(cls, v: str) -> str:
        return _check_note_name(v)


class CreateSessionRequest(BaseModel):
    """POST /sessions — create and start a game."""

    mode: Literal["simple", "sequence"] = "sequence"
    preset: Literal["creature", "sequence"] | None = Field(
        None,
        description="Config preset. Defaults to 'creature' for simple mode, 'sequence' otherwise",
    )
    max_voices: int = Field(1, ge=1, le=5)
    target_note: str | None = Field(
        None, description="Simple mode only. Random target when omitted"
    )
    notes: list[CueNoteIn] | None = Field(
        None, description="Sequence mode only. Defaults to the preset's sequence"
    )
    sample_rate: int = Field(44100, ge=8000, le=192000)

    @field_validator("target_note")
    @classmethod
    def target_note_must_parse(cls, v: str | None) -> str | None:
        return None if v is None else _check_note_name(v)


class TickRequest(BaseModel):
    """POST /sessions/{id}/tick — advance one frame.

    Send either pre-computed ``frequencies`` or a raw ``samples`` frame to be
    estimated server side. Neither means silence.
    """

    frequencies: list[float] | None = Field(None, max_length=5)
    samples: list[float] | None = Field(None, min_length=1, max_length=_MAX_FRAME_SAMPLES)
    sample_rate: int | None = Field(None, ge=8000, le=192000)
    magnitudes: list[float] | None = Field(None, max_length=_MAX_FRAME_SAMPLES)
    dt_ms: float | None = Field(None, ge=0, le=60000)

    @model_validator(mode="after")
    def one_signal_source(self) -> TickRequest:
        if self.frequencies is not None and self.samples is not None:
            raise ValueError("send either frequencies or samples, not both")
        return self


class TargetOut(BaseModel):
    note_name: str
    frequency_hz: float
    midi: float
    duration_s: float | None = None


class SnapshotResponse(BaseModel):
    """Serialised SessionSnapshot."""

    session_id: str
    mode: str
    phase: str
    state: str
    scoring: str
    energy: float
    life: float | None
    doom: float | None
    doom_max: float | None
    score: float | None
    survival_time_s: float
    is_game_over: bool
    current_target: TargetOut | None
    targets: list[TargetOut]
    current_index: int
    countdown: int
    demo_index: int
    last_error: float | None
    frequencies: list[float]


class HistoryResponse(BaseModel):
    session_id: str
    maxlen: int
    entries: list[list[float]]
