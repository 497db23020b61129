"""Pydantic schemas for /pitch endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PitchEstimateRequest(BaseModel):
    samples: list[float] = Field(..., min_length=1, max_length=16384)
    sample_rate: int = Field(44100, ge=8000, le=192000)
    max_voices: int = Field(1, ge=1, le=5)
    magnitudes: list[float] | None = Field(
        None, max_length=16384, description="Optional normalised magnitude spectrum (0..1)"
    )


class PitchEstimateResponse(BaseModel):
    frequencies: list[float]
    notes: list[str]
    """Nearest note name per frequency."""
    voiced: bool
    rms: float
    sample_rate: int
