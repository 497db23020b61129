"""
api/routes/pitch.py — Stateless pitch estimation.

Endpoints:
    POST /pitch/estimate  — Estimate 0..N voice frequencies of one frame

Useful for calibrating a microphone or debugging detection without a game.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_pitch_estimator
from api.schemas.pitch import PitchEstimateRequest, PitchEstimateResponse
from core.audio.pitch import PitchEstimator
from core.music_math import hz_to_note_name
from infrastructure.metrics import LatencyTimer, record_frame_analyzed

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/pitch", tags=["pitch"])

Estimator = Annotated[PitchEstimator, Depends(get_pitch_estimator)]


@router.post("/estimate", response_model=PitchEstimateResponse)
def estimate_pitch(body: PitchEstimateRequest, estimator: Estimator) -> PitchEstimateResponse:
    """Run the estimator on one frame.

    Raises:
        422: sample rate incompatible with the detector range.
    """
    try:
        estimator = estimator.configure(body.sample_rate)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    with LatencyTimer() as t:
        estimate = estimator.analyze(
            body.samples,
            max_voices=body.max_voices,
            magnitudes=body.magnitudes,
        )
    record_frame_analyzed(
        voiced=estimate.is_voiced,
        latency_seconds=t.elapsed,
        failed_detectors=estimate.failed_detectors,
    )
    logger.debug("Estimated %s at %d Hz", estimate.frequencies, estimate.sample_rate)

    return PitchEstimateResponse(
        frequencies=list(estimate.frequencies),
        notes=[hz_to_note_name(f) or "?" for f in estimate.frequencies],
        voiced=estimate.is_voiced,
        rms=estimate.rms,
        sample_rate=estimate.sample_rate,
    )
