"""
api/routes/sessions.py — Game session endpoints.

Endpoints:
    POST   /sessions                 — Create and start a game
    GET    /sessions/{id}            — Current snapshot
    POST   /sessions/{id}/tick       — Advance one frame (frequencies or raw samples)
    GET    /sessions/{id}/history    — Recent frequency sets for the pitch graph
    POST   /sessions/{id}/reset      — Restart in the same mode
    DELETE /sessions/{id}            — Discard

The server never plays audio: reference cues are the client's job, so
sessions are created without a cue player.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from api.deps import ManagedSession, SessionStore, get_pitch_estimator, get_session_store
from api.schemas.session import (
    CreateSessionRequest,
    HistoryResponse,
    SnapshotResponse,
    TargetOut,
    TickRequest,
)
from core.audio.pitch import PitchEstimator
from core.audio.types import CueNote
from core.config import get_preset
from core.game.session import GameSession
from core.game.types import GamePhase, SessionSnapshot, Target
from core.music_math import note_name_to_midi
from infrastructure.metrics import (
    LatencyTimer,
    record_frame_analyzed,
    record_game_over,
    record_state_transition,
    record_tick,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sessions", tags=["sessions"])

Store = Annotated[SessionStore, Depends(get_session_store)]
Estimator = Annotated[PitchEstimator, Depends(get_pitch_estimator)]


def _target_out(target: Target | None) -> TargetOut | None:
    if target is None:
        return None
    return TargetOut(
        note_name=target.note_name,
        frequency_hz=target.frequency_hz,
        midi=target.midi,
        duration_s=target.duration_s,
    )


def _to_response(session_id: str, snap: SessionSnapshot) -> SnapshotResponse:
    """Convert a SessionSnapshot to a SnapshotResponse."""
    return SnapshotResponse(
        session_id=session_id,
        mode=snap.mode.value,
        phase=snap.phase.value,
        state=snap.state.value,
        scoring=snap.scoring.value,
        energy=snap.energy,
        life=snap.life,
        doom=snap.doom,
        doom_max=snap.doom_max,
        score=snap.score,
        survival_time_s=snap.survival_time_s,
        is_game_over=snap.is_game_over,
        current_target=_target_out(snap.current_target),
        targets=[t for t in (_target_out(t) for t in snap.targets) if t is not None],
        current_index=snap.current_index,
        countdown=snap.countdown,
        demo_index=snap.demo_index,
        last_error=snap.last_error,
        frequencies=list(snap.frequencies),
    )


def _require(store: SessionStore, session_id: str) -> ManagedSession:
    managed = store.get(session_id)
    if managed is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id!r}")
    return managed


# ---------------------------------------------------------------------------
# POST /sessions
# ---------------------------------------------------------------------------


@router.post("", response_model=SnapshotResponse, status_code=201)
def create_session(
    body: CreateSessionRequest,
    store: Store,
    estimator: Estimator,
) -> SnapshotResponse:
    """Create a session and start it in the requested mode."""
    preset = body.preset or ("creature" if body.mode == "simple" else "sequence")
    try:
        config = replace(get_preset(preset), max_voices=body.max_voices)
        session_estimator = estimator.configure(body.sample_rate)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    session = GameSession(config)
    if body.mode == "simple":
        target_midi = note_name_to_midi(body.target_note) if body.target_note else None
        snap = session.start_game(target_midi)
    else:
        notes = (
            [CueNote(n.note, n.duration_s) for n in body.notes] if body.notes is not None else None
        )
        snap = session.start_sequence_game(notes)

    managed = store.add(session, session_estimator)
    return _to_response(managed.session_id, snap)


# ---------------------------------------------------------------------------
# GET /sessions/{id}
# ---------------------------------------------------------------------------


@router.get("/{session_id}", response_model=SnapshotResponse)
def get_session(session_id: str, store: Store) -> SnapshotResponse:
    """Return the current snapshot without advancing time."""
    managed = _require(store, session_id)
    with managed.lock:
        snap = managed.session.snapshot()
    return _to_response(session_id, snap)


# ---------------------------------------------------------------------------
# POST /sessions/{id}/tick
# ---------------------------------------------------------------------------


@router.post("/{session_id}/tick", response_model=SnapshotResponse)
def tick_session(session_id: str, body: TickRequest, store: Store) -> SnapshotResponse:
    """Advance the session by one frame.

    Raw samples are only analysed while the session is PLAYING; in the other
    phases the tick just moves the clock.

    Raises:
        404: unknown session.
        422: invalid dt or sample rate.
    """
    managed = _require(store, session_id)
    with managed.lock:
        session = managed.session
        before = session.snapshot()

        frequencies: tuple[float, ...] | list[float] = body.frequencies or ()
        if body.samples is not None and before.phase == GamePhase.PLAYING:
            try:
                if body.sample_rate is not None:
                    managed.estimator = managed.estimator.configure(body.sample_rate)
            except ValueError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from exc
            with LatencyTimer() as t:
                estimate = managed.estimator.analyze(
                    body.samples,
                    max_voices=session.config.max_voices,
                    magnitudes=body.magnitudes,
                )
            record_frame_analyzed(
                voiced=estimate.is_voiced,
                latency_seconds=t.elapsed,
                failed_detectors=estimate.failed_detectors,
            )
            frequencies = estimate.frequencies

        try:
            snap = session.tick(frequencies, body.dt_ms)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    record_tick(snap.phase.value)
    record_state_transition(before.state.value, snap.state.value)
    if snap.is_game_over and not before.is_game_over:
        record_game_over(snap.scoring.value)
    return _to_response(session_id, snap)


# ---------------------------------------------------------------------------
# GET /sessions/{id}/history
# ---------------------------------------------------------------------------


@router.get("/{session_id}/history", response_model=HistoryResponse)
def get_history(session_id: str, store: Store) -> HistoryResponse:
    """Recent frequency sets, oldest first."""
    managed = _require(store, session_id)
    with managed.lock:
        entries = managed.session.frequency_history()
        maxlen = managed.session.config.history_length
    return HistoryResponse(
        session_id=session_id,
        maxlen=maxlen,
        entries=[list(entry) for entry in entries],
    )


# ---------------------------------------------------------------------------
# POST /sessions/{id}/reset, DELETE /sessions/{id}
# ---------------------------------------------------------------------------


@router.post("/{session_id}/reset", response_model=SnapshotResponse)
def reset_session(session_id: str, store: Store) -> SnapshotResponse:
    """Restart the game in its last mode."""
    managed = _require(store, session_id)
    with managed.lock:
        snap = managed.session.reset_game()
    return _to_response(session_id, snap)


@router.delete("/{session_id}", status_code=204)
def delete_session(session_id: str, store: Store) -> None:
    """Discard a session."""
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id!r}")
