"""Prometheus metrics for the voice creature service.

Counts what the game sees, not just HTTP traffic: how many frames carried a
voice, which detectors misbehave, how often the creature changes mood and how
games end.

Metrics:
    vc_frames_analyzed_total       Counter of analysed frames by result (voiced/unvoiced)
    vc_detector_failures_total     Counter of detector exceptions by detector (yin/amdf)
    vc_session_ticks_total         Counter of session ticks by phase
    vc_state_transitions_total     Counter of emotional state changes (from_state → to_state)
    vc_game_over_total             Counter of finished games by scoring model
    vc_pitch_estimate_seconds      Histogram of single-frame estimation latency

All metrics live on a private registry so tests and multiple app instances
never collide with the default global one.

Usage::

    from infrastructure.metrics import LatencyTimer, record_frame_analyzed

    with LatencyTimer() as t:
        estimate = estimator.analyze(frame)
    record_frame_analyzed(voiced=estimate.is_voiced, latency_seconds=t.elapsed)
"""

from __future__ import annotations

import logging
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

_REGISTRY = CollectorRegistry()

frames_analyzed_total = Counter(
    "vc_frames_analyzed_total",
    "Audio frames analysed by the pitch estimator, by result",
    ["result"],
    registry=_REGISTRY,
)

detector_failures_total = Counter(
    "vc_detector_failures_total",
    "Detector exceptions absorbed as no-detection",
    ["detector"],
    registry=_REGISTRY,
)

session_ticks_total = Counter(
    "vc_session_ticks_total",
    "Game session ticks by phase after the tick",
    ["phase"],
    registry=_REGISTRY,
)

state_transitions_total = Counter(
    "vc_state_transitions_total",
    "Emotional state changes",
    ["from_state", "to_state"],
    registry=_REGISTRY,
)

game_over_total = Counter(
    "vc_game_over_total",
    "Games that reached GAME_OVER, by scoring model",
    ["scoring"],
    registry=_REGISTRY,
)

pitch_estimate_seconds = Histogram(
    "vc_pitch_estimate_seconds",
    "Single-frame pitch estimation latency in seconds",
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1],
    registry=_REGISTRY,
)

logger.debug("Prometheus metrics registry initialized")


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def record_frame_analyzed(
    *,
    voiced: bool,
    latency_seconds: float | None = None,
    failed_detectors: tuple[str, ...] = (),
) -> None:
    """Record one estimator run.

    Args:
        voiced: True if at least one frequency was returned.
        latency_seconds: Wall-clock estimation time, if measured.
        failed_detectors: Detector names that raised during the run.
    """
    frames_analyzed_total.labels(result="voiced" if voiced else "unvoiced").inc()
    if latency_seconds is not None:
        pitch_estimate_seconds.observe(latency_seconds)
    for detector in failed_detectors:
        detector_failures_total.labels(detector=detector).inc()


def record_tick(phase: str) -> None:
    """Increment the tick counter for the phase the session ended the tick in."""
    session_ticks_total.labels(phase=phase).inc()


def record_state_transition(from_state: str, to_state: str) -> None:
    """Increment the transition counter. Same-state calls are ignored."""
    if from_state != to_state:
        state_transitions_total.labels(from_state=from_state, to_state=to_state).inc()


def record_game_over(scoring: str) -> None:
    """Increment the finished-games counter.

    Args:
        scoring: Scoring model value, "life" or "doom".
    """
    game_over_total.labels(scoring=scoring).inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            estimate = estimator.analyze(frame)
        record_frame_analyzed(voiced=estimate.is_voiced, latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        self.elapsed = time.perf_counter() - self._start
