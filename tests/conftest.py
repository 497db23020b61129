"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat signal-generation or client-override boilerplate.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import numpy as np
import pytest
from fastapi.testclient import TestClient

from api.deps import SessionStore, get_session_store
from api.main import app

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SAMPLE_RATE: int = 44100
FRAME_SIZE: int = 2048


# ---------------------------------------------------------------------------
# Synthetic signals
# ---------------------------------------------------------------------------


def _sine(
    frequencies: float | tuple[float, ...],
    sample_rate: int = SAMPLE_RATE,
    n_samples: int = FRAME_SIZE,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Sum of equal-amplitude sines, normalised to ``amplitude`` peak per voice."""
    if isinstance(frequencies, (int, float)):
        frequencies = (float(frequencies),)
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    frame = np.zeros(n_samples, dtype=np.float64)
    for f in frequencies:
        frame += amplitude * np.sin(2.0 * np.pi * f * t)
    return frame / max(len(frequencies), 1)


@pytest.fixture()
def make_sine() -> Callable[..., np.ndarray]:
    """Factory for synthetic voice frames: ``make_sine(220.0)`` or ``make_sine((220.0, 330.0))``."""
    return _sine


# ---------------------------------------------------------------------------
# FastAPI test client fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def session_store() -> SessionStore:
    """Fresh in-memory store, isolated from the process singleton."""
    return SessionStore()


@pytest.fixture()
def api_client(session_store: SessionStore) -> Iterator[TestClient]:
    """FastAPI ``TestClient`` with the session store overridden.

    The store is accessible as ``client._store``.
    """
    app.dependency_overrides[get_session_store] = lambda: session_store
    with TestClient(app) as c:
        c._store = session_store  # type: ignore[attr-defined]
        yield c
    app.dependency_overrides.clear()
