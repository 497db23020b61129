"""Tests for POST /pitch/estimate, /health and /metrics."""

from __future__ import annotations

from fastapi.testclient import TestClient


class TestPitchEstimate:
    def test_estimates_sine(self, api_client: TestClient, make_sine) -> None:
        resp = api_client.post(
            "/pitch/estimate",
            json={"samples": make_sine(220.0).tolist(), "sample_rate": 44100},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["voiced"] is True
        assert len(data["frequencies"]) == 1
        assert abs(data["frequencies"][0] - 220.0) < 2.0
        assert data["notes"] == ["A3"]
        assert data["sample_rate"] == 44100

    def test_other_sample_rate(self, api_client: TestClient, make_sine) -> None:
        samples = make_sine(330.0, sample_rate=16000, n_samples=1024).tolist()
        resp = api_client.post("/pitch/estimate", json={"samples": samples, "sample_rate": 16000})
        assert resp.status_code == 200
        data = resp.json()
        assert data["sample_rate"] == 16000
        assert abs(data["frequencies"][0] - 330.0) < 3.0

    def test_silence_is_unvoiced(self, api_client: TestClient) -> None:
        resp = api_client.post("/pitch/estimate", json={"samples": [0.0] * 2048})
        assert resp.status_code == 200
        data = resp.json()
        assert data["voiced"] is False
        assert data["frequencies"] == []
        assert data["notes"] == []

    def test_empty_samples_returns_422(self, api_client: TestClient) -> None:
        assert api_client.post("/pitch/estimate", json={"samples": []}).status_code == 422

    def test_too_many_voices_returns_422(self, api_client: TestClient) -> None:
        resp = api_client.post("/pitch/estimate", json={"samples": [0.0] * 64, "max_voices": 6})
        assert resp.status_code == 422


class TestServiceEndpoints:
    def test_health(self, api_client: TestClient) -> None:
        resp = api_client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_metrics_after_estimate(self, api_client: TestClient) -> None:
        api_client.post("/pitch/estimate", json={"samples": [0.0] * 256})
        resp = api_client.get("/metrics")
        assert resp.status_code == 200
        assert "vc_frames_analyzed_total" in resp.text
