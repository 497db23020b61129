"""Tests for /sessions endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from infrastructure.metrics import session_ticks_total


def _create(client: TestClient, **body) -> dict:
    resp = client.post("/sessions", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _ticks_counted() -> float:
    return sum(
        sample.value
        for metric in session_ticks_total.collect()
        for sample in metric.samples
        if sample.name == "vc_session_ticks_total"
    )


class TestCreateSession:
    def test_default_is_sequence_in_listen(self, api_client: TestClient) -> None:
        data = _create(api_client)
        assert data["mode"] == "sequence"
        assert data["phase"] == "LISTEN"
        assert data["scoring"] == "life"
        assert [t["note_name"] for t in data["targets"]] == ["G3", "C4", "D4", "E4", "C4"]
        assert data["demo_index"] == 0

    def test_simple_with_target_note(self, api_client: TestClient) -> None:
        data = _create(api_client, mode="simple", target_note="A4")
        assert data["phase"] == "PLAYING"
        assert data["scoring"] == "doom"
        assert data["current_target"]["note_name"] == "A4"
        assert data["current_target"]["frequency_hz"] == 440.0
        assert data["doom"] == 0.0

    def test_simple_with_life_preset(self, api_client: TestClient) -> None:
        data = _create(api_client, mode="simple", preset="sequence", target_note="C4")
        assert data["scoring"] == "life"
        assert data["life"] == 1.0

    def test_custom_notes(self, api_client: TestClient) -> None:
        data = _create(api_client, notes=[{"note": "A4", "duration_s": 0.5}])
        assert [t["note_name"] for t in data["targets"]] == ["A4"]

    def test_session_is_stored(self, api_client: TestClient) -> None:
        data = _create(api_client)
        assert api_client._store.get(data["session_id"]) is not None  # type: ignore[attr-defined]

    def test_creation_is_not_counted_as_tick(self, api_client: TestClient) -> None:
        before = _ticks_counted()
        sid = _create(api_client)["session_id"]
        assert _ticks_counted() == before
        api_client.post(f"/sessions/{sid}/tick", json={"dt_ms": 16})
        assert _ticks_counted() == before + 1

    def test_invalid_target_note_returns_422(self, api_client: TestClient) -> None:
        resp = api_client.post("/sessions", json={"mode": "simple", "target_note": "H9"})
        assert resp.status_code == 422

    def test_too_many_voices_returns_422(self, api_client: TestClient) -> None:
        resp = api_client.post("/sessions", json={"max_voices": 6})
        assert resp.status_code == 422

    def test_unknown_mode_returns_422(self, api_client: TestClient) -> None:
        resp = api_client.post("/sessions", json={"mode": "karaoke"})
        assert resp.status_code == 422


class TestGetSession:
    def test_get_existing(self, api_client: TestClient) -> None:
        created = _create(api_client)
        resp = api_client.get(f"/sessions/{created['session_id']}")
        assert resp.status_code == 200
        assert resp.json()["phase"] == "LISTEN"

    def test_get_missing_returns_404(self, api_client: TestClient) -> None:
        assert api_client.get("/sessions/nope").status_code == 404


class TestTickEndpoint:
    def test_tick_with_frequencies(self, api_client: TestClient) -> None:
        sid = _create(api_client, mode="simple", preset="sequence", target_note="A4")["session_id"]
        resp = api_client.post(f"/sessions/{sid}/tick", json={"frequencies": [440.0], "dt_ms": 100})
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "CALM"
        assert data["frequencies"] == [440.0]
        assert data["survival_time_s"] == 0.1

    def test_tick_with_samples(self, api_client: TestClient, make_sine) -> None:
        sid = _create(api_client, mode="simple", preset="sequence", target_note="A3")["session_id"]
        samples = make_sine(220.0).tolist()
        resp = api_client.post(
            f"/sessions/{sid}/tick",
            json={"samples": samples, "sample_rate": 44100, "dt_ms": 16},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["frequencies"]) == 1
        assert abs(data["frequencies"][0] - 220.0) < 2.0
        assert data["state"] == "CALM"

    def test_samples_ignored_outside_playing(self, api_client: TestClient, make_sine) -> None:
        sid = _create(api_client)["session_id"]
        resp = api_client.post(
            f"/sessions/{sid}/tick", json={"samples": make_sine(220.0).tolist(), "dt_ms": 16}
        )
        assert resp.status_code == 200
        assert resp.json()["frequencies"] == []

    def test_sequence_advances_through_phases(self, api_client: TestClient) -> None:
        sid = _create(api_client)["session_id"]
        data = api_client.post(f"/sessions/{sid}/tick", json={"dt_ms": 4200}).json()
        assert data["phase"] == "COUNTDOWN"
        data = api_client.post(f"/sessions/{sid}/tick", json={"dt_ms": 3000}).json()
        assert data["phase"] == "PLAYING"
        assert data["current_target"]["note_name"] == "G3"

    def test_both_sources_returns_422(self, api_client: TestClient) -> None:
        sid = _create(api_client)["session_id"]
        resp = api_client.post(
            f"/sessions/{sid}/tick", json={"frequencies": [440.0], "samples": [0.0, 0.1]}
        )
        assert resp.status_code == 422

    def test_negative_dt_returns_422(self, api_client: TestClient) -> None:
        sid = _create(api_client)["session_id"]
        resp = api_client.post(f"/sessions/{sid}/tick", json={"dt_ms": -5})
        assert resp.status_code == 422

    def test_tick_missing_returns_404(self, api_client: TestClient) -> None:
        assert api_client.post("/sessions/nope/tick", json={}).status_code == 404

    def test_game_over_reported(self, api_client: TestClient) -> None:
        sid = _create(api_client, mode="simple", preset="sequence", target_note="A4")["session_id"]
        data = api_client.post(
            f"/sessions/{sid}/tick", json={"frequencies": [880.0], "dt_ms": 7000}
        ).json()
        assert data["is_game_over"] is True
        assert data["phase"] == "GAME_OVER"
        assert data["life"] == 0.0


class TestHistoryResetDelete:
    def test_history_lists_played_frames(self, api_client: TestClient) -> None:
        sid = _create(api_client, mode="simple", target_note="A4")["session_id"]
        for f in (430.0, 440.0):
            api_client.post(f"/sessions/{sid}/tick", json={"frequencies": [f], "dt_ms": 16})
        data = api_client.get(f"/sessions/{sid}/history").json()
        assert data["maxlen"] == 200
        assert data["entries"] == [[430.0], [440.0]]

    def test_reset_restarts_game(self, api_client: TestClient) -> None:
        sid = _create(api_client, mode="simple", preset="sequence", target_note="A4")["session_id"]
        api_client.post(f"/sessions/{sid}/tick", json={"frequencies": [880.0], "dt_ms": 7000})
        data = api_client.post(f"/sessions/{sid}/reset").json()
        assert data["phase"] == "PLAYING"
        assert data["life"] == 1.0
        assert data["current_target"]["note_name"] == "A4"

    def test_delete_returns_204(self, api_client: TestClient) -> None:
        sid = _create(api_client)["session_id"]
        assert api_client.delete(f"/sessions/{sid}").status_code == 204
        assert api_client.get(f"/sessions/{sid}").status_code == 404

    def test_delete_missing_returns_404(self, api_client: TestClient) -> None:
        assert api_client.delete("/sessions/nope").status_code == 404
