"""Tests for the HTTP routes."""

import time

import pytest
from fastapi.testclient import TestClient

from backend.main import app

SIM = "/api/v1/simulation"
CTRL = "/api/v1/controls"


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sim_id(client):
    resp = client.post(f"{SIM}/start", json={"realtime_factor": 100.0, "noise_seed": 42})
    assert resp.status_code == 200
    sid = resp.json()["id"]
    yield sid
    client.post(f"{SIM}/{sid}/stop")


class TestSimulationRoutes:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_state(self, client, sim_id):
        time.sleep(0.1)
        resp = client.get(f"{SIM}/{sim_id}/state")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "running"
        assert body["simulation_time"] > 0
        assert set(body["loop_modes"]) == {"temperature", "power", "efficiency"}

    def test_unknown_simulation(self, client):
        resp = client.get(f"{SIM}/00000000-0000-0000-0000-000000000000/state")
        assert resp.status_code == 404

    def test_pause_resume(self, client, sim_id):
        assert client.post(f"{SIM}/{sim_id}/pause").json()["status"] == "paused"
        assert client.post(f"{SIM}/{sim_id}/pause").status_code == 404
        assert client.post(f"{SIM}/{sim_id}/resume").json()["status"] == "running"

    def test_emergency_and_speed(self, client, sim_id):
        assert client.post(f"{SIM}/{sim_id}/emergency").json()["emergency_mode"] is True
        resp = client.post(f"{SIM}/{sim_id}/speed", json={"simulation_speed": 5.0})
        assert resp.json()["simulation_speed"] == 5.0
        assert client.post(f"{SIM}/{sim_id}/speed", json={"simulation_speed": 0}).status_code == 422
        state = client.get(f"{SIM}/{sim_id}/state").json()
        assert state["emergency_mode"] is True
        assert state["simulation_speed"] == 5.0

    def test_reset(self, client, sim_id):
        time.sleep(0.1)
        assert client.post(f"{SIM}/{sim_id}/reset").status_code == 200

    def test_list(self, client, sim_id):
        body = client.get(f"{SIM}/list").json()
        assert sim_id in [s["id"] for s in body["simulations"]]


class TestControlRoutes:
    def test_manual(self, client, sim_id):
        resp = client.post(f"{CTRL}/{sim_id}/manual", json={"load": 50.0})
        assert resp.status_code == 200
        assert resp.json()["applied"] == {"load": 50.0}
        assert client.post(f"{CTRL}/{sim_id}/manual", json={"load": 150.0}).status_code == 422

    def test_auto_and_cascade_exclusion(self, client, sim_id):
        resp = client.post(f"{CTRL}/{sim_id}/auto", json={"loop": "temperature", "enabled": True})
        assert resp.json()["loop_modes"]["temperature"] == "auto_pid"
        resp = client.post(f"{CTRL}/{sim_id}/cascade", json={"enabled": True})
        assert resp.json()["loop_modes"]["temperature"] == "cascade"
        resp = client.post(f"{CTRL}/{sim_id}/cascade/type", json={"type": "power-fuel"})
        assert resp.json()["loop_modes"]["power"] == "cascade"

    def test_refused_during_emergency(self, client, sim_id):
        client.post(f"{SIM}/{sim_id}/emergency")
        resp = client.post(f"{CTRL}/{sim_id}/auto", json={"loop": "power", "enabled": True})
        assert resp.status_code == 409
        assert client.post(f"{CTRL}/{sim_id}/cascade", json={"enabled": True}).status_code == 409
        assert client.post(f"{CTRL}/{sim_id}/autotune", json={"loop": "power"}).status_code == 409

    def test_pid_parameters(self, client, sim_id):
        resp = client.post(f"{CTRL}/{sim_id}/pid", json={"loop": "efficiency", "kp": 4.0})
        assert resp.json() == {"kp": 4.0, "ki": 0.15, "kd": 0.8}
        assert client.get(f"{CTRL}/{sim_id}/pid").json()["efficiency"]["kp"] == 4.0
        bad = client.post(f"{CTRL}/{sim_id}/pid", json={"loop": "pressure", "kp": 1.0})
        assert bad.status_code == 422

    def test_cascade_setpoint_and_parameters(self, client, sim_id):
        resp = client.post(f"{CTRL}/{sim_id}/cascade/setpoint", json={"setpoint": 70.0})
        assert resp.json()["primary_setpoint"] == 70.0
        resp = client.post(
            f"{CTRL}/{sim_id}/cascade/parameters",
            json={"controller": "secondary", "ki": 0.2},
        )
        assert resp.json()["secondary"] == {"kp": 3.0, "ki": 0.2, "kd": 0.5}
        assert client.get(f"{CTRL}/{sim_id}/cascade/parameters").json()["primary"]["kp"] == 1.5

    def test_autotune(self, client, sim_id):
        time.sleep(0.05)
        resp = client.post(f"{CTRL}/{sim_id}/autotune", json={"loop": "temperature"})
        assert resp.status_code == 200
        assert resp.json()["phase"] == "waiting"
        assert resp.json()["loop"] == "temperature"


class TestWebSocket:
    def test_stream_sends_snapshot(self, client, sim_id):
        with client.websocket_connect(f"/api/v1/ws/{sim_id}") as ws:
            frame = ws.receive_json()
            client.post(f"{SIM}/{sim_id}/stop")
            last = ws.receive_json()
            while "event" not in last:
                last = ws.receive_json()
        assert last == {"event": "stopped"}
        assert frame["simulation_id"] == sim_id
        assert "plant" in frame
        assert "history" in frame

    def test_unknown_simulation(self, client):
        with client.websocket_connect("/api/v1/ws/00000000-0000-0000-0000-000000000000") as ws:
            assert ws.receive_json() == {"error": "simulation not found"}
