"""Unit tests for the SimPy batch runner."""

import pytest

from dieselsim.core.orchestrator import ControlOrchestrator
from dieselsim.core.runner import SimulationRunner
from dieselsim.physics.noise import ZeroNoise


def _runner(dt=0.5):
    return SimulationRunner(ControlOrchestrator(noise=ZeroNoise()), dt=dt)


class TestSimulationRunner:
    def test_run_advances_plant(self):
        runner = _runner()
        state = runner.run(5.0)
        assert runner.ticks == 10
        assert state["plant"]["time"] == pytest.approx(5.0)
        assert state["running"] is True

    def test_runs_accumulate(self):
        runner = _runner()
        runner.run(2.0)
        runner.run(3.0)
        assert runner.orchestrator.plant.time == pytest.approx(5.0)

    def test_stop_freezes_plant(self):
        runner = _runner()
        runner.run(2.0)
        runner.stop()
        runner.env.run(until=runner.env.now + 5.0)
        assert runner.orchestrator.plant.time == pytest.approx(2.0)
        assert runner.current_state["running"] is False

    def test_restart_after_stop(self):
        runner = _runner()
        runner.run(2.0)
        runner.stop()
        runner.run(2.0)
        assert runner.orchestrator.plant.time == pytest.approx(4.0)

    def test_auto_control_under_runner(self):
        orch = ControlOrchestrator(noise=ZeroNoise())
        orch.update_auto_control("temperature", True, target=75.0)
        runner = SimulationRunner(orch, dt=0.1)
        runner.run(10.0)
        assert len(orch.controller_history["temperature"]) > 0
        assert 0.0 <= orch.plant.cooling_system_power <= 100.0
