"""Unit tests for the PID controller."""

import pytest

from dieselsim.control.pid_controller import MIN_DT, PIDController


def _controller(**overrides):
    params = {"kp": 2.0, "ki": 0.1, "kd": 0.5, "output_min": 0.0, "output_max": 100.0}
    params.update(overrides)
    return PIDController(**params)


class TestPIDUpdate:
    def test_first_update_terms(self):
        pid = _controller()
        output = pid.update(75.0, 25.0, 1.0)
        entry = pid.get_history()[-1]
        assert entry["error"] == 50.0
        assert entry["p"] == 100.0
        assert entry["i"] == pytest.approx(5.0)
        assert entry["d"] == pytest.approx(-12.5)
        assert output == pytest.approx(92.5)
        assert pid.integral == pytest.approx(50.0)

    def test_second_update_terms(self):
        pid = _controller()
        pid.update(75.0, 25.0, 1.0)
        output = pid.update(75.0, 40.0, 1.0)
        entry = pid.get_history()[-1]
        assert entry["error"] == 35.0
        assert entry["p"] == 70.0
        assert entry["i"] == pytest.approx(8.5)
        assert entry["d"] == pytest.approx(-7.5)
        assert output == pytest.approx(71.0)

    def test_derivative_on_error(self):
        pid = _controller()
        pid.set_mode(False, False)
        pid.update(75.0, 25.0, 1.0)
        entry = pid.get_history()[-1]
        # error jumps from 0 to 50
        assert entry["d"] == pytest.approx(25.0)

    def test_proportional_on_measurement(self):
        pid = _controller(kd=0.0)
        pid.set_mode(True, True)
        pid.update(75.0, 25.0, 1.0)
        assert pid.get_history()[-1]["p"] == pytest.approx(-50.0)

    def test_non_positive_dt_uses_floor(self):
        pid = _controller(kp=0.1, kd=0.0)
        pid.update(75.0, 25.0, 0.0)
        pid.update(75.0, 25.0, -1.0)
        assert pid.elapsed_time == pytest.approx(2 * MIN_DT)
        assert pid.integral == pytest.approx(2 * 50.0 * MIN_DT)

    def test_set_gains_keeps_state(self):
        pid = _controller()
        pid.update(75.0, 25.0, 1.0)
        pid.set_gains(kp=4.0)
        assert pid.kp == 4.0
        assert pid.ki == 0.1
        assert pid.integral == pytest.approx(50.0)


class TestPIDClamping:
    @pytest.mark.parametrize("kp,error", [
        (0.5, 10.0), (10.0, 500.0), (10.0, -500.0), (-3.0, 200.0), (100.0, 1e6),
    ])
    def test_output_within_bounds(self, kp, error):
        pid = _controller(kp=kp, kd=1.0)
        for _ in range(20):
            output = pid.update(error, 0.0, 0.1)
            assert 0.0 <= output <= 100.0

    def test_custom_bounds(self):
        pid = _controller(output_min=-10.0, output_max=10.0)
        assert pid.update(1000.0, 0.0, 1.0) == 10.0
        assert pid.update(-1000.0, 0.0, 1.0) == -10.0


class TestPIDAntiWindup:
    def test_integral_frozen_while_saturated(self):
        pid = _controller(kd=0.0)
        for _ in range(50):
            output = pid.update(1000.0, 0.0, 1.0)
        assert output == 100.0
        assert pid.integral == pytest.approx(0.0)

    def test_leaves_saturation_immediately(self):
        pid = _controller(kp=1.0, ki=0.5, kd=0.0)
        for _ in range(100):
            assert pid.update(200.0, 50.0, 1.0) == 100.0
        # Small negative error: a wound-up integral would keep the output pinned
        output = pid.update(50.0, 51.0, 1.0)
        assert output < 100.0

    def test_unsaturated_integral_accumulates(self):
        pid = _controller(kp=0.1, ki=0.01, kd=0.0)
        for _ in range(10):
            pid.update(10.0, 5.0, 1.0)
        assert pid.integral == pytest.approx(50.0)


class TestPIDResetAndHistory:
    def test_reset_matches_fresh_controller(self):
        used = _controller()
        for measurement in (10.0, 30.0, 55.0, 90.0):
            used.update(75.0, measurement, 0.5)
        used.reset()

        fresh = _controller()
        assert used.update(75.0, 60.0, 0.5) == fresh.update(75.0, 60.0, 0.5)

    def test_reset_keeps_gains_and_mode(self):
        pid = _controller()
        pid.set_mode(False, True)
        pid.update(75.0, 25.0, 1.0)
        pid.reset()
        assert (pid.kp, pid.ki, pid.kd) == (2.0, 0.1, 0.5)
        assert pid.derivative_on_measurement is False
        assert pid.proportional_on_measurement is True
        assert pid.get_history() == []
        assert pid.integral == 0.0
        assert pid.elapsed_time == 0.0

    def test_history_bounded_and_ordered(self):
        pid = _controller(max_history=10)
        for i in range(35):
            pid.update(75.0, float(i), 0.1)
        history = pid.get_history()
        assert len(history) == 10
        times = [h["time"] for h in history]
        assert all(a < b for a, b in zip(times, times[1:]))

    def test_get_state(self):
        state = _controller().get_state()
        assert state["kp"] == 2.0
        assert state["output_max"] == 100.0
        assert state["derivative_on_measurement"] is True
