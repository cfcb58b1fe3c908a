"""Cascade (two-level) controller built from two PID loops.

The primary (outer) controller's output, scaled and offset, becomes the
setpoint of the secondary (inner) controller. The outer loop is normally
tuned slower than the inner one; nothing here enforces that.
"""

from collections import deque

from dieselsim.control.pid_controller import MIN_DT, PIDController


DEFAULT_CONFIG = {
    "primary": {"kp": 1.5, "ki": 0.05, "kd": 0.3, "output_min": 0.0, "output_max": 100.0},
    "secondary": {"kp": 3.0, "ki": 0.1, "kd": 0.5, "output_min": 0.0, "output_max": 100.0},
    "enabled": False,
    "primary_setpoint": 75.0,
    "secondary_setpoint_offset": 0.0,
    "secondary_setpoint_scale": 1.0,
    "max_history": 100,
}


class CascadeController:
    """Primary/secondary PID pair with setpoint hand-off."""

    def __init__(self, config: dict | None = None):
        c = {**DEFAULT_CONFIG, **(config or {})}
        primary = {**DEFAULT_CONFIG["primary"], **c["primary"]}
        secondary = {**DEFAULT_CONFIG["secondary"], **c["secondary"]}

        self.primary = PIDController(**primary)
        self.secondary = PIDController(**secondary)
        self.primary.set_mode(True, False)
        self.secondary.set_mode(True, False)

        self.enabled = c["enabled"]
        self.primary_setpoint = c["primary_setpoint"]
        self.secondary_setpoint_offset = c["secondary_setpoint_offset"]
        self.secondary_setpoint_scale = c["secondary_setpoint_scale"]

        # Last evaluated values, for observers only
        self.secondary_setpoint = 0.0
        self.primary_output = 0.0
        self.secondary_output = 0.0
        self.primary_measurement = 0.0
        self.secondary_measurement = 0.0

        self._current_time = 0.0
        self._history: deque[dict] = deque(maxlen=c["max_history"])

    def _controller(self, which: str) -> PIDController:
        if which == "primary":
            return self.primary
        if which == "secondary":
            return self.secondary
        raise ValueError(f"Unknown cascade controller: {which!r}")

    def set_enabled(self, enabled: bool):
        """Enable or disable; both inner loops restart when the flag flips."""
        if self.enabled != enabled:
            self.enabled = enabled
            self.reset()

    def set_primary_setpoint(self, setpoint: float):
        self.primary_setpoint = setpoint

    def set_secondary_setpoint_parameters(self, offset: float, scale: float):
        self.secondary_setpoint_offset = offset
        self.secondary_setpoint_scale = scale

    def update(self, primary_measurement: float, secondary_measurement: float, dt: float) -> float:
        """Run both loops for one step.

        Args:
            primary_measurement: Outer process variable (e.g. engine temperature).
            secondary_measurement: Inner process variable, which in this plant
                is the current value of the actuator being driven.
            dt: Time step in seconds.

        Returns:
            Secondary output clamped to the secondary bounds, or
            secondary_measurement unchanged while disabled.
        """
        if not self.enabled:
            return secondary_measurement

        if dt <= 0:
            dt = MIN_DT
        self._current_time += dt
        self.primary_measurement = primary_measurement
        self.secondary_measurement = secondary_measurement

        self.primary_output = self.primary.update(self.primary_setpoint, primary_measurement, dt)
        self.secondary_setpoint = (
            self.primary_output * self.secondary_setpoint_scale + self.secondary_setpoint_offset
        )
        output = self.secondary.update(self.secondary_setpoint, secondary_measurement, dt)
        self.secondary_output = min(max(output, self.secondary.output_min), self.secondary.output_max)

        self._history.append({
            "time": self._current_time,
            "primary_setpoint": self.primary_setpoint,
            "primary_measurement": primary_measurement,
            "primary_output": self.primary_output,
            "secondary_setpoint": self.secondary_setpoint,
            "secondary_measurement": secondary_measurement,
            "secondary_output": self.secondary_output,
        })

        return self.secondary_output

    def update_parameters(
        self,
        which: str,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
    ):
        """Retune the primary or secondary loop without resetting it."""
        self._controller(which).set_gains(kp, ki, kd)

    def get_parameters(self) -> dict:
        return {
            name: {"kp": ctrl.kp, "ki": ctrl.ki, "kd": ctrl.kd}
            for name, ctrl in (("primary", self.primary), ("secondary", self.secondary))
        }

    def get_history(self) -> list[dict]:
        return list(self._history)

    def reset(self):
        """Reset both loops and the cascade-level history."""
        self.primary.reset()
        self.secondary.reset()
        self.secondary_setpoint = 0.0
        self.primary_output = 0.0
        self.secondary_output = 0.0
        self._current_time = 0.0
        self._history.clear()

    def get_state(self) -> dict:
        return {
            "enabled": self.enabled,
            "primary_setpoint": self.primary_setpoint,
            "primary_measurement": self.primary_measurement,
            "primary_output": self.primary_output,
            "secondary_setpoint": self.secondary_setpoint,
            "secondary_measurement": self.secondary_measurement,
            "secondary_output": self.secondary_output,
        }
