"""PID controller for diesel plant control loops.

Used for:
    - Engine temperature control (via cooling system power)
    - Power output control (via fuel injection rate)
    - Efficiency control (via generator excitation)
    - Both stages of the cascade controller
"""

from collections import deque

# Substituted for non-positive time steps
MIN_DT = 0.01


class PIDController:
    """Discrete PID controller with anti-windup and bounded history."""

    def __init__(
        self,
        kp: float = 1.0,
        ki: float = 0.1,
        kd: float = 0.0,
        output_min: float = 0.0,
        output_max: float = 100.0,
        max_history: int = 100,
    ):
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.output_min = output_min
        self.output_max = output_max
        self.max_history = max_history

        # Derivative on measurement avoids a kick on setpoint steps
        self.derivative_on_measurement = True
        self.proportional_on_measurement = False

        self._integral = 0.0
        self._prev_error = 0.0
        self._prev_measurement = 0.0
        self._elapsed_time = 0.0
        self._history: deque[dict] = deque(maxlen=max_history)

    @property
    def integral(self) -> float:
        return self._integral

    @property
    def elapsed_time(self) -> float:
        return self._elapsed_time

    def set_mode(self, derivative_on_measurement: bool, proportional_on_measurement: bool):
        """Select the P and D formulations used by subsequent updates."""
        self.derivative_on_measurement = derivative_on_measurement
        self.proportional_on_measurement = proportional_on_measurement

    def set_gains(self, kp: float | None = None, ki: float | None = None, kd: float | None = None):
        """Retune live. Accumulated state is kept."""
        if kp is not None:
            self.kp = kp
        if ki is not None:
            self.ki = ki
        if kd is not None:
            self.kd = kd

    def update(self, setpoint: float, measurement: float, dt: float) -> float:
        """Compute PID output.

        Args:
            setpoint: Desired value of the process variable.
            measurement: Current process variable.
            dt: Time step in seconds. Non-positive values fall back to MIN_DT.

        Returns:
            Controller output (clamped to output_min..output_max).
        """
        if dt <= 0:
            dt = MIN_DT

        error = setpoint - measurement

        # Proportional
        if self.proportional_on_measurement:
            p_term = self.kp * (self._prev_measurement - measurement)
        else:
            p_term = self.kp * error

        # Integral
        self._integral += error * dt
        i_term = self.ki * self._integral

        # Derivative
        if self.derivative_on_measurement:
            d_term = -self.kd * (measurement - self._prev_measurement) / dt
        else:
            d_term = self.kd * (error - self._prev_error) / dt

        unclamped = p_term + i_term + d_term
        output = min(max(unclamped, self.output_min), self.output_max)

        # Anti-windup: undo the integration step while saturated in the error's direction
        if (unclamped >= self.output_max and error > 0) or (
            unclamped <= self.output_min and error < 0
        ):
            self._integral -= error * dt

        self._prev_error = error
        self._prev_measurement = measurement
        self._elapsed_time += dt

        self._history.append({
            "time": self._elapsed_time,
            "setpoint": setpoint,
            "measurement": measurement,
            "error": error,
            "p": p_term,
            "i": i_term,
            "d": d_term,
            "output": output,
        })

        return output

    def get_history(self) -> list[dict]:
        """Samples oldest first, at most max_history of them."""
        return list(self._history)

    def reset(self):
        """Reset controller state. Gains and mode flags are kept."""
        self._integral = 0.0
        self._prev_error = 0.0
        self._prev_measurement = 0.0
        self._elapsed_time = 0.0
        self._history.clear()

    def get_state(self) -> dict:
        return {
            "kp": self.kp,
            "ki": self.ki,
            "kd": self.kd,
            "output_min": self.output_min,
            "output_max": self.output_max,
            "integral": round(self._integral, 6),
            "elapsed_time": round(self._elapsed_time, 3),
            "derivative_on_measurement": self.derivative_on_measurement,
            "proportional_on_measurement": self.proportional_on_measurement,
        }
