"""Control orchestrator for the diesel plant.

Owns the plant state, the three loop PID controllers and the cascade
controller, and advances them one tick at a time:

  1. Emergency override, or per-loop arbitration (Cascade > AutoPID > Manual)
  2. Plant model: power -> fuel consumption -> temperature -> efficiency -> emissions
  3. Alerts, recomputed from scratch
  4. Trend sampling once per whole simulated second
  5. Simulated time advance

The orchestrator is the only writer of plant and controller state. It is not
thread-safe; hosts that tick from several tasks must serialise the calls.
"""

import logging

from dieselsim.control.auto_tune import AutoTuneSession
from dieselsim.control.cascade_controller import DEFAULT_CONFIG as CASCADE_DEFAULTS
from dieselsim.control.cascade_controller import CascadeController
from dieselsim.control.pid_controller import PIDController
from dieselsim.core.plant_state import (
    CASCADE_LOOP,
    LOOP_WIRING,
    CascadeType,
    ControlLoop,
    EmergencyExitPolicy,
    LoopMode,
    PlantState,
)
from dieselsim.core.recorder import TrendRecorder
from dieselsim.detection.alerts import AlertEvaluator
from dieselsim.physics.diesel_engine import (
    calculate_efficiency,
    calculate_emissions,
    calculate_fuel_consumption,
    calculate_power_output,
    calculate_temperature,
)
from dieselsim.physics.noise import NoiseSource, UniformNoise

logger = logging.getLogger(__name__)


class ControlOrchestrator:
    """Per-tick arbitration between manual, PID and cascade control."""

    DEFAULT_PARAMS = {
        "auto_targets": {"temperature": 75.0, "power": 15.0, "efficiency": 40.0},
        "pid_gains": {                       # (kp, ki, kd)
            "temperature": (2.0, 0.1, 0.5),
            "power": (5.0, 0.2, 1.0),
            "efficiency": (3.0, 0.15, 0.8),
        },
        "output_min": 0.0,
        "output_max": 100.0,
        "cascade": CASCADE_DEFAULTS,
        "cascade_type": CascadeType.TEMPERATURE_COOLING.value,
        # Actuator values forced while the emergency override is on
        "emergency_fuel_rate": 90.0,
        "emergency_cooling_power": 100.0,
        "emergency_excitation": 100.0,
        "emergency_exit_policy": EmergencyExitPolicy.MANUAL.value,
        "alert_thresholds": {},
        "history_capacity": 100,
        "noise_seed": None,
    }

    def __init__(self, params: dict | None = None, noise: NoiseSource | None = None):
        p = {**self.DEFAULT_PARAMS, **(params or {})}
        targets = {**self.DEFAULT_PARAMS["auto_targets"], **p["auto_targets"]}
        gains = {**self.DEFAULT_PARAMS["pid_gains"], **p["pid_gains"]}

        self.emergency_fuel_rate = p["emergency_fuel_rate"]
        self.emergency_cooling_power = p["emergency_cooling_power"]
        self.emergency_excitation = p["emergency_excitation"]
        self.emergency_exit_policy = EmergencyExitPolicy(p["emergency_exit_policy"])

        self.noise = noise or UniformNoise(p["noise_seed"])
        self.plant = PlantState()
        self.running = False
        self.simulation_speed = 1.0
        self.emergency_mode = False

        # Loop controllers, one owned instance per loop
        self.controllers: dict[ControlLoop, PIDController] = {}
        for loop in ControlLoop:
            kp, ki, kd = gains[loop.value]
            ctrl = PIDController(kp, ki, kd, p["output_min"], p["output_max"])
            ctrl.set_mode(True, False)
            self.controllers[loop] = ctrl

        self.auto_enabled: dict[ControlLoop, bool] = {loop: False for loop in ControlLoop}
        self.auto_targets: dict[ControlLoop, float] = {
            loop: float(targets[loop.value]) for loop in ControlLoop
        }

        self.cascade = CascadeController(p["cascade"])
        self.cascade_type = CascadeType(p["cascade_type"])

        self.alert_evaluator = AlertEvaluator(p["alert_thresholds"])
        self.trends = TrendRecorder(p["history_capacity"])

        self.controller_outputs = {"cooling": 0.0, "fuel": 0.0, "excitation": 0.0}
        self.controller_history: dict[str, list[dict]] = {loop.value: [] for loop in ControlLoop}
        self.cascade_history: list[dict] = []
        self.cascade_control_config = self._initial_cascade_config()
        self.alerts: list[str] = []

        self._pre_emergency_selection: dict | None = None
        self._auto_tune: AutoTuneSession | None = None

    # ------------------------------------------------------------------
    # Mode queries
    # ------------------------------------------------------------------
    @property
    def cascade_enabled(self) -> bool:
        return self.cascade.enabled

    @property
    def cascade_loop(self) -> ControlLoop:
        return CASCADE_LOOP[self.cascade_type]

    def _cascade_active_for(self, loop: ControlLoop) -> bool:
        return self.cascade.enabled and self.cascade_loop == loop

    def loop_mode(self, loop: ControlLoop | str) -> LoopMode:
        """Authoritative mode of one loop right now."""
        loop = ControlLoop(loop)
        if self.emergency_mode:
            return LoopMode.MANUAL
        if self._cascade_active_for(loop):
            return LoopMode.CASCADE
        if self.auto_enabled[loop]:
            return LoopMode.AUTO_PID
        return LoopMode.MANUAL

    def loop_modes(self) -> dict[str, str]:
        return {loop.value: self.loop_mode(loop).value for loop in ControlLoop}

    # ------------------------------------------------------------------
    # Manual setters (effective while the loop is in Manual)
    # ------------------------------------------------------------------
    def set_fuel_injection_rate(self, rate: float):
        self.plant.fuel_injection_rate = rate

    def set_load(self, load: float):
        self.plant.load = load

    def set_cooling_system_power(self, power: float):
        self.plant.cooling_system_power = power

    def set_generator_excitation(self, excitation: float):
        self.plant.generator_excitation = excitation

    def set_maintenance_status(self, status: float):
        self.plant.maintenance_status = status

    # ------------------------------------------------------------------
    # Auto (single-loop PID) control
    # ------------------------------------------------------------------
    def update_auto_control(
        self,
        loop: ControlLoop | str,
        enabled: bool,
        target: float | None = None,
    ) -> bool:
        """Enable/disable AutoPID on a loop and optionally move its target.

        Enabling a loop that the cascade currently drives switches the cascade
        off. The loop's PID is reset either way. Enabling is refused while the
        emergency override is on.
        """
        loop = ControlLoop(loop)
        if enabled and self.emergency_mode:
            logger.warning("Auto control for %s refused: emergency mode active", loop.value)
            return False

        if enabled and self._cascade_active_for(loop):
            logger.info("Auto control on %s overrides cascade %s", loop.value, self.cascade_type.value)
            self.cascade.set_enabled(False)

        self.auto_enabled[loop] = enabled
        if target is not None:
            self.auto_targets[loop] = target
        self.controllers[loop].reset()
        return True

    def update_pid_parameters(
        self,
        loop: ControlLoop | str,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
    ):
        self.controllers[ControlLoop(loop)].set_gains(kp, ki, kd)

    def pid_parameters(self) -> dict[str, dict]:
        return {
            loop.value: {"kp": c.kp, "ki": c.ki, "kd": c.kd}
            for loop, c in self.controllers.items()
        }

    # ------------------------------------------------------------------
    # Cascade control
    # ------------------------------------------------------------------
    def _initial_cascade_config(self) -> dict:
        return {
            "type": self.cascade_type.value,
            "primary_setpoint": self.cascade.primary_setpoint,
            "primary_measurement": self.plant.engine_temperature,
            "primary_output": 0.0,
            "secondary_setpoint": 0.0,
            "secondary_measurement": 0.0,
            "secondary_output": 0.0,
        }

    def _claim_cascade_loop(self):
        """Give the cascade's loop to the cascade: AutoPID off, setpoint seeded."""
        loop = self.cascade_loop
        if self.auto_enabled[loop]:
            logger.info("Cascade %s overrides auto control on %s", self.cascade_type.value, loop.value)
            self.auto_enabled[loop] = False
        self.cascade.set_primary_setpoint(self.auto_targets[loop])
        self.cascade_control_config["primary_setpoint"] = self.cascade.primary_setpoint

    def set_cascade_control(self, enabled: bool) -> bool:
        """Switch the cascade on or off for the loop selected by the cascade type."""
        if enabled and self.emergency_mode:
            logger.warning("Cascade control refused: emergency mode active")
            return False

        self.cascade.set_enabled(enabled)
        if enabled:
            self._claim_cascade_loop()
        logger.info("Cascade %s %s", self.cascade_type.value, "enabled" if enabled else "disabled")
        return True

    def set_cascade_control_type(self, cascade_type: CascadeType | str):
        """Retarget the cascade. An enabled cascade restarts on the new loop."""
        cascade_type = CascadeType(cascade_type)
        if cascade_type == self.cascade_type:
            return

        self.cascade_type = cascade_type
        self.cascade_control_config["type"] = cascade_type.value
        if self.cascade.enabled:
            self.cascade.reset()
            self._claim_cascade_loop()
            logger.info("Cascade moved to %s", cascade_type.value)

    def update_cascade_setpoint(self, setpoint: float):
        self.cascade.set_primary_setpoint(setpoint)
        self.cascade_control_config["primary_setpoint"] = setpoint

    def update_cascade_parameters(
        self,
        which: str,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
    ):
        self.cascade.update_parameters(which, kp, ki, kd)

    @property
    def cascade_parameters(self) -> dict:
        return self.cascade.get_parameters()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def set_running(self, running: bool):
        self.running = running

    def set_simulation_speed(self, speed: float):
        self.simulation_speed = speed

    def reset_simulation(self):
        """Back to time zero with default actuators.

        Controller and cascade state, histories and alerts are cleared. Mode
        selections, targets, gains and the cascade setpoint are kept.
        """
        if self._auto_tune is not None and self._auto_tune.is_active:
            self.cancel_auto_tune()
        self._auto_tune = None

        for ctrl in self.controllers.values():
            ctrl.reset()
        self.cascade.reset()

        self.plant = PlantState()
        self.running = False
        self.emergency_mode = False
        self._pre_emergency_selection = None

        self.alerts = []
        self.trends.clear()
        self.controller_outputs = {"cooling": 0.0, "fuel": 0.0, "excitation": 0.0}
        self.controller_history = {loop.value: [] for loop in ControlLoop}
        self.cascade_history = []
        self.cascade_control_config = self._initial_cascade_config()
        logger.info("Simulation reset")

    def toggle_emergency_mode(self) -> bool:
        """Flip the emergency override; returns the new state."""
        if not self.emergency_mode:
            if self._auto_tune is not None and self._auto_tune.is_active:
                self.cancel_auto_tune()

            self._pre_emergency_selection = {
                "auto_enabled": dict(self.auto_enabled),
                "cascade_enabled": self.cascade.enabled,
                "cascade_setpoint": self.cascade.primary_setpoint,
            }
            self._apply_emergency_actuators()
            self.auto_enabled = {loop: False for loop in ControlLoop}
            self.cascade.set_enabled(False)
            self.emergency_mode = True
            logger.warning("Emergency mode engaged at t=%.2fs", self.plant.time)
        else:
            self.emergency_mode = False
            if (
                self.emergency_exit_policy == EmergencyExitPolicy.RESTORE
                and self._pre_emergency_selection is not None
            ):
                self._restore_selection(self._pre_emergency_selection)
            self._pre_emergency_selection = None
            logger.warning(
                "Emergency mode cleared at t=%.2fs (policy=%s)",
                self.plant.time, self.emergency_exit_policy.value,
            )
        return self.emergency_mode

    def _restore_selection(self, selection: dict):
        for loop, enabled in selection["auto_enabled"].items():
            if enabled:
                self.controllers[loop].reset()
            self.auto_enabled[loop] = enabled
        if selection["cascade_enabled"]:
            self.set_cascade_control(True)
            self.update_cascade_setpoint(selection["cascade_setpoint"])

    def _apply_emergency_actuators(self):
        self.plant.fuel_injection_rate = self.emergency_fuel_rate
        self.plant.cooling_system_power = self.emergency_cooling_power
        self.plant.generator_excitation = self.emergency_excitation

    # ------------------------------------------------------------------
    # Auto-tune (begin -> host waits -> commit or cancel)
    # ------------------------------------------------------------------
    def begin_auto_tune(self, loop: ControlLoop | str) -> AutoTuneSession | None:
        """Suspend every other auto loop and open a tuning session.

        Returns None when not running, in emergency, or already tuning.
        """
        loop = ControlLoop(loop)
        if not self.running or self.emergency_mode:
            return None
        if self._auto_tune is not None and self._auto_tune.is_active:
            return None

        session = AutoTuneSession(loop, self.auto_enabled)
        if self._cascade_active_for(loop):
            logger.info("Auto-tune on %s overrides cascade %s", loop.value, self.cascade_type.value)
            self.cascade.set_enabled(False)
        self.auto_enabled = session.suspended_selection()
        self._auto_tune = session
        logger.info("Auto-tune started for %s", loop.value)
        return session

    def commit_auto_tune(self) -> bool:
        session = self._auto_tune
        if session is None:
            return False
        gains = session.commit()
        if gains is None:
            return False

        self.controllers[session.loop].set_gains(*gains)
        self._resume_auto_selection(session.previous_auto_enabled)
        logger.info("Auto-tune committed for %s: kp=%.3f ki=%.3f kd=%.3f", session.loop.value, *gains)
        return True

    def cancel_auto_tune(self) -> bool:
        session = self._auto_tune
        if session is None or not session.cancel():
            return False
        self._resume_auto_selection(session.previous_auto_enabled)
        logger.info("Auto-tune cancelled for %s", session.loop.value)
        return True

    def _resume_auto_selection(self, selection: dict[ControlLoop, bool]):
        for loop, enabled in selection.items():
            # A cascade claimed during tuning keeps its loop
            if enabled and self._cascade_active_for(loop):
                continue
            self.auto_enabled[loop] = enabled

    @property
    def auto_tune_state(self) -> dict | None:
        return self._auto_tune.get_state() if self._auto_tune is not None else None

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def update_simulation(self, dt: float) -> bool:
        """Advance the plant by one tick. Returns False when not running."""
        if not self.running:
            return False

        dt = max(dt, 0.0)
        effective_dt = dt * self.simulation_speed
        old_time = self.plant.time
        new_time = old_time + effective_dt

        if self.emergency_mode:
            self._apply_emergency_actuators()
        else:
            for loop in ControlLoop:
                self._run_loop(loop, dt)

        self._step_plant(effective_dt, new_time)

        self.alerts = self.alert_evaluator.evaluate(
            temperature=self.plant.engine_temperature,
            efficiency=self.plant.efficiency,
            maintenance=self.plant.maintenance_status,
            nox=self.plant.emissions.nox,
        )

        self.trends.record(old_time, new_time, {
            "power": self.plant.power_output,
            "temperature": self.plant.engine_temperature,
            "efficiency": self.plant.efficiency,
        })

        self.plant.time = new_time
        return True

    def _run_loop(self, loop: ControlLoop, dt: float):
        measured_field, actuator_field, output_key = LOOP_WIRING[loop]
        measurement = getattr(self.plant, measured_field)

        if self._cascade_active_for(loop):
            actuator = getattr(self.plant, actuator_field)
            output = self.cascade.update(measurement, actuator, dt)
            setattr(self.plant, actuator_field, output)
            self.cascade_control_config = {"type": self.cascade_type.value, **self.cascade.get_state()}
            self.cascade_control_config.pop("enabled")
            self.cascade_history = self.cascade.get_history()

        elif self.auto_enabled[loop]:
            ctrl = self.controllers[loop]
            output = ctrl.update(self.auto_targets[loop], measurement, dt)
            setattr(self.plant, actuator_field, output)
            self.controller_outputs[output_key] = output
            self.controller_history[loop.value] = [
                {"time": h["time"], "value": h["measurement"], "setpoint": h["setpoint"]}
                for h in ctrl.get_history()
            ]

    def _step_plant(self, effective_dt: float, new_time: float):
        """Evaluate the plant model in its fixed dependency order.

        Power and temperature integrate from the previous tick's temperature;
        efficiency sees this tick's temperature; emissions see this tick's
        temperature and efficiency; fuel consumption runs before efficiency
        and so receives the previous tick's value.
        """
        p = self.plant
        prev_temperature = p.engine_temperature
        prev_efficiency = p.efficiency

        power = calculate_power_output(
            p.fuel_injection_rate, p.load, prev_temperature,
            p.generator_excitation, p.maintenance_status, new_time, self.noise,
        )
        fuel_consumption = calculate_fuel_consumption(
            p.fuel_injection_rate, p.load, prev_efficiency, self.noise,
        )
        temperature = calculate_temperature(
            prev_temperature, p.fuel_injection_rate, p.cooling_system_power,
            p.load, effective_dt, self.noise,
        )
        efficiency = calculate_efficiency(
            temperature, p.fuel_injection_rate, p.load, p.maintenance_status, self.noise,
        )
        emissions = calculate_emissions(p.fuel_injection_rate, temperature, efficiency, self.noise)

        p.power_output = power
        p.fuel_consumption = fuel_consumption
        p.engine_temperature = temperature
        p.efficiency = efficiency
        p.emissions = emissions

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    @property
    def power_history(self) -> list[dict]:
        return self.trends.history("power")

    @property
    def temperature_history(self) -> list[dict]:
        return self.trends.history("temperature")

    @property
    def efficiency_history(self) -> list[dict]:
        return self.trends.history("efficiency")

    def get_state(self) -> dict:
        """JSON-ready snapshot for external observers."""
        return {
            "running": self.running,
            "simulation_speed": self.simulation_speed,
            "emergency_mode": self.emergency_mode,
            "plant": self.plant.get_state(),
            "alerts": list(self.alerts),
            "loop_modes": self.loop_modes(),
            "auto_control": {
                loop.value: {
                    "enabled": self.auto_enabled[loop],
                    "target": self.auto_targets[loop],
                }
                for loop in ControlLoop
            },
            "pid_parameters": self.pid_parameters(),
            "controller_outputs": dict(self.controller_outputs),
            "controller_history": {k: list(v) for k, v in self.controller_history.items()},
            "cascade": {
                "enabled": self.cascade.enabled,
                "type": self.cascade_type.value,
                "config": dict(self.cascade_control_config),
                "parameters": self.cascade_parameters,
                "history": list(self.cascade_history),
            },
            "history": {
                "power": self.power_history,
                "temperature": self.temperature_history,
                "efficiency": self.efficiency_history,
            },
            "auto_tune": self.auto_tune_state,
        }
