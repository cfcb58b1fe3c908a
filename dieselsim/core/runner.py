"""SimPy-based fixed-step driver.

Runs the control orchestrator at a fixed tick without real-time pacing,
for batch runs and scenario checks. Interactive hosts call
ControlOrchestrator.update_simulation() themselves instead.
"""

import logging

import simpy

from dieselsim.core.orchestrator import ControlOrchestrator

logger = logging.getLogger(__name__)


class SimulationRunner:
    """Steps one orchestrator inside a SimPy environment."""

    def __init__(self, orchestrator: ControlOrchestrator | None = None, dt: float = 0.1):
        self.orchestrator = orchestrator or ControlOrchestrator()
        self.dt = dt
        self.env = simpy.Environment()
        self._running = False
        self._process: simpy.Process | None = None
        self._ticks = 0

    def _simulation_loop(self, env: simpy.Environment):
        """Main SimPy process: one orchestrator tick per timeout."""
        while self._running:
            self.orchestrator.update_simulation(self.dt)
            self._ticks += 1
            yield env.timeout(self.dt)

    def start(self):
        """Start the tick process and mark the plant as running."""
        if self._running:
            return
        self._running = True
        self.orchestrator.set_running(True)
        # A process left over from stop() resumes on its next timeout
        if self._process is None or not self._process.is_alive:
            self._process = self.env.process(self._simulation_loop(self.env))

    def run(self, duration_s: float) -> dict:
        """Run for duration_s of SimPy time and return the final snapshot."""
        if not self._running:
            self.start()
        self.env.run(until=self.env.now + duration_s)
        logger.debug("Runner advanced to t=%.2fs after %d ticks", self.env.now, self._ticks)
        return self.orchestrator.get_state()

    def stop(self):
        """Stop ticking. The orchestrator keeps its state."""
        self._running = False
        self.orchestrator.set_running(False)

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def current_state(self) -> dict:
        return self.orchestrator.get_state()
