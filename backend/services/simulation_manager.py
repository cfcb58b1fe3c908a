"""Simulation lifecycle manager.

Handles creation, execution, and cleanup of diesel plant simulations.
Uses asyncio background tasks to tick the control orchestrator at the
configured real-time factor. Ticks and control calls all run on the event
loop and never await mid-update, which serialises access to each
orchestrator.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from backend.api.models.schemas import SimulationStatus
from backend.core.config import settings
from dieselsim.control.auto_tune import AutoTuneSession
from dieselsim.core.orchestrator import ControlOrchestrator

logger = logging.getLogger(__name__)


class SimulationInstance:
    """A single simulation with its control orchestrator."""

    def __init__(
        self,
        sim_id: uuid.UUID,
        realtime_factor: float = 1.0,
        simulation_speed: float = 1.0,
        noise_seed: int | None = None,
        physics_dt: float | None = None,
    ):
        self.id = sim_id
        self.realtime_factor = realtime_factor
        self.physics_dt = physics_dt or settings.PHYSICS_DT
        self.status = SimulationStatus.PENDING
        self.created_at = datetime.now(timezone.utc)
        self._task: asyncio.Task | None = None
        self._tune_task: asyncio.Task | None = None

        self.orchestrator = ControlOrchestrator({
            "emergency_exit_policy": settings.EMERGENCY_EXIT_POLICY,
            "noise_seed": noise_seed if noise_seed is not None else settings.NOISE_SEED,
        })
        self.orchestrator.set_simulation_speed(simulation_speed)

    @property
    def simulation_time(self) -> float:
        return self.orchestrator.plant.time

    def step(self, dt: float):
        """Advance the orchestrator by one tick of dt seconds."""
        self.orchestrator.update_simulation(dt)

    def get_state(self) -> dict[str, Any]:
        state: dict[str, Any] = {
            "simulation_id": str(self.id),
            "status": self.status.value,
            "simulation_time": round(self.simulation_time, 2),
        }
        state.update(self.orchestrator.get_state())
        return state

    async def run_loop(self):
        """Main simulation loop, run as an asyncio background task."""
        self.status = SimulationStatus.RUNNING
        self.orchestrator.set_running(True)
        logger.info("Simulation %s started (dt=%.3f, rt_factor=%.1f)",
                    self.id, self.physics_dt, self.realtime_factor)
        try:
            while self.status == SimulationStatus.RUNNING:
                self.step(self.physics_dt)
                # Sleep to maintain real-time factor
                await asyncio.sleep(self.physics_dt / self.realtime_factor)
        except asyncio.CancelledError:
            logger.info("Simulation %s cancelled", self.id)
        except Exception as e:
            logger.exception("Simulation %s failed: %s", self.id, e)
            self.status = SimulationStatus.FAILED
        finally:
            if self.status == SimulationStatus.RUNNING:
                self.status = SimulationStatus.STOPPED
            self.orchestrator.set_running(False)

    async def run_auto_tune(self, session: AutoTuneSession, delay_s: float):
        """Wait, then commit the session's gains; cancellation rolls it back."""
        try:
            await asyncio.sleep(delay_s)
            self.orchestrator.commit_auto_tune()
        except asyncio.CancelledError:
            self.orchestrator.cancel_auto_tune()
            raise

    async def cancel_tasks(self):
        for task in (self._tune_task, self._task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        # A tune task cancelled before its first step never reaches its handler
        self.orchestrator.cancel_auto_tune()


class SimulationManager:
    """Singleton manager for all active simulations."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._simulations: dict[uuid.UUID, SimulationInstance] = {}
        return cls._instance

    async def create_simulation(
        self,
        realtime_factor: float = 1.0,
        simulation_speed: float = 1.0,
        noise_seed: int | None = None,
    ) -> SimulationInstance:
        """Create and start a new simulation instance."""
        if self.active_count >= settings.MAX_CONCURRENT_SIMULATIONS:
            raise RuntimeError(
                f"Max concurrent simulations ({settings.MAX_CONCURRENT_SIMULATIONS}) reached"
            )

        realtime_factor = min(realtime_factor, settings.MAX_REALTIME_FACTOR)
        sim_id = uuid.uuid4()
        sim = SimulationInstance(
            sim_id=sim_id,
            realtime_factor=realtime_factor,
            simulation_speed=simulation_speed,
            noise_seed=noise_seed,
        )
        self._simulations[sim_id] = sim

        # Start background task
        sim.status = SimulationStatus.RUNNING
        sim._task = asyncio.create_task(sim.run_loop())
        return sim

    def get_simulation(self, simulation_id: uuid.UUID) -> SimulationInstance | None:
        return self._simulations.get(simulation_id)

    async def get_state(self, simulation_id: uuid.UUID) -> dict | None:
        """Get current state of a simulation."""
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return None
        return sim.get_state()

    async def pause_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Pause a running simulation."""
        sim = self._simulations.get(simulation_id)
        if sim is None or sim.status != SimulationStatus.RUNNING:
            return False
        sim.status = SimulationStatus.PAUSED
        if sim._task:
            sim._task.cancel()
            try:
                await sim._task
            except asyncio.CancelledError:
                pass
        sim.orchestrator.set_running(False)
        logger.info("Simulation %s paused at t=%.2fs", sim.id, sim.simulation_time)
        return True

    async def resume_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Resume a paused simulation."""
        sim = self._simulations.get(simulation_id)
        if sim is None or sim.status != SimulationStatus.PAUSED:
            return False
        sim.status = SimulationStatus.RUNNING
        sim._task = asyncio.create_task(sim.run_loop())
        return True

    async def stop_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Stop a running simulation and clean up resources."""
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return False
        sim.status = SimulationStatus.STOPPED
        await sim.cancel_tasks()
        return True

    async def reset_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Reset plant and controllers; a running simulation keeps running."""
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return False
        if sim._tune_task and not sim._tune_task.done():
            sim._tune_task.cancel()
        sim.orchestrator.reset_simulation()
        if sim.status == SimulationStatus.RUNNING:
            sim.orchestrator.set_running(True)
        return True

    async def toggle_emergency(self, simulation_id: uuid.UUID) -> bool | None:
        """Flip emergency mode; returns the new flag, or None if not found."""
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return None
        if sim._tune_task and not sim._tune_task.done():
            sim._tune_task.cancel()
        return sim.orchestrator.toggle_emergency_mode()

    async def start_auto_tune(self, simulation_id: uuid.UUID, loop: str) -> dict | None:
        """Begin tuning a loop; tuned gains are committed after AUTO_TUNE_DELAY_S.

        Returns the session state, or None when the simulation is missing or
        the tune could not start (not running, emergency, already tuning).
        """
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return None
        session = sim.orchestrator.begin_auto_tune(loop)
        if session is None:
            return None
        sim._tune_task = asyncio.create_task(
            sim.run_auto_tune(session, settings.AUTO_TUNE_DELAY_S)
        )
        return session.get_state()

    @property
    def active_count(self) -> int:
        return sum(
            1 for s in self._simulations.values()
            if s.status == SimulationStatus.RUNNING
        )

    @property
    def all_simulations(self) -> list[dict]:
        return [
            {
                "id": str(s.id),
                "status": s.status.value,
                "simulation_time": round(s.simulation_time, 2),
                "emergency_mode": s.orchestrator.emergency_mode,
                "created_at": s.created_at.isoformat(),
            }
            for s in self._simulations.values()
        ]
