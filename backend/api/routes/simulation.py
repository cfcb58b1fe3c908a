"""Simulation lifecycle endpoints.

Start, stop, pause, reset, and query diesel plant simulations.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException

from backend.api.models.schemas import (
    SimulationCreate,
    SimulationResponse,
    SimulationState,
    SpeedUpdate,
)
from backend.services.simulation_manager import SimulationManager

router = APIRouter()
manager = SimulationManager()


@router.post("/start", response_model=SimulationResponse)
async def start_simulation(params: SimulationCreate):
    """Start a new diesel plant simulation."""
    try:
        sim = await manager.create_simulation(
            realtime_factor=params.realtime_factor,
            simulation_speed=params.simulation_speed,
            noise_seed=params.noise_seed,
        )
        return SimulationResponse(
            id=sim.id,
            status=sim.status,
            created_at=sim.created_at,
        )
    except RuntimeError as e:
        raise HTTPException(status_code=429, detail=str(e))


@router.get("/list")
async def list_simulations():
    """List all simulations."""
    return {
        "simulations": manager.all_simulations,
        "active_count": manager.active_count,
    }


@router.get("/{simulation_id}/state", response_model=SimulationState)
async def get_simulation_state(simulation_id: UUID):
    """Get the current plant, controller, and trend snapshot."""
    state = await manager.get_state(simulation_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return SimulationState(**state)


@router.post("/{simulation_id}/pause")
async def pause_simulation(simulation_id: UUID):
    """Pause a running simulation."""
    success = await manager.pause_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found or not running")
    return {"status": "paused", "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/resume")
async def resume_simulation(simulation_id: UUID):
    """Resume a paused simulation."""
    success = await manager.resume_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found or not paused")
    return {"status": "running", "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/stop")
async def stop_simulation(simulation_id: UUID):
    """Stop a simulation and cancel its background tasks."""
    success = await manager.stop_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return {"status": "stopped", "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/reset")
async def reset_simulation(simulation_id: UUID):
    """Return the plant to time zero, keeping mode selections and gains."""
    success = await manager.reset_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return {"status": "reset", "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/emergency")
async def toggle_emergency(simulation_id: UUID):
    """Toggle the emergency override."""
    emergency_mode = await manager.toggle_emergency(simulation_id)
    if emergency_mode is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return {"emergency_mode": emergency_mode, "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/speed")
async def set_speed(simulation_id: UUID, update: SpeedUpdate):
    """Change the simulated-time multiplier."""
    sim = manager.get_simulation(simulation_id)
    if sim is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    sim.orchestrator.set_simulation_speed(update.simulation_speed)
    return {"simulation_speed": update.simulation_speed, "simulation_id": str(simulation_id)}
