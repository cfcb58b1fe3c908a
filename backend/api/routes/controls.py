"""Operator control endpoints.

Manual actuator settings, single-loop PID (auto) control, cascade control,
and auto-tuning for a running simulation.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException

from backend.api.models.schemas import (
    AutoControlUpdate,
    AutoTuneRequest,
    CascadeParameters,
    CascadeSetpoint,
    CascadeToggle,
    CascadeTypeUpdate,
    ManualControl,
    PIDParameters,
)
from backend.services.simulation_manager import SimulationInstance, SimulationManager

router = APIRouter()
manager = SimulationManager()


def _get_simulation(simulation_id: UUID) -> SimulationInstance:
    sim = manager.get_simulation(simulation_id)
    if sim is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return sim


@router.post("/{simulation_id}/manual")
async def set_manual_controls(simulation_id: UUID, controls: ManualControl):
    """Set actuator values. Loops under auto or cascade control overwrite
    their actuator on the next tick.

    Controllable parameters:
    - fuel_injection_rate: Fuel injection rate (%)
    - load: Electrical load demand (%)
    - cooling_system_power: Cooling system power (%)
    - generator_excitation: Generator excitation (%)
    - maintenance_status: Maintenance condition (%)
    """
    orch = _get_simulation(simulation_id).orchestrator
    setters = {
        "fuel_injection_rate": orch.set_fuel_injection_rate,
        "load": orch.set_load,
        "cooling_system_power": orch.set_cooling_system_power,
        "generator_excitation": orch.set_generator_excitation,
        "maintenance_status": orch.set_maintenance_status,
    }
    applied = controls.model_dump(exclude_none=True)
    for name, value in applied.items():
        setters[name](value)
    return {"applied": applied, "loop_modes": orch.loop_modes()}


@router.post("/{simulation_id}/auto")
async def update_auto_control(simulation_id: UUID, update: AutoControlUpdate):
    """Enable or disable PID control on one loop."""
    orch = _get_simulation(simulation_id).orchestrator
    if not orch.update_auto_control(update.loop, update.enabled, update.target):
        raise HTTPException(status_code=409, detail="Emergency mode active")
    return {
        "loop": update.loop.value,
        "enabled": orch.auto_enabled[update.loop],
        "target": orch.auto_targets[update.loop],
        "loop_modes": orch.loop_modes(),
    }


@router.get("/{simulation_id}/pid")
async def get_pid_parameters(simulation_id: UUID):
    """Current gains of the three loop controllers."""
    return _get_simulation(simulation_id).orchestrator.pid_parameters()


@router.post("/{simulation_id}/pid")
async def update_pid_parameters(simulation_id: UUID, params: PIDParameters):
    """Change the gains of one loop controller; omitted gains are kept."""
    orch = _get_simulation(simulation_id).orchestrator
    orch.update_pid_parameters(params.loop, params.kp, params.ki, params.kd)
    return orch.pid_parameters()[params.loop.value]


@router.post("/{simulation_id}/cascade")
async def set_cascade_control(simulation_id: UUID, toggle: CascadeToggle):
    """Enable or disable cascade control."""
    orch = _get_simulation(simulation_id).orchestrator
    if not orch.set_cascade_control(toggle.enabled):
        raise HTTPException(status_code=409, detail="Emergency mode active")
    return {
        "enabled": orch.cascade_enabled,
        "type": orch.cascade_type.value,
        "loop_modes": orch.loop_modes(),
    }


@router.post("/{simulation_id}/cascade/type")
async def set_cascade_type(simulation_id: UUID, update: CascadeTypeUpdate):
    """Select which loop the cascade drives."""
    orch = _get_simulation(simulation_id).orchestrator
    orch.set_cascade_control_type(update.type)
    return {
        "enabled": orch.cascade_enabled,
        "type": orch.cascade_type.value,
        "loop_modes": orch.loop_modes(),
    }


@router.post("/{simulation_id}/cascade/setpoint")
async def set_cascade_setpoint(simulation_id: UUID, update: CascadeSetpoint):
    """Move the cascade's primary setpoint."""
    orch = _get_simulation(simulation_id).orchestrator
    orch.update_cascade_setpoint(update.setpoint)
    return {"primary_setpoint": orch.cascade.primary_setpoint}


@router.get("/{simulation_id}/cascade/parameters")
async def get_cascade_parameters(simulation_id: UUID):
    """Gains of the primary and secondary cascade controllers."""
    return _get_simulation(simulation_id).orchestrator.cascade_parameters


@router.post("/{simulation_id}/cascade/parameters")
async def update_cascade_parameters(simulation_id: UUID, params: CascadeParameters):
    """Change the gains of one cascade stage; omitted gains are kept."""
    orch = _get_simulation(simulation_id).orchestrator
    orch.update_cascade_parameters(params.controller.value, params.kp, params.ki, params.kd)
    return orch.cascade_parameters


@router.post("/{simulation_id}/autotune")
async def start_auto_tune(simulation_id: UUID, request: AutoTuneRequest):
    """Start tuning a loop; tuned gains are applied after a short delay."""
    _get_simulation(simulation_id)
    session = await manager.start_auto_tune(simulation_id, request.loop)
    if session is None:
        raise HTTPException(
            status_code=409,
            detail="Auto-tune unavailable: simulation not running, emergency active, or tune in progress",
        )
    return session
