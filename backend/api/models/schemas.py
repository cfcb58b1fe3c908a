"""Pydantic schemas for API request/response models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from backend.core.config import settings
from dieselsim.core.plant_state import CascadeType, ControlLoop


class SimulationStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    FAILED = "failed"
    STOPPED = "stopped"


class CascadeStage(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class SimulationCreate(BaseModel):
    """Request to start a new simulation."""
    realtime_factor: float = Field(default=settings.DEFAULT_REALTIME_FACTOR, ge=0.1, le=100.0)
    simulation_speed: float = Field(default=1.0, gt=0.0, le=100.0)
    noise_seed: int | None = Field(default=None, description="Seed for reproducible process noise")


class SimulationResponse(BaseModel):
    """Response after creating a simulation."""
    id: UUID
    status: SimulationStatus
    created_at: datetime


class Emissions(BaseModel):
    co2: float = Field(description="CO2 emission rate")
    nox: float = Field(description="NOx concentration")
    particulates: float = Field(description="Particulate matter")


class PlantState(BaseModel):
    """Diesel plant actuators and measured variables."""
    fuel_injection_rate: float = Field(description="Fuel injection rate (%)")
    load: float = Field(description="Electrical load demand (%)")
    cooling_system_power: float = Field(description="Cooling system power (%)")
    generator_excitation: float = Field(description="Generator excitation (%)")
    maintenance_status: float = Field(description="Maintenance condition (%)")
    engine_temperature: float = Field(description="Engine temperature (C)")
    power_output: float = Field(description="Electrical power output (MW)")
    efficiency: float = Field(description="Efficiency (%)")
    fuel_consumption: float = Field(description="Fuel consumption (L/h)")
    emissions: Emissions
    time: float = Field(description="Simulated time (s)")


class SimulationState(BaseModel):
    """Full simulation state snapshot."""
    simulation_id: UUID
    status: SimulationStatus
    simulation_time: float = Field(description="Elapsed simulation time (s)")
    running: bool
    simulation_speed: float
    emergency_mode: bool
    plant: PlantState
    alerts: list[str]
    loop_modes: dict[str, str]
    auto_control: dict[str, dict]
    pid_parameters: dict[str, dict]
    controller_outputs: dict[str, float]
    controller_history: dict[str, list[dict]]
    cascade: dict
    history: dict[str, list[dict]]
    auto_tune: dict | None = None


class ManualControl(BaseModel):
    """Manual actuator settings; omitted fields are left unchanged."""
    fuel_injection_rate: float | None = Field(default=None, ge=0.0, le=100.0)
    load: float | None = Field(default=None, ge=0.0, le=100.0)
    cooling_system_power: float | None = Field(default=None, ge=0.0, le=100.0)
    generator_excitation: float | None = Field(default=None, ge=0.0, le=100.0)
    maintenance_status: float | None = Field(default=None, ge=0.0, le=100.0)


class AutoControlUpdate(BaseModel):
    loop: ControlLoop
    enabled: bool
    target: float | None = None


class PIDParameters(BaseModel):
    loop: ControlLoop
    kp: float | None = None
    ki: float | None = None
    kd: float | None = None


class CascadeToggle(BaseModel):
    enabled: bool


class CascadeTypeUpdate(BaseModel):
    type: CascadeType


class CascadeSetpoint(BaseModel):
    setpoint: float


class CascadeParameters(BaseModel):
    controller: CascadeStage
    kp: float | None = None
    ki: float | None = None
    kd: float | None = None


class SpeedUpdate(BaseModel):
    simulation_speed: float = Field(gt=0.0, le=100.0)


class AutoTuneRequest(BaseModel):
    loop: ControlLoop
