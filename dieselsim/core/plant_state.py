"""Plant state and control-loop definitions."""

from dataclasses import asdict, dataclass, field
from enum import Enum

from dieselsim.physics.diesel_engine import ENGINE_CONSTANTS, Emissions


class ControlLoop(str, Enum):
    """Physical loops; each measured variable is driven by one actuator."""
    TEMPERATURE = "temperature"     # engine temperature <- cooling system power
    POWER = "power"                 # power output <- fuel injection rate
    EFFICIENCY = "efficiency"       # efficiency <- generator excitation


class CascadeType(str, Enum):
    TEMPERATURE_COOLING = "temperature-cooling"
    POWER_FUEL = "power-fuel"
    EFFICIENCY_EXCITATION = "efficiency-excitation"


class LoopMode(str, Enum):
    MANUAL = "manual"
    AUTO_PID = "auto_pid"
    CASCADE = "cascade"


class EmergencyExitPolicy(str, Enum):
    MANUAL = "manual"       # every loop stays in Manual after the override
    RESTORE = "restore"     # selection in force before the override comes back


CASCADE_LOOP = {
    CascadeType.TEMPERATURE_COOLING: ControlLoop.TEMPERATURE,
    CascadeType.POWER_FUEL: ControlLoop.POWER,
    CascadeType.EFFICIENCY_EXCITATION: ControlLoop.EFFICIENCY,
}

# loop -> (measured PlantState field, actuator PlantState field, controller output key)
LOOP_WIRING = {
    ControlLoop.TEMPERATURE: ("engine_temperature", "cooling_system_power", "cooling"),
    ControlLoop.POWER: ("power_output", "fuel_injection_rate", "fuel"),
    ControlLoop.EFFICIENCY: ("efficiency", "generator_excitation", "excitation"),
}


@dataclass
class PlantState:
    # Actuators / inputs (0-100)
    fuel_injection_rate: float = 70.0
    load: float = 80.0
    cooling_system_power: float = 60.0
    generator_excitation: float = 80.0
    maintenance_status: float = 100.0

    # Measured outputs
    engine_temperature: float = ENGINE_CONSTANTS["ambient_temp"]
    power_output: float = 0.0
    efficiency: float = 0.0
    fuel_consumption: float = 0.0
    emissions: Emissions = field(default_factory=Emissions)

    # Simulated seconds since start
    time: float = 0.0

    def copy(self) -> "PlantState":
        return PlantState(**{**asdict(self), "emissions": Emissions(**asdict(self.emissions))})

    def get_state(self) -> dict:
        return {
            "fuel_injection_rate": round(self.fuel_injection_rate, 3),
            "load": round(self.load, 3),
            "cooling_system_power": round(self.cooling_system_power, 3),
            "generator_excitation": round(self.generator_excitation, 3),
            "maintenance_status": round(self.maintenance_status, 3),
            "engine_temperature": round(self.engine_temperature, 3),
            "power_output": round(self.power_output, 3),
            "efficiency": round(self.efficiency, 3),
            "fuel_consumption": round(self.fuel_consumption, 3),
            "emissions": self.emissions.as_dict(),
            "time": round(self.time, 3),
        }
