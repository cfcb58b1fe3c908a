"""Diesel generator set plant model.

Empirical, deliberately simplified model of a large stationary diesel engine
driving a synchronous generator. Each function maps actuator settings and
prior state to one measured process variable. Apart from a final bounded
additive noise term (synthetic process noise), every function is
deterministic.

Inputs are percentages on a 0-100 scale unless noted; temperature is in °C,
time and dt in seconds. Nothing here validates, raises or blocks.
"""

from dataclasses import dataclass

import numpy as np

from dieselsim.physics.noise import NoiseSource, UniformNoise


ENGINE_CONSTANTS = {
    "max_power": 25.0,               # MW at full fuel, load and excitation
    "startup_duration": 10.0,        # s, linear power ramp after start
    "ambient_temp": 25.0,            # °C
    "derating_temp": 85.0,           # °C, power derating starts above this
    "derating_rate": 0.02,           # fraction of power lost per °C above derating_temp
    "max_fuel_consumption": 85.0,    # L/h at 100% fuel injection
    "thermal_mass": 1000.0,          # kJ/°C, engine block + coolant
    "heat_from_fuel": 4000.0,        # kW at 100% fuel injection
    "heat_from_load": 1200.0,        # kW at 100% load
    "cooling_capacity": 4000.0,      # kW at 100% cooling power
    "natural_loss_coeff": 25.0,      # kW/°C to ambient
    "ideal_peak_efficiency": 45.0,   # %
    "min_efficiency": 5.0,           # %
    "efficiency_temp_threshold": 90.0,  # °C
    "efficiency_temp_penalty": 0.5,  # % per °C above threshold
    "optimal_load": 80.0,            # %
    "load_penalty": 0.1,             # % per % load away from optimal
    "optimal_fuel": 75.0,            # %
    "fuel_penalty": 0.08,            # % per % fuel away from optimal
    "co2_per_fuel": 2.0,             # t/h per % fuel at peak efficiency
    "nox_per_fuel": 0.5,             # ppm per % fuel
    "nox_temp_threshold": 85.0,      # °C
    "nox_per_degree": 2.0,           # ppm per °C above threshold
    "particulates_per_fuel": 0.1,    # mg/Nm3 per % fuel
    "min_particulates": 0.1,
}

# Half-widths of the uniform noise added to each quantity
NOISE_BOUNDS = {
    "power": 0.1,          # MW
    "fuel": 0.5,           # L/h
    "temperature": 0.05,   # °C/s
    "efficiency": 0.5,     # %
    "co2": 2.0,
    "nox": 1.0,
    "particulates": 0.2,
}

_default_noise = UniformNoise()

C = ENGINE_CONSTANTS


@dataclass
class Emissions:
    co2: float = 0.0
    nox: float = 0.0
    particulates: float = 0.0

    def as_dict(self) -> dict:
        return {
            "co2": round(self.co2, 3),
            "nox": round(self.nox, 3),
            "particulates": round(self.particulates, 3),
        }


def _excitation_factor(excitation: float) -> float:
    return 0.7 + 0.3 * excitation / 100.0


def _maintenance_factor(maintenance: float) -> float:
    return 0.7 + 0.3 * maintenance / 100.0


def startup_factor(time: float) -> float:
    """Fraction of rated capability available `time` seconds after start."""
    if C["startup_duration"] <= 0:
        return 1.0
    return min(1.0, max(time, 0.0) / C["startup_duration"])


def temperature_derating(temperature: float) -> float:
    if temperature <= C["derating_temp"]:
        return 1.0
    return max(0.0, 1.0 - C["derating_rate"] * (temperature - C["derating_temp"]))


def calculate_power_output(
    fuel: float,
    load: float,
    temperature: float,
    excitation: float,
    maintenance: float,
    time: float,
    noise: NoiseSource | None = None,
) -> float:
    """Electrical output in MW.

    Capability from fuel and the startup ramp, derated by excitation,
    maintenance and overheating, is capped by what the load demands.
    The noisy result never leaves [0, load demand].
    """
    noise = noise or _default_noise

    available = C["max_power"] * fuel / 100.0 * startup_factor(time)
    capability = (
        available
        * _excitation_factor(excitation)
        * _maintenance_factor(maintenance)
        * temperature_derating(temperature)
    )
    demand = C["max_power"] * load / 100.0

    power = min(capability, demand) + noise.uniform(NOISE_BOUNDS["power"])
    return float(np.clip(power, 0.0, max(demand, 0.0)))


def calculate_fuel_consumption(
    fuel: float,
    load: float,
    efficiency: float,
    noise: NoiseSource | None = None,
) -> float:
    """Fuel consumption in L/h.

    Fuel-rate-only formulation: load and efficiency are accepted to keep the
    call shape stable but do not enter the result.
    """
    noise = noise or _default_noise
    consumption = C["max_fuel_consumption"] * fuel / 100.0
    return max(0.0, consumption + noise.uniform(NOISE_BOUNDS["fuel"]))


def net_heat(current_temp: float, fuel: float, cooling: float, load: float) -> float:
    """Net heat flow into the engine in kW (first-order thermal balance)."""
    heat_in = C["heat_from_fuel"] * fuel / 100.0 + C["heat_from_load"] * load / 100.0
    cooling_removal = C["cooling_capacity"] * cooling / 100.0
    natural_loss = C["natural_loss_coeff"] * (current_temp - C["ambient_temp"])
    return heat_in - cooling_removal - natural_loss


def calculate_temperature(
    current_temp: float,
    fuel: float,
    cooling: float,
    load: float,
    dt: float,
    noise: NoiseSource | None = None,
) -> float:
    """Engine temperature in °C after dt seconds, never below ambient."""
    noise = noise or _default_noise
    rate = net_heat(current_temp, fuel, cooling, load) / C["thermal_mass"]
    new_temp = current_temp + (rate + noise.uniform(NOISE_BOUNDS["temperature"])) * dt
    return max(C["ambient_temp"], new_temp)


def calculate_efficiency(
    temperature: float,
    fuel: float,
    load: float,
    maintenance: float,
    noise: NoiseSource | None = None,
) -> float:
    """Thermal-to-electric efficiency in %."""
    noise = noise or _default_noise

    efficiency = C["ideal_peak_efficiency"]
    if temperature > C["efficiency_temp_threshold"]:
        efficiency -= C["efficiency_temp_penalty"] * (temperature - C["efficiency_temp_threshold"])
    efficiency -= C["load_penalty"] * abs(load - C["optimal_load"])
    efficiency -= C["fuel_penalty"] * abs(fuel - C["optimal_fuel"])
    efficiency *= _maintenance_factor(maintenance)
    efficiency += noise.uniform(NOISE_BOUNDS["efficiency"])

    return float(np.clip(efficiency, C["min_efficiency"], C["ideal_peak_efficiency"]))


def calculate_emissions(
    fuel: float,
    temperature: float,
    efficiency: float,
    noise: NoiseSource | None = None,
) -> Emissions:
    """CO2, NOx and particulate emission rates."""
    noise = noise or _default_noise
    peak = C["ideal_peak_efficiency"]

    # Running below peak efficiency burns more fuel per MWh
    co2 = C["co2_per_fuel"] * fuel * (1.0 + 0.5 * (peak - efficiency) / peak)
    nox = C["nox_per_fuel"] * fuel + C["nox_per_degree"] * max(
        0.0, temperature - C["nox_temp_threshold"]
    )
    particulates = C["particulates_per_fuel"] * fuel

    return Emissions(
        co2=max(0.0, co2 + noise.uniform(NOISE_BOUNDS["co2"])),
        nox=max(0.0, nox + noise.uniform(NOISE_BOUNDS["nox"])),
        particulates=max(
            C["min_particulates"], particulates + noise.uniform(NOISE_BOUNDS["particulates"])
        ),
    )
