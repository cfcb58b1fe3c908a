"""Unit tests for the diesel engine plant model."""

import pytest

from dieselsim.physics.diesel_engine import (
    ENGINE_CONSTANTS,
    NOISE_BOUNDS,
    calculate_efficiency,
    calculate_emissions,
    calculate_fuel_consumption,
    calculate_power_output,
    calculate_temperature,
    net_heat,
    startup_factor,
    temperature_derating,
)
from dieselsim.physics.noise import UniformNoise, ZeroNoise


class TestPowerOutput:
    def test_steady_state_value(self):
        power = calculate_power_output(70, 80, 80, 80, 100, 10.0, ZeroNoise())
        # 25 MW * 0.70 * (0.7 + 0.3 * 0.8)
        assert power == pytest.approx(16.45)

    def test_steady_state_with_noise(self):
        noise = UniformNoise(seed=7)
        for _ in range(200):
            power = calculate_power_output(70, 80, 80, 80, 100, 30.0, noise)
            assert 16.45 - NOISE_BOUNDS["power"] <= power <= 16.45 + NOISE_BOUNDS["power"]

    def test_startup_ramp(self):
        half = calculate_power_output(70, 80, 80, 80, 100, 5.0, ZeroNoise())
        assert half == pytest.approx(16.45 / 2)
        assert calculate_power_output(70, 80, 80, 80, 100, 0.0, ZeroNoise()) == 0.0

    def test_capped_by_load_demand(self):
        noise = UniformNoise(seed=1)
        cap = ENGINE_CONSTANTS["max_power"] * 10 / 100
        for _ in range(200):
            power = calculate_power_output(100, 10, 80, 100, 100, 20.0, noise)
            assert 0.0 <= power <= cap

    def test_never_negative(self):
        noise = UniformNoise(seed=3)
        for _ in range(200):
            assert calculate_power_output(0, 80, 25, 0, 0, 20.0, noise) >= 0.0

    def test_overheat_derating(self):
        assert temperature_derating(80) == 1.0
        assert temperature_derating(95) == pytest.approx(0.8)
        assert temperature_derating(200) == 0.0
        hot = calculate_power_output(70, 80, 95, 80, 100, 10.0, ZeroNoise())
        assert hot == pytest.approx(16.45 * 0.8)

    def test_startup_factor_bounds(self):
        assert startup_factor(-1.0) == 0.0
        assert startup_factor(ENGINE_CONSTANTS["startup_duration"] * 3) == 1.0


class TestFuelConsumption:
    def test_proportional_to_fuel_rate(self):
        assert calculate_fuel_consumption(70, 80, 40, ZeroNoise()) == pytest.approx(59.5)

    def test_ignores_load_and_efficiency(self):
        a = calculate_fuel_consumption(50, 10, 5, ZeroNoise())
        b = calculate_fuel_consumption(50, 90, 45, ZeroNoise())
        assert a == b

    def test_never_negative(self):
        noise = UniformNoise(seed=11)
        for _ in range(100):
            assert calculate_fuel_consumption(0, 0, 0, noise) >= 0.0


class TestTemperature:
    def test_first_order_step(self):
        new_temp = calculate_temperature(80, 70, 60, 80, 1.0, ZeroNoise())
        expected = 80 + net_heat(80, 70, 60, 80) / ENGINE_CONSTANTS["thermal_mass"]
        assert new_temp == pytest.approx(expected)

    def test_heats_from_ambient(self):
        assert calculate_temperature(25, 70, 60, 80, 1.0, ZeroNoise()) > 25

    def test_floored_at_ambient(self):
        assert calculate_temperature(25, 0, 100, 0, 10.0, ZeroNoise()) == ENGINE_CONSTANTS["ambient_temp"]

    def test_zero_dt_holds(self):
        assert calculate_temperature(60, 100, 0, 100, 0.0, ZeroNoise()) == 60


class TestEfficiency:
    def test_near_optimum(self):
        # Only the fuel deviation from 75% costs efficiency
        assert calculate_efficiency(80, 70, 80, 100, ZeroNoise()) == pytest.approx(44.6)

    def test_hot_engine_penalty(self):
        cool = calculate_efficiency(80, 75, 80, 100, ZeroNoise())
        hot = calculate_efficiency(100, 75, 80, 100, ZeroNoise())
        assert cool - hot == pytest.approx(5.0)

    def test_clipped(self):
        noise = UniformNoise(seed=5)
        for _ in range(100):
            low = calculate_efficiency(300, 0, 0, 0, noise)
            high = calculate_efficiency(25, 75, 80, 100, noise)
            assert low == ENGINE_CONSTANTS["min_efficiency"]
            assert 5.0 <= high <= ENGINE_CONSTANTS["ideal_peak_efficiency"]


class TestEmissions:
    def test_nominal(self):
        e = calculate_emissions(70, 80, 45, ZeroNoise())
        assert e.co2 == pytest.approx(140.0)
        assert e.nox == pytest.approx(35.0)
        assert e.particulates == pytest.approx(7.0)

    def test_nox_rises_when_hot(self):
        e = calculate_emissions(70, 95, 45, ZeroNoise())
        assert e.nox == pytest.approx(35.0 + 2.0 * 10)

    def test_particulate_floor(self):
        e = calculate_emissions(0, 25, 45, ZeroNoise())
        assert e.particulates == ENGINE_CONSTANTS["min_particulates"]
        assert e.co2 >= 0.0
        assert e.nox >= 0.0

    def test_as_dict(self):
        d = calculate_emissions(70, 80, 45, ZeroNoise()).as_dict()
        assert set(d) == {"co2", "nox", "particulates"}
