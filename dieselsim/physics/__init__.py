"""Diesel power plant physics simulation modules.

Modules:
    diesel_engine: Empirical engine/generator model (power, fuel, temperature,
        efficiency, emissions)
    noise: Injectable bounded process-noise sources
"""
