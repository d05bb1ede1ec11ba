"""
Seeded pseudo-random generation as pure state-passing functions.

Each call takes the generator state and returns (value, next_state), so a
simulation run owns its state outright and runs can execute in any order
or in parallel with identical results.
"""

import math
from typing import Tuple

MODULUS = 2**32
MULTIPLIER = 1664525
INCREMENT = 1013904223

# Smallest uniform draw fed to log(); keeps Box-Muller finite
MIN_UNIFORM = 1.0 / MODULUS


def seed_for_run(run_index: int, multiplier: int = 12345, offset: int = 67890) -> int:
    """Initial state for a simulation run, dependent only on its index"""
    return (run_index * multiplier + offset) % MODULUS


def next_uniform(state: int) -> Tuple[float, int]:
    """Linear congruential step: uniform value in [0, 1) and the new state"""
    next_state = (state * MULTIPLIER + INCREMENT) % MODULUS
    return next_state / MODULUS, next_state


def next_normal(state: int, mean: float, std_dev: float) -> Tuple[float, int]:
    """Box-Muller transform over two uniform draws"""
    u1, state = next_uniform(state)
    u2, state = next_uniform(state)
    z0 = math.sqrt(-2.0 * math.log(max(u1, MIN_UNIFORM))) * math.cos(2.0 * math.pi * u2)
    return mean + z0 * std_dev, state
