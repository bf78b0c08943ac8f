# -- Shared Test Fixtures -- #

'''
Fixtures shared by the sphFluid test suite.
'''

from __future__ import annotations

import numpy as np
import pytest

from sphFluid.sph.particles import ParticleSystem


@pytest.fixture
def rng() -> np.random.Generator:
    '''Seeded random generator.'''
    return np.random.default_rng(12345)


@pytest.fixture
def randomSystem(rng) -> ParticleSystem:
    '''
    30 particles scattered in a 4 x 4 x 4 box with random velocities.

    Densities are set to plausible positive values and pressures to
    non-negative values so kernel operators can be evaluated before a
    full step.
    '''
    n = 30
    positions = rng.uniform(0.0, 4.0, size=(n, 3))
    velocities = rng.normal(0.0, 0.5, size=(n, 3))
    masses = rng.uniform(0.5, 1.5, size=n)
    movable = rng.random(n) > 0.2

    system = ParticleSystem.fromArrays(positions, masses, movable, velocities)
    system.densities[:] = rng.uniform(0.5, 2.0, size=n)
    system.pressures[:] = rng.uniform(0.0, 10.0, size=n)
    return system


@pytest.fixture
def latticeSystem() -> ParticleSystem:
    '''Unit-spaced 5 x 5 x 5 lattice at rest, all movable.'''
    return ParticleSystem.createUniform(np.array([10.0, 10.0, 10.0]), (5, 5, 5), spacing=1.0)
