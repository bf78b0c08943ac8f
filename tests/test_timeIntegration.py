# -- Time Integration Tests -- #

'''
Tests for the symplectic Euler integrator.
'''

from __future__ import annotations

import numpy as np

from sphFluid.sph.particles import ParticleSystem
from sphFluid.sph.timeIntegration import SymplecticEuler


def _system() -> ParticleSystem:
    system = ParticleSystem.fromArrays(
        np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]), 1.0,
        movable=np.array([True, False]),
        velocities=np.array([[1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
    )
    system.accelerations[:] = [0.0, -10.0, 0.0]
    return system


def test_kickThenDrift():
    system = _system()
    SymplecticEuler().integrate(system, 0.5)

    np.testing.assert_allclose(system.velocities[0], [1.0, -5.0, 0.0])
    # Drift uses the updated velocity
    np.testing.assert_allclose(system.positions[0], [0.5, -2.5, 0.0])


def test_fixedParticlesUntouched():
    system = _system()
    SymplecticEuler().integrate(system, 0.5)

    np.testing.assert_array_equal(system.velocities[1], [1.0, 0.0, 0.0])
    np.testing.assert_array_equal(system.positions[1], [1.0, 1.0, 1.0])


def test_zeroStepIsIdentity():
    system = _system()
    before = system.copy()
    SymplecticEuler().integrate(system, 0.0)

    np.testing.assert_array_equal(system.positions, before.positions)
    np.testing.assert_array_equal(system.velocities, before.velocities)
