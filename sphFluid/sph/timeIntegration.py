# -- SPH Time Integration -- #

'''
Explicit time stepping of the movable particles.

The fluid uses a semi-implicit (symplectic) Euler update: the
accelerations of the current step kick the velocities, and the
positions then move with the kicked velocities. Fixed particles are
skipped entirely, so their position and velocity never change.
'''

from __future__ import annotations

from typing import Protocol

from sphFluid.sph.particles import ParticleSystem


class TimeIntegrator(Protocol):
    '''Advances the movable particles of a system in place.'''

    def integrate(self, particles: ParticleSystem, dt: float) -> None:
        ...


class SymplecticEuler:
    '''
    Kick-drift Euler update on the movable mask.

        v <- v + dt * a
        x <- x + dt * v
    '''

    def integrate(self, particles: ParticleSystem, dt: float) -> None:
        '''
        Apply one kick-drift update.

        Parameters:
        -----------
        particles : ParticleSystem
            System with accelerations from the current step
        dt : float
            Step size
        '''
        movable = particles.movable

        particles.velocities[movable] += dt * particles.accelerations[movable]
        particles.positions[movable] += dt * particles.velocities[movable]
