# -- SPH Particle System -- #

'''
Particle data model for the SPH fluid engine.

A single Particle record is used for construction and snapshots; the
simulation itself stores every quantity in contiguous NumPy arrays
(ParticleSystem) so the per-step passes can be vectorized. Movable
(fluid) and fixed (boundary/anchor) particles share the same arrays,
distinguished by the movable mask.
'''

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence

import numpy as np

from sphFluid.sph.protocols import ConfigurationError


######################################################################
# -- Particle Record -- #
######################################################################

@dataclass
class Particle:
    '''
    A single SPH particle.

    Density and pressure are NaN until the first completed step.

    Parameters:
    -----------
    position : np.ndarray
        Position, shape (3,)
    velocity : np.ndarray
        Velocity, shape (3,)
    acceleration : np.ndarray
        Acceleration from the last step, shape (3,)
    mass : float
        Particle mass (> 0, fixed at creation)
    density : float
        Density from the last step
    pressure : float
        Pressure from the last step
    movable : bool
        False for static boundary/anchor particles
    '''

    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    acceleration: np.ndarray = field(default_factory=lambda: np.zeros(3))
    mass: float = 1.0
    density: float = float('nan')
    pressure: float = float('nan')
    movable: bool = True

    @classmethod
    def create(cls, position, mass: float = 1.0, movable: bool = True) -> Particle:
        '''Particle at rest with undefined density and pressure.'''
        return cls(position=np.asarray(position, dtype=float), mass=float(mass), movable=bool(movable))


class Attribute(Enum):
    '''Particle attributes a kernel operator can take as its subject.'''

    MASS = 'masses'
    DENSITY = 'densities'
    PRESSURE = 'pressures'
    VELOCITY = 'velocities'


######################################################################
# -- Particle System (Struct of Arrays) -- #
######################################################################

@dataclass
class ParticleSystem:
    '''
    SPH particle system state.

    Vector quantities have shape (nParticles, 3), scalar quantities
    shape (nParticles,). Index order is stable between steps.

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions, shape (N, 3)
    velocities : np.ndarray
        Particle velocities, shape (N, 3)
    accelerations : np.ndarray
        Particle accelerations, shape (N, 3)
    masses : np.ndarray
        Particle masses, shape (N,)
    densities : np.ndarray
        Particle densities, shape (N,)
    pressures : np.ndarray
        Particle pressures, shape (N,)
    movable : np.ndarray
        Boolean mask: True for integrated particles, shape (N,)
    '''

    positions: np.ndarray
    velocities: np.ndarray
    accelerations: np.ndarray
    masses: np.ndarray
    densities: np.ndarray
    pressures: np.ndarray
    movable: np.ndarray

    def __len__(self) -> int:
        return self.positions.shape[0]

    def __getitem__(self, i: int) -> Particle:
        return self.particle(i)

    def __iter__(self) -> Iterator[Particle]:
        for i in range(len(self)):
            yield self.particle(i)

    @property
    def nParticles(self) -> int:
        '''Total number of particles (movable + fixed).'''
        return self.positions.shape[0]

    @property
    def nMovable(self) -> int:
        '''Number of movable particles.'''
        return int(np.sum(self.movable))

    @property
    def nFixed(self) -> int:
        '''Number of fixed (boundary/anchor) particles.'''
        return self.nParticles - self.nMovable

    def attribute(self, attribute: Attribute) -> np.ndarray:
        '''Backing array for a kernel subject attribute.'''
        return getattr(self, attribute.value)

    def particle(self, i: int) -> Particle:
        '''
        Snapshot of particle i as a Particle record.

        The returned arrays are copies; mutating them does not
        affect the system.
        '''
        return Particle(
            position=self.positions[i].copy(),
            velocity=self.velocities[i].copy(),
            acceleration=self.accelerations[i].copy(),
            mass=float(self.masses[i]),
            density=float(self.densities[i]),
            pressure=float(self.pressures[i]),
            movable=bool(self.movable[i]),
        )

    def validate(self) -> None:
        '''
        Check array shapes and masses.

        Raises:
        -------
        ConfigurationError : On mismatched shapes, a non-boolean movable
            mask or non-positive mass
        '''
        n = self.positions.shape[0] if self.positions.ndim == 2 else -1
        if self.positions.ndim != 2 or self.positions.shape[1] != 3:
            raise ConfigurationError(f'positions must have shape (N, 3), got {self.positions.shape}')
        for name in ('velocities', 'accelerations'):
            if getattr(self, name).shape != (n, 3):
                raise ConfigurationError(f'{name} must have shape ({n}, 3)')
        for name in ('masses', 'densities', 'pressures', 'movable'):
            if getattr(self, name).shape != (n,):
                raise ConfigurationError(f'{name} must have shape ({n},)')
        if self.movable.dtype != np.bool_:
            raise ConfigurationError(f'movable must be a boolean mask, got dtype {self.movable.dtype}')
        if not np.all(np.isfinite(self.positions)):
            raise ConfigurationError('particle positions must be finite')
        if not np.all(np.isfinite(self.masses) & (self.masses > 0.0)):
            raise ConfigurationError('particle masses must be positive and finite')

    def copy(self) -> ParticleSystem:
        '''Deep copy of every array.'''
        return ParticleSystem(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            accelerations=self.accelerations.copy(),
            masses=self.masses.copy(),
            densities=self.densities.copy(),
            pressures=self.pressures.copy(),
            movable=self.movable.copy(),
        )

    def readOnlyView(self) -> ParticleSystem:
        '''
        System sharing this system's memory with every array read-only.

        Reflects later in-place updates; writes through it raise
        ValueError.
        '''
        views = {}
        for name in ('positions', 'velocities', 'accelerations', 'masses',
                     'densities', 'pressures', 'movable'):
            view = getattr(self, name).view()
            view.flags.writeable = False
            views[name] = view
        return ParticleSystem(**views)

    def append(self, other: ParticleSystem) -> None:
        '''Append another system's particles, keeping existing indices.'''
        for name in ('positions', 'velocities', 'accelerations', 'masses',
                     'densities', 'pressures', 'movable'):
            setattr(self, name, np.concatenate([getattr(self, name), getattr(other, name)]))

    ######################################################################
    # -- Diagnostics -- #
    ######################################################################

    def totalMass(self) -> float:
        '''Sum of all particle masses.'''
        return float(np.sum(self.masses))

    def kineticEnergy(self) -> float:
        '''
        Kinetic energy of movable particles.

        KE = (1/2) * sum_i m_i * |v_i|^2

        Returns:
        --------
        float : Kinetic energy
        '''
        vels = self.velocities[self.movable]
        speedsSq = np.sum(vels * vels, axis=1)
        return float(0.5 * np.sum(self.masses[self.movable] * speedsSq))

    def maxSpeed(self) -> float:
        '''Maximum speed among movable particles.'''
        vels = self.velocities[self.movable]
        if len(vels) == 0:
            return 0.0
        return float(np.max(np.linalg.norm(vels, axis=1)))

    def maxDensityError(self, restDensity: float) -> float:
        '''
        Maximum relative density error among movable particles.

        Returns max |rho_i - rho_0| / rho_0, or 0 when no densities
        have been computed yet.
        '''
        densities = self.densities[self.movable]
        densities = densities[np.isfinite(densities)]
        if len(densities) == 0:
            return 0.0
        return float(np.max(np.abs(densities - restDensity)) / restDensity)

    def meanMovablePosition(self) -> np.ndarray:
        '''Centroid of the movable particles (zero vector if there are none).'''
        if not np.any(self.movable):
            return np.zeros(3)
        return self.positions[self.movable].mean(axis=0)

    ######################################################################
    # -- Factories -- #
    ######################################################################

    @classmethod
    def empty(cls) -> ParticleSystem:
        '''System with no particles.'''
        return cls.fromArrays(np.zeros((0, 3)), np.zeros(0))

    @classmethod
    def fromArrays(
        cls,
        positions: np.ndarray,
        masses: np.ndarray | float,
        movable: np.ndarray | bool = True,
        velocities: np.ndarray | None = None,
    ) -> ParticleSystem:
        '''
        Build a system from positions and per-particle (or uniform) mass.

        Density and pressure start as NaN.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, 3)
        masses : np.ndarray | float
            Per-particle masses or a single mass for all
        movable : np.ndarray | bool
            Per-particle movable flags or a single flag for all
        velocities : np.ndarray | None
            Initial velocities (zero if omitted)

        Returns:
        --------
        ParticleSystem : New particle system
        '''
        positions = np.array(positions, dtype=float).reshape(-1, 3)
        n = positions.shape[0]
        return cls(
            positions=positions,
            velocities=(np.zeros((n, 3)) if velocities is None
                        else np.array(velocities, dtype=float).reshape(n, 3)),
            accelerations=np.zeros((n, 3)),
            masses=np.broadcast_to(np.asarray(masses, dtype=float), (n,)).copy(),
            densities=np.full(n, np.nan),
            pressures=np.full(n, np.nan),
            movable=np.broadcast_to(np.asarray(movable, dtype=bool), (n,)).copy(),
        )

    @classmethod
    def fromParticles(cls, particles: Sequence[Particle]) -> ParticleSystem:
        '''Pack a sequence of Particle records into arrays.'''
        if len(particles) == 0:
            return cls.empty()

        return cls(
            positions=np.array([p.position for p in particles], dtype=float).reshape(-1, 3),
            velocities=np.array([p.velocity for p in particles], dtype=float).reshape(-1, 3),
            accelerations=np.array([p.acceleration for p in particles], dtype=float).reshape(-1, 3),
            masses=np.array([p.mass for p in particles], dtype=float),
            densities=np.array([p.density for p in particles], dtype=float),
            pressures=np.array([p.pressure for p in particles], dtype=float),
            movable=np.array([p.movable for p in particles], dtype=bool),
        )

    @classmethod
    def createUniform(
        cls,
        lower: np.ndarray,
        counts: tuple[int, int, int],
        spacing: float,
        mass: float = 1.0,
        movable: bool = True,
    ) -> ParticleSystem:
        '''
        Create a uniform cubic lattice of particles.

        Parameters:
        -----------
        lower : np.ndarray
            Position of the first lattice site, shape (3,)
        counts : tuple[int, int, int]
            Number of sites along x, y and z
        spacing : float
            Lattice spacing
        mass : float
            Mass of every particle
        movable : bool
            Movable flag of every particle

        Returns:
        --------
        ParticleSystem : Lattice particle system, x-major ordering
        '''
        axes = [np.asarray(lower, dtype=float)[d] + spacing * np.arange(counts[d]) for d in range(3)]
        xx, yy, zz = np.meshgrid(axes[0], axes[1], axes[2], indexing='ij')
        positions = np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()])
        return cls.fromArrays(positions, mass, movable)
