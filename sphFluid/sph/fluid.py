# -- SPH Fluid -- #

'''
Explicit SPH fluid: owns the particles and advances them in time.

Algorithm per time step:
    1. Build a periodic grid index over the current positions
       (cell size 2h, fixed resolution)
    2. Query every particle's neighborhood within 2h
    3. Compute densities by SPH summation, then pressures from the
       clipped linear equation of state
           p = max(0, k * (rho / rho_0 - 1))
    4. Compute accelerations
           a = g + nu * Laplacian(v) - (1 / rho) * grad(p)
    5. Integrate movable particles (symplectic Euler)

Each pass computes its results for all particles into separate
arrays from state that is fixed for the pass, and only then writes
them back; no pass reads a value written by the same pass.

stepSlow() runs the identical algorithm with an all-pairs O(N^2)
neighbor search and serves as the reference for step().

Negative pressures are clipped to zero, so particles never attract
each other through the pressure term.

References:
-----------
Monaghan (1992) -- Smoothed Particle Hydrodynamics
Morris et al. (1997) -- Modeling low Reynolds number incompressible flows
'''

from __future__ import annotations

import dataclasses
import math
from typing import Sequence

import numpy as np

from sphFluid import constants as const
from sphFluid.sph.protocols import (
    ConfigurationError,
    FluidParams,
    NeighborSearch,
    SimulationConfig,
    SimulationState,
)
from sphFluid.sph.kernels import CubicSplineKernel
from sphFluid.sph.particles import Attribute, Particle, ParticleSystem
from sphFluid.sph.neighborSearch import AllPairsSearch, Neighborhoods, PeriodicGridIndex
from sphFluid.sph.timeIntegration import SymplecticEuler, TimeIntegrator


def _asParticleSystem(particles: ParticleSystem | Sequence[Particle]) -> ParticleSystem:
    '''Owned copy of the given particles as a validated ParticleSystem.'''
    if isinstance(particles, ParticleSystem):
        system = particles.copy()
    else:
        system = ParticleSystem.fromParticles(list(particles))
    system.validate()
    return system


class Fluid:
    '''
    SPH fluid simulation state and stepper.

    Parameters:
    -----------
    particles : ParticleSystem | Sequence[Particle]
        Initial particles; the fluid keeps its own copy
    smoothingRadius : float
        Smoothing radius h (> 0)
    restDensity : float
        Rest density rho_0 (> 0)
    kinematicViscosity : float
        Kinematic viscosity nu (>= 0)
    stiffness : float
        Pressure stiffness k (>= 0)
    gravity : array-like
        Constant gravitational acceleration, shape (3,)
    gridSize : int
        Cells per axis of the periodic neighbor grid

    Raises:
    -------
    ConfigurationError : If any parameter or particle is invalid
    '''

    def __init__(
        self,
        particles: ParticleSystem | Sequence[Particle],
        smoothingRadius: float = const.smoothingRadius,
        restDensity: float = const.restDensity,
        kinematicViscosity: float = const.kinematicViscosity,
        stiffness: float = const.stiffness,
        gravity=const.gravityVector,
        gridSize: int = const.gridSize,
    ) -> None:
        if int(gridSize) != gridSize or gridSize < 1:
            raise ConfigurationError(f'gridSize must be a positive integer, got {gridSize}')
        if np.asarray(gravity).shape != (3,):
            raise ConfigurationError(f'gravity must be a 3-vector, got {gravity!r}')

        self._kernel = CubicSplineKernel.fromSmoothingRadius(smoothingRadius)
        self._params = FluidParams(
            restDensity=restDensity,
            kinematicViscosity=kinematicViscosity,
            stiffness=stiffness,
            gravity=gravity,
        )
        self._params.validate()

        self._particles = _asParticleSystem(particles)
        self._gridSize = int(gridSize)
        self._integrator: TimeIntegrator = SymplecticEuler()

        self._stepCount: int = 0
        self._time: float = 0.0
        self._dt: float = 0.0
        self._neighborhoods: Neighborhoods | None = None

    @classmethod
    def default(cls, particles: ParticleSystem | Sequence[Particle]) -> Fluid:
        '''Fluid with the default parameters from constants.py.'''
        return cls(particles)

    @classmethod
    def fromConfig(
        cls,
        particles: ParticleSystem | Sequence[Particle],
        config: SimulationConfig,
    ) -> Fluid:
        '''Fluid built from a SimulationConfig.'''
        return cls(
            particles,
            smoothingRadius=config.smoothingRadius,
            restDensity=config.fluid.restDensity,
            kinematicViscosity=config.fluid.kinematicViscosity,
            stiffness=config.fluid.stiffness,
            gravity=config.fluid.gravity,
            gridSize=config.gridSize,
        )

    ######################################################################
    # -- Time Stepping -- #
    ######################################################################

    def step(self, dt: float) -> None:
        '''
        Advance one time step using the periodic grid index.

        Parameters:
        -----------
        dt : float
            Time step size (finite, >= 0)
        '''
        index = PeriodicGridIndex.build(
            self._particles.positions,
            gridScale=self._kernel.supportRadius,
            gridSize=self._gridSize,
        )
        self._advance(dt, index)

    def stepSlow(self, dt: float) -> None:
        '''
        Advance one time step using all-pairs neighbor search.

        Parameters:
        -----------
        dt : float
            Time step size (finite, >= 0)
        '''
        self._advance(dt, AllPairsSearch(len(self._particles)))

    def _advance(self, dt: float, search: NeighborSearch) -> None:
        '''Run one step with the given neighbor search strategy.'''
        dt = float(dt)
        if not (math.isfinite(dt) and dt >= 0.0):
            raise ConfigurationError(f'time step must be finite and non-negative, got {dt}')

        p = self._particles
        kernel = self._kernel

        # 1-2. Neighborhoods from pre-step positions
        neighborhoods = search.queryAll(p.positions, kernel.supportRadius)

        # 3. Density and pressure, both finalized before any acceleration
        densities = kernel.densityAll(p, neighborhoods, Attribute.MASS)
        pressures = self._equationOfState(densities)
        p.densities[:] = densities
        p.pressures[:] = pressures

        # 4. Accelerations (non-pressure + pressure), written together
        accelerations = self._computeAccelerations(neighborhoods)
        p.accelerations[:] = accelerations

        # 5. Integrate movable particles
        self._integrator.integrate(p, dt)

        self._neighborhoods = neighborhoods
        self._dt = dt
        self._time += dt
        self._stepCount += 1

    def _equationOfState(self, densities: np.ndarray) -> np.ndarray:
        '''p = max(0, k * (rho / rho_0 - 1))'''
        params = self._params
        return np.maximum(params.stiffness * (densities / params.restDensity - 1.0), 0.0)

    def _computeAccelerations(self, neighborhoods: Neighborhoods) -> np.ndarray:
        '''
        Per-particle acceleration from gravity, viscosity and pressure.

        a_nonpressure = g + nu * Laplacian(v)
        a_pressure    = -(1 / rho) * grad(p)

        Returns:
        --------
        np.ndarray : Accelerations, shape (N, 3)
        '''
        p = self._particles
        kernel = self._kernel
        params = self._params

        laplacian = kernel.viscousLaplacianAll(p, neighborhoods, Attribute.VELOCITY)
        accelNonPressure = params.gravityVector + params.kinematicViscosity * laplacian

        pressureGradient = kernel.pressureGradientAll(p, neighborhoods, Attribute.PRESSURE)
        invDensity = np.divide(
            1.0, p.densities, out=np.zeros_like(p.densities), where=p.densities > 0.0,
        )
        accelPressure = -invDensity[:, np.newaxis] * pressureGradient

        return accelNonPressure + accelPressure

    ######################################################################
    # -- Configuration Between Steps -- #
    ######################################################################

    def configure(self, **changes) -> None:
        '''
        Replace fluid parameters between steps.

        Accepts any of restDensity, kinematicViscosity, stiffness and
        gravity.

        Raises:
        -------
        ConfigurationError : On unknown names or invalid values
        '''
        known = {f.name for f in dataclasses.fields(FluidParams)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigurationError(f'unknown fluid parameters: {sorted(unknown)}')
        if 'gravity' in changes and np.asarray(changes['gravity']).shape != (3,):
            raise ConfigurationError(f'gravity must be a 3-vector, got {changes["gravity"]!r}')

        params = dataclasses.replace(self._params, **changes)
        params.validate()
        self._params = params

    def addParticles(self, particles: ParticleSystem | Sequence[Particle]) -> None:
        '''
        Append particles between steps.

        Existing indices are unchanged; the new particles take the
        following indices and start with NaN density and pressure
        unless they carry values of their own.
        '''
        self._particles.append(_asParticleSystem(particles))
        self._neighborhoods = None

    ######################################################################
    # -- Read Access -- #
    ######################################################################

    @property
    def particles(self) -> ParticleSystem:
        '''
        Read-only view of the owned particle system.

        Arrays track the live state until particles are added, but
        cannot be written; use addParticles() and configure() to
        change the fluid.
        '''
        return self._particles.readOnlyView()

    @property
    def positions(self) -> np.ndarray:
        '''Read-only view of the particle positions, shape (N, 3).'''
        view = self._particles.positions.view()
        view.flags.writeable = False
        return view

    def positionsForUpload(self) -> np.ndarray:
        '''
        Positions packed for GPU upload.

        Returns:
        --------
        np.ndarray : float32 array of shape (N, 4) with w = 0
        '''
        packed = np.zeros((len(self._particles), 4), dtype=np.float32)
        packed[:, :3] = self._particles.positions
        return packed

    @property
    def kernel(self) -> CubicSplineKernel:
        '''Smoothing kernel.'''
        return self._kernel

    @property
    def params(self) -> FluidParams:
        '''Current fluid parameters.'''
        return self._params

    @property
    def smoothingRadius(self) -> float:
        '''Smoothing radius h.'''
        return self._kernel.h

    @property
    def gridSize(self) -> int:
        '''Cells per axis of the neighbor grid.'''
        return self._gridSize

    @property
    def stepCount(self) -> int:
        '''Number of completed steps.'''
        return self._stepCount

    @property
    def time(self) -> float:
        '''Accumulated simulated time.'''
        return self._time

    @property
    def lastNeighborhoods(self) -> Neighborhoods | None:
        '''Neighborhoods used by the last step (None before the first).'''
        return self._neighborhoods

    ######################################################################
    # -- Diagnostics -- #
    ######################################################################

    def velocityDivergence(self) -> np.ndarray:
        '''
        SPH estimate of div(v) at every particle.

        div(v)_i = -(1 / rho_i) * sum_j m_j * (v_i - v_j) . grad W_ij

        Uses the neighborhoods of the last step, or builds them from
        the current positions if there has been none.

        Returns:
        --------
        np.ndarray : Shape (N,)
        '''
        p = self._particles
        neighborhoods = self._neighborhoods
        if neighborhoods is None:
            index = PeriodicGridIndex.build(p.positions, self._kernel.supportRadius, self._gridSize)
            neighborhoods = index.queryAll(p.positions, self._kernel.supportRadius)

        divergence = self._kernel.divergenceAll(p, neighborhoods, Attribute.VELOCITY)
        invDensity = np.divide(
            1.0, p.densities, out=np.zeros_like(p.densities), where=p.densities > 0.0,
        )
        return -invDensity * divergence

    @property
    def currentState(self) -> SimulationState:
        '''Current simulation state snapshot.'''
        p = self._particles
        return SimulationState(
            step=self._stepCount,
            time=self._time,
            dt=self._dt,
            totalMass=p.totalMass(),
            kineticEnergy=p.kineticEnergy(),
            maxSpeed=p.maxSpeed(),
            maxDensityError=p.maxDensityError(self._params.restDensity),
            meanMovablePosition=p.meanMovablePosition(),
        )
