# -- Cube-in-Box Scenario -- #

'''
Block of fluid resting in a static box.

Particles sit on a unit-spaced lattice over [-extent, extent]^3 in
lattice coordinates (x, y, z), z being the vertical lattice axis.
A site is kept when it lies in the lower half (z < 0) or strictly
inside the side walls (|x| < extent and |y| < extent). Kept sites
are movable when they are strictly inside the side walls and above
the bottom layer (z > -extent); the remaining sites form a fixed
floor and a fixed rim around the lower half.

Lattice coordinates are stored as positions (x, z, y), so the
simulation's y axis is vertical and gravity acts along -y.
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sphFluid import constants as const
from sphFluid.sph.protocols import FluidParams, SimulationConfig
from sphFluid.sph.particles import ParticleSystem


######################################################################
# -- Cube-in-Box Configuration -- #
######################################################################

@dataclass
class CubeInBoxConfig:
    '''
    Configuration for the cube-in-box scenario.

    Parameters:
    -----------
    extent : int
        Half-width of the lattice in sites
    mass : float
        Mass of every particle
    smoothingRadius : float
        Smoothing radius h
    restDensity : float
        Rest density rho_0
    kinematicViscosity : float
        Kinematic viscosity nu
    stiffness : float
        Pressure stiffness k
    gravity : float
        Gravity magnitude, applied along -y
    timeStep : float
        Fixed time step
    nSteps : int
        Number of steps to run
    outputInterval : int
        Steps between recorded frames
    '''

    extent: int = 2
    mass: float = 1.0
    smoothingRadius: float = const.smoothingRadius
    restDensity: float = const.restDensity
    kinematicViscosity: float = const.kinematicViscosity
    stiffness: float = const.stiffness
    gravity: float = const.gravity
    timeStep: float = const.timeStep
    nSteps: int = const.nSteps
    outputInterval: int = const.outputInterval

    @classmethod
    def small(cls) -> CubeInBoxConfig:
        '''
        Small box for quick runs.

        77 particles, 36 of them movable.
        '''
        return cls(extent=2)

    @classmethod
    def standard(cls) -> CubeInBoxConfig:
        '''
        Larger box.

        8381 particles, 7220 of them movable.
        '''
        return cls(extent=10, timeStep=0.01, nSteps=200, outputInterval=10)


######################################################################
# -- Scenario Creation -- #
######################################################################

def createCubeInBox(config: CubeInBoxConfig) -> tuple[SimulationConfig, ParticleSystem]:
    '''
    Build the cube-in-box particles and simulation config.

    Parameters:
    -----------
    config : CubeInBoxConfig
        Scenario configuration

    Returns:
    --------
    tuple[SimulationConfig, ParticleSystem] :
        Ready-to-run configuration and initial particles
    '''
    e = config.extent
    coords = np.arange(-e, e + 1)

    # Lattice sites in x-major order
    xx, yy, zz = np.meshgrid(coords, coords, coords, indexing='ij')
    x, y, z = xx.ravel(), yy.ravel(), zz.ravel()

    insideWalls = (np.abs(x) < e) & (np.abs(y) < e)
    keep = (z < 0) | insideWalls
    movable = insideWalls & (z > -e)

    # (x, y, z) lattice -> (x, z, y) position: y is up
    positions = np.column_stack([x[keep], z[keep], y[keep]]).astype(float)

    particles = ParticleSystem.fromArrays(
        positions,
        masses=config.mass,
        movable=movable[keep],
    )

    simConfig = SimulationConfig(
        smoothingRadius=config.smoothingRadius,
        fluid=FluidParams(
            restDensity=config.restDensity,
            kinematicViscosity=config.kinematicViscosity,
            stiffness=config.stiffness,
            gravity=(0.0, -config.gravity, 0.0),
        ),
        gridSize=const.gridSize,
        timeStep=config.timeStep,
        nSteps=config.nSteps,
        outputInterval=config.outputInterval,
    )

    return (simConfig, particles)
