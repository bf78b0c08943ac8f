# -- sphFluid Package -- #

'''
Fluid simulation using Smoothed Particle Hydrodynamics (SPH).

A set of mass-carrying particles approximates a continuous fluid;
every step computes densities, pressures, viscous and pressure
forces from local neighborhoods found with a periodic grid index,
then integrates the movable particles forward in time.
'''

__version__ = '0.1.0'

from sphFluid.sph.fluid import Fluid
from sphFluid.sph.particles import Particle, ParticleSystem
from sphFluid.sph.protocols import ConfigurationError, FluidParams, SimulationConfig
