# -- SPH Engine Package -- #

'''
Core Smoothed Particle Hydrodynamics (SPH) engine.

Provides the particle data model, the cubic spline kernel and its
operators, the periodic grid neighbor index, time integration, and
the Fluid stepper.
'''

from sphFluid.sph.protocols import ConfigurationError, FluidParams, SimulationConfig, SimulationState
from sphFluid.sph.particles import Attribute, Particle, ParticleSystem
from sphFluid.sph.kernels import CubicSplineKernel, KernelParams
from sphFluid.sph.neighborSearch import AllPairsSearch, Neighborhoods, PeriodicGridIndex
from sphFluid.sph.timeIntegration import SymplecticEuler
from sphFluid.sph.fluid import Fluid
