# -- Simulation Scenarios Package -- #

'''
Pre-configured initial particle layouts for the SPH fluid engine.

Each scenario provides the particles and a SimulationConfig for a
specific problem.
'''

from sphFluid.scenarios.cubeInBox import CubeInBoxConfig, createCubeInBox
