# -- Default Constants for the SPH Fluid Engine -- #

'''
Default physical and numerical constants for the SPH fluid engine.

Values are in simulation units (the engine is unit-agnostic); the
defaults describe a unit-spaced particle lattice with unit mass and
unit rest density, which is what the cube-in-box scenario builds.

References:
-----------
Monaghan (1992) -- Smoothed Particle Hydrodynamics
Morris et al. (1997) -- Modeling low Reynolds number incompressible flows
'''

#--------------------------------------------------------------------#
# -- Fluid Properties -- #
#--------------------------------------------------------------------#

# Rest (reference) density rho_0
restDensity: float = 1.0

# Kinematic viscosity nu
kinematicViscosity: float = 1.0e-3

# Pressure stiffness k in p = max(0, k * (rho / rho_0 - 1))
stiffness: float = 5000.0

# Gravitational acceleration magnitude, applied along -y
gravity: float = 9.81

# Default gravity vector (y is the vertical axis)
gravityVector: tuple[float, float, float] = (0.0, -gravity, 0.0)

#--------------------------------------------------------------------#
# -- SPH Numerical Parameters -- #
#--------------------------------------------------------------------#

# Smoothing radius h; the kernel support radius is 2h
smoothingRadius: float = 1.0

# Kernel support radius as a multiple of h
supportRadiusFactor: float = 2.0

# Periodic grid resolution (cells per axis) of the neighbor index
gridSize: int = 64

# Regularizer for the viscous Laplacian denominator: eta^2 = 0.01 * h^2
viscosityEpsilon: float = 0.01

# Default time step of the host application
timeStep: float = 0.01

# Default number of steps run by the CLI
nSteps: int = 100

# Steps between exported frames
outputInterval: int = 5

# Largest particle count the runner will step with the all-pairs search
# (its pair arrays hold N^2 entries)
maxAllPairsParticles: int = 2000
