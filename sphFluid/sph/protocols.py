# -- SPH Simulation Protocols -- #

'''
Parameter types, configuration, diagnostics and protocols for the
SPH fluid engine.

Kernel constants (KernelParams, in kernels.py) and the fluid's
physical parameters (FluidParams, here) are kept as two separate
immutable value types.
'''

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, asdict
from typing import Protocol, TYPE_CHECKING

import numpy as np

from sphFluid import constants as const

if TYPE_CHECKING:
    from sphFluid.sph.neighborSearch import Neighborhoods


class ConfigurationError(ValueError):
    '''Raised when construction or configuration parameters are invalid.'''


######################################################################
# -- Fluid Parameters -- #
######################################################################

@dataclass(frozen=True)
class FluidParams:
    '''
    Physical parameters of the simulated fluid.

    Read-only during a step; replaced as a whole between steps
    through Fluid.configure().

    Parameters:
    -----------
    restDensity : float
        Rest density rho_0
    kinematicViscosity : float
        Kinematic viscosity nu
    stiffness : float
        Pressure response k in p = max(0, k * (rho / rho_0 - 1))
    gravity : tuple[float, float, float]
        Constant gravitational acceleration vector
    '''

    restDensity: float = const.restDensity
    kinematicViscosity: float = const.kinematicViscosity
    stiffness: float = const.stiffness
    gravity: tuple[float, float, float] = const.gravityVector

    def __post_init__(self) -> None:
        for name in ('restDensity', 'kinematicViscosity', 'stiffness'):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, float(value))
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f'{name} must be a number, got {value!r}') from exc

        # Normalize array-likes to a plain tuple so the value stays hashable
        try:
            gravity = tuple(float(g) for g in np.asarray(self.gravity, dtype=float).ravel())
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f'gravity must be a numeric 3-vector, got {self.gravity!r}') from exc
        object.__setattr__(self, 'gravity', gravity)

    def validate(self) -> None:
        '''
        Check the parameters once, at construction time.

        Raises:
        -------
        ConfigurationError : If any parameter is out of range
        '''
        if not (math.isfinite(self.restDensity) and self.restDensity > 0.0):
            raise ConfigurationError(f'restDensity must be positive, got {self.restDensity}')
        if not (math.isfinite(self.kinematicViscosity) and self.kinematicViscosity >= 0.0):
            raise ConfigurationError(
                f'kinematicViscosity must be non-negative, got {self.kinematicViscosity}'
            )
        if not (math.isfinite(self.stiffness) and self.stiffness >= 0.0):
            raise ConfigurationError(f'stiffness must be non-negative, got {self.stiffness}')
        if len(self.gravity) != 3 or not all(math.isfinite(g) for g in self.gravity):
            raise ConfigurationError(f'gravity must be a finite 3-vector, got {self.gravity}')

    @property
    def gravityVector(self) -> np.ndarray:
        '''Gravity as a NumPy vector.'''
        return np.array(self.gravity, dtype=float)


######################################################################
# -- Simulation Configuration -- #
######################################################################

@dataclass
class SimulationConfig:
    '''
    Configuration for a simulation run.

    Parameters:
    -----------
    smoothingRadius : float
        Smoothing radius h (kernel support is 2h)
    fluid : FluidParams
        Physical fluid parameters
    gridSize : int
        Cells per axis of the periodic neighbor grid
    timeStep : float
        Fixed time step dt
    nSteps : int
        Number of steps to run
    outputInterval : int
        Steps between recorded frames
    '''

    smoothingRadius: float = const.smoothingRadius
    fluid: FluidParams = field(default_factory=FluidParams)
    gridSize: int = const.gridSize
    timeStep: float = const.timeStep
    nSteps: int = const.nSteps
    outputInterval: int = const.outputInterval

    @property
    def supportRadius(self) -> float:
        '''Kernel support radius 2h.'''
        return const.supportRadiusFactor * self.smoothingRadius

    @property
    def endTime(self) -> float:
        '''Simulated time after nSteps steps.'''
        return self.nSteps * self.timeStep

    def toDict(self) -> dict:
        '''Plain-dict form for JSON export.'''
        data = asdict(self)
        data['fluid']['gravity'] = list(self.fluid.gravity)
        return data

    @classmethod
    def fromJson(cls, configPath: str) -> SimulationConfig:
        '''
        Load configuration from a JSON file.

        Reads the 'sph', 'fluid' and 'simulation' sections; any
        missing key falls back to the value in constants.py.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file

        Returns:
        --------
        SimulationConfig : Loaded configuration
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        sphSection = data.get('sph', {})
        fluidSection = data.get('fluid', {})
        simSection = data.get('simulation', {})

        # Gravity may be given as a magnitude (along -y) or a full vector
        gravity = fluidSection.get('gravity', const.gravityVector)
        if isinstance(gravity, (int, float)):
            gravity = (0.0, -float(gravity), 0.0)

        fluid = FluidParams(
            restDensity=fluidSection.get('restDensity', const.restDensity),
            kinematicViscosity=fluidSection.get('kinematicViscosity', const.kinematicViscosity),
            stiffness=fluidSection.get('stiffness', const.stiffness),
            gravity=gravity,
        )

        return cls(
            smoothingRadius=sphSection.get('smoothingRadius', const.smoothingRadius),
            fluid=fluid,
            gridSize=sphSection.get('gridSize', const.gridSize),
            timeStep=simSection.get('timeStep', const.timeStep),
            nSteps=simSection.get('nSteps', const.nSteps),
            outputInterval=simSection.get('outputInterval', const.outputInterval),
        )


######################################################################
# -- Simulation State -- #
######################################################################

@dataclass
class SimulationState:
    '''
    Diagnostic snapshot of the fluid after a step.

    Parameters:
    -----------
    step : int
        Number of completed steps
    time : float
        Accumulated simulated time
    dt : float
        Size of the last step
    totalMass : float
        Sum of particle masses
    kineticEnergy : float
        Kinetic energy of the movable particles
    maxSpeed : float
        Maximum speed among movable particles
    maxDensityError : float
        Maximum relative density error |rho - rho_0| / rho_0
    meanMovablePosition : np.ndarray
        Centroid of the movable particles
    '''

    step: int
    time: float
    dt: float
    totalMass: float
    kineticEnergy: float
    maxSpeed: float
    maxDensityError: float
    meanMovablePosition: np.ndarray


######################################################################
# -- Neighbor Search Protocol -- #
######################################################################

class NeighborSearch(Protocol):
    '''Protocol for neighbor search strategies (grid index or all-pairs oracle).'''

    def queryAll(self, positions: np.ndarray, radius: float) -> Neighborhoods:
        '''Return one neighbor-index list per query position.'''
        ...

