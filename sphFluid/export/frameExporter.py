# -- Simulation Frame Exporter -- #

'''
Exports SPH simulation frames as JSON for visualization.

Collects particle state snapshots during a run and writes them to a
single JSON file that an external viewer can replay. Only read
access to the fluid is needed; the exporter copies everything it
records.
'''

from __future__ import annotations

import json
import os
from datetime import datetime

import numpy as np

from sphFluid.sph.fluid import Fluid
from sphFluid.sph.protocols import SimulationConfig, SimulationState


class FrameExporter:
    '''
    Collects and exports simulation frame data as JSON.

    Usage:
        exporter = FrameExporter()
        # During simulation loop:
        exporter.addFrame(fluid.currentState, fluid)
        # After simulation:
        exporter.export(config, outputDir='output')

    Output JSON format:
    {
        "meta": { "type": "sphFluid", "nFrames": 21, "created": "...", ... },
        "config": { "smoothingRadius": 1.0, "fluid": {...}, ... },
        "movable": [true, false, ...],
        "frames": [
            {
                "step": 0,
                "time": 0.0,
                "positions": [[x0, y0, z0], ...],
                "speeds": [s0, s1, ...],
                "densities": [rho0, rho1, ...],
                "pressures": [p0, p1, ...]
            },
            ...
        ],
        "history": {
            "times": [...],
            "kineticEnergy": [...],
            "maxDensityError": [...],
            "meanHeight": [...]
        }
    }
    '''

    def __init__(self) -> None:
        self._frames: list[dict] = []
        self._movable: list[bool] = []
        self._history: dict[str, list[float]] = {
            'times': [],
            'kineticEnergy': [],
            'maxDensityError': [],
            'meanHeight': [],
        }

    @property
    def nFrames(self) -> int:
        '''Number of collected frames.'''
        return len(self._frames)

    @property
    def history(self) -> dict[str, list[float]]:
        '''Scalar diagnostics per recorded frame.'''
        return self._history

    def addFrame(self, state: SimulationState, fluid: Fluid) -> None:
        '''
        Record a simulation frame.

        Densities and pressures are NaN until the first step has been
        taken. Every non-finite value, including those of a diverged
        run, is recorded as None and exported as null.

        Parameters:
        -----------
        state : SimulationState
            Current simulation state diagnostics
        fluid : Fluid
            Fluid to read particle data from
        '''
        particles = fluid.particles
        speeds = np.linalg.norm(particles.velocities, axis=1)

        frame = {
            'step': state.step,
            'time': round(state.time, 6),
            'positions': _finiteOrNone(particles.positions),
            'speeds': _finiteOrNone(speeds),
            'densities': _finiteOrNone(particles.densities),
            'pressures': _finiteOrNone(particles.pressures),
        }
        self._frames.append(frame)
        self._movable = particles.movable.tolist()

        self._history['times'].append(round(state.time, 6))
        self._history['kineticEnergy'].append(_finiteOrNone(state.kineticEnergy))
        self._history['maxDensityError'].append(_finiteOrNone(state.maxDensityError))
        self._history['meanHeight'].append(_finiteOrNone(state.meanMovablePosition[1]))

    def export(
        self,
        config: SimulationConfig,
        outputDir: str = 'output',
        scenarioName: str = 'cubeInBox',
    ) -> str:
        '''
        Write all collected frames to a JSON file.

        Parameters:
        -----------
        config : SimulationConfig
            Simulation configuration for metadata
        outputDir : str
            Output directory path
        scenarioName : str
            Scenario name for the filename

        Returns:
        --------
        str : Path to the exported JSON file
        '''
        os.makedirs(outputDir, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'sphFluid_{scenarioName}_{timestamp}.json'
        filepath = os.path.join(outputDir, filename)

        output = {
            'meta': {
                'type': 'sphFluid',
                'scenario': scenarioName,
                'nFrames': len(self._frames),
                'nParticles': len(self._movable),
                'created': datetime.now().isoformat(),
            },
            'config': config.toDict(),
            'movable': self._movable,
            'frames': self._frames,
            'history': self._history,
        }

        with open(filepath, 'w') as f:
            json.dump(output, f, indent=None, separators=(',', ':'), allow_nan=False)

        return filepath


def _finiteOrNone(values):
    '''
    Round to 6 decimals for JSON, with NaN and +/-inf as null.

    Scalars map to a float or None; arrays of any shape map to nested
    lists of the same shape.
    '''
    values = np.round(np.asarray(values, dtype=float), 6)
    return np.where(np.isfinite(values), values, None).tolist()
