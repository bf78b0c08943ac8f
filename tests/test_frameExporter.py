# -- Frame Exporter Tests -- #

'''
Tests for JSON frame export.
'''

from __future__ import annotations

import json
import os
from types import SimpleNamespace

import numpy as np
import pytest

from sphFluid.export.frameExporter import FrameExporter
from sphFluid.scenarios.cubeInBox import CubeInBoxConfig, createCubeInBox
from sphFluid.sph.fluid import Fluid
from sphFluid.sph.particles import ParticleSystem
from sphFluid.sph.protocols import SimulationConfig, SimulationState


@pytest.fixture
def recorded():
    simConfig, particles = createCubeInBox(CubeInBoxConfig.small())
    fluid = Fluid.fromConfig(particles, simConfig)
    exporter = FrameExporter()

    exporter.addFrame(fluid.currentState, fluid)
    for _ in range(2):
        fluid.step(simConfig.timeStep)
        exporter.addFrame(fluid.currentState, fluid)

    return simConfig, fluid, exporter


def test_historyTracksFrames(recorded):
    _, _, exporter = recorded
    assert exporter.nFrames == 3
    history = exporter.history
    assert history['times'] == pytest.approx([0.0, 0.01, 0.02])
    assert len(history['kineticEnergy']) == 3
    assert history['kineticEnergy'][0] == 0.0
    assert history['meanHeight'][2] < history['meanHeight'][0]


def test_exportWritesJson(recorded, tmp_path):
    simConfig, fluid, exporter = recorded
    path = exporter.export(simConfig, outputDir=str(tmp_path), scenarioName='test')

    assert os.path.dirname(path) == str(tmp_path)
    assert os.path.basename(path).startswith('sphFluid_test_')

    with open(path) as f:
        data = json.load(f)

    assert data['meta']['type'] == 'sphFluid'
    assert data['meta']['nFrames'] == 3
    assert data['meta']['nParticles'] == 77
    assert data['config']['gridSize'] == 64
    assert sum(data['movable']) == 36
    assert len(data['frames']) == 3

    first, last = data['frames'][0], data['frames'][-1]
    assert len(first['positions']) == 77
    # No densities before the first step
    assert all(rho is None for rho in first['densities'])
    assert all(rho is not None for rho in last['densities'])
    assert last['step'] == 2


def _rejectConstant(token):
    raise ValueError(f'non-standard JSON constant {token}')


def test_exportNullsNonFiniteValues(tmp_path):
    particles = ParticleSystem.fromArrays(np.zeros((2, 3)), 1.0)
    particles.positions[0] = [np.nan, 1.0, np.inf]
    particles.velocities[1] = [-np.inf, 0.0, 0.0]
    particles.densities[:] = [np.nan, 1.5]
    particles.pressures[:] = [np.inf, 0.25]
    diverged = SimpleNamespace(particles=particles)
    state = SimulationState(
        step=3, time=0.03, dt=0.01, totalMass=2.0,
        kineticEnergy=np.inf, maxSpeed=np.inf, maxDensityError=np.nan,
        meanMovablePosition=np.array([np.nan, np.nan, np.nan]),
    )

    exporter = FrameExporter()
    exporter.addFrame(state, diverged)
    path = exporter.export(SimulationConfig(), outputDir=str(tmp_path))

    with open(path) as f:
        data = json.load(f, parse_constant=_rejectConstant)

    frame = data['frames'][0]
    assert frame['positions'] == [[None, 1.0, None], [0.0, 0.0, 0.0]]
    assert frame['speeds'] == [0.0, None]
    assert frame['densities'] == [None, 1.5]
    assert frame['pressures'] == [None, 0.25]
    assert data['history']['kineticEnergy'] == [None]
    assert data['history']['maxDensityError'] == [None]
    assert data['history']['meanHeight'] == [None]
