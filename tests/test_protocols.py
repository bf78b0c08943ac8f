# -- Configuration Type Tests -- #

'''
Tests for FluidParams and SimulationConfig.
'''

from __future__ import annotations

import dataclasses
import json

import numpy as np
import pytest

from sphFluid.sph.protocols import ConfigurationError, FluidParams, SimulationConfig


class TestFluidParams:

    def test_defaults(self):
        params = FluidParams()
        params.validate()
        assert params.restDensity == 1.0
        assert params.gravity == pytest.approx((0.0, -9.81, 0.0))

    def test_gravityNormalizedToTuple(self):
        params = FluidParams(gravity=np.array([0.0, -1.0, 0.0]))
        assert isinstance(params.gravity, tuple)
        assert params.gravity == (0.0, -1.0, 0.0)
        np.testing.assert_array_equal(params.gravityVector, [0.0, -1.0, 0.0])

    def test_immutable(self):
        params = FluidParams()
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.stiffness = 1.0

    @pytest.mark.parametrize('changes', [
        dict(restDensity=0.0),
        dict(restDensity=float('inf')),
        dict(kinematicViscosity=-0.1),
        dict(stiffness=float('nan')),
        dict(gravity=(0.0, 0.0, 0.0, 0.0)),
    ])
    def test_validateRejects(self, changes):
        with pytest.raises(ConfigurationError):
            FluidParams(**changes).validate()

    @pytest.mark.parametrize('kwargs', [
        dict(restDensity='x'),
        dict(kinematicViscosity=[1.0, 2.0]),
        dict(stiffness='abc'),
        dict(gravity='down'),
    ])
    def test_nonNumericFieldsRaiseConfigurationError(self, kwargs):
        with pytest.raises(ConfigurationError, match='must be a'):
            FluidParams(**kwargs)

    def test_numericFieldsStoredAsFloat(self):
        params = FluidParams(restDensity=2, stiffness='100')
        assert isinstance(params.restDensity, float)
        assert params.stiffness == 100.0


class TestSimulationConfig:

    def test_derivedQuantities(self):
        config = SimulationConfig(smoothingRadius=0.5, timeStep=0.02, nSteps=50)
        assert config.supportRadius == pytest.approx(1.0)
        assert config.endTime == pytest.approx(1.0)

    def test_toDictIsJsonSerializable(self):
        data = SimulationConfig().toDict()
        json.dumps(data)
        assert data['fluid']['gravity'] == pytest.approx([0.0, -9.81, 0.0])
        assert data['gridSize'] == 64

    def test_fromJson(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({
            'sph': {'smoothingRadius': 0.8, 'gridSize': 32},
            'fluid': {'stiffness': 200.0, 'gravity': [0.0, 0.0, -1.0]},
            'simulation': {'timeStep': 0.005, 'nSteps': 12},
        }))

        config = SimulationConfig.fromJson(str(path))

        assert config.smoothingRadius == 0.8
        assert config.gridSize == 32
        assert config.fluid.stiffness == 200.0
        assert config.fluid.gravity == (0.0, 0.0, -1.0)
        assert config.timeStep == 0.005
        assert config.nSteps == 12
        # Missing keys fall back to defaults
        assert config.fluid.restDensity == 1.0
        assert config.outputInterval == 5

    def test_fromJsonScalarGravity(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'fluid': {'gravity': 3.0}}))
        assert SimulationConfig.fromJson(str(path)).fluid.gravity == (0.0, -3.0, 0.0)

    def test_fromJsonMissingFile(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SimulationConfig.fromJson(str(tmp_path / 'missing.json'))
