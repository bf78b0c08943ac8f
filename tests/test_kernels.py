# -- Cubic Spline Kernel Tests -- #

'''
Tests for the cubic spline kernel and its SPH operators.
'''

from __future__ import annotations

import math

import numpy as np
import pytest
from scipy import integrate

from sphFluid.sph.kernels import CubicSplineKernel, KernelParams
from sphFluid.sph.neighborSearch import AllPairsSearch, Neighborhoods
from sphFluid.sph.particles import Attribute, ParticleSystem
from sphFluid.sph.protocols import ConfigurationError


ORIGIN = np.zeros(3)


def _radial(kernel: CubicSplineKernel, r: float) -> float:
    return kernel.evaluate(ORIGIN, np.array([r, 0.0, 0.0]))


class TestKernelParams:
    '''Kernel constants and construction.'''

    def test_alphaFromSmoothingRadius(self):
        params = KernelParams.fromSmoothingRadius(2.0)
        assert params.h == 2.0
        assert params.alpha == pytest.approx(1.0 / (4.0 * math.pi * 8.0))
        assert params.supportRadius == pytest.approx(4.0)

    @pytest.mark.parametrize('h', [0.0, -1.0, float('nan'), float('inf')])
    def test_invalidSmoothingRadius(self, h):
        with pytest.raises(ConfigurationError):
            KernelParams.fromSmoothingRadius(h)

    def test_configurationErrorIsValueError(self):
        with pytest.raises(ValueError):
            CubicSplineKernel.fromSmoothingRadius(0.0)


class TestKernelValues:
    '''Pointwise kernel values and gradients.'''

    @pytest.mark.parametrize('h', [0.5, 1.0, 1.7, 3.0])
    def test_normalization(self, h):
        kernel = CubicSplineKernel.fromSmoothingRadius(h)
        total, _ = integrate.quad(
            lambda r: 4.0 * math.pi * r * r * _radial(kernel, r),
            0.0, 2.0 * h, points=[h],
        )
        assert total == pytest.approx(1.0, rel=1e-6)

    def test_peakValue(self):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        assert kernel.evaluate(ORIGIN, ORIGIN) == pytest.approx(1.0 / math.pi)

    @pytest.mark.parametrize('h', [0.5, 1.0, 2.0])
    def test_compactSupport(self, h):
        kernel = CubicSplineKernel.fromSmoothingRadius(h)
        for r in (2.0 * h, 2.0 * h + 1e-9, 3.0 * h, 100.0 * h):
            assert _radial(kernel, r) == 0.0
            assert np.all(kernel.gradient(ORIGIN, np.array([r, 0.0, 0.0])) == 0.0)

    def test_nonNegativeAndDecreasing(self):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        radii = np.linspace(0.0, 2.0, 201)
        values = np.array([_radial(kernel, r) for r in radii])
        assert np.all(values >= 0.0)
        assert np.all(np.diff(values) <= 1e-15)

    def test_continuousAtInnerBranch(self):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        below = _radial(kernel, 1.0 - 1e-9)
        above = _radial(kernel, 1.0 + 1e-9)
        assert below == pytest.approx(above, abs=1e-7)
        assert _radial(kernel, 1.0) == pytest.approx(kernel.alpha)

    def test_symmetry(self, rng):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.3)
        for _ in range(20):
            xi, xj = rng.uniform(-1.5, 1.5, size=(2, 3))
            assert kernel.evaluate(xi, xj) == pytest.approx(kernel.evaluate(xj, xi))
            np.testing.assert_allclose(kernel.gradient(xi, xj), -kernel.gradient(xj, xi))

    def test_gradientZeroAtCoincidence(self):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        x = np.array([3.0, -2.0, 0.5])
        grad = kernel.gradient(x, x)
        assert grad.shape == (3,)
        assert np.all(grad == 0.0)
        assert np.all(np.isfinite(grad))

    def test_gradientMatchesFiniteDifference(self, rng):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        eps = 1e-6
        for _ in range(10):
            xj = np.zeros(3)
            xi = rng.uniform(-1.2, 1.2, size=3)
            if np.linalg.norm(xi) < 0.1 or abs(np.linalg.norm(xi) - 1.0) < 0.01:
                continue
            fd = np.array([
                (kernel.evaluate(xi + eps * e, xj) - kernel.evaluate(xi - eps * e, xj)) / (2.0 * eps)
                for e in np.eye(3)
            ])
            np.testing.assert_allclose(kernel.gradient(xi, xj), fd, rtol=1e-5, atol=1e-8)

    def test_gradientPointsTowardNeighbor(self):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        grad = kernel.gradient(np.array([0.5, 0.0, 0.0]), ORIGIN)
        assert grad[0] < 0.0
        assert grad[1] == 0.0 and grad[2] == 0.0

    def test_batchMatchesPointwise(self, rng):
        kernel = CubicSplineKernel.fromSmoothingRadius(1.0)
        xi = rng.uniform(0.0, 2.0, size=(15, 3))
        xj = rng.uniform(0.0, 2.0, size=(15, 3))
        values = kernel.evaluateBatch(xi, xj)
        grads = kernel.gradientBatch(xi, xj)
        assert values.shape == (15,)
        assert grads.shape == (15, 3)
        for k in range(15):
            assert values[k] == pytest.approx(kernel.evaluate(xi[k], xj[k]))
            np.testing.assert_allclose(grads[k], kernel.gradient(xi[k], xj[k]))


class TestKernelOperators:
    '''Per-particle and whole-system SPH operators.'''

    @pytest.fixture
    def kernel(self) -> CubicSplineKernel:
        return CubicSplineKernel.fromSmoothingRadius(1.0)

    @pytest.fixture
    def allPairs(self, randomSystem) -> Neighborhoods:
        return AllPairsSearch(len(randomSystem)).queryAll(randomSystem.positions, 2.0)

    def test_densityOfIsolatedParticle(self, kernel):
        system = ParticleSystem.fromArrays(np.array([[1.0, 2.0, 3.0]]), 2.5)
        rho = kernel.density(system, np.array([0]), Attribute.MASS, system.positions[0])
        assert rho == pytest.approx(2.5 * kernel.alpha * 4.0)

    def test_densityAllMatchesPerParticle(self, kernel, randomSystem, allPairs):
        densities = kernel.densityAll(randomSystem, allPairs, Attribute.MASS)
        for i in range(len(randomSystem)):
            expected = kernel.density(
                randomSystem, allPairs[i], Attribute.MASS, randomSystem.positions[i],
            )
            assert densities[i] == pytest.approx(expected)

    def test_pressureGradientAllMatchesPerParticle(self, kernel, randomSystem, allPairs):
        gradients = kernel.pressureGradientAll(randomSystem, allPairs, Attribute.PRESSURE)
        for i in range(len(randomSystem)):
            expected = kernel.pressureGradientTerm(randomSystem, allPairs[i], Attribute.PRESSURE, i)
            np.testing.assert_allclose(gradients[i], expected, rtol=1e-10, atol=1e-12)

    def test_viscousLaplacianAllMatchesPerParticle(self, kernel, randomSystem, allPairs):
        laplacians = kernel.viscousLaplacianAll(randomSystem, allPairs, Attribute.VELOCITY)
        for i in range(len(randomSystem)):
            expected = kernel.viscousLaplacianTerm(randomSystem, allPairs[i], Attribute.VELOCITY, i)
            np.testing.assert_allclose(laplacians[i], expected, rtol=1e-10, atol=1e-12)

    def test_divergenceAllMatchesPerParticle(self, kernel, randomSystem, allPairs):
        divergence = kernel.divergenceAll(randomSystem, allPairs, Attribute.VELOCITY)
        for i in range(len(randomSystem)):
            expected = kernel.divergenceTerm(randomSystem, allPairs[i], Attribute.VELOCITY, i)
            assert divergence[i] == pytest.approx(expected, abs=1e-12)

    def test_emptyNeighborhoods(self, kernel, randomSystem):
        empty = np.empty(0, dtype=np.int64)
        assert kernel.density(randomSystem, empty, Attribute.MASS, randomSystem.positions[0]) == 0.0
        assert np.all(kernel.pressureGradientTerm(randomSystem, empty, Attribute.PRESSURE, 0) == 0.0)
        assert np.all(kernel.viscousLaplacianTerm(randomSystem, empty, Attribute.VELOCITY, 0) == 0.0)
        assert kernel.divergenceTerm(randomSystem, empty, Attribute.VELOCITY, 0) == 0.0

        none = Neighborhoods.fromLists([[] for _ in range(len(randomSystem))])
        assert np.all(kernel.densityAll(randomSystem, none) == 0.0)
        assert np.all(kernel.pressureGradientAll(randomSystem, none) == 0.0)
        assert np.all(kernel.viscousLaplacianAll(randomSystem, none) == 0.0)
        assert np.all(kernel.divergenceAll(randomSystem, none) == 0.0)

    def test_pressureForcesConserveMomentum(self, kernel, randomSystem, allPairs):
        gradients = kernel.pressureGradientAll(randomSystem, allPairs, Attribute.PRESSURE)
        forces = -(randomSystem.masses / randomSystem.densities)[:, np.newaxis] * gradients
        np.testing.assert_allclose(forces.sum(axis=0), np.zeros(3), atol=1e-9)

    def test_uniformVelocityHasNoLaplacianOrDivergence(self, kernel, randomSystem, allPairs):
        randomSystem.velocities[:] = np.array([0.3, -1.0, 2.0])
        laplacians = kernel.viscousLaplacianAll(randomSystem, allPairs, Attribute.VELOCITY)
        divergence = kernel.divergenceAll(randomSystem, allPairs, Attribute.VELOCITY)
        np.testing.assert_allclose(laplacians, 0.0, atol=1e-12)
        np.testing.assert_allclose(divergence, 0.0, atol=1e-12)

    def test_duplicateNeighborsCountTwice(self, kernel):
        system = ParticleSystem.fromArrays(np.array([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0]]), 1.0)
        once = kernel.density(system, np.array([0, 1]), Attribute.MASS, system.positions[0])
        twice = kernel.density(system, np.array([0, 1, 1]), Attribute.MASS, system.positions[0])
        w01 = kernel.evaluate(system.positions[0], system.positions[1])
        assert twice - once == pytest.approx(w01)
