# -- SPH Smoothing Kernel -- #

'''
Cubic spline smoothing kernel and the SPH operators built on it.

The kernel is the 3D cubic spline (M4) written in terms of the
clipped terms t1 = max(1 - q, 0) and t2 = max(2 - q, 0), q = r / h:

    W(q) = alpha * (t2^3 - 4 * t1^3),   alpha = 1 / (4 * pi * h^3)

which is zero for q >= 2 (compact support radius 2h) and integrates
to one over space. The gradient used by the operators is

    grad W = alpha * (d / q) * (-3 * t2^2 + 12 * t1^2),  d = (x_i - x_j) / h

and is defined as the zero vector for coincident positions.

Every operator is pure. Operators take the ParticleSystem, a
neighbor-index array, and an Attribute naming the subject quantity
(mass, pressure, velocity, ...); sums over an empty neighborhood
are zero. The *All variants evaluate every particle's neighborhood
in one vectorized pass over (owner, member) pair arrays.

References:
-----------
Monaghan (1992) -- Smoothed Particle Hydrodynamics
Monaghan & Lattanzio (1985) -- A refined particle method for
    astrophysical problems
Morris et al. (1997) -- Modeling low Reynolds number incompressible flows
'''

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from sphFluid import constants as const
from sphFluid.sph.neighborSearch import Neighborhoods
from sphFluid.sph.particles import Attribute, ParticleSystem
from sphFluid.sph.protocols import ConfigurationError


######################################################################
# -- Kernel Parameters -- #
######################################################################

@dataclass(frozen=True)
class KernelParams:
    '''
    Kernel constants.

    Parameters:
    -----------
    h : float
        Smoothing radius
    alpha : float
        Normalization constant 1 / (4 * pi * h^3)
    '''

    h: float
    alpha: float

    @classmethod
    def fromSmoothingRadius(cls, h: float) -> KernelParams:
        '''
        Derive alpha from the smoothing radius.

        Raises:
        -------
        ConfigurationError : If h is not a positive finite number
        '''
        try:
            h = float(h)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f'smoothing radius must be a number, got {h!r}') from exc
        if not (math.isfinite(h) and h > 0.0):
            raise ConfigurationError(f'smoothing radius must be positive, got {h}')
        return cls(h=h, alpha=1.0 / (4.0 * math.pi * h * h * h))

    @property
    def supportRadius(self) -> float:
        '''Compact support radius 2h.'''
        return const.supportRadiusFactor * self.h


def _inverseSquare(values: np.ndarray) -> np.ndarray:
    '''1 / v^2, with zero where v == 0.'''
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(values != 0.0, 1.0 / (values * values), 0.0)


def _inverse(values: np.ndarray) -> np.ndarray:
    '''1 / v, with zero where v == 0.'''
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(values != 0.0, 1.0 / values, 0.0)


######################################################################
# -- Cubic Spline Kernel -- #
######################################################################

class CubicSplineKernel:
    '''
    Cubic spline SPH kernel with density, pressure-gradient,
    viscous-Laplacian and divergence operators.

    Parameters:
    -----------
    params : KernelParams
        Kernel constants (h, alpha)
    '''

    def __init__(self, params: KernelParams) -> None:
        self._params = params

    @classmethod
    def fromSmoothingRadius(cls, h: float) -> CubicSplineKernel:
        '''Kernel for smoothing radius h.'''
        return cls(KernelParams.fromSmoothingRadius(h))

    @property
    def params(self) -> KernelParams:
        '''Kernel constants.'''
        return self._params

    @property
    def h(self) -> float:
        '''Smoothing radius.'''
        return self._params.h

    @property
    def alpha(self) -> float:
        '''Normalization constant.'''
        return self._params.alpha

    @property
    def supportRadius(self) -> float:
        '''Compact support radius 2h.'''
        return self._params.supportRadius

    ######################################################################
    # -- Pointwise Evaluation -- #
    ######################################################################

    def evaluate(self, xi: np.ndarray, xj: np.ndarray) -> float:
        '''
        Kernel value W(x_i, x_j).

        Parameters:
        -----------
        xi : np.ndarray
            First position, shape (3,)
        xj : np.ndarray
            Second position, shape (3,)

        Returns:
        --------
        float : Kernel value (0 for |x_i - x_j| >= 2h)
        '''
        return float(self.evaluateBatch(xi, xj))

    def gradient(self, xi: np.ndarray, xj: np.ndarray) -> np.ndarray:
        '''
        Kernel gradient with respect to x_i.

        Parameters:
        -----------
        xi : np.ndarray
            First position, shape (3,)
        xj : np.ndarray
            Second position, shape (3,)

        Returns:
        --------
        np.ndarray : Gradient, shape (3,); zero for coincident positions
        '''
        return self.gradientBatch(xi, xj)

    ######################################################################
    # -- Vectorized (Batch) Evaluation -- #
    ######################################################################

    def evaluateBatch(self, xi: np.ndarray, xj: np.ndarray) -> np.ndarray:
        '''
        Kernel values for broadcastable position arrays.

        Parameters:
        -----------
        xi : np.ndarray
            Positions, shape (..., 3)
        xj : np.ndarray
            Positions, shape (..., 3)

        Returns:
        --------
        np.ndarray : Kernel values, shape (...)
        '''
        q = np.linalg.norm(np.asarray(xi, dtype=float) - np.asarray(xj, dtype=float), axis=-1) / self.h
        t1 = np.maximum(1.0 - q, 0.0)
        t2 = np.maximum(2.0 - q, 0.0)
        return self.alpha * (t2 * t2 * t2 - 4.0 * t1 * t1 * t1)

    def gradientBatch(self, xi: np.ndarray, xj: np.ndarray) -> np.ndarray:
        '''
        Kernel gradients (with respect to x_i) for broadcastable arrays.

        Parameters:
        -----------
        xi : np.ndarray
            Positions, shape (..., 3)
        xj : np.ndarray
            Positions, shape (..., 3)

        Returns:
        --------
        np.ndarray : Gradients, shape (..., 3)
        '''
        d = (np.asarray(xi, dtype=float) - np.asarray(xj, dtype=float)) / self.h
        q = np.linalg.norm(d, axis=-1)
        t1 = np.maximum(1.0 - q, 0.0)
        t2 = np.maximum(2.0 - q, 0.0)
        dwdq = self.alpha * (-3.0 * t2 * t2 + 12.0 * t1 * t1)

        nonZero = q > 0.0
        safeQ = np.where(nonZero, q, 1.0)
        scale = np.where(nonZero, dwdq / safeQ, 0.0)
        return scale[..., np.newaxis] * d

    ######################################################################
    # -- Per-Particle Operators -- #
    ######################################################################

    def density(
        self,
        particles: ParticleSystem,
        neighbors: np.ndarray,
        attribute: Attribute,
        queryPos: np.ndarray,
    ) -> float:
        '''
        SPH summation sum_j a_j * W(queryPos, x_j).

        With attribute=Attribute.MASS this is the particle density; a
        particle in its own neighborhood contributes a_i * W(0).

        Parameters:
        -----------
        particles : ParticleSystem
            Particle system the neighbor indices refer to
        neighbors : np.ndarray
            Neighbor indices
        attribute : Attribute
            Scalar attribute to sum (normally MASS)
        queryPos : np.ndarray
            Query position, shape (3,)

        Returns:
        --------
        float : Kernel-weighted sum
        '''
        nb = np.asarray(neighbors, dtype=np.int64)
        if len(nb) == 0:
            return 0.0
        values = particles.attribute(attribute)[nb]
        weights = self.evaluateBatch(queryPos, particles.positions[nb])
        return float(np.sum(values * weights))

    def pressureGradientTerm(
        self,
        particles: ParticleSystem,
        neighbors: np.ndarray,
        attribute: Attribute,
        i: int,
    ) -> np.ndarray:
        '''
        Symmetrized SPH gradient of a scalar attribute at particle i.

        rho_i * sum_j m_j * (a_i / rho_i^2 + a_j / rho_j^2) * grad W_ij

        Parameters:
        -----------
        particles : ParticleSystem
            Particle system with densities from the current step
        neighbors : np.ndarray
            Neighbor indices of particle i
        attribute : Attribute
            Scalar attribute (normally PRESSURE)
        i : int
            Particle index

        Returns:
        --------
        np.ndarray : Gradient estimate, shape (3,)
        '''
        nb = np.asarray(neighbors, dtype=np.int64)
        if len(nb) == 0:
            return np.zeros(3)

        a = particles.attribute(attribute)
        rho = particles.densities
        pos = particles.positions

        gradW = self.gradientBatch(pos[i], pos[nb])
        coeff = particles.masses[nb] * (
            a[i] * _inverseSquare(rho[i]) + a[nb] * _inverseSquare(rho[nb])
        )
        return rho[i] * np.sum(coeff[:, np.newaxis] * gradW, axis=0)

    def viscousLaplacianTerm(
        self,
        particles: ParticleSystem,
        neighbors: np.ndarray,
        attribute: Attribute,
        i: int,
    ) -> np.ndarray:
        '''
        SPH Laplacian of a vector attribute at particle i.

        2 * sum_j (m_j / rho_j) * ((a_i - a_j) . x_ij) / (|x_ij|^2 + 0.01 h^2) * grad W_ij

        Parameters:
        -----------
        particles : ParticleSystem
            Particle system with densities from the current step
        neighbors : np.ndarray
            Neighbor indices of particle i
        attribute : Attribute
            Vector attribute (normally VELOCITY)
        i : int
            Particle index

        Returns:
        --------
        np.ndarray : Laplacian estimate, shape (3,)
        '''
        nb = np.asarray(neighbors, dtype=np.int64)
        if len(nb) == 0:
            return np.zeros(3)

        a = particles.attribute(attribute)
        pos = particles.positions

        xij = pos[i] - pos[nb]
        aij = a[i] - a[nb]
        gradW = self.gradientBatch(pos[i], pos[nb])

        coeff = self._laplacianCoefficients(
            particles.masses[nb] * _inverse(particles.densities[nb]), aij, xij,
        )
        return 2.0 * np.sum(coeff[:, np.newaxis] * gradW, axis=0)

    def divergenceTerm(
        self,
        particles: ParticleSystem,
        neighbors: np.ndarray,
        attribute: Attribute,
        i: int,
    ) -> float:
        '''
        SPH divergence sum sum_j m_j * (a_i - a_j) . grad W_ij.

        Divide by -rho_i for the divergence of the field itself.

        Parameters:
        -----------
        particles : ParticleSystem
            Particle system
        neighbors : np.ndarray
            Neighbor indices of particle i
        attribute : Attribute
            Vector attribute (normally VELOCITY)
        i : int
            Particle index

        Returns:
        --------
        float : Divergence sum
        '''
        nb = np.asarray(neighbors, dtype=np.int64)
        if len(nb) == 0:
            return 0.0

        a = particles.attribute(attribute)
        pos = particles.positions
        gradW = self.gradientBatch(pos[i], pos[nb])
        return float(np.sum(particles.masses[nb] * np.sum((a[i] - a[nb]) * gradW, axis=1)))

    ######################################################################
    # -- Whole-System Operators -- #
    ######################################################################

    def densityAll(
        self,
        particles: ParticleSystem,
        neighborhoods: Neighborhoods,
        attribute: Attribute = Attribute.MASS,
    ) -> np.ndarray:
        '''
        density() for every particle, queried at its own position.

        Returns:
        --------
        np.ndarray : Shape (N,)
        '''
        owners, members = neighborhoods.pairs()
        pos = particles.positions

        weights = self.evaluateBatch(pos[owners], pos[members])
        result = np.zeros(len(neighborhoods))
        np.add.at(result, owners, particles.attribute(attribute)[members] * weights)
        return result

    def pressureGradientAll(
        self,
        particles: ParticleSystem,
        neighborhoods: Neighborhoods,
        attribute: Attribute = Attribute.PRESSURE,
    ) -> np.ndarray:
        '''
        pressureGradientTerm() for every particle.

        Returns:
        --------
        np.ndarray : Shape (N, 3)
        '''
        owners, members = neighborhoods.pairs()
        pos = particles.positions
        rho = particles.densities
        a = particles.attribute(attribute)
        invRhoSq = _inverseSquare(rho)

        gradW = self.gradientBatch(pos[owners], pos[members])
        coeff = particles.masses[members] * (
            a[owners] * invRhoSq[owners] + a[members] * invRhoSq[members]
        )

        result = np.zeros((len(neighborhoods), 3))
        np.add.at(result, owners, coeff[:, np.newaxis] * gradW)
        # Particles with an empty neighborhood keep a zero sum
        hasNeighbors = neighborhoods.counts() > 0
        result[hasNeighbors] *= rho[hasNeighbors, np.newaxis]
        return result

    def viscousLaplacianAll(
        self,
        particles: ParticleSystem,
        neighborhoods: Neighborhoods,
        attribute: Attribute = Attribute.VELOCITY,
    ) -> np.ndarray:
        '''
        viscousLaplacianTerm() for every particle.

        Returns:
        --------
        np.ndarray : Shape (N, 3)
        '''
        owners, members = neighborhoods.pairs()
        pos = particles.positions
        a = particles.attribute(attribute)

        xij = pos[owners] - pos[members]
        aij = a[owners] - a[members]
        gradW = self.gradientBatch(pos[owners], pos[members])

        massOverRho = particles.masses * _inverse(particles.densities)
        coeff = self._laplacianCoefficients(massOverRho[members], aij, xij)

        result = np.zeros((len(neighborhoods), 3))
        np.add.at(result, owners, coeff[:, np.newaxis] * gradW)
        return 2.0 * result

    def divergenceAll(
        self,
        particles: ParticleSystem,
        neighborhoods: Neighborhoods,
        attribute: Attribute = Attribute.VELOCITY,
    ) -> np.ndarray:
        '''
        divergenceTerm() for every particle.

        Returns:
        --------
        np.ndarray : Shape (N,)
        '''
        owners, members = neighborhoods.pairs()
        pos = particles.positions
        a = particles.attribute(attribute)

        gradW = self.gradientBatch(pos[owners], pos[members])
        contrib = particles.masses[members] * np.sum((a[owners] - a[members]) * gradW, axis=1)

        result = np.zeros(len(neighborhoods))
        np.add.at(result, owners, contrib)
        return result

    def _laplacianCoefficients(
        self, massOverRho: np.ndarray, aij: np.ndarray, xij: np.ndarray,
    ) -> np.ndarray:
        '''(m_j / rho_j) * (a_ij . x_ij) / (|x_ij|^2 + eta^2) per pair.'''
        etaSq = const.viscosityEpsilon * self.h * self.h
        distSq = np.sum(xij * xij, axis=1)
        return massOverRho * np.sum(aij * xij, axis=1) / (distSq + etaSq)
