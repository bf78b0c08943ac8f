# -- Periodic Grid Index for Neighbor Search -- #

'''
Cell-list spatial index for O(N) neighbor queries in SPH.

Particles are bucketed into a fixed-resolution 3D grid of
gridSize^3 cells. A particle's integer cell coordinate is
floor(position / gridScale); the bucket it lands in is that
coordinate taken modulo gridSize on each axis (Euclidean modulo, so
negative coordinates wrap correctly). The grid is therefore
logically infinite but periodic:

    Wrap-around aliasing: two particles whose cell coordinates differ
    by a multiple of gridSize share a bucket. Queries near one side of
    a domain wider than gridSize * gridScale return particles from the
    far side, and if the query cube (2 * ceil(radius / gridScale) + 1
    cells per axis) is wider than gridSize, the same bucket is visited
    more than once and its particles are returned more than once. The
    index performs no deduplication; keep the domain extent below the
    wrap period (see wrapPeriod) to avoid both effects.

Buckets are stored in a flat counting-sort layout (cellStart offsets
into sortedIndices), which keeps build and query fully vectorized and
preserves insertion order within each bucket.

References:
-----------
Ihmsen et al. (2011) -- Parallel Neighbor-Search for SPH
Green (2010) -- Particle Simulation using CUDA
'''

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from sphFluid import constants as const
from sphFluid.sph.protocols import ConfigurationError


######################################################################
# -- Neighborhoods (CSR) -- #
######################################################################

@dataclass(frozen=True)
class Neighborhoods:
    '''
    One neighbor-index list per query particle, stored as CSR.

    The neighbors of particle i are indices[offsets[i]:offsets[i+1]].

    Parameters:
    -----------
    offsets : np.ndarray
        Row offsets, shape (N + 1,)
    indices : np.ndarray
        Concatenated neighbor indices
    '''

    offsets: np.ndarray
    indices: np.ndarray

    def __len__(self) -> int:
        return len(self.offsets) - 1

    def __getitem__(self, i: int) -> np.ndarray:
        return self.indices[self.offsets[i]:self.offsets[i + 1]]

    def counts(self) -> np.ndarray:
        '''Neighbor count per particle.'''
        return np.diff(self.offsets)

    def pairs(self) -> tuple[np.ndarray, np.ndarray]:
        '''
        Flatten to (owner, member) index arrays.

        Every (i, j) with j in neighborhood i appears once per
        occurrence, including self-pairs and aliased duplicates.
        '''
        owners = np.repeat(np.arange(len(self)), self.counts())
        return (owners, self.indices)

    @classmethod
    def fromLists(cls, lists: list) -> Neighborhoods:
        '''Build from a list of per-particle index sequences.'''
        lengths = np.array([len(nb) for nb in lists], dtype=np.int64)
        offsets = np.zeros(len(lists) + 1, dtype=np.int64)
        offsets[1:] = np.cumsum(lengths)
        if len(lists) == 0 or offsets[-1] == 0:
            return cls(offsets, np.empty(0, dtype=np.int64))
        indices = np.concatenate([np.asarray(nb, dtype=np.int64) for nb in lists])
        return cls(offsets, indices)


######################################################################
# -- Periodic Grid Index -- #
######################################################################

class PeriodicGridIndex:
    '''
    Immutable periodic uniform-grid index over particle positions.

    Build a fresh index every step with PeriodicGridIndex.build();
    queries never modify it, so it can be shared read-only.

    Parameters:
    -----------
    gridScale : float
        Cell edge length
    gridSize : int
        Cells per axis
    cellStart : np.ndarray
        Bucket offsets into sortedIndices, shape (gridSize^3 + 1,)
    sortedIndices : np.ndarray
        Particle indices grouped by bucket
    '''

    def __init__(
        self,
        gridScale: float,
        gridSize: int,
        cellStart: np.ndarray,
        sortedIndices: np.ndarray,
    ) -> None:
        self._gridScale = float(gridScale)
        self._gridSize = int(gridSize)
        self._cellStart = cellStart
        self._sortedIndices = sortedIndices
        self._cellStart.flags.writeable = False
        self._sortedIndices.flags.writeable = False

    @classmethod
    def build(
        cls,
        positions: np.ndarray,
        gridScale: float,
        gridSize: int = const.gridSize,
    ) -> PeriodicGridIndex:
        '''
        Bucket every particle into its wrapped grid cell.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, 3)
        gridScale : float
            Cell edge length (> 0)
        gridSize : int
            Cells per axis (>= 1)

        Returns:
        --------
        PeriodicGridIndex : Index over the given positions
        '''
        if not (math.isfinite(gridScale) and gridScale > 0.0):
            raise ConfigurationError(f'gridScale must be positive, got {gridScale}')
        if int(gridSize) != gridSize or gridSize < 1:
            raise ConfigurationError(f'gridSize must be a positive integer, got {gridSize}')
        gridSize = int(gridSize)

        positions = np.asarray(positions, dtype=float).reshape(-1, 3)
        nCells = gridSize ** 3

        wrapped = np.mod(np.floor(positions / gridScale).astype(np.int64), gridSize)
        flatCells = (wrapped[:, 0] * gridSize + wrapped[:, 1]) * gridSize + wrapped[:, 2]

        # Stable counting sort keeps insertion order inside each bucket
        sortedIndices = np.argsort(flatCells, kind='stable').astype(np.int64)
        cellStart = np.zeros(nCells + 1, dtype=np.int64)
        cellStart[1:] = np.cumsum(np.bincount(flatCells, minlength=nCells))

        return cls(gridScale, gridSize, cellStart, sortedIndices)

    @property
    def gridScale(self) -> float:
        '''Cell edge length.'''
        return self._gridScale

    @property
    def gridSize(self) -> int:
        '''Cells per axis.'''
        return self._gridSize

    @property
    def wrapPeriod(self) -> float:
        '''Extent gridSize * gridScale after which positions alias.'''
        return self._gridSize * self._gridScale

    @property
    def nParticles(self) -> int:
        '''Number of indexed particles.'''
        return len(self._sortedIndices)

    def cellCoordinates(self, positions: np.ndarray) -> np.ndarray:
        '''Unwrapped integer cell coordinates floor(position / gridScale).'''
        return np.floor(np.asarray(positions, dtype=float) / self._gridScale).astype(np.int64)

    def cellOf(self, position: np.ndarray) -> tuple[int, int, int]:
        '''Wrapped bucket coordinate of a single position.'''
        wrapped = np.mod(self.cellCoordinates(position).reshape(3), self._gridSize)
        return (int(wrapped[0]), int(wrapped[1]), int(wrapped[2]))

    def bucket(self, cell: tuple[int, int, int]) -> np.ndarray:
        '''Particle indices stored in a (wrapped) bucket.'''
        g = self._gridSize
        x, y, z = (c % g for c in cell)
        flat = (x * g + y) * g + z
        return self._sortedIndices[self._cellStart[flat]:self._cellStart[flat + 1]]

    def neighborsWithin(self, position: np.ndarray, radius: float) -> np.ndarray:
        '''
        Indices of all particles in the cell cube around a position.

        Visits every cell in [cell - r, cell + r] per axis, with
        r = ceil(radius / gridScale), each coordinate wrapped
        independently, and concatenates bucket contents in x, y, z
        order. Particles outside the radius but inside a visited cell
        are included; the kernel's compact support zeroes them.

        Parameters:
        -----------
        position : np.ndarray
            Query position, shape (3,)
        radius : float
            Query radius

        Returns:
        --------
        np.ndarray : Particle indices (may contain aliased duplicates)
        '''
        return self.queryAll(np.asarray(position, dtype=float).reshape(1, 3), radius).indices

    def queryAll(self, positions: np.ndarray, radius: float) -> Neighborhoods:
        '''
        Neighborhood of every query position at once.

        Parameters:
        -----------
        positions : np.ndarray
            Query positions, shape (M, 3)
        radius : float
            Query radius

        Returns:
        --------
        Neighborhoods : One index list per query position
        '''
        positions = np.asarray(positions, dtype=float).reshape(-1, 3)
        cells = self._candidateCells(positions, radius)  # (M, K)

        starts = self._cellStart[cells]
        lengths = self._cellStart[cells + 1] - starts

        flatStarts = starts.ravel()
        flatLengths = lengths.ravel()
        total = int(flatLengths.sum())

        # Gather every bucket slice in one shot: output slot k of a bucket
        # maps to sortedIndices[start + k]
        outStarts = np.cumsum(flatLengths) - flatLengths
        gather = np.repeat(flatStarts - outStarts, flatLengths) + np.arange(total, dtype=np.int64)

        offsets = np.zeros(len(positions) + 1, dtype=np.int64)
        offsets[1:] = np.cumsum(lengths.sum(axis=1))

        return Neighborhoods(offsets, self._sortedIndices[gather])

    def _candidateCells(self, positions: np.ndarray, radius: float) -> np.ndarray:
        '''
        Flat bucket ids of the query cube around each position.

        Returns:
        --------
        np.ndarray : Shape (M, (2r + 1)^3), x-major order
        '''
        g = self._gridSize
        cellRadius = max(int(math.ceil(radius / self._gridScale)), 0)
        offsets = np.arange(-cellRadius, cellRadius + 1, dtype=np.int64)

        cells = self.cellCoordinates(positions)
        wx = np.mod(cells[:, 0, None] + offsets, g)
        wy = np.mod(cells[:, 1, None] + offsets, g)
        wz = np.mod(cells[:, 2, None] + offsets, g)

        flat = (wx[:, :, None, None] * g + wy[:, None, :, None]) * g + wz[:, None, None, :]
        return flat.reshape(len(positions), -1)


######################################################################
# -- All-Pairs Search (Reference Oracle) -- #
######################################################################

class AllPairsSearch:
    '''
    O(N^2) neighbor search: every particle neighbors every particle.

    Used by Fluid.stepSlow() as the correctness reference for the
    grid index. No distance filtering is done; the kernel's compact
    support zeroes out-of-range pairs. Time and memory both grow as
    N^2, so it is only practical for small systems.

    Parameters:
    -----------
    nParticles : int
        Number of particles in the system
    '''

    def __init__(self, nParticles: int) -> None:
        self._nParticles = int(nParticles)

    def neighborsWithin(self, position: np.ndarray, radius: float) -> np.ndarray:
        '''All particle indices.'''
        return np.arange(self._nParticles, dtype=np.int64)

    def queryAll(self, positions: np.ndarray, radius: float) -> Neighborhoods:
        '''Every query position gets the full index range.'''
        nQueries = np.asarray(positions).reshape(-1, 3).shape[0]
        n = self._nParticles
        offsets = np.arange(nQueries + 1, dtype=np.int64) * n
        indices = np.tile(np.arange(n, dtype=np.int64), nQueries)
        return Neighborhoods(offsets, indices)
