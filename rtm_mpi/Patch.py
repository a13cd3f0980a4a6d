__all__ = [
    "Region",
    "extract",
    "embed_add",
]

from typing import Tuple

import numpy as np
from pylops.utils import NDArray


class Region:
    r"""Rectangular patch of a global 2-D grid

    A region identifies the local extent of a shot inside the global model
    grid by means of its offsets and sizes along the two axes of the grid
    (horizontal ``x`` and depth ``z``). Global arrays are indexed as
    ``[ix, iz]``.

    Parameters
    ----------
    x0 : :obj:`int`
        Offset of the patch along the horizontal axis
    z0 : :obj:`int`
        Offset of the patch along the depth axis
    nx : :obj:`int`
        Number of horizontal samples of the patch
    nz : :obj:`int`
        Number of depth samples of the patch

    Raises
    ------
    ValueError
        If any of the offsets is negative or any of the sizes is not positive

    """

    def __init__(self, x0: int, z0: int, nx: int, nz: int):
        if x0 < 0 or z0 < 0:
            raise ValueError(f"Region offsets must be non-negative, got x0={x0}, z0={z0}")
        if nx <= 0 or nz <= 0:
            raise ValueError(f"Region sizes must be positive, got nx={nx}, nz={nz}")
        self.x0, self.z0 = int(x0), int(z0)
        self.nx, self.nz = int(nx), int(nz)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.nx, self.nz

    @property
    def slices(self) -> Tuple[slice, slice]:
        """Index of the region inside the global arena"""
        return (slice(self.x0, self.x0 + self.nx),
                slice(self.z0, self.z0 + self.nz))

    def check(self, global_shape: Tuple[int, int]) -> "Region":
        """Check that the region lies within a grid of shape ``global_shape``

        Raises
        ------
        IndexError
            If offset plus size exceeds the global bounds along any axis

        """
        if self.x0 + self.nx > global_shape[0] or self.z0 + self.nz > global_shape[1]:
            raise IndexError(f"{self} exceeds global grid of shape {tuple(global_shape)}")
        return self

    def __eq__(self, other):
        if not isinstance(other, Region):
            return NotImplemented
        return (self.x0, self.z0, self.nx, self.nz) == \
            (other.x0, other.z0, other.nx, other.nz)

    def __repr__(self):
        return f"<Region x0={self.x0}, z0={self.z0}, nx={self.nx}, nz={self.nz}>"


def extract(field: NDArray, region: Region) -> NDArray:
    r"""Copy the sub-grid ``region`` out of the global array ``field``

    Parameters
    ----------
    field : :obj:`numpy.ndarray`
        Global array of shape :math:`[n_x \times n_z]`
    region : :obj:`rtm_mpi.Patch.Region`
        Patch to extract

    Returns
    -------
    local : :obj:`numpy.ndarray`
        Copy of the patch of shape ``region.shape``

    """
    region.check(field.shape)
    return field[region.slices].copy()


def embed_add(field: NDArray, region: Region,
              local: NDArray, scale: float = 1.) -> NDArray:
    r"""Add ``scale * local`` into the sub-grid ``region`` of ``field``

    The global array is modified in place. Values already present in the
    region are preserved, as patches of different shots may overlap.

    Parameters
    ----------
    field : :obj:`numpy.ndarray`
        Global array of shape :math:`[n_x \times n_z]`
    region : :obj:`rtm_mpi.Patch.Region`
        Patch where the local array is stacked
    local : :obj:`numpy.ndarray`
        Local array of shape ``region.shape``
    scale : :obj:`float`, optional
        Scaling applied to the local array

    Returns
    -------
    field : :obj:`numpy.ndarray`
        Updated global array

    Raises
    ------
    ValueError
        If ``local`` does not have the shape of ``region``

    """
    region.check(field.shape)
    if tuple(local.shape) != region.shape:
        raise ValueError(f"Local array shape {tuple(local.shape)} does not "
                         f"match region shape {region.shape}")
    if scale != 0.:
        field[region.slices] += scale * np.asarray(local, dtype=field.dtype)
    return field
