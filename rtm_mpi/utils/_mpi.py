__all__ = [
    "mpi_barrier",
    "mpi_bcast",
    "mpi_bcast_object",
    "mpi_reduce",
]

from typing import Any

import numpy as np
from mpi4py import MPI


def mpi_reduce(base_comm: MPI.Comm,
               buf: np.ndarray,
               root: int = 0,
               op: MPI.Op = MPI.SUM) -> np.ndarray:
    """MPI_Reduce into ``root``

    Every rank calls this routine in the same way; the root reduces in place
    (``MPI.IN_PLACE``) while the other ranks only contribute their buffer,
    whose content must be considered meaningless after the call.

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Base MPI Communicator.
    buf : :obj:`numpy.ndarray`
        Contiguous buffer holding the local contribution.
    root : :obj:`int`, optional
        Rank receiving the reduction.
    op : :obj:mpi4py.MPI.Op, optional
        The reduction operation to apply. Defaults to MPI.SUM.

    Returns
    -------
    buf : :obj:`numpy.ndarray`
        The input buffer (holding the reduced values at ``root``).

    """
    if not buf.flags.c_contiguous:
        raise ValueError("buf must be C-contiguous to be reduced in place")
    if base_comm.Get_rank() == root:
        base_comm.Reduce(MPI.IN_PLACE, buf, op=op, root=root)
    else:
        base_comm.Reduce(buf, None, op=op, root=root)
    return buf


def mpi_bcast(base_comm: MPI.Comm,
              buf: np.ndarray,
              root: int = 0) -> np.ndarray:
    """MPI_Bcast of a contiguous buffer from ``root``"""
    if not buf.flags.c_contiguous:
        raise ValueError("buf must be C-contiguous to be broadcasted")
    base_comm.Bcast(buf, root=root)
    return buf


def mpi_bcast_object(base_comm: MPI.Comm,
                     obj: Any,
                     root: int = 0) -> Any:
    """Broadcast of a (small) picklable object from ``root``"""
    return base_comm.bcast(obj, root=root)


def mpi_barrier(base_comm: MPI.Comm) -> None:
    """MPI_Barrier"""
    base_comm.Barrier()
