from typing import Any

import numpy as np
from mpi4py import MPI
from rtm_mpi.utils._mpi import (
    mpi_barrier, mpi_bcast, mpi_bcast_object, mpi_reduce
)


class DistributedMixIn:
    r"""Distributed Mixin class

    This class implements all methods associated with the collective
    communication primitives used by the migration workflow. Every rank
    must call each of these methods in the same order, as they are the only
    points where a rank blocks until all its peers have arrived.

    """
    def _reduce(self,
                base_comm: MPI.Comm,
                buf: np.ndarray,
                root: int = 0,
                op: MPI.Op = MPI.SUM,
                ) -> np.ndarray:
        """Reduce operation into ``root``

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Base MPI Communicator.
        buf: :obj: `numpy.ndarray`
            Buffer containing the local contribution, overwritten with the
            reduced values at ``root``.
        root : :obj:`int`, optional
            Rank receiving the reduction.
        op : :obj: `MPI.Op`, optional
            MPI operation to perform.

        Returns
        -------
        buf : :obj:`numpy.ndarray`
            Input buffer.

        """
        return mpi_reduce(base_comm, buf, root=root, op=op)

    def _bcast(self,
               base_comm: MPI.Comm,
               buf: np.ndarray,
               root: int = 0,
               ) -> np.ndarray:
        """BCast operation

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Base MPI Communicator.
        buf : :obj:`numpy.ndarray`
            Buffer to be broadcasted from ``root`` (and filled elsewhere).
        root : :obj:`int`, optional
            Rank owning the values to broadcast.

        """
        return mpi_bcast(base_comm, buf, root=root)

    def _bcast_object(self,
                      base_comm: MPI.Comm,
                      obj: Any,
                      root: int = 0,
                      ) -> Any:
        """BCast operation for picklable objects"""
        return mpi_bcast_object(base_comm, obj, root=root)

    def _barrier(self, base_comm: MPI.Comm) -> None:
        """Barrier operation"""
        mpi_barrier(base_comm)
