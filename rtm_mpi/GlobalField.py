from numbers import Integral
from typing import Optional, Tuple, Union

import numpy as np
from mpi4py import MPI
from pylops.utils import DTypeLike, NDArray
from pylops.utils._internal import _value_or_sized_to_tuple

from rtm_mpi.Distributed import DistributedMixIn
from rtm_mpi.Patch import Region, embed_add, extract


def shot_split(nshots: int, rank: int, size: int) -> range:
    """Shots assigned to a rank

    Shots are dealt to ranks in a round-robin fashion, so that rank ``r``
    processes shots ``r, r + size, r + 2 size, ...`` smaller than ``nshots``.
    The sets of different ranks are disjoint and their union covers every
    shot exactly once.

    Parameters
    ----------
    nshots : :obj:`int`
        Total number of shots.
    rank : :obj:`int`
        Rank of the process.
    size : :obj:`int`
        Number of processes.

    Returns
    -------
    shots : :obj:`range`
        Strictly increasing indices of the shots assigned to ``rank``.
    """
    if size < 1:
        raise ValueError(f"Number of processes must be positive, got {size}")
    if not 0 <= rank < size:
        raise ValueError(f"rank must be an integer in [0, {size}), got {rank!r}")
    if nshots < 0:
        raise ValueError(f"Number of shots must be non-negative, got {nshots}")
    return range(rank, nshots, size)


def local_shots(nshots: int, base_comm: MPI.Comm = MPI.COMM_WORLD) -> range:
    """Shots assigned to the calling rank of ``base_comm``"""
    return shot_split(nshots, base_comm.Get_rank(), base_comm.Get_size())


class GlobalField(DistributedMixIn):
    r"""Global field replicated over ranks

    Full-grid array (velocity, image or illumination) of which every rank
    holds its own copy. Copies are kept consistent only through the
    collective methods :meth:`bcast` (root copy to all ranks) and
    :meth:`reduce` (sum of all copies into root); everything else acts on
    the local copy only.

    .. warning:: After :meth:`reduce`, the content of the field is
        meaningful only at the root rank.

    Parameters
    ----------
    global_shape : :obj:`tuple` or :obj:`int`
        Shape of the global array.
    base_comm : :obj:`mpi4py.MPI.Comm`, optional
        MPI Communicator over which the field is shared.
        Defaults to ``mpi4py.MPI.COMM_WORLD``.
    root : :obj:`int`, optional
        Coordinator rank. Defaults to ``0``.
    dtype : :obj:`str`, optional
        Type of elements in input array. Defaults to ``numpy.float64``.
    """

    def __init__(self, global_shape: Union[Tuple, Integral],
                 base_comm: MPI.Comm = MPI.COMM_WORLD,
                 root: int = 0,
                 dtype: Optional[DTypeLike] = np.float64):
        if isinstance(global_shape, Integral):
            global_shape = (global_shape,)
        if not 0 <= root < base_comm.Get_size():
            raise ValueError(f"root must be an integer in [0, {base_comm.Get_size()}), got {root!r}")
        self.dtype = np.dtype(dtype)
        self._global_shape = _value_or_sized_to_tuple(global_shape)
        self._base_comm = base_comm
        self._root = root
        self._local_array = np.zeros(shape=self._global_shape, dtype=self.dtype)

    def __getitem__(self, index):
        return self.local_array[index]

    def __setitem__(self, index, value):
        self.local_array[index] = value

    @property
    def global_shape(self):
        """Global Shape of the field

        Returns
        -------
        global_shape : :obj:`tuple`
        """
        return self._global_shape

    @property
    def base_comm(self):
        """Base MPI Communicator

        Returns
        -------
        base_comm : :obj:`MPI.Comm`
        """
        return self._base_comm

    @property
    def local_array(self):
        """View of the local copy

        Returns
        -------
        local_array : :obj:`numpy.ndarray`
        """
        return self._local_array

    @property
    def rank(self):
        """Rank of the current process

        Returns
        -------
        rank : :obj:`int`
        """
        return self.base_comm.Get_rank()

    @property
    def size(self):
        """Total number of processes

        Returns
        -------
        size : :obj:`int`
        """
        return self.base_comm.Get_size()

    @property
    def root(self):
        return self._root

    @property
    def is_root(self):
        """Whether the current process is the coordinator

        Returns
        -------
        is_root : :obj:`bool`
        """
        return self.rank == self.root

    @property
    def ndim(self):
        return len(self.global_shape)

    def asarray(self):
        """Local copy of the global field

        Returns
        -------
        local_array : :obj:`numpy.ndarray`
        """
        return self.local_array

    @classmethod
    def to_field(cls, x: NDArray,
                 base_comm: MPI.Comm = MPI.COMM_WORLD,
                 root: int = 0):
        """Convert a global array into a GlobalField

        No communication happens: every rank copies its own ``x``. Use
        :meth:`bcast` afterwards if ``x`` is only valid at the root.

        Parameters
        ----------
        x : :obj:`numpy.ndarray`
            Global array.
        base_comm : :obj:`MPI.Comm`, optional
            MPI base communicator
        root : :obj:`int`, optional
            Coordinator rank

        Returns
        -------
        field : :obj:`GlobalField`
            Global field holding a copy of ``x``
        """
        field = GlobalField(global_shape=x.shape,
                            base_comm=base_comm,
                            root=root,
                            dtype=x.dtype)
        field[:] = x
        return field

    def bcast(self):
        """Broadcast the root copy to every rank (collective)"""
        self._bcast(self.base_comm, self.local_array, root=self.root)
        return self

    def reduce(self, op: MPI.Op = MPI.SUM):
        """Sum-reduce the copies of every rank into the root (collective)"""
        self._reduce(self.base_comm, self.local_array, root=self.root, op=op)
        return self

    def extract(self, region: Region) -> NDArray:
        """Copy of the patch ``region`` of the local copy"""
        return extract(self.local_array, region)

    def embed_add(self, region: Region, local: NDArray, scale: float = 1.):
        """Add ``scale * local`` into the patch ``region`` of the local copy"""
        embed_add(self.local_array, region, local, scale=scale)
        return self

    def _check_shape(self, field):
        """Check global shape of the fields
        """
        if self.global_shape != field.global_shape:
            raise ValueError(f"Global Shape Mismatch - "
                             f"{self.global_shape} != {field.global_shape}")

    def _new(self):
        return GlobalField(global_shape=self.global_shape,
                           base_comm=self.base_comm,
                           root=self.root,
                           dtype=self.dtype)

    def __neg__(self):
        arr = self._new()
        arr[:] = -self.local_array
        return arr

    def __add__(self, x):
        return self.add(x)

    def __iadd__(self, x):
        return self.iadd(x)

    def __sub__(self, x):
        return self.__add__(-x)

    def __isub__(self, x):
        return self.__iadd__(-x)

    def __mul__(self, x):
        return self.multiply(x)

    def __rmul__(self, x):
        return self.multiply(x)

    def add(self, field):
        """Element-wise addition of fields
        """
        self._check_shape(field)
        SumField = self._new()
        SumField[:] = self.local_array + field.local_array
        return SumField

    def iadd(self, field):
        """In-place addition of fields
        """
        self._check_shape(field)
        self[:] = self.local_array + field.local_array
        return self

    def multiply(self, field):
        """Element-wise multiplication by a field or a scalar
        """
        ProductField = self._new()
        if isinstance(field, GlobalField):
            self._check_shape(field)
            ProductField[:] = self.local_array * field.local_array
        else:
            ProductField[:] = self.local_array * field
        return ProductField

    def dot(self, field):
        """Dot product of the local copies
        """
        self._check_shape(field)
        return np.dot(self.local_array.ravel(), field.local_array.ravel())

    def norm(self, ord: Optional[int] = None):
        """numpy.linalg.norm of the flattened local copy

        Parameters
        ----------
        ord : :obj:`int`, optional
            Order of the norm.
        """
        return np.linalg.norm(self.local_array.ravel(), ord=ord)

    def zeros_like(self):
        """Creates a field of the same shape filled with zeros
        """
        return self._new()

    def copy(self):
        """Creates a copy of the GlobalField
        """
        arr = self._new()
        arr[:] = self.local_array
        return arr

    def __repr__(self):
        return f"<GlobalField with global shape={self.global_shape}, " \
               f"dtype={self.dtype}, root={self.root}, " \
               f"processes={[i for i in range(self.size)]})> "


def normalize_illumination(image: GlobalField, illumination: GlobalField,
                           epsilon: float = 1e-5) -> GlobalField:
    r"""Illumination-compensated imaging condition

    Divide the stacked image by the stacked illumination, damped by a small
    constant to avoid blow-ups where the subsurface is poorly illuminated:

    .. math::
        I[i] = \frac{R[i]}{S[i] + \epsilon}

    The image is modified in place.

    Parameters
    ----------
    image : :obj:`GlobalField`
        Raw stacked image :math:`R`.
    illumination : :obj:`GlobalField`
        Stacked illumination :math:`S` (non-negative).
    epsilon : :obj:`float`, optional
        Damping constant.

    Returns
    -------
    image : :obj:`GlobalField`
        Normalized image.
    """
    if epsilon <= 0.:
        raise ValueError(f"epsilon must be positive, got {epsilon}")
    image._check_shape(illumination)
    image[:] = image.local_array / (illumination.local_array + epsilon)
    return image
