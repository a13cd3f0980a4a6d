__all__ = [
    "Shot",
    "SurveyGeometry",
    "read_survey",
]

from typing import List, Optional, Sequence

import numpy as np
from pylops.utils import NDArray

from rtm_mpi.Patch import Region
from rtm_mpi.io.su import read_su_headers


class Shot:
    r"""Acquisition geometry of a single shot

    Positions are expressed as indices of the global grid.

    Parameters
    ----------
    index : :obj:`int`
        Index of the shot in the survey
    sx : :obj:`int`
        Horizontal position of the source
    sz : :obj:`int`
        Depth of the source
    rx : :obj:`numpy.ndarray`
        Horizontal positions of the receivers
    rz : :obj:`numpy.ndarray`
        Depths of the receivers
    itr : :obj:`int`
        Index of the first trace of the shot in the record file
    region : :obj:`rtm_mpi.Patch.Region`
        Local patch of the global grid covered by the shot

    """

    def __init__(self, index: int, sx: int, sz: int,
                 rx: NDArray, rz: NDArray, itr: int,
                 region: Region):
        rx, rz = np.asarray(rx, dtype=int), np.asarray(rz, dtype=int)
        if rx.shape != rz.shape or rx.ndim != 1 or rx.size == 0:
            raise ValueError(f"Shot {index}: rx and rz must be non-empty 1-d arrays "
                             f"of the same size")
        self.index = index
        self.sx, self.sz = int(sx), int(sz)
        self.rx, self.rz = rx, rz
        self.itr = int(itr)
        self.region = region

    @property
    def nr(self) -> int:
        """Number of receivers (traces) of the shot"""
        return self.rx.size

    def _inside(self, x, z) -> bool:
        r = self.region
        return bool(np.all((x >= r.x0) & (x < r.x0 + r.nx) &
                           (z >= r.z0) & (z < r.z0 + r.nz)))

    def check(self, global_shape) -> "Shot":
        """Check that the patch fits in the global grid and contains the
        source and all receivers"""
        self.region.check(global_shape)
        if not self._inside(self.sx, self.sz) or not self._inside(self.rx, self.rz):
            raise IndexError(f"Shot {self.index}: source or receivers outside of {self.region}")
        return self

    def __repr__(self):
        return f"<Shot {self.index} sx={self.sx}, sz={self.sz}, nr={self.nr}, " \
               f"itr={self.itr}, {self.region}>"


class SurveyGeometry:
    r"""Survey geometry

    Global grid, time axis and per-shot acquisition geometry. A shot is made
    current with :meth:`select_shot`, after which the local (patch-relative)
    offsets and positions of the shot are available as attributes
    (``x0``, ``z0``, ``nx``, ``nz``, ``sx``, ``sz``, ``rx``, ``rz``, ``itr``,
    ``nr``).

    Parameters
    ----------
    gnx : :obj:`int`
        Number of horizontal samples of the global grid
    gnz : :obj:`int`
        Number of depth samples of the global grid
    shots : :obj:`list`
        Shots of the survey (:class:`Shot`)
    nt : :obj:`int`
        Number of time samples of each trace
    dt : :obj:`float`
        Time sampling (s)
    dx : :obj:`float`, optional
        Horizontal sampling of the grid
    dz : :obj:`float`, optional
        Depth sampling of the grid

    Raises
    ------
    IndexError
        If any shot lies (even partially) outside of the global grid

    """

    def __init__(self, gnx: int, gnz: int, shots: Sequence[Shot],
                 nt: int, dt: float, dx: float = 1., dz: float = 1.):
        if gnx <= 0 or gnz <= 0:
            raise ValueError(f"Grid sizes must be positive, got gnx={gnx}, gnz={gnz}")
        if nt <= 0 or dt <= 0.:
            raise ValueError(f"Time axis must be positive, got nt={nt}, dt={dt}")
        self.gnx, self.gnz = gnx, gnz
        self.nt, self.dt = nt, dt
        self.dx, self.dz = dx, dz
        self.shots: List[Shot] = [shot.check((gnx, gnz)) for shot in shots]
        self._current: Optional[Shot] = None

    @property
    def ns(self) -> int:
        """Number of shots"""
        return len(self.shots)

    @property
    def global_shape(self):
        return self.gnx, self.gnz

    @property
    def ntraces(self) -> int:
        """Total number of traces"""
        return sum(shot.nr for shot in self.shots)

    @property
    def shot(self) -> Shot:
        """Current shot"""
        if self._current is None:
            raise RuntimeError("No shot selected, call select_shot first")
        return self._current

    def select_shot(self, index: int) -> Shot:
        """Make shot ``index`` the current shot"""
        if not 0 <= index < self.ns:
            raise IndexError(f"Shot index {index} out of range for a survey of {self.ns} shots")
        self._current = self.shots[index]
        return self._current

    @property
    def region(self) -> Region:
        return self.shot.region

    @property
    def x0(self) -> int:
        return self.shot.region.x0

    @property
    def z0(self) -> int:
        return self.shot.region.z0

    @property
    def nx(self) -> int:
        return self.shot.region.nx

    @property
    def nz(self) -> int:
        return self.shot.region.nz

    @property
    def sx(self) -> int:
        return self.shot.sx - self.x0

    @property
    def sz(self) -> int:
        return self.shot.sz - self.z0

    @property
    def rx(self) -> NDArray:
        return self.shot.rx - self.x0

    @property
    def rz(self) -> NDArray:
        return self.shot.rz - self.z0

    @property
    def itr(self) -> int:
        return self.shot.itr

    @property
    def nr(self) -> int:
        return self.shot.nr

    def __repr__(self):
        return f"<SurveyGeometry gnx={self.gnx}, gnz={self.gnz}, ns={self.ns}, " \
               f"nt={self.nt}, dt={self.dt}>"


def _scaled(values: NDArray, scalers: NDArray) -> NDArray:
    # SEG-Y convention: positive scalers multiply, negative scalers divide
    scalers = scalers.astype(float)
    factor = np.ones_like(scalers)
    factor[scalers > 0] = scalers[scalers > 0]
    factor[scalers < 0] = -1. / scalers[scalers < 0]
    return values * factor


def read_survey(filename, gnx: int, gnz: int, aperture: int = 0,
                dx: float = 1., dz: float = 1.) -> SurveyGeometry:
    r"""Load the survey geometry from the trace headers of a SU file

    Consecutive traces with the same ``fldr`` form a shot. Horizontal
    positions are read from ``sx`` and ``gx`` (scaled by ``scalco``), depths
    from ``selev`` and ``gelev`` (scaled by ``scalel``, positive downward);
    they are converted to grid indices with ``dx`` and ``dz``. The local patch
    of each shot spans the full depth of the model and, horizontally, the
    extent of the source and receivers enlarged by ``aperture`` samples on
    each side (clipped to the global grid).

    Parameters
    ----------
    filename : :obj:`str` or :obj:`os.PathLike`
        SU file with the acquisition geometry
    gnx : :obj:`int`
        Number of horizontal samples of the global grid
    gnz : :obj:`int`
        Number of depth samples of the global grid
    aperture : :obj:`int`, optional
        Extra horizontal samples added to each side of a shot patch
    dx : :obj:`float`, optional
        Horizontal sampling of the grid
    dz : :obj:`float`, optional
        Depth sampling of the grid

    Returns
    -------
    survey : :obj:`SurveyGeometry`
        Survey geometry

    Raises
    ------
    OSError
        If the file cannot be read
    IndexError
        If any source or receiver falls outside of the global grid

    """
    if aperture < 0:
        raise ValueError(f"aperture must be non-negative, got {aperture}")
    headers = read_su_headers(filename)
    if len(headers) == 0:
        raise OSError(f"{filename} contains no traces")
    xs = np.rint(_scaled(headers["sx"], headers["scalco"]) / dx).astype(int)
    xr = np.rint(_scaled(headers["gx"], headers["scalco"]) / dx).astype(int)
    zs = np.rint(_scaled(headers["selev"], headers["scalel"]) / dz).astype(int)
    zr = np.rint(_scaled(headers["gelev"], headers["scalel"]) / dz).astype(int)

    # first trace of each run of equal fldr
    fldr = headers["fldr"]
    starts = np.flatnonzero(np.r_[True, fldr[1:] != fldr[:-1]])
    ends = np.r_[starts[1:], len(headers)]

    shots = []
    for ishot, (itr, etr) in enumerate(zip(starts, ends)):
        sx, sz = xs[itr], zs[itr]
        rx, rz = xr[itr:etr], zr[itr:etr]
        xmin = max(0, min(sx, rx.min()) - aperture)
        xmax = min(gnx - 1, max(sx, rx.max()) + aperture)
        if xmax < xmin:
            raise IndexError(f"Shot {ishot} lies outside of the global grid")
        region = Region(xmin, 0, xmax - xmin + 1, gnz)
        shots.append(Shot(ishot, sx, sz, rx, rz, itr, region))

    dt = float(headers["dt"][0]) * 1e-6
    return SurveyGeometry(gnx, gnz, shots, nt=int(headers["ns"][0]),
                          dt=dt, dx=dx, dz=dz)
