r"""
Seismic Unix (SU) files: a sequence of traces, each made of a 240-byte
header followed by ``ns`` little-endian float32 samples. Headers are
exposed as NumPy structured arrays whose fields follow the SU naming.
Files are read with :mod:`segyio` and written directly from the
structured layout.
"""
__all__ = [
    "SU_HEADER_DTYPE",
    "su_header",
    "read_su",
    "read_su_headers",
    "read_su_traces",
    "write_su",
]

import os
from contextlib import contextmanager
from typing import Optional, Tuple

import numpy as np
import segyio
from pylops.utils import NDArray

_HEADER_FIELDS = [
    ("tracl", "<i4", 0), ("tracr", "<i4", 4), ("fldr", "<i4", 8),
    ("tracf", "<i4", 12), ("ep", "<i4", 16), ("cdp", "<i4", 20),
    ("cdpt", "<i4", 24), ("trid", "<i2", 28), ("nvs", "<i2", 30),
    ("nhs", "<i2", 32), ("duse", "<i2", 34), ("offset", "<i4", 36),
    ("gelev", "<i4", 40), ("selev", "<i4", 44), ("sdepth", "<i4", 48),
    ("gdel", "<i4", 52), ("sdel", "<i4", 56), ("swdep", "<i4", 60),
    ("gwdep", "<i4", 64), ("scalel", "<i2", 68), ("scalco", "<i2", 70),
    ("sx", "<i4", 72), ("sy", "<i4", 76), ("gx", "<i4", 80),
    ("gy", "<i4", 84), ("counit", "<i2", 88), ("delrt", "<i2", 108),
    ("muts", "<i2", 110), ("mute", "<i2", 112), ("ns", "<u2", 114),
    ("dt", "<u2", 116), ("d1", "<f4", 180), ("f1", "<f4", 184),
    ("d2", "<f4", 188), ("f2", "<f4", 192),
]

SU_HEADER_DTYPE = np.dtype({"names": [f[0] for f in _HEADER_FIELDS],
                            "formats": [f[1] for f in _HEADER_FIELDS],
                            "offsets": [f[2] for f in _HEADER_FIELDS],
                            "itemsize": 240})


def _trace_dtype(ns: int) -> np.dtype:
    return np.dtype([("header", SU_HEADER_DTYPE), ("data", "<f4", (ns,))])


def su_header(ntraces: int, ns: int, dt: Optional[float] = None,
              d1: float = 0., d2: float = 0.) -> NDArray:
    """Create zeroed SU headers for ``ntraces`` traces of ``ns`` samples

    Parameters
    ----------
    ntraces : :obj:`int`
        Number of traces
    ns : :obj:`int`
        Number of samples per trace
    dt : :obj:`float`, optional
        Time sampling in seconds (stored in microseconds)
    d1 : :obj:`float`, optional
        Sampling along the fast axis (for non-time data)
    d2 : :obj:`float`, optional
        Sampling along the slow axis (for non-time data)

    Returns
    -------
    headers : :obj:`numpy.ndarray`
        Structured array of headers with ``tracl``, ``ns``, ``dt``, ``d1`` and
        ``d2`` filled in

    """
    if ns > np.iinfo(np.uint16).max:
        raise ValueError(f"SU traces cannot hold more than {np.iinfo(np.uint16).max} samples")
    headers = np.zeros(ntraces, dtype=SU_HEADER_DTYPE)
    headers["tracl"] = np.arange(1, ntraces + 1)
    headers["tracr"] = headers["tracl"]
    headers["ns"] = ns
    if dt is not None:
        headers["dt"] = int(round(dt * 1e6))
    headers["d1"] = d1
    headers["d2"] = d2
    return headers


_FLOAT_FIELDS = ("d1", "f1", "d2", "f2")


@contextmanager
def _open(filename):
    """Open a little-endian SU file with segyio, raising :obj:`OSError` when
    it does not hold a whole number of traces"""
    try:
        f = segyio.su.open(str(filename), ignore_geometry=True, endian="little")
    except (RuntimeError, ValueError) as e:
        raise OSError(f"{filename} is not a valid SU file ({e})") from e
    with f:
        ns = len(f.samples)
        if ns == 0:
            raise OSError(f"{filename} is not a valid SU file (ns=0)")
        nbytes = os.path.getsize(filename)
        itemsize = _trace_dtype(ns).itemsize
        if nbytes != f.tracecount * itemsize:
            raise OSError(f"{filename} is not a valid SU file: {nbytes} bytes "
                          f"is not a multiple of the trace size {itemsize}")
        yield f


def _headers(f) -> NDArray:
    headers = np.zeros(f.tracecount, dtype=SU_HEADER_DTYPE)
    for name, _, offset in _HEADER_FIELDS:
        # segyio addresses header words by their 1-based byte position
        values = f.attributes(offset + 1)[:]
        if name in _FLOAT_FIELDS:
            values = np.asarray(values, dtype=np.int32).view(np.float32)
        headers[name] = values
    return headers


def read_su(filename) -> Tuple[NDArray, NDArray]:
    """Read a whole SU file

    Parameters
    ----------
    filename : :obj:`str` or :obj:`os.PathLike`
        SU file

    Returns
    -------
    data : :obj:`numpy.ndarray`
        Traces of size :math:`[n_{tr} \\times n_s]` (float32)
    headers : :obj:`numpy.ndarray`
        Structured array of trace headers

    Raises
    ------
    OSError
        If the file cannot be read or is not a valid SU file

    """
    with _open(filename) as f:
        data = np.asarray(f.trace.raw[:], dtype=np.float32)
        return data.reshape(f.tracecount, len(f.samples)), _headers(f)


def read_su_headers(filename) -> NDArray:
    """Read the trace headers of a SU file"""
    with _open(filename) as f:
        return _headers(f)


def read_su_traces(filename, itr: int, ntr: int) -> NDArray:
    """Read ``ntr`` consecutive traces starting at trace ``itr``

    Parameters
    ----------
    filename : :obj:`str` or :obj:`os.PathLike`
        SU file
    itr : :obj:`int`
        Index of the first trace (starting from 0)
    ntr : :obj:`int`
        Number of traces

    Returns
    -------
    data : :obj:`numpy.ndarray`
        Traces of size :math:`[n_{tr} \\times n_s]` (float32)

    Raises
    ------
    OSError
        If the file does not contain the requested traces

    """
    with _open(filename) as f:
        if itr < 0 or itr + ntr > f.tracecount:
            raise OSError(f"Traces {itr} to {itr + ntr - 1} not available in "
                          f"{filename} ({f.tracecount} traces)")
        data = np.asarray(f.trace.raw[itr:itr + ntr], dtype=np.float32)
        return data.reshape(ntr, len(f.samples))


def write_su(filename, data: NDArray,
             headers: Optional[NDArray] = None,
             dt: Optional[float] = None,
             d1: float = 0., d2: float = 0.,
             append: bool = False) -> None:
    """Write traces to a SU file

    Parameters
    ----------
    filename : :obj:`str` or :obj:`os.PathLike`
        SU file
    data : :obj:`numpy.ndarray`
        Traces of size :math:`[n_{tr} \\times n_s]`, cast to float32
    headers : :obj:`numpy.ndarray`, optional
        Structured array of trace headers. Created with :func:`su_header`
        when not provided. ``ns`` is always set to the number of samples.
    dt : :obj:`float`, optional
        Time sampling in seconds (only used when ``headers=None``)
    d1 : :obj:`float`, optional
        Sampling along the fast axis (only used when ``headers=None``)
    d2 : :obj:`float`, optional
        Sampling along the slow axis (only used when ``headers=None``)
    append : :obj:`bool`, optional
        Append the traces to an existing file

    """
    data = np.atleast_2d(data)
    ntraces, ns = data.shape
    if headers is None:
        headers = su_header(ntraces, ns, dt=dt, d1=d1, d2=d2)
    elif len(headers) != ntraces:
        raise ValueError(f"Number of headers ({len(headers)}) differs "
                         f"from number of traces ({ntraces})")
    traces = np.zeros(ntraces, dtype=_trace_dtype(ns))
    traces["header"] = headers
    traces["header"]["ns"] = ns
    traces["data"] = data
    with open(filename, "ab" if append else "wb") as f:
        traces.tofile(f)
