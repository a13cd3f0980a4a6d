__all__ = [
    "read_field",
    "write_field",
    "checkpoint_filename",
]

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from pylops.utils import NDArray

from rtm_mpi.io.su import read_su, write_su


def read_field(filename, shape: Optional[Tuple[int, int]] = None,
               dtype=np.float64) -> NDArray:
    r"""Read a full-grid field

    Fields are stored either as SU files (one trace per horizontal position,
    one sample per depth level) or as NumPy ``.npy`` files.

    Parameters
    ----------
    filename : :obj:`str` or :obj:`os.PathLike`
        Input file
    shape : :obj:`tuple`, optional
        Expected shape :math:`(n_x, n_z)`
    dtype : :obj:`str`, optional
        Type of the returned array

    Returns
    -------
    field : :obj:`numpy.ndarray`
        Field of size :math:`[n_x \times n_z]`

    Raises
    ------
    OSError
        If the file cannot be read
    ValueError
        If the field does not have the expected shape

    """
    if Path(filename).suffix == ".npy":
        field = np.load(filename)
    else:
        field, _ = read_su(filename)
    if shape is not None and tuple(field.shape) != tuple(shape):
        raise ValueError(f"Field in {filename} has shape {field.shape}, expected {tuple(shape)}")
    return field.astype(dtype)


def write_field(filename, field: NDArray, dz: float = 1.,
                dx: float = 1.) -> None:
    r"""Write a full-grid field of size :math:`[n_x \times n_z]`

    SU files are written unless ``filename`` ends in ``.npy``.

    """
    if Path(filename).suffix == ".npy":
        np.save(filename, field)
    else:
        write_su(filename, field, d1=dz, d2=dx)
    logging.info("Written %s", filename)


def checkpoint_filename(filename, iteration: int) -> str:
    """Iteration-tagged version of ``filename``

    Examples
    --------
    >>> checkpoint_filename("out/lsipp.su", 3)
    'out/lsipp_it003.su'

    """
    path = Path(filename)
    return str(path.with_name(f"{path.stem}_it{iteration:03d}{path.suffix}"))
