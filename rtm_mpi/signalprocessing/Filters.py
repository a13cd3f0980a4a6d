__all__ = [
    "laplacian_filter",
    "surface_mute",
]

from typing import Tuple

from pylops import Laplacian
from pylops.utils import NDArray


def laplacian_filter(field: NDArray,
                     weights: Tuple[float, float] = (1, 1),
                     sampling: Tuple[float, float] = (1, 1),
                     edge: bool = False) -> NDArray:
    r"""Laplacian image filter

    Apply a second-order centered Laplacian to a 2-D image and write the
    result back into the input array. Cross-correlation imaging conditions
    produce a strong low-wavenumber halo (mostly from direct and diving
    waves) which is removed by this high-pass operator.

    Parameters
    ----------
    field : :obj:`numpy.ndarray`
        Image of size :math:`[n_x \times n_z]`, modified in place
    weights : :obj:`tuple`, optional
        Weight to apply to each direction
    sampling : :obj:`tuple`, optional
        Sampling steps for each direction
    edge : :obj:`bool`, optional
        Use reduced order derivative at edges (``True``) or
        ignore them (``False``)

    Returns
    -------
    field : :obj:`numpy.ndarray`
        Filtered image

    Notes
    -----
    Given a two-dimensional image, the filtered image is:

    .. math::
        y[i, j] = w_x (x[i+1, j] - 2x[i, j] + x[i-1, j]) / \Delta x^2 +
                  w_z (x[i, j+1] - 2x[i, j] + x[i, j-1]) / \Delta z^2

    """
    if field.ndim != 2:
        raise ValueError(f"field must be 2-dimensional, got ndim={field.ndim}")
    Lop = Laplacian(dims=field.shape, axes=(0, 1), weights=weights,
                    sampling=sampling, edge=edge, dtype=field.dtype)
    field[:] = (Lop @ field.ravel()).reshape(field.shape)
    return field


def surface_mute(field: NDArray, nrows: int = 30) -> NDArray:
    r"""Surface mute

    Zero the ``nrows`` shallowest depth samples of every trace of an image of
    size :math:`[n_x \times n_z]`, removing the high-amplitude artifacts
    generated around the sources. The image is modified in place.

    """
    if nrows < 0:
        raise ValueError(f"nrows must be non-negative, got {nrows}")
    field[:, :nrows] = 0.
    return field
