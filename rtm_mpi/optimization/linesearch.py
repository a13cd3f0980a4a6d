__all__ = [
    "cg_beta",
    "cg_direction",
    "cg_stepsize",
]

import numpy as np

from rtm_mpi.GlobalField import GlobalField


def cg_beta(g1: GlobalField, g0: GlobalField, kind: str = "PR") -> float:
    r"""Conjugate-gradient weight of the previous direction

    Parameters
    ----------
    g1 : :obj:`rtm_mpi.GlobalField`
        Current gradient
    g0 : :obj:`rtm_mpi.GlobalField`
        Previous gradient
    kind : :obj:`str`, optional
        ``FR`` (Fletcher-Reeves) or ``PR`` (Polak-Ribiere, restarted to
        steepest descent when negative)

    Returns
    -------
    beta : :obj:`float`
        Weight :math:`\beta`, zero when the previous gradient vanishes

    Notes
    -----
    .. math::
        \beta_{FR} = \frac{\mathbf{g}_1^T \mathbf{g}_1}{\mathbf{g}_0^T \mathbf{g}_0}
        \qquad
        \beta_{PR} = \max\left(0, \frac{\mathbf{g}_1^T (\mathbf{g}_1 - \mathbf{g}_0)}
        {\mathbf{g}_0^T \mathbf{g}_0}\right)

    """
    g0g0 = float(g0.dot(g0))
    if g0g0 == 0.:
        return 0.
    if kind == "FR":
        return float(g1.dot(g1)) / g0g0
    elif kind == "PR":
        return max(0., float(g1.dot(g1) - g1.dot(g0)) / g0g0)
    raise NotImplementedError("kind must be FR or PR")


def cg_direction(g1: GlobalField, g0: GlobalField, dr: GlobalField,
                 iiter: int, kind: str = "PR") -> GlobalField:
    r"""Conjugate-gradient search direction

    Steepest descent at the first iteration
    (:math:`\mathbf{d} = \mathbf{g}_1`), conjugate direction
    :math:`\mathbf{d} = \mathbf{g}_1 + \beta \mathbf{d}_{prev}` afterwards.

    Parameters
    ----------
    g1 : :obj:`rtm_mpi.GlobalField`
        Current gradient
    g0 : :obj:`rtm_mpi.GlobalField`
        Previous gradient
    dr : :obj:`rtm_mpi.GlobalField`
        Previous direction, overwritten with the new direction
    iiter : :obj:`int`
        Iteration number (starting from 0)
    kind : :obj:`str`, optional
        Formula of :math:`\beta` (see :func:`cg_beta`)

    Returns
    -------
    dr : :obj:`rtm_mpi.GlobalField`
        New direction

    """
    if iiter == 0:
        dr[:] = g1.local_array
    else:
        beta = cg_beta(g1, g0, kind=kind)
        dr[:] = g1.local_array + beta * dr.local_array
    return dr


def cg_stepsize(dr: GlobalField, model: GlobalField,
                maxfraction: float = 0.1) -> float:
    r"""Bounded step length

    Select the step :math:`\lambda` such that the largest update
    :math:`\max|\lambda \mathbf{d}|` equals ``maxfraction`` times the largest
    amplitude of the current model. When the model is identically zero (first
    iteration from a zero model), the largest amplitude of the direction
    itself is used as reference.

    Parameters
    ----------
    dr : :obj:`rtm_mpi.GlobalField`
        Search direction
    model : :obj:`rtm_mpi.GlobalField`
        Current model
    maxfraction : :obj:`float`, optional
        Maximum relative update

    Returns
    -------
    lambda : :obj:`float`
        Step length (zero when the direction vanishes)

    """
    drmax = float(np.max(np.abs(dr.local_array)))
    if drmax == 0.:
        return 0.
    mmax = float(np.max(np.abs(model.local_array)))
    reference = mmax if mmax > 0. else drmax
    return maxfraction * reference / drmax
