from typing import Callable, Optional, Tuple

from pylops.utils import NDArray

from rtm_mpi.GlobalField import GlobalField
from rtm_mpi.optimization.cls_lsrtm import LSRTM
from rtm_mpi.waveeqprocessing.Imaging import MPIMigration


def lsrtm(
        Op: MPIMigration,
        x0: Optional[GlobalField] = None,
        niter: int = 10,
        maxfraction: float = 0.1,
        beta: str = "PR",
        tol: Optional[float] = None,
        mute: int = 0,
        laplace: bool = True,
        checkpoint: Optional[str] = None,
        diagnostics: Optional[str] = None,
        show: bool = False,
        itershow: Tuple[int, int, int] = (10, 10, 10),
        callback: Optional[Callable] = None,
) -> Tuple[GlobalField, int, NDArray]:
    r"""Least-squares reverse-time migration

    Refine a reflectivity model by non-linear conjugate gradient iterations
    on the data misfit of the shots distributed by ``Op``.

    Parameters
    ----------
    Op : :obj:`rtm_mpi.waveeqprocessing.MPIMigration`
        Distributed migration
    x0 : :obj:`rtm_mpi.GlobalField`, optional
        Initial model (zero model if ``None``)
    niter : :obj:`int`, optional
        Number of iterations
    maxfraction : :obj:`float`, optional
        Maximum relative update of the model at each iteration
    beta : :obj:`str`, optional
        Conjugate-gradient formula (``PR`` or ``FR``)
    tol : :obj:`float`, optional
        Tolerance on the norm of the gradient (``None`` to always run
        ``niter`` iterations)
    mute : :obj:`int`, optional
        Number of shallow samples muted in the gradient
    laplace : :obj:`bool`, optional
        Filter the model with a Laplacian after each update
    checkpoint : :obj:`str`, optional
        File where the model is written after each iteration
    diagnostics : :obj:`str`, optional
        Directory where the gradient and the search direction are written
        after each iteration, tagged with the iteration number
    show : :obj:`bool`, optional
        Display iterations log
    itershow : :obj:`tuple`, optional
        Display set log for the first N1 steps, last N2 steps,
        and every N3 steps in between where N1, N2, N3 are the
        three element of the list.
    callback : :obj:`callable`, optional
        Function with signature (``callback(x)``) to call after each iteration
        where ``x`` is the current model

    Returns
    -------
    x : :obj:`rtm_mpi.GlobalField`
        Estimated model (meaningful at the root only)
    iit : :obj:`int`
        Number of executed iterations
    cost : :obj:`numpy.ndarray`
        History of the norm of the gradient

    Notes
    -----
    See :class:`rtm_mpi.optimization.cls_lsrtm.LSRTM`

    """
    lsrtmsolve = LSRTM(Op)
    if callback is not None:
        lsrtmsolve.callback = callback
    x, iiter, cost = lsrtmsolve.solve(
        x0=x0, niter=niter, maxfraction=maxfraction, beta=beta, tol=tol,
        mute=mute, laplace=laplace, checkpoint=checkpoint,
        diagnostics=diagnostics, show=show, itershow=itershow
    )
    return x, iiter, cost
