__all__ = [
    "AcousticSolver",
    "LinearOperatorSolver",
    "KirchhoffSolver",
]

import warnings
from abc import ABCMeta, abstractmethod
from typing import Callable, Tuple

import numpy as np
from pylops import LinearOperator
from pylops.utils import NDArray
from pylops.waveeqprocessing import Kirchhoff

from rtm_mpi.Survey import SurveyGeometry


class AcousticSolver(metaclass=ABCMeta):
    r"""Acoustic solver

    This is a template class which a user must subclass to plug a modelling
    engine into the migration workflow. Both methods act on the local patch
    of the shot currently selected in ``survey``:

    - ``simulate``: Born modelling of the traces recorded at the receivers
      of the shot, given the local velocity and reflectivity
    - ``adjoint_image``: adjoint (migration) of traces injected at the
      receivers, returning the local image and the local illumination

    """

    @abstractmethod
    def simulate(self, survey: SurveyGeometry, velocity: NDArray,
                 reflectivity: NDArray) -> NDArray:
        r"""Born modelling

        Parameters
        ----------
        survey : :obj:`rtm_mpi.Survey.SurveyGeometry`
            Survey with the shot to model selected
        velocity : :obj:`numpy.ndarray`
            Local velocity of size :math:`[n_x \times n_z]`
        reflectivity : :obj:`numpy.ndarray`
            Local reflectivity of size :math:`[n_x \times n_z]`

        Returns
        -------
        traces : :obj:`numpy.ndarray`
            Traces of size :math:`[n_r \times n_t]`

        """
        pass

    @abstractmethod
    def adjoint_image(self, survey: SurveyGeometry, velocity: NDArray,
                      traces: NDArray) -> Tuple[NDArray, NDArray]:
        r"""Adjoint imaging

        Parameters
        ----------
        survey : :obj:`rtm_mpi.Survey.SurveyGeometry`
            Survey with the shot to migrate selected
        velocity : :obj:`numpy.ndarray`
            Local velocity of size :math:`[n_x \times n_z]`
        traces : :obj:`numpy.ndarray`
            Traces of size :math:`[n_r \times n_t]` injected at the receivers

        Returns
        -------
        image : :obj:`numpy.ndarray`
            Local image of size :math:`[n_x \times n_z]`
        illumination : :obj:`numpy.ndarray`
            Local (non-negative) illumination of size :math:`[n_x \times n_z]`

        """
        pass


class LinearOperatorSolver(AcousticSolver):
    r"""Acoustic solver from linear Born operators

    Wrap a factory of per-shot linear operators mapping the local
    reflectivity (flattened :math:`[n_x \times n_z]`) into the traces of the
    shot (flattened :math:`[n_r \times n_t]`).

    Parameters
    ----------
    make_operator : :obj:`callable`
        Function with signature ``make_operator(survey, velocity)`` returning
        the :obj:`pylops.LinearOperator` of the currently selected shot

    Notes
    -----
    The illumination is estimated as the absolute value of the pseudo-Hessian
    applied to a unitary model,
    :math:`|\mathbf{L}^H \mathbf{L} \mathbf{1}|`, a cheap proxy of the
    diagonal of the Hessian which is non-negative by construction.

    """

    def __init__(self, make_operator: Callable[[SurveyGeometry, NDArray], LinearOperator]):
        self.make_operator = make_operator

    def _operator(self, survey: SurveyGeometry, velocity: NDArray) -> LinearOperator:
        Op = self.make_operator(survey, velocity)
        nmodel = survey.nx * survey.nz
        ndata = survey.nr * survey.nt
        if Op.shape != (ndata, nmodel):
            raise ValueError(f"Operator of shot {survey.shot.index} has shape {Op.shape}, "
                             f"expected {(ndata, nmodel)}")
        return Op

    def simulate(self, survey, velocity, reflectivity):
        Op = self._operator(survey, velocity)
        return (Op @ reflectivity.ravel()).reshape(survey.nr, survey.nt)

    def adjoint_image(self, survey, velocity, traces):
        Op = self._operator(survey, velocity)
        image = (Op.H @ traces.ravel()).reshape(survey.nx, survey.nz)
        ones = np.ones(survey.nx * survey.nz, dtype=Op.dtype)
        illumination = np.abs(Op.H @ (Op @ ones)).reshape(survey.nx, survey.nz)
        return np.real(image), np.real(illumination)


class KirchhoffSolver(LinearOperatorSolver):
    r"""Kirchhoff acoustic solver

    Born modelling and migration with the
    :obj:`pylops.waveeqprocessing.Kirchhoff` operator built on the local
    patch of each shot.

    Parameters
    ----------
    wav : :obj:`numpy.ndarray`
        Wavelet
    wavcenter : :obj:`int`
        Index of wavelet center
    mode : :obj:`str`, optional
        Computation of traveltimes ``analytic`` (straight rays in the mean
        velocity of the patch) or ``eikonal`` (requires ``scikit-fmm``)
    dynamic : :obj:`bool`, optional
        Include dynamic weights in computations (``True``) or not (``False``)
    engine : :obj:`str`, optional
        Engine used for computations (``numpy`` or ``numba``).

    """

    def __init__(self, wav: NDArray, wavcenter: int,
                 mode: str = "analytic",
                 dynamic: bool = False,
                 engine: str = "numpy"):
        if mode not in ("analytic", "eikonal"):
            raise NotImplementedError("mode must be analytic or eikonal")
        self.wav = wav
        self.wavcenter = wavcenter
        self.mode = mode
        self.dynamic = dynamic
        self.engine = engine
        super().__init__(self._kirchhoff)

    def _kirchhoff(self, survey: SurveyGeometry, velocity: NDArray) -> LinearOperator:
        x = np.arange(survey.nx) * survey.dx
        z = np.arange(survey.nz) * survey.dz
        t = np.arange(survey.nt) * survey.dt
        srcs = np.array([[survey.sx * survey.dx], [survey.sz * survey.dz]])
        recs = np.vstack((survey.rx * survey.dx, survey.rz * survey.dz))
        vel = float(np.mean(velocity)) if self.mode == "analytic" else velocity
        trav_srcs, trav_recs, dist_srcs, dist_recs, _, _ = \
            Kirchhoff._traveltime_table(z, x, srcs, recs, vel, mode=self.mode)
        amp = None
        if self.dynamic:
            # same damping of the geometrical spreading as pylops
            maxdist = 1e-2 * (np.max(dist_srcs) + np.max(dist_recs))
            amp = (1. / np.sqrt(dist_srcs + maxdist), 1. / np.sqrt(dist_recs + maxdist))
        # tables are passed per source and per receiver, the layout that
        # Kirchhoff warns about becoming the default
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", FutureWarning)
            return Kirchhoff(z, x, t, srcs, recs, vel, self.wav, self.wavcenter,
                             mode="byot", dynamic=self.dynamic,
                             trav=(trav_srcs, trav_recs), amp=amp,
                             engine=self.engine, dtype=velocity.dtype)
