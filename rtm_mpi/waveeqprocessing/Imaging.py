__all__ = [
    "Accumulator",
    "image_shot",
    "MPIMigration",
]

import logging
import time
from typing import Optional, Tuple, Union

import numpy as np
from mpi4py import MPI
from pylops.utils import DTypeLike, NDArray

from rtm_mpi.Distributed import DistributedMixIn
from rtm_mpi.GlobalField import GlobalField, local_shots, normalize_illumination
from rtm_mpi.Patch import Region
from rtm_mpi.Survey import SurveyGeometry
from rtm_mpi.io.su import read_su_traces
from rtm_mpi.signalprocessing.Filters import laplacian_filter, surface_mute
from rtm_mpi.waveeqprocessing.AcousticSolver import AcousticSolver


class Accumulator(DistributedMixIn):
    r"""Image and illumination accumulators

    Running sums of the local image and illumination contributions of the
    shots processed by one rank. Each rank owns its accumulators until
    :meth:`reduce`, after which the sums over all ranks are available at the
    root only.

    Parameters
    ----------
    global_shape : :obj:`tuple`
        Shape of the global grid
    base_comm : :obj:`mpi4py.MPI.Comm`, optional
        MPI Communicator. Defaults to ``mpi4py.MPI.COMM_WORLD``.
    root : :obj:`int`, optional
        Coordinator rank
    dtype : :obj:`str`, optional
        Type of elements of the accumulators

    """

    def __init__(self, global_shape: Tuple[int, int],
                 base_comm: MPI.Comm = MPI.COMM_WORLD,
                 root: int = 0,
                 dtype: DTypeLike = np.float64):
        self.base_comm = base_comm
        self.image = GlobalField(global_shape, base_comm=base_comm, root=root, dtype=dtype)
        self.illumination = GlobalField(global_shape, base_comm=base_comm, root=root, dtype=dtype)
        self.nstacked = 0

    @property
    def is_root(self):
        return self.image.is_root

    def stack(self, region: Region, image: NDArray, illumination: NDArray,
              scale: float = 1.) -> "Accumulator":
        """Stack the local contributions of a shot

        ``scale * image`` and ``illumination`` are added into ``region``.
        """
        self.image.embed_add(region, image, scale=scale)
        self.illumination.embed_add(region, illumination, scale=1.)
        self.nstacked += 1
        return self

    def reduce(self) -> "Accumulator":
        """Wait for all ranks and sum-reduce the accumulators into the root
        (collective)"""
        self._barrier(self.base_comm)
        self.image.reduce()
        self.illumination.reduce()
        return self

    def normalize(self, epsilon: float = 1e-5) -> GlobalField:
        """Illumination-normalized image (meaningful at the root only)"""
        return normalize_illumination(self.image, self.illumination, epsilon)


def _observed(records, survey: SurveyGeometry) -> NDArray:
    """Observed traces of the current shot"""
    if isinstance(records, np.ndarray):
        return records[survey.itr:survey.itr + survey.nr]
    return read_su_traces(records, survey.itr, survey.nr)


def image_shot(survey: SurveyGeometry, ishot: int,
               velocity: GlobalField,
               solver: AcousticSolver,
               records: Union[str, NDArray],
               accumulator: Accumulator,
               reflectivity: Optional[GlobalField] = None,
               laplace: bool = True) -> Tuple[NDArray, NDArray]:
    r"""Image a single shot

    Run the modelling/imaging cycle of shot ``ishot`` on its local patch and
    stack the local contributions into ``accumulator``.

    When ``reflectivity`` is ``None`` (reverse-time migration), the observed
    traces are migrated, the local image is filtered with a Laplacian (if
    ``laplace=True``) and stacked. Otherwise (least-squares migration), the
    traces modelled from the local reflectivity minus the observed traces
    form the residual which is migrated; the negative of the local image,
    i.e. the contribution of the shot to the descent direction of the misfit
    function, is stacked unfiltered.

    Parameters
    ----------
    survey : :obj:`rtm_mpi.Survey.SurveyGeometry`
        Survey geometry
    ishot : :obj:`int`
        Index of the shot
    velocity : :obj:`rtm_mpi.GlobalField`
        Velocity model
    solver : :obj:`rtm_mpi.waveeqprocessing.AcousticSolver`
        Acoustic solver
    records : :obj:`str` or :obj:`numpy.ndarray`
        Observed traces, either a SU file or an array of size
        :math:`[n_{tr} \times n_t]` with the traces of all shots
    accumulator : :obj:`Accumulator`
        Accumulators of the calling rank
    reflectivity : :obj:`rtm_mpi.GlobalField`, optional
        Current reflectivity model (least-squares migration only)
    laplace : :obj:`bool`, optional
        Apply the Laplacian filter to the local image (reverse-time
        migration only)

    Returns
    -------
    image : :obj:`numpy.ndarray`
        Local image contribution, as stacked (before scaling)
    illumination : :obj:`numpy.ndarray`
        Local illumination contribution

    """
    survey.select_shot(ishot)
    region = survey.region
    vel = velocity.extract(region)
    observed = _observed(records, survey)

    if reflectivity is None:
        traces = observed
    else:
        refl = reflectivity.extract(region)
        traces = solver.simulate(survey, vel, refl) - observed

    image, illumination = solver.adjoint_image(survey, vel, traces)

    if reflectivity is None:
        if laplace:
            laplacian_filter(image)
        accumulator.stack(region, image, illumination, scale=1.)
    else:
        accumulator.stack(region, image, illumination, scale=-1.)
    return image, illumination


class MPIMigration(DistributedMixIn):
    r"""Distributed shot-profile migration

    Distribute the shots of a survey over the ranks of a communicator and
    compute illumination-normalized images (reverse-time migration) or
    gradients of the least-squares misfit (least-squares migration).

    Parameters
    ----------
    survey : :obj:`rtm_mpi.Survey.SurveyGeometry`
        Survey geometry (identical at all ranks)
    velocity : :obj:`rtm_mpi.GlobalField`
        Velocity model (valid at the root, broadcasted at construction)
    solver : :obj:`rtm_mpi.waveeqprocessing.AcousticSolver`
        Acoustic solver
    records : :obj:`str` or :obj:`numpy.ndarray`
        Observed traces
    epsilon : :obj:`float`, optional
        Damping constant of the illumination normalization
    base_comm : :obj:`mpi4py.MPI.Comm`, optional
        MPI Communicator. Defaults to ``mpi4py.MPI.COMM_WORLD``.

    Notes
    -----
    Every public method is collective. Shot ``is`` is processed by rank
    ``is mod P``, ranks accumulating their own shots in increasing order;
    as the final reduction is a sum, the result does not depend on the
    processing order up to floating-point rounding.

    """

    def __init__(self, survey: SurveyGeometry,
                 velocity: GlobalField,
                 solver: AcousticSolver,
                 records: Union[str, NDArray],
                 epsilon: float = 1e-5,
                 base_comm: MPI.Comm = MPI.COMM_WORLD):
        if velocity.global_shape != survey.global_shape:
            raise ValueError(f"Velocity shape {velocity.global_shape} differs from "
                             f"survey grid {survey.global_shape}")
        self.survey = survey
        self.solver = solver
        self.records = records
        self.epsilon = epsilon
        self.base_comm = base_comm
        self.rank = base_comm.Get_rank()
        self.velocity = velocity.bcast()
        self.dtype = velocity.dtype
        self.shape = (survey.ntraces * survey.nt, survey.gnx * survey.gnz)

    @property
    def shots(self) -> range:
        """Shots assigned to the calling rank"""
        return local_shots(self.survey.ns, self.base_comm)

    def _accumulate(self, reflectivity: Optional[GlobalField] = None,
                    laplace: bool = True, show: bool = False) -> Accumulator:
        accumulator = Accumulator(self.survey.global_shape, base_comm=self.base_comm,
                                  root=self.velocity.root, dtype=self.dtype)
        tstart = time.time()
        for ishot in self.shots:
            t0 = time.time()
            image_shot(self.survey, ishot, self.velocity, self.solver,
                       self.records, accumulator,
                       reflectivity=reflectivity, laplace=laplace)
            if show:
                shot = self.survey.shot
                logging.info("Rank %d: shot %d/%d complete - time=%.2fs "
                             "(sx=%d, sz=%d, rx=%d to %d)", self.rank, ishot + 1,
                             self.survey.ns, time.time() - t0, shot.sx, shot.sz,
                             shot.rx[0], shot.rx[-1])
        accumulator.reduce()
        if show and accumulator.is_root:
            logging.info("Stacked %d shots - time=%.2fs", self.survey.ns, time.time() - tstart)
        return accumulator

    def rtm(self, mute: int = 30, laplace: bool = True,
            show: bool = False) -> Tuple[GlobalField, GlobalField]:
        """Reverse-time migration

        Parameters
        ----------
        mute : :obj:`int`, optional
            Number of shallow samples muted in the final image
        laplace : :obj:`bool`, optional
            Apply the Laplacian filter to each shot image
        show : :obj:`bool`, optional
            Log progress

        Returns
        -------
        image : :obj:`rtm_mpi.GlobalField`
            Normalized image (meaningful at the root only)
        illumination : :obj:`rtm_mpi.GlobalField`
            Stacked illumination (meaningful at the root only)

        """
        accumulator = self._accumulate(laplace=laplace, show=show)
        if accumulator.is_root:
            accumulator.normalize(self.epsilon)
            surface_mute(accumulator.image.local_array, mute)
        return accumulator.image, accumulator.illumination

    def gradient(self, reflectivity: GlobalField, mute: int = 0,
                 show: bool = False) -> GlobalField:
        """Descent direction of the least-squares misfit

        The reflectivity at the root is broadcasted to all ranks before
        modelling.

        Parameters
        ----------
        reflectivity : :obj:`rtm_mpi.GlobalField`
            Current reflectivity model
        mute : :obj:`int`, optional
            Number of shallow samples muted in the gradient
        show : :obj:`bool`, optional
            Log progress

        Returns
        -------
        gradient : :obj:`rtm_mpi.GlobalField`
            Illumination-normalized negative gradient (meaningful at the
            root only)

        """
        reflectivity.bcast()
        accumulator = self._accumulate(reflectivity=reflectivity, show=show)
        if accumulator.is_root:
            accumulator.normalize(self.epsilon)
            surface_mute(accumulator.image.local_array, mute)
        return accumulator.image

    def __repr__(self):
        return f"<MPIMigration of {self.survey.ns} shots over {self.base_comm.Get_size()} " \
               f"processes, grid={self.survey.global_shape}>"
