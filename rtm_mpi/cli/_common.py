import logging
import os
from typing import Optional, Sequence, Tuple

import numpy as np
from mpi4py import MPI
from pylops.utils.wavelets import ricker

from rtm_mpi.GlobalField import GlobalField
from rtm_mpi.Survey import SurveyGeometry, read_survey
from rtm_mpi.io.fields import read_field
from rtm_mpi.io.su import read_su_headers
from rtm_mpi.utils.decorators import agreed
from rtm_mpi.utils.params import ConfigurationError, Params
from rtm_mpi.waveeqprocessing.AcousticSolver import KirchhoffSolver

_LOG_FORMAT = "%(levelname)s: %(message)s"

MIGRATION_PARAMETERS = """
Parameters:
sur:          Input SU file with the acquisition geometry.
vp:           Input SU (or npy) file with the velocity model.
recz:         Input SU file with the observed records.
ipp:          Output SU (or npy) file with the image.
aperture:     Extra horizontal samples around each shot, default = 0.
dx:           Horizontal grid sampling, default = 1.
dz:           Depth grid sampling, default = 1.
epsilon:      Illumination damping, default = 1e-5.
f0:           Peak frequency of the Ricker wavelet, default = 20.
nwav:         Number of samples of the half wavelet, default = 41.
mode:         Kirchhoff traveltimes, analytic or eikonal, default = analytic.
"""


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(format=_LOG_FORMAT, level=level)


@agreed
def parse_params(argv: Sequence[str], required: Sequence[str]) -> Optional[Params]:
    """Parse and check the parameters at the root

    Returns ``None`` when any of the required parameters is missing.
    """
    pars = Params(argv)
    if pars.missing(required):
        return None
    for key in required:
        if key in ("sur", "vp", "recz") and not os.path.isfile(pars.gets(key)):
            raise ConfigurationError(f"Parameter {key}: file {pars.gets(key)} does not exist")
    return pars


def _check_records(filename, survey: SurveyGeometry) -> None:
    headers = read_su_headers(filename)
    if len(headers) < survey.ntraces:
        raise ConfigurationError(f"{filename} has {len(headers)} traces, "
                                 f"survey requires {survey.ntraces}")
    if int(headers["ns"][0]) != survey.nt:
        raise ConfigurationError(f"{filename} has {headers['ns'][0]} samples per trace, "
                                 f"survey requires {survey.nt}")


def load_inputs(pars: Params,
                base_comm: MPI.Comm = MPI.COMM_WORLD) -> Tuple[SurveyGeometry, GlobalField]:
    """Read velocity, survey and check the records at the root

    The survey (or the error raised while loading the inputs) is shared with
    all ranks. The returned velocity is only filled at the root.
    """
    cache = {}

    @agreed
    def _load():
        vel = read_field(pars.gets("vp"))
        if vel.ndim != 2:
            raise ConfigurationError(f"Velocity in {pars.gets('vp')} is not 2-dimensional")
        survey = read_survey(pars.gets("sur"), vel.shape[0], vel.shape[1],
                             aperture=pars.geti("aperture", 0),
                             dx=pars.getf("dx", 1.), dz=pars.getf("dz", 1.))
        _check_records(pars.gets("recz"), survey)
        cache["vel"] = vel
        return survey

    survey = _load(base_comm=base_comm)
    velocity = GlobalField(survey.global_shape, base_comm=base_comm)
    if velocity.is_root:
        velocity[:] = cache["vel"]
    return survey, velocity


def make_solver(pars: Params, survey: SurveyGeometry) -> KirchhoffSolver:
    """Kirchhoff solver with a Ricker wavelet"""
    nwav = min(pars.geti("nwav", 41), survey.nt)
    t = np.arange(nwav) * survey.dt
    wav, _, wavc = ricker(t, f0=pars.getf("f0", 20.))
    return KirchhoffSolver(wav, wavc, mode=pars.gets("mode", "analytic"))
