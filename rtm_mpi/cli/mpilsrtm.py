import logging
import os
import sys
from typing import Optional, Sequence

from mpi4py import MPI

from rtm_mpi.GlobalField import GlobalField
from rtm_mpi.cli._common import (MIGRATION_PARAMETERS, load_inputs,
                                 make_solver, parse_params, setup_logging)
from rtm_mpi.io.fields import read_field, write_field
from rtm_mpi.optimization.basic import lsrtm
from rtm_mpi.utils.benchmark import benchmark
from rtm_mpi.utils.decorators import agreed
from rtm_mpi.utils.params import ConfigurationError, OptimizationConfig, Params
from rtm_mpi.waveeqprocessing.Imaging import MPIMigration

logger = logging.getLogger(__name__)

USAGE = """
MPI least-squares reverse-time migration of 2D acoustic shot records.

Examples:
mpiexec -n 4 mpilsrtm sur=sur.su vp=vp.su recz=recz.su ipp=lsipp.su niter=10
""" + MIGRATION_PARAMETERS + """\
ipp0:         Optional input file with the initial reflectivity, default = 0.
niter:        Number of iterations, default = 10.
maxfraction:  Maximum relative model update per iteration, default = 0.1.
beta:         Conjugate-gradient formula, PR or FR, default = PR.
tol:          Stop when the gradient norm is below tol, default = none.
gmute:        Number of shallow samples muted in the gradient, default = 0.
diag:         Optional directory where the gradient (g1) and the search
              direction (dr) are written at every iteration.

The model is written to ipp, and to an iteration-tagged copy of ipp, after
every iteration.
"""

REQUIRED = ("sur", "vp", "recz", "ipp")


def _initial_model(pars: Params, survey, base_comm: MPI.Comm) -> Optional[GlobalField]:
    if "ipp0" not in pars:
        return None
    x0 = GlobalField(survey.global_shape, base_comm=base_comm)

    @agreed
    def _read():
        model = read_field(pars.gets("ipp0"), shape=survey.global_shape)
        x0[:] = model

    _read(base_comm=base_comm)
    return x0


@agreed
def _check_diagnostics(pars: Params) -> None:
    if "diag" in pars and not os.path.isdir(pars.gets("diag")):
        raise ConfigurationError(f"Parameter diag: directory {pars.gets('diag')} does not exist")


def go(argv: Optional[Sequence[str]] = None,
       base_comm: MPI.Comm = MPI.COMM_WORLD) -> int:
    """Run the least-squares reverse-time migration program

    Returns the exit status of the program.
    """
    argv = sys.argv[1:] if argv is None else argv
    rank = base_comm.Get_rank()
    setup_logging()

    # every failure before the iterations is seen by all ranks
    try:
        pars = parse_params(argv, REQUIRED, base_comm=base_comm)
        if pars is None:
            if rank == 0:
                print(USAGE)
            return 0
        config = OptimizationConfig.from_params(pars)
        _check_diagnostics(pars, base_comm=base_comm)
        survey, velocity = load_inputs(pars, base_comm=base_comm)
        x0 = _initial_model(pars, survey, base_comm)
        solver = make_solver(pars, survey)
    except (ConfigurationError, OSError, ValueError, IndexError, NotImplementedError) as e:
        if rank == 0:
            logging.error("%s", e)
        return 1

    try:
        if rank == 0:
            logging.info("Least-squares migration of %d shots on %d processes, "
                         "grid=%s, %r", survey.ns, base_comm.Get_size(),
                         survey.global_shape, config)
        Op = MPIMigration(survey, velocity, solver, pars.gets("recz"),
                          epsilon=config.epsilon, base_comm=base_comm)

        @benchmark(description="LSRTM", logger=logger, base_comm=base_comm)
        def _invert():
            return lsrtm(Op, x0=x0, niter=config.niter,
                         maxfraction=config.maxfraction, beta=config.beta,
                         tol=config.tol, mute=config.mute,
                         checkpoint=pars.gets("ipp"),
                         diagnostics=pars.gets("diag", None), show=True,
                         itershow=(config.niter, config.niter, 1))

        x, iiter, _ = _invert()
        if x.is_root:
            logging.info("Completed %d iterations", iiter)
            write_field(pars.gets("ipp"), x.local_array, dz=survey.dz, dx=survey.dx)
    except Exception:
        logging.exception("Rank %d: least-squares migration failed", rank)
        base_comm.Abort(1)
    return 0


if __name__ == "__main__":
    sys.exit(go())
