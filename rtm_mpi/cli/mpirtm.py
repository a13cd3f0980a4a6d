import logging
import sys
from typing import Optional, Sequence

from mpi4py import MPI

from rtm_mpi.cli._common import (MIGRATION_PARAMETERS, load_inputs,
                                 make_solver, parse_params, setup_logging)
from rtm_mpi.io.fields import write_field
from rtm_mpi.utils.benchmark import benchmark
from rtm_mpi.utils.params import ConfigurationError
from rtm_mpi.waveeqprocessing.Imaging import MPIMigration

logger = logging.getLogger(__name__)

USAGE = """
MPI reverse-time migration of 2D acoustic shot records.

Examples:
mpiexec -n 4 mpirtm sur=sur.su vp=vp.su recz=recz.su ipp=ipp.su
""" + MIGRATION_PARAMETERS + """\
mute:         Number of shallow samples muted in the image, default = 30.
ill:          Optional output file with the stacked illumination.
"""

REQUIRED = ("sur", "vp", "recz", "ipp")


def go(argv: Optional[Sequence[str]] = None,
       base_comm: MPI.Comm = MPI.COMM_WORLD) -> int:
    """Run the reverse-time migration program

    Returns the exit status of the program.
    """
    argv = sys.argv[1:] if argv is None else argv
    rank = base_comm.Get_rank()
    setup_logging()

    # every failure before the migration loop is seen by all ranks
    try:
        pars = parse_params(argv, REQUIRED, base_comm=base_comm)
        if pars is None:
            if rank == 0:
                print(USAGE)
            return 0
        survey, velocity = load_inputs(pars, base_comm=base_comm)
        epsilon = pars.getf("epsilon", 1e-5)
        mute = pars.geti("mute", 30)
        if epsilon <= 0. or mute < 0:
            raise ConfigurationError("epsilon must be positive and mute non-negative")
        solver = make_solver(pars, survey)
    except (ConfigurationError, OSError, ValueError, IndexError, NotImplementedError) as e:
        if rank == 0:
            logging.error("%s", e)
        return 1

    try:
        if rank == 0:
            logging.info("Migrating %d shots on %d processes, grid=%s",
                         survey.ns, base_comm.Get_size(), survey.global_shape)
        Op = MPIMigration(survey, velocity, solver, pars.gets("recz"),
                          epsilon=epsilon, base_comm=base_comm)

        @benchmark(description="RTM", logger=logger, base_comm=base_comm)
        def _migrate():
            return Op.rtm(mute=mute, show=True)

        image, illumination = _migrate()
        if image.is_root:
            write_field(pars.gets("ipp"), image.local_array, dz=survey.dz, dx=survey.dx)
            if "ill" in pars:
                write_field(pars.gets("ill"), illumination.local_array,
                            dz=survey.dz, dx=survey.dx)
    except Exception:
        logging.exception("Rank %d: migration failed", rank)
        base_comm.Abort(1)
    return 0


if __name__ == "__main__":
    sys.exit(go())
