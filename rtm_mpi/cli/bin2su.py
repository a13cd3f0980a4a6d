import logging
import sys
from typing import Optional, Sequence

import numpy as np

from rtm_mpi.cli._common import setup_logging
from rtm_mpi.io.su import write_su
from rtm_mpi.utils.params import ConfigurationError, Params

USAGE = """
Convert binary file to SU file.

Examples:
bin2su sgin=vp.bin sgot=vp.su n2=400 n1=200 d1=10

Parameters:
sgin:         Input filename of binary file (float32).
n2:           Number of samples in n2 (traces).
n1:           Number of samples in n1 (samples per trace).
d1:           n1 interval, default = 0.001.
sgot:         Output filename of SU file.
"""

REQUIRED = ("sgin", "sgot", "n2", "n1")

_MAX_DT = np.iinfo(np.uint16).max * 1e-6


def bin2su(sgin, sgot, n2: int, n1: int, d1: float = 0.001) -> None:
    r"""Convert a raw float32 file of :math:`[n_2 \times n_1]` samples to SU

    ``d1`` is stored as time sampling in the ``dt`` header when it fits in
    its microsecond range, and always in the ``d1`` header.

    Raises
    ------
    ValueError
        If the binary file holds less than ``n2 * n1`` samples

    """
    if n1 <= 0 or n2 <= 0:
        raise ConfigurationError(f"n1 and n2 must be positive, got n1={n1}, n2={n2}")
    data = np.fromfile(sgin, dtype="<f4", count=n2 * n1)
    if data.size != n2 * n1:
        raise ValueError(f"{sgin} holds {data.size} samples, expected n2*n1={n2 * n1}")
    dt = d1 if 0. < d1 <= _MAX_DT else None
    write_su(sgot, data.reshape(n2, n1), dt=dt, d1=d1)
    logging.info("Converted %s to %s (%d traces of %d samples)", sgin, sgot, n2, n1)


def go(argv: Optional[Sequence[str]] = None) -> int:
    """Run the conversion program

    Returns the exit status of the program.
    """
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()
    try:
        pars = Params(argv)
        if pars.missing(REQUIRED):
            print(USAGE)
            return 0
        bin2su(pars.gets("sgin"), pars.gets("sgot"), pars.geti("n2"),
               pars.geti("n1"), d1=pars.getf("d1", 0.001))
    except (ConfigurationError, OSError, ValueError) as e:
        logging.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(go())
