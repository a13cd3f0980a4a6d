"""
Wave Equation Processing using MPI
==================================

The subpackage waveeqprocessing provides the shot-distributed imaging
workflow and the acoustic solvers it relies upon.

A list of objects present in rtm_mpi.waveeqprocessing :
    AcousticSolver              Template class of acoustic solvers.
    LinearOperatorSolver        Acoustic solver from per-shot linear operators.
    KirchhoffSolver             Kirchhoff acoustic solver.
    Accumulator                 Image and illumination accumulators.
    image_shot                  Imaging of a single shot.
    MPIMigration                Distributed shot-profile migration.


"""

from .AcousticSolver import *
from .Imaging import *

__all__ = [
    "AcousticSolver",
    "LinearOperatorSolver",
    "KirchhoffSolver",
    "Accumulator",
    "image_shot",
    "MPIMigration",
]
