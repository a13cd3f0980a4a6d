"""
Input/Output
============

The subpackage io reads and writes the traces and full-grid fields used by
the migration programs.

A list of functions present in rtm_mpi.io :
    read_su                           Read a SU file.
    read_su_headers                   Read the trace headers of a SU file.
    read_su_traces                    Read a window of traces of a SU file.
    write_su                          Write a SU file.
    read_field                        Read a full-grid field (SU or npy).
    write_field                       Write a full-grid field (SU or npy).
    checkpoint_filename               Iteration-tagged filename.


"""

from .su import *
from .fields import *

__all__ = [
    "SU_HEADER_DTYPE",
    "su_header",
    "read_su",
    "read_su_headers",
    "read_su_traces",
    "write_su",
    "read_field",
    "write_field",
    "checkpoint_filename",
]
