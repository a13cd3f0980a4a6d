"""
Signal Processing
=================

The subpackage signalprocessing provides the post-processing filters
applied to migrated images.

A list of functions present in rtm_mpi.signalprocessing :
    laplacian_filter                  Laplacian (high-pass) image filter.
    surface_mute                      Mute of the shallowest image samples.


"""

from .Filters import *

__all__ = [
    "laplacian_filter",
    "surface_mute",
]
