from .GlobalField import GlobalField, local_shots, normalize_illumination, shot_split
from .Patch import Region, embed_add, extract
from .Survey import Shot, SurveyGeometry, read_survey
from .waveeqprocessing import *
from . import (
    io,
    optimization,
    signalprocessing,
    waveeqprocessing
)
from .signalprocessing import *
from .optimization.basic import *
from .optimization.cls_lsrtm import LSRTM

try:
    from .version import version as __version__
except ImportError:
    # If it was not installed, then we don't know the version. We could throw a
    # warning here, but this case *should* be rare. rtm_mpi should be installed
    # properly!
    from datetime import datetime

    __version__ = "unknown-" + datetime.today().strftime("%Y%m%d")
