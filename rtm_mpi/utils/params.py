__all__ = [
    "ConfigurationError",
    "Params",
    "OptimizationConfig",
]

from typing import Dict, List, Optional, Sequence


class ConfigurationError(ValueError):
    """Missing or invalid run parameter"""


class Params:
    r"""Command line parameters

    Parse ``key=value`` arguments, as used by the migration programs
    (e.g., ``mpirtm sur=sur.su vp=vp.su recz=recz.su ipp=mig.su``), and
    retrieve them with typed getters.

    Parameters
    ----------
    argv : :obj:`list`
        Arguments (without the program name)

    Raises
    ------
    ConfigurationError
        If an argument is not of the form ``key=value``

    """

    def __init__(self, argv: Sequence[str]):
        self.pars: Dict[str, str] = {}
        for arg in argv:
            key, sep, value = arg.partition("=")
            if not sep or not key:
                raise ConfigurationError(f"Argument {arg!r} is not of the form key=value")
            self.pars[key.strip()] = value.strip()

    def __contains__(self, key):
        return key in self.pars

    def missing(self, keys: Sequence[str]) -> List[str]:
        """Required keys that are not provided"""
        return [key for key in keys if not self.pars.get(key)]

    def _get(self, key, cast, default, required):
        if key not in self.pars or self.pars[key] == "":
            if required:
                raise ConfigurationError(f"Parameter {key} is required")
            return default
        try:
            return cast(self.pars[key])
        except ValueError:
            raise ConfigurationError(f"Parameter {key}={self.pars[key]!r} "
                                     f"is not a valid {cast.__name__}") from None

    def gets(self, key: str, default: Optional[str] = None, required: bool = False):
        return self._get(key, str, default, required)

    def geti(self, key: str, default: Optional[int] = None, required: bool = False):
        return self._get(key, int, default, required)

    def getf(self, key: str, default: Optional[float] = None, required: bool = False):
        return self._get(key, float, default, required)


class OptimizationConfig:
    r"""Options of the least-squares migration loop

    Parameters
    ----------
    niter : :obj:`int`, optional
        Number of outer iterations (fixed budget)
    maxfraction : :obj:`float`, optional
        Maximum update, relative to the largest amplitude of the current
        model, allowed by the step-length selection
    epsilon : :obj:`float`, optional
        Damping constant of the illumination normalization
    beta : :obj:`str`, optional
        Conjugate-gradient formula (``PR`` for Polak-Ribiere, ``FR`` for
        Fletcher-Reeves)
    tol : :obj:`float`, optional
        Stop when the norm of the gradient falls below ``tol``. Disabled
        when ``None``, so that exactly ``niter`` iterations are run.
    mute : :obj:`int`, optional
        Number of shallow samples muted in the gradient

    Raises
    ------
    ConfigurationError
        If any of the options is invalid

    """

    def __init__(self, niter: int = 10,
                 maxfraction: float = 0.1,
                 epsilon: float = 1e-5,
                 beta: str = "PR",
                 tol: Optional[float] = None,
                 mute: int = 0):
        if niter < 0:
            raise ConfigurationError(f"niter must be non-negative, got {niter}")
        if maxfraction <= 0.:
            raise ConfigurationError(f"maxfraction must be positive, got {maxfraction}")
        if epsilon <= 0.:
            raise ConfigurationError(f"epsilon must be positive, got {epsilon}")
        if beta not in ("PR", "FR"):
            raise ConfigurationError(f"beta must be 'PR' or 'FR', got {beta!r}")
        if tol is not None and tol < 0.:
            raise ConfigurationError(f"tol must be non-negative, got {tol}")
        if mute < 0:
            raise ConfigurationError(f"mute must be non-negative, got {mute}")
        self.niter = niter
        self.maxfraction = maxfraction
        self.epsilon = epsilon
        self.beta = beta
        self.tol = tol
        self.mute = mute

    @classmethod
    def from_params(cls, params: Params):
        """Build the options from command line parameters"""
        return cls(niter=params.geti("niter", 10),
                   maxfraction=params.getf("maxfraction", 0.1),
                   epsilon=params.getf("epsilon", 1e-5),
                   beta=params.gets("beta", "PR").upper(),
                   tol=params.getf("tol", None),
                   mute=params.geti("gmute", 0))

    def __repr__(self):
        return f"<OptimizationConfig niter={self.niter}, maxfraction={self.maxfraction}, " \
               f"epsilon={self.epsilon}, beta={self.beta}, tol={self.tol}, mute={self.mute}>"
