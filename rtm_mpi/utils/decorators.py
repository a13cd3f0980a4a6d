from functools import wraps
from typing import Callable, Optional

from mpi4py import MPI


def agreed(
    func: Optional[Callable] = None,
    base_comm: MPI.Comm = MPI.COMM_WORLD,
    root: int = 0,
) -> Callable:
    """Decorator used to evaluate a function at the root rank and share its outcome.

    The decorated function is only run by ``root``. Its return value, or the
    exception it raised, is then broadcasted so that every rank of
    ``base_comm`` returns the same value or raises the same exception. It is
    used for all the checks performed before the migration loop, so that a
    failure at one rank can never leave the other ranks waiting in a
    collective call.

    Parameters
    ----------
    func : :obj:`callable`, optional
        Function to be decorated.
    base_comm : :obj:`mpi4py.MPI.Comm`, optional
        Communicator over which the outcome is agreed. Can be overridden at
        call time with the ``base_comm`` keyword argument.
    root : :obj:`int`, optional
        Rank evaluating the function.

    Notes
    -----
    The return value and the exception must be picklable.

    .. code-block:: python

        @agreed
        def load(filename):
            return read_survey(filename)

        survey = load("sur.su")  # same survey (or same error) at every rank

    """

    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            comm = kwargs.pop("base_comm", None) or base_comm
            outcome = None
            if comm.Get_rank() == root:
                try:
                    outcome = (f(*args, **kwargs), None)
                except Exception as e:
                    outcome = (None, e)
            value, error = comm.bcast(outcome, root=root)
            if error is not None:
                raise error
            return value
        return wrapper
    if func is not None:
        return decorator(func)
    return decorator
