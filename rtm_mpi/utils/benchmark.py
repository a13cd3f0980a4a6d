__all__ = ["benchmark"]

import functools
import logging
import os
import time
from typing import Callable, Optional

from mpi4py import MPI

# Benchmark is enabled by default
ENABLE_BENCHMARK = int(os.getenv("BENCH_RTM_MPI", 1)) == 1


def benchmark(func: Optional[Callable] = None,
              description: Optional[str] = "",
              logger: Optional[logging.Logger] = None,
              base_comm: MPI.Comm = MPI.COMM_WORLD,
              ):
    """A wrapper for code injection for time measurement.

    This wrapper measures the start-to-end time of the wrapped function.
    All ranks of ``base_comm`` are synchronized before and after the call,
    so the wrapped function must be called collectively.

    Parameters
    ----------
    func : :obj:`callable`, optional
        Function to be decorated. Defaults to ``None``.
    description : :obj:`str`, optional
        Description for the output text. Defaults to ``''``.
    logger: :obj:`logging.Logger`, optional
        A `logging.Logger` object for logging the benchmark text output. If
        `logger` is not provided, the output is printed to stdout.
    base_comm : :obj:`mpi4py.MPI.Comm`, optional
        Communicator to synchronize. The output is emitted by its rank 0.
    """

    def noop_decorator(func):
        @functools.wraps(func)
        def wrapped(*args, **kwargs):
            return func(*args, **kwargs)
        return wrapped

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            base_comm.Barrier()
            start_time = time.perf_counter()
            result = func(*args, **kwargs)
            base_comm.Barrier()
            elapsed = time.perf_counter() - start_time
            if base_comm.Get_rank() == 0:
                output = f"{description or func.__name__}: total runtime: {elapsed:6f} s"
                if logger:
                    logger.info(output)
                else:
                    print(output)
            return result
        return wrapper

    # The code still has to return decorator so that the in-place decorator with arguments
    # like @benchmark(logger=logger) does not throw the error and can be kept untouched.
    if not ENABLE_BENCHMARK:
        return noop_decorator if func is None else noop_decorator(func)

    return decorator if func is None else decorator(func)
