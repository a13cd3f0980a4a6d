"""
Optimization
============

The subpackage `optimization` provides the least-squares migration solver.

A list of solvers in rtm_mpi.optimization.basic:

    lsrtm                           Least-squares reverse-time migration.

A list of routines in rtm_mpi.optimization.linesearch:

    cg_beta                         Conjugate-gradient weight.
    cg_direction                    Conjugate-gradient search direction.
    cg_stepsize                     Bounded step length.

"""
