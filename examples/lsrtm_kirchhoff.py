r"""
Least-squares RTM with Kirchhoff
================================

This example demonstrates the utilization of
:py:class:`rtm_mpi.waveeqprocessing.MPIMigration` and of the
:py:func:`rtm_mpi.optimization.basic.lsrtm` solver on a small layered model.
Shots are distributed over the ranks of ``MPI.COMM_WORLD``:

.. code-block:: bash

    mpiexec -n 3 python lsrtm_kirchhoff.py

"""
import numpy as np
from mpi4py import MPI
from pylops.utils.wavelets import ricker

import rtm_mpi

rank = MPI.COMM_WORLD.Get_rank()
size = MPI.COMM_WORLD.Get_size()

###############################################################################
# Let's define a grid of ``gnx x gnz`` samples with a constant velocity and a
# reflectivity made of two flat interfaces.
gnx, gnz = 60, 40
dx = dz = 10.
nt, dt = 300, 0.002

refl = np.zeros((gnx, gnz))
refl[:, 15] = 1.
refl[:, 28] = -0.5

###############################################################################
# Sources and receivers lie at the surface. Each shot only sees a patch of
# the grid which extends ``aperture`` samples around its receivers.
aperture = 5
shots = []
for ishot, sx in enumerate(range(10, gnx - 10, 8)):
    rx = np.arange(sx - 8, sx + 9, 2)
    x0 = max(0, rx.min() - aperture)
    x1 = min(gnx, rx.max() + aperture + 1)
    shots.append(rtm_mpi.Shot(ishot, sx, 0, rx, np.zeros_like(rx), ishot * rx.size,
                              rtm_mpi.Region(x0, 0, x1 - x0, gnz)))
survey = rtm_mpi.SurveyGeometry(gnx, gnz, shots, nt=nt, dt=dt, dx=dx, dz=dz)

velocity = rtm_mpi.GlobalField((gnx, gnz))
if velocity.is_root:
    velocity[:] = 2000.

###############################################################################
# We use the Kirchhoff operator of PyLops as acoustic solver and model the
# observed records with it (every rank models the whole survey here).
wav, _, wavc = ricker(np.arange(41) * dt, f0=15)
solver = rtm_mpi.KirchhoffSolver(wav, wavc, mode="analytic")

records = np.zeros((survey.ntraces, nt))
vel = np.full((gnx, gnz), 2000.)
for ishot in range(survey.ns):
    survey.select_shot(ishot)
    records[survey.itr:survey.itr + survey.nr] = \
        solver.simulate(survey, vel[survey.region.slices], refl[survey.region.slices])

###############################################################################
# Reverse-time migration: each rank migrates its own shots, then images and
# illuminations are reduced and normalized at the root.
Op = rtm_mpi.MPIMigration(survey, velocity, solver, records)
image, illumination = Op.rtm(mute=5, show=True)

###############################################################################
# Least-squares migration refines the reflectivity with conjugate-gradient
# iterations, each one requiring a distributed gradient.
xinv, niter, cost = rtm_mpi.lsrtm(Op, niter=5, maxfraction=0.1, show=True)

if rank == 0:
    print(f"RTM image: max={np.abs(image.local_array).max():.4e}")
    print(f"LSRTM after {niter} iterations, gradient norm {cost[0]:.4e} -> {cost[-1]:.4e}")
