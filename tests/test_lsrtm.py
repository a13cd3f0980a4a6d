"""Test least-squares migration
    Designed to run with n processes
    $ mpiexec -n 3 pytest test_lsrtm.py --with-mpi
"""
import numpy as np
from mpi4py import MPI
import pytest
from numpy.testing import assert_allclose
from pylops import MatrixMult

from rtm_mpi import LSRTM, GlobalField, Region, Shot, SurveyGeometry, lsrtm
from rtm_mpi.io import checkpoint_filename, read_field
from rtm_mpi.waveeqprocessing import LinearOperatorSolver, MPIMigration

size = MPI.COMM_WORLD.Get_size()
rank = MPI.COMM_WORLD.Get_rank()

gnx, gnz, nt = 6, 5, 4
shots = [Shot(0, 1, 0, [0, 2, 3], [0, 0, 0], 0, Region(0, 0, 4, 5)),
         Shot(1, 3, 0, [2, 4], [0, 0], 3, Region(2, 0, 4, 5)),
         Shot(2, 4, 1, [1, 5], [1, 1], 5, Region(1, 0, 5, 5))]
ntraces = 7


def _make_operator(survey, velocity):
    shot = survey.shot
    nmodel = shot.region.nx * shot.region.nz
    return MatrixMult(np.random.default_rng(shot.itr).normal(0, 1, (shot.nr * nt, nmodel)))


def _migration(records, root=0):
    survey = SurveyGeometry(gnx, gnz, shots, nt=nt, dt=0.004, dx=10., dz=5.)
    velocity = GlobalField((gnx, gnz), root=root)
    velocity[:] = 2000.
    return MPIMigration(survey, velocity, LinearOperatorSolver(_make_operator), records)


def _records():
    """Records modelled from a known reflectivity"""
    model = np.zeros((gnx, gnz))
    model[:, 3] = 1.
    records = np.zeros((ntraces, nt))
    for shot in shots:
        G = np.random.default_rng(shot.itr).normal(0, 1, (shot.nr * nt, shot.region.nx * shot.region.nz))
        records[shot.itr:shot.itr + shot.nr] = (G @ model[shot.region.slices].ravel()).reshape(shot.nr, nt)
    return records


@pytest.mark.parametrize("beta", ["PR", "FR"])
def test_lsrtm_iterations(shared_tmp_path, beta):
    """Fixed number of iterations with one checkpoint per iteration"""
    checkpoint = str(shared_tmp_path / f"lsipp_{beta}.su")
    Op = _migration(_records())
    x, iiter, cost = lsrtm(Op, niter=3, beta=beta, checkpoint=checkpoint, show=True)
    assert iiter == 3
    assert len(cost) == 3
    assert np.all(cost > 0.)
    if rank == 0:
        for it in range(3):
            assert read_field(checkpoint_filename(checkpoint, it)).shape == (gnx, gnz)
        assert_allclose(read_field(checkpoint), x.local_array, rtol=1e-5, atol=1e-6)
        assert np.any(x.local_array != 0.)


def test_lsrtm_zero_gradient(shared_tmp_path):
    """Zero gradient still runs every iteration and leaves the model unchanged"""
    checkpoint = str(shared_tmp_path / "lsipp.npy")
    lsrtmsolve = LSRTM(_migration(np.zeros((ntraces, nt))))
    x, iiter, cost = lsrtmsolve.solve(niter=4, checkpoint=checkpoint)
    assert iiter == 4
    assert_allclose(cost, 0.)
    assert_allclose(lsrtmsolve.steps, 0.)
    if rank == 0:
        assert_allclose(x.local_array, 0.)
        assert lsrtmsolve.checkpoints == [checkpoint_filename(checkpoint, i) for i in range(4)]
        assert_allclose(np.load(checkpoint_filename(checkpoint, 3)), 0.)


def test_lsrtm_tol():
    """Iterations stop at every rank when the gradient norm is below tol"""
    x, iiter, cost = lsrtm(_migration(np.zeros((ntraces, nt))), niter=5, tol=1e-3)
    assert iiter == 1
    assert len(cost) == 1


@pytest.mark.parametrize("root", [0, size - 1])
def test_lsrtm_first_step(root):
    """First update of a zero model is maxfraction times the gradient"""
    Op = _migration(_records(), root=root)
    gradient = Op.gradient(GlobalField((gnx, gnz), root=root))
    x, _, _ = lsrtm(Op, niter=1, maxfraction=0.2, laplace=False)
    assert x.root == root
    if rank == root:
        assert_allclose(x.local_array, 0.2 * gradient.local_array, rtol=1e-10, atol=1e-14)


def test_lsrtm_x0_callback():
    """Initial model is not modified, callback is called at every iteration"""
    Op = _migration(_records())
    x0 = GlobalField((gnx, gnz))
    x0[:] = 0.5
    models = []
    x, iiter, _ = lsrtm(Op, x0=x0, niter=2, mute=1,
                        callback=lambda x: models.append(x.local_array.copy()))
    assert iiter == 2
    assert len(models) == 2
    assert_allclose(x0.local_array, 0.5)
    if rank == 0:
        assert_allclose(models[-1], x.local_array)


def test_lsrtm_memory_usage():
    lsrtmsolve = LSRTM(_migration(_records()))
    assert lsrtmsolve.memory_usage() == 4 * gnx * gnz * 8
    assert lsrtmsolve.memory_usage(unit="KB") == 4 * gnx * gnz * 8 / 1024


@pytest.mark.mpi(min_size=2)
def test_lsrtm_x0_root():
    """Initial model must live at the rank where the gradient is reduced"""
    Op = _migration(_records(), root=size - 1)
    with pytest.raises(ValueError):
        LSRTM(Op).setup(x0=GlobalField((gnx, gnz), root=0), niter=1)


def test_lsrtm_diagnostics(shared_tmp_path):
    """Gradient and direction are written next to the checkpoints"""
    lsrtmsolve = LSRTM(_migration(_records()))
    x, iiter, _ = lsrtmsolve.solve(niter=2, laplace=False,
                                   diagnostics=str(shared_tmp_path))
    if rank == 0:
        g1 = read_field(shared_tmp_path / "g1_it001.su")
        dr = read_field(shared_tmp_path / "dr_it001.su")
        assert_allclose(g1, lsrtmsolve.g0.local_array, rtol=1e-5, atol=1e-6)
        assert_allclose(dr, lsrtmsolve.dr.local_array, rtol=1e-5, atol=1e-6)
        # the first direction is the first gradient
        assert_allclose(read_field(shared_tmp_path / "dr_it000.su"),
                        read_field(shared_tmp_path / "g1_it000.su"))
