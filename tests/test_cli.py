"""Test command line programs

Programs are run on MPI.COMM_SELF so that each rank works in its own
temporary directory.
"""
import numpy as np
from mpi4py import MPI
import pytest
from numpy.testing import assert_allclose

from rtm_mpi.cli import bin2su, mpilsrtm, mpirtm
from rtm_mpi.io import read_field, read_su, read_su_headers, su_header, write_field, write_su

gnx, gnz, nt, dt = 12, 10, 60, 0.002


@pytest.fixture
def inputs(tmp_path):
    """Velocity, survey and records of two shots"""
    write_field(tmp_path / "vp.su", np.full((gnx, gnz), 1500.), dz=10., dx=10.)
    gx = [[10, 40, 60], [50, 70, 100]]
    headers = su_header(6, nt, dt=dt)
    headers["fldr"] = [1, 1, 1, 2, 2, 2]
    headers["sx"] = [20, 20, 20, 80, 80, 80]
    headers["gx"] = np.concatenate(gx)
    data = np.random.default_rng(3).normal(0, 1, (6, nt))
    write_su(tmp_path / "sur.su", data, headers=headers)
    return tmp_path, [f"sur={tmp_path / 'sur.su'}", f"vp={tmp_path / 'vp.su'}",
                      f"recz={tmp_path / 'sur.su'}", "dx=10", "dz=10", "nwav=11"]


@pytest.mark.parametrize("program", [mpirtm, mpilsrtm])
def test_usage(program, capsys):
    """Missing parameters print the usage and exit successfully"""
    assert program.go([], base_comm=MPI.COMM_SELF) == 0
    assert "recz:" in capsys.readouterr().out
    assert program.go(["sur=sur.su"], base_comm=MPI.COMM_SELF) == 0


def test_usage_bin2su(capsys):
    assert bin2su.go(["sgin=in.bin"]) == 0
    assert "sgot:" in capsys.readouterr().out


@pytest.mark.parametrize("program", [mpirtm, mpilsrtm])
def test_missing_file(program, tmp_path):
    argv = [f"sur={tmp_path / 'missing.su'}", "vp=vp.su", "recz=recz.su", "ipp=ipp.su"]
    assert program.go(argv, base_comm=MPI.COMM_SELF) == 1


def test_invalid_parameter(inputs):
    tmp_path, argv = inputs
    argv = argv + [f"ipp={tmp_path / 'lsipp.su'}", "beta=HS"]
    assert mpilsrtm.go(argv, base_comm=MPI.COMM_SELF) == 1
    assert not (tmp_path / "lsipp.su").exists()


def test_records_mismatch(inputs):
    """Records with a different time axis are rejected before migration"""
    tmp_path, argv = inputs
    write_su(tmp_path / "recz.su", np.zeros((6, nt + 1)))
    argv = [arg for arg in argv if not arg.startswith("recz")]
    argv += [f"recz={tmp_path / 'recz.su'}", f"ipp={tmp_path / 'ipp.su'}"]
    assert mpirtm.go(argv, base_comm=MPI.COMM_SELF) == 1


def test_mpirtm(inputs):
    tmp_path, argv = inputs
    argv = argv + [f"ipp={tmp_path / 'ipp.su'}", f"ill={tmp_path / 'ill.npy'}", "mute=2"]
    assert mpirtm.go(argv, base_comm=MPI.COMM_SELF) == 0
    image = read_field(tmp_path / "ipp.su", shape=(gnx, gnz))
    assert np.all(np.isfinite(image))
    assert_allclose(image[:, :2], 0.)
    assert np.all(np.load(tmp_path / "ill.npy") >= 0.)
    assert_allclose(read_su_headers(tmp_path / "ipp.su")["d1"], 10.)


def test_mpilsrtm(inputs):
    tmp_path, argv = inputs
    write_field(tmp_path / "ipp0.npy", np.zeros((gnx, gnz)))
    argv = argv + [f"ipp={tmp_path / 'lsipp.su'}", f"ipp0={tmp_path / 'ipp0.npy'}",
                   "niter=2", "maxfraction=0.05"]
    assert mpilsrtm.go(argv, base_comm=MPI.COMM_SELF) == 0
    for name in ["lsipp.su", "lsipp_it000.su", "lsipp_it001.su"]:
        assert read_field(tmp_path / name, shape=(gnx, gnz)).shape == (gnx, gnz)
    assert not (tmp_path / "lsipp_it002.su").exists()


def test_mpilsrtm_diagnostics(inputs):
    """Gradient and search direction are written at every iteration"""
    tmp_path, argv = inputs
    argv = argv + [f"ipp={tmp_path / 'lsipp.su'}", "niter=2", f"diag={tmp_path}"]
    assert mpilsrtm.go(argv, base_comm=MPI.COMM_SELF) == 0
    for name in ["g1_it000.su", "dr_it000.su", "g1_it001.su", "dr_it001.su"]:
        assert read_field(tmp_path / name, shape=(gnx, gnz)).shape == (gnx, gnz)
    argv[-1] = f"diag={tmp_path / 'missing'}"
    assert mpilsrtm.go(argv, base_comm=MPI.COMM_SELF) == 1


def test_bin2su(tmp_path):
    data = np.random.default_rng(4).normal(0, 1, (5, 8)).astype("<f4")
    data.tofile(tmp_path / "in.bin")
    argv = [f"sgin={tmp_path / 'in.bin'}", f"sgot={tmp_path / 'out.su'}", "n2=5", "n1=8"]
    assert bin2su.go(argv) == 0
    data1, headers = read_su(tmp_path / "out.su")
    assert_allclose(data1, data)
    assert np.all(headers["dt"] == 1000)
    assert_allclose(headers["d1"], 0.001)

    # sampling out of the range of the dt header
    argv[-1:] = ["n1=8", "d1=10"]
    assert bin2su.go(argv) == 0
    _, headers = read_su(tmp_path / "out.su")
    assert np.all(headers["dt"] == 0)
    assert_allclose(headers["d1"], 10.)


def test_bin2su_short_file(tmp_path):
    np.zeros(10, dtype="<f4").tofile(tmp_path / "in.bin")
    argv = [f"sgin={tmp_path / 'in.bin'}", f"sgot={tmp_path / 'out.su'}", "n2=5", "n1=8"]
    assert bin2su.go(argv) == 1
    assert not (tmp_path / "out.su").exists()
