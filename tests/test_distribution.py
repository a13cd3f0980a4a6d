"""Test the round-robin distribution of shots
    Designed to run with n processes
    $ mpiexec -n 4 pytest test_distribution.py --with-mpi
"""
from mpi4py import MPI
import pytest

from rtm_mpi import local_shots, shot_split

par1 = {'nshots': 10, 'size': 4}  # more shots than processes
par2 = {'nshots': 3, 'size': 5}  # less shots than processes
par3 = {'nshots': 0, 'size': 2}  # no shots
par4 = {'nshots': 7, 'size': 1}  # serial


@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4)])
def test_shot_split(par):
    """Every shot is assigned to exactly one rank, in increasing order"""
    assigned = []
    for rank in range(par['size']):
        shots = list(shot_split(par['nshots'], rank, par['size']))
        assert shots == sorted(shots)
        assert all(ishot % par['size'] == rank for ishot in shots)
        assigned.extend(shots)
    assert sorted(assigned) == list(range(par['nshots']))


def test_shot_split_example():
    assert list(shot_split(10, 1, 4)) == [1, 5, 9]
    assert list(shot_split(3, 4, 5)) == []


@pytest.mark.parametrize("nshots, rank, size", [(5, 0, 0), (5, 2, 2),
                                                (5, -1, 2), (-1, 0, 2)])
def test_shot_split_invalid(nshots, rank, size):
    with pytest.raises(ValueError):
        shot_split(nshots, rank, size)


@pytest.mark.parametrize("nshots", [1, 6, 13])
def test_local_shots(nshots):
    """Union of the shots of all ranks of COMM_WORLD"""
    comm = MPI.COMM_WORLD
    shots = local_shots(nshots, comm)
    allshots = comm.allgather(list(shots))
    assert sorted(sum(allshots, [])) == list(range(nshots))
    assert list(shots) == list(range(comm.Get_rank(), nshots, comm.Get_size()))
