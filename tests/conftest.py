import pytest
from mpi4py import MPI


def pytest_itemcollected(item):
    """Append MPI rank to the test ID as it is collected."""
    rank = MPI.COMM_WORLD.Get_rank()
    item._nodeid += f"[Rank {rank}]"


@pytest.fixture
def shared_tmp_path(tmp_path):
    """Temporary directory of rank 0, shared by every rank of COMM_WORLD"""
    return type(tmp_path)(MPI.COMM_WORLD.bcast(str(tmp_path), root=0))
