"""Test regions and local patches"""
import numpy as np
import pytest
from numpy.testing import assert_allclose

from rtm_mpi import Region, embed_add, extract

np.random.seed(42)


def test_region():
    region = Region(2, 1, 3, 4)
    assert region.shape == (3, 4)
    assert region.slices == (slice(2, 5), slice(1, 5))
    assert region == Region(2, 1, 3, 4)
    assert region != Region(2, 1, 3, 5)
    assert region.check((5, 5)) is region


@pytest.mark.parametrize("x0, z0, nx, nz", [(-1, 0, 2, 2), (0, -1, 2, 2),
                                            (0, 0, 0, 2), (0, 0, 2, 0)])
def test_region_invalid(x0, z0, nx, nz):
    with pytest.raises(ValueError):
        Region(x0, z0, nx, nz)


@pytest.mark.parametrize("region", [Region(4, 0, 3, 2), Region(0, 5, 2, 2),
                                    Region(0, 0, 7, 6)])
def test_region_out_of_bounds(region):
    """Regions exceeding the global grid are rejected"""
    field = np.zeros((6, 6))
    with pytest.raises(IndexError):
        region.check(field.shape)
    with pytest.raises(IndexError):
        extract(field, region)
    with pytest.raises(IndexError):
        embed_add(field, region, np.ones(region.shape))


def test_extract():
    """Extracted patch is a copy of the global sub-grid"""
    field = np.random.normal(0, 1, (8, 6))
    region = Region(2, 1, 4, 3)
    local = extract(field, region)
    assert_allclose(local, field[2:6, 1:4])
    local[:] = 0.
    assert np.all(field[2:6, 1:4] != 0.)


def test_embed_add_overlap():
    """Overlapping patches are added, not overwritten"""
    field = np.zeros((6, 6))
    embed_add(field, Region(0, 0, 4, 4), np.ones((4, 4)))
    embed_add(field, Region(2, 2, 4, 4), 2 * np.ones((4, 4)))
    assert_allclose(field[:2, :2], 1.)
    assert_allclose(field[2:4, 2:4], 3.)
    assert_allclose(field[4:, 4:], 2.)
    assert_allclose(field[4:, :2], 0.)


def test_embed_add_scale():
    field = np.random.normal(0, 1, (5, 5))
    reference = field.copy()
    region = Region(1, 1, 3, 3)
    local = np.random.normal(0, 1, region.shape)

    # zero scale and zero patch leave the field untouched
    embed_add(field, region, local, scale=0.)
    assert_allclose(field, reference)
    embed_add(field, region, np.zeros(region.shape))
    assert_allclose(field, reference)

    embed_add(field, region, local, scale=-1.)
    reference[1:4, 1:4] -= local
    assert_allclose(field, reference)


def test_embed_add_shape_mismatch():
    with pytest.raises(ValueError):
        embed_add(np.zeros((5, 5)), Region(0, 0, 3, 3), np.ones((3, 2)))
