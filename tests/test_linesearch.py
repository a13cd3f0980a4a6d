"""Test conjugate-gradient direction and step length"""
import numpy as np
import pytest
from numpy.testing import assert_allclose

from rtm_mpi import GlobalField
from rtm_mpi.optimization.linesearch import cg_beta, cg_direction, cg_stepsize

rng = np.random.default_rng(5)
g0 = rng.normal(0, 1, (6, 5))
g1 = rng.normal(0, 1, (6, 5))
d0 = rng.normal(0, 1, (6, 5))


def test_cg_beta():
    fg0, fg1 = GlobalField.to_field(g0), GlobalField.to_field(g1)
    g0g0 = np.sum(g0 * g0)
    assert_allclose(cg_beta(fg1, fg0, kind="FR"), np.sum(g1 * g1) / g0g0)
    assert_allclose(cg_beta(fg1, fg0, kind="PR"),
                    max(0., np.sum(g1 * (g1 - g0)) / g0g0))
    # Polak-Ribiere restarts when negative
    assert cg_beta(fg0, GlobalField.to_field(2 * g0), kind="PR") == 0.
    # vanishing previous gradient
    assert cg_beta(fg1, fg0.zeros_like()) == 0.
    with pytest.raises(NotImplementedError):
        cg_beta(fg1, fg0, kind="HS")


def test_cg_direction_first_iteration():
    """Steepest descent at the first iteration"""
    dr = GlobalField.to_field(d0)
    cg_direction(GlobalField.to_field(g1), GlobalField.to_field(g0), dr, 0)
    assert_allclose(dr.local_array, g1)


@pytest.mark.parametrize("kind", ["PR", "FR"])
def test_cg_direction(kind):
    fg0, fg1 = GlobalField.to_field(g0), GlobalField.to_field(g1)
    dr = GlobalField.to_field(d0)
    beta = cg_beta(fg1, fg0, kind=kind)
    out = cg_direction(fg1, fg0, dr, 3, kind=kind)
    assert out is dr
    assert_allclose(dr.local_array, g1 + beta * d0)


def test_cg_stepsize():
    dr = GlobalField.to_field(np.array([[1., -4.], [2., 0.]]))
    model = GlobalField.to_field(np.array([[0.5, 2.], [-10., 1.]]))
    lamda = cg_stepsize(dr, model, maxfraction=0.1)
    assert_allclose(lamda, 0.1 * 10. / 4.)
    assert_allclose(np.max(np.abs(lamda * dr.local_array)), 1.)


def test_cg_stepsize_zero_model():
    """Largest update of a zero model is maxfraction times the direction"""
    dr = GlobalField.to_field(np.array([[1., -4.], [2., 0.]]))
    lamda = cg_stepsize(dr, dr.zeros_like(), maxfraction=0.2)
    assert_allclose(lamda, 0.2)


def test_cg_stepsize_zero_direction():
    model = GlobalField.to_field(np.ones((2, 2)))
    assert cg_stepsize(model.zeros_like(), model) == 0.
