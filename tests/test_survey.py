"""Test the survey geometry"""
import numpy as np
import pytest
from numpy.testing import assert_allclose

from rtm_mpi import Region, Shot, SurveyGeometry, read_survey
from rtm_mpi.io import su_header, write_su


def _write_survey(filename, sx, gx, selev=None, gelev=None, scalco=0, scalel=0,
                  nt=20, dt=0.004):
    """Write a SU file with one shot per entry of ``sx``"""
    fldr = np.concatenate([np.full(len(g), ishot + 1) for ishot, g in enumerate(gx)])
    headers = su_header(len(fldr), nt, dt=dt)
    headers["fldr"] = fldr
    headers["sx"] = np.concatenate([np.full(len(g), s) for s, g in zip(sx, gx)])
    headers["gx"] = np.concatenate(gx)
    if selev is not None:
        headers["selev"] = np.concatenate([np.full(len(g), s) for s, g in zip(selev, gx)])
    if gelev is not None:
        headers["gelev"] = np.concatenate(gelev)
    headers["scalco"] = scalco
    headers["scalel"] = scalel
    write_su(filename, np.zeros((len(fldr), nt)), headers=headers)


def test_read_survey(tmp_path):
    filename = tmp_path / "sur.su"
    _write_survey(filename, sx=[20, 80], gx=[[10, 40, 60], [50, 70, 110]],
                  selev=[10, 10], gelev=[[20, 20, 20], [20, 20, 30]])
    survey = read_survey(filename, 12, 8, aperture=1, dx=10., dz=10.)

    assert survey.ns == 2
    assert survey.ntraces == 6
    assert survey.global_shape == (12, 8)
    assert survey.nt == 20
    assert_allclose(survey.dt, 0.004)

    shot0, shot1 = survey.shots
    assert (shot0.sx, shot0.sz) == (2, 1)
    assert list(shot0.rx) == [1, 4, 6]
    assert list(shot0.rz) == [2, 2, 2]
    assert shot0.itr == 0
    assert shot0.region == Region(0, 0, 8, 8)
    assert shot1.itr == 3
    assert list(shot1.rz) == [2, 2, 3]
    # clipped to the global grid
    assert shot1.region == Region(4, 0, 8, 8)


def test_read_survey_scalers(tmp_path):
    """Negative scalers divide, positive scalers multiply"""
    filename = tmp_path / "sur.su"
    _write_survey(filename, sx=[30], gx=[[10, 50]], selev=[2], gelev=[[4, 4]],
                  scalco=-10, scalel=2)
    survey = read_survey(filename, 10, 10)
    shot = survey.shots[0]
    assert (shot.sx, shot.sz) == (3, 4)
    assert list(shot.rx) == [1, 5]
    assert list(shot.rz) == [8, 8]


def test_read_survey_outside(tmp_path):
    """Receivers outside of the global grid are rejected"""
    filename = tmp_path / "sur.su"
    _write_survey(filename, sx=[2], gx=[[1, 15]])
    with pytest.raises(IndexError):
        read_survey(filename, 10, 5)


def test_read_survey_invalid(tmp_path):
    with pytest.raises(OSError):
        read_survey(tmp_path / "missing.su", 10, 5)
    filename = tmp_path / "sur.su"
    _write_survey(filename, sx=[2], gx=[[1, 3]])
    with pytest.raises(ValueError):
        read_survey(filename, 10, 5, aperture=-1)


def test_select_shot():
    """Local positions are relative to the patch of the current shot"""
    shots = [Shot(0, 3, 0, [2, 5], [1, 1], 0, Region(1, 0, 6, 4)),
             Shot(1, 6, 1, [4, 7, 8], [1, 1, 2], 2, Region(3, 1, 6, 3))]
    survey = SurveyGeometry(10, 4, shots, nt=50, dt=0.002)
    with pytest.raises(RuntimeError):
        survey.shot
    survey.select_shot(1)
    assert (survey.x0, survey.z0, survey.nx, survey.nz) == (3, 1, 6, 3)
    assert (survey.sx, survey.sz) == (3, 0)
    assert list(survey.rx) == [1, 4, 5]
    assert list(survey.rz) == [0, 0, 1]
    assert (survey.itr, survey.nr) == (2, 3)
    with pytest.raises(IndexError):
        survey.select_shot(2)


def test_shot_outside_region():
    with pytest.raises(IndexError):
        SurveyGeometry(10, 4, [Shot(0, 0, 0, [2, 5], [1, 1], 0, Region(1, 0, 6, 4))],
                       nt=10, dt=0.002)
    with pytest.raises(IndexError):
        SurveyGeometry(10, 4, [Shot(0, 3, 0, [2, 5], [1, 1], 0, Region(6, 0, 6, 4))],
                       nt=10, dt=0.002)
