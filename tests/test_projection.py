import math

import pytest

from sparkletree.projection import (
    is_visible,
    perspective_scale,
    project,
    project_flat,
    rise_offset_y,
    rotate_y,
    screen_origin,
)


def test_rotation_quarter_turn():
    rx, rz = rotate_y(1.0, 0.0, math.pi / 2)
    assert rx == pytest.approx(0.0, abs=1e-12)
    assert rz == pytest.approx(1.0)


def test_scale_at_origin_with_bias():
    assert perspective_scale(0.0, 800.0, 400.0) == pytest.approx(800.0 / 1200.0)


def test_scale_behind_camera_is_negative():
    assert perspective_scale(-1200.0, 800.0, 400.0) < 0
    assert perspective_scale(-5000.0, 800.0, 400.0) < 0
    assert not is_visible(perspective_scale(-1300.0, 800.0, 400.0))


def test_project_maps_origin_to_screen_origin():
    proj = project(0.0, 0.0, 0.0, 1.234, 960.0, 590.0, 800.0, 400.0)
    assert proj.sx == pytest.approx(960.0)
    assert proj.sy == pytest.approx(590.0)
    assert proj.depth == pytest.approx(0.0)


def test_nearer_points_get_bigger():
    near = project(0.0, 0.0, -200.0, 0.0, 0.0, 0.0, 800.0, 400.0)
    far = project(0.0, 0.0, 200.0, 0.0, 0.0, 0.0, 800.0, 400.0)
    assert near.scale > far.scale


def test_flat_projection_ignores_rotation():
    proj = project_flat(100.0, -50.0, 0.0, 10.0, 20.0, 800.0)
    assert proj.scale == 1.0
    assert (proj.sx, proj.sy) == (110.0, -30.0)


def test_rise_starts_far_below_home():
    assert rise_offset_y(-400.0, 0.0) == 1100.0


def test_rise_lands_exactly_home():
    assert rise_offset_y(-400.0, 1.0) == -400.0


def test_rise_offset_shrinks_as_eased_grows():
    offsets = [rise_offset_y(-400.0, e / 50) - (-400.0) for e in range(51)]
    assert all(a > b for a, b in zip(offsets, offsets[1:]))
    assert offsets[-1] == 0.0


def test_screen_origin():
    assert screen_origin(1920, 1080) == (960.0, 590.0)
