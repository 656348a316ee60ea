import math

import numpy as np
import pytest

from physecs.epa import epa
from physecs.gjk import BoxSupport, SphereSupport, gjk_simplex, minkowski_point
from physecs.shapes import quat_to_matrix


def _spheres():
    offset = np.array([1.5, 0.2, 0.1])
    return SphereSupport([0, 0, 0], 1.0), SphereSupport(offset, 1.0), offset


def _sphere_on_box():
    rot = quat_to_matrix([math.cos(0.05), 0.0, 0.0, math.sin(0.05)])
    center = np.array([0.3, 0.8, -0.2])
    sphere = SphereSupport(center, 1.0)
    box = BoxSupport([0, 0, 0], rot, [2.0, 0.5, 2.0])
    return sphere, box, center, rot


def test_epa_sphere_sphere_normal_and_depth():
    s0, s1, offset = _spheres()
    simplex = gjk_simplex(s0, s1, offset)
    result = epa(s0, s1, simplex)
    expected_depth = 2.0 - np.linalg.norm(offset)
    assert np.linalg.norm(result.normal) == pytest.approx(1.0, abs=1e-6)
    assert result.normal @ (offset / np.linalg.norm(offset)) > 0.99
    depth = minkowski_point(s0, s1, result.normal).pos @ result.normal
    assert depth == pytest.approx(expected_depth, abs=0.02)


def test_epa_sphere_box_normal_is_face_normal():
    sphere, box, center, rot = _sphere_on_box()
    simplex = gjk_simplex(sphere, box, -center)
    result = epa(sphere, box, simplex)
    up = rot[:, 1]
    assert result.normal @ -up > 0.99
    depth = minkowski_point(sphere, box, result.normal).pos @ result.normal
    assert depth == pytest.approx(1.5 - center @ up, abs=0.02)


def test_epa_contact_points_lie_on_closest_face():
    sphere, box, center, rot = _sphere_on_box()
    simplex = gjk_simplex(sphere, box, -center)
    result = epa(sphere, box, simplex)
    separation = (result.point0 - result.point1) @ result.normal
    assert separation == pytest.approx(1.5 - center @ rot[:, 1], abs=0.02)


def test_epa_rejects_incomplete_simplex():
    s0, s1, offset = _spheres()
    simplex = gjk_simplex(s0, s1, offset)
    with pytest.raises(ValueError):
        epa(s0, s1, simplex[:3])