import itertools
import math

import numpy as np
import pytest

from physecs.gjk import (
    BoxSupport,
    CapsuleSupport,
    ConvexMeshSupport,
    SphereSupport,
    TriangleSupport,
    gjk_intersect,
    gjk_simplex,
    minkowski_point,
)
from physecs.shapes import ConvexMeshVertices, quat_to_matrix

CUBE = [(x, y, z) for x in (-1.0, 1.0) for y in (-1.0, 1.0) for z in (-1.0, 1.0)]


def _rot_z(angle):
    return quat_to_matrix([math.cos(angle / 2), 0.0, 0.0, math.sin(angle / 2)])


def _unit(v):
    v = np.array(v, dtype=float)
    return v / np.linalg.norm(v)


def test_sphere_support_point():
    support = SphereSupport([1, 2, 3], 2.0)
    assert np.allclose(support([0, 0, 1]), [1, 2, 5])


def test_capsule_support_reaches_cap_tip():
    capsule = CapsuleSupport([0, 0, 0], [0, 1, 0], 1.0, 0.5)
    up = capsule([0, 1, 0])
    down = capsule([0, -1, 0])
    assert np.allclose(up, [0, 1.5, 0])
    assert np.allclose(down, -up)


def test_box_support_is_extreme_corner():
    rot = _rot_z(0.4)
    he = np.array([1.0, 2.0, 0.5])
    pos = np.array([1.0, -1.0, 2.0])
    support = BoxSupport(pos, rot, he)
    d = _unit([0.3, -0.8, 0.5])
    p = support(d)
    local = rot.T @ (p - pos)
    assert np.allclose(np.abs(local), he)
    corners = [pos + rot @ (np.array(s) * he) for s in itertools.product((-1, 1), repeat=3)]
    assert p @ d >= max(c @ d for c in corners) - 1e-12


@pytest.mark.parametrize("points", [CUBE, CUBE[:5], CUBE[:6]])
@pytest.mark.parametrize("direction", [(1, 0.2, 0.3), (-0.4, 1, -0.7), (0.1, -0.3, -1)])
def test_convex_mesh_support_maximises_projection(points, direction):
    rot = _rot_z(0.7)
    scale = np.array([2.0, 1.0, 0.5])
    pos = np.array([1.0, 0.0, -2.0])
    support = ConvexMeshSupport(pos, rot, ConvexMeshVertices(points), scale)
    d = _unit(direction)
    p = support(d)
    world = [pos + rot @ (scale * np.array(v)) for v in points]
    assert any(np.allclose(p, w) for w in world)
    assert p @ d == pytest.approx(max(w @ d for w in world))


def test_triangle_support_returns_farthest_vertex():
    a, b, c = np.array([0.0, 0, 0]), np.array([2.0, 0, 0]), np.array([0.0, 3, 0])
    support = TriangleSupport(a, b, c)
    assert np.array_equal(support([-1, -1, 0]), a)
    assert np.array_equal(support([1, 0, 0]), b)
    assert np.array_equal(support([0, 1, 0]), c)


def test_minkowski_point_is_difference_of_supports():
    s0 = SphereSupport([0, 0, 0], 1.0)
    s1 = BoxSupport([2, 1, 0], _rot_z(0.3), [1, 1, 1])
    d = _unit([1, 0.5, -0.2])
    v = minkowski_point(s0, s1, d)
    assert np.allclose(v.pos, v.sp0 - v.sp1)
    assert np.allclose(v.sp0, s0(d))
    assert np.allclose(v.sp1, s1(-d))


@pytest.mark.parametrize("offset", [
    (1.2, 0.5, 0.3), (1.5, 0.6, 0.3), (0.3, -0.2, 0.1), (2.5, 1.0, 0.0), (-0.9, 0.7, 0.4),
])
def test_gjk_intersect_spheres(offset):
    offset = np.array(offset)
    s0 = SphereSupport([0, 0, 0], 1.0)
    s1 = SphereSupport(offset, 0.5)
    expected = np.linalg.norm(offset) < 1.5
    assert gjk_intersect(s0, s1, offset) == expected
    assert (gjk_simplex(s0, s1, offset) is not None) == expected


@pytest.mark.parametrize("offset", [(1.9, 0.3, 0.2), (2.1, 0.3, 0.2), (1.5, -1.2, 0.4), (0.5, 2.4, 0.1)])
def test_gjk_intersect_boxes(offset):
    offset = np.array(offset)
    s0 = BoxSupport([0, 0, 0], np.eye(3), [1, 1, 1])
    s1 = BoxSupport(offset, np.eye(3), [1, 1, 1])
    expected = bool(np.all(np.abs(offset) < 2.0))
    assert gjk_intersect(s0, s1, offset) == expected


@pytest.mark.parametrize("center", [(0.8, 0.9, 0.1), (1.3, 0.4, 0.2), (0.3, 1.8, 0.1)])
def test_gjk_intersect_capsule_and_sphere(center):
    center = np.array(center)
    capsule = CapsuleSupport([0, 0, 0], [0, 1, 0], 1.0, 0.5)
    sphere = SphereSupport(center, 0.5)
    nearest = np.array([0.0, min(max(center[1], -1.0), 1.0), 0.0])
    expected = np.linalg.norm(center - nearest) < 1.0
    assert gjk_intersect(capsule, sphere, center) == expected


@pytest.mark.parametrize("center", [(1.3, 0.2, 0.1), (1.7, 0.2, 0.1), (0.9, 1.2, -0.3)])
def test_gjk_intersect_convex_mesh_and_sphere(center):
    center = np.array(center)
    mesh = ConvexMeshSupport([0, 0, 0], np.eye(3), ConvexMeshVertices(CUBE), [1, 1, 1])
    sphere = SphereSupport(center, 0.5)
    gap = np.maximum(np.abs(center) - 1.0, 0.0)
    expected = np.linalg.norm(gap) < 0.5
    assert gjk_intersect(mesh, sphere, center) == expected


def test_gjk_simplex_encloses_origin():
    s0 = SphereSupport([0, 0, 0], 1.0)
    offset = np.array([1.2, 0.5, 0.3])
    s1 = SphereSupport(offset, 0.5)
    simplex = gjk_simplex(s0, s1, offset)
    assert len(simplex) == 4
    p = [v.pos for v in simplex]
    edges = np.column_stack([p[1] - p[0], p[2] - p[0], p[3] - p[0]])
    weights = np.linalg.solve(edges, -p[0])
    assert np.all(weights >= -1e-3)
    assert weights.sum() <= 1 + 1e-3


def test_gjk_simplex_none_when_separated():
    s0 = SphereSupport([0, 0, 0], 1.0)
    s1 = SphereSupport([3, 0.5, 0], 1.0)
    assert gjk_simplex(s0, s1, [3, 0.5, 0]) is None


def test_gjk_simplex_builds_tetrahedron_when_first_point_is_origin():
    s0 = SphereSupport([0, 0, 0], 1.0)
    s1 = SphereSupport([2, 0, 0], 1.0)
    simplex = gjk_simplex(s0, s1, [1, 0, 0])
    assert len(simplex) == 4
    for v in simplex:
        assert np.allclose(v.pos, v.sp0 - v.sp1)
    p = [v.pos for v in simplex]
    volume = np.linalg.det(np.column_stack([p[1] - p[0], p[2] - p[0], p[3] - p[0]]))
    assert abs(volume) > 1e-6