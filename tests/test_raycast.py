import itertools
import math

import numpy as np
import pytest

from physecs.geomutil import closest_point_on_segment
from physecs.raycast import intersect_ray_aabb, intersect_ray_geometry
from physecs.shapes import (
    BoxGeometry,
    CapsuleGeometry,
    ConvexMesh,
    ConvexMeshFace,
    ConvexMeshGeometry,
    SphereGeometry,
    TriangleMeshGeometry,
    quat_inverse,
    quat_rotate,
)

IDENT = np.array([1.0, 0.0, 0.0, 0.0])
ROT_Y45 = np.array([math.cos(math.pi / 8), 0.0, math.sin(math.pi / 8), 0.0])
ROT_Z90 = np.array([math.cos(math.pi / 4), 0.0, 0.0, math.sin(math.pi / 4)])


def cube_mesh():
    verts = [np.array(p, dtype=float) for p in itertools.product((-1.0, 1.0), repeat=3)]
    faces = []
    for axis in range(3):
        for sign in (-1.0, 1.0):
            idx = [i for i, v in enumerate(verts) if v[axis] == sign]
            normal = np.zeros(3)
            normal[axis] = sign
            faces.append(ConvexMeshFace(idx, normal, normal.copy()))
    return ConvexMesh(verts, faces)


def unit(v):
    v = np.array(v, dtype=float)
    return v / np.linalg.norm(v)


def test_aabb_hit_lies_on_entry_face():
    orig = np.array([-5.0, 0.2, -0.3])
    d = np.array([1.0, 0.0, 0.0])
    t = intersect_ray_aabb(orig, d, [-1, -1, -1], [1, 1, 1])
    hit = orig + t * d
    assert hit[0] == pytest.approx(-1.0)


def test_aabb_misses_and_parallel_outside():
    assert intersect_ray_aabb([-5, 3, 0], [1, 0, 0], [-1, -1, -1], [1, 1, 1]) is None
    assert intersect_ray_aabb([-5, 0, 0], [-1, 0, 0], [-1, -1, -1], [1, 1, 1]) is None


def test_aabb_origin_inside_hits_immediately():
    assert intersect_ray_aabb([0, 0, 0], unit([1, 2, 3]), [-1, -1, -1], [1, 1, 1]) == 0.0


def test_sphere_hit_is_on_surface():
    orig = np.array([-4.0, 0.3, 0.5])
    d = unit([1.0, -0.05, 0.0])
    pos = np.array([0.5, 0.0, 0.2])
    t = intersect_ray_geometry(orig, d, pos, IDENT, SphereGeometry(1.5))
    assert np.linalg.norm(orig + t * d - pos) == pytest.approx(1.5)


def test_sphere_pointing_away_and_inside():
    sphere = SphereGeometry(1.0)
    assert intersect_ray_geometry([5, 0, 0], [1, 0, 0], [0, 0, 0], IDENT, sphere) is None
    assert intersect_ray_geometry([0.2, 0, 0], [1, 0, 0], [0, 0, 0], IDENT, sphere) == 0.0


@pytest.mark.parametrize("orig,direction", [
    ([5.0, 0.3, 0.0], [-1.0, 0.0, 0.0]),
    ([0.1, 5.0, 0.0], [0.0, -1.0, 0.0]),
    ([0.0, -5.0, 0.2], [0.0, 1.0, 0.0]),
    ([3.0, 3.0, 1.0], [-1.0, -1.0, -0.3]),
])
def test_capsule_hit_is_radius_from_axis(orig, direction):
    orig = np.array(orig)
    d = unit(direction)
    t = intersect_ray_geometry(orig, d, [0, 0, 0], IDENT, CapsuleGeometry(1.0, 0.5))
    hit = orig + t * d
    axis_point = closest_point_on_segment(hit, [0, 0, 0], [0, 1, 0], -1.0, 1.0)
    assert np.linalg.norm(hit - axis_point) == pytest.approx(0.5)


def test_rotated_capsule_along_axis():
    orig = np.array([5.0, 0.0, 0.0])
    d = np.array([-1.0, 0.0, 0.0])
    t = intersect_ray_geometry(orig, d, [0, 0, 0], ROT_Z90, CapsuleGeometry(1.0, 0.5))
    hit = orig + t * d
    axis = quat_rotate(ROT_Z90, [0, 1, 0])
    axis_point = closest_point_on_segment(hit, [0, 0, 0], axis, -1.0, 1.0)
    assert np.linalg.norm(hit - axis_point) == pytest.approx(0.5)


def test_capsule_miss():
    cap = CapsuleGeometry(1.0, 0.5)
    assert intersect_ray_geometry([5, 0, 2], [-1, 0, 0], [0, 0, 0], IDENT, cap) is None


def test_rotated_box_hit_on_surface():
    orig = np.array([-5.0, 0.1, 0.2])
    d = np.array([1.0, 0.0, 0.0])
    pos = np.array([0.3, 0.0, 0.0])
    he = np.array([1.0, 0.5, 0.8])
    t = intersect_ray_geometry(orig, d, pos, ROT_Y45, BoxGeometry(he))
    local = quat_rotate(quat_inverse(ROT_Y45), orig + t * d - pos)
    assert np.max(np.abs(local) - he) == pytest.approx(0.0, abs=1e-9)
    assert np.all(np.abs(local) <= he + 1e-9)


def test_convex_mesh_hit_on_scaled_surface():
    orig = np.array([-5.0, 0.3, 0.2])
    d = unit([1.0, 0.1, 0.0])
    geom = ConvexMeshGeometry(cube_mesh(), [2, 1, 1])
    t = intersect_ray_geometry(orig, d, [0, 0, 0], IDENT, geom)
    hit = (orig + t * d) / geom.scale
    assert np.max(np.abs(hit)) == pytest.approx(1.0)


def test_convex_mesh_miss():
    geom = ConvexMeshGeometry(cube_mesh())
    assert intersect_ray_geometry([-5, 3, 0], [1, 0, 0], [0, 0, 0], IDENT, geom) is None


def test_cube_mesh_matches_box():
    mesh = ConvexMeshGeometry(cube_mesh())
    box = BoxGeometry([1, 1, 1])
    orig = np.array([-4.0, 2.5, 0.7])
    d = unit([1.0, -0.6, -0.1])
    pos = np.array([0.2, 0.1, 0.0])
    t_mesh = intersect_ray_geometry(orig, d, pos, ROT_Y45, mesh)
    t_box = intersect_ray_geometry(orig, d, pos, ROT_Y45, box)
    assert t_mesh == pytest.approx(t_box)


def test_triangle_mesh_is_not_hit():
    geom = TriangleMeshGeometry(object())
    assert intersect_ray_geometry([0, 0, 0], [1, 0, 0], [0, 0, 0], IDENT, geom) is None