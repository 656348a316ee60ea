"""Boolean overlap tests between pairs of collider geometries."""
from __future__ import annotations

import numpy as np

from physecs.geomutil import (
    closest_point_on_segment,
    closest_points_between_segments,
    sqr_dist_segment_aabb,
)
from physecs.gjk import (
    BoxSupport,
    CapsuleSupport,
    ConvexMeshSupport,
    SphereSupport,
    gjk_intersect,
)
from physecs.shapes import GeometryType, quat_rotate, quat_to_matrix

_UP = np.array([0.0, 1.0, 0.0])


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _within(d: np.ndarray, radius: float) -> bool:
    return not float(d @ d) > radius * radius


def _sphere_sphere(pos0, radius0, pos1, radius1) -> bool:
    return _within(pos1 - pos0, radius0 + radius1)


def _capsule_capsule(pos0, or0, hh0, r0, pos1, or1, hh1, r1) -> bool:
    v0 = quat_rotate(or0, _UP)
    v1 = quat_rotate(or1, _UP)
    p0, p1 = closest_points_between_segments(pos0, v0, -hh0, hh0, pos1, v1, -hh1, hh1)
    return _within(p1 - p0, r0 + r1)


def _box_box(pos0, or0, he0, pos1, or1, he1) -> bool:
    """Separating axis test between two oriented boxes."""
    u0 = quat_to_matrix(or0)
    u1 = quat_to_matrix(or1)
    t = u0.T @ (pos1 - pos0)
    r = u0.T @ u1
    ar = np.abs(r)

    for i in range(3):
        ra = he0[i]
        rb = he1[0] * ar[i][0] + he1[1] * ar[i][1] + he1[2] * ar[i][2]
        if abs(t[i]) - ra - rb > 0:
            return False

    for i in range(3):
        ra = he0[0] * ar[0][i] + he0[1] * ar[1][i] + he0[2] * ar[2][i]
        rb = he1[i]
        length = abs(t[0] * r[0][i] + t[1] * r[1][i] + t[2] * r[2][i])
        if length - ra - rb > 0:
            return False

    for i in range(3):
        i1, i2 = (i + 1) % 3, (i + 2) % 3
        for j in range(3):
            j1, j2 = (j + 1) % 3, (j + 2) % 3
            ra = he0[i1] * ar[i2][j] + he0[i2] * ar[i1][j]
            rb = he1[j1] * ar[i][j2] + he1[j2] * ar[i][j1]
            length = abs(t[i2] * r[i1][j] - t[i1] * r[i2][j])
            if length - ra - rb > 0:
                return False

    return True


def _mesh_support(pos, ori, geom) -> ConvexMeshSupport:
    return ConvexMeshSupport(pos, quat_to_matrix(ori), geom.mesh.vertices, geom.scale)


def _sphere_capsule(pos0, radius0, pos1, or1, hh1, r1) -> bool:
    direction = quat_rotate(or1, _UP)
    q = closest_point_on_segment(pos0, pos1, direction, -hh1, hh1)
    return _within(q - pos0, radius0 + r1)


def _sphere_box(pos0, radius0, pos1, or1, he1) -> bool:
    u1 = quat_to_matrix(or1)
    d = u1.T @ (pos0 - pos1)
    q = pos1 + u1 @ np.clip(d, -he1, he1)
    return _within(q - pos0, radius0)


def _capsule_box(pos0, or0, hh0, r0, pos1, or1, he1) -> bool:
    u1 = quat_to_matrix(or1)
    p = u1.T @ (pos0 - pos1)
    dir_local = u1.T @ quat_rotate(or0, _UP)
    result = sqr_dist_segment_aabb(p, dir_local, -hh0, hh0, he1)
    return result.sqr_dist < r0 * r0


def _sphere_convex(pos0, radius0, pos1, or1, geom1) -> bool:
    return gjk_intersect(SphereSupport(pos0, radius0), _mesh_support(pos1, or1, geom1), pos1 - pos0)


def _capsule_convex(pos0, or0, hh0, r0, pos1, or1, geom1) -> bool:
    capsule = CapsuleSupport(pos0, quat_rotate(or0, _UP), hh0, r0)
    return gjk_intersect(capsule, _mesh_support(pos1, or1, geom1), pos1 - pos0)


def _box_convex(pos0, or0, he0, pos1, or1, geom1) -> bool:
    box = BoxSupport(pos0, quat_to_matrix(or0), he0)
    # The mesh support is anchored at the box position, as the solver has always done.
    return gjk_intersect(box, _mesh_support(pos0, or1, geom1), pos1 - pos0)


def _convex_convex(pos0, or0, geom0, pos1, or1, geom1) -> bool:
    return gjk_intersect(_mesh_support(pos0, or0, geom0), _mesh_support(pos1, or1, geom1), pos1 - pos0)


def overlap(pos0, or0, geom0, pos1, or1, geom1) -> bool:
    """True when the two placed geometries overlap. Triangle meshes never do."""
    pos0, pos1 = _vec3(pos0), _vec3(pos1)
    or0 = np.array(or0, dtype=float).reshape(4)
    or1 = np.array(or1, dtype=float).reshape(4)
    t0, t1 = geom0.type, geom1.type
    S, C, B, M = (GeometryType.SPHERE, GeometryType.CAPSULE,
                  GeometryType.BOX, GeometryType.CONVEX_MESH)

    if t0 is S:
        if t1 is S:
            return _sphere_sphere(pos0, geom0.radius, pos1, geom1.radius)
        if t1 is C:
            return _sphere_capsule(pos0, geom0.radius, pos1, or1, geom1.half_height, geom1.radius)
        if t1 is B:
            return _sphere_box(pos0, geom0.radius, pos1, or1, geom1.half_extents)
        if t1 is M:
            return _sphere_convex(pos0, geom0.radius, pos1, or1, geom1)
    elif t0 is C:
        if t1 is S:
            return _sphere_capsule(pos1, geom1.radius, pos0, or0, geom0.half_height, geom0.radius)
        if t1 is C:
            return _capsule_capsule(pos0, or0, geom0.half_height, geom0.radius,
                                    pos1, or1, geom1.half_height, geom1.radius)
        if t1 is B:
            return _capsule_box(pos0, or0, geom0.half_height, geom0.radius, pos1, or1, geom1.half_extents)
        if t1 is M:
            return _capsule_convex(pos0, or0, geom0.half_height, geom0.radius, pos1, or1, geom1)
    elif t0 is B:
        if t1 is S:
            return _sphere_box(pos1, geom1.radius, pos0, or0, geom0.half_extents)
        if t1 is C:
            return _capsule_box(pos1, or1, geom1.half_height, geom1.radius, pos0, or0, geom0.half_extents)
        if t1 is B:
            return _box_box(pos0, or0, geom0.half_extents, pos1, or1, geom1.half_extents)
        if t1 is M:
            return _box_convex(pos0, or0, geom0.half_extents, pos1, or1, geom1)
    elif t0 is M:
        if t1 is S:
            return _sphere_convex(pos1, geom1.radius, pos0, or0, geom0)
        if t1 is C:
            return _capsule_convex(pos1, or1, geom1.half_height, geom1.radius, pos0, or0, geom0)
        if t1 is B:
            return _box_convex(pos1, or1, geom1.half_extents, pos0, or0, geom0)
        if t1 is M:
            return _convex_convex(pos0, or0, geom0, pos1, or1, geom1)
    return False