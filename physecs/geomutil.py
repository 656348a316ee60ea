"""Closest-point and squared-distance queries between segments, boxes and triangles.

Boxes are centred at the origin and given by their half extents. A segment is
``p + t * direction`` with ``t`` limited to ``[lo, hi]``.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple

import numpy as np

_X, _Y, _Z = 0, 1, 2


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


class TriangleFeature(enum.Enum):
    FACE = 0
    EDGE = 1
    VERTEX = 2


@dataclass
class TriangleDistance:
    """Squared distance to a triangle and the closest point on it.

    ``feature_index`` names the vertex (0 = a, 1 = b, 2 = c) or the edge
    (0 = bc, 1 = ca, 2 = ab) the closest point lies on; it is 0 for a face.
    ``t`` is the segment parameter of the closest point on the segment.
    """

    sqr_dist: float
    point: np.ndarray
    feature: TriangleFeature
    feature_index: int = 0
    t: float = 0.0


@dataclass
class SegmentBoxDistance:
    """Squared distance between a segment and a box, the segment parameter
    ``t`` of the nearest point and the nearest point on the box."""

    sqr_dist: float
    t: float
    point: np.ndarray


def closest_point_on_segment(point, line_orig, line_dir, lo: float, hi: float) -> np.ndarray:
    """Point of the segment nearest to ``point``; ``line_dir`` is a unit vector."""
    point, line_orig, line_dir = _vec3(point), _vec3(line_orig), _vec3(line_dir)
    t = -float(np.dot(line_orig - point, line_dir))
    return line_orig + _clamp(t, lo, hi) * line_dir


def closest_points_between_segments(orig0, dir0, min0: float, max0: float,
                                    orig1, dir1, min1: float, max1: float
                                    ) -> Tuple[np.ndarray, np.ndarray]:
    """Nearest points of two segments with unit directions and parameter ranges."""
    orig0, dir0, orig1, dir1 = _vec3(orig0), _vec3(dir0), _vec3(orig1), _vec3(dir1)

    v1v2 = float(np.dot(dir0, dir1))
    r = orig1 - orig0
    rv1 = float(np.dot(r, dir0))
    rv2 = float(np.dot(r, dir1))

    t1 = 0.0 if abs(v1v2) > 1.0 - 0.0001 else (rv1 * v1v2 - rv2) / (1.0 - v1v2 * v1v2)
    t0 = rv1 + t1 * v1v2

    if t0 < min0 or t0 > max0:
        t0 = min0 if t0 < min0 else max0
        p0 = orig0 + t0 * dir0
        t1 = -float(np.dot(orig1 - p0, dir1))
    else:
        p0 = orig0 + t0 * dir0

    if t1 < min1 or t1 > max1:
        t1 = min1 if t1 < min1 else max1
        p1 = orig1 + t1 * dir1
        t0 = _clamp(-float(np.dot(orig0 - p1, dir0)), min0, max0)
        p0 = orig0 + t0 * dir0
    else:
        p1 = orig1 + t1 * dir1

    return p0, p1


def closest_points_between_segment_vectors(orig0, v0, orig1, v1) -> Tuple[np.ndarray, np.ndarray]:
    """Nearest points of segments ``orig0 .. orig0 + v0`` and ``orig1 .. orig1 + v1``."""
    orig0, v0, orig1, v1 = _vec3(orig0), _vec3(v0), _vec3(orig1), _vec3(v1)

    v0v0 = float(np.dot(v0, v0))
    v1v1 = float(np.dot(v1, v1))

    if v0v0 < 0.0001:
        if v1v1 < 0.0001:
            return orig0, orig1
        t1 = -float(np.dot(orig1 - orig0, v1)) / v1v1
        return orig0, orig1 + t1 * v1

    if v1v1 < 0.0001:
        t0 = -float(np.dot(orig0 - orig1, v0)) / v0v0
        return orig0 + t0 * v0, orig1

    v0v1 = float(np.dot(v0, v1))
    r = orig1 - orig0
    rv0 = float(np.dot(r, v0))
    rv1 = float(np.dot(r, v1))

    denom = v0v0 * v1v1 - v0v1 * v0v1
    t1 = 0.0 if abs(denom) < 0.0001 else (rv0 * v0v1 - rv1 * v0v0) / denom
    t0 = (rv0 + t1 * v0v1) / v0v0

    if t0 < 0.0 or t0 > 1.0:
        t0 = 0.0 if t0 < 0.0 else 1.0
        p0 = orig0 + t0 * v0
        t1 = -float(np.dot(orig1 - p0, v1)) / v1v1
    else:
        p0 = orig0 + t0 * v0

    if t1 < 0.0 or t1 > 1.0:
        t1 = 0.0 if t1 < 0.0 else 1.0
        p1 = orig1 + t1 * v1
        t0 = _clamp(-float(np.dot(orig0 - p1, v0)) / v0v0, 0.0, 1.0)
        p0 = orig0 + t0 * v0
    else:
        p1 = orig1 + t1 * v1

    return p0, p1


# --- line against box -------------------------------------------------------

def _case_two_zeros(p, axis, he):
    """Line parallel to ``axis`` (the only positive direction component)."""
    q = np.zeros(3)
    sqr = 0.0
    t = he[axis] - p[axis]
    q[axis] = p[axis] + t
    for other in ((axis + 1) % 3, (axis + 2) % 3):
        if p[other] > he[other]:
            delta = p[other] - he[other]
            sqr += delta * delta
            q[other] = he[other]
        elif p[other] < -he[other]:
            delta = p[other] + he[other]
            sqr += delta * delta
            q[other] = -he[other]
        else:
            q[other] = p[other]
    return sqr, t, q


def _case_one_zero(p, zero_axis, d, he):
    """Line lying in a plane perpendicular to ``zero_axis``."""
    q = np.zeros(3)
    sqr = 0.0
    q[zero_axis] = p[zero_axis]
    pme = p - he
    x = (zero_axis + 1) % 3
    y = (zero_axis + 2) % 3

    prod0 = d[y] * pme[x]
    prod1 = d[x] * pme[y]

    if prod0 >= prod1:
        q[x] = he[x]
        e_y = p[y] + he[y]
        delta = prod0 - d[x] * e_y
        if delta >= 0:
            sqr += delta * delta
            q[y] = -he[y]
            t = -(pme[x] * d[x] + e_y * d[y])
        else:
            q[y] = p[y] - prod0 / d[x]
            t = -pme[x] / d[x]
    else:
        q[y] = he[y]
        e_x = p[x] + he[x]
        delta = prod1 - d[y] * e_x
        if delta >= 0:
            sqr += delta * delta
            q[x] = -he[x]
            t = -(e_x * d[x] + pme[y] * d[y])
        else:
            q[x] = p[x] - prod1 / d[y]
            t = -pme[y] / d[y]

    if p[zero_axis] < -he[zero_axis]:
        delta = p[zero_axis] + he[zero_axis]
        sqr += delta * delta
        q[zero_axis] = -he[zero_axis]
    elif p[zero_axis] > he[zero_axis]:
        delta = p[zero_axis] - he[zero_axis]
        sqr += delta * delta
        q[zero_axis] = he[zero_axis]

    return sqr, t, q


def _line_aabb_face(p, d, he, x, pme):
    """Line whose nearest approach is on the face of positive ``x``."""
    y = (x + 1) % 3
    z = (y + 1) % 3
    ppe = p + he
    q = p.copy()

    def nearest_y() -> float:
        return p[y] - d[y] * (d[x] * pme[x] + d[z] * ppe[z]) / (d[x] * d[x] + d[z] * d[z])

    def nearest_z() -> float:
        return p[z] - d[z] * (d[x] * pme[x] + d[y] * ppe[y]) / (d[x] * d[x] + d[y] * d[y])

    def edge_along_y(ny: float):
        if ny <= he[y]:
            tmp = p[y] - ny
            delta = d[x] * pme[x] + d[y] * tmp + d[z] * ppe[z]
            sqr = pme[x] * pme[x] + tmp * tmp + ppe[z] * ppe[z] - delta * delta
            q[:] = (he[x], ny, -he[z])
        else:
            delta = d[x] * pme[x] + d[y] * pme[y] + d[z] * ppe[z]
            sqr = pme[x] * pme[x] + pme[y] + pme[y] + ppe[z] * ppe[z] - delta * delta
            q[:] = (he[x], he[y], -he[z])
        return sqr, -delta

    def edge_along_z(nz: float):
        if nz <= he[z]:
            tmp = p[z] - nz
            delta = d[x] * pme[x] + d[y] * ppe[y] + d[z] * tmp
            sqr = pme[x] * pme[x] + ppe[y] * ppe[y] + tmp * tmp - delta * delta
            q[:] = (he[x], -he[y], nz)
        else:
            delta = d[x] * pme[x] + d[y] * ppe[y] + d[z] * pme[z]
            sqr = pme[x] * pme[x] + ppe[y] * ppe[y] + pme[z] * pme[z] - delta * delta
            q[:] = (he[x], -he[y], he[z])
        return sqr, -delta

    if d[x] * ppe[y] >= d[y] * pme[x]:
        if d[x] * ppe[z] >= d[z] * pme[x]:
            q[x] = he[x]
            q[y] -= pme[x] * d[y] / d[x]
            q[z] -= pme[x] * d[z] / d[x]
            return 0.0, -pme[x] / d[x], q
        sqr, t = edge_along_y(nearest_y())
        return sqr, t, q

    if d[x] * ppe[z] >= d[z] * pme[x]:
        sqr, t = edge_along_z(nearest_z())
        return sqr, t, q

    ny = nearest_y()
    if ny >= -he[y]:
        sqr, t = edge_along_y(ny)
        return sqr, t, q

    nz = nearest_z()
    if nz >= -he[z]:
        sqr, t = edge_along_z(nz)
        return sqr, t, q

    delta = d[x] * pme[x] + d[y] * ppe[y] + d[z] * ppe[z]
    sqr = pme[x] * pme[x] + ppe[y] * ppe[y] + ppe[z] * ppe[z] - delta * delta
    q[:] = (he[x], -he[y], -he[z])
    return sqr, -delta, q


def _case_no_zeros(p, d, he):
    pme = p - he
    if d[1] * pme[0] >= d[0] * pme[1]:
        axis = _X if d[2] * pme[0] >= d[0] * pme[2] else _Z
    else:
        axis = _Y if d[2] * pme[1] >= d[1] * pme[2] else _Z
    return _line_aabb_face(p, d, he, axis, pme)


def _sqr_dist_point_aabb(p, he):
    q = np.clip(p, -he, he)
    diff = p - q
    return float(diff @ diff), q


def _sqr_dist_line_aabb(p, d, he):
    reflect = d < 0.0
    p = np.where(reflect, -p, p)
    d = np.where(reflect, -d, d)

    positive = (d[0] > 0, d[1] > 0, d[2] > 0)
    if positive == (True, True, True):
        sqr, t, q = _case_no_zeros(p, d, he)
    elif positive == (True, True, False):
        sqr, t, q = _case_one_zero(p, _Z, d, he)
    elif positive == (True, False, True):
        sqr, t, q = _case_one_zero(p, _Y, d, he)
    elif positive == (False, True, True):
        sqr, t, q = _case_one_zero(p, _X, d, he)
    elif positive == (True, False, False):
        sqr, t, q = _case_two_zeros(p, _X, he)
    elif positive == (False, True, False):
        sqr, t, q = _case_two_zeros(p, _Y, he)
    elif positive == (False, False, True):
        sqr, t, q = _case_two_zeros(p, _Z, he)
    else:
        sqr, q = _sqr_dist_point_aabb(p, he)
        t = 0.0

    return float(sqr), float(t), np.where(reflect, -q, q)


def sqr_dist_segment_aabb(p, direction, lo: float, hi: float, half_extents) -> SegmentBoxDistance:
    """Squared distance from a segment with unit direction to an origin-centred box."""
    p, d, he = _vec3(p), _vec3(direction), _vec3(half_extents)
    sqr, t, q = _sqr_dist_line_aabb(p, d, he)
    if t < lo or t > hi:
        t = lo if t < lo else hi
        sqr, q = _sqr_dist_point_aabb(p + d * t, he)
    return SegmentBoxDistance(sqr, t, q)


# --- triangles --------------------------------------------------------------

def sqr_dist_point_triangle(p, a, b, c) -> TriangleDistance:
    """Squared distance from a point to a triangle, with the feature reached."""
    p, a, b, c = _vec3(p), _vec3(a), _vec3(b), _vec3(c)
    q, feature, index = _closest_on_triangle(p, a, b, c)
    diff = q - p
    return TriangleDistance(float(diff @ diff), q, feature, index)


def _closest_on_triangle(p, a, b, c):
    ab = b - a
    ac = c - a

    ap = p - a
    d1 = float(ab @ ap)
    d2 = float(ac @ ap)
    if d1 <= 0.0 and d2 <= 0.0:
        return a.copy(), TriangleFeature.VERTEX, 0

    bp = p - b
    d3 = float(ab @ bp)
    d4 = float(ac @ bp)
    if d3 >= 0.0 and d4 <= d3:
        return b.copy(), TriangleFeature.VERTEX, 1

    vc = d1 * d4 - d3 * d2
    if vc <= 0 and d1 >= 0.0 and d3 <= 0.0:
        return a + d1 / (d1 - d3) * ab, TriangleFeature.EDGE, 2

    cp = p - c
    d5 = float(ab @ cp)
    d6 = float(ac @ cp)
    if d6 >= 0.0 and d5 <= d6:
        return c.copy(), TriangleFeature.VERTEX, 2

    va = d3 * d6 - d5 * d4
    if va <= 0 and d4 >= d3 and d5 >= d6:
        return b + (d4 - d3) / (d4 - d3 + d5 - d6) * (c - b), TriangleFeature.EDGE, 0

    vb = d5 * d2 - d1 * d6
    if vb <= 0 and d2 >= 0.0 and d6 <= 0.0:
        return c + d2 / (d2 - d6) * ac, TriangleFeature.EDGE, 1

    denom = va + vb + vc
    u = va / denom
    v = vb / denom
    w = 1.0 - u - v
    return u * a + v * b + w * c, TriangleFeature.FACE, 0


def _sqr_dist_line_segment(p, d, a, b):
    """Line against segment ``ab``: squared distance, line parameter, nearest
    point on the segment and which end it sits on (0 none, 1 a, 2 b)."""
    ab = b - a
    v1v2 = float(d @ ab)
    v2v2 = float(ab @ ab)
    r = p - a
    rv1 = float(r @ d)
    rv2 = float(r @ ab)
    denom = v1v2 * v1v2 - v2v2

    if abs(denom) <= 1e-6:
        diff = p - rv1 * d - a
        return float(diff @ diff), -rv1, a.copy(), 0

    s = (rv1 * v1v2 - rv2) / denom
    if s <= 0.0:
        diff = p - rv1 * d - a
        return float(diff @ diff), -rv1, a.copy(), 1
    if s >= 1.0:
        t = -float((p - b) @ d)
        diff = p + t * d - b
        return float(diff @ diff), t, b.copy(), 2

    q = a + s * ab
    t = s * v1v2 - rv1
    diff = p + t * d - q
    return float(diff @ diff), t, q, 0


def _det(c0, c1, c2) -> float:
    return float(np.dot(c0, np.cross(c1, c2)))


def _sqr_dist_line_triangle(p, d, a, b, c) -> TriangleDistance:
    e0 = b - a
    e1 = c - a
    det = _det(e0, e1, -d)

    if abs(det) > 1e-6:
        diff = p - a
        inv_det = 1.0 / det
        u = inv_det * _det(diff, e1, -d)
        v = inv_det * _det(e0, diff, -d)
        w = 1.0 - u - v
        if u >= 0.0 and v >= 0.0 and w >= 0.0:
            t = inv_det * _det(e0, e1, diff)
            return TriangleDistance(0.0, a + u * e0 + v * e1, TriangleFeature.FACE, 0, t)

    best = None
    for edge_index, (s0, s1) in ((2, (a, b)), (0, (b, c)), (1, (c, a))):
        dist, t, q, flag = _sqr_dist_line_segment(p, d, s0, s1)
        if best is None or dist < best[0]:
            best = (dist, t, q, flag, edge_index)

    dist, t, q, flag, edge_index = best
    if flag:
        return TriangleDistance(dist, q, TriangleFeature.VERTEX, (edge_index + flag) % 3, t)
    return TriangleDistance(dist, q, TriangleFeature.EDGE, edge_index, t)


def sqr_dist_segment_triangle(p, direction, lo: float, hi: float, a, b, c) -> TriangleDistance:
    """Squared distance from a segment with unit direction to a triangle."""
    p, d = _vec3(p), _vec3(direction)
    a, b, c = _vec3(a), _vec3(b), _vec3(c)
    result = _sqr_dist_line_triangle(p, d, a, b, c)
    if result.t < lo or result.t > hi:
        t = lo if result.t < lo else hi
        result = sqr_dist_point_triangle(p + d * t, a, b, c)
        result.t = t
    return result


def distance_aabb_plane(half_extents, n, d: float) -> float:
    """Signed gap between an origin-centred box and the plane ``dot(n, x) = d``."""
    he, n = _vec3(half_extents), _vec3(n)
    r = float(he @ np.abs(n))
    return abs(d) - r