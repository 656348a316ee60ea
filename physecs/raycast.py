"""Ray intersection against boxes and collider geometries.

Functions return the ray parameter of the first hit, or ``None`` on a miss.
A ray starting inside a shape hits at parameter 0.
"""
from __future__ import annotations

import math
from typing import Optional

import numpy as np

from physecs.shapes import GeometryType, quat_inverse, quat_rotate


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def intersect_ray_aabb(ray_orig, ray_dir, box_min, box_max) -> Optional[float]:
    """Slab test of a ray against an axis-aligned box."""
    o, d = _vec3(ray_orig), _vec3(ray_dir)
    lo, hi = _vec3(box_min), _vec3(box_max)
    t_min = 0.0
    t_max = math.inf
    for i in range(3):
        if abs(d[i]) < 0.001:
            if o[i] < lo[i] or o[i] > hi[i]:
                return None
            continue
        ood = 1.0 / d[i]
        t1 = (lo[i] - o[i]) * ood
        t2 = (hi[i] - o[i]) * ood
        if t1 > t2:
            t1, t2 = t2, t1
        t_min = max(t_min, t1)
        t_max = min(t_max, t2)
        if t_min > t_max:
            return None
    return float(t_min)


def _ray_sphere(o, d, pos, radius) -> Optional[float]:
    m = o - pos
    b = float(m @ d)
    c = float(m @ m) - radius * radius
    if c > 0.0 and b > 0.0:
        return None
    discr = b * b - c
    if discr < 0.0:
        return None
    return max(-b - math.sqrt(discr), 0.0)


def _ray_capsule(o, d, pos, ori, half_height, radius) -> Optional[float]:
    inv = quat_inverse(ori)
    p = quat_rotate(inv, o - pos)
    d = quat_rotate(inv, d)

    pd = float(p @ d)
    hdy = half_height * d[1]
    thpy = 2.0 * half_height * p[1]
    phr = float(p @ p) + half_height * half_height - radius * radius

    best: Optional[float] = None

    # top hemisphere
    b = pd - hdy
    discr = b * b - (phr - thpy)
    if discr >= 0.0:
        t = max(-b - math.sqrt(discr), 0.0)
        if (p + t * d)[1] >= half_height:
            best = t

    # cylinder
    a = d[0] * d[0] + d[2] * d[2]
    b = p[0] * d[0] + p[2] * d[2]
    c = p[0] * p[0] + p[2] * p[2] - radius * radius
    discr = b * b - a * c
    if a > 0.0 and discr >= 0.0:
        t = max((-b - math.sqrt(discr)) / a, 0.0)
        y = (p + t * d)[1]
        if -half_height <= y < half_height and (best is None or t < best):
            best = t

    # bottom hemisphere
    b = pd + hdy
    discr = b * b - (phr + thpy)
    if discr >= 0.0:
        t = max(-b - math.sqrt(discr), 0.0)
        if (p + t * d)[1] < -half_height and (best is None or t < best):
            best = t

    return None if best is None else float(best)


def _ray_box(o, d, pos, ori, half_extents) -> Optional[float]:
    inv = quat_inverse(ori)
    return intersect_ray_aabb(quat_rotate(inv, o - pos), quat_rotate(inv, d),
                              -half_extents, half_extents)


def _ray_convex(o, d, pos, ori, mesh, scale) -> Optional[float]:
    t_min = 0.0
    t_max = math.inf
    for face in mesh.faces:
        plane_orig = pos + quat_rotate(ori, scale * face.centroid)
        plane_normal = quat_rotate(ori, face.normal / scale)
        denom = float(d @ plane_normal)
        dist = float((plane_orig - o) @ plane_normal)
        if denom == 0.0:
            if dist > 0:
                return None
            continue
        t = dist / denom
        if denom < 0:
            t_min = max(t_min, t)
        else:
            t_max = min(t_max, t)
        if t_min > t_max:
            return None
    return float(t_min)


def intersect_ray_geometry(ray_orig, ray_dir, pos, ori, geometry) -> Optional[float]:
    """First hit of a ray against a placed geometry; triangle meshes are never hit."""
    o, d, pos = _vec3(ray_orig), _vec3(ray_dir), _vec3(pos)
    ori = np.array(ori, dtype=float).reshape(4)
    kind = geometry.type
    if kind is GeometryType.SPHERE:
        return _ray_sphere(o, d, pos, geometry.radius)
    if kind is GeometryType.CAPSULE:
        return _ray_capsule(o, d, pos, ori, geometry.half_height, geometry.radius)
    if kind is GeometryType.BOX:
        return _ray_box(o, d, pos, ori, geometry.half_extents)
    if kind is GeometryType.CONVEX_MESH:
        return _ray_convex(o, d, pos, ori, geometry.mesh, geometry.scale)
    return None