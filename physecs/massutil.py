"""Inertia tensors and mass properties of compound rigid bodies."""
from __future__ import annotations

import math
from typing import Iterable, Iterator, Tuple

import numpy as np

from physecs.shapes import Collider, GeometryType, RigidBodyDynamic, quat_to_matrix


def inertia_sphere(mass: float, radius: float) -> np.ndarray:
    return np.eye(3) * (2.0 * mass * radius * radius / 5.0)


def inertia_capsule(mass: float, half_height: float, radius: float) -> np.ndarray:
    """Inertia of a y-aligned capsule about its centre."""
    vc = 2.0 * radius * radius * math.pi * half_height
    vs = 4.0 * radius ** 3 * math.pi / 3.0
    v = vc + vs
    mc = vc * mass / v
    ms = vs * mass / v
    ixx = (mc * (half_height * half_height / 3.0 + radius * radius / 4.0)
           + ms * (half_height * half_height + 3.0 * half_height * radius / 4.0
                   + 2.0 * radius * radius / 5.0))
    iyy = mc * radius * radius / 2.0 + ms * 2.0 * radius * radius / 5.0
    return np.diag([ixx, iyy, ixx])


def inertia_box(mass: float, half_extents) -> np.ndarray:
    m = mass / 12.0
    x, y, z = np.asarray(half_extents, dtype=float).reshape(3) ** 2
    return np.diag([m * (y + z), m * (x + z), m * (x + y)])


def inertia_tetrahedron(mass: float, vertices) -> np.ndarray:
    """Inertia of a solid tetrahedron about the origin."""
    v = np.asarray(vertices, dtype=float).reshape(4, 3)
    total = v.sum(axis=0)
    d = (total * total + (v * v).sum(axis=0)) / 2.0
    a = (d[1] + d[2]) / 10.0
    b = (d[0] + d[2]) / 10.0
    c = (d[0] + d[1]) / 10.0

    def prim(i: int, j: int) -> float:
        return (total[i] * total[j] + float(v[:, i] @ v[:, j])) / 20.0

    a_prim, b_prim, c_prim = prim(1, 2), prim(0, 2), prim(0, 1)
    return mass * np.array([
        [a, -b_prim, -c_prim],
        [-b_prim, b, -a_prim],
        [-c_prim, -a_prim, c],
    ])


def _sphere_volume(radius: float) -> float:
    return 4.0 * math.pi * radius ** 3 / 3.0


def _simple_volume(geometry) -> float:
    if geometry.type is GeometryType.SPHERE:
        return _sphere_volume(geometry.radius)
    if geometry.type is GeometryType.CAPSULE:
        r = geometry.radius
        return _sphere_volume(r) + r * r * math.pi * geometry.half_height * 2.0
    return float(np.prod(geometry.half_extents))


def _convex_tetrahedra(geometry) -> Iterator[Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, float]]:
    """Fan the mesh into tetrahedra around its vertex average."""
    mesh, scale = geometry.mesh, geometry.scale
    center = sum(scale * vertex for vertex in mesh.vertices) / len(mesh.vertices)
    for face in mesh.faces:
        v0 = scale * mesh.vertices[face.indices[0]]
        for i1, i2 in zip(face.indices[1:-1], face.indices[2:]):
            v1 = scale * mesh.vertices[i1]
            v2 = scale * mesh.vertices[i2]
            volume = abs(float(np.dot(np.cross(v0 - center, v1 - center), v2 - center))) / 6.0
            yield center, v0, v1, v2, volume


_SIMPLE = (GeometryType.SPHERE, GeometryType.CAPSULE, GeometryType.BOX)


def _parallel_axis(m: float, r: np.ndarray) -> np.ndarray:
    return m * (np.eye(3) * float(r @ r) - np.outer(r, r))


def com_and_inv_inertia(colliders: Iterable[Collider], mass: float) -> Tuple[np.ndarray, np.ndarray]:
    """Centre of mass and inverse inertia tensor of the non-trigger colliders,
    with mass spread by volume."""
    solids = [c for c in colliders if not c.is_trigger]

    com = np.zeros(3)
    total_volume = 0.0
    for col in solids:
        geom = col.geometry
        if geom.type in _SIMPLE:
            volume = _simple_volume(geom)
            com += col.position * volume
            total_volume += volume
        elif geom.type is GeometryType.CONVEX_MESH:
            for center, v0, v1, v2, volume in _convex_tetrahedra(geom):
                centroid = (center + v0 + v1 + v2) / 4.0
                com += (col.position + centroid) * volume
                total_volume += volume
    if total_volume == 0.0:
        raise ValueError("colliders enclose no volume")
    com /= total_volume

    inertia = np.zeros((3, 3))
    for col in solids:
        geom = col.geometry
        if geom.type is GeometryType.SPHERE:
            m = mass * _simple_volume(geom) / total_volume
            inertia += inertia_sphere(m, geom.radius) + _parallel_axis(m, com - col.position)
        elif geom.type in (GeometryType.CAPSULE, GeometryType.BOX):
            m = mass * _simple_volume(geom) / total_volume
            if geom.type is GeometryType.CAPSULE:
                local = inertia_capsule(m, geom.half_height, geom.radius)
            else:
                local = inertia_box(m, geom.half_extents)
            rot = quat_to_matrix(col.orientation)
            inertia += rot @ local @ rot.T + _parallel_axis(m, com - col.position)
        elif geom.type is GeometryType.CONVEX_MESH:
            d = col.position - com
            for center, v0, v1, v2, volume in _convex_tetrahedra(geom):
                m = mass * volume / total_volume
                inertia += inertia_tetrahedron(m, [center + d, v0 + d, v1 + d, v2 + d])

    return com, np.linalg.inv(inertia)


def set_mass_props(dynamic: RigidBodyDynamic, colliders: Iterable[Collider], mass: float) -> None:
    """Fill in inverse mass, centre of mass and inverse inertia of ``dynamic``."""
    dynamic.inv_mass = 1.0 / mass
    com, inv_inertia = com_and_inv_inertia(colliders, mass)
    dynamic.com = com
    dynamic.inv_inertia_tensor = inv_inertia