"""Support mappings and the GJK intersection test.

A support mapping returns the point of a convex shape farthest along a given
direction. GJK works on the Minkowski difference ``shape0 - shape1``, which
holds the origin exactly when the shapes overlap.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from physecs.shapes import ConvexMeshVertices

SupportFunction = Callable[[np.ndarray], np.ndarray]

_MAX_ITERATIONS = 100
_LANES = 4
_UP = np.array([0.0, 1.0, 0.0])
_FORWARD = np.array([0.0, 0.0, 1.0])


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _normalize(v: np.ndarray) -> np.ndarray:
    with np.errstate(invalid="ignore", divide="ignore"):
        return v / np.linalg.norm(v)


def _is_zero(v: np.ndarray) -> bool:
    return float(v @ v) < 1e-6


@dataclass
class SphereSupport:
    pos: np.ndarray
    radius: float

    def __post_init__(self) -> None:
        self.pos = _vec3(self.pos)
        self.radius = float(self.radius)

    def __call__(self, direction) -> np.ndarray:
        return self.pos + _vec3(direction) * self.radius


@dataclass
class CapsuleSupport:
    """Capsule around the segment ``pos ± axis * half_height``."""

    pos: np.ndarray
    axis: np.ndarray
    half_height: float
    radius: float

    def __post_init__(self) -> None:
        self.pos = _vec3(self.pos)
        self.axis = _vec3(self.axis)
        self.half_height = float(self.half_height)
        self.radius = float(self.radius)

    def __call__(self, direction) -> np.ndarray:
        d = _vec3(direction)
        end = self.axis * np.sign(d @ self.axis) * self.half_height
        return self.pos + end + d * self.radius


@dataclass
class BoxSupport:
    pos: np.ndarray
    local_to_world: np.ndarray
    half_extents: np.ndarray

    def __post_init__(self) -> None:
        self.pos = _vec3(self.pos)
        self.local_to_world = np.array(self.local_to_world, dtype=float).reshape(3, 3)
        self.half_extents = _vec3(self.half_extents)

    def __call__(self, direction) -> np.ndarray:
        d = _vec3(direction)
        axes = self.local_to_world
        signs = np.sign(axes.T @ d)
        return self.pos + axes @ (signs * self.half_extents)


@dataclass
class ConvexMeshSupport:
    pos: np.ndarray
    local_to_world: np.ndarray
    vertices: ConvexMeshVertices
    scale: np.ndarray

    def __post_init__(self) -> None:
        self.pos = _vec3(self.pos)
        self.local_to_world = np.array(self.local_to_world, dtype=float).reshape(3, 3)
        if not isinstance(self.vertices, ConvexMeshVertices):
            self.vertices = ConvexMeshVertices(self.vertices, _LANES)
        self.scale = _vec3(self.scale)

    def __call__(self, direction) -> np.ndarray:
        d = self.scale * (self.local_to_world.T @ _vec3(direction))
        buffer = self.vertices.buffer
        used = -(-len(self.vertices) // _LANES) * _LANES
        dots = buffer[:used] @ d
        lanes = dots.reshape(-1, _LANES)
        # Earliest maximum within each lane, then the first lane holding the maximum.
        rows = lanes.argmax(axis=0)
        lane_values = lanes[rows, np.arange(_LANES)]
        lane = int(lane_values.argmax())
        index = int(rows[lane]) * _LANES + lane
        return self.pos + self.local_to_world @ (self.scale * buffer[index])


@dataclass
class TriangleSupport:
    a: np.ndarray
    b: np.ndarray
    c: np.ndarray

    def __post_init__(self) -> None:
        self.a = _vec3(self.a)
        self.b = _vec3(self.b)
        self.c = _vec3(self.c)

    def __call__(self, direction) -> np.ndarray:
        d = _vec3(direction)
        da, db, dc = d @ self.a, d @ self.b, d @ self.c
        if da > db:
            return self.a.copy() if da > dc else self.c.copy()
        return self.b.copy() if db > dc else self.c.copy()


@dataclass
class GjkVertex:
    """A point of the Minkowski difference and the support points it came from."""

    pos: np.ndarray
    sp0: np.ndarray
    sp1: np.ndarray


def minkowski_point(support0: SupportFunction, support1: SupportFunction, direction) -> GjkVertex:
    """Support point of ``shape0 - shape1`` along ``direction``."""
    d = _vec3(direction)
    sp0 = _vec3(support0(d))
    sp1 = _vec3(support1(-d))
    return GjkVertex(sp0 - sp1, sp0, sp1)


def _check_direction(support0, support1, direction) -> Optional[GjkVertex]:
    d = _normalize(direction)
    v = minkowski_point(support0, support1, d)
    return v if v.pos @ d >= 0 else None


def _check_face(v0, v1, v2, opposite) -> Tuple[bool, np.ndarray]:
    n = np.cross(v1 - v0, v2 - v0)
    n = np.sign((v0 - opposite) @ n) * n
    return bool(n @ -v0 > 0.00001), n


def _simplex_contains_origin(s: List[GjkVertex]):
    for face_index, (i, j) in ((2, (0, 1)), (1, (2, 0)), (0, (1, 2))):
        outside, n = _check_face(s[3].pos, s[i].pos, s[j].pos, s[face_index].pos)
        if outside:
            return False, n, face_index
    return True, None, None


def _iterate(support0, support1, s: List[GjkVertex]) -> bool:
    for _ in range(_MAX_ITERATIONS):
        contains, direction, face_index = _simplex_contains_origin(s)
        if contains:
            return True
        v = _check_direction(support0, support1, direction)
        if v is None:
            return False
        s[face_index] = s[3]
        s[3] = v
    return False


def _sqr_dist_point_to_line(p, a, b) -> float:
    r = p - a
    d = b - a
    with np.errstate(invalid="ignore", divide="ignore"):
        q = a + (r @ d) / (d @ d) * d
    pq = p - q
    return float(pq @ pq)


def _dist_point_to_plane(p, o, n) -> float:
    return abs(float((p - o) @ n))


def _complete_from_plane(support0, support1, s, normal) -> None:
    s[3] = minkowski_point(support0, support1, normal)
    if _dist_point_to_plane(s[3].pos, s[0].pos, normal) < 0.0001:
        s[3] = minkowski_point(support0, support1, -normal)


def _complete_from_line(support0, support1, s) -> None:
    direction = np.cross(s[0].pos - s[1].pos, _UP)
    if _is_zero(direction):
        direction = np.cross(s[0].pos - s[1].pos, _FORWARD)
    s[2] = minkowski_point(support0, support1, _normalize(direction))
    if _sqr_dist_point_to_line(s[2].pos, s[0].pos, s[1].pos) < 0.00001:
        s[2] = minkowski_point(support0, support1, -direction)
    normal = _normalize(np.cross(s[1].pos - s[0].pos, s[2].pos - s[0].pos))
    _complete_from_plane(support0, support1, s, normal)


def gjk_intersect(support0: SupportFunction, support1: SupportFunction, start_dir) -> bool:
    """True when the two shapes overlap."""
    direction = _normalize(_vec3(start_dir))
    s: List[GjkVertex] = [minkowski_point(support0, support1, direction)]

    direction = -s[0].pos
    if _is_zero(direction):
        return True
    v = _check_direction(support0, support1, direction)
    if v is None:
        return False
    s.append(v)

    edge = s[0].pos - s[1].pos
    direction = np.cross(np.cross(edge, -s[1].pos), edge)
    if _is_zero(direction):
        return True
    v = _check_direction(support0, support1, direction)
    if v is None:
        return False
    s.append(v)

    direction = np.cross(s[1].pos - s[0].pos, s[2].pos - s[0].pos)
    direction = np.sign(-s[0].pos @ direction) * direction
    if _is_zero(direction):
        return True
    v = _check_direction(support0, support1, direction)
    if v is None:
        return False
    s.append(v)

    return _iterate(support0, support1, s)


def gjk_simplex(support0: SupportFunction, support1: SupportFunction, start_dir) -> Optional[List[GjkVertex]]:
    """Tetrahedron of the Minkowski difference enclosing the origin, or ``None``
    when the shapes are apart. Degenerate contacts still yield four vertices."""
    direction = _normalize(_vec3(start_dir))
    s: List[Optional[GjkVertex]] = [minkowski_point(support0, support1, direction), None, None, None]

    if _is_zero(s[0].pos):
        s[1] = minkowski_point(support0, support1, -direction)
        _complete_from_line(support0, support1, s)
        return s

    v = _check_direction(support0, support1, -s[0].pos)
    if v is None:
        return None
    s[1] = v

    edge = s[0].pos - s[1].pos
    direction = np.cross(np.cross(edge, -s[1].pos), edge)
    if _is_zero(direction):
        _complete_from_line(support0, support1, s)
        return s
    v = _check_direction(support0, support1, direction)
    if v is None:
        return None
    s[2] = v

    direction = np.cross(s[1].pos - s[0].pos, s[2].pos - s[0].pos)
    sign = np.sign(-s[0].pos @ direction)
    if not sign:
        _complete_from_plane(support0, support1, s, _normalize(direction))
        return s
    v = _check_direction(support0, support1, sign * direction)
    if v is None:
        return None
    s[3] = v

    return s if _iterate(support0, support1, s) else None