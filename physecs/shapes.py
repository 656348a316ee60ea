"""Geometry, collider and body descriptions plus quaternion helpers.

Vectors are numpy arrays of three floats; quaternions are arrays ``(w, x, y, z)``.
Matrices map column vectors, so column ``i`` of a rotation matrix is the
rotated ``i``-th basis axis.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Iterator, List, Optional, Sequence

import numpy as np


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _quat(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(4)


def _identity_quat() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0])


def quat_multiply(a, b) -> np.ndarray:
    """Hamilton product ``a * b``."""
    aw, ax, ay, az = _quat(a)
    bw, bx, by, bz = _quat(b)
    return np.array([
        aw * bw - ax * bx - ay * by - az * bz,
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
    ])


def quat_inverse(q) -> np.ndarray:
    """Multiplicative inverse of a quaternion."""
    q = _quat(q)
    norm2 = float(q @ q)
    if norm2 == 0.0:
        raise ZeroDivisionError("the zero quaternion has no inverse")
    return np.array([q[0], -q[1], -q[2], -q[3]]) / norm2


def quat_to_matrix(q) -> np.ndarray:
    """Rotation matrix of a unit quaternion."""
    w, x, y, z = _quat(q)
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array([
        [1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)],
        [2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)],
        [2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)],
    ])


def quat_rotate(q, v) -> np.ndarray:
    """Rotate vector ``v`` by unit quaternion ``q``."""
    return quat_to_matrix(q) @ _vec3(v)


class GeometryType(enum.Enum):
    SPHERE = 0
    CAPSULE = 1
    BOX = 2
    CONVEX_MESH = 3
    TRIANGLE_MESH = 4


@dataclass
class Bounds:
    """Axis-aligned bounding box."""

    min: np.ndarray = field(default_factory=lambda: np.zeros(3))
    max: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.min = _vec3(self.min)
        self.max = _vec3(self.max)

    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    def half_extents(self) -> np.ndarray:
        return (self.max - self.min) / 2.0

    def expand(self, expansion) -> None:
        """Grow the box towards the direction of ``expansion``, per axis."""
        e = _vec3(expansion)
        self.min = np.where(e < 0, self.min + e, self.min)
        self.max = np.where(e > 0, self.max + e, self.max)

    def add_margin(self, margin) -> None:
        """Grow the box by ``margin`` on every side."""
        m = _vec3(margin)
        self.min = self.min - m
        self.max = self.max + m

    def area(self) -> float:
        """Surface area of the box."""
        dx, dy, dz = self.max - self.min
        return float(2.0 * (dx * dy + dy * dz + dz * dx))

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds(np.minimum(self.min, other.min), np.maximum(self.max, other.max))

    def intersects(self, other: "Bounds") -> bool:
        return bool(np.all(self.min <= other.max) and np.all(self.max >= other.min))


@dataclass
class ConvexMeshFace:
    indices: List[int]
    normal: np.ndarray
    centroid: np.ndarray

    def __post_init__(self) -> None:
        self.indices = [int(i) for i in self.indices]
        self.normal = _vec3(self.normal)
        self.centroid = _vec3(self.centroid)


class ConvexMeshVertices:
    """Vertex list padded to a multiple of ``lanes`` by repeating the last vertex.

    ``len`` reports the real vertex count; iteration walks the padded buffer.
    """

    def __init__(self, vertices, lanes: int = 4) -> None:
        if lanes < 1:
            raise ValueError("lanes must be positive")
        points = np.array(vertices, dtype=float).reshape(-1, 3)
        if len(points) == 0:
            raise ValueError("a convex mesh needs at least one vertex")
        self.lanes = lanes
        self._count = len(points)
        padded = -(-self._count // lanes) * lanes
        padding = np.repeat(points[-1:], padded - self._count, axis=0)
        self.buffer = np.vstack([points, padding])
        self.buffer.flags.writeable = False

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        return self.buffer[index]

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.buffer)


class ConvexMesh:
    """Convex polyhedron given by its vertices and polygonal faces."""

    def __init__(self, vertices, faces: Sequence[ConvexMeshFace]) -> None:
        self.vertices = ConvexMeshVertices(vertices, 4)
        self.faces = list(faces)


@dataclass
class SphereGeometry:
    radius: float
    type: ClassVar[GeometryType] = GeometryType.SPHERE


@dataclass
class CapsuleGeometry:
    """Capsule aligned with the local y axis."""

    half_height: float
    radius: float
    type: ClassVar[GeometryType] = GeometryType.CAPSULE


@dataclass
class BoxGeometry:
    half_extents: np.ndarray
    type: ClassVar[GeometryType] = GeometryType.BOX

    def __post_init__(self) -> None:
        self.half_extents = _vec3(self.half_extents)


@dataclass
class ConvexMeshGeometry:
    mesh: ConvexMesh
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    type: ClassVar[GeometryType] = GeometryType.CONVEX_MESH

    def __post_init__(self) -> None:
        self.scale = _vec3(self.scale)


@dataclass
class TriangleMeshGeometry:
    mesh: object
    type: ClassVar[GeometryType] = GeometryType.TRIANGLE_MESH


@dataclass
class Material:
    friction: float = 0.0
    restitution: float = 0.0
    damping: float = 0.0


@dataclass
class Collider:
    """A shape attached to a body at a local position and orientation."""

    geometry: object
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=_identity_quat)
    material: Material = field(default_factory=Material)
    is_trigger: bool = False
    enable_simulation: bool = True
    data: int = 0

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)
        self.orientation = _quat(self.orientation)


@dataclass
class RigidBodyDynamic:
    """Dynamic state of a rigid body."""

    inv_mass: float = 1.0
    com: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    inv_inertia_tensor: np.ndarray = field(default_factory=lambda: np.eye(3))
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    is_kinematic: bool = False
    inv_inertia_tensor_world: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        self.com = _vec3(self.com)
        self.velocity = _vec3(self.velocity)
        self.angular_velocity = _vec3(self.angular_velocity)
        self.inv_inertia_tensor = np.array(self.inv_inertia_tensor, dtype=float).reshape(3, 3)
        self.inv_inertia_tensor_world = np.array(self.inv_inertia_tensor_world, dtype=float).reshape(3, 3)


@dataclass
class ContactPoint:
    position0: np.ndarray
    position1: np.ndarray

    def __post_init__(self) -> None:
        self.position0 = _vec3(self.position0)
        self.position1 = _vec3(self.position1)


@dataclass
class ContactManifold:
    """Up to four contact points sharing one normal."""

    normal: np.ndarray
    points: List[ContactPoint] = field(default_factory=list)
    triangle_index: int = -1

    MAX_POINTS: ClassVar[int] = 4

    def __post_init__(self) -> None:
        self.normal = _vec3(self.normal)
        self.points = list(self.points)
        if len(self.points) > self.MAX_POINTS:
            raise ValueError(f"a manifold holds at most {self.MAX_POINTS} points")

    @property
    def num_points(self) -> int:
        return len(self.points)

    def first_point(self) -> Optional[ContactPoint]:
        return self.points[0] if self.points else None