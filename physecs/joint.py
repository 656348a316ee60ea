"""Joints between two bodies and the one-dimensional constraint rows they produce."""
from __future__ import annotations

import abc
import enum
from dataclasses import dataclass, field
from typing import Hashable, List, Optional

import numpy as np

from physecs.shapes import RigidBodyDynamic, quat_to_matrix

_FLT_MAX = float(np.finfo(np.float32).max)


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _quat(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(4)


@dataclass
class Transform:
    """Position and orientation quaternion ``(w, x, y, z)`` of a body."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)
        self.orientation = _quat(self.orientation)


class ConstraintFlag(enum.IntFlag):
    NONE = 0
    ANGULAR = 1
    LIMITED = 2
    SOFT = 4


@dataclass
class ConstraintRow:
    """One scalar constraint: a direction, its angular terms and the error ``c``.

    Angular rows leave ``n`` at zero. ``min_impulse``/``max_impulse`` bound the
    accumulated impulse. Soft rows use ``frequency`` and ``damping_ratio``.
    """

    n: np.ndarray = field(default_factory=lambda: np.zeros(3))
    r0xn: np.ndarray = field(default_factory=lambda: np.zeros(3))
    r1xn: np.ndarray = field(default_factory=lambda: np.zeros(3))
    c: float = 0.0
    target_velocity: float = 0.0
    min_impulse: float = -_FLT_MAX
    max_impulse: float = _FLT_MAX
    flags: ConstraintFlag = ConstraintFlag.NONE
    frequency: float = 0.0
    damping_ratio: float = 0.0


@dataclass
class JointWorldSpaceData:
    """Anchor frames in world space.

    ``p0``/``p1`` are the anchor positions. ``r0``/``r1`` are the anchors
    relative to each centre of mass. ``u0``/``u1`` hold the anchor axes as
    columns.
    """

    p0: np.ndarray
    p1: np.ndarray
    r0: np.ndarray
    r1: np.ndarray
    u0: np.ndarray
    u1: np.ndarray


@dataclass
class JointSolverData:
    """Everything the solver needs from a joint for one step."""

    transform0: Transform
    transform1: Transform
    dynamic0: Optional[RigidBodyDynamic]
    dynamic1: Optional[RigidBodyDynamic]
    anchor0_pos: np.ndarray
    anchor0_or: np.ndarray
    anchor1_pos: np.ndarray
    anchor1_or: np.ndarray
    num_constraints: int
    joint: "Joint"

    def world_space_data(self) -> JointWorldSpaceData:
        rot0 = quat_to_matrix(self.transform0.orientation)
        rot1 = quat_to_matrix(self.transform1.orientation)
        com0 = _body_com(self.dynamic0)
        com1 = _body_com(self.dynamic1)
        return JointWorldSpaceData(
            p0=self.transform0.position + rot0 @ self.anchor0_pos,
            p1=self.transform1.position + rot1 @ self.anchor1_pos,
            r0=rot0 @ (self.anchor0_pos - com0),
            r1=rot1 @ (self.anchor1_pos - com1),
            u0=rot0 @ quat_to_matrix(self.anchor0_or),
            u1=rot1 @ quat_to_matrix(self.anchor1_or),
        )

    def make_constraints(self) -> List[ConstraintRow]:
        """Constraint rows for the current body placement."""
        return self.joint.make_constraints(self.world_space_data())


def _body_com(dynamic: Optional[RigidBodyDynamic]) -> np.ndarray:
    if dynamic is not None and not dynamic.is_kinematic:
        return dynamic.com
    return np.zeros(3)


class Joint(abc.ABC):
    """Connects anchor frames on two entities."""

    constraint_count: int = 0

    def __init__(self, entity0: Hashable, anchor0_pos, anchor0_or,
                 entity1: Hashable, anchor1_pos, anchor1_or) -> None:
        self.entity0 = entity0
        self.entity1 = entity1
        self.anchor0_pos = _vec3(anchor0_pos)
        self.anchor0_or = _quat(anchor0_or)
        self.anchor1_pos = _vec3(anchor1_pos)
        self.anchor1_or = _quat(anchor1_or)

    def num_constraints(self) -> int:
        return self.constraint_count

    def solver_data(self, transform0: Transform, transform1: Transform,
                    dynamic0: Optional[RigidBodyDynamic] = None,
                    dynamic1: Optional[RigidBodyDynamic] = None) -> JointSolverData:
        return JointSolverData(transform0, transform1, dynamic0, dynamic1,
                               self.anchor0_pos, self.anchor0_or,
                               self.anchor1_pos, self.anchor1_or,
                               self.num_constraints(), self)

    @abc.abstractmethod
    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        """Constraint rows for the given anchor frames."""