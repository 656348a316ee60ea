"""Gear, prismatic, revolute and servo joints."""
from __future__ import annotations

import math
from typing import Hashable, List, Optional

import numpy as np

from physecs.joint import (
    ConstraintFlag,
    ConstraintRow,
    Joint,
    JointSolverData,
    JointWorldSpaceData,
    Transform,
)
from physecs.shapes import RigidBodyDynamic, quat_multiply, quat_rotate


def angle_diff(angle0: float, angle1: float) -> float:
    """Difference ``angle1 - angle0`` wrapped into ``[-pi, pi)``."""
    diff = math.fmod(angle1 - angle0 + math.pi, 2.0 * math.pi) - math.pi
    return diff + 2.0 * math.pi if diff < -math.pi else diff


def _normalize(v: np.ndarray) -> np.ndarray:
    with np.errstate(invalid="ignore", divide="ignore"):
        return v / np.linalg.norm(v)


def _position_row(world: JointWorldSpaceData) -> ConstraintRow:
    d = world.p1 - world.p0
    return ConstraintRow(n=d, r0xn=np.cross(world.r0, d), r1xn=np.cross(world.r1, d),
                         c=float(d @ d))


def _angular_row(a: np.ndarray, b: np.ndarray) -> ConstraintRow:
    """Keeps axis ``a`` of body 0 perpendicular to axis ``b`` of body 1."""
    axis = np.cross(b, a)
    return ConstraintRow(r0xn=axis, r1xn=axis.copy(), c=float(a @ b),
                         flags=ConstraintFlag.ANGULAR)


def _linear_row(world: JointWorldSpaceData, axis: np.ndarray, c: float) -> ConstraintRow:
    return ConstraintRow(n=axis.copy(), r0xn=np.cross(world.r0, axis),
                         r1xn=np.cross(world.r1, axis), c=c)


def _oriented_angle(x: np.ndarray, y: np.ndarray, ref: np.ndarray) -> float:
    """Angle from ``x`` to ``y``, negative when turning clockwise about ``ref``."""
    angle = math.acos(min(max(float(x @ y), -1.0), 1.0))
    return -angle if float(ref @ np.cross(x, y)) < 0.0 else angle


class GearJoint(Joint):
    """Couples rotation about the x axes of the two anchors by ``gear_ratio``.

    Angles are tracked across calls, so each call to ``make_constraints``
    advances the joint's accumulated rotation.
    """

    constraint_count = 1

    def __init__(self, entity0: Hashable, anchor0_pos, anchor0_or,
                 entity1: Hashable, anchor1_pos, anchor1_or) -> None:
        super().__init__(entity0, anchor0_pos, anchor0_or, entity1, anchor1_pos, anchor1_or)
        self.gear_ratio = 1.0
        self._persistent_angle0 = 0.0
        self._persistent_angle1 = 0.0
        self._virtual_angle0 = 0.0
        self._virtual_angle1 = 0.0
        self._initialized = False

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        p0, p1, u0, u1 = world.p0, world.p1, world.u0, world.u1
        axis0 = u0[:, 0]
        axis1 = u1[:, 0]

        p1_proj = p1 + float((p0 - p1) @ axis0) * axis0
        dir0 = _normalize(p0 - p1_proj)
        n0 = np.cross(axis0, dir0)
        m0 = np.column_stack([axis0, -n0, dir0])
        u0t = m0.T @ u0
        angle0 = math.atan2(u0t[2, 1], u0t[2, 2])

        p0_proj = p0 + float((p1 - p0) @ axis1) * axis1
        dir1 = _normalize(p0_proj - p1)
        n1 = np.cross(axis1, dir1)
        m1 = np.column_stack([axis1, -n1, dir1])
        u1t = u1.T @ m1
        angle1 = math.atan2(u1t[2, 1], u1t[2, 2])

        if not self._initialized:
            self._persistent_angle0 = angle0
            self._persistent_angle1 = angle1
            self._initialized = True

        self._virtual_angle0 += angle_diff(angle0, self._persistent_angle0)
        self._virtual_angle1 += angle_diff(angle1, self._persistent_angle1)
        self._persistent_angle0 = angle0
        self._persistent_angle1 = angle1

        return [ConstraintRow(
            r0xn=axis0 * self.gear_ratio,
            r1xn=-axis1,
            c=self._virtual_angle0 * self.gear_ratio - self._virtual_angle1,
            flags=ConstraintFlag.ANGULAR,
        )]


class PrismaticJoint(Joint):
    """Allows sliding along the anchor x axis only, with limits and an optional drive."""

    def __init__(self, entity0: Hashable, anchor0_pos, anchor0_or,
                 entity1: Hashable, anchor1_pos, anchor1_or) -> None:
        super().__init__(entity0, anchor0_pos, anchor0_or, entity1, anchor1_pos, anchor1_or)
        self.upper_limit = 1.0
        self.lower_limit = 0.0
        self.drive_enabled = False
        self.target_position = 0.0
        self.drive_stiffness = 5.0
        self.drive_damping = 1.0
        self._make_upper_limit = False
        self._make_lower_limit = False

    def num_constraints(self) -> int:
        limited = self._make_upper_limit or self._make_lower_limit
        return 5 + int(limited) + int(self.drive_enabled)

    def solver_data(self, transform0: Transform, transform1: Transform,
                    dynamic0: Optional[RigidBodyDynamic] = None,
                    dynamic1: Optional[RigidBodyDynamic] = None) -> JointSolverData:
        """Choose which limit is active for this step, then gather solver data."""
        p0 = transform0.position + quat_rotate(transform0.orientation, self.anchor0_pos)
        p1 = transform1.position + quat_rotate(transform1.orientation, self.anchor1_pos)
        u00 = quat_rotate(quat_multiply(transform0.orientation, self.anchor0_or),
                          [1.0, 0.0, 0.0])
        dx = float((p1 - p0) @ u00)

        self._make_upper_limit = dx > self.upper_limit
        self._make_lower_limit = (not self._make_upper_limit) and dx < self.lower_limit
        return super().solver_data(transform0, transform1, dynamic0, dynamic1)

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        u0, u1 = world.u0, world.u1
        d = world.p1 - world.p0
        x_axis, y_axis, z_axis = u0[:, 0], u0[:, 1], u0[:, 2]

        rows = [
            _linear_row(world, y_axis, float(d @ y_axis)),
            _linear_row(world, z_axis, float(d @ z_axis)),
            _angular_row(u0[:, 0], u1[:, 1]),
            _angular_row(u0[:, 0], u1[:, 2]),
            _angular_row(u0[:, 1], u1[:, 2]),
        ]

        dx = float(d @ x_axis)
        if self._make_upper_limit:
            row = _linear_row(world, x_axis, dx - self.upper_limit)
            row.min_impulse = 0.0
            row.flags |= ConstraintFlag.LIMITED
            rows.append(row)
        elif self._make_lower_limit:
            row = _linear_row(world, x_axis, dx - self.lower_limit)
            row.max_impulse = 0.0
            row.flags |= ConstraintFlag.LIMITED
            rows.append(row)

        if self.drive_enabled:
            row = _linear_row(world, x_axis, dx - self.target_position)
            row.flags |= ConstraintFlag.SOFT
            row.frequency = self.drive_stiffness
            row.damping_ratio = self.drive_damping
            rows.append(row)

        return rows


class RevoluteJoint(Joint):
    """Hinge about the anchor x axis, with an optional velocity drive."""

    def __init__(self, entity0: Hashable, anchor0_pos, anchor0_or,
                 entity1: Hashable, anchor1_pos, anchor1_or) -> None:
        super().__init__(entity0, anchor0_pos, anchor0_or, entity1, anchor1_pos, anchor1_or)
        self.drive_enabled = False
        self.drive_velocity = 0.0

    def num_constraints(self) -> int:
        return 4 if self.drive_enabled else 3

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        u0, u1 = world.u0, world.u1
        rows = [
            _position_row(world),
            _angular_row(u0[:, 0], u1[:, 1]),
            _angular_row(u0[:, 0], u1[:, 2]),
        ]
        if self.drive_enabled:
            rows.append(ConstraintRow(r0xn=u0[:, 0].copy(), r1xn=u0[:, 0].copy(),
                                      target_velocity=self.drive_velocity,
                                      flags=ConstraintFlag.ANGULAR))
        return rows


class ServoJoint(Joint):
    """Hinge about the anchor x axis driven softly towards ``target_angle``."""

    constraint_count = 4

    def __init__(self, entity0: Hashable, anchor0_pos, anchor0_or,
                 entity1: Hashable, anchor1_pos, anchor1_or) -> None:
        super().__init__(entity0, anchor0_pos, anchor0_or, entity1, anchor1_pos, anchor1_or)
        self.target_angle = 0.0
        self.drive_stiffness = 30.0
        self.drive_damping = 1.0

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        u0, u1 = world.u0, world.u1
        angle = _oriented_angle(u0[:, 2], u1[:, 2], u0[:, 0])
        return [
            _position_row(world),
            _angular_row(u0[:, 0], u1[:, 1]),
            _angular_row(u0[:, 0], u1[:, 2]),
            ConstraintRow(r0xn=u0[:, 0].copy(), r1xn=u0[:, 0].copy(),
                          c=angle - self.target_angle,
                          frequency=self.drive_stiffness,
                          damping_ratio=self.drive_damping,
                          flags=ConstraintFlag.ANGULAR | ConstraintFlag.SOFT),
        ]