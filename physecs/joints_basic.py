"""Fixed, spherical and universal joints."""
from __future__ import annotations

from typing import List

import numpy as np

from physecs.joint import ConstraintFlag, ConstraintRow, Joint, JointWorldSpaceData


def _position_row(world: JointWorldSpaceData) -> ConstraintRow:
    d = world.p1 - world.p0
    return ConstraintRow(n=d, r0xn=np.cross(world.r0, d), r1xn=np.cross(world.r1, d),
                         c=float(d @ d))


def _angular_row(a: np.ndarray, b: np.ndarray) -> ConstraintRow:
    """Keeps axis ``a`` of body 0 perpendicular to axis ``b`` of body 1."""
    axis = np.cross(b, a)
    return ConstraintRow(r0xn=axis, r1xn=axis.copy(), c=float(a @ b),
                         flags=ConstraintFlag.ANGULAR)


class FixedJoint(Joint):
    """Locks both the relative position and orientation of the anchors."""

    constraint_count = 4

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        u0, u1 = world.u0, world.u1
        return [
            _position_row(world),
            _angular_row(u0[:, 0], u1[:, 1]),
            _angular_row(u0[:, 0], u1[:, 2]),
            _angular_row(u0[:, 1], u1[:, 2]),
        ]


class SphericalJoint(Joint):
    """Keeps the anchor points together and leaves rotation free."""

    constraint_count = 1

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        return [_position_row(world)]


class UniversalJoint(Joint):
    """Keeps the anchor points together and ties the two z axes."""

    constraint_count = 2

    def make_constraints(self, world: JointWorldSpaceData) -> List[ConstraintRow]:
        return [_position_row(world), _angular_row(world.u0[:, 2], world.u1[:, 2])]