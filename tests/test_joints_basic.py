import numpy as np
import pytest

from physecs.joint import ConstraintFlag, Transform
from physecs.joints_basic import FixedJoint, SphericalJoint, UniversalJoint

IDENTITY = (1.0, 0.0, 0.0, 0.0)
W = np.sqrt(0.5)
ROT_Z = (W, 0.0, 0.0, W)
ROT_X = (W, W, 0.0, 0.0)
ORIGIN = (0, 0, 0)


def test_fixed_aligned_has_no_error():
    joint = FixedJoint("a", ORIGIN, IDENTITY, "b", ORIGIN, IDENTITY)
    data = joint.solver_data(Transform(), Transform())
    rows = data.make_constraints()
    assert data.num_constraints == FixedJoint.constraint_count
    assert len(rows) == FixedJoint.constraint_count
    assert [row.c for row in rows] == pytest.approx([0.0] * len(rows))


def test_fixed_flags():
    joint = FixedJoint("a", ORIGIN, IDENTITY, "b", ORIGIN, IDENTITY)
    rows = joint.solver_data(Transform(), Transform()).make_constraints()
    assert not rows[0].flags & ConstraintFlag.ANGULAR
    assert all(row.flags & ConstraintFlag.ANGULAR for row in rows[1:])
    for row in rows[1:]:
        assert row.n == pytest.approx([0, 0, 0])
        assert row.r0xn == pytest.approx(row.r1xn)


def test_fixed_position_error_is_squared_offset():
    offset = np.array([0.3, -0.2, 0.6])
    joint = FixedJoint("a", ORIGIN, IDENTITY, "b", ORIGIN, IDENTITY)
    rows = joint.solver_data(Transform(), Transform(offset)).make_constraints()
    assert rows[0].n == pytest.approx(offset)
    assert rows[0].c == pytest.approx(float(offset @ offset))


def test_position_row_cross_terms_are_perpendicular():
    offset = np.array([0.5, 0.5, 0.0])
    joint = SphericalJoint("a", (1, 2, 3), IDENTITY, "b", ORIGIN, IDENTITY)
    data = joint.solver_data(Transform(), Transform(offset))
    world = data.world_space_data()
    row = data.make_constraints()[0]
    d = world.p1 - world.p0
    assert row.r0xn @ d == pytest.approx(0.0)
    assert row.r0xn @ world.r0 == pytest.approx(0.0)
    assert row.r1xn @ world.r1 == pytest.approx(0.0)


def test_fixed_rotation_about_z_shows_angular_error():
    joint = FixedJoint("a", ORIGIN, IDENTITY, "b", ORIGIN, IDENTITY)
    rows = joint.solver_data(Transform(), Transform(ORIGIN, ROT_Z)).make_constraints()
    assert rows[1].c == pytest.approx(-1.0)
    assert rows[2].c == pytest.approx(0.0)
    assert rows[3].c == pytest.approx(0.0)


def test_spherical_single_row():
    joint = SphericalJoint("a", ORIGIN, IDENTITY, "b", ORIGIN, IDENTITY)
    rows = joint.solver_data(Transform(), Transform(ORIGIN, ROT_Z)).make_constraints()
    assert len(rows) == SphericalJoint.constraint_count
    assert rows[0].c == pytest.approx(0.0)
    assert rows[0].flags == ConstraintFlag.NONE


def test_universal_rows():
    joint = UniversalJoint("a", ORIGIN, IDENTITY, "b", ORIGIN, IDENTITY)
    aligned = joint.solver_data(Transform(), Transform()).make_constraints()
    assert len(aligned) == UniversalJoint.constraint_count
    assert aligned[1].c == pytest.approx(1.0)
    assert aligned[1].flags & ConstraintFlag.ANGULAR
    turned = joint.solver_data(Transform(), Transform(ORIGIN, ROT_X)).make_constraints()
    assert turned[1].c == pytest.approx(0.0)
    assert np.linalg.norm(turned[1].r0xn) == pytest.approx(1.0)