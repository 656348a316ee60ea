import math

import numpy as np
import pytest

from physecs.massutil import (
    com_and_inv_inertia,
    inertia_box,
    inertia_capsule,
    inertia_sphere,
    inertia_tetrahedron,
    set_mass_props,
)
from physecs.shapes import (
    BoxGeometry,
    CapsuleGeometry,
    Collider,
    ConvexMesh,
    ConvexMeshFace,
    ConvexMeshGeometry,
    RigidBodyDynamic,
    SphereGeometry,
)


def _is_diagonal(m):
    return np.allclose(m - np.diag(np.diag(m)), 0.0, atol=1e-9)


def _cube_mesh():
    corners = [(x, y, z) for x in (-1, 1) for y in (-1, 1) for z in (-1, 1)]
    quads = [
        ([0, 1, 3, 2], (-1, 0, 0)), ([4, 6, 7, 5], (1, 0, 0)),
        ([0, 4, 5, 1], (0, -1, 0)), ([2, 3, 7, 6], (0, 1, 0)),
        ([0, 2, 6, 4], (0, 0, -1)), ([1, 5, 7, 3], (0, 0, 1)),
    ]
    faces = [ConvexMeshFace(idx, n, n) for idx, n in quads]
    return ConvexMesh(corners, faces)


def test_sphere_inertia_is_isotropic_and_linear_in_mass():
    i1 = inertia_sphere(1.0, 0.7)
    i3 = inertia_sphere(3.0, 0.7)
    assert _is_diagonal(i1)
    assert np.allclose(np.diag(i1), i1[0, 0])
    assert np.allclose(i3, 3 * i1)


def test_capsule_without_cylinder_is_sphere():
    assert np.allclose(inertia_capsule(2.0, 0.0, 0.5), inertia_sphere(2.0, 0.5))


def test_long_capsule_turns_easier_about_its_axis():
    i = inertia_capsule(1.0, 2.0, 0.3)
    assert _is_diagonal(i)
    assert i[0, 0] == pytest.approx(i[2, 2])
    assert i[1, 1] < i[0, 0]


def test_box_inertia_orders_with_extent():
    i = inertia_box(5.0, (3, 1, 1))
    assert _is_diagonal(i)
    assert i[0, 0] < i[1, 1]
    assert i[1, 1] == pytest.approx(i[2, 2])
    assert np.allclose(inertia_box(10.0, (3, 1, 1)), 2 * i)


def test_tetrahedron_inertia_is_symmetric_and_order_independent():
    verts = [(0.1, 0, 0), (1, 0.2, 0), (0, 1, 0.3), (0.4, 0, 1)]
    i = inertia_tetrahedron(2.0, verts)
    assert np.allclose(i, i.T)
    assert np.allclose(inertia_tetrahedron(2.0, verts[::-1]), i)
    assert np.allclose(inertia_tetrahedron(4.0, verts), 2 * i)


def test_single_sphere_com_and_inertia():
    col = Collider(SphereGeometry(0.5), position=(1, 2, 3))
    com, inv = com_and_inv_inertia([col], 2.0)
    assert np.allclose(com, (1, 2, 3))
    assert np.allclose(inv, np.linalg.inv(inertia_sphere(2.0, 0.5)))


def test_two_spheres_balance_at_origin():
    cols = [Collider(SphereGeometry(0.5), position=(-2, 0, 0)),
            Collider(SphereGeometry(0.5), position=(2, 0, 0))]
    com, inv = com_and_inv_inertia(cols, 1.0)
    inertia = np.linalg.inv(inv)
    assert np.allclose(com, 0.0)
    assert inertia[1, 1] > inertia[0, 0]
    assert inertia[1, 1] == pytest.approx(inertia[2, 2])


def test_triggers_are_ignored():
    solid = Collider(BoxGeometry((1, 2, 3)), position=(0.5, 0, 0))
    trigger = Collider(SphereGeometry(5.0), position=(9, 9, 9), is_trigger=True)
    with_trigger = com_and_inv_inertia([solid, trigger], 3.0)
    without = com_and_inv_inertia([solid], 3.0)
    assert np.allclose(with_trigger[0], without[0])
    assert np.allclose(with_trigger[1], without[1])


def test_no_solid_collider_raises():
    trigger = Collider(SphereGeometry(1.0), is_trigger=True)
    with pytest.raises(ValueError):
        com_and_inv_inertia([trigger], 1.0)


def test_rotated_box_swaps_axes():
    half = math.sqrt(0.5)
    turned = Collider(BoxGeometry((1, 2, 3)), orientation=(half, 0, 0, half))
    plain = Collider(BoxGeometry((1, 2, 3)))
    i_turned = np.linalg.inv(com_and_inv_inertia([turned], 1.0)[1])
    i_plain = np.linalg.inv(com_and_inv_inertia([plain], 1.0)[1])
    assert i_turned[0, 0] == pytest.approx(i_plain[1, 1])
    assert i_turned[1, 1] == pytest.approx(i_plain[0, 0])
    assert i_turned[2, 2] == pytest.approx(i_plain[2, 2])


def test_capsule_collider_matches_its_local_inertia():
    col = Collider(CapsuleGeometry(1.0, 0.4))
    com, inv = com_and_inv_inertia([col], 2.0)
    assert np.allclose(com, 0.0)
    assert np.allclose(np.linalg.inv(inv), inertia_capsule(2.0, 1.0, 0.4))


def test_convex_cube_is_centred_and_isotropic():
    col = Collider(ConvexMeshGeometry(_cube_mesh()), position=(1, -2, 0.5))
    com, inv = com_and_inv_inertia([col], 6.0)
    inertia = np.linalg.inv(inv)
    assert np.allclose(com, (1, -2, 0.5))
    assert _is_diagonal(inertia)
    assert np.allclose(np.diag(inertia), inertia[0, 0])
    assert inertia[0, 0] > 0


def test_set_mass_props_fills_body():
    cols = [Collider(BoxGeometry((1, 1, 2)), position=(0, 1, 0))]
    body = RigidBodyDynamic()
    set_mass_props(body, cols, 4.0)
    com, inv = com_and_inv_inertia(cols, 4.0)
    assert body.inv_mass == pytest.approx(0.25)
    assert np.allclose(body.com, com)
    assert np.allclose(body.inv_inertia_tensor, inv)