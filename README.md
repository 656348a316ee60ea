# physecs

Building blocks for rigid-body physics in Python, on top of numpy.

Vectors are numpy arrays of three floats and quaternions are arrays
`(w, x, y, z)`. Rotation matrices map column vectors, so column `i` is the
rotated `i`-th axis.

## Modules

- `physecs.shapes`: geometry descriptions (`SphereGeometry`, `CapsuleGeometry`
  along local y, `BoxGeometry`, `ConvexMeshGeometry`, `TriangleMeshGeometry`),
  `ConvexMesh` with `ConvexMeshFace` and padded `ConvexMeshVertices`,
  axis-aligned `Bounds` (`center`, `half_extents`, `expand`, `add_margin`,
  `area`, `union`, `intersects`), `Collider`, `Material`, `RigidBodyDynamic`,
  `ContactPoint` and `ContactManifold` (at most four points), and the
  quaternion helpers `quat_multiply`, `quat_inverse`, `quat_rotate` and
  `quat_to_matrix`.
- `physecs.trimesh`: `TriangleMesh(vertices, indices)` builds a bounding
  volume hierarchy with a six-bucket surface-area split; `overlap_bvh(bounds)`
  returns the indices of triangles in leaves whose boxes meet `bounds`.
  `triangle_bounds(a, b, c)` gives a triangle's box.
- `physecs.massutil`: `inertia_sphere`, `inertia_capsule`, `inertia_box`,
  `inertia_tetrahedron`; `com_and_inv_inertia(colliders, mass)` returns the
  centre of mass and inverse inertia tensor of the non-trigger colliders with
  mass spread by volume; `set_mass_props(dynamic, colliders, mass)` writes
  them into a `RigidBodyDynamic`.
- `physecs.geomutil`: `closest_point_on_segment`,
  `closest_points_between_segments`, `closest_points_between_segment_vectors`,
  `sqr_dist_segment_aabb` (returns `SegmentBoxDistance`),
  `sqr_dist_point_triangle` and `sqr_dist_segment_triangle` (return
  `TriangleDistance` with the `TriangleFeature` reached), and
  `distance_aabb_plane`.
- `physecs.gjk`: support mappings (`SphereSupport`, `CapsuleSupport`,
  `BoxSupport`, `ConvexMeshSupport`, `TriangleSupport`), `minkowski_point`,
  `gjk_intersect` (a yes/no overlap test) and `gjk_simplex` (a tetrahedron of
  `GjkVertex` enclosing the origin, or `None` when the shapes are apart).
- `physecs.epa`: `epa(support0, support1, simplex)` expands a `gjk_simplex`
  result and returns an `EpaResult` with the face normal and a point on each
  shape.
- `physecs.overlap`: `overlap(pos0, or0, geom0, pos1, or1, geom1)` for any pair
  of spheres, capsules, boxes and convex meshes. Triangle meshes always report
  no overlap.
- `physecs.raycast`: `intersect_ray_aabb` and `intersect_ray_geometry` return
  the ray parameter of the first hit, `0` when the ray starts inside, or `None`
  on a miss. Triangle meshes are never hit.
- `physecs.contacts`: `contacts_polygon_box_face` and
  `contacts_polygon_polygon_face` turn an already clipped incident polygon into
  at most four `ContactPoint`s against a reference face.
- `physecs.joint`: `Transform`, `ConstraintRow`, `ConstraintFlag`
  (`ANGULAR`, `LIMITED`, `SOFT`), `JointWorldSpaceData`, `JointSolverData` and
  the abstract `Joint`. `Joint.solver_data(transform0, transform1, dynamic0,
  dynamic1)` gathers a joint's state; `JointSolverData.make_constraints()`
  returns its constraint rows for the current placement.
- `physecs.joints_basic`: `FixedJoint`, `SphericalJoint`, `UniversalJoint`.
- `physecs.joints_driven`: `GearJoint` (`gear_ratio`), `PrismaticJoint`
  (`upper_limit`, `lower_limit`, `drive_enabled`, `target_position`,
  `drive_stiffness`, `drive_damping`), `RevoluteJoint` (`drive_enabled`,
  `drive_velocity`), `ServoJoint` (`target_angle`, `drive_stiffness`,
  `drive_damping`) and `angle_diff`.

## Installing

```
pip install .
```

## Example

```python
import numpy as np
from physecs.shapes import SphereGeometry, BoxGeometry
from physecs.overlap import overlap
from physecs.raycast import intersect_ray_geometry

identity = np.array([1.0, 0.0, 0.0, 0.0])  # quaternion (w, x, y, z)
sphere = SphereGeometry(radius=1.0)
box = BoxGeometry(half_extents=np.array([1.0, 1.0, 1.0]))

print(overlap(np.zeros(3), identity, sphere, np.array([1.5, 0.0, 0.0]), identity, box))  # True

hit = intersect_ray_geometry(np.array([-5.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]),
                             np.zeros(3), identity, sphere)
print(hit)  # 4.0
```

Joint constraint rows:

```python
import numpy as np
from physecs.joint import Transform
from physecs.joints_basic import SphericalJoint

identity = np.array([1.0, 0.0, 0.0, 0.0])
joint = SphericalJoint("a", [0.5, 0, 0], identity, "b", [-0.5, 0, 0], identity)
data = joint.solver_data(Transform([0, 0, 0]), Transform([1.2, 0, 0]))
rows = data.make_constraints()
print(rows[0].c)  # squared gap between the anchors
```

## What it does not do

physecs provides the pieces, not a world to run them in. There is no scene
or entity registry, no broad phase, no time stepping or integration, and no
constraint solver that consumes `ConstraintRow`s. There is no shape-pair
contact generation beyond the polygon helpers in `physecs.contacts`, and
there is no character controller.

## Running the tests

```
pip install .[test]
pytest
```