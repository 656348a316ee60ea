"""Contact points from a clipped incident polygon against a reference face.

The incident face is clipped beforehand to a 2D polygon in the reference
frame. Each polygon point is cast along the face normal onto the incident
plane. The points that end up behind the reference face become contacts.
Each contact pairs the point projected onto the reference face
(``position0``) with the point on the incident face (``position1``).
At most four contacts are kept.
"""
from __future__ import annotations

from typing import Callable, List, Sequence

import numpy as np

from physecs.shapes import ContactPoint

_MAX_POINTS = 4


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _polygon(points) -> np.ndarray:
    return np.array(points, dtype=float).reshape(-1, 2)


def _ray_plane(origin: np.ndarray, plane_orig: np.ndarray, plane_normal: np.ndarray,
               direction: np.ndarray) -> np.float64:
    """Distance along ``direction`` from ``origin`` to the plane."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.float64((plane_orig - origin) @ plane_normal) / np.float64(direction @ plane_normal)


def _select_four(points: np.ndarray, clip_x: int, clip_y: int) -> List[int]:
    """Pick the first point, the one farthest from it, and the two points
    spanning the largest positive and negative areas with those two."""
    first = points[0]
    dist2 = ((points - first) ** 2).sum(axis=1)
    far = int(dist2.argmax()) if dist2.max() > 0 else 0

    ca = first - points
    cb = points[far] - points
    areas = ca[:, clip_x] * cb[:, clip_y] - cb[:, clip_x] * ca[:, clip_y]
    max_index = int(areas.argmax()) if areas.max() > 0 else 0
    min_index = int(areas.argmin()) if areas.min() < 0 else 0
    return [0, far, max_index, min_index]


def _build(penetrated: Sequence[np.ndarray], clip_x: int, clip_y: int,
           surface_axis: int, surface_value: float,
           to_world: Callable[[np.ndarray], np.ndarray]) -> List[ContactPoint]:
    if not penetrated:
        return []
    points = np.array(penetrated)
    if len(points) > _MAX_POINTS:
        chosen = _select_four(points, clip_x, clip_y)
    else:
        chosen = range(len(points))

    contacts = []
    for index in chosen:
        point = points[index]
        on_surface = point.copy()
        on_surface[surface_axis] = surface_value
        contacts.append(ContactPoint(to_world(on_surface), to_world(point)))
    return contacts


def contacts_polygon_box_face(box_center, box_basis, box_axis: int, box_axis_sign: int,
                              box_half_extents, inc_plane_orig, inc_plane_normal,
                              polygon, clip_x: int, clip_y: int) -> List[ContactPoint]:
    """Contacts between a box face and an incident polygon.

    The reference face is the box face on ``box_axis`` whose outward side is
    ``box_axis_sign``. ``polygon`` holds points in box space on the
    ``clip_x``/``clip_y`` axes. The incident plane is also in box space.
    ``box_basis`` has the box axes as columns.
    """
    center = _vec3(box_center)
    basis = np.array(box_basis, dtype=float).reshape(3, 3)
    he = _vec3(box_half_extents)
    plane_orig = _vec3(inc_plane_orig)
    plane_normal = _vec3(inc_plane_normal)

    direction = np.zeros(3)
    direction[box_axis] = box_axis_sign
    limit = he[box_axis]

    penetrated = []
    for x, y in _polygon(polygon):
        point = np.zeros(3)
        point[clip_x] = x
        point[clip_y] = y
        distance = _ray_plane(point, plane_orig, plane_normal, direction)
        if distance < limit:
            point[box_axis] = box_axis_sign * distance
            penetrated.append(point)

    return _build(penetrated, clip_x, clip_y, box_axis, box_axis_sign * limit,
                  lambda p: center + basis @ p)


def contacts_polygon_polygon_face(ref_pos, ref_to_world, ref_plane_origin, ref_plane_normal,
                                  inc_plane_origin, inc_plane_normal, polygon,
                                  clip_x: int, clip_y: int) -> List[ContactPoint]:
    """Contacts between a reference polygon face and an incident polygon.

    The reference frame has the face normal along local y. A polygon point
    ``(a, b)`` stands for the local point ``(b, 0, a)``. Planes are given in
    the reference frame. ``clip_x`` and ``clip_y`` name the local axes used
    when choosing four contacts out of more.
    """
    origin = _vec3(ref_pos)
    to_world = np.array(ref_to_world, dtype=float).reshape(3, 3)
    ref_orig = _vec3(ref_plane_origin)
    ref_normal = _vec3(ref_plane_normal)
    plane_orig = _vec3(inc_plane_origin)
    plane_normal = _vec3(inc_plane_normal)

    distance_to_ref = float(ref_orig @ ref_normal)
    direction = np.array([0.0, 1.0, 0.0])

    penetrated = []
    for a, b in _polygon(polygon):
        point = np.array([b, 0.0, a])
        distance = _ray_plane(point, plane_orig, plane_normal, direction)
        if distance < distance_to_ref:
            point[1] = distance
            penetrated.append(point)

    return _build(penetrated, clip_x, clip_y, 1, distance_to_ref,
                  lambda p: origin + to_world @ p)