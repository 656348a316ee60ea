"""Expanding polytope algorithm: penetration normal and contact points."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from physecs.gjk import GjkVertex, SupportFunction, minkowski_point

logger = logging.getLogger(__name__)

_MAX_ITERATIONS = 100
_TOLERANCE = 0.00001


@dataclass
class EpaResult:
    """Unit normal of the closest polytope face and the matching points on
    each shape."""

    normal: np.ndarray
    point0: np.ndarray
    point1: np.ndarray


@dataclass
class _Face:
    indices: Tuple[int, int, int]
    normal: np.ndarray


class _Polytope:
    def __init__(self, simplex: Sequence[GjkVertex]) -> None:
        self.vertices: List[GjkVertex] = list(simplex)
        self.faces: List[_Face] = []
        v = [vertex.pos for vertex in self.vertices]
        normal = np.cross(v[0] - v[1], v[2] - v[1])
        if (v[3] - v[0]) @ normal < 0:
            triples = ((0, 1, 2), (3, 1, 0), (3, 2, 1), (3, 0, 2))
        else:
            triples = ((0, 2, 1), (3, 2, 0), (3, 1, 2), (3, 0, 1))
        for triple in triples:
            self._create_face(*triple)

    def _create_face(self, i0: int, i1: int, i2: int) -> None:
        p = self.vertices
        normal = np.cross(p[i0].pos - p[i1].pos, p[i2].pos - p[i1].pos)
        length = float(np.linalg.norm(normal))
        if length:
            normal = normal / length
        else:
            logger.warning("EPA error, triangle normal is 0")
        self.faces.append(_Face((i0, i1, i2), normal))

    def _destroy_face(self, index: int) -> None:
        self.faces[index] = self.faces[-1]
        self.faces.pop()

    def _distance(self, face: _Face) -> float:
        return float(self.vertices[face.indices[0]].pos @ face.normal)

    def _is_visible(self, face: _Face, p: np.ndarray) -> bool:
        return bool(face.normal @ (p - self.vertices[face.indices[0]].pos) > 0)

    def closest_face(self) -> Tuple[float, np.ndarray, int]:
        if not self.faces:
            raise RuntimeError("polytope has no faces")
        best = min(range(len(self.faces)), key=lambda i: self._distance(self.faces[i]))
        return self._distance(self.faces[best]), self.faces[best].normal, best

    def insert_vertex(self, vertex: GjkVertex) -> None:
        loose: List[Tuple[int, int]] = []
        for i in reversed(range(len(self.faces))):
            face = self.faces[i]
            if not self._is_visible(face, vertex.pos):
                continue
            a, b, c = face.indices
            kept = []
            for edge in ((a, b), (b, c), (c, a)):
                reverse = (edge[1], edge[0])
                shared = next((k for k in reversed(range(len(loose))) if loose[k] == reverse), None)
                if shared is None:
                    kept.append(edge)
                else:
                    loose[shared] = loose[-1]
                    loose.pop()
            loose.extend(kept)
            self._destroy_face(i)

        index = len(self.vertices)
        self.vertices.append(vertex)
        for i0, i1 in loose:
            self._create_face(index, i0, i1)

    def closest_points(self, face_index: int) -> Tuple[np.ndarray, np.ndarray]:
        face = self.faces[face_index]
        a, b, c = (self.vertices[i] for i in face.indices)

        proj = face.normal + self._distance(face)

        v0 = b.pos - a.pos
        v1 = c.pos - a.pos
        v2 = proj - a.pos

        d00 = float(v0 @ v0)
        d01 = float(v0 @ v1)
        d11 = float(v1 @ v1)
        d20 = float(v2 @ v0)
        d21 = float(v2 @ v1)

        denom = d00 * d11 - d01 * d01
        if denom:
            v = (d20 * d11 - d21 * d01) / denom
            w = (d00 * d21 - d01 * d20) / denom
            u = 1.0 - v - w
        elif d00:
            w = 0.0
            v = d20 / d00
            u = 1.0 - v
        else:
            u, v, w = 1.0, 0.0, 0.0

        cp0 = u * a.sp0 + v * b.sp0 + w * c.sp0
        cp1 = u * a.sp1 + v * b.sp1 + w * c.sp1
        return cp0, cp1


def epa(support0: SupportFunction, support1: SupportFunction, simplex: Sequence[GjkVertex]) -> EpaResult:
    """Expand a GJK simplex enclosing the origin towards the nearest boundary."""
    if len(simplex) != 4:
        raise ValueError("EPA needs a tetrahedron of four vertices")
    polytope = _Polytope(simplex)

    for _ in range(_MAX_ITERATIONS):
        distance, normal, face_index = polytope.closest_face()
        v = minkowski_point(support0, support1, normal)
        if v.pos @ normal - distance < _TOLERANCE:
            break
        polytope.insert_vertex(v)
    else:
        distance, normal, face_index = polytope.closest_face()

    cp0, cp1 = polytope.closest_points(face_index)
    return EpaResult(np.array(normal, dtype=float), cp0, cp1)