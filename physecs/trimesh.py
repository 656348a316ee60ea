"""Triangle meshes with a bounding volume hierarchy built by binned SAH."""
from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import List, Optional, Tuple

import numpy as np

from physecs.shapes import Bounds


def _empty_bounds() -> Bounds:
    return Bounds(np.full(3, np.inf), np.full(3, -np.inf))


def triangle_bounds(a, b, c) -> Bounds:
    """Smallest axis-aligned box holding the three points."""
    pts = np.array([a, b, c], dtype=float).reshape(3, 3)
    return Bounds(pts.min(axis=0), pts.max(axis=0))


@dataclass
class Triangle:
    indices: Tuple[int, int, int]
    bounds: Bounds
    normal: np.ndarray
    centroid: np.ndarray


@dataclass
class TriangleMeshBVHNode:
    """A leaf holds ``tri_count`` triangles from ``index``; an inner node has
    ``tri_count == 0`` and children at ``index`` and ``index + 1``."""

    bounds: Bounds
    tri_count: int = 0
    index: int = 0


@dataclass
class _Split:
    axis: int
    split_index: int
    left: Bounds
    right: Bounds
    count_left: int
    count_right: int


class TriangleMesh:
    NUM_BUCKETS = 6
    root_id = 0

    def __init__(self, vertices, indices) -> None:
        self.vertices = np.array(vertices, dtype=float).reshape(-1, 3)
        flat = [int(i) for i in indices]
        if not flat or len(flat) % 3:
            raise ValueError("indices must describe at least one whole triangle")
        for i in flat:
            if not 0 <= i < len(self.vertices):
                raise IndexError(f"vertex index {i} out of range")
        chunks = zip(*[iter(flat)] * 3)
        self.triangles: List[Triangle] = [self._make_triangle(*tri) for tri in chunks]

        root_bounds = reduce(Bounds.union, (t.bounds for t in self.triangles), _empty_bounds())
        self.bvh: List[TriangleMeshBVHNode] = [
            TriangleMeshBVHNode(root_bounds, len(self.triangles), 0)
        ]
        pending = [self.root_id]
        while pending:
            first_child = self._subdivide(pending.pop())
            if first_child is not None:
                pending.extend((first_child + 1, first_child))

    def _make_triangle(self, i0: int, i1: int, i2: int) -> Triangle:
        a, b, c = self.vertices[i0], self.vertices[i1], self.vertices[i2]
        normal = np.cross(b - a, c - a)
        with np.errstate(invalid="ignore", divide="ignore"):
            normal = normal / np.linalg.norm(normal)
        return Triangle((i0, i1, i2), triangle_bounds(a, b, c), normal, (a + b + c) / 3.0)

    def _node_triangles(self, node: TriangleMeshBVHNode) -> List[Triangle]:
        return self.triangles[node.index:node.index + node.tri_count]

    def _fill_buckets(self, node: TriangleMeshBVHNode, axis: int):
        start = node.bounds.min[axis]
        length = node.bounds.max[axis] - start
        if not length:
            return None
        buckets = [(_empty_bounds(), 0) for _ in range(self.NUM_BUCKETS)]
        for tri in self._node_triangles(node):
            slot = min(self.NUM_BUCKETS - 1,
                       int((tri.centroid[axis] - start) / length * self.NUM_BUCKETS))
            bounds, count = buckets[slot]
            buckets[slot] = (bounds.union(tri.bounds), count + 1)
        return buckets

    @staticmethod
    def _evaluate_split(buckets, split_index: int):
        left_part, right_part = buckets[:split_index], buckets[split_index:]
        left = reduce(Bounds.union, (b for b, _ in left_part), _empty_bounds())
        right = reduce(Bounds.union, (b for b, _ in right_part), _empty_bounds())
        count_left = sum(c for _, c in left_part)
        count_right = sum(c for _, c in right_part)
        if not count_left or not count_right:
            return None
        cost = count_left * left.area() + count_right * right.area()
        return cost, left, right, count_left, count_right

    def _choose_split(self, node: TriangleMeshBVHNode) -> Optional[_Split]:
        best_cost = float("inf")
        best: Optional[_Split] = None
        for axis in range(3):
            buckets = self._fill_buckets(node, axis)
            if buckets is None:
                continue
            for split_index in range(1, self.NUM_BUCKETS):
                result = self._evaluate_split(buckets, split_index)
                if result is None:
                    continue
                cost, left, right, count_left, count_right = result
                if cost < best_cost:
                    best_cost = cost
                    best = _Split(axis, split_index, left, right, count_left, count_right)
        return best

    def _subdivide(self, node_id: int) -> Optional[int]:
        node = self.bvh[node_id]
        split = self._choose_split(node)
        if split is None:
            return None

        start = node.bounds.min[split.axis]
        length = node.bounds.max[split.axis] - start
        tris = self.triangles
        i, j = node.index, node.index + node.tri_count - 1
        while i <= j:
            slot = int((tris[i].centroid[split.axis] - start) / length * self.NUM_BUCKETS)
            if slot < split.split_index:
                i += 1
            else:
                tris[i], tris[j] = tris[j], tris[i]
                j -= 1

        self.bvh.append(TriangleMeshBVHNode(split.left, split.count_left, node.index))
        self.bvh.append(TriangleMeshBVHNode(split.right, split.count_right, i))
        node.tri_count = 0
        node.index = len(self.bvh) - 2
        return node.index

    def overlap_bvh(self, bounds: Bounds) -> List[int]:
        """Indices into ``triangles`` of every leaf whose box meets ``bounds``."""
        found: List[int] = []
        stack = [self.root_id]
        while stack:
            node = self.bvh[stack.pop()]
            if not bounds.intersects(node.bounds):
                continue
            if node.tri_count:
                found.extend(range(node.index, node.index + node.tri_count))
            else:
                stack.extend((node.index + 1, node.index))
        return found