"""Connectivity reconstruction for triangle soups.

A single set of types serves both coordinate spaces: a ``VertexStore`` of
dimension 3 holds positions, one of dimension 2 holds UVs. Triangles and edges
refer to vertices by their integer index in the store; edges refer to
triangles by their index in the owning triangle list.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from assetcheck.geometry import (
    angle_between,
    heron_area,
    is_inverted,
    triangle_normal,
    uv_extents,
)


class VertexStore:
    """Deduplicated point storage with approximate-equality matching.

    Two points match when every coordinate, multiplied by ``scale`` and
    rounded half up, is equal. ``add`` returns the index of the first stored
    point that matches, so coincident positions collapse to one index.
    """

    def __init__(self, dim: int, scale: int) -> None:
        self.dim = dim
        self.scale = scale
        self._points: list[tuple[float, ...]] = []
        self._lookup: dict[tuple[int, ...], int] = {}

    def __len__(self) -> int:
        return len(self._points)

    def key(self, point) -> tuple[int, ...]:
        # halves round up, not to even
        return tuple(math.floor(float(v) * self.scale + 0.5) for v in point)

    def add(self, point) -> int:
        key = self.key(point)
        index = self._lookup.get(key)
        if index is None:
            index = len(self._points)
            self._lookup[key] = index
            self._points.append(tuple(float(v) for v in point))
        return index

    def find(self, point) -> int | None:
        """Index of a stored point matching ``point``, or None."""
        return self._lookup.get(self.key(point))

    def matches(self, i: int, j: int) -> bool:
        return self.key(self._points[i]) == self.key(self._points[j])

    def point(self, index: int) -> np.ndarray:
        return np.asarray(self._points[index], dtype=np.float64)

    @property
    def points(self) -> np.ndarray:
        if not self._points:
            return np.zeros((0, self.dim), dtype=np.float64)
        return np.asarray(self._points, dtype=np.float64)


@dataclass
class MeshTriangle:
    """A 3D face: position-store indices plus derived area and normal."""

    index: int
    a: int
    b: int
    c: int
    area: float
    normal: np.ndarray
    degenerate: bool
    uv_triangle: int | None = None

    @property
    def vertices(self) -> tuple[int, int, int]:
        return (self.a, self.b, self.c)

    @classmethod
    def build(
        cls, index: int, ids: tuple[int, int, int], pa: np.ndarray, pb: np.ndarray, pc: np.ndarray
    ) -> MeshTriangle:
        normal = triangle_normal(pa, pb, pc)
        area = heron_area(pa, pb, pc)
        degenerate = normal is None or area == 0.0
        return cls(
            index=index,
            a=ids[0],
            b=ids[1],
            c=ids[2],
            area=area,
            normal=np.zeros(3, dtype=np.float64) if normal is None else normal,
            degenerate=degenerate,
        )


@dataclass
class UvTriangle:
    """A UV face: UV-store indices, the supplied points, and derived attributes."""

    index: int
    a: int
    b: int
    c: int
    pa: np.ndarray
    pb: np.ndarray
    pc: np.ndarray
    area: float
    inverted: bool
    min_u: float
    max_u: float
    min_v: float
    max_v: float
    mesh_area: float = 0.0
    overlapping: bool = False
    island_index: int | None = None

    @property
    def vertices(self) -> tuple[int, int, int]:
        return (self.a, self.b, self.c)

    @property
    def points(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return (self.pa, self.pb, self.pc)

    @property
    def centroid(self) -> np.ndarray:
        return (self.pa + self.pb + self.pc) / 3.0

    @property
    def density(self) -> float:
        """UV area per unit of 3D area; 0 for a degenerate 3D face."""
        if self.mesh_area == 0.0:
            return 0.0
        return self.area / self.mesh_area

    @classmethod
    def build(
        cls, index: int, ids: tuple[int, int, int], pa: np.ndarray, pb: np.ndarray, pc: np.ndarray
    ) -> UvTriangle:
        min_u, max_u, min_v, max_v = uv_extents(pa, pb, pc)
        return cls(
            index=index,
            a=ids[0],
            b=ids[1],
            c=ids[2],
            pa=pa,
            pb=pb,
            pc=pc,
            area=heron_area(pa, pb, pc),
            inverted=is_inverted(pa, pb, pc),
            min_u=min_u,
            max_u=max_u,
            min_v=min_v,
            max_v=max_v,
        )


@dataclass
class Edge:
    """An undirected edge and the triangles incident to it."""

    index: int
    vertex_a: int
    vertex_b: int
    triangles: list[int] = field(default_factory=list)
    non_manifold: bool | None = None
    face_angle: float | None = None
    shared: bool | None = None
    zero_length: bool | None = None

    @property
    def key(self) -> tuple[int, int]:
        return edge_key(self.vertex_a, self.vertex_b)

    def matches(self, other: Edge) -> bool:
        """True for the same unordered vertex pair, regardless of direction."""
        return self.key == other.key


def edge_key(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


def build_edges(triangles: list[tuple[int, int, int]]) -> list[Edge]:
    """Derive the deduplicated edge set of an indexed triangle list.

    Each triangle contributes ``(a, b)``, ``(b, c)`` and ``(c, a)``. An edge
    already seen in either direction gains the triangle; otherwise a new edge
    is created with the triangle as its first member. Edge indices follow
    creation order.
    """
    edges: list[Edge] = []
    by_key: dict[tuple[int, int], Edge] = {}
    for tri_index, (a, b, c) in enumerate(triangles):
        for v0, v1 in ((a, b), (b, c), (c, a)):
            key = edge_key(v0, v1)
            edge = by_key.get(key)
            if edge is None:
                edge = Edge(index=len(edges), vertex_a=v0, vertex_b=v1)
                by_key[key] = edge
                edges.append(edge)
            edge.triangles.append(tri_index)
    return edges


def classify_edges(edges: list[Edge], triangles: list[MeshTriangle]) -> None:
    """Mark 3D edges manifold/non-manifold and compute dihedral face angles.

    One incident triangle is an open boundary, two is an interior edge; both
    are manifold. Zero or three-plus incident triangles is non-manifold. The
    face angle is only defined for two incident non-degenerate faces.
    """
    for edge in edges:
        count = len(edge.triangles)
        edge.shared = count > 1
        edge.zero_length = edge.vertex_a == edge.vertex_b
        edge.face_angle = None
        if count == 2:
            edge.non_manifold = False
            t1 = triangles[edge.triangles[0]]
            t2 = triangles[edge.triangles[1]]
            if not (t1.degenerate or t2.degenerate):
                edge.face_angle = angle_between(t1.normal, t2.normal)
        elif count == 1:
            edge.non_manifold = False
        else:
            edge.non_manifold = True


def annotate_uv_edges(edges: list[Edge]) -> None:
    """Fill in the UV-space edge attributes."""
    for edge in edges:
        edge.shared = len(edge.triangles) > 1
        edge.zero_length = edge.vertex_a == edge.vertex_b
