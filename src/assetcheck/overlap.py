"""UV overlap detection and gutter-width probing."""

from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import combinations

import numpy as np

from assetcheck.geometry import point_in_triangle, same_side, segments_intersect
from assetcheck.topology import UvTriangle


def boxes_disjoint(
    first: tuple[float, float, float, float], second: tuple[float, float, float, float]
) -> bool:
    """Bounding-box rejection on ``(min_u, max_u, min_v, max_v)`` tuples.

    Boxes that only touch along a side are disjoint.
    """
    return (
        first[0] >= second[1]
        or first[1] <= second[0]
        or first[2] >= second[3]
        or first[3] <= second[2]
    )


def _box(triangle: UvTriangle) -> tuple[float, float, float, float]:
    return (triangle.min_u, triangle.max_u, triangle.min_v, triangle.max_v)


def triangles_overlap(first: UvTriangle, second: UvTriangle) -> bool:
    """Conservative overlap test between two UV triangles.

    Stages, cheapest first: identity and zero-area rejection, bounding boxes,
    shared-vertex short-circuits, containment, then proper edge crossings.
    Collinear edge overlap without any interior crossing is not reported.

    The test is partial: pairs whose only contacts are collinear edges or
    vertices lying on the other triangle's boundary are missed even when they
    share area, e.g. ``(0,0),(2,0),(0,2)`` against ``(1,0),(3,0),(1,1)``.
    """
    if first.index == second.index:
        return False
    if first.area == 0.0 or second.area == 0.0:
        return False
    # Vertices merged by approximate matching make the face degenerate.
    if len(set(first.vertices)) < 3 or len(set(second.vertices)) < 3:
        return False
    if boxes_disjoint(_box(first), _box(second)):
        return False

    shared = set(first.vertices) & set(second.vertices)
    if len(shared) == 3:
        return True
    if len(shared) == 2:
        e1, e2 = (p for v, p in zip(first.vertices, first.points) if v in shared)
        free_first = next(p for v, p in zip(first.vertices, first.points) if v not in shared)
        free_second = next(p for v, p in zip(second.vertices, second.points) if v not in shared)
        return same_side(free_first, free_second, e1, e2)

    own_free = [p for v, p in zip(first.vertices, first.points) if v not in shared]
    other_free = [p for v, p in zip(second.vertices, second.points) if v not in shared]
    if any(point_in_triangle(p, *first.points) for p in other_free):
        return True
    if any(point_in_triangle(p, *second.points) for p in own_free):
        return True
    if point_in_triangle(second.centroid, *first.points):
        return True
    if point_in_triangle(first.centroid, *second.points):
        return True

    return any(
        segments_intersect(p1, p2, q1, q2)
        for p1, p2 in _edges(first.points)
        for q1, q2 in _edges(second.points)
    )


def _edges(points) -> list[tuple[np.ndarray, np.ndarray]]:
    count = len(points)
    return [(points[i], points[(i + 1) % count]) for i in range(count)]


def _grid_cells(
    box: tuple[float, float, float, float],
    origin: tuple[float, float],
    cell: tuple[float, float],
    grid_size: int,
) -> list[tuple[int, int]]:
    i0 = _cell_index(box[0], origin[0], cell[0], grid_size)
    i1 = _cell_index(box[1], origin[0], cell[0], grid_size)
    j0 = _cell_index(box[2], origin[1], cell[1], grid_size)
    j1 = _cell_index(box[3], origin[1], cell[1], grid_size)
    return [(i, j) for i in range(i0, i1 + 1) for j in range(j0, j1 + 1)]


def _cell_index(value: float, origin: float, size: float, grid_size: int) -> int:
    if size == 0.0:
        return 0
    return min(max(int((value - origin) / size), 0), grid_size - 1)


def detect_overlaps(triangles: list[UvTriangle], grid_size: int = 32) -> int:
    """Flag every triangle that overlaps another one; return how many are flagged.

    Triangles are bucketed into a uniform grid over their joint extents so that
    only pairs sharing a cell are tested, each pair once. Flags are only ever
    set, never cleared.
    """
    candidates = [t for t in triangles if t.area > 0.0]
    if len(candidates) > 1:
        min_u = min(t.min_u for t in candidates)
        max_u = max(t.max_u for t in candidates)
        min_v = min(t.min_v for t in candidates)
        max_v = max(t.max_v for t in candidates)
        origin = (min_u, min_v)
        cell = ((max_u - min_u) / grid_size, (max_v - min_v) / grid_size)

        buckets: dict[tuple[int, int], list[UvTriangle]] = {}
        for triangle in candidates:
            for key in _grid_cells(_box(triangle), origin, cell, grid_size):
                buckets.setdefault(key, []).append(triangle)

        tested: set[tuple[int, int]] = set()
        for bucket in buckets.values():
            for first, second in combinations(bucket, 2):
                pair = (first.index, second.index)
                if pair in tested:
                    continue
                tested.add(pair)
                if first.overlapping and second.overlapping:
                    continue
                if triangles_overlap(first, second):
                    first.overlapping = True
                    second.overlapping = True

    return sum(1 for t in triangles if t.overlapping)


class Square:
    """Axis-aligned probe square in UV space.

    ::

        c---d
        | + |
        a---b

    ``a`` is ``(min_u, min_v)`` and ``d`` is ``(max_u, max_v)``. A square only
    carries geometry; per-pixel island ownership and overlap flags live in the
    ``GutterProbe`` grids.
    """

    def __init__(self, u_center: float, v_center: float, size: float) -> None:
        half = size / 2.0
        self.size = size
        self.u_center = u_center
        self.v_center = v_center
        self.min_u = u_center - half
        self.max_u = u_center + half
        self.min_v = v_center - half
        self.max_v = v_center + half
        self.a = np.array([self.min_u, self.min_v], dtype=np.float64)
        self.b = np.array([self.max_u, self.min_v], dtype=np.float64)
        self.c = np.array([self.min_u, self.max_v], dtype=np.float64)
        self.d = np.array([self.max_u, self.max_v], dtype=np.float64)

    @property
    def box(self) -> tuple[float, float, float, float]:
        return (self.min_u, self.max_u, self.min_v, self.max_v)

    @property
    def outline(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Corners in drawing order a, b, d, c."""
        return (self.a, self.b, self.d, self.c)

    def contains(self, point: np.ndarray) -> bool:
        """Strict interior test."""
        return self.min_u < point[0] < self.max_u and self.min_v < point[1] < self.max_v


def square_overlaps_triangle(square: Square, triangle: UvTriangle) -> bool:
    """Box rejection, containment both ways, then the 4x3 edge-crossing test."""
    if boxes_disjoint(square.box, _box(triangle)):
        return False
    if any(square.contains(p) for p in triangle.points):
        return True
    center = np.array([square.u_center, square.v_center], dtype=np.float64)
    if any(point_in_triangle(p, *triangle.points) for p in (*square.outline, center)):
        return True
    return any(
        segments_intersect(p1, p2, q1, q2)
        for p1, p2 in _edges(square.outline)
        for q1, q2 in _edges(triangle.points)
    )


@dataclass(frozen=True)
class GutterProbe:
    """Result of probing UV gutters at a pixel resolution.

    ``islands`` holds, per pixel, the island first seen there (-1 when empty);
    ``overlaps`` flags pixels reached by more than one island. Row ``i`` is the
    U axis, column ``j`` the V axis.
    """

    resolution: int
    islands: np.ndarray
    overlaps: np.ndarray

    @property
    def overlap_count(self) -> int:
        return int(self.overlaps.sum())

    @property
    def passed(self) -> bool:
        return self.overlap_count == 0


def probe_gutter(triangles: list[UvTriangle], resolution: int) -> GutterProbe:
    """Check that separate islands keep at least about a pixel of margin.

    Each pixel is probed with a square two pixels wide, centered on the pixel,
    so that triangles on either side of a pixel boundary still meet in one
    probe. Only probes intersecting a triangle's bounding box are tested.
    Islands must already be assigned.
    """
    if resolution < 1:
        raise ValueError(f"Gutter resolution must be positive, got {resolution}")

    pixel = 1.0 / resolution
    islands = np.full((resolution, resolution), -1, dtype=np.int64)
    overlaps = np.zeros((resolution, resolution), dtype=bool)

    for triangle in triangles:
        if triangle.island_index is None:
            continue
        i0, i1 = _probe_range(triangle.min_u, triangle.max_u, pixel, resolution)
        j0, j1 = _probe_range(triangle.min_v, triangle.max_v, pixel, resolution)
        for i in range(i0, i1 + 1):
            for j in range(j0, j1 + 1):
                if overlaps[i, j]:
                    continue
                seen = islands[i, j]
                if seen == triangle.island_index:
                    continue
                square = Square(i * pixel + pixel / 2.0, j * pixel + pixel / 2.0, pixel * 2.0)
                if not square_overlaps_triangle(square, triangle):
                    continue
                if seen == -1:
                    islands[i, j] = triangle.island_index
                else:
                    overlaps[i, j] = True

    return GutterProbe(resolution=resolution, islands=islands, overlaps=overlaps)


def _probe_range(low: float, high: float, pixel: float, resolution: int) -> tuple[int, int]:
    # A probe centered on pixel k spans [(k - 0.5) * pixel, (k + 1.5) * pixel].
    first = math.floor(low / pixel - 1.5)
    last = math.ceil(high / pixel + 0.5)
    return max(first, 0), min(last, resolution - 1)
