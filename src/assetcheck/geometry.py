"""Per-triangle geometry and 2D orientation predicates."""

from __future__ import annotations

import math

import numpy as np


def heron_area(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """Triangle area from its side lengths (Heron's formula).

    Works for points of any dimension. Rounding can push the radicand of a
    collinear triangle slightly below zero, so it is clamped; the result is
    never negative.
    """
    ab = float(np.linalg.norm(b - a))
    bc = float(np.linalg.norm(c - b))
    ca = float(np.linalg.norm(a - c))
    s = (ab + bc + ca) / 2.0
    radicand = s * (s - ab) * (s - bc) * (s - ca)
    if radicand <= 0.0:
        return 0.0
    return math.sqrt(radicand)


def triangle_normal(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray | None:
    """Unit normal of ``(b - a) x (c - a)``, or None for a degenerate triangle."""
    cross = np.cross(b - a, c - a)
    length = float(np.linalg.norm(cross))
    if length == 0.0:
        return None
    return (cross / length).astype(np.float64)


def angle_between(n1: np.ndarray, n2: np.ndarray) -> float:
    """Unsigned angle between two vectors, in ``[0, pi]``.

    Uses ``atan2(|n1 x n2|, n1 . n2)``, which stays accurate near 0 and pi
    where ``acos`` of the dot product loses precision.
    """
    cross = float(np.linalg.norm(np.cross(n1, n2)))
    dot = float(np.dot(n1, n2))
    return math.atan2(cross, dot)


def uv_winding(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """2D cross product of ``(b - a)`` and ``(c - b)``; twice the signed area."""
    return float((b[0] - a[0]) * (c[1] - b[1]) - (b[1] - a[1]) * (c[0] - b[0]))


def is_inverted(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> bool:
    """True when the UV triangle winds clockwise (mirrored/flipped UVs)."""
    return uv_winding(a, b, c) < 0.0


def uv_extents(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> tuple[float, float, float, float]:
    """Return ``(min_u, max_u, min_v, max_v)``."""
    return (
        float(min(a[0], b[0], c[0])),
        float(max(a[0], b[0], c[0])),
        float(min(a[1], b[1], c[1])),
        float(max(a[1], b[1], c[1])),
    )


def orientation(p: np.ndarray, q: np.ndarray, r: np.ndarray) -> float:
    """Signed doubled area of ``(p, q, r)``: >0 counter-clockwise, <0 clockwise, 0 collinear."""
    return float((q[0] - p[0]) * (r[1] - p[1]) - (q[1] - p[1]) * (r[0] - p[0]))


def point_in_triangle(p: np.ndarray, a: np.ndarray, b: np.ndarray, c: np.ndarray) -> bool:
    """True when ``p`` is strictly inside triangle ``abc`` (either winding).

    Points on an edge or a vertex are not inside.
    """
    d1 = orientation(a, b, p)
    d2 = orientation(b, c, p)
    d3 = orientation(c, a, p)
    return (d1 > 0 and d2 > 0 and d3 > 0) or (d1 < 0 and d2 < 0 and d3 < 0)


def same_side(p1: np.ndarray, p2: np.ndarray, e1: np.ndarray, e2: np.ndarray) -> bool:
    """True when ``p1`` and ``p2`` lie strictly on the same side of line ``e1 e2``."""
    return orientation(e1, e2, p1) * orientation(e1, e2, p2) > 0


def segments_intersect(p1: np.ndarray, p2: np.ndarray, q1: np.ndarray, q2: np.ndarray) -> bool:
    """True when segments ``p1 p2`` and ``q1 q2`` cross at a single interior point.

    Touching at an endpoint and collinear overlap are not counted.
    """
    o1 = orientation(q1, q2, p1)
    o2 = orientation(q1, q2, p2)
    o3 = orientation(p1, p2, q1)
    o4 = orientation(p1, p2, q2)
    return o1 * o2 < 0 and o3 * o4 < 0
