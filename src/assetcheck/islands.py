"""Grouping of UV triangles into islands."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from assetcheck.topology import Edge, UvTriangle


@dataclass
class UvIsland:
    """A connected group of UV triangles."""

    index: int
    triangles: list[int] = field(default_factory=list)


def group_islands(triangles: list[UvTriangle], edges: list[Edge]) -> list[UvIsland]:
    """Partition UV triangles into islands connected through shared UV edges.

    Seeds are taken in triangle order and islands are numbered in the order
    their seed is met, so the grouping is reproducible for a given input.
    Sets ``island_index`` on every triangle.
    """
    neighbours: list[set[int]] = [set() for _ in triangles]
    for edge in edges:
        if len(edge.triangles) < 2:
            continue
        for tri_index in edge.triangles:
            neighbours[tri_index].update(edge.triangles)

    for triangle in triangles:
        triangle.island_index = None

    islands: list[UvIsland] = []
    for seed in triangles:
        if seed.island_index is not None:
            continue
        island = UvIsland(index=len(islands))
        seed.island_index = island.index
        queue = deque([seed.index])
        while queue:
            current = queue.popleft()
            island.triangles.append(current)
            for other in sorted(neighbours[current]):
                if triangles[other].island_index is None:
                    triangles[other].island_index = island.index
                    queue.append(other)
        island.triangles.sort()
        islands.append(island)
    return islands
